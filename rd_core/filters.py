# rd_core/filters.py
import django_filters as df

from .models import AuditLog, Recipe, Request, Sample, TestingSample


class RequestFilter(df.FilterSet):
    code = df.CharFilter(field_name="code", lookup_expr="icontains")
    customer_company = df.CharFilter(field_name="customer_company", lookup_expr="icontains")
    responsible = df.NumberFilter(field_name="responsible_id")
    desired_due_date = df.DateFromToRangeFilter()
    created_at = df.DateFromToRangeFilter()

    class Meta:
        model = Request
        fields = [
            "code",
            "customer_company",
            "status",
            "direction",
            "domain",
            "priority",
            "complexity_level",
            "responsible",
            "desired_due_date",
            "created_at",
        ]


class RecipeFilter(df.FilterSet):
    request = df.NumberFilter(field_name="request_id")
    recipe_code = df.CharFilter(field_name="recipe_code", lookup_expr="icontains")
    name = df.CharFilter(field_name="name", lookup_expr="icontains")

    class Meta:
        model = Recipe
        fields = ["request", "recipe_code", "name", "status"]


class SampleFilter(df.FilterSet):
    request = df.NumberFilter(field_name="request_id")
    recipe = df.NumberFilter(field_name="recipe_id")
    sample_code = df.CharFilter(field_name="sample_code", lookup_expr="icontains")
    created_at = df.DateFromToRangeFilter()

    class Meta:
        model = Sample
        fields = ["request", "recipe", "sample_code", "status", "created_at"]


class TestingSampleFilter(df.FilterSet):
    request = df.NumberFilter(field_name="request_id")
    sample_code = df.CharFilter(field_name="sample_code", lookup_expr="icontains")

    class Meta:
        model = TestingSample
        fields = ["request", "sample_code", "status", "is_quick"]


class AuditLogFilter(df.FilterSet):
    action = df.CharFilter(field_name="action", lookup_expr="icontains")
    created_at = df.DateFromToRangeFilter()

    class Meta:
        model = AuditLog
        fields = ["action", "user", "created_at"]
