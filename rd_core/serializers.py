from __future__ import annotations

from typing import Any, Dict, List

from django.contrib.auth import get_user_model
from rest_framework import serializers

from .models import (
    AuditLog,
    LabResults,
    PilotResults,
    Recipe,
    RecipeIngredient,
    Request,
    RequestEvent,
    Sample,
    SampleIngredient,
    TestingSample,
    UserRole,
)
from .scaling import ingredient_percentages
from .workflows import allowed_next_states, sample_stage_progress

User = get_user_model()


# ===============================================================
# Helpers
# ===============================================================

class ImmutableFieldsMixin:
    """
    Blocks updates to selected fields if they appear in incoming validated data.
    """
    immutable_fields: tuple[str, ...] = ()

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        if self.instance is not None and self.immutable_fields:
            for field in self.immutable_fields:
                if field in attrs:
                    raise serializers.ValidationError(
                        {field: "This field is immutable."}
                    )
        return super().validate(attrs)


class UserSlimSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ("id", "username", "email")
        read_only_fields = fields


# ===============================================================
# Request
# ===============================================================

class RequestEventSerializer(serializers.ModelSerializer):
    actor_username = serializers.CharField(source="actor.username", read_only=True, default=None)

    class Meta:
        model = RequestEvent
        fields = ("id", "event_type", "actor", "actor_username", "payload", "created_at")
        read_only_fields = fields


class RequestSerializer(serializers.ModelSerializer):
    author = UserSlimSerializer(read_only=True)
    responsible = UserSlimSerializer(read_only=True)

    allowed_next_states = serializers.SerializerMethodField()

    class Meta:
        model = Request
        fields = (
            "id",
            "code",
            "customer_company",
            "customer_contact",
            "description",
            "direction",
            "domain",
            "priority",
            "complexity_level",
            "status",
            "allowed_next_states",
            "author",
            "responsible",
            "rd_comment",
            "customer_feedback",
            "final_product_name",
            "desired_due_date",
            "date_sent_for_test",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "code",
            "status",
            "allowed_next_states",
            "author",
            "final_product_name",
            "date_sent_for_test",
            "created_at",
            "updated_at",
        )

    def get_allowed_next_states(self, obj: Request) -> List[str]:
        return allowed_next_states("request", obj.status)


class AssignSerializer(serializers.Serializer):
    responsible_id = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), allow_null=True)


class QuickHandoffSerializer(serializers.Serializer):
    product_name = serializers.CharField(max_length=255)
    weight_g = serializers.DecimalField(max_digits=12, decimal_places=3)


class CommentSerializer(serializers.Serializer):
    comment = serializers.CharField(required=False, allow_blank=True, default="")


# ===============================================================
# Recipe
# ===============================================================

class RecipeIngredientSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(required=False, allow_null=True)

    class Meta:
        model = RecipeIngredient
        fields = ("id", "ingredient_name", "grams", "sort_order")
        read_only_fields = ("sort_order",)


class RecipeSerializer(ImmutableFieldsMixin, serializers.ModelSerializer):
    request_code = serializers.CharField(source="request.code", read_only=True)
    created_by = UserSlimSerializer(read_only=True)
    ingredients = serializers.SerializerMethodField()
    allowed_next_states = serializers.SerializerMethodField()

    immutable_fields = ("request",)

    class Meta:
        model = Recipe
        fields = (
            "id",
            "request",
            "request_code",
            "recipe_seq",
            "recipe_code",
            "name",
            "notes",
            "status",
            "allowed_next_states",
            "ingredients",
            "created_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "request_code",
            "recipe_seq",
            "recipe_code",
            "status",
            "allowed_next_states",
            "ingredients",
            "created_by",
            "created_at",
            "updated_at",
        )

    def get_allowed_next_states(self, obj: Recipe) -> List[str]:
        return allowed_next_states("recipe", obj.status)

    def get_ingredients(self, obj: Recipe) -> List[Dict[str, Any]]:
        rows = list(obj.ingredients.all())
        percents = ingredient_percentages([r.grams for r in rows])
        return [
            {
                "id": r.pk,
                "ingredient_name": r.ingredient_name,
                "grams": str(r.grams),
                "percent": str(p),
                "sort_order": r.sort_order,
            }
            for r, p in zip(rows, percents)
        ]


class IngredientListSerializer(serializers.Serializer):
    ingredients = RecipeIngredientSerializer(many=True)


class RecipeCopySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)


class NewSampleSerializer(serializers.Serializer):
    batch_weight_g = serializers.DecimalField(max_digits=12, decimal_places=3)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class SampleCreateSerializer(NewSampleSerializer):
    recipe = serializers.PrimaryKeyRelatedField(queryset=Recipe.objects.all())


# ===============================================================
# Sample
# ===============================================================

class SampleIngredientSerializer(serializers.ModelSerializer):
    class Meta:
        model = SampleIngredient
        fields = ("id", "ingredient_name", "recipe_grams", "required_grams", "lot_number", "sort_order")
        read_only_fields = fields


class SampleSerializer(serializers.ModelSerializer):
    recipe_code = serializers.CharField(source="recipe.recipe_code", read_only=True)
    request_code = serializers.CharField(source="request.code", read_only=True)
    ingredients = SampleIngredientSerializer(many=True, read_only=True)
    created_by = UserSlimSerializer(read_only=True)
    allowed_next_states = serializers.SerializerMethodField()
    stages = serializers.SerializerMethodField()

    class Meta:
        model = Sample
        fields = (
            "id",
            "recipe",
            "recipe_code",
            "request",
            "request_code",
            "sample_seq",
            "sample_code",
            "batch_weight_g",
            "notes",
            "status",
            "allowed_next_states",
            "stages",
            "ingredients",
            "created_by",
            "created_at",
            "updated_at",
        )
        read_only_fields = (
            "id",
            "recipe",
            "recipe_code",
            "request",
            "request_code",
            "sample_seq",
            "sample_code",
            "batch_weight_g",
            "status",
            "allowed_next_states",
            "stages",
            "ingredients",
            "created_by",
            "created_at",
            "updated_at",
        )

    def get_allowed_next_states(self, obj: Sample) -> List[str]:
        return allowed_next_states("sample", obj.status)

    def get_stages(self, obj: Sample) -> Dict[str, bool]:
        return sample_stage_progress(obj.status)


class RecalculateSerializer(serializers.Serializer):
    batch_weight_g = serializers.DecimalField(max_digits=12, decimal_places=3)


class SampleCopySerializer(serializers.Serializer):
    batch_weight_g = serializers.DecimalField(max_digits=12, decimal_places=3, required=False)


class LotSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    lot_number = serializers.CharField(max_length=100, allow_blank=True)


class LotListSerializer(serializers.Serializer):
    lots = LotSerializer(many=True)


class HandoffSerializer(serializers.Serializer):
    working_title = serializers.CharField(max_length=255)
    comment = serializers.CharField(required=False, allow_blank=True, default="")


# ===============================================================
# Lab / Pilot results
# ===============================================================

class LabResultsSerializer(serializers.ModelSerializer):
    class Meta:
        model = LabResults
        fields = ("id", "sample", *LabResults.INDICATOR_FIELDS, "created_at", "updated_at")
        read_only_fields = ("id", "sample", "created_at", "updated_at")


class PilotResultsSerializer(serializers.ModelSerializer):
    class Meta:
        model = PilotResults
        fields = (
            "id",
            "sample",
            "tasting_sheet_no",
            "tasting_date",
            "direction",
            "tasting_goal",
            *PilotResults.SCORE_FIELDS,
            "comment",
            "created_at",
            "updated_at",
        )
        read_only_fields = ("id", "sample", "created_at", "updated_at")


# ===============================================================
# Testing samples
# ===============================================================

class TestingSampleSerializer(serializers.ModelSerializer):
    request_code = serializers.CharField(source="request.code", read_only=True)
    sent_by = UserSlimSerializer(read_only=True)
    reviewed_by = UserSlimSerializer(read_only=True)

    class Meta:
        model = TestingSample
        fields = (
            "id",
            "request",
            "request_code",
            "sample",
            "sample_code",
            "recipe_code",
            "working_title",
            "display_name",
            "weight_g",
            "is_quick",
            "status",
            "sent_at",
            "sent_by",
            "reviewed_at",
            "reviewed_by",
            "manager_comment",
        )
        read_only_fields = fields


class TestingResultSerializer(serializers.Serializer):
    result = serializers.ChoiceField(choices=["Approved", "Rejected"])
    comment = serializers.CharField(required=False, allow_blank=True, default="")


# ===============================================================
# UserRole / AuditLog
# ===============================================================

class UserRoleSerializer(serializers.ModelSerializer):
    user_username = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = UserRole
        fields = ("id", "user", "user_username", "role", "created_at", "updated_at")
        read_only_fields = ("id", "user_username", "created_at", "updated_at")


class AuditLogSerializer(serializers.ModelSerializer):
    user_username = serializers.CharField(source="user.username", read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = ("id", "user", "user_username", "action", "details", "created_at")
        read_only_fields = fields
