# rd_core/admin.py

from django.contrib import admin
from django.utils.html import format_html

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
    WorkflowAlert,
    WorkflowTransition,
)


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# =============================================================
# Workflow transitions (READ-ONLY AUDIT LOG)
# =============================================================

@admin.register(WorkflowTransition)
class WorkflowTransitionAdmin(ReadOnlyAdmin):
    list_display = (
        "kind",
        "object_id",
        "from_status",
        "to_status",
        "performed_by",
        "role",
        "created_at",
    )
    list_filter = ("kind", "from_status", "to_status")
    search_fields = ("object_id", "performed_by__username")
    ordering = ("-created_at",)


# =============================================================
# Workflow SLA alerts (READ-ONLY)
# =============================================================

@admin.register(WorkflowAlert)
class WorkflowAlertAdmin(ReadOnlyAdmin):
    list_display = (
        "kind",
        "object_id",
        "state",
        "state_badge",
        "sla_date",
        "overdue_seconds",
        "triggered_at",
        "resolved_at",
    )
    list_filter = ("kind", "state")
    search_fields = ("object_id", "state")
    ordering = ("-triggered_at",)

    def state_badge(self, obj):
        if obj.resolved_at:
            return format_html('<span style="color:#2e7d32;font-weight:bold;">RESOLVED</span>')
        return format_html('<span style="color:#c62828;font-weight:bold;">OVERDUE</span>')

    state_badge.short_description = "SLA"


# =============================================================
# Requests
# =============================================================

class RequestEventInline(admin.TabularInline):
    model = RequestEvent
    extra = 0
    can_delete = False
    readonly_fields = ("event_type", "actor", "payload", "created_at")


@admin.register(Request)
class RequestAdmin(admin.ModelAdmin):
    list_display = ("code", "customer_company", "direction", "complexity_level", "status", "responsible")
    list_filter = ("status", "direction", "domain", "complexity_level")
    search_fields = ("code", "customer_company", "final_product_name")
    readonly_fields = ("code", "status", "date_sent_for_test", "created_at", "updated_at")
    inlines = [RequestEventInline]


# =============================================================
# Recipes / Samples
# =============================================================

class RecipeIngredientInline(admin.TabularInline):
    model = RecipeIngredient
    extra = 0


@admin.register(Recipe)
class RecipeAdmin(admin.ModelAdmin):
    list_display = ("recipe_code", "name", "status", "created_by", "created_at")
    list_filter = ("status",)
    search_fields = ("recipe_code", "name")
    readonly_fields = ("recipe_code", "recipe_seq", "status")
    inlines = [RecipeIngredientInline]


class SampleIngredientInline(admin.TabularInline):
    model = SampleIngredient
    extra = 0
    readonly_fields = ("ingredient_name", "recipe_grams", "required_grams")


@admin.register(Sample)
class SampleAdmin(admin.ModelAdmin):
    list_display = ("sample_code", "batch_weight_g", "status", "created_by", "created_at")
    list_filter = ("status",)
    search_fields = ("sample_code",)
    readonly_fields = ("sample_code", "sample_seq", "status", "batch_weight_g")
    inlines = [SampleIngredientInline]


@admin.register(LabResults)
class LabResultsAdmin(admin.ModelAdmin):
    list_display = ("sample", "ph_value", "moisture_pct", "updated_at")
    search_fields = ("sample__sample_code",)


@admin.register(PilotResults)
class PilotResultsAdmin(admin.ModelAdmin):
    list_display = ("sample", "tasting_sheet_no", "tasting_date", "score_overall")
    search_fields = ("sample__sample_code", "tasting_sheet_no")


@admin.register(TestingSample)
class TestingSampleAdmin(admin.ModelAdmin):
    list_display = ("display_name", "request", "status", "sent_at", "reviewed_at")
    list_filter = ("status", "is_quick")
    search_fields = ("sample_code", "working_title")
    readonly_fields = ("status", "sent_at", "sent_by", "reviewed_at", "reviewed_by")


# =============================================================
# Roles / Audit
# =============================================================

@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ("user", "role", "created_at")
    list_filter = ("role",)
    search_fields = ("user__username",)


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdmin):
    list_display = ("action", "user", "created_at")
    search_fields = ("action", "user__username")
    ordering = ("-created_at",)
