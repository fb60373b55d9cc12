# rd_core/models/core.py

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from rd_core.workflows import REQUEST_CLOSED_STATUSES
from rd_core.workflows.guards import WorkflowWriteGuardMixin


# ============================================================
# Base
# ============================================================
class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# ============================================================
# User Roles
# ============================================================
class UserRole(TimeStampedModel):
    ROLE_CHOICES = [
        ("SALES_MANAGER", "Sales manager"),
        ("RD_DEV", "R&D developer"),
        ("RD_MANAGER", "R&D manager"),
        ("ADMIN", "Administrator"),
        ("READONLY", "Read only"),
    ]

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="rd_roles",
    )
    role = models.CharField(max_length=32, choices=ROLE_CHOICES)

    class Meta:
        unique_together = ("user", "role")

    def __str__(self):
        return f"{self.user.username} - {self.role}"


# ============================================================
# Request
# ============================================================
class Request(WorkflowWriteGuardMixin, TimeStampedModel):
    WORKFLOW_FIELD = "status"

    DIRECTION_CHOICES = [
        ("FUNCTIONAL", "Functional"),
        ("FLAVOR", "Flavor"),
        ("COLORANT", "Colorant"),
        ("COMPLEX", "Complex"),
    ]

    DOMAIN_CHOICES = [
        ("MEAT", "Meat"),
        ("CONFECTIONERY", "Confectionery"),
        ("DAIRY", "Dairy"),
        ("BAKERY", "Bakery"),
        ("FISH", "Fish"),
        ("FATS_OILS", "Fats and oils"),
        ("ICE_CREAM", "Ice cream"),
        ("SEMI_FINISHED", "Semi-finished"),
        ("SNACKS", "Snacks"),
    ]

    PRIORITY_CHOICES = [
        ("LOW", "Low"),
        ("MEDIUM", "Medium"),
        ("HIGH", "High"),
    ]

    COMPLEXITY_CHOICES = [
        ("EASY", "Easy"),
        ("MEDIUM", "Medium"),
        ("COMPLEX", "Complex"),
        ("EXPERT", "Expert"),
    ]

    STATUS_CHOICES = [
        ("PENDING", "Pending"),
        ("IN_PROGRESS", "In progress"),
        ("SENT_FOR_TEST", "Sent for test"),
        ("APPROVED_FOR_PRODUCTION", "Approved for production"),
        ("REJECTED_BY_CLIENT", "Rejected by client"),
        ("CANCELLED", "Cancelled"),
    ]

    code = models.CharField(max_length=32, unique=True, editable=False)

    customer_company = models.CharField(max_length=255)
    customer_contact = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)

    direction = models.CharField(max_length=20, choices=DIRECTION_CHOICES)
    domain = models.CharField(max_length=20, choices=DOMAIN_CHOICES, blank=True)
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default="MEDIUM")
    complexity_level = models.CharField(
        max_length=10,
        choices=COMPLEXITY_CHOICES,
        null=True,
        blank=True,
    )

    status = models.CharField(
        max_length=32,
        choices=STATUS_CHOICES,
        default="PENDING",
        editable=False,
    )

    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="authored_requests",
    )
    responsible = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="responsible_requests",
    )

    rd_comment = models.TextField(blank=True)
    customer_feedback = models.TextField(blank=True)
    final_product_name = models.CharField(max_length=255, blank=True)

    desired_due_date = models.DateField(null=True, blank=True)
    date_sent_for_test = models.DateField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    @property
    def is_closed(self) -> bool:
        return self.status in REQUEST_CLOSED_STATUSES

    def __str__(self):
        return f"{self.code} - {self.customer_company}"


class RequestEvent(models.Model):
    """
    Append-only request history. STATUS_CHANGED payloads carry {"from", "to"}.
    """

    EVENT_TYPES = [
        ("CREATED", "Created"),
        ("ASSIGNED", "Assigned"),
        ("STATUS_CHANGED", "Status changed"),
        ("FEEDBACK_ADDED", "Feedback added"),
        ("FIELD_UPDATED", "Field updated"),
        ("SENT_FOR_TEST", "Sent for test"),
        ("PRODUCTION_SET", "Production set"),
        ("FEEDBACK_PROVIDED", "Feedback provided"),
    ]

    request = models.ForeignKey(
        Request,
        on_delete=models.CASCADE,
        related_name="events",
    )
    event_type = models.CharField(max_length=32, choices=EVENT_TYPES)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="request_events",
    )
    payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["request", "event_type"], name="rd_reqevent_type_idx"),
        ]

    def __str__(self):
        return f"{self.request.code} {self.event_type}"


# ============================================================
# Recipe
# ============================================================
class Recipe(WorkflowWriteGuardMixin, TimeStampedModel):
    WORKFLOW_FIELD = "status"

    STATUS_CHOICES = [
        ("Draft", "Draft"),
        ("Locked", "Locked"),
        ("Archived", "Archived"),
    ]

    request = models.ForeignKey(
        Request,
        on_delete=models.CASCADE,
        related_name="recipes",
    )
    recipe_seq = models.PositiveIntegerField(editable=False)
    recipe_code = models.CharField(max_length=40, unique=True, editable=False)
    name = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)

    status = models.CharField(
        max_length=16,
        choices=STATUS_CHOICES,
        default="Draft",
        editable=False,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rd_recipes",
    )

    class Meta:
        unique_together = ("request", "recipe_seq")
        ordering = ["request_id", "recipe_seq"]

    def __str__(self):
        return self.recipe_code


class RecipeIngredient(models.Model):
    recipe = models.ForeignKey(
        Recipe,
        on_delete=models.CASCADE,
        related_name="ingredients",
    )
    ingredient_name = models.CharField(max_length=255)
    grams = models.DecimalField(max_digits=12, decimal_places=3)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]

    def clean(self):
        if self.grams is not None and self.grams <= 0:
            raise ValidationError("Ingredient grams must be greater than 0.")

    def __str__(self):
        return f"{self.ingredient_name} {self.grams} g"


# ============================================================
# Sample
# ============================================================
class Sample(WorkflowWriteGuardMixin, TimeStampedModel):
    WORKFLOW_FIELD = "status"

    STATUS_CHOICES = [
        ("Draft", "Draft"),
        ("Prepared", "Prepared"),
        ("Lab", "Lab"),
        ("LabDone", "Lab done"),
        ("Pilot", "Pilot"),
        ("PilotDone", "Pilot done"),
        ("ReadyForHandoff", "Ready for handoff"),
        ("HandedOff", "Handed off"),
        ("Testing", "Testing"),
        ("Approved", "Approved"),
        ("Rejected", "Rejected"),
        ("Archived", "Archived"),
    ]

    recipe = models.ForeignKey(
        Recipe,
        on_delete=models.CASCADE,
        related_name="samples",
    )
    request = models.ForeignKey(
        Request,
        on_delete=models.CASCADE,
        related_name="samples",
        editable=False,
    )

    sample_seq = models.PositiveIntegerField(editable=False)
    sample_code = models.CharField(max_length=48, unique=True, editable=False)
    batch_weight_g = models.DecimalField(max_digits=12, decimal_places=3)
    notes = models.TextField(blank=True)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default="Draft",
        editable=False,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rd_samples",
    )

    class Meta:
        unique_together = ("recipe", "sample_seq")
        ordering = ["recipe_id", "sample_seq"]

    def clean(self):
        if self.recipe_id and self.request_id and self.recipe.request_id != self.request_id:
            raise ValidationError("Sample request must match recipe request.")

    def __str__(self):
        return self.sample_code


class SampleIngredient(models.Model):
    sample = models.ForeignKey(
        Sample,
        on_delete=models.CASCADE,
        related_name="ingredients",
    )
    ingredient_name = models.CharField(max_length=255)
    recipe_grams = models.DecimalField(max_digits=12, decimal_places=3)
    required_grams = models.DecimalField(max_digits=12, decimal_places=3)
    lot_number = models.CharField(max_length=100, blank=True)
    sort_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]

    def __str__(self):
        return f"{self.ingredient_name} {self.required_grams} g"


# ============================================================
# Testing Sample
# ============================================================
class TestingSample(TimeStampedModel):
    """
    What the sales manager hands to the customer. Created at handoff; quick
    handoffs have no development sample behind them.
    """

    # not a pytest test class
    __test__ = False

    STATUS_CHOICES = [
        ("Sent", "Sent"),
        ("Approved", "Approved"),
        ("Rejected", "Rejected"),
    ]

    request = models.ForeignKey(
        Request,
        on_delete=models.CASCADE,
        related_name="testing_samples",
    )
    sample = models.ForeignKey(
        Sample,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="testing_samples",
    )

    sample_code = models.CharField(max_length=48)
    recipe_code = models.CharField(max_length=40, blank=True)
    working_title = models.CharField(max_length=255)
    display_name = models.CharField(max_length=320)
    weight_g = models.DecimalField(max_digits=12, decimal_places=3, null=True, blank=True)
    is_quick = models.BooleanField(default=False)

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default="Sent")

    sent_at = models.DateTimeField(null=True, blank=True)
    sent_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_testing_samples",
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_testing_samples",
    )
    manager_comment = models.TextField(blank=True)

    class Meta:
        ordering = ["-sent_at", "-id"]

    def __str__(self):
        return self.display_name


# ============================================================
# Audit Log
# ============================================================
class AuditLog(TimeStampedModel):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    action = models.CharField(max_length=255)
    details = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.action
