from django.conf import settings
from django.db import models


class WorkflowTransition(models.Model):
    """
    Immutable timeline row for every workflow status change.
    """

    KIND_CHOICES = (
        ("request", "Request"),
        ("recipe", "Recipe"),
        ("sample", "Sample"),
    )

    kind = models.CharField(max_length=32, choices=KIND_CHOICES)

    object_id = models.PositiveIntegerField()
    from_status = models.CharField(max_length=50)
    to_status = models.CharField(max_length=50)

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="workflow_transitions",
    )

    role = models.CharField(max_length=64, blank=True)

    comment = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["kind", "object_id"], name="rd_wftransition_obj_idx"),
        ]

    def __str__(self):
        return (
            f"{self.kind}:{self.object_id} "
            f"{self.from_status} -> {self.to_status}"
        )
