from django.conf import settings
from django.db import models


class WorkflowAlert(models.Model):
    """
    Raised once per (object, state) when a request stays in a state past its SLA date.
    """

    kind = models.CharField(max_length=32)
    object_id = models.PositiveIntegerField()

    state = models.CharField(max_length=32)
    sla_date = models.DateTimeField()
    overdue_seconds = models.PositiveIntegerField(default=0)
    duration_seconds = models.PositiveIntegerField(default=0)

    triggered_at = models.DateTimeField(auto_now_add=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )

    class Meta:
        unique_together = ("kind", "object_id", "state")
        ordering = ("-triggered_at",)

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None

    def __str__(self):
        return f"{self.kind}:{self.object_id} {self.state} SLA BREACH"
