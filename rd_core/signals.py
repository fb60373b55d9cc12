# rd_core/signals.py
from __future__ import annotations

from threading import local

from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver

from rd_core.models import (
    AuditLog,
    Request,
    Recipe,
    Sample,
    TestingSample,
    UserRole,
    WorkflowTransition,
)

AUDITED_MODELS = {Request, Recipe, Sample, TestingSample, UserRole}

# ===============================================================
# Thread-local user storage
# ===============================================================
_state = local()


def set_current_user(user):
    _state.user = user


def get_current_user():
    return getattr(_state, "user", None)


# ===============================================================
# Utilities
# ===============================================================
def _label(instance) -> str:
    for attr in ("sample_code", "recipe_code", "code"):
        value = getattr(instance, attr, None)
        if value:
            return value
    return str(instance.pk)


def _log(action: str, instance, **extra):
    user = get_current_user()
    model = instance.__class__.__name__

    AuditLog.objects.create(
        user=user if user and user.is_authenticated else None,
        action=f"{action} {model} {_label(instance)}",
        details={"model": model, "object_id": instance.pk, **extra},
    )


# ===============================================================
# CREATE / UPDATE audit (core domain objects)
# ===============================================================
@receiver(post_save)
def audit_create_update(sender, instance, created, **kwargs):
    if sender not in AUDITED_MODELS:
        return

    if created:
        _log("CREATE", instance)
        return

    fields = kwargs.get("update_fields")
    _log("UPDATE", instance, fields=sorted(fields) if fields else None)


# ===============================================================
# DELETE audit (core domain objects)
# ===============================================================
@receiver(post_delete)
def audit_delete(sender, instance, **kwargs):
    if sender not in AUDITED_MODELS:
        return

    _log("DELETE", instance)


# ===============================================================
# WORKFLOW TRANSITIONS
# ===============================================================
@receiver(post_save, sender=WorkflowTransition)
def audit_workflow_transition(sender, instance: WorkflowTransition, created: bool, **kwargs):
    """
    Mirror every executed transition into the audit log.
    Runs inside the executor's transaction.
    """
    if not created:
        return

    AuditLog.objects.create(
        user=instance.performed_by,
        action=(
            f"WORKFLOW {instance.kind.upper()} {instance.object_id}: "
            f"{instance.from_status} -> {instance.to_status}"
        ),
        details={
            "kind": instance.kind,
            "object_id": instance.object_id,
            "from": instance.from_status,
            "to": instance.to_status,
            "role": instance.role,
            "comment": instance.comment,
        },
    )
