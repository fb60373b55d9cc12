# rd_core/workflows/guards.py

from decimal import Decimal

from django.apps import apps
from django.core.exceptions import PermissionDenied
from django.db import models

from rd_core.workflows import REQUEST_CLOSED_STATUSES


class WorkflowGuardError(ValueError):
    """
    A legal transition whose preconditions are not met by the object's data
    (missing ingredients, empty lab results, closed request...).
    """


class WorkflowWriteGuardMixin(models.Model):
    """
    Prevent direct modification of workflow-controlled fields outside the workflow engine.

    Models inheriting this mixin must transition via the workflow executor.
    Direct .save() changes to WORKFLOW_FIELD are blocked.

    Escape hatch:
      - pass _workflow_bypass=True to save(), OR
      - set instance._workflow_bypass = True
    Use sparingly (tests, data fixes, admin repair scripts).
    """

    WORKFLOW_FIELD = "status"
    WORKFLOW_BYPASS_KWARG = "_workflow_bypass"

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        bypass = bool(
            kwargs.pop(self.WORKFLOW_BYPASS_KWARG, False)
            or getattr(self, "_workflow_bypass", False)
        )

        if not bypass and self.pk is not None and self.WORKFLOW_FIELD:
            old = (
                self.__class__.objects.filter(pk=self.pk)
                .values_list(self.WORKFLOW_FIELD, flat=True)
                .first()
            )
            new = getattr(self, self.WORKFLOW_FIELD, None)

            if old is not None and old != new:
                raise PermissionDenied(
                    f"Direct modification of '{self.WORKFLOW_FIELD}' is forbidden. "
                    "Use workflow transition APIs."
                )

        return super().save(*args, **kwargs)


# ===============================================================
# Status guards
# ===============================================================

# Sample states in which R&D is still working on the sample.
_SAMPLE_RD_STATES = {
    "Draft",
    "Prepared",
    "Lab",
    "LabDone",
    "Pilot",
    "PilotDone",
    "ReadyForHandoff",
}


def _stored(model_label: str, **lookup):
    # read from the table, never from a relation cached on the instance
    return apps.get_model("rd_core", model_label).objects.filter(**lookup).first()


def _ingredient_total(queryset, field: str) -> Decimal:
    total = Decimal("0")
    for value in queryset.values_list(field, flat=True):
        total += value or Decimal("0")
    return total


def _require_open_request(request_obj, what: str) -> None:
    if request_obj is not None and request_obj.status in REQUEST_CLOSED_STATUSES:
        raise WorkflowGuardError(
            f"Request {request_obj.code} is closed ({request_obj.status}); {what} cannot change."
        )


def _sample_guards(sample, current: str, target: str) -> None:
    if current in _SAMPLE_RD_STATES and target != "Archived":
        _require_open_request(sample.recipe.request, "its samples")

    if current == "Draft" and target == "Prepared":
        if not sample.batch_weight_g or sample.batch_weight_g <= 0:
            raise WorkflowGuardError("Batch weight must be greater than 0.")
        if not sample.ingredients.exists():
            raise WorkflowGuardError("Sample has no ingredients.")

    elif current == "Lab" and target == "LabDone":
        lab = _stored("LabResults", sample=sample)
        if lab is None or not lab.has_any_indicator():
            raise WorkflowGuardError("Lab results must have at least one filled indicator.")

    elif current == "Pilot" and target == "PilotDone":
        pilot = _stored("PilotResults", sample=sample)
        if pilot is None or not pilot.has_valid_overall_score():
            raise WorkflowGuardError("Pilot results need an overall score between 1 and 10.")

    elif target == "HandedOff":
        if not sample.testing_samples.filter(status="Sent").exists():
            raise WorkflowGuardError("Samples are handed off through the handoff endpoint, which opens a testing sample.")

    elif target == "Testing":
        if not sample.testing_samples.exists():
            raise WorkflowGuardError("Sample has no testing sample; it was not handed off.")

    elif current == "Testing" and target in ("Approved", "Rejected"):
        if not sample.testing_samples.filter(status=target).exists():
            raise WorkflowGuardError(
                f"The customer's verdict is recorded on the testing sample; none is {target} for this sample."
            )


def _recipe_guards(recipe, current: str, target: str) -> None:
    if target == "Locked":
        _require_open_request(recipe.request, "its recipes")
        if _ingredient_total(recipe.ingredients.all(), "grams") <= 0:
            raise WorkflowGuardError("Recipe needs ingredients with a positive total weight to be locked.")


def _request_guards(request_obj, current: str, target: str) -> None:
    testing = request_obj.testing_samples

    if target == "SENT_FOR_TEST" and not testing.filter(status="Sent").exists():
        raise WorkflowGuardError("Nothing has been handed off to the customer for testing.")

    if target == "APPROVED_FOR_PRODUCTION" and not testing.filter(status="Approved").exists():
        raise WorkflowGuardError("Production approval requires an approved testing sample.")

    if target == "REJECTED_BY_CLIENT" and testing.filter(status="Sent").exists():
        raise WorkflowGuardError("Testing samples are still awaiting a verdict; decline the request instead.")


_GUARDS = {
    "sample": _sample_guards,
    "recipe": _recipe_guards,
    "request": _request_guards,
}


def check_transition_guards(kind: str, instance, current: str, target: str) -> None:
    """
    Raise WorkflowGuardError when the object's data does not allow current -> target.
    Edge legality and roles are checked separately.
    """
    guard = _GUARDS.get(kind)
    if guard is not None and current != target:
        guard(instance, current, target)
