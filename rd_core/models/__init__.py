from .core import (
    TimeStampedModel,
    UserRole,
    Request,
    RequestEvent,
    Recipe,
    RecipeIngredient,
    Sample,
    SampleIngredient,
    TestingSample,
    AuditLog,
)
from .results import LabResults, PilotResults
from .workflow_event import WorkflowTransition
from .workflow_alert import WorkflowAlert

__all__ = [
    "TimeStampedModel",
    "UserRole",
    "Request",
    "RequestEvent",
    "Recipe",
    "RecipeIngredient",
    "Sample",
    "SampleIngredient",
    "TestingSample",
    "AuditLog",
    "LabResults",
    "PilotResults",
    "WorkflowTransition",
    "WorkflowAlert",
]
