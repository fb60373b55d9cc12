# rd_core/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    AuditLogViewSet,
    HealthCheckView,
    RecipeViewSet,
    RequestViewSet,
    SampleViewSet,
    TestingSampleViewSet,
    UserRoleViewSet,
)
from .views_identity import WhoAmIView
from .views_workflow_api import WorkflowAllowedView, WorkflowTransitionView
from .views_workflow_runtime import WorkflowTimelineView
from .views_workflows import WorkflowDefinitionView, WorkflowNextStatesView

app_name = "rd_core"

router = DefaultRouter()
router.register(r"requests", RequestViewSet, basename="request")
router.register(r"recipes", RecipeViewSet, basename="recipe")
router.register(r"samples", SampleViewSet, basename="sample")
router.register(r"testing-samples", TestingSampleViewSet, basename="testingsample")
router.register(r"roles", UserRoleViewSet, basename="role")
router.register(r"audit-logs", AuditLogViewSet, basename="auditlog")

workflow_patterns = [
    # static metadata
    path("<str:kind>/", WorkflowDefinitionView.as_view(), name="workflow-definition"),
    path("<str:kind>/next/", WorkflowNextStatesView.as_view(), name="workflow-next-states"),
    # one object
    path("<str:kind>/<int:pk>/allowed/", WorkflowAllowedView.as_view(), name="workflow-allowed"),
    path("<str:kind>/<int:pk>/transition/", WorkflowTransitionView.as_view(), name="workflow-transition"),
    path("<str:kind>/<int:pk>/timeline/", WorkflowTimelineView.as_view(), name="workflow-timeline"),
]

urlpatterns = [
    path("", include(router.urls)),
    path("health/", HealthCheckView.as_view(), name="health_check"),
    path("whoami/", WhoAmIView.as_view(), name="whoami"),
    path("workflows/", include(workflow_patterns)),
]
