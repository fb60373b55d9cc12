# rd_core/views.py
from __future__ import annotations

from decimal import Decimal

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .filters import AuditLogFilter, RecipeFilter, RequestFilter, SampleFilter, TestingSampleFilter
from .mixins import AuditUserMixin, _deny_if_payload_has
from .models import AuditLog, Recipe, Request, Sample, TestingSample, UserRole
from .permissions import IsAdminRoleOrReadOnly, IsRoleAllowedOrReadOnly, require_roles
from .serializers import (
    AssignSerializer,
    AuditLogSerializer,
    CommentSerializer,
    HandoffSerializer,
    IngredientListSerializer,
    LabResultsSerializer,
    LotListSerializer,
    NewSampleSerializer,
    PilotResultsSerializer,
    QuickHandoffSerializer,
    RecalculateSerializer,
    RecipeCopySerializer,
    RecipeSerializer,
    RequestEventSerializer,
    RequestSerializer,
    SampleCopySerializer,
    SampleCreateSerializer,
    SampleIngredientSerializer,
    SampleSerializer,
    TestingResultSerializer,
    TestingSampleSerializer,
    UserRoleSerializer,
)
from .services.recipes import copy_recipe, create_recipe, recipe_composition, save_ingredients
from .services.requests import assign_request, create_request, ensure_request_open, update_request_fields
from .services.results import get_lab_results, get_pilot_results, upsert_lab_results, upsert_pilot_results
from .services.samples import copy_sample, create_sample, recalculate_sample, update_lot_numbers
from .services.testing import decline_request_from_testing, handoff_sample, quick_handoff, set_testing_result
from .workflows import ADMIN, RD_ROLES, TESTING_ROLES
from .workflows.sla_scanner import open_alert_for, request_sla_payload


SERVER_CONTROLLED = "This field is server-controlled."
USE_WORKFLOW = "Status changes go through /rd/workflows/<kind>/<pk>/transition/."
USE_ASSIGN = "The responsible person is set through /rd/requests/<id>/assign/."


def _plain(value):
    """
    JSON-friendly copy of service payloads (Decimals as strings, like serializers).
    """
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


# ===============================================================
# Health
# ===============================================================
class HealthCheckView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(tags=["System"])
    def get(self, request):
        return Response({"status": "ok", "service": "RD-Portal"})


# ===============================================================
# Requests
# ===============================================================
class RequestViewSet(AuditUserMixin, viewsets.ModelViewSet):
    queryset = Request.objects.select_related("author", "responsible").all()
    serializer_class = RequestSerializer
    filterset_class = RequestFilter
    permission_classes = [IsRoleAllowedOrReadOnly]

    def perform_create(self, serializer):
        _deny_if_payload_has(
            self.request,
            ["code", "author", "final_product_name", "date_sent_for_test"],
            SERVER_CONTROLLED,
        )
        _deny_if_payload_has(self.request, ["status"], USE_WORKFLOW)
        _deny_if_payload_has(self.request, ["responsible", "responsible_id"], USE_ASSIGN)
        serializer.instance = create_request(user=self.request.user, **serializer.validated_data)

    def perform_update(self, serializer):
        _deny_if_payload_has(
            self.request,
            ["code", "author", "final_product_name", "date_sent_for_test"],
            "This field cannot be modified.",
        )
        _deny_if_payload_has(self.request, ["status"], USE_WORKFLOW)
        _deny_if_payload_has(self.request, ["responsible", "responsible_id"], USE_ASSIGN)

        instance = serializer.instance
        ensure_request_open(instance, "edit it")
        before = {name: getattr(instance, name) for name in serializer.validated_data}
        obj = serializer.save()

        changed = {
            name: (old, getattr(obj, name))
            for name, old in before.items()
            if old != getattr(obj, name)
        }
        update_request_fields(obj, user=self.request.user, changed=changed)

    def perform_destroy(self, instance):
        require_roles(self.request.user, {ADMIN}, "delete requests")
        instance.delete()

    @action(detail=True, methods=["post"])
    def assign(self, request, pk=None):
        obj = self.get_object()
        ser = AssignSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        assign_request(obj, responsible=ser.validated_data["responsible_id"], user=request.user)
        return Response(RequestSerializer(obj, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["post"], url_path="quick-handoff")
    def quick_handoff(self, request, pk=None):
        obj = self.get_object()
        ser = QuickHandoffSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        testing_sample = quick_handoff(
            obj,
            product_name=ser.validated_data["product_name"],
            weight_g=ser.validated_data["weight_g"],
            user=request.user,
        )
        return Response(TestingSampleSerializer(testing_sample).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def decline(self, request, pk=None):
        obj = self.get_object()
        ser = CommentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        decline_request_from_testing(obj, user=request.user, comment=ser.validated_data["comment"])
        return Response(RequestSerializer(obj, context=self.get_serializer_context()).data)

    @action(detail=True, methods=["get"])
    def sla(self, request, pk=None):
        obj = self.get_object()
        payload = request_sla_payload(obj)

        alert = open_alert_for(obj)
        payload["alert"] = (
            {"id": alert.pk, "triggered_at": alert.triggered_at, "overdue_seconds": alert.overdue_seconds}
            if alert
            else None
        )
        return Response({"id": obj.pk, "code": obj.code, "sla": payload})

    @action(detail=True, methods=["get"])
    def events(self, request, pk=None):
        obj = self.get_object()
        return Response(RequestEventSerializer(obj.events.select_related("actor"), many=True).data)


# ===============================================================
# Recipes
# ===============================================================
class RecipeViewSet(AuditUserMixin, viewsets.ModelViewSet):
    queryset = Recipe.objects.select_related("request", "created_by").all()
    serializer_class = RecipeSerializer
    filterset_class = RecipeFilter
    permission_classes = [IsRoleAllowedOrReadOnly]
    write_roles = RD_ROLES

    def perform_create(self, serializer):
        _deny_if_payload_has(self.request, ["recipe_code", "recipe_seq", "created_by"], SERVER_CONTROLLED)
        _deny_if_payload_has(self.request, ["status"], USE_WORKFLOW)

        vd = serializer.validated_data
        serializer.instance = create_recipe(
            vd["request"],
            user=self.request.user,
            name=vd.get("name", ""),
            notes=vd.get("notes", ""),
        )

    def perform_update(self, serializer):
        _deny_if_payload_has(self.request, ["recipe_code", "recipe_seq", "created_by"], "This field cannot be modified.")
        _deny_if_payload_has(self.request, ["status"], USE_WORKFLOW)

        if serializer.instance.status == "Archived":
            raise ValidationError({"status": "Archived recipes cannot be edited."})
        serializer.save()

    def perform_destroy(self, instance):
        if instance.status != "Draft" or instance.samples.exists():
            raise ValidationError({"status": "Only Draft recipes without samples can be deleted."})
        instance.delete()

    @action(detail=True, methods=["post"])
    def copy(self, request, pk=None):
        recipe = self.get_object()
        ser = RecipeCopySerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        copy = copy_recipe(recipe, user=request.user, name=ser.validated_data.get("name"))
        return Response(
            RecipeSerializer(copy, context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get", "put"])
    def ingredients(self, request, pk=None):
        recipe = self.get_object()

        if request.method == "PUT":
            ser = IngredientListSerializer(data=request.data)
            ser.is_valid(raise_exception=True)
            save_ingredients(recipe, [dict(row) for row in ser.validated_data["ingredients"]], user=request.user)

        return Response(_plain(recipe_composition(recipe)))

    @action(detail=True, methods=["get", "post"])
    def samples(self, request, pk=None):
        recipe = self.get_object()
        context = self.get_serializer_context()

        if request.method == "POST":
            ser = NewSampleSerializer(data=request.data)
            ser.is_valid(raise_exception=True)
            sample = create_sample(
                recipe,
                batch_weight_g=ser.validated_data["batch_weight_g"],
                notes=ser.validated_data["notes"],
                user=request.user,
            )
            return Response(SampleSerializer(sample, context=context).data, status=status.HTTP_201_CREATED)

        return Response(SampleSerializer(recipe.samples.all(), many=True, context=context).data)


# ===============================================================
# Samples
# ===============================================================
class SampleViewSet(AuditUserMixin, viewsets.ModelViewSet):
    queryset = Sample.objects.select_related("recipe", "request", "created_by").all()
    serializer_class = SampleSerializer
    filterset_class = SampleFilter
    permission_classes = [IsRoleAllowedOrReadOnly]
    write_roles = RD_ROLES

    def create(self, request, *args, **kwargs):
        ser = SampleCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        sample = create_sample(
            ser.validated_data["recipe"],
            batch_weight_g=ser.validated_data["batch_weight_g"],
            notes=ser.validated_data["notes"],
            user=request.user,
        )
        return Response(
            SampleSerializer(sample, context=self.get_serializer_context()).data,
            status=status.HTTP_201_CREATED,
        )

    def perform_update(self, serializer):
        _deny_if_payload_has(
            self.request,
            ["recipe", "request", "sample_code", "sample_seq", "created_by"],
            "This field cannot be modified.",
        )
        _deny_if_payload_has(self.request, ["batch_weight_g"], "Use /recalculate/ to change the batch weight.")
        _deny_if_payload_has(self.request, ["status"], USE_WORKFLOW)
        serializer.save()

    def perform_destroy(self, instance):
        if instance.status != "Draft":
            raise ValidationError({"status": "Only Draft samples can be deleted; archive it instead."})
        instance.delete()

    def _sample_response(self, sample, code=status.HTTP_200_OK):
        return Response(SampleSerializer(sample, context=self.get_serializer_context()).data, status=code)

    @action(detail=True, methods=["post"])
    def recalculate(self, request, pk=None):
        sample = self.get_object()
        ser = RecalculateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        recalculate_sample(sample, batch_weight_g=ser.validated_data["batch_weight_g"], user=request.user)
        return self._sample_response(sample)

    @action(detail=True, methods=["post"])
    def copy(self, request, pk=None):
        sample = self.get_object()
        ser = SampleCopySerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        copy = copy_sample(sample, user=request.user, batch_weight_g=ser.validated_data.get("batch_weight_g"))
        return self._sample_response(copy, status.HTTP_201_CREATED)

    @action(detail=True, methods=["put"])
    def lots(self, request, pk=None):
        sample = self.get_object()
        ser = LotListSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        rows = update_lot_numbers(sample, [dict(item) for item in ser.validated_data["lots"]], user=request.user)
        return Response(SampleIngredientSerializer(rows, many=True).data)

    @action(detail=True, methods=["get", "put"], url_path="lab-results")
    def lab_results(self, request, pk=None):
        sample = self.get_object()

        if request.method == "PUT":
            ser = LabResultsSerializer(data=request.data, partial=True)
            ser.is_valid(raise_exception=True)
            return Response(LabResultsSerializer(upsert_lab_results(sample, ser.validated_data, user=request.user)).data)

        lab = get_lab_results(sample)
        if lab is None:
            raise NotFound("No lab results recorded for this sample.")
        return Response(LabResultsSerializer(lab).data)

    @action(detail=True, methods=["get", "put"], url_path="pilot-results")
    def pilot_results(self, request, pk=None):
        sample = self.get_object()

        if request.method == "PUT":
            ser = PilotResultsSerializer(data=request.data, partial=True)
            ser.is_valid(raise_exception=True)
            return Response(PilotResultsSerializer(upsert_pilot_results(sample, ser.validated_data, user=request.user)).data)

        pilot = get_pilot_results(sample)
        if pilot is None:
            raise NotFound("No pilot results recorded for this sample.")
        return Response(PilotResultsSerializer(pilot).data)

    @action(detail=True, methods=["post"])
    def handoff(self, request, pk=None):
        sample = self.get_object()
        ser = HandoffSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        testing_sample = handoff_sample(
            sample,
            working_title=ser.validated_data["working_title"],
            comment=ser.validated_data["comment"],
            user=request.user,
        )
        return Response(TestingSampleSerializer(testing_sample).data, status=status.HTTP_201_CREATED)


# ===============================================================
# Testing samples
# ===============================================================
class TestingSampleViewSet(AuditUserMixin, viewsets.ReadOnlyModelViewSet):
    queryset = TestingSample.objects.select_related("request", "sample", "sent_by", "reviewed_by").all()
    serializer_class = TestingSampleSerializer
    filterset_class = TestingSampleFilter
    permission_classes = [IsRoleAllowedOrReadOnly]
    write_roles = TESTING_ROLES

    @action(detail=True, methods=["post"])
    def result(self, request, pk=None):
        testing_sample = self.get_object()
        ser = TestingResultSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        set_testing_result(
            testing_sample,
            result=ser.validated_data["result"],
            comment=ser.validated_data["comment"],
            user=request.user,
        )
        return Response(TestingSampleSerializer(testing_sample).data)


# ===============================================================
# Roles
# ===============================================================
class UserRoleViewSet(AuditUserMixin, viewsets.ModelViewSet):
    queryset = UserRole.objects.select_related("user").all().order_by("user__username", "role")
    serializer_class = UserRoleSerializer
    permission_classes = [IsAdminRoleOrReadOnly]
    filterset_fields = ["user", "role"]


# ===============================================================
# Audit logs (READ-ONLY)
# ===============================================================
class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    queryset = AuditLog.objects.select_related("user").all()
    serializer_class = AuditLogSerializer
    filterset_class = AuditLogFilter
