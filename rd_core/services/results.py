# rd_core/services/results.py

from __future__ import annotations

from typing import Mapping, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from rd_core.codes import format_tasting_sheet_no, next_seq
from rd_core.models import LabResults, PilotResults, Sample
from rd_core.permissions import require_roles
from rd_core.workflows import RD_ROLES

LAB_FIELDS = set(LabResults.INDICATOR_FIELDS)

PILOT_FIELDS = {
    "tasting_sheet_no",
    "tasting_date",
    "direction",
    "tasting_goal",
    "comment",
    *PilotResults.SCORE_FIELDS,
}


def next_tasting_sheet_no(year: int) -> str:
    prefix = format_tasting_sheet_no(year, 0)[:-4]
    existing = PilotResults.objects.filter(tasting_sheet_no__startswith=prefix).values_list(
        "tasting_sheet_no", flat=True
    )

    seqs = []
    for value in existing:
        tail = value[len(prefix):]
        if tail.isdigit():
            seqs.append(int(tail))
    return format_tasting_sheet_no(year, next_seq(seqs))


def start_lab_results(sample: Sample) -> LabResults:
    lab, _ = LabResults.objects.get_or_create(sample=sample)
    return lab


def start_pilot_results(sample: Sample) -> PilotResults:
    """
    Tasting sheet TS-<year>-<NNNN> dated today, created on entering Pilot.
    """
    today = timezone.localdate()
    pilot, _ = PilotResults.objects.get_or_create(
        sample=sample,
        defaults={
            "tasting_sheet_no": next_tasting_sheet_no(today.year),
            "tasting_date": today,
            "direction": sample.request.direction,
        },
    )
    return pilot


def get_lab_results(sample: Sample) -> Optional[LabResults]:
    return LabResults.objects.filter(sample=sample).first()


def get_pilot_results(sample: Sample) -> Optional[PilotResults]:
    return PilotResults.objects.filter(sample=sample).first()


def lab_results_valid(sample: Sample) -> bool:
    lab = get_lab_results(sample)
    return lab is not None and lab.has_any_indicator()


def pilot_results_valid(sample: Sample) -> bool:
    pilot = get_pilot_results(sample)
    return pilot is not None and pilot.has_valid_overall_score()


def _apply(obj, data: Mapping, allowed: set) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValidationError({f: "Unknown or read-only field." for f in unknown})

    for name, value in data.items():
        field = obj._meta.get_field(name)
        if value is None and not field.null:
            value = ""
        setattr(obj, name, value)

    try:
        obj.full_clean(exclude=["sample"])
    except DjangoValidationError as e:
        raise ValidationError(e.message_dict)


@transaction.atomic
def upsert_lab_results(sample: Sample, data: Mapping, *, user) -> LabResults:
    """
    Create or update lab results. Only while the sample is in Lab.
    """
    require_roles(user, RD_ROLES, "record lab results")
    if sample.status != "Lab":
        raise ValidationError({"status": f"Lab results can only be recorded in Lab (sample is {sample.status})."})

    lab = start_lab_results(sample)
    _apply(lab, data, LAB_FIELDS)
    lab.save()
    return lab


@transaction.atomic
def upsert_pilot_results(sample: Sample, data: Mapping, *, user) -> PilotResults:
    """
    Create or update the tasting sheet. Only while the sample is in Pilot.
    """
    require_roles(user, RD_ROLES, "record pilot results")
    if sample.status != "Pilot":
        raise ValidationError({"status": f"Pilot results can only be recorded in Pilot (sample is {sample.status})."})

    pilot = start_pilot_results(sample)

    _apply(pilot, data, PILOT_FIELDS)
    pilot.save()
    return pilot
