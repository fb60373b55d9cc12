# rd_core/services/samples.py

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping

from django.db import transaction
from rest_framework.exceptions import ValidationError

from rd_core.codes import format_sample_code, next_seq
from rd_core.models import Recipe, Sample, SampleIngredient
from rd_core.permissions import require_roles
from rd_core.scaling import IngredientRow, ScalingError, rescale, scale_ingredients, to_decimal
from rd_core.services.requests import ensure_request_open
from rd_core.workflows import RD_ROLES
from rd_core.workflows.executor import execute_transition

logger = logging.getLogger(__name__)


def _ensure_draft(sample: Sample, action: str) -> None:
    if sample.status != "Draft":
        raise ValidationError(
            {"status": f"Sample {sample.sample_code} is {sample.status}; only Draft samples can {action}."}
        )


def _batch_weight(value):
    try:
        weight = to_decimal(value, field="batch_weight_g")
    except ScalingError as e:
        raise ValidationError({"batch_weight_g": str(e)})
    if weight <= 0:
        raise ValidationError({"batch_weight_g": "Batch weight must be greater than 0."})
    return weight


def _allocate_sample(recipe: Recipe, *, user, batch_weight_g, notes: str) -> Sample:
    # lock the parent recipe so concurrent creators cannot collide on sample_seq
    locked = Recipe.objects.select_for_update().select_related("request").get(pk=recipe.pk)
    seq = next_seq(locked.samples.values_list("sample_seq", flat=True))

    return Sample.objects.create(
        recipe=locked,
        request=locked.request,
        sample_seq=seq,
        sample_code=format_sample_code(locked.recipe_code, seq),
        batch_weight_g=batch_weight_g,
        notes=notes or "",
        created_by=user,
    )


def _write_rows(sample: Sample, scaled) -> None:
    SampleIngredient.objects.bulk_create(
        [
            SampleIngredient(
                sample=sample,
                ingredient_name=row.name,
                recipe_grams=row.recipe_grams,
                required_grams=row.required_grams,
                lot_number=row.lot_number or "",
                sort_order=row.sort_order,
            )
            for row in scaled
        ]
    )


def _sample_rows(sample: Sample) -> List[IngredientRow]:
    return [
        IngredientRow(
            name=row.ingredient_name,
            grams=row.recipe_grams,
            sort_order=row.sort_order,
            lot_number=row.lot_number,
        )
        for row in sample.ingredients.all()
    ]


@transaction.atomic
def create_sample(recipe: Recipe, *, batch_weight_g, user, notes: str = "") -> Sample:
    """
    Draft sample of a Locked recipe, ingredients scaled to batch_weight_g.
    """
    require_roles(user, RD_ROLES, "create samples")
    ensure_request_open(recipe.request, "add samples")

    if recipe.status != "Locked":
        raise ValidationError(
            {"recipe": f"Recipe {recipe.recipe_code} is {recipe.status}; samples need a Locked recipe."}
        )

    weight = _batch_weight(batch_weight_g)
    rows = [
        IngredientRow(name=r.ingredient_name, grams=r.grams, sort_order=r.sort_order)
        for r in recipe.ingredients.all()
    ]
    try:
        scaled = scale_ingredients(rows, weight)
    except ScalingError as e:
        raise ValidationError({"recipe": str(e)})

    sample = _allocate_sample(recipe, user=user, batch_weight_g=weight, notes=notes)
    _write_rows(sample, scaled)

    logger.info("Sample %s created at %s g by %s", sample.sample_code, weight, user.username)
    return sample


@transaction.atomic
def recalculate_sample(sample: Sample, *, batch_weight_g, user) -> Sample:
    """
    Change the batch weight of a Draft sample and rescale its rows.
    Recipe grams and lot numbers are kept.
    """
    require_roles(user, RD_ROLES, "edit samples")
    _ensure_draft(sample, "be recalculated")

    weight = _batch_weight(batch_weight_g)
    rows = list(sample.ingredients.all())
    try:
        scaled = rescale(_sample_rows(sample), weight)
    except ScalingError as e:
        raise ValidationError({"batch_weight_g": str(e)})

    # rows and scaled share the (sort_order, id) ordering
    for row, new in zip(rows, scaled):
        row.required_grams = new.required_grams
    SampleIngredient.objects.bulk_update(rows, ["required_grams"])

    sample.batch_weight_g = weight
    sample.save(update_fields=["batch_weight_g", "updated_at"])
    return sample


@transaction.atomic
def copy_sample(sample: Sample, *, user, batch_weight_g=None) -> Sample:
    """
    New Draft sample of the same recipe. Lot numbers are preserved;
    a different batch weight rescales the copied rows.
    """
    require_roles(user, RD_ROLES, "copy samples")
    ensure_request_open(sample.request, "add samples")

    recipe = sample.recipe
    if recipe.status != "Locked":
        raise ValidationError(
            {"recipe": f"Recipe {recipe.recipe_code} is {recipe.status}; samples need a Locked recipe."}
        )

    weight = sample.batch_weight_g if batch_weight_g is None else _batch_weight(batch_weight_g)
    try:
        scaled = rescale(_sample_rows(sample), weight)
    except ScalingError as e:
        raise ValidationError({"batch_weight_g": str(e)})

    copy = _allocate_sample(recipe, user=user, batch_weight_g=weight, notes=sample.notes)
    _write_rows(copy, scaled)

    logger.info("Sample %s copied to %s", sample.sample_code, copy.sample_code)
    return copy


@transaction.atomic
def update_lot_numbers(sample: Sample, lots: Iterable[Mapping], *, user) -> List[SampleIngredient]:
    """
    lots: [{"id": <sample ingredient id>, "lot_number": "L-123"}, ...]
    """
    require_roles(user, RD_ROLES, "edit samples")
    _ensure_draft(sample, "change lot numbers")

    rows = {row.pk: row for row in sample.ingredients.all()}
    changed = []
    for item in lots:
        try:
            row = rows[int(item.get("id"))]
        except (KeyError, TypeError, ValueError):
            raise ValidationError(
                {"lots": f"Ingredient {item.get('id')!r} does not belong to sample {sample.sample_code}."}
            )
        row.lot_number = str(item.get("lot_number") or "").strip()
        changed.append(row)

    if changed:
        SampleIngredient.objects.bulk_update(changed, ["lot_number"])
    return list(sample.ingredients.all())


def prepare_sample(sample: Sample, *, user, comment: str = "") -> Sample:
    execute_transition(instance=sample, kind="sample", new_status="Prepared", user=user, comment=comment)
    return sample


def archive_sample(sample: Sample, *, user, comment: str = "") -> Sample:
    execute_transition(instance=sample, kind="sample", new_status="Archived", user=user, comment=comment)
    return sample
