"""
Recipe ingredient scaling.

All arithmetic uses Decimal internally. No float intermediate values.
Callers pass grams as Decimal, int or numeric strings; floats are converted
through str() so 0.1 stays 0.1.

A sample is manufactured from a recipe at a chosen batch weight:

    required_grams = recipe_grams * batch_weight / recipe_total

Required grams are quantized to 0.001 g (the precision of the lab balance),
percentages to 0.01 %.

This module MUST remain free of Django imports.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Optional, Sequence

GRAMS_QUANT = Decimal("0.001")
PERCENT_QUANT = Decimal("0.01")
HUNDRED = Decimal("100")


class ScalingError(ValueError):
    """Raised when a recipe cannot be scaled to the requested batch weight."""


@dataclass(frozen=True)
class IngredientRow:
    name: str
    grams: Decimal
    sort_order: int = 0
    lot_number: Optional[str] = None


@dataclass(frozen=True)
class ScaledIngredient:
    name: str
    recipe_grams: Decimal
    required_grams: Decimal
    sort_order: int
    lot_number: Optional[str] = None


def to_decimal(value, *, field: str = "value") -> Decimal:
    """
    Strict numeric conversion. Rejects None, booleans, NaN and infinities.
    """
    if value is None or isinstance(value, bool):
        raise ScalingError(f"{field} must be a number.")

    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ScalingError(f"{field} must be a number, got {value!r}.")

    if not result.is_finite():
        raise ScalingError(f"{field} must be a finite number.")
    return result


def quantize_grams(value: Decimal) -> Decimal:
    return value.quantize(GRAMS_QUANT, rounding=ROUND_HALF_UP)


def recipe_total(grams: Iterable) -> Decimal:
    total = Decimal("0")
    for g in grams:
        total += to_decimal(g, field="grams")
    return total


def ingredient_percentages(grams: Sequence) -> List[Decimal]:
    """
    Percentage of the recipe total for each row, rounded to 0.01 %.

    A zero total yields 0.00 for every row instead of dividing by zero.
    """
    values = [to_decimal(g, field="grams") for g in grams]
    total = sum(values, Decimal("0"))
    if total <= 0:
        return [Decimal("0.00") for _ in values]
    return [(g / total * HUNDRED).quantize(PERCENT_QUANT, rounding=ROUND_HALF_UP) for g in values]


def _validate_rows(rows: Sequence[IngredientRow]) -> Decimal:
    if not rows:
        raise ScalingError("Recipe has no ingredients.")

    total = Decimal("0")
    for row in rows:
        grams = to_decimal(row.grams, field=f"grams of {row.name!r}")
        if grams < 0:
            raise ScalingError(f"Ingredient {row.name!r} has negative grams.")
        total += grams

    if total <= 0:
        raise ScalingError("Recipe total weight must be greater than 0.")
    return total


def scale_ingredients(rows: Sequence[IngredientRow], batch_weight) -> List[ScaledIngredient]:
    """
    Scale recipe rows proportionally to batch_weight grams.

    Args:
        rows:         Recipe ingredients (name, grams, sort_order, optional lot).
        batch_weight: Target sample batch weight in grams. Must be > 0.

    Returns ScaledIngredient rows in sort order, each carrying the original
    recipe grams and the required grams for this batch.

    Example: water 60 g + salt 40 g scaled to 250 g -> 150.000 g + 100.000 g.
    """
    weight = to_decimal(batch_weight, field="batch_weight_g")
    if weight <= 0:
        raise ScalingError("Batch weight must be greater than 0.")

    total = _validate_rows(rows)
    factor = weight / total

    ordered = sorted(enumerate(rows), key=lambda pair: (pair[1].sort_order, pair[0]))
    out: List[ScaledIngredient] = []
    for _, row in ordered:
        grams = to_decimal(row.grams)
        out.append(
            ScaledIngredient(
                name=row.name,
                recipe_grams=grams,
                required_grams=quantize_grams(grams * factor),
                sort_order=row.sort_order,
                lot_number=row.lot_number,
            )
        )
    return out


def rescale(rows: Sequence[IngredientRow], new_batch_weight) -> List[ScaledIngredient]:
    """
    Recompute required grams of existing sample rows for a new batch weight.

    Sample rows keep their recipe grams, so this is the same proportion as the
    original scaling. Lot numbers are carried through untouched.
    """
    return scale_ingredients(rows, new_batch_weight)
