# rd_core/services/recipes.py

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional

from django.db import transaction
from rest_framework.exceptions import ValidationError

from rd_core.codes import format_recipe_code, next_seq
from rd_core.models import Recipe, RecipeIngredient, Request
from rd_core.permissions import require_roles
from rd_core.scaling import ScalingError, ingredient_percentages, quantize_grams, recipe_total, to_decimal
from rd_core.services.requests import ensure_request_open
from rd_core.workflows import RD_ROLES
from rd_core.workflows.executor import execute_transition

logger = logging.getLogger(__name__)


def _ensure_draft(recipe: Recipe, action: str) -> None:
    if recipe.status != "Draft":
        raise ValidationError(
            {"status": f"Recipe {recipe.recipe_code} is {recipe.status}; only Draft recipes can {action}."}
        )


def _allocate_recipe(request_obj: Request, *, user, name: str) -> Recipe:
    # lock the parent row so two creators cannot take the same sequence
    locked = Request.objects.select_for_update().get(pk=request_obj.pk)
    seq = next_seq(locked.recipes.values_list("recipe_seq", flat=True))

    return Recipe.objects.create(
        request=locked,
        recipe_seq=seq,
        recipe_code=format_recipe_code(locked.code, seq),
        name=(name or "").strip(),
        created_by=user,
    )


def _clean_rows(rows: Iterable[Mapping]) -> List[dict]:
    cleaned: List[dict] = []
    errors = {}

    for index, row in enumerate(rows):
        name = str(row.get("ingredient_name") or "").strip()
        if not name:
            errors[f"ingredients[{index}].ingredient_name"] = "This field is required."
            continue
        try:
            grams = quantize_grams(to_decimal(row.get("grams"), field="grams"))
        except ScalingError as e:
            errors[f"ingredients[{index}].grams"] = str(e)
            continue
        if grams <= 0:
            errors[f"ingredients[{index}].grams"] = "Grams must be at least 0.001."
            continue

        cleaned.append(
            {
                "id": row.get("id"),
                "ingredient_name": name,
                "grams": grams,
                "sort_order": index,
            }
        )

    if errors:
        raise ValidationError(errors)
    return cleaned


@transaction.atomic
def create_recipe(request_obj: Request, *, user, name: str = "", notes: str = "", ingredients=None) -> Recipe:
    """
    New Draft recipe with the next per-request sequence (RD-0015/01, /02, ...).
    """
    require_roles(user, RD_ROLES, "create recipes")
    ensure_request_open(request_obj, "add recipes")

    recipe = _allocate_recipe(request_obj, user=user, name=name)
    if notes:
        recipe.notes = notes
        recipe.save(update_fields=["notes", "updated_at"])
    if ingredients:
        save_ingredients(recipe, ingredients, user=user)

    logger.info("Recipe %s created by %s", recipe.recipe_code, user.username)
    return recipe


@transaction.atomic
def copy_recipe(recipe: Recipe, *, user, name: Optional[str] = None) -> Recipe:
    """
    New Draft recipe in the same request with the source ingredients copied.
    Works from any source status, including Locked and Archived.
    """
    require_roles(user, RD_ROLES, "copy recipes")
    ensure_request_open(recipe.request, "add recipes")

    copy = _allocate_recipe(recipe.request, user=user, name=name if name is not None else recipe.name)
    RecipeIngredient.objects.bulk_create(
        [
            RecipeIngredient(
                recipe=copy,
                ingredient_name=row.ingredient_name,
                grams=row.grams,
                sort_order=row.sort_order,
            )
            for row in recipe.ingredients.all()
        ]
    )

    logger.info("Recipe %s copied to %s", recipe.recipe_code, copy.recipe_code)
    return copy


@transaction.atomic
def save_ingredients(recipe: Recipe, rows: Iterable[Mapping], *, user) -> List[RecipeIngredient]:
    """
    Bulk sync of the ingredient list, in the given order.

    Rows with an `id` update that ingredient, rows without one are inserted,
    ingredients missing from `rows` are deleted. sort_order follows list position.
    """
    require_roles(user, RD_ROLES, "edit recipes")
    _ensure_draft(recipe, "be edited")

    cleaned = _clean_rows(rows)
    existing = {row.pk: row for row in recipe.ingredients.all()}

    keep_ids = {int(r["id"]) for r in cleaned if r["id"] is not None}
    unknown = keep_ids - set(existing)
    if unknown:
        raise ValidationError(
            {"ingredients": f"Ingredients {sorted(unknown)} do not belong to recipe {recipe.recipe_code}."}
        )

    recipe.ingredients.exclude(pk__in=keep_ids).delete()

    to_update = []
    to_create = []
    for row in cleaned:
        if row["id"] is not None:
            obj = existing[int(row["id"])]
            obj.ingredient_name = row["ingredient_name"]
            obj.grams = row["grams"]
            obj.sort_order = row["sort_order"]
            to_update.append(obj)
        else:
            to_create.append(
                RecipeIngredient(
                    recipe=recipe,
                    ingredient_name=row["ingredient_name"],
                    grams=row["grams"],
                    sort_order=row["sort_order"],
                )
            )

    if to_update:
        RecipeIngredient.objects.bulk_update(to_update, ["ingredient_name", "grams", "sort_order"])
    if to_create:
        RecipeIngredient.objects.bulk_create(to_create)

    return list(recipe.ingredients.all())


def recipe_composition(recipe: Recipe) -> dict:
    """
    Ingredient list with percentage of the recipe total (2 dp).
    """
    rows = list(recipe.ingredients.all())
    grams = [row.grams for row in rows]
    percents = ingredient_percentages(grams)

    return {
        "recipe_code": recipe.recipe_code,
        "total_grams": recipe_total(grams),
        "ingredients": [
            {
                "id": row.pk,
                "ingredient_name": row.ingredient_name,
                "grams": row.grams,
                "percent": pct,
                "sort_order": row.sort_order,
            }
            for row, pct in zip(rows, percents)
        ],
    }


def lock_recipe(recipe: Recipe, *, user, comment: str = "") -> Recipe:
    execute_transition(instance=recipe, kind="recipe", new_status="Locked", user=user, comment=comment)
    return recipe


def archive_recipe(recipe: Recipe, *, user, comment: str = "") -> Recipe:
    execute_transition(instance=recipe, kind="recipe", new_status="Archived", user=user, comment=comment)
    return recipe
