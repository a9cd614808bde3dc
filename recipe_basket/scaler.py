"""Recipe scaling and quantity math logic."""

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, localcontext

from .errors import ValidationError
from .models import Ingredient, Recipe, format_amount

TWO_PLACES = Decimal("0.01")


@dataclass
class ScaledIngredient:
    """An ingredient with scaled quantity."""

    original: Ingredient
    scaled_amount: float | None
    scale_factor: float

    @property
    def name(self) -> str:
        return self.original.name

    @property
    def unit(self) -> str | None:
        return self.original.unit

    def __str__(self) -> str:
        parts = []
        if self.scaled_amount is not None:
            parts.append(format_amount(self.scaled_amount))
        if self.unit:
            parts.append(self.unit)
        parts.append(self.name)
        if self.original.notes:
            parts.append(f"({self.original.notes})")
        return " ".join(parts)


def calculate_scale_factor(original_servings: int | None, target_servings: int | None) -> float:
    """
    Calculate the serving ratio for a recipe.

    Args:
        original_servings: Serving count the recipe was written for
        target_servings: Desired serving count

    Returns:
        target_servings / original_servings

    Raises:
        ValidationError: If either serving count is missing or below 1
    """
    if original_servings is None or original_servings < 1:
        raise ValidationError("Cannot scale: original serving size unknown or invalid.")
    if target_servings is None or target_servings < 1:
        raise ValidationError("Servings must be at least 1.")
    return target_servings / original_servings


def round_amount(value: float) -> float:
    """Round to two decimal places, halves away from zero (2.345 -> 2.35)."""
    if not math.isfinite(value):
        raise ValidationError(f"Amount must be a finite number, got {value}")
    # Decimal(str()) rounds the shortest repr, so 1.005 becomes 1.01 rather
    # than following the binary value 1.00499...
    exact = Decimal(str(value))
    with localcontext() as ctx:
        # Enough digits for every place down to the hundredths
        ctx.prec = max(ctx.prec, exact.adjusted() + 3)
        return float(exact.quantize(TWO_PLACES, rounding=ROUND_HALF_UP))


def scale_quantity(amount: float | None, ratio: float) -> float | None:
    """
    Scale a quantity by a serving ratio.

    Args:
        amount: Original quantity (None for "to taste" items)
        ratio: current servings / original servings

    Returns:
        Scaled quantity rounded to two decimals, or None if input was None
    """
    if amount is None:
        return None
    return round_amount(amount * ratio)


def scale_ingredient(ingredient: Ingredient, scale_factor: float) -> ScaledIngredient:
    """Scale a single ingredient."""
    return ScaledIngredient(
        original=ingredient,
        scaled_amount=scale_quantity(ingredient.amount, scale_factor),
        scale_factor=scale_factor,
    )


def scale_recipe(
    recipe: Recipe, target_servings: int | None = None
) -> tuple[list[ScaledIngredient], float]:
    """
    Scale all ingredients in a recipe.

    Args:
        recipe: The recipe to scale
        target_servings: Desired serving size (defaults to the recipe's own)

    Returns:
        Tuple of (scaled_ingredients, scale_factor)
    """
    if target_servings is None:
        target_servings = recipe.servings
    scale_factor = calculate_scale_factor(recipe.servings, target_servings)

    scaled_ingredients = [scale_ingredient(ing, scale_factor) for ing in recipe.ingredients]
    return scaled_ingredients, scale_factor


def format_scale_info(scale_factor: float, original_servings: int, new_servings: int) -> str:
    """
    Format scaling information for display.

    Returns:
        Human-readable scaling description
    """
    if scale_factor == 1.0:
        return f"Original recipe ({original_servings} servings)"

    if scale_factor == 2.0:
        desc = "Doubled"
    elif scale_factor == 0.5:
        desc = "Halved"
    elif scale_factor == 3.0:
        desc = "Tripled"
    else:
        desc = f"Scaled {scale_factor:.2g}x"

    return f"{desc} ({original_servings} → {new_servings} servings)"


def format_quantity(amount: float | None, unit: str | None = None) -> str:
    """Format an amount and unit for display ("" when both are missing)."""
    parts = []
    if amount is not None:
        parts.append(format_amount(amount))
    if unit:
        parts.append(unit)
    return " ".join(parts)
