"""Expand recipes into grocery line items."""

from dataclasses import dataclass

from .categories import Category, CategoryRule, classify
from .models import Ingredient
from .scaler import scale_quantity


@dataclass
class ProposedItem:
    """A scaled, categorized ingredient waiting to be merged into a basket."""

    name: str
    amount: float | None
    unit: str | None
    category: Category
    recipe_id: str

    @property
    def key(self) -> tuple[str, str | None]:
        """Identity used to find an existing basket item."""
        return item_key(self.name, self.unit)


def item_key(name: str, unit: str | None) -> tuple[str, str | None]:
    """Merge identity of a grocery item: case-folded name and unit."""
    # "" and None are the same unit
    return " ".join(name.split()).casefold(), unit or None


def expand_recipe(
    ingredients: list[Ingredient],
    current_servings: int,
    original_servings: int,
    recipe_id: str,
    rules: list[CategoryRule] | None = None,
) -> list[ProposedItem]:
    """
    Turn one recipe's ingredients into proposed grocery items.

    One item per ingredient, in recipe order. Nothing is merged here;
    matching against existing basket items is the basket store's job.

    Args:
        ingredients: Recipe ingredients
        current_servings: Servings wanted in the basket
        original_servings: Servings the amounts were written for
        recipe_id: Recipe the items come from
        rules: Category rules (defaults to the built-in table)

    Returns:
        List of proposed items
    """
    ratio = current_servings / original_servings

    return [
        ProposedItem(
            name=ingredient.name,
            amount=scale_quantity(ingredient.amount, ratio),
            unit=ingredient.unit or None,
            category=classify(ingredient.name, rules),
            recipe_id=recipe_id,
        )
        for ingredient in ingredients
    ]
