"""Recipe, tag and basket data types."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .categories import Category

# Title carried by the record returned when a page holds no recipe
NOT_FOUND_TITLE = "Recipe Not Found"


@dataclass
class Ingredient:
    """A single recipe ingredient."""

    name: str
    amount: float | None = None
    unit: str | None = None
    notes: str | None = None  # e.g., "finely chopped"

    def __str__(self) -> str:
        parts = []
        if self.amount is not None:
            parts.append(format_amount(self.amount))
        if self.unit:
            parts.append(self.unit)
        parts.append(self.name)
        if self.notes:
            parts.append(f"({self.notes})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "amount": self.amount, "unit": self.unit, "notes": self.notes}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Ingredient":
        return cls(
            name=data["name"],
            amount=data.get("amount"),
            unit=data.get("unit") or None,
            notes=data.get("notes") or None,
        )


@dataclass
class Translation:
    """Translated text fields of a recipe. Any field may be missing."""

    language: str
    title: str | None = None
    description: str | None = None
    ingredients: list[Ingredient] | None = None
    steps: list[str] | None = None

    @property
    def is_empty(self) -> bool:
        return not (self.title or self.description or self.ingredients or self.steps)

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "title": self.title,
            "description": self.description,
            "ingredients": (
                [ing.to_dict() for ing in self.ingredients]
                if self.ingredients is not None
                else None
            ),
            "steps": self.steps,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Translation":
        ingredients = data.get("ingredients")
        return cls(
            language=data.get("language", ""),
            title=data.get("title"),
            description=data.get("description"),
            ingredients=(
                [Ingredient.from_dict(ing) for ing in ingredients]
                if ingredients is not None
                else None
            ),
            steps=data.get("steps"),
        )


@dataclass
class Recipe:
    """A stored or freshly extracted recipe."""

    title: str
    ingredients: list[Ingredient] = field(default_factory=list)
    servings: int | None = None
    source_url: str | None = None
    id: str | None = None
    description: str = ""
    image_url: str = ""
    tags: list[str] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    prep_time: int | None = None  # minutes
    cook_time: int | None = None  # minutes
    translation: Translation | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_time(self) -> int | None:
        if self.prep_time is None and self.cook_time is None:
            return None
        return (self.prep_time or 0) + (self.cook_time or 0)

    def to_dict(self) -> dict[str, Any]:
        """Convert recipe to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "source_url": self.source_url,
            "tags": list(self.tags),
            "servings": self.servings,
            "prep_time": self.prep_time,
            "cook_time": self.cook_time,
            "ingredients": [ing.to_dict() for ing in self.ingredients],
            "steps": list(self.steps),
            "translation": self.translation.to_dict() if self.translation else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


def not_found_recipe(url: str | None = None) -> Recipe:
    """Build the record returned when a page does not contain a recipe."""
    return Recipe(title=NOT_FOUND_TITLE, source_url=url)


def is_not_found(recipe: Recipe) -> bool:
    """Check for the not-found record. A missing error does not mean success."""
    return recipe.title == NOT_FOUND_TITLE and not recipe.ingredients and not recipe.steps


@dataclass
class Tag:
    """A tag and the number of recipes carrying it."""

    id: str
    name: str
    recipe_count: int = 0


@dataclass
class BasketRecipeEntry:
    """A recipe placed in a basket at a chosen serving count."""

    recipe_id: str
    title: str
    servings: int
    original_servings: int

    @property
    def scale_factor(self) -> float:
        return self.servings / self.original_servings


@dataclass
class GroceryItem:
    """One shopping list line, possibly fed by several recipes."""

    id: str
    name: str
    amount: float | None = None
    unit: str | None = None
    category: Category = Category.OTHER
    checked: bool = False
    recipe_ids: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        parts = []
        if self.amount is not None:
            parts.append(format_amount(self.amount))
        if self.unit:
            parts.append(self.unit)
        parts.append(self.name)
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "amount": self.amount,
            "unit": self.unit,
            "category": self.category.value,
            "checked": self.checked,
            "recipe_ids": list(self.recipe_ids),
        }


@dataclass
class Basket:
    """A shopping list under construction."""

    id: str
    name: str | None = None
    recipes: list[BasketRecipeEntry] = field(default_factory=list)
    items: list[GroceryItem] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def find_recipe(self, recipe_id: str) -> BasketRecipeEntry | None:
        for entry in self.recipes:
            if entry.recipe_id == recipe_id:
                return entry
        return None

    def find_item(self, item_id: str) -> GroceryItem | None:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    @property
    def checked_count(self) -> int:
        return sum(1 for item in self.items if item.checked)

    @property
    def has_checked_items(self) -> bool:
        return any(item.checked for item in self.items)


def format_amount(amount: float) -> str:
    """Format a quantity without trailing zeros (2.0 -> "2", 0.25 -> "0.25")."""
    if amount == int(amount):
        return str(int(amount))
    return f"{amount:.2f}".rstrip("0").rstrip(".")
