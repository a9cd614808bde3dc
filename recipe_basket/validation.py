"""Validation of untrusted recipe data.

Recipe JSON arrives from scrapers, chat assistants and the translation
service. Everything passes through these schemas before it becomes a
Recipe or reaches the basket.
"""

import math
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .models import Ingredient, Recipe, Translation


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class IngredientPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    amount: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    unit: str | None = None
    notes: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def parse_amount(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if isinstance(value, str):
            # European decimal comma
            return value.strip().replace(",", ".")
        return value

    @field_validator("unit", "notes", mode="before")
    @classmethod
    def blank_text(cls, value: Any) -> Any:
        return _blank_to_none(value)

    def to_ingredient(self) -> Ingredient:
        return Ingredient(name=self.name, amount=self.amount, unit=self.unit, notes=self.notes)


class RecipePayload(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: str = Field(min_length=1)
    description: str = ""
    image_url: str = Field(default="", validation_alias=AliasChoices("image_url", "imageUrl"))
    source_url: str | None = Field(
        default=None, validation_alias=AliasChoices("source_url", "sourceUrl")
    )
    tags: list[str] = Field(default_factory=list)
    ingredients: list[IngredientPayload]
    steps: list[str] = Field(default_factory=list)
    prep_time: int | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("prep_time", "prepTime")
    )
    cook_time: int | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("cook_time", "cookTime")
    )
    servings: int = Field(ge=1)

    @field_validator("description", "image_url", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("source_url", "prep_time", "cook_time", mode="before")
    @classmethod
    def blank_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("tags", mode="after")
    @classmethod
    def clean_tags(cls, tags: list[str]) -> list[str]:
        cleaned: list[str] = []
        for tag in tags:
            tag = tag.strip()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return cleaned

    @field_validator("steps", mode="after")
    @classmethod
    def drop_empty_steps(cls, steps: list[str]) -> list[str]:
        return [s.strip() for s in steps if s and s.strip()]

    def to_recipe(self) -> Recipe:
        return Recipe(
            title=self.title,
            description=self.description,
            image_url=self.image_url,
            source_url=self.source_url,
            tags=self.tags,
            ingredients=[ing.to_ingredient() for ing in self.ingredients],
            steps=self.steps,
            prep_time=self.prep_time,
            cook_time=self.cook_time,
            servings=self.servings,
        )


class TranslationPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str | None = Field(
        default=None, validation_alias=AliasChoices("translatedTitle", "title")
    )
    description: str | None = Field(
        default=None, validation_alias=AliasChoices("translatedDescription", "description")
    )
    ingredients: list[IngredientPayload] | None = Field(
        default=None, validation_alias=AliasChoices("translatedIngredients", "ingredients")
    )
    steps: list[str] | None = Field(
        default=None, validation_alias=AliasChoices("translatedSteps", "steps")
    )

    def to_translation(self, language: str) -> Translation:
        return Translation(
            language=language,
            title=self.title,
            description=self.description,
            ingredients=(
                [ing.to_ingredient() for ing in self.ingredients]
                if self.ingredients is not None
                else None
            ),
            steps=self.steps,
        )


def _describe(error: PydanticValidationError) -> str:
    problems = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "recipe"
        problems.append(f"{location}: {detail['msg']}")
    return "; ".join(problems)


def parse_recipe_payload(data: Any, required: tuple[str, ...] = ()) -> Recipe:
    """
    Convert untrusted recipe JSON into a Recipe.

    Args:
        data: Decoded JSON object (camelCase or snake_case keys)
        required: Extra fields that must be present and non-empty

    Returns:
        Validated Recipe without id or timestamps

    Raises:
        ValidationError: If the payload is not a valid recipe
    """
    if not isinstance(data, dict):
        raise ValidationError("Recipe data must be a JSON object")

    for name in required:
        if not data.get(name):
            raise ValidationError(f"The recipe is missing the required field: {name}")

    try:
        payload = RecipePayload.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid recipe data: {_describe(e)}") from e

    return payload.to_recipe()


def parse_translation_payload(data: Any, language: str) -> Translation:
    """Convert a translation service response into a Translation."""
    if not isinstance(data, dict):
        raise ValidationError("Translation data must be a JSON object")

    try:
        payload = TranslationPayload.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid translation data: {_describe(e)}") from e

    return payload.to_translation(language)


def validate_recipe_snapshot(recipe: Recipe) -> None:
    """
    Check that a recipe can be added to a basket.

    Raises:
        ValidationError: If servings or the ingredient list are missing
    """
    if recipe.servings is None or isinstance(recipe.servings, bool):
        raise ValidationError(f"Recipe '{recipe.title}' has no serving count")
    if not isinstance(recipe.servings, int) or recipe.servings < 1:
        raise ValidationError(f"Recipe '{recipe.title}' has an invalid serving count")
    if recipe.ingredients is None or not isinstance(recipe.ingredients, list):
        raise ValidationError(f"Recipe '{recipe.title}' has no ingredient list")
    for ingredient in recipe.ingredients:
        if not isinstance(ingredient, Ingredient) or not ingredient.name:
            raise ValidationError(f"Recipe '{recipe.title}' has an ingredient without a name")
        if ingredient.amount is not None and ingredient.amount < 0:
            raise ValidationError(f"Ingredient '{ingredient.name}' has a negative amount")
        if ingredient.amount is not None and not math.isfinite(ingredient.amount):
            raise ValidationError(f"Ingredient '{ingredient.name}' has a non-finite amount")
