"""Recipe Basket - recipe manager with a categorized grocery basket."""

__version__ = "1.0.0"

from .basket import BasketStore, BatchResult
from .catalog import RecipeCatalog
from .categories import Category, classify
from .database import Database
from .errors import (
    DanglingItemError,
    NotFoundError,
    RecipeBasketError,
    StoreError,
    TransportError,
    ValidationError,
)
from .models import Basket, GroceryItem, Ingredient, Recipe, Tag
from .projector import StableViewProjector
from .recipe_parser import parse_llm_response, parse_recipe_text, parse_recipe_url
from .scaler import scale_quantity, scale_recipe

__all__ = [
    "Basket",
    "BasketStore",
    "BatchResult",
    "Category",
    "Database",
    "DanglingItemError",
    "GroceryItem",
    "Ingredient",
    "NotFoundError",
    "Recipe",
    "RecipeBasketError",
    "RecipeCatalog",
    "StableViewProjector",
    "StoreError",
    "Tag",
    "TransportError",
    "ValidationError",
    "classify",
    "parse_llm_response",
    "parse_recipe_text",
    "parse_recipe_url",
    "scale_quantity",
    "scale_recipe",
]
