"""Shared fixtures for recipe-basket tests."""

import pytest
import respx

from recipe_basket.basket import BasketStore
from recipe_basket.catalog import RecipeCatalog
from recipe_basket.database import Database
from recipe_basket.models import Ingredient, Recipe


@pytest.fixture
def mock_httpx():
    """Activate respx mock for HTTP requests."""
    with respx.mock(assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
def db(tmp_path):
    """A fresh SQLite database in a temporary directory."""
    database = Database(tmp_path / "test.db")
    yield database
    database.close()


@pytest.fixture
def catalog(db):
    return RecipeCatalog(db)


@pytest.fixture
def store(db):
    return BasketStore(db)


@pytest.fixture
def basket_id(store):
    """Id of an empty basket."""
    return store.create_basket("Weekly").id


@pytest.fixture
def pancakes():
    """Recipe A of the flour scenario: 200 g flour for 2 servings."""
    return Recipe(
        title="Pancakes",
        ingredients=[
            Ingredient(name="flour", amount=200.0, unit="g"),
            Ingredient(name="milk", amount=300.0, unit="ml"),
            Ingredient(name="salt"),
        ],
        servings=2,
        tags=["breakfast"],
    )


@pytest.fixture
def bread():
    """Recipe B of the flour scenario: 500 g flour for 4 servings."""
    return Recipe(
        title="Bread",
        ingredients=[
            Ingredient(name="flour", amount=500.0, unit="g"),
            Ingredient(name="water", amount=350.0, unit="ml"),
        ],
        servings=4,
        tags=["baking"],
    )


@pytest.fixture
def curry():
    """Recipe with French ingredient names."""
    return Recipe(
        title="Curry de poulet",
        description="Un curry doux",
        ingredients=[
            Ingredient(name="poulet", amount=500.0, unit="g"),
            Ingredient(name="lait de coco", amount=400.0, unit="ml"),
            Ingredient(name="curcuma", amount=1.0, unit="c. à café"),
            Ingredient(name="riz", amount=300.0, unit="g"),
        ],
        steps=["Couper le poulet.", "Cuire avec les épices."],
        servings=4,
        tags=["dinner", "spicy"],
    )
