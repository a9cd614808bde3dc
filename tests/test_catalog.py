"""Tests for the recipe and tag catalog."""

import pytest

from recipe_basket.catalog import RecipeCatalog, search_score
from recipe_basket.errors import NotFoundError, ValidationError
from recipe_basket.models import Ingredient, Recipe, Translation


def tag_counts(catalog: RecipeCatalog) -> dict[str, int]:
    return {tag.name: tag.recipe_count for tag in catalog.list_tags()}


# ============================================================================
# Recipe CRUD Tests
# ============================================================================


class TestSaveRecipe:
    """Tests for RecipeCatalog.save_recipe."""

    def test_assigns_id_and_timestamps(self, catalog, pancakes):
        saved = catalog.save_recipe(pancakes)

        assert saved.id
        assert saved.created_at is not None
        assert saved.updated_at is not None

    def test_round_trips_fields(self, catalog, curry):
        saved = catalog.save_recipe(curry)

        loaded = catalog.get_recipe(saved.id)
        assert loaded.title == "Curry de poulet"
        assert loaded.description == "Un curry doux"
        assert loaded.servings == 4
        assert loaded.steps == curry.steps
        assert [ing.to_dict() for ing in loaded.ingredients] == [
            ing.to_dict() for ing in curry.ingredients
        ]

    def test_counts_tags(self, catalog, pancakes, curry):
        catalog.save_recipe(pancakes)
        catalog.save_recipe(curry)
        omelette = Recipe(
            title="Omelette", ingredients=[Ingredient("eggs", 3.0)], servings=1, tags=["breakfast"]
        )
        catalog.save_recipe(omelette)

        assert tag_counts(catalog) == {"breakfast": 2, "dinner": 1, "spicy": 1}

    def test_duplicate_tags_counted_once(self, catalog, pancakes):
        pancakes.tags = ["sweet", "sweet", " sweet "]

        saved = catalog.save_recipe(pancakes)

        assert saved.tags == ["sweet"]
        assert tag_counts(catalog) == {"sweet": 1}

    def test_invalid_servings_rejected(self, catalog, pancakes):
        pancakes.servings = 0

        with pytest.raises(ValidationError):
            catalog.save_recipe(pancakes)

        assert catalog.list_recipes() == []


class TestGetAndList:
    """Tests for reading recipes."""

    def test_missing_recipe_raises(self, catalog):
        with pytest.raises(NotFoundError, match="not found"):
            catalog.get_recipe("missing")

    def test_list_newest_first(self, catalog, pancakes, bread):
        first = catalog.save_recipe(pancakes)
        second = catalog.save_recipe(bread)

        assert [r.id for r in catalog.list_recipes()] == [second.id, first.id]

    def test_list_by_tag(self, catalog, pancakes, bread, curry):
        catalog.save_recipe(pancakes)
        catalog.save_recipe(bread)
        catalog.save_recipe(curry)

        assert [r.title for r in catalog.list_recipes(tag="spicy")] == ["Curry de poulet"]
        assert catalog.recipes_with_tag("unknown") == []


class TestSearchRecipes:
    """Tests for RecipeCatalog.search_recipes."""

    def test_title_match_ranks_first(self, catalog, pancakes, bread):
        bread.description = "Goes well with pancakes"
        catalog.save_recipe(bread)
        catalog.save_recipe(pancakes)

        results = catalog.search_recipes("pancakes")

        assert [r.title for r in results] == ["Pancakes", "Bread"]

    def test_matches_ingredient_name(self, catalog, pancakes, curry):
        catalog.save_recipe(pancakes)
        catalog.save_recipe(curry)

        assert [r.title for r in catalog.search_recipes("curcuma")] == ["Curry de poulet"]

    def test_tolerates_typo(self, catalog, pancakes, curry):
        catalog.save_recipe(pancakes)
        catalog.save_recipe(curry)

        assert [r.title for r in catalog.search_recipes("pancaks")] == ["Pancakes"]

    def test_empty_query_lists_all(self, catalog, pancakes, bread):
        catalog.save_recipe(pancakes)
        catalog.save_recipe(bread)

        assert len(catalog.search_recipes("  ")) == 2

    def test_limit(self, catalog, pancakes, bread):
        catalog.save_recipe(pancakes)
        catalog.save_recipe(bread)

        assert len(catalog.search_recipes("flour", limit=1)) == 1


class TestSearchScore:
    """Tests for search_score function."""

    def test_title_substring(self, pancakes):
        assert search_score("PAN", pancakes) == 100

    def test_other_field_substring(self, pancakes):
        assert search_score("breakfast", pancakes) == 90

    def test_unrelated_scores_low(self, pancakes):
        assert search_score("zzzz", pancakes) < 75


class TestUpdateRecipe:
    """Tests for RecipeCatalog.update_recipe."""

    def test_updates_fields(self, catalog, pancakes):
        saved = catalog.save_recipe(pancakes)

        updated = catalog.update_recipe(saved.id, title="Crêpes", servings=6)

        assert updated.title == "Crêpes"
        assert updated.servings == 6
        assert updated.ingredients == saved.ingredients

    def test_tag_diff_adjusts_counts(self, catalog, pancakes, curry):
        saved = catalog.save_recipe(pancakes)
        catalog.save_recipe(curry)

        catalog.update_recipe(saved.id, tags=["dinner", "quick"])

        assert tag_counts(catalog) == {"breakfast": 0, "dinner": 2, "quick": 1, "spicy": 1}

    def test_replaces_ingredients(self, catalog, pancakes):
        saved = catalog.save_recipe(pancakes)

        updated = catalog.update_recipe(saved.id, ingredients=[Ingredient("oat milk", 1.0, "l")])

        assert [ing.name for ing in updated.ingredients] == ["oat milk"]

    def test_unknown_field_rejected(self, catalog, pancakes):
        saved = catalog.save_recipe(pancakes)

        with pytest.raises(ValidationError, match="Cannot update fields: id"):
            catalog.update_recipe(saved.id, id="other")

    def test_empty_title_rejected(self, catalog, pancakes):
        saved = catalog.save_recipe(pancakes)

        with pytest.raises(ValidationError):
            catalog.update_recipe(saved.id, title="  ")

    def test_missing_recipe_raises(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.update_recipe("missing", title="x")


class TestDeleteRecipe:
    """Tests for RecipeCatalog.delete_recipe."""

    def test_releases_tags(self, catalog, pancakes, curry):
        saved = catalog.save_recipe(curry)
        catalog.save_recipe(pancakes)

        catalog.delete_recipe(saved.id)

        assert tag_counts(catalog) == {"breakfast": 1, "dinner": 0, "spicy": 0}
        with pytest.raises(NotFoundError):
            catalog.get_recipe(saved.id)

    def test_missing_recipe_raises(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.delete_recipe("missing")


class TestSetTranslation:
    """Tests for RecipeCatalog.set_translation."""

    def test_stores_translation(self, catalog, pancakes):
        saved = catalog.save_recipe(pancakes)
        translation = Translation(
            language="French",
            title="Crêpes",
            ingredients=[Ingredient("farine", 200.0, "g")],
        )

        updated = catalog.set_translation(saved.id, translation)

        assert updated.translation.title == "Crêpes"
        assert updated.translation.ingredients[0].name == "farine"
        assert updated.translation.steps is None
        assert updated.title == "Pancakes"


# ============================================================================
# Tag Tests
# ============================================================================


class TestTags:
    """Tests for tag management."""

    def test_list_by_count_then_name(self, catalog, pancakes, curry):
        catalog.save_recipe(pancakes)
        catalog.save_recipe(curry)
        curry.tags = ["dinner"]
        catalog.save_recipe(curry)

        assert [t.name for t in catalog.list_tags()] == ["dinner", "breakfast", "spicy"]

    def test_create_tag(self, catalog):
        tag = catalog.create_tag(" vegan ")

        assert tag.name == "vegan"
        assert tag.recipe_count == 0
        assert catalog.create_tag("vegan").id == tag.id

    def test_create_empty_tag_rejected(self, catalog):
        with pytest.raises(ValidationError):
            catalog.create_tag("  ")

    def test_find_missing_tag_raises(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.find_tag("nope")

    def test_rename_rewrites_recipes(self, catalog, pancakes, curry):
        catalog.save_recipe(pancakes)
        saved = catalog.save_recipe(curry)
        tag = catalog.find_tag("spicy")

        renamed = catalog.rename_tag(tag.id, "hot")

        assert renamed.name == "hot"
        assert renamed.recipe_count == 1
        assert catalog.get_recipe(saved.id).tags == ["dinner", "hot"]

    def test_rename_to_taken_name_rejected(self, catalog, curry):
        catalog.save_recipe(curry)

        with pytest.raises(ValidationError, match="already exists"):
            catalog.rename_tag(catalog.find_tag("spicy").id, "dinner")


class TestDeleteTag:
    """Tests for the tag deletion cascade."""

    def test_strips_tag_from_every_recipe(self, catalog, pancakes, curry):
        curry.tags = ["dinner", "spicy", "breakfast"]
        p = catalog.save_recipe(pancakes)
        c = catalog.save_recipe(curry)
        tag = catalog.find_tag("breakfast")

        assert catalog.delete_tag(tag.id) == 2

        assert catalog.get_recipe(p.id).tags == []
        assert catalog.get_recipe(c.id).tags == ["dinner", "spicy"]
        assert catalog.recipes_with_tag("breakfast") == []
        assert "breakfast" not in tag_counts(catalog)

    def test_unused_tag(self, catalog):
        tag = catalog.create_tag("unused")

        assert catalog.delete_tag(tag.id) == 0
        assert catalog.list_tags() == []

    def test_missing_tag_raises(self, catalog):
        with pytest.raises(NotFoundError):
            catalog.delete_tag("missing")

    def test_readding_tag_starts_count_fresh(self, catalog, pancakes):
        catalog.save_recipe(pancakes)
        catalog.delete_tag(catalog.find_tag("breakfast").id)

        pancakes.tags = ["breakfast"]
        catalog.save_recipe(pancakes)

        assert tag_counts(catalog) == {"breakfast": 1}
