"""Tests for the stable view projector."""

import pytest

from recipe_basket.categories import Category
from recipe_basket.models import Basket, BasketRecipeEntry, GroceryItem
from recipe_basket.projector import BasketView, StableViewProjector, ViewMode


def make_item(item_id, name=None, category=Category.OTHER, recipe_ids=("r1",), checked=False):
    return GroceryItem(
        id=item_id,
        name=name or item_id,
        category=category,
        checked=checked,
        recipe_ids=list(recipe_ids),
    )


def make_basket(items, recipes=(("r1", "Soup"), ("r2", "Salad"))):
    return Basket(
        id="basket",
        recipes=[
            BasketRecipeEntry(recipe_id=rid, title=title, servings=2, original_servings=2)
            for rid, title in recipes
        ],
        items=list(items),
    )


@pytest.fixture
def projector():
    return StableViewProjector()


class TestReconcile:
    """Tests for StableViewProjector.reconcile."""

    def test_first_snapshot_adopts_store_order(self, projector):
        order = projector.reconcile(make_basket([make_item("c"), make_item("a"), make_item("b")]))

        assert order == ["c", "a", "b"]
        assert projector.order == ["c", "a", "b"]

    def test_removed_dropped_in_place_new_appended(self, projector):
        projector.reconcile(make_basket([make_item("a"), make_item("b"), make_item("c")]))

        order = projector.reconcile(
            make_basket([make_item("d"), make_item("c"), make_item("b")])
        )

        assert order == ["b", "c", "d"]

    def test_survivors_keep_remembered_order(self, projector):
        projector.reconcile(make_basket([make_item("a"), make_item("b"), make_item("c")]))

        order = projector.reconcile(
            make_basket([make_item("c"), make_item("b"), make_item("a")])
        )

        assert order == ["a", "b", "c"]

    def test_new_ids_appended_in_store_order(self, projector):
        projector.reconcile(make_basket([make_item("a")]))

        order = projector.reconcile(
            make_basket([make_item("z"), make_item("a"), make_item("y")])
        )

        assert order == ["a", "z", "y"]

    def test_checking_does_not_reorder(self, projector):
        projector.reconcile(make_basket([make_item("a"), make_item("b"), make_item("c")]))

        projector.reconcile(
            make_basket([make_item("b"), make_item("c"), make_item("a", checked=True)])
        )

        assert [item.id for item in projector.items()] == ["a", "b", "c"]
        assert projector.items()[0].checked is True

    def test_empty_snapshot(self, projector):
        projector.reconcile(make_basket([make_item("a")]))

        assert projector.reconcile(make_basket([])) == []
        assert projector.items() == []

    def test_reset_adopts_next_order(self, projector):
        projector.reconcile(make_basket([make_item("a"), make_item("b")]))
        projector.reset()

        assert projector.reconcile(make_basket([make_item("b"), make_item("a")])) == ["b", "a"]

    def test_order_is_a_copy(self, projector):
        projector.reconcile(make_basket([make_item("a")]))

        projector.order.append("x")

        assert projector.order == ["a"]


class TestGroupByCategory:
    """Tests for StableViewProjector.group_by_category."""

    def test_buckets_sorted_by_name(self, projector):
        projector.reconcile(
            make_basket(
                [
                    make_item("salt", category=Category.SPICES),
                    make_item("milk", category=Category.DAIRY),
                    make_item("rice", category=Category.GRAINS),
                ]
            )
        )

        groups = projector.group_by_category()

        assert list(groups) == [Category.DAIRY, Category.GRAINS, Category.SPICES]

    def test_items_in_remembered_order(self, projector):
        projector.reconcile(
            make_basket(
                [
                    make_item("a", category=Category.FRUITS),
                    make_item("b", category=Category.FRUITS),
                ]
            )
        )
        projector.reconcile(
            make_basket(
                [
                    make_item("b", category=Category.FRUITS),
                    make_item("a", category=Category.FRUITS),
                ]
            )
        )

        assert [item.id for item in projector.group_by_category()[Category.FRUITS]] == ["a", "b"]


class TestGroupByRecipe:
    """Tests for StableViewProjector.group_by_recipe."""

    def test_shared_item_fans_out(self, projector):
        shared = make_item("flour", category=Category.GRAINS, recipe_ids=("r1", "r2"))
        water = make_item("water", category=Category.BEVERAGES, recipe_ids=("r2",))
        projector.reconcile(make_basket([shared, water]))

        by_recipe = projector.group_by_recipe()
        by_category = projector.group_by_category()

        assert [item.id for item in by_recipe["r1"]] == ["flour"]
        assert [item.id for item in by_recipe["r2"]] == ["flour", "water"]
        appearances = [
            item.id for items in by_category.values() for item in items if item.id == "flour"
        ]
        assert appearances == ["flour"]

    def test_no_duplicates_within_bucket(self, projector):
        projector.reconcile(make_basket([make_item("x", recipe_ids=("r1", "r1"))]))

        assert [item.id for item in projector.group_by_recipe()["r1"]] == ["x"]


class TestFilter:
    """Tests for StableViewProjector.filter."""

    def test_case_insensitive_substring(self, projector):
        projector.reconcile(
            make_basket(
                [
                    make_item("1", name="Whole Milk"),
                    make_item("2", name="flour"),
                    make_item("3", name="buttermilk"),
                ]
            )
        )

        assert [item.id for item in projector.filter("MILK")] == ["1", "3"]

    def test_no_match(self, projector):
        projector.reconcile(make_basket([make_item("1", name="flour")]))

        assert projector.filter("chocolate") == []


class TestProject:
    """Tests for StableViewProjector.project."""

    def test_category_mode_keys_are_labels(self, projector):
        projector.reconcile(make_basket([make_item("milk", category=Category.DAIRY)]))

        view = projector.project(ViewMode.CATEGORY)

        assert isinstance(view, BasketView)
        assert list(view.groups) == ["Dairy"]
        assert not view.is_filtered

    def test_recipe_mode_keys_are_titles(self, projector):
        projector.reconcile(make_basket([make_item("flour", recipe_ids=("r1", "r2"))]))

        view = projector.project("recipe")

        assert view.mode is ViewMode.RECIPE
        assert list(view.groups) == ["Soup", "Salad"]

    def test_unknown_recipe_falls_back_to_id(self, projector):
        projector.reconcile(make_basket([make_item("x", recipe_ids=("r9",))]))

        assert list(projector.project(ViewMode.RECIPE).groups) == ["r9"]

    def test_shared_title_keeps_both_recipes(self, projector):
        recipes = (("a1b2c3d4e5", "Pancakes"), ("f6e5d4c3b2", "Pancakes"), ("r3", "Soup"))
        projector.reconcile(
            make_basket(
                [
                    make_item("i1", recipe_ids=("a1b2c3d4e5",)),
                    make_item("i2", recipe_ids=("f6e5d4c3b2",)),
                    make_item("i3", recipe_ids=("r3",)),
                ],
                recipes=recipes,
            )
        )

        groups = projector.project(ViewMode.RECIPE).groups

        assert list(groups) == ["Pancakes (a1b2c3d4)", "Pancakes (f6e5d4c3)", "Soup"]
        assert [item.id for items in groups.values() for item in items] == ["i1", "i2", "i3"]

    def test_search_bypasses_grouping(self, projector):
        projector.reconcile(
            make_basket([make_item("1", name="milk"), make_item("2", name="flour")])
        )

        view = projector.project(ViewMode.CATEGORY, search="  mil ")

        assert view.is_filtered
        assert view.search == "mil"
        assert view.groups == {}
        assert [item.id for item in view.items] == ["1"]

    def test_blank_search_is_ignored(self, projector):
        projector.reconcile(make_basket([make_item("1", name="milk")]))

        assert not projector.project(search="   ").is_filtered

    def test_invalid_mode_raises(self, projector):
        with pytest.raises(ValueError):
            projector.project("alphabetical")
