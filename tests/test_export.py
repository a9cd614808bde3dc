"""Tests for the export module."""

import json

import pytest

from recipe_basket.errors import ValidationError
from recipe_basket.export import export_basket, export_to_json, export_to_markdown


@pytest.fixture
def filled_basket(store, basket_id, pancakes, bread):
    store.add_recipe(basket_id, "p", pancakes, 4)
    basket = store.add_recipe(basket_id, "b", bread, 4)
    milk = next(item for item in basket.items if item.name == "milk")
    store.set_item_checked(milk.id, True)
    return store.get_snapshot(basket_id)


class TestExportToJson:
    """Tests for export_to_json function."""

    def test_structure(self, filled_basket, tmp_path):
        path = tmp_path / "basket.json"

        export_to_json(filled_basket, path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["basket_id"] == filled_basket.id
        assert data["name"] == "Weekly"
        assert [r["title"] for r in data["recipes"]] == ["Pancakes", "Bread"]
        assert data["summary"] == {"total_items": 4, "checked": 1, "remaining": 3}
        assert "exported_at" in data

    def test_items_keep_contributors(self, filled_basket, tmp_path):
        path = tmp_path / "basket.json"

        export_to_json(filled_basket, path)

        items = {item["name"]: item for item in json.loads(path.read_text())["items"]}
        assert items["flour"]["recipe_ids"] == ["p", "b"]
        assert items["flour"]["amount"] == 400.0
        assert items["flour"]["category"] == "Grains"
        assert items["milk"]["checked"] is True

    def test_groups_by_category(self, filled_basket, tmp_path):
        path = tmp_path / "basket.json"

        export_to_json(filled_basket, path)

        groups = json.loads(path.read_text())["groups"]
        assert list(groups) == ["Beverages", "Dairy", "Grains", "Spices"]

    def test_groups_by_recipe(self, filled_basket, tmp_path):
        path = tmp_path / "basket.json"

        export_to_json(filled_basket, path, mode="recipe")

        groups = json.loads(path.read_text())["groups"]
        assert list(groups) == ["Pancakes", "Bread"]
        assert len(groups["Bread"]) == 2

    def test_recipes_with_same_title_get_own_groups(self, store, basket_id, pancakes, tmp_path):
        store.add_recipe(basket_id, "p1", pancakes, 2)
        basket = store.add_recipe(basket_id, "p2", pancakes, 2)
        path = tmp_path / "basket.json"

        export_to_json(basket, path, mode="recipe")

        groups = json.loads(path.read_text())["groups"]
        assert list(groups) == ["Pancakes (p1)", "Pancakes (p2)"]
        assert len(groups["Pancakes (p1)"]) == 3
        assert len(groups["Pancakes (p2)"]) == 3


class TestExportToMarkdown:
    """Tests for export_to_markdown function."""

    def test_checklist(self, filled_basket, tmp_path):
        path = tmp_path / "basket.md"

        export_to_markdown(filled_basket, path)

        content = path.read_text(encoding="utf-8")
        assert content.startswith("# Weekly")
        assert "## Recipes" in content
        assert "- Pancakes (4 servings)" in content
        assert "## Grains" in content
        assert "- [ ] flour (400 g)" in content
        assert "- [x] milk (600 ml)" in content
        assert "- [ ] salt\n" in content

    def test_category_sections_in_order(self, filled_basket, tmp_path):
        path = tmp_path / "basket.md"

        export_to_markdown(filled_basket, path)

        content = path.read_text(encoding="utf-8")
        positions = [content.index(f"## {name}") for name in ("Beverages", "Dairy", "Grains")]
        assert positions == sorted(positions)

    def test_unnamed_basket(self, store, tmp_path):
        basket = store.create_basket()
        path = tmp_path / "empty.md"

        export_to_markdown(basket, path)

        assert path.read_text(encoding="utf-8").startswith("# Grocery List")


class TestExportBasket:
    """Tests for export_basket function."""

    def test_detects_json(self, filled_basket, tmp_path):
        assert export_basket(filled_basket, tmp_path / "list.json") == "json"

    def test_detects_markdown(self, filled_basket, tmp_path):
        assert export_basket(filled_basket, tmp_path / "list.markdown") == "md"

    def test_unknown_extension_defaults_to_markdown(self, filled_basket, tmp_path):
        path = tmp_path / "list.txt"

        assert export_basket(filled_basket, path) == "md"
        assert path.read_text(encoding="utf-8").startswith("# Weekly")

    def test_explicit_format_wins(self, filled_basket, tmp_path):
        path = tmp_path / "list.txt"

        assert export_basket(filled_basket, path, format="json") == "json"
        assert json.loads(path.read_text())["name"] == "Weekly"

    def test_pdf(self, filled_basket, tmp_path):
        path = tmp_path / "list.pdf"

        assert export_basket(filled_basket, path) == "pdf"
        assert path.read_bytes().startswith(b"%PDF")

    def test_unsupported_format(self, filled_basket, tmp_path):
        with pytest.raises(ValidationError, match="Unsupported export format"):
            export_basket(filled_basket, tmp_path / "list.csv", format="csv")
