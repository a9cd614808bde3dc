"""Recipe and tag catalog with tag reference counting."""

import json
import logging
import sqlite3
import uuid
from typing import Any

from rapidfuzz import fuzz

from .database import Database, now_iso, parse_timestamp
from .errors import NotFoundError, ValidationError
from .models import Ingredient, Recipe, Tag, Translation

logger = logging.getLogger(__name__)

# Fields update_recipe() accepts
EDITABLE_FIELDS = {
    "title",
    "description",
    "image_url",
    "source_url",
    "tags",
    "ingredients",
    "steps",
    "prep_time",
    "cook_time",
    "servings",
}

SEARCH_THRESHOLD = 75


def _recipe_from_row(row: sqlite3.Row) -> Recipe:
    translation = json.loads(row["translation"]) if row["translation"] else None
    return Recipe(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        image_url=row["image_url"],
        source_url=row["source_url"],
        tags=json.loads(row["tags"]),
        ingredients=[Ingredient.from_dict(ing) for ing in json.loads(row["ingredients"])],
        steps=json.loads(row["steps"]),
        prep_time=row["prep_time"],
        cook_time=row["cook_time"],
        servings=row["servings"],
        translation=Translation.from_dict(translation) if translation else None,
        created_at=parse_timestamp(row["created_at"]),
        updated_at=parse_timestamp(row["updated_at"]),
    )


def _tag_from_row(row: sqlite3.Row) -> Tag:
    return Tag(id=row["id"], name=row["name"], recipe_count=row["recipe_count"])


def _unique_tags(tags: list[str]) -> list[str]:
    result: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in result:
            result.append(tag)
    return result


def search_score(query: str, recipe: Recipe) -> int:
    """Score how well a recipe matches a search query (0-100)."""
    query_lower = query.lower().strip()
    title = recipe.title.lower()
    haystack = " ".join(
        [title, recipe.description.lower(), *(t.lower() for t in recipe.tags)]
        + [ing.name.lower() for ing in recipe.ingredients]
    )

    if query_lower in title:
        return 100
    if query_lower in haystack:
        return 90

    # Typo-tolerant fallback
    token_score = fuzz.token_set_ratio(query_lower, title)
    partial_score = fuzz.partial_ratio(query_lower, haystack)
    return int(token_score * 0.6 + partial_score * 0.4)


class RecipeCatalog:
    """Create, browse, edit and delete recipes and their tags."""

    def __init__(self, db: Database) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Recipes
    # ------------------------------------------------------------------

    def save_recipe(self, recipe: Recipe) -> Recipe:
        """
        Store a new recipe.

        Assigns an id and timestamps and counts the recipe's tags,
        creating tags that do not exist yet.

        Returns:
            The stored recipe
        """
        if recipe.servings is not None and recipe.servings < 1:
            raise ValidationError("Servings must be at least 1")

        recipe_id = uuid.uuid4().hex
        now = now_iso()
        tags = _unique_tags(recipe.tags)

        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO recipes (
                    id, title, description, image_url, source_url, tags, ingredients,
                    steps, prep_time, cook_time, servings, translation, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    recipe_id,
                    recipe.title,
                    recipe.description,
                    recipe.image_url,
                    recipe.source_url,
                    json.dumps(tags, ensure_ascii=False),
                    json.dumps([ing.to_dict() for ing in recipe.ingredients], ensure_ascii=False),
                    json.dumps(recipe.steps, ensure_ascii=False),
                    recipe.prep_time,
                    recipe.cook_time,
                    recipe.servings,
                    json.dumps(recipe.translation.to_dict(), ensure_ascii=False)
                    if recipe.translation
                    else None,
                    now,
                    now,
                ),
            )
            self._adjust_tag_counts(conn, tags, +1)

        logger.info("Saved recipe %s (%s)", recipe_id, recipe.title)
        return self.get_recipe(recipe_id)

    def get_recipe(self, recipe_id: str) -> Recipe:
        """
        Get a recipe by id.

        Raises:
            NotFoundError: If the recipe does not exist
        """
        with self.db.reading() as conn:
            row = conn.execute("SELECT * FROM recipes WHERE id = ?", (recipe_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Recipe '{recipe_id}' not found")
        return _recipe_from_row(row)

    def list_recipes(self, tag: str | None = None) -> list[Recipe]:
        """List recipes, newest first, optionally only those carrying a tag."""
        if tag:
            return self.recipes_with_tag(tag)
        with self.db.reading() as conn:
            rows = conn.execute(
                "SELECT * FROM recipes ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
        return [_recipe_from_row(row) for row in rows]

    def search_recipes(self, query: str, limit: int = 20) -> list[Recipe]:
        """
        Search recipes by title, description, tags and ingredient names.

        Substring hits rank first; close fuzzy matches are also returned
        so small typos still find the recipe.
        """
        if not query.strip():
            return self.list_recipes()[:limit]

        scored = []
        for recipe in self.list_recipes():
            score = search_score(query, recipe)
            if score >= SEARCH_THRESHOLD:
                scored.append((score, recipe))

        # Stable sort keeps newest-first order among equal scores
        scored.sort(key=lambda pair: pair[0], reverse=True)
        return [recipe for _, recipe in scored[:limit]]

    def update_recipe(self, recipe_id: str, **changes: Any) -> Recipe:
        """
        Edit recipe fields.

        Tag counts follow the difference between old and new tags.

        Raises:
            NotFoundError: If the recipe does not exist
            ValidationError: If an unknown field or invalid value is given
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
        if "servings" in changes and (changes["servings"] is None or changes["servings"] < 1):
            raise ValidationError("Servings must be at least 1")
        if "title" in changes and not (changes["title"] or "").strip():
            raise ValidationError("Title cannot be empty")

        current = self.get_recipe(recipe_id)
        values: dict[str, Any] = {}
        for name, value in changes.items():
            if name == "tags":
                values[name] = json.dumps(_unique_tags(value), ensure_ascii=False)
            elif name == "ingredients":
                values[name] = json.dumps(
                    [ing.to_dict() for ing in value], ensure_ascii=False
                )
            elif name == "steps":
                values[name] = json.dumps(list(value), ensure_ascii=False)
            else:
                values[name] = value
        values["updated_at"] = now_iso()

        assignments = ", ".join(f"{name} = ?" for name in values)
        with self.db.transaction() as conn:
            conn.execute(
                f"UPDATE recipes SET {assignments} WHERE id = ?",
                (*values.values(), recipe_id),
            )
            if "tags" in changes:
                old_tags = set(current.tags)
                new_tags = set(_unique_tags(changes["tags"]))
                self._adjust_tag_counts(conn, sorted(new_tags - old_tags), +1)
                self._adjust_tag_counts(conn, sorted(old_tags - new_tags), -1)

        return self.get_recipe(recipe_id)

    def delete_recipe(self, recipe_id: str) -> None:
        """
        Delete a recipe and release its tags.

        Raises:
            NotFoundError: If the recipe does not exist
        """
        recipe = self.get_recipe(recipe_id)
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM recipes WHERE id = ?", (recipe_id,))
            self._adjust_tag_counts(conn, recipe.tags, -1)
        logger.info("Deleted recipe %s (%s)", recipe_id, recipe.title)

    def set_translation(self, recipe_id: str, translation: Translation) -> Recipe:
        """Attach a translation to a recipe, replacing any previous one."""
        self.get_recipe(recipe_id)
        with self.db.transaction() as conn:
            conn.execute(
                "UPDATE recipes SET translation = ?, updated_at = ? WHERE id = ?",
                (json.dumps(translation.to_dict(), ensure_ascii=False), now_iso(), recipe_id),
            )
        return self.get_recipe(recipe_id)

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def list_tags(self) -> list[Tag]:
        """List tags, most used first."""
        with self.db.reading() as conn:
            rows = conn.execute(
                "SELECT * FROM tags ORDER BY recipe_count DESC, name COLLATE NOCASE"
            ).fetchall()
        return [_tag_from_row(row) for row in rows]

    def get_tag(self, tag_id: str) -> Tag:
        with self.db.reading() as conn:
            row = conn.execute("SELECT * FROM tags WHERE id = ?", (tag_id,)).fetchone()
        if row is None:
            raise NotFoundError(f"Tag '{tag_id}' not found")
        return _tag_from_row(row)

    def find_tag(self, name: str) -> Tag:
        with self.db.reading() as conn:
            row = conn.execute("SELECT * FROM tags WHERE name = ?", (name.strip(),)).fetchone()
        if row is None:
            raise NotFoundError(f"Tag '{name}' not found")
        return _tag_from_row(row)

    def create_tag(self, name: str) -> Tag:
        """Create an unused tag. Returns the existing tag if the name is taken."""
        name = name.strip()
        if not name:
            raise ValidationError("Tag name cannot be empty")
        with self.db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO tags (id, name, recipe_count, created_at) VALUES (?, ?, 0, ?)
                ON CONFLICT(name) DO NOTHING
                """,
                (uuid.uuid4().hex, name, now_iso()),
            )
        return self.find_tag(name)

    def rename_tag(self, tag_id: str, new_name: str) -> Tag:
        """
        Rename a tag everywhere it is used.

        Raises:
            NotFoundError: If the tag does not exist
            ValidationError: If the new name is empty or already taken
        """
        new_name = new_name.strip()
        if not new_name:
            raise ValidationError("Tag name cannot be empty")
        tag = self.get_tag(tag_id)
        if new_name == tag.name:
            return tag

        with self.db.reading() as conn:
            taken = conn.execute("SELECT 1 FROM tags WHERE name = ?", (new_name,)).fetchone()
        if taken:
            raise ValidationError(f"Tag '{new_name}' already exists")

        with self.db.transaction() as conn:
            for recipe_id, tags in self._recipe_tags_containing(conn, tag.name):
                renamed = _unique_tags([new_name if t == tag.name else t for t in tags])
                conn.execute(
                    "UPDATE recipes SET tags = ? WHERE id = ?",
                    (json.dumps(renamed, ensure_ascii=False), recipe_id),
                )
            conn.execute("UPDATE tags SET name = ? WHERE id = ?", (new_name, tag_id))

        return self.get_tag(tag_id)

    def recipes_with_tag(self, name: str) -> list[Recipe]:
        """Recipes whose tag list contains the given tag, newest first."""
        with self.db.reading() as conn:
            rows = conn.execute(
                """
                SELECT * FROM recipes
                WHERE EXISTS (SELECT 1 FROM json_each(recipes.tags) WHERE value = ?)
                ORDER BY created_at DESC, rowid DESC
                """,
                (name,),
            ).fetchall()
        return [_recipe_from_row(row) for row in rows]

    def delete_tag(self, tag_id: str) -> int:
        """
        Delete a tag, first stripping it from every recipe that carries it.

        Runs as one transaction, so the tag row never disappears while
        recipes still reference it.

        Returns:
            Number of recipes the tag was removed from

        Raises:
            NotFoundError: If the tag does not exist
        """
        tag = self.get_tag(tag_id)

        with self.db.transaction() as conn:
            affected = self._recipe_tags_containing(conn, tag.name)
            for recipe_id, tags in affected:
                remaining = [t for t in tags if t != tag.name]
                conn.execute(
                    "UPDATE recipes SET tags = ?, updated_at = ? WHERE id = ?",
                    (json.dumps(remaining, ensure_ascii=False), now_iso(), recipe_id),
                )
            conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,))

        logger.info("Deleted tag '%s' from %d recipe(s)", tag.name, len(affected))
        return len(affected)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _recipe_tags_containing(
        conn: sqlite3.Connection, name: str
    ) -> list[tuple[str, list[str]]]:
        rows = conn.execute(
            """
            SELECT id, tags FROM recipes
            WHERE EXISTS (SELECT 1 FROM json_each(recipes.tags) WHERE value = ?)
            """,
            (name,),
        ).fetchall()
        return [(row["id"], json.loads(row["tags"])) for row in rows]

    @staticmethod
    def _adjust_tag_counts(conn: sqlite3.Connection, names: list[str], delta: int) -> None:
        now = now_iso()
        for name in names:
            if delta > 0:
                conn.execute(
                    """
                    INSERT INTO tags (id, name, recipe_count, created_at) VALUES (?, ?, ?, ?)
                    ON CONFLICT(name) DO UPDATE
                        SET recipe_count = recipe_count + excluded.recipe_count
                    """,
                    (uuid.uuid4().hex, name, delta, now),
                )
            else:
                conn.execute(
                    "UPDATE tags SET recipe_count = MAX(recipe_count + ?, 0) WHERE name = ?",
                    (delta, name),
                )
