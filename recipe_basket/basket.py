"""Basket store: recipes in the basket and the grocery items they feed.

Every mutation runs in a single transaction, so a recipe is never left in
the basket without its items, and an item never outlives the last recipe
contributing to it.
"""

import logging
import sqlite3
import uuid
from dataclasses import dataclass, field

from .aggregator import expand_recipe, item_key
from .categories import Category, CategoryRule
from .database import Database, now_iso, parse_timestamp
from .errors import DanglingItemError, NotFoundError, RecipeBasketError, ValidationError
from .models import Basket, BasketRecipeEntry, GroceryItem, Recipe
from .validation import validate_recipe_snapshot

logger = logging.getLogger(__name__)

CURRENT_BASKET_KEY = "current_basket"


@dataclass
class BatchResult:
    """Outcome of a batch of independent item updates."""

    succeeded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)  # item id -> error message

    @property
    def ok(self) -> bool:
        return not self.failed


class BasketStore:
    """Canonical basket state stored in SQLite."""

    def __init__(self, db: Database, rules: list[CategoryRule] | None = None) -> None:
        self.db = db
        self.rules = rules

    # ------------------------------------------------------------------
    # Baskets
    # ------------------------------------------------------------------

    def create_basket(self, name: str | None = None) -> Basket:
        """Create an empty basket and make it the current one."""
        basket_id = uuid.uuid4().hex
        now = now_iso()
        with self.db.transaction() as conn:
            conn.execute(
                "INSERT INTO baskets (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (basket_id, name, now, now),
            )
        self.db.set_setting(CURRENT_BASKET_KEY, basket_id)
        logger.info("Created basket %s", basket_id)
        return self.get_snapshot(basket_id)

    def current_basket_id(self) -> str | None:
        """Id of the current basket, or None if there is none."""
        basket_id = self.db.get_setting(CURRENT_BASKET_KEY)
        if basket_id and self._basket_exists(basket_id):
            return basket_id
        return None

    def set_current(self, basket_id: str) -> None:
        """
        Make a basket the current one.

        Raises:
            NotFoundError: If the basket does not exist
        """
        self._require_basket(basket_id)
        self.db.set_setting(CURRENT_BASKET_KEY, basket_id)

    def get_or_create_current(self) -> str:
        """Return the current basket id, creating a basket on first use."""
        basket_id = self.current_basket_id()
        if basket_id is None:
            basket_id = self.create_basket().id
        return basket_id

    def list_baskets(self) -> list[Basket]:
        """List all baskets, newest first."""
        with self.db.reading() as conn:
            rows = conn.execute("SELECT id FROM baskets ORDER BY created_at DESC").fetchall()
        return [self.get_snapshot(row["id"]) for row in rows]

    # ------------------------------------------------------------------
    # Recipes
    # ------------------------------------------------------------------

    def add_recipe(self, basket_id: str, recipe_id: str, recipe: Recipe, servings: int) -> Basket:
        """
        Add a recipe to a basket at the given serving count.

        If the recipe is already in the basket, only its serving count is
        updated; existing items keep their amounts. Otherwise each
        ingredient is scaled and either joins the existing item with the
        same name and unit or becomes a new item.

        Note: joining an existing item adds the recipe as a contributor but
        leaves the stored amount as it was. Amounts are not summed across
        recipes.

        Args:
            basket_id: Target basket
            recipe_id: Catalog id of the recipe
            recipe: Recipe data at the time of adding
            servings: Servings wanted in the basket

        Returns:
            The updated basket

        Raises:
            ValidationError: If servings or the recipe data are invalid
            NotFoundError: If the basket does not exist
        """
        if isinstance(servings, bool) or not isinstance(servings, int) or servings < 1:
            raise ValidationError("Servings must be at least 1")
        validate_recipe_snapshot(recipe)
        self._require_basket(basket_id)

        with self.db.transaction() as conn:
            existing = conn.execute(
                "SELECT servings FROM basket_recipes WHERE basket_id = ? AND recipe_id = ?",
                (basket_id, recipe_id),
            ).fetchone()

            if existing:
                conn.execute(
                    "UPDATE basket_recipes SET servings = ? WHERE basket_id = ? AND recipe_id = ?",
                    (servings, basket_id, recipe_id),
                )
                logger.info(
                    "Updated servings of %s in basket %s: %d -> %d",
                    recipe_id,
                    basket_id,
                    existing["servings"],
                    servings,
                )
            else:
                conn.execute(
                    """
                    INSERT INTO basket_recipes
                        (basket_id, recipe_id, title, servings, original_servings)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (basket_id, recipe_id, recipe.title, servings, recipe.servings),
                )
                proposed = expand_recipe(
                    recipe.ingredients, servings, recipe.servings, recipe_id, self.rules
                )
                merged = 0
                for item in proposed:
                    # "IS" compares NULL units as equal
                    candidates = conn.execute(
                        """
                        SELECT id, name FROM basket_items
                        WHERE basket_id = ? AND unit IS ?
                        ORDER BY rowid
                        """,
                        (basket_id, item.unit),
                    ).fetchall()
                    row = next(
                        (c for c in candidates if item_key(c["name"], item.unit) == item.key),
                        None,
                    )
                    if row:
                        item_id = row["id"]
                        merged += 1
                    else:
                        item_id = uuid.uuid4().hex
                        conn.execute(
                            """
                            INSERT INTO basket_items
                                (id, basket_id, name, amount, unit, category, checked)
                            VALUES (?, ?, ?, ?, ?, ?, 0)
                            """,
                            (
                                item_id,
                                basket_id,
                                item.name,
                                item.amount,
                                item.unit,
                                item.category.value,
                            ),
                        )
                    conn.execute(
                        """
                        INSERT OR IGNORE INTO basket_item_recipes (item_id, recipe_id)
                        VALUES (?, ?)
                        """,
                        (item_id, recipe_id),
                    )
                logger.info(
                    "Added recipe %s to basket %s at %d servings (%d items, %d merged)",
                    recipe_id,
                    basket_id,
                    servings,
                    len(proposed),
                    merged,
                )

            self._touch(conn, basket_id)

        return self.get_snapshot(basket_id)

    def remove_recipe(self, basket_id: str, recipe_id: str) -> bool:
        """
        Remove a recipe from a basket.

        Items only this recipe contributed are deleted; shared items just
        lose the recipe as a contributor. Removing a recipe that is not in
        the basket does nothing.

        Returns:
            True if the recipe was in the basket
        """
        with self.db.transaction() as conn:
            deleted = conn.execute(
                "DELETE FROM basket_recipes WHERE basket_id = ? AND recipe_id = ?",
                (basket_id, recipe_id),
            ).rowcount
            if not deleted:
                return False

            conn.execute(
                """
                DELETE FROM basket_item_recipes
                WHERE recipe_id = ?
                  AND item_id IN (SELECT id FROM basket_items WHERE basket_id = ?)
                """,
                (recipe_id, basket_id),
            )
            orphans = self._delete_orphans(conn, basket_id)
            self._touch(conn, basket_id)

        logger.info(
            "Removed recipe %s from basket %s (%d items deleted)", recipe_id, basket_id, orphans
        )
        return True

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def set_item_checked(self, item_id: str, checked: bool) -> None:
        """
        Check or uncheck a grocery item.

        Raises:
            NotFoundError: If the item does not exist
        """
        with self.db.transaction() as conn:
            updated = conn.execute(
                "UPDATE basket_items SET checked = ? WHERE id = ?", (int(checked), item_id)
            ).rowcount
        if not updated:
            raise NotFoundError(f"Item '{item_id}' not found")

    def set_items_checked(self, item_ids: list[str], checked: bool) -> BatchResult:
        """
        Check or uncheck several items, one update each.

        A failing item does not undo the others; failures are reported in
        the result.
        """
        result = BatchResult()
        for item_id in item_ids:
            try:
                self.set_item_checked(item_id, checked)
            except RecipeBasketError as e:
                logger.warning("Could not update item %s: %s", item_id, e)
                result.failed[item_id] = str(e)
            else:
                result.succeeded.append(item_id)
        return result

    def clear_checked(self, basket_id: str) -> int:
        """
        Delete every checked item, whoever contributed it.

        Recipe entries stay in the basket even if they lose all their items.

        Returns:
            Number of items deleted
        """
        with self.db.transaction() as conn:
            count = conn.execute(
                "DELETE FROM basket_items WHERE basket_id = ? AND checked = 1", (basket_id,)
            ).rowcount
            self._touch(conn, basket_id)
        logger.info("Cleared %d checked item(s) from basket %s", count, basket_id)
        return count

    def clear_all(self, basket_id: str) -> None:
        """Delete every item and every recipe entry of a basket."""
        with self.db.transaction() as conn:
            conn.execute("DELETE FROM basket_items WHERE basket_id = ?", (basket_id,))
            conn.execute("DELETE FROM basket_recipes WHERE basket_id = ?", (basket_id,))
            self._touch(conn, basket_id)
        logger.info("Cleared basket %s", basket_id)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get_snapshot(self, basket_id: str) -> Basket:
        """
        Read a basket with its recipes and items.

        Raises:
            NotFoundError: If the basket does not exist
        """
        with self.db.reading() as conn:
            row = conn.execute("SELECT * FROM baskets WHERE id = ?", (basket_id,)).fetchone()
            if row is None:
                raise NotFoundError(f"Basket '{basket_id}' not found")

            recipes = [
                BasketRecipeEntry(
                    recipe_id=r["recipe_id"],
                    title=r["title"],
                    servings=r["servings"],
                    original_servings=r["original_servings"],
                )
                for r in conn.execute(
                    "SELECT * FROM basket_recipes WHERE basket_id = ? ORDER BY rowid",
                    (basket_id,),
                )
            ]

            contributors: dict[str, list[str]] = {}
            for r in conn.execute(
                """
                SELECT c.item_id, c.recipe_id FROM basket_item_recipes c
                JOIN basket_items i ON i.id = c.item_id
                WHERE i.basket_id = ?
                ORDER BY c.rowid
                """,
                (basket_id,),
            ):
                contributors.setdefault(r["item_id"], []).append(r["recipe_id"])

            items = [
                GroceryItem(
                    id=r["id"],
                    name=r["name"],
                    amount=r["amount"],
                    unit=r["unit"],
                    category=Category.parse(r["category"]),
                    checked=bool(r["checked"]),
                    recipe_ids=contributors.get(r["id"], []),
                )
                for r in conn.execute(
                    "SELECT * FROM basket_items WHERE basket_id = ? ORDER BY rowid", (basket_id,)
                )
            ]

        return Basket(
            id=row["id"],
            name=row["name"],
            recipes=recipes,
            items=items,
            created_at=parse_timestamp(row["created_at"]),
            updated_at=parse_timestamp(row["updated_at"]),
        )

    def find_dangling_items(self, basket_id: str) -> list[str]:
        """
        Find items with no contributors, or contributors not in the basket.

        Returns:
            Ids of offending items (empty when the basket is consistent)
        """
        basket = self.get_snapshot(basket_id)
        present = {entry.recipe_id for entry in basket.recipes}
        return [
            item.id
            for item in basket.items
            if not item.recipe_ids or any(rid not in present for rid in item.recipe_ids)
        ]

    def check_invariants(self, basket_id: str) -> None:
        """
        Raises:
            DanglingItemError: If any item has lost its contributing recipes
        """
        dangling = self.find_dangling_items(basket_id)
        if dangling:
            raise DanglingItemError(dangling)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _basket_exists(self, basket_id: str) -> bool:
        with self.db.reading() as conn:
            row = conn.execute("SELECT 1 FROM baskets WHERE id = ?", (basket_id,)).fetchone()
        return row is not None

    def _require_basket(self, basket_id: str) -> None:
        if not self._basket_exists(basket_id):
            raise NotFoundError(f"Basket '{basket_id}' not found")

    @staticmethod
    def _delete_orphans(conn: sqlite3.Connection, basket_id: str) -> int:
        return conn.execute(
            """
            DELETE FROM basket_items
            WHERE basket_id = ?
              AND NOT EXISTS (
                  SELECT 1 FROM basket_item_recipes c WHERE c.item_id = basket_items.id
              )
            """,
            (basket_id,),
        ).rowcount

    @staticmethod
    def _touch(conn: sqlite3.Connection, basket_id: str) -> None:
        conn.execute("UPDATE baskets SET updated_at = ? WHERE id = ?", (now_iso(), basket_id))
