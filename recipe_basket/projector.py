"""Stable display order and groupings for a basket view.

The store does not promise a stable item order between reads, and a list
that jumps around when an item is checked is hard to shop from. A projector
remembers the order it first showed and only ever drops removed items in
place or appends new ones at the end.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from .categories import Category
from .models import Basket, GroceryItem


class ViewMode(str, Enum):
    CATEGORY = "category"
    RECIPE = "recipe"


@dataclass
class BasketView:
    """What a view should render: groups, or a flat filtered list."""

    mode: ViewMode
    groups: dict[str, list[GroceryItem]] = field(default_factory=dict)
    items: list[GroceryItem] = field(default_factory=list)
    search: str | None = None

    @property
    def is_filtered(self) -> bool:
        return bool(self.search)


class StableViewProjector:
    """Remembered item order for one view session."""

    def __init__(self) -> None:
        self._order: list[str] | None = None
        self._items: dict[str, GroceryItem] = {}
        self._recipe_titles: dict[str, str] = {}

    @property
    def order(self) -> list[str]:
        return list(self._order or [])

    def reconcile(self, snapshot: Basket) -> list[str]:
        """
        Merge a fresh basket snapshot into the remembered order.

        The first snapshot's order is adopted as is. After that, ids still
        present keep their remembered positions and new ids are appended in
        the order the snapshot lists them.

        Returns:
            The new remembered order
        """
        ids = [item.id for item in snapshot.items]

        if self._order is None:
            order = ids
        else:
            present = set(ids)
            kept = [item_id for item_id in self._order if item_id in present]
            known = set(kept)
            appended = [item_id for item_id in ids if item_id not in known]
            order = kept + appended

        self._order = order
        self._items = {item.id: item for item in snapshot.items}
        self._recipe_titles = {entry.recipe_id: entry.title for entry in snapshot.recipes}
        return list(order)

    def reset(self) -> None:
        """Forget the remembered order; the next snapshot is adopted as is."""
        self._order = None
        self._items = {}
        self._recipe_titles = {}

    def items(self) -> list[GroceryItem]:
        """Items of the last snapshot in remembered order."""
        return [self._items[item_id] for item_id in self._order or [] if item_id in self._items]

    def recipe_labels(self) -> dict[str, str]:
        """Group label per recipe id; a title shared by several recipes gets a short id."""
        counts = Counter(self._recipe_titles.values())
        return {
            recipe_id: f"{title} ({recipe_id[:8]})" if counts[title] > 1 else title
            for recipe_id, title in self._recipe_titles.items()
        }

    def group_by_category(self) -> dict[Category, list[GroceryItem]]:
        """Bucket items by category; buckets sorted by category name."""
        buckets: dict[Category, list[GroceryItem]] = {}
        for item in self.items():
            buckets.setdefault(item.category, []).append(item)
        return {category: buckets[category] for category in sorted(buckets, key=lambda c: c.value)}

    def group_by_recipe(self) -> dict[str, list[GroceryItem]]:
        """
        Bucket items under each recipe that contributed them.

        An item fed by two recipes shows up under both.
        """
        buckets: dict[str, list[GroceryItem]] = {}
        for item in self.items():
            for recipe_id in item.recipe_ids:
                bucket = buckets.setdefault(recipe_id, [])
                if item not in bucket:
                    bucket.append(item)
        return buckets

    def filter(self, term: str) -> list[GroceryItem]:
        """Items whose name contains the term (case-insensitive), in remembered order."""
        needle = term.casefold().strip()
        return [item for item in self.items() if needle in item.name.casefold()]

    def project(
        self, mode: ViewMode | str = ViewMode.CATEGORY, search: str | None = None
    ) -> BasketView:
        """
        Build what to display for the current mode.

        An active search skips grouping and returns a flat filtered list.
        """
        mode = ViewMode(mode)
        if search and search.strip():
            return BasketView(mode=mode, items=self.filter(search), search=search.strip())

        if mode is ViewMode.RECIPE:
            labels = self.recipe_labels()
            groups = {
                labels.get(recipe_id, recipe_id): items
                for recipe_id, items in self.group_by_recipe().items()
            }
        else:
            groups = {category.value: items for category, items in self.group_by_category().items()}
        return BasketView(mode=mode, groups=groups, items=self.items())
