"""Interactive TUI for shopping from a basket."""

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import DataTable, Footer, Header, Input, Static

from .basket import BasketStore
from .errors import RecipeBasketError
from .models import Basket, GroceryItem
from .projector import StableViewProjector, ViewMode
from .scaler import format_quantity

# A table row: the item it shows (None for a group heading) and its cells
Row = tuple[str | None, tuple[str, str, str]]


def _item_cells(item: GroceryItem) -> tuple[str, str, str]:
    return ("[x]" if item.checked else "[ ]", item.name, format_quantity(item.amount, item.unit))


class BasketScreen(App[None]):
    """Grocery list with check-off, two groupings and search."""

    CSS = """
    Screen {
        background: $surface;
    }

    #main-container {
        height: 100%;
        padding: 1;
    }

    #summary {
        height: 3;
        padding: 0 1;
        background: $primary-background;
        color: $text;
        content-align: center middle;
    }

    #search {
        margin: 1 0 0 0;
    }

    #items-table {
        height: 1fr;
        margin: 1 0;
    }
    """

    BINDINGS = [
        Binding("space", "toggle_item", "Check"),
        Binding("v", "switch_view", "Switch view"),
        Binding("slash", "focus_search", "Search"),
        Binding("escape", "clear_search", "Clear search"),
        Binding("a", "check_all", "Check all"),
        Binding("x", "clear_checked", "Clear checked"),
        Binding("r", "refresh", "Refresh"),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        store: BasketStore,
        basket_id: str,
        mode: ViewMode | str = ViewMode.CATEGORY,
    ) -> None:
        super().__init__()
        self.store = store
        self.basket_id = basket_id
        self.view_mode = ViewMode(mode)
        self.search_term: str | None = None
        self.projector = StableViewProjector()
        self.basket: Basket = self._load()
        self._row_items: list[str | None] = []

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="main-container"):
            yield Static(self._get_summary(), id="summary")
            yield Input(placeholder="Filter items...", id="search")
            table = DataTable(id="items-table")
            table.cursor_type = "row"
            table.add_columns("", "Item", "Quantity")
            yield table
        yield Footer()

    def on_mount(self) -> None:
        self.title = self.basket.name or "Grocery Basket"
        self._refresh_table()
        self.query_one("#items-table", DataTable).focus()

    def _load(self) -> Basket:
        basket = self.store.get_snapshot(self.basket_id)
        self.projector.reconcile(basket)
        return basket

    def _get_summary(self) -> str:
        total = len(self.basket.items)
        checked = self.basket.checked_count
        return (
            f"Recipes: {len(self.basket.recipes)} | Items: {total} | "
            f"Checked: {checked} | View: {self.view_mode.value}"
        )

    def _build_rows(self) -> list[Row]:
        view = self.projector.project(self.view_mode, self.search_term)
        if view.is_filtered:
            return [(item.id, _item_cells(item)) for item in view.items]

        rows: list[Row] = []
        for name, items in view.groups.items():
            rows.append((None, ("", f"── {name} ──", "")))
            rows.extend((item.id, _item_cells(item)) for item in items)
        return rows

    def _refresh_table(self) -> None:
        table = self.query_one("#items-table", DataTable)
        cursor = table.cursor_row
        table.clear()

        self._row_items = []
        for item_id, cells in self._build_rows():
            self._row_items.append(item_id)
            table.add_row(*cells)

        if self._row_items:
            table.move_cursor(row=min(cursor, len(self._row_items) - 1))

        self.query_one("#summary", Static).update(self._get_summary())

    def _reload(self) -> None:
        try:
            self.basket = self._load()
        except RecipeBasketError as e:
            self.notify(str(e), severity="error")
            return
        self._refresh_table()

    def _selected_item(self) -> GroceryItem | None:
        table = self.query_one("#items-table", DataTable)
        row = table.cursor_row
        if row is None or not 0 <= row < len(self._row_items):
            return None
        item_id = self._row_items[row]
        return self.basket.find_item(item_id) if item_id else None

    def action_toggle_item(self) -> None:
        item = self._selected_item()
        if item is None:
            return
        try:
            self.store.set_item_checked(item.id, not item.checked)
        except RecipeBasketError as e:
            self.notify(str(e), severity="error")
        self._reload()

    def action_check_all(self) -> None:
        unchecked = [item.id for item in self.basket.items if not item.checked]
        result = self.store.set_items_checked(unchecked, True)
        if result.failed:
            self.notify(f"{len(result.failed)} item(s) could not be checked", severity="warning")
        self._reload()

    def action_clear_checked(self) -> None:
        try:
            count = self.store.clear_checked(self.basket_id)
        except RecipeBasketError as e:
            self.notify(str(e), severity="error")
            return
        self.notify(f"Removed {count} checked item(s)")
        self._reload()

    def action_switch_view(self) -> None:
        if self.view_mode is ViewMode.CATEGORY:
            self.view_mode = ViewMode.RECIPE
        else:
            self.view_mode = ViewMode.CATEGORY
        self._refresh_table()

    def action_focus_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_clear_search(self) -> None:
        search = self.query_one("#search", Input)
        search.value = ""
        self.search_term = None
        self._refresh_table()
        self.query_one("#items-table", DataTable).focus()

    def action_refresh(self) -> None:
        self._reload()

    @on(Input.Changed, "#search")
    def on_search_changed(self, event: Input.Changed) -> None:
        self.search_term = event.value or None
        self._refresh_table()

    @on(Input.Submitted, "#search")
    def on_search_submitted(self) -> None:
        self.query_one("#items-table", DataTable).focus()


def run_basket_view(
    store: BasketStore, basket_id: str, mode: ViewMode | str = ViewMode.CATEGORY
) -> None:
    """Launch the interactive basket view."""
    BasketScreen(store, basket_id, mode).run()
