"""Exception types shared across Recipe Basket."""


class RecipeBasketError(Exception):
    """Base class for all Recipe Basket errors."""

    pass


class NotFoundError(RecipeBasketError):
    """A referenced recipe, item, tag or basket does not exist."""

    pass


class ValidationError(RecipeBasketError):
    """Input was rejected before any state was changed."""

    pass


class TransportError(RecipeBasketError):
    """The extraction or translation service failed."""

    pass


class StoreError(RecipeBasketError):
    """The record store could not complete an operation."""

    pass


class DanglingItemError(RecipeBasketError):
    """A grocery item was left without contributing recipes.

    Never raised in normal operation; signals a bug in the basket store.
    """

    def __init__(self, item_ids: list[str]):
        self.item_ids = item_ids
        super().__init__(f"Grocery items without contributing recipes: {', '.join(item_ids)}")
