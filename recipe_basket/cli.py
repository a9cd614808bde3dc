"""CLI entry point for Recipe Basket."""

import logging

import click

from . import __version__
from .basket import BasketStore
from .catalog import RecipeCatalog
from .categories import DEFAULT_RULES, classify, load_rules, save_rules
from .config import CATEGORIES_FILE, DEFAULT_TARGET_LANGUAGE
from .database import Database
from .errors import NotFoundError, RecipeBasketError, ValidationError
from .export import export_basket
from .models import Basket, GroceryItem, Recipe, is_not_found
from .projector import StableViewProjector, ViewMode
from .recipe_parser import (
    EXTRACTION_PROMPT,
    parse_ingredients_text,
    parse_llm_response,
    parse_recipe_text,
    parse_recipe_url,
)
from .scaler import format_quantity, format_scale_info, scale_recipe
from .translator import Translator
from .tui import run_basket_view

# Shared database handle
_db: Database | None = None


def get_db() -> Database:
    """Get or create the database handle."""
    global _db
    if _db is None:
        _db = Database()
    return _db


def get_catalog() -> RecipeCatalog:
    return RecipeCatalog(get_db())


def get_store() -> BasketStore:
    try:
        rules = load_rules(CATEGORIES_FILE)
    except ValidationError as e:
        fail(f"Invalid category file: {e}")
    return BasketStore(get_db(), rules=rules)


def get_translator() -> Translator:
    return Translator()


def fail(message: str) -> None:
    """Print an error and exit with status 1."""
    click.echo(f"✗ {message}", err=True)
    raise SystemExit(1) from None


def short_id(value: str) -> str:
    return value[:8]


def resolve_recipe_id(catalog: RecipeCatalog, ref: str) -> str:
    """
    Resolve a full recipe id or a unique id prefix.

    Raises:
        NotFoundError: If nothing or more than one recipe matches
    """
    matches = [r.id for r in catalog.list_recipes() if r.id and r.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise NotFoundError(f"Recipe id '{ref}' is ambiguous ({len(matches)} matches)")
    raise NotFoundError(f"Recipe '{ref}' not found")


def resolve_item_ids(basket: Basket, refs: tuple[str, ...]) -> list[str]:
    """Resolve item ids or unique prefixes against a basket. Unknown refs pass through."""
    resolved = []
    for ref in refs:
        matches = [item.id for item in basket.items if item.id.startswith(ref)]
        resolved.append(matches[0] if len(matches) == 1 else ref)
    return resolved


def display_recipe(recipe: Recipe, servings: int | None = None, translated: bool = False) -> None:
    """Display a recipe, optionally scaled or translated."""
    translation = recipe.translation if translated else None

    click.echo()
    click.echo("=" * 60)
    click.echo(f"RECIPE: {(translation and translation.title) or recipe.title}")
    click.echo("=" * 60)

    if recipe.id:
        click.echo(f"Id: {recipe.id}")
    if recipe.source_url:
        click.echo(f"Source: {recipe.source_url}")
    if recipe.tags:
        click.echo(f"Tags: {', '.join(recipe.tags)}")
    if recipe.servings:
        click.echo(f"Servings: {recipe.servings}")
    if recipe.prep_time is not None or recipe.cook_time is not None:
        click.echo(
            f"Time: prep {recipe.prep_time or 0} min, cook {recipe.cook_time or 0} min"
        )

    description = (translation and translation.description) or recipe.description
    if description:
        click.echo(f"\n{description}")

    click.echo("\nIngredients:")
    if translation and translation.ingredients:
        for i, ing in enumerate(translation.ingredients, 1):
            click.echo(f"  {i}. {ing}")
    elif servings and recipe.servings and servings != recipe.servings:
        scaled, factor = scale_recipe(recipe, servings)
        click.echo(f"  ({format_scale_info(factor, recipe.servings, servings)})")
        for i, scaled_ing in enumerate(scaled, 1):
            click.echo(f"  {i}. {scaled_ing}")
    else:
        for i, ing in enumerate(recipe.ingredients, 1):
            click.echo(f"  {i}. {ing}")

    steps = (translation and translation.steps) or recipe.steps
    if steps:
        click.echo("\nSteps:")
        for i, step in enumerate(steps, 1):
            click.echo(f"  {i}. {step}")

    click.echo()


def display_basket(basket: Basket, mode: str, search: str | None = None) -> None:
    """Display a basket grouped by category or recipe."""
    projector = StableViewProjector()
    projector.reconcile(basket)
    view = projector.project(mode, search)

    click.echo()
    click.echo("=" * 60)
    click.echo(f"BASKET: {basket.name or short_id(basket.id)}")
    click.echo("=" * 60)

    if basket.recipes:
        click.echo("\nRecipes:")
        for entry in basket.recipes:
            scaled = (
                f" (from {entry.original_servings})"
                if entry.servings != entry.original_servings
                else ""
            )
            click.echo(
                f"  {short_id(entry.recipe_id)}  {entry.title} - {entry.servings} servings{scaled}"
            )

    def echo_item(item: GroceryItem) -> None:
        box = "[x]" if item.checked else "[ ]"
        quantity = format_quantity(item.amount, item.unit)
        suffix = f" ({quantity})" if quantity else ""
        click.echo(f"  {box} {short_id(item.id)}  {item.name}{suffix}")

    if view.is_filtered:
        click.echo(f"\nItems matching '{view.search}':")
        for item in view.items:
            echo_item(item)
    else:
        for name, items in view.groups.items():
            click.echo(f"\n{name}:")
            for item in items:
                echo_item(item)

    if not basket.items:
        click.echo("\n  (no items)")

    click.echo()
    click.echo("-" * 60)
    click.echo(f"Items: {len(basket.items)} | Checked: {basket.checked_count}")
    click.echo("-" * 60)


# ============================================================================
# Main CLI Group
# ============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="recipe-basket")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
def cli(verbose: bool):
    """Recipe Basket - recipes and grocery lists.

    Save recipes from URLs or chat assistants, tag and translate them,
    and combine them into a categorized grocery basket.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ============================================================================
# Recipe Commands
# ============================================================================


@cli.group()
def recipe():
    """Save, browse and edit recipes."""
    pass


@recipe.command("add")
@click.argument("url", required=False)
@click.option("--text", "-t", "input_text", help="Ingredients as text instead of a URL")
@click.option("--title", help="Recipe title (for text input)")
@click.option(
    "--servings", "-S", type=int, default=4, show_default=True, help="Servings (for text input)"
)
@click.option("--tag", "tags", multiple=True, help="Tag to add (repeatable)")
def recipe_add(
    url: str | None,
    input_text: str | None,
    title: str | None,
    servings: int,
    tags: tuple[str, ...],
):
    """Save a recipe from a URL or from text.

    Examples:

    \b
        recipe-basket recipe add https://example.com/pasta
        recipe-basket recipe add --text "2 eggs, 100g flour, 1 cup milk" --title Pancakes
    """
    if not url and not input_text:
        fail("Provide a URL or use --text for manual input.")
    if url and input_text:
        fail("Provide either URL or --text, not both.")

    try:
        if url:
            click.echo(f"Extracting recipe from: {url}")
            parsed = parse_recipe_url(url)
            if is_not_found(parsed):
                fail(f"No recipe found at {url}")
        else:
            assert input_text is not None
            if "," in input_text and "\n" not in input_text:
                input_text = input_text.replace(",", "\n")
            parsed = parse_recipe_text(title or "Manual Recipe", input_text, servings)

        parsed.tags = list(dict.fromkeys([*parsed.tags, *tags]))
        saved = get_catalog().save_recipe(parsed)
    except RecipeBasketError as e:
        fail(f"Failed to add recipe: {e}")

    display_recipe(saved)
    click.echo(f"✓ Saved recipe '{saved.title}' ({short_id(saved.id)})")


@recipe.command("prompt")
def recipe_prompt():
    """Print the prompt to paste into a chat assistant."""
    click.echo(EXTRACTION_PROMPT)


@recipe.command("paste")
@click.option(
    "--file", "-f", "source", type=click.File("r", encoding="utf-8"), default="-",
    help="File with the assistant's answer (default: stdin)",
)
def recipe_paste(source):
    """Save a recipe from a chat assistant's JSON answer.

    Run 'recipe-basket recipe prompt' for the prompt to use.
    """
    try:
        parsed = parse_llm_response(source.read())
        saved = get_catalog().save_recipe(parsed)
    except RecipeBasketError as e:
        fail(str(e))

    display_recipe(saved)
    click.echo(f"✓ Saved recipe '{saved.title}' ({short_id(saved.id)})")


@recipe.command("list")
@click.option("--tag", help="Only recipes with this tag")
def recipe_list(tag: str | None):
    """List saved recipes."""
    try:
        recipes = get_catalog().list_recipes(tag=tag)
    except RecipeBasketError as e:
        fail(str(e))

    if not recipes:
        click.echo("No recipes found.")
        return

    click.echo()
    for r in recipes:
        tag_str = f"  [{', '.join(r.tags)}]" if r.tags else ""
        click.echo(f"  {short_id(r.id)}  {r.title} ({r.servings} servings){tag_str}")
    click.echo()
    click.echo(f"Total: {len(recipes)} recipes")


@recipe.command("search")
@click.argument("query")
@click.option("--limit", "-l", default=20, help="Maximum results to show")
def recipe_search(query: str, limit: int):
    """Search recipes by title, description, tag or ingredient."""
    try:
        results = get_catalog().search_recipes(query, limit=limit)
    except RecipeBasketError as e:
        fail(str(e))

    if not results:
        click.echo(f"No recipes matching '{query}'.")
        return

    click.echo(f"\nResults for '{query}':\n")
    for r in results:
        click.echo(f"  {short_id(r.id)}  {r.title}")


@recipe.command("show")
@click.argument("recipe_id")
@click.option("--servings", "-S", type=int, help="Scale to target servings")
@click.option("--translated", is_flag=True, help="Show the stored translation")
def recipe_show(recipe_id: str, servings: int | None, translated: bool):
    """Show a recipe, optionally scaled."""
    catalog = get_catalog()
    try:
        found = catalog.get_recipe(resolve_recipe_id(catalog, recipe_id))
        if translated and not found.translation:
            fail("Recipe has no translation. Run 'recipe-basket recipe translate' first.")
        display_recipe(found, servings=servings, translated=translated)
    except RecipeBasketError as e:
        fail(str(e))


@recipe.command("edit")
@click.argument("recipe_id")
@click.option("--title", help="New title")
@click.option("--description", help="New description")
@click.option(
    "--servings", "-S", type=click.IntRange(min=1), help="Servings the amounts are written for"
)
@click.option(
    "--ingredients", "ingredients_text", help="Replace all ingredients (one per line or commas)"
)
@click.option("--step", "steps", multiple=True, help="Replace all steps (repeatable)")
def recipe_edit(
    recipe_id: str,
    title: str | None,
    description: str | None,
    servings: int | None,
    ingredients_text: str | None,
    steps: tuple[str, ...],
):
    """Correct a saved recipe.

    Baskets keep the items they already hold; remove and re-add the recipe
    to pick up the changes there.

    Examples:

    \b
        recipe-basket recipe edit 1a2b --servings 6
        recipe-basket recipe edit 1a2b --ingredients "250 g flour, 2 eggs"
    """
    changes: dict[str, object] = {}
    if title is not None:
        changes["title"] = title
    if description is not None:
        changes["description"] = description
    if servings is not None:
        changes["servings"] = servings
    if ingredients_text is not None:
        if "," in ingredients_text and "\n" not in ingredients_text:
            ingredients_text = ingredients_text.replace(",", "\n")
        ingredients = parse_ingredients_text(ingredients_text)
        if not ingredients:
            fail("No ingredients found in --ingredients.")
        changes["ingredients"] = ingredients
    if steps:
        changes["steps"] = [step.strip() for step in steps if step.strip()]

    if not changes:
        fail("Nothing to change. Use --title, --description, --servings, --ingredients or --step.")

    catalog = get_catalog()
    try:
        found = catalog.get_recipe(resolve_recipe_id(catalog, recipe_id))
        updated = catalog.update_recipe(found.id, **changes)
    except RecipeBasketError as e:
        fail(str(e))

    display_recipe(updated)
    click.echo(f"✓ Updated '{updated.title}' ({', '.join(sorted(changes))})")


@recipe.command("tag")
@click.argument("recipe_id")
@click.option("--add", "-a", "added", multiple=True, help="Tag to add")
@click.option("--remove", "-r", "removed", multiple=True, help="Tag to remove")
def recipe_tag(recipe_id: str, added: tuple[str, ...], removed: tuple[str, ...]):
    """Add or remove tags on a recipe."""
    if not added and not removed:
        fail("Use --add and/or --remove.")

    catalog = get_catalog()
    try:
        found = catalog.get_recipe(resolve_recipe_id(catalog, recipe_id))
        tags = [t for t in found.tags if t not in removed] + list(added)
        updated = catalog.update_recipe(found.id, tags=tags)
    except RecipeBasketError as e:
        fail(str(e))

    click.echo(f"✓ Tags for '{updated.title}': {', '.join(updated.tags) or '(none)'}")


@recipe.command("delete")
@click.argument("recipe_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def recipe_delete(recipe_id: str, yes: bool):
    """Delete a recipe and take it out of every basket."""
    catalog = get_catalog()
    store = get_store()
    try:
        found = catalog.get_recipe(resolve_recipe_id(catalog, recipe_id))
        if not yes and not click.confirm(f"Delete '{found.title}'?"):
            click.echo("Cancelled.")
            return
        for basket in store.list_baskets():
            store.remove_recipe(basket.id, found.id)
        catalog.delete_recipe(found.id)
    except RecipeBasketError as e:
        fail(str(e))

    click.echo(f"✓ Deleted '{found.title}'")


@recipe.command("translate")
@click.argument("recipe_id")
@click.option(
    "--language", "-l", default=DEFAULT_TARGET_LANGUAGE, show_default=True, help="Target language"
)
def recipe_translate(recipe_id: str, language: str):
    """Translate a recipe and store the translation."""
    catalog = get_catalog()
    try:
        found = catalog.get_recipe(resolve_recipe_id(catalog, recipe_id))
        click.echo(f"Translating '{found.title}' to {language}...")
        with get_translator() as translator:
            translation = translator.translate(found, language)
        updated = catalog.set_translation(found.id, translation)
    except RecipeBasketError as e:
        fail(str(e))

    display_recipe(updated, translated=True)
    click.echo(f"✓ Translation to {language} saved")


# ============================================================================
# Tag Commands
# ============================================================================


@cli.group()
def tags():
    """Manage tags."""
    pass


@tags.command("list")
def tags_list():
    """List tags with their recipe counts."""
    try:
        all_tags = get_catalog().list_tags()
    except RecipeBasketError as e:
        fail(str(e))

    if not all_tags:
        click.echo("No tags yet.")
        return

    click.echo()
    for tag in all_tags:
        click.echo(f"  {tag.name} ({tag.recipe_count})")
    click.echo()


@tags.command("delete")
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def tags_delete(name: str, yes: bool):
    """Delete a tag and remove it from every recipe."""
    catalog = get_catalog()
    try:
        tag = catalog.find_tag(name)
        if (
            not yes
            and tag.recipe_count > 0
            and not click.confirm(f"'{tag.name}' is used by {tag.recipe_count} recipe(s). Delete?")
        ):
            click.echo("Cancelled.")
            return
        count = catalog.delete_tag(tag.id)
    except RecipeBasketError as e:
        fail(str(e))

    click.echo(f"✓ Deleted tag '{tag.name}' (removed from {count} recipes)")


@tags.command("rename")
@click.argument("old_name")
@click.argument("new_name")
def tags_rename(old_name: str, new_name: str):
    """Rename a tag on every recipe."""
    catalog = get_catalog()
    try:
        tag = catalog.rename_tag(catalog.find_tag(old_name).id, new_name)
    except RecipeBasketError as e:
        fail(str(e))

    click.echo(f"✓ Renamed '{old_name}' to '{tag.name}'")


# ============================================================================
# Category Commands
# ============================================================================


@cli.group()
def categories():
    """Inspect and edit the ingredient category keywords."""
    pass


@categories.command("show")
def categories_show():
    """Show the keyword table in use."""
    try:
        rules = load_rules(CATEGORIES_FILE)
    except ValidationError as e:
        fail(str(e))

    source = CATEGORIES_FILE if CATEGORIES_FILE.exists() else "built-in defaults"
    click.echo(f"\nCategory keywords ({source}):\n")
    for rule in rules:
        click.echo(f"  {rule.category}: {', '.join(rule.keywords)}")
    click.echo()


@categories.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def categories_init(force: bool):
    """Write the built-in keyword table to a file you can edit."""
    if CATEGORIES_FILE.exists() and not force:
        fail(f"{CATEGORIES_FILE} already exists (use --force to overwrite)")
    save_rules(DEFAULT_RULES, CATEGORIES_FILE)
    click.echo(f"✓ Wrote {CATEGORIES_FILE}")


@categories.command("classify")
@click.argument("names", nargs=-1, required=True)
def categories_classify(names: tuple[str, ...]):
    """Show which category ingredient names fall into."""
    try:
        rules = load_rules(CATEGORIES_FILE)
    except ValidationError as e:
        fail(str(e))

    for name in names:
        click.echo(f"  {name} → {classify(name, rules)}")


# ============================================================================
# Basket Commands
# ============================================================================


VIEW_CHOICE = click.Choice([mode.value for mode in ViewMode])
view_option = click.option(
    "--by", "mode", type=VIEW_CHOICE, default="category", show_default=True, help="Grouping"
)


@cli.group()
def basket():
    """Build and shop from the grocery basket."""
    pass


@basket.command("new")
@click.option("--name", "-n", help="Basket name")
def basket_new(name: str | None):
    """Start a new, empty basket and make it current."""
    try:
        created = get_store().create_basket(name)
    except RecipeBasketError as e:
        fail(str(e))

    click.echo(f"✓ Started basket {created.name or short_id(created.id)}")


@basket.command("show")
@view_option
@click.option("--search", "-s", help="Only items whose name contains this text")
def basket_show(mode: str, search: str | None):
    """Show the current basket."""
    store = get_store()
    try:
        snapshot = store.get_snapshot(store.get_or_create_current())
    except RecipeBasketError as e:
        fail(str(e))

    display_basket(snapshot, mode, search)


@basket.command("add")
@click.argument("recipe_id")
@click.option(
    "--servings", "-S", type=click.IntRange(min=1), help="Servings (default: recipe's own)"
)
def basket_add(recipe_id: str, servings: int | None):
    """Add a recipe to the current basket.

    Adding a recipe that is already in the basket only changes its
    serving count; the items already on the list keep their amounts.
    """
    catalog = get_catalog()
    store = get_store()
    try:
        found = catalog.get_recipe(resolve_recipe_id(catalog, recipe_id))
        basket_id = store.get_or_create_current()
        already = store.get_snapshot(basket_id).find_recipe(found.id) is not None
        snapshot = store.add_recipe(basket_id, found.id, found, servings or found.servings)
    except RecipeBasketError as e:
        fail(str(e))

    entry = snapshot.find_recipe(found.id)
    if already:
        click.echo(f"✓ Updated '{found.title}' to {entry.servings} servings")
    else:
        click.echo(f"✓ Added '{found.title}' ({entry.servings} servings)")
    click.echo(f"  Basket now has {len(snapshot.items)} items")


@basket.command("remove")
@click.argument("recipe_id")
def basket_remove(recipe_id: str):
    """Remove a recipe and the items only it needed."""
    store = get_store()
    try:
        basket_id = store.get_or_create_current()
        entries = store.get_snapshot(basket_id).recipes
        matches = [e.recipe_id for e in entries if e.recipe_id.startswith(recipe_id)]
        full_id = matches[0] if len(matches) == 1 else recipe_id
        removed = store.remove_recipe(basket_id, full_id)
    except RecipeBasketError as e:
        fail(str(e))

    if removed:
        click.echo("✓ Recipe removed from basket")
    else:
        click.echo("Recipe was not in the basket.")


def _set_checked(item_refs: tuple[str, ...], checked: bool) -> None:
    if not item_refs:
        click.echo("Nothing to update.")
        return

    store = get_store()
    try:
        snapshot = store.get_snapshot(store.get_or_create_current())
        result = store.set_items_checked(resolve_item_ids(snapshot, item_refs), checked)
    except RecipeBasketError as e:
        fail(str(e))

    verb = "Checked" if checked else "Unchecked"
    if result.succeeded:
        click.echo(f"✓ {verb} {len(result.succeeded)} item(s)")
    for item_id, message in result.failed.items():
        click.echo(f"✗ {short_id(item_id)}: {message}", err=True)
    if result.failed:
        raise SystemExit(1)


@basket.command("check")
@click.argument("items", nargs=-1, required=True)
def basket_check(items: tuple[str, ...]):
    """Check off items (ids or id prefixes)."""
    _set_checked(items, True)


@basket.command("uncheck")
@click.argument("items", nargs=-1, required=True)
def basket_uncheck(items: tuple[str, ...]):
    """Uncheck items (ids or id prefixes)."""
    _set_checked(items, False)


@basket.command("check-all")
def basket_check_all():
    """Check off every item."""
    store = get_store()
    try:
        snapshot = store.get_snapshot(store.get_or_create_current())
    except RecipeBasketError as e:
        fail(str(e))
    _set_checked(tuple(item.id for item in snapshot.items if not item.checked), True)


@basket.command("uncheck-all")
def basket_uncheck_all():
    """Uncheck every item."""
    store = get_store()
    try:
        snapshot = store.get_snapshot(store.get_or_create_current())
    except RecipeBasketError as e:
        fail(str(e))
    _set_checked(tuple(item.id for item in snapshot.items if item.checked), False)


@basket.command("clear-checked")
def basket_clear_checked():
    """Remove checked items from the basket."""
    store = get_store()
    try:
        count = store.clear_checked(store.get_or_create_current())
    except RecipeBasketError as e:
        fail(str(e))

    click.echo(f"✓ Removed {count} checked item(s)")


@basket.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def basket_clear(yes: bool):
    """Remove every recipe and item from the basket."""
    if not yes and not click.confirm("Clear the whole basket?"):
        click.echo("Cancelled.")
        return

    store = get_store()
    try:
        store.clear_all(store.get_or_create_current())
    except RecipeBasketError as e:
        fail(str(e))

    click.echo("✓ Basket cleared")


@basket.command("export")
@click.argument("output", type=click.Path())
@click.option(
    "--format", "-f", "fmt", type=click.Choice(["json", "md", "pdf"]), help="Output format"
)
@view_option
def basket_export(output: str, fmt: str | None, mode: str):
    """Export the basket as Markdown, JSON or PDF."""
    store = get_store()
    try:
        snapshot = store.get_snapshot(store.get_or_create_current())
        used = export_basket(snapshot, output, format=fmt, mode=mode)
    except RecipeBasketError as e:
        fail(str(e))
    except OSError as e:
        fail(f"Could not write {output}: {e}")

    click.echo(f"✓ Exported basket to {output} ({used})")


@basket.command("view")
@view_option
def basket_view(mode: str):
    """Open the interactive basket view."""
    store = get_store()
    try:
        basket_id = store.get_or_create_current()
    except RecipeBasketError as e:
        fail(str(e))

    run_basket_view(store, basket_id, mode)


# ============================================================================
# Entry Point
# ============================================================================


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
