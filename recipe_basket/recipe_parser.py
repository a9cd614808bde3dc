"""Recipe URL, text and chat-assistant response parsing."""

import json
import logging
import re
from typing import Any

import httpx
from bs4 import BeautifulSoup
from recipe_scrapers import scrape_html
from recipe_scrapers._exceptions import RecipeScrapersExceptions

from .config import HTTP_TIMEOUT
from .errors import TransportError, ValidationError
from .models import Ingredient, Recipe, not_found_recipe
from .validation import parse_recipe_payload

logger = logging.getLogger(__name__)

# Servings assumed when a page does not say
DEFAULT_SERVINGS = 4

# Fields a pasted chat response must fill in
REQUIRED_FIELDS = ("title", "description", "ingredients", "steps", "servings")

EXTRACTION_PROMPT = """\
Please extract the recipe from the following webpage and format it in a structured way \
with the following attributes:
- title (string): The name of the recipe
- description (string): A brief description of the recipe
- imageUrl (string): URL to an image of the dish (leave empty if not available)
- sourceUrl (string): The original URL where the recipe was found
- tags (array of strings): Categories or keywords for the recipe
- ingredients (array of objects): Each with name (string), amount (number), unit (string), \
and notes (string)
- steps (array of strings): The cooking instructions
- prepTime (number): Time in minutes for preparation
- cookTime (number): Time in minutes for cooking
- servings (number): Number of servings the recipe yields

Format the response as a valid JSON object."""

# Common units for parsing
UNITS = {
    # Volume
    "cup",
    "cups",
    "c",
    "tablespoon",
    "tablespoons",
    "tbsp",
    "tbs",
    "teaspoon",
    "teaspoons",
    "tsp",
    "ml",
    "cl",
    "dl",
    "l",
    "liter",
    "liters",
    "litre",
    "litres",
    "fl oz",
    "fluid ounce",
    "fluid ounces",
    # Weight
    "g",
    "gram",
    "grams",
    "gramme",
    "grammes",
    "kg",
    "oz",
    "ounce",
    "ounces",
    "lb",
    "lbs",
    "pound",
    "pounds",
    # Count
    "piece",
    "pieces",
    "clove",
    "cloves",
    "slice",
    "slices",
    "bunch",
    "can",
    "cans",
    "package",
    "pinch",
    "pinches",
    "sprig",
    "sprigs",
    # French
    "c. à soupe",
    "c. à s.",
    "c.à.s",
    "cuillère à soupe",
    "cuillères à soupe",
    "c. à café",
    "c. à c.",
    "c.à.c",
    "cuillère à café",
    "cuillères à café",
    "pincée",
    "pincées",
    "gousse",
    "gousses",
    "tranche",
    "tranches",
    "boîte",
    "boîtes",
    "sachet",
    "sachets",
    "botte",
    "bottes",
    "brin",
    "brins",
    "verre",
    "verres",
}

# Longest unit first, counted in words
MAX_UNIT_WORDS = max(len(unit.split()) for unit in UNITS)

# Fraction to decimal mapping
FRACTIONS = {
    "½": 0.5,
    "⅓": 0.333,
    "⅔": 0.667,
    "¼": 0.25,
    "¾": 0.75,
    "⅛": 0.125,
    "⅜": 0.375,
    "⅝": 0.625,
    "⅞": 0.875,
}

FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")
PARTITIVE = re.compile(
    r"^(?:de\s+la\s+|de\s+l['’]\s*|(?:des|du|de|of)\s+|d['’]\s*)", re.IGNORECASE
)
ISO_DURATION = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$")


def parse_quantity(text: str) -> tuple[float | None, str]:
    """
    Parse quantity from the beginning of an ingredient string.

    Handles both period (.) and comma (,) as decimal separators
    to support both English and French number formats.

    Returns:
        Tuple of (quantity, remaining_text)
    """
    text = text.strip()

    for frac, value in FRACTIONS.items():
        if text.startswith(frac):
            return value, text[len(frac) :].strip()

    # "1", "1.5", "1,5", "1 1/2", "1-2" (range), "1/2", "1½"
    pattern = r"^(\d+/\d+|\d+(?:[\.,]\d+)?(?:\s*[-–]\s*\d+(?:[\.,]\d+)?)?(?:\s+\d+/\d+)?)"
    match = re.match(pattern, text)
    if not match:
        return None, text

    qty_str = match.group(1).replace(",", ".")
    remaining = text[match.end() :].strip()

    # Mixed unicode fraction like "1½"
    if remaining[:1] in FRACTIONS and re.fullmatch(r"\d+", qty_str):
        return float(qty_str) + FRACTIONS[remaining[0]], remaining[1:].strip()

    # Ranges take the higher value
    if re.search(r"[-–]", qty_str):
        return float(re.split(r"[-–]", qty_str)[-1].strip()), remaining

    if " " in qty_str and "/" in qty_str:
        whole, frac = qty_str.split()
        numerator, denominator = frac.split("/")
        if float(denominator):
            return float(whole) + float(numerator) / float(denominator), remaining
        return float(whole), remaining

    if "/" in qty_str:
        numerator, denominator = qty_str.split("/")
        if not float(denominator):
            return None, text
        return float(numerator) / float(denominator), remaining

    return float(qty_str), remaining


def parse_unit(text: str) -> tuple[str | None, str]:
    """
    Parse unit from the beginning of text.

    Multi-word units ("c. à soupe", "fl oz") are tried before single words.

    Returns:
        Tuple of (unit, remaining_text)
    """
    text = text.strip()
    words = text.split()
    if not words:
        return None, text

    for size in range(min(MAX_UNIT_WORDS, len(words)), 1, -1):
        candidate = " ".join(words[:size]).lower()
        if candidate in UNITS:
            return candidate, " ".join(words[size:])

    first_word = words[0].lower().rstrip(",.")
    if first_word in UNITS:
        return first_word, " ".join(words[1:])

    return None, text


def _strip_partitive(name: str) -> str:
    # "200 g de farine", "1 pincée d'origan"
    return PARTITIVE.sub("", name)


def parse_ingredient_text(text: str) -> Ingredient:
    """
    Parse a single ingredient line into structured data.

    Args:
        text: Raw ingredient text (e.g., "2 cups flour, sifted")

    Returns:
        Ingredient with parsed data
    """
    original = text.strip()

    amount, remaining = parse_quantity(original)
    unit, remaining = parse_unit(remaining)

    notes = None
    name = remaining

    paren_match = re.search(r"\(([^)]+)\)", remaining)
    if paren_match:
        notes = paren_match.group(1)
        name = remaining[: paren_match.start()] + remaining[paren_match.end() :]

    if "," in name:
        name, note_part = (part.strip() for part in name.split(",", 1))
        notes = f"{notes}, {note_part}" if notes else note_part

    name = re.sub(r"\s+", " ", name.strip().rstrip(",."))
    if amount is not None or unit:
        name = _strip_partitive(name)

    return Ingredient(name=name or original, amount=amount, unit=unit, notes=notes or None)


def parse_ingredients_text(text: str) -> list[Ingredient]:
    """
    Parse multiple ingredients from text (one per line).

    Args:
        text: Multi-line text with ingredients

    Returns:
        List of Ingredient objects
    """
    ingredients = []

    for line in text.strip().split("\n"):
        line = line.strip()
        # Skip empty lines and headers
        if not line or line.lower().startswith(("ingredients", "ingrédients", "for the", "---")):
            continue
        line = re.sub(r"^[\-\*•]\s*", "", line)
        line = re.sub(r"^\d+\.\s+", "", line)

        if line:
            ingredients.append(parse_ingredient_text(line))

    return ingredients


def parse_iso_duration(value: Any) -> int | None:
    """Convert an ISO 8601 duration ("PT1H30M") to whole minutes."""
    if isinstance(value, (int, float)):
        return int(value)
    if not isinstance(value, str):
        return None
    match = ISO_DURATION.match(value.strip())
    if not match or not any(match.groups()):
        return None
    days, hours, minutes, seconds = (float(g) if g else 0 for g in match.groups())
    return int(days * 24 * 60 + hours * 60 + minutes + seconds // 60)


def parse_servings(value: Any) -> int | None:
    """Extract a serving count from text like "4 servings" or ["6", "6 portions"]."""
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None:
        return None
    match = re.search(r"(\d+)", str(value))
    if match and int(match.group(1)) > 0:
        return int(match.group(1))
    return None


def _fetch_html(url: str) -> str:
    try:
        response = httpx.get(url, follow_redirects=True, timeout=HTTP_TIMEOUT)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.warning("Fetching %s returned %s", url, e.response.status_code)
        raise TransportError(
            f"Failed to fetch webpage: {e.response.status_code} {e.response.reason_phrase}"
        ) from e
    except httpx.HTTPError as e:
        logger.warning("Fetching %s failed: %s", url, e)
        raise TransportError(f"Failed to fetch webpage: {e}") from e
    return response.text


def _extract_json_ld_recipe(soup: BeautifulSoup) -> dict[str, Any] | None:
    """Extract recipe data from JSON-LD script tags."""

    def is_recipe(item: Any) -> bool:
        if not isinstance(item, dict):
            return False
        kind = item.get("@type")
        return kind == "Recipe" or (isinstance(kind, list) and "Recipe" in kind)

    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or "")
        except json.JSONDecodeError:
            continue

        candidates = data if isinstance(data, list) else [data]
        for candidate in candidates:
            if is_recipe(candidate):
                return candidate
            if isinstance(candidate, dict) and "@graph" in candidate:
                for item in candidate["@graph"]:
                    if is_recipe(item):
                        return item

    return None


def _json_ld_steps(instructions: Any) -> list[str]:
    if isinstance(instructions, str):
        return [line.strip() for line in instructions.split("\n") if line.strip()]
    steps: list[str] = []
    for entry in instructions or []:
        if isinstance(entry, str):
            steps.append(entry.strip())
        elif isinstance(entry, dict):
            if entry.get("@type") == "HowToSection":
                steps.extend(_json_ld_steps(entry.get("itemListElement")))
            elif entry.get("text"):
                steps.append(str(entry["text"]).strip())
    return [step for step in steps if step]


def _json_ld_image(image: Any) -> str:
    if isinstance(image, list):
        image = image[0] if image else ""
    if isinstance(image, dict):
        image = image.get("url", "")
    return image if isinstance(image, str) else ""


def _json_ld_tags(data: dict[str, Any]) -> list[str]:
    tags: list[str] = []
    for key in ("recipeCategory", "recipeCuisine", "keywords"):
        value = data.get(key)
        if isinstance(value, str):
            value = value.split(",")
        for tag in value or []:
            tag = str(tag).strip()
            if tag and tag not in tags:
                tags.append(tag)
    return tags


def _recipe_from_json_ld(data: dict[str, Any], url: str) -> Recipe:
    raw_ingredients = data.get("recipeIngredient") or data.get("ingredients") or []
    if isinstance(raw_ingredients, str):
        raw_ingredients = [raw_ingredients]

    return Recipe(
        title=str(data.get("name") or "Unknown Recipe").strip(),
        description=str(data.get("description") or "").strip(),
        image_url=_json_ld_image(data.get("image")),
        source_url=url,
        tags=_json_ld_tags(data),
        ingredients=[parse_ingredient_text(ing) for ing in raw_ingredients if str(ing).strip()],
        steps=_json_ld_steps(data.get("recipeInstructions")),
        prep_time=parse_iso_duration(data.get("prepTime")),
        cook_time=parse_iso_duration(data.get("cookTime")),
        servings=parse_servings(data.get("recipeYield")) or DEFAULT_SERVINGS,
    )


def _scrape_recipe_fallback(html: str, url: str) -> Recipe:
    """
    Fallback for websites not supported by recipe-scrapers.

    Reads schema.org JSON-LD first, then microdata ingredient markup.
    """
    soup = BeautifulSoup(html, "html.parser")

    json_ld = _extract_json_ld_recipe(soup)
    if json_ld:
        return _recipe_from_json_ld(json_ld, url)

    raw_ingredients = [
        elem.get_text(strip=True)
        for elem in soup.select("[itemprop='recipeIngredient'], [itemprop='ingredients']")
        if elem.get_text(strip=True)
    ]
    if not raw_ingredients:
        return not_found_recipe(url)

    title_elem = soup.select_one("[itemprop='name']") or soup.select_one("h1")
    yield_elem = soup.select_one("[itemprop='recipeYield']")
    steps = [
        elem.get_text(" ", strip=True)
        for elem in soup.select("[itemprop='recipeInstructions']")
        if elem.get_text(strip=True)
    ]

    return Recipe(
        title=title_elem.get_text(strip=True) if title_elem else "Unknown Recipe",
        source_url=url,
        ingredients=[parse_ingredient_text(ing) for ing in raw_ingredients],
        steps=steps,
        servings=(parse_servings(yield_elem.get_text(strip=True)) if yield_elem else None)
        or DEFAULT_SERVINGS,
    )


def _scraper_value(scraper: Any, method: str) -> Any:
    """Call a scraper accessor, returning None when the site does not provide it."""
    try:
        return getattr(scraper, method)()
    except (
        RecipeScrapersExceptions,
        NotImplementedError,
        AttributeError,
        KeyError,
        TypeError,
        ValueError,
    ):
        return None


def parse_recipe_url(url: str) -> Recipe:
    """
    Parse a recipe from a URL using recipe-scrapers.

    Falls back to reading schema.org markup for unsupported websites. A page
    without a recipe gives the not-found record, not an exception; check it
    with is_not_found().

    Args:
        url: URL to a recipe page

    Returns:
        Recipe (without id), or the not-found record

    Raises:
        TransportError: If the page cannot be fetched
    """
    html = _fetch_html(url)

    try:
        scraper = scrape_html(html, org_url=url)
    except RecipeScrapersExceptions as e:
        logger.debug("recipe-scrapers cannot handle %s (%s), using fallback", url, e)
        return _scrape_recipe_fallback(html, url)

    title = _scraper_value(scraper, "title")
    raw_ingredients = _scraper_value(scraper, "ingredients") or []
    if not title or not raw_ingredients:
        return _scrape_recipe_fallback(html, url)

    keywords = _scraper_value(scraper, "keywords") or []
    category = _scraper_value(scraper, "category")
    tags = [t.strip() for t in (category or "").split(",") if t.strip()]
    tags += [k for k in keywords if isinstance(k, str) and k.strip() and k.strip() not in tags]

    return Recipe(
        title=title.strip(),
        description=(_scraper_value(scraper, "description") or "").strip(),
        image_url=_scraper_value(scraper, "image") or "",
        source_url=url,
        tags=tags,
        ingredients=[parse_ingredient_text(ing) for ing in raw_ingredients],
        steps=_scraper_value(scraper, "instructions_list") or [],
        prep_time=_scraper_value(scraper, "prep_time"),
        cook_time=_scraper_value(scraper, "cook_time"),
        servings=parse_servings(_scraper_value(scraper, "yields")) or DEFAULT_SERVINGS,
    )


def parse_recipe_text(
    title: str, ingredients_text: str, servings: int | None = None, steps_text: str = ""
) -> Recipe:
    """
    Create a recipe from manual text input.

    Args:
        title: Recipe name
        ingredients_text: Multi-line ingredient list
        servings: Serving size the amounts are written for
        steps_text: Multi-line instructions, one step per line

    Returns:
        Recipe (without id)
    """
    ingredients = parse_ingredients_text(ingredients_text)
    steps = [re.sub(r"^\d+[\.\)]\s*", "", line.strip()) for line in steps_text.split("\n")]

    return Recipe(
        title=title.strip(),
        ingredients=ingredients,
        servings=servings,
        steps=[step for step in steps if step],
    )


def parse_llm_response(text: str) -> Recipe:
    """
    Parse a recipe pasted from a chat assistant.

    Accepts bare JSON or JSON inside a ``` fenced block. The answer must
    fill in title, description, ingredients, steps and servings.

    Raises:
        ValidationError: If the text is not valid JSON or a field is missing
    """
    if not text.strip():
        raise ValidationError("Please paste the assistant's response first")

    match = FENCED_JSON.search(text)
    raw = match.group(1) if match else text.strip()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(
            "Could not parse the response as valid JSON. "
            "Make sure the response is properly formatted."
        ) from e

    if isinstance(data, dict):
        if "ingredients" in data and not isinstance(data["ingredients"], list):
            raise ValidationError("Ingredients must be an array")
        if "steps" in data and not isinstance(data["steps"], list):
            raise ValidationError("Steps must be an array")

    return parse_recipe_payload(data, required=REQUIRED_FIELDS)
