"""Shopping category classification for ingredient names.

Ingredients are matched against an ordered table of keyword rules. Each rule
holds the English and French words for one aisle; the first rule with a
matching word wins, so the order of the table matters ("orange juice" is filed
under fruits, not beverages). Matching ignores case and accents. The table can
be replaced by a JSON file so new words and languages can be added without
touching code.
"""

import json
import re
import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .errors import ValidationError


class Category(str, Enum):
    """Shopping aisle labels."""

    DAIRY = "Dairy"
    MEAT = "Meat"
    FRUITS = "Fruits"
    VEGETABLES = "Vegetables"
    GRAINS = "Grains"
    SWEETENERS = "Sweeteners"
    CONDIMENTS = "Condiments"
    BEVERAGES = "Beverages"
    SPICES = "Spices"
    OTHER = "Other"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str | None) -> "Category":
        """Parse a stored label, falling back to Other for unknown values."""
        if value:
            for category in cls:
                if category.value.lower() == value.strip().lower():
                    return category
        return cls.OTHER


def _keyword_pattern(keyword: str) -> str:
    # Words inside a phrase may be joined by spaces or hyphens; a trailing
    # plural (s, es, x) is accepted on the last word.
    words = [re.escape(w) for w in keyword.split()]
    return r"(?<!\w)" + r"[\s\-]+".join(words) + r"(?:s|es|x)?(?!\w)"


@dataclass
class CategoryRule:
    """An aisle and the words that send an ingredient there."""

    category: Category
    keywords: list[str]
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        keywords = [k.strip() for k in self.keywords if k and k.strip()]
        if not keywords:
            raise ValidationError(f"Category rule for {self.category} has no keywords")
        self.keywords = keywords
        # Longest phrases first so "soy sauce" is tried before "soy"
        ordered = sorted({_normalize(k) for k in keywords}, key=lambda k: (-len(k), k))
        self._pattern = re.compile("|".join(_keyword_pattern(k) for k in ordered))

    def matches(self, normalized_name: str) -> bool:
        return self._pattern.search(normalized_name) is not None


def _normalize(text: str) -> str:
    text = text.casefold().strip()
    text = text.replace("œ", "oe").replace("’", "'")
    # "épinard" and "epinard" are the same word
    text = "".join(
        ch for ch in unicodedata.normalize("NFKD", text) if not unicodedata.combining(ch)
    )
    return re.sub(r"\s+", " ", text)


# Order is significant: first match wins.
DEFAULT_KEYWORDS: list[tuple[Category, list[str]]] = [
    (
        Category.DAIRY,
        [
            "milk", "buttermilk", "lait", "almond", "amande", "soy", "soja",
            "soymilk", "soyamilk", "cream", "crème", "cheese",
            "fromage", "fromage frais", "yogurt", "yoghurt", "yaourt",
            "butter", "beurre",
        ],
    ),
    (
        Category.MEAT,
        [
            "beef", "boeuf", "steak", "chicken", "poulet", "pork", "porc",
            "lamb", "agneau", "turkey", "dinde", "sausage", "saucisse",
            "bacon", "ham", "jambon", "meat", "viande",
        ],
    ),
    (
        Category.FRUITS,
        [
            "apple", "pomme", "pear", "poire", "banana", "banane", "orange",
            "lemon", "citron", "lime", "kiwi", "mangue", "mango", "raisin",
            "grape", "fruit", "berry", "berries", "baie", "fraise", "mûre",
        ],
    ),
    (
        Category.VEGETABLES,
        [
            "carrot", "carotte", "potato", "pomme de terre", "patate", "onion",
            "oignon", "garlic", "ail", "bell pepper", "sweet pepper", "red pepper",
            "green pepper", "yellow pepper", "poivron", "courgette", "zucchini",
            "aubergine", "eggplant", "celery", "céleri", "chou", "cabbage",
            "lettuce", "salade", "spinach", "épinard", "vegetable", "légume",
        ],
    ),
    (
        Category.GRAINS,
        [
            "bread", "baguette", "croissant", "pain", "flour", "farine", "rice",
            "riz", "pasta", "pâtes", "quinoa", "semoule", "grits", "grain",
            "cereal", "céréale",
        ],
    ),
    (
        Category.SWEETENERS,
        [
            "sugar", "sucre", "sucre glace", "honey", "miel", "syrup", "sirop",
            "maple", "érable", "powdered", "icing", "sweetener", "édulcorant",
        ],
    ),
    (
        Category.CONDIMENTS,
        [
            "oil", "huile", "olive", "vinegar", "vinaigre", "soy sauce",
            "sauce soja", "mayonnaise", "moutarde", "mustard", "sauce",
            "dressing", "vinaigrette",
        ],
    ),
    (
        Category.BEVERAGES,
        [
            "water", "eau", "juice", "jus", "soda", "boisson", "beverage",
            "drink", "tea", "thé vert", "thé noir", "tisane", "café", "coffee",
        ],
    ),
    (
        Category.SPICES,
        [
            "salt", "sel", "pepper", "peppercorn", "poivre", "spice", "épice", "herb",
            "herbe", "curcuma", "turmeric", "cumin", "gingembre", "ginger",
            "paprika", "cannelle", "cinnamon", "romarin", "rosemary",
            "basilic", "basil", "anise", "anis",
        ],
    ),
]

DEFAULT_RULES: list[CategoryRule] = [
    CategoryRule(category, keywords) for category, keywords in DEFAULT_KEYWORDS
]


def classify(ingredient_name: str, rules: list[CategoryRule] | None = None) -> Category:
    """
    Classify an ingredient name into a shopping category.

    Args:
        ingredient_name: Free-text ingredient name, in English or French
        rules: Ordered rules to use (defaults to the built-in table)

    Returns:
        The category of the first matching rule, or Category.OTHER
    """
    name = _normalize(ingredient_name or "")
    if not name:
        return Category.OTHER

    for rule in DEFAULT_RULES if rules is None else rules:
        if rule.matches(name):
            return rule.category

    return Category.OTHER


def rules_from_dict(data: dict) -> list[CategoryRule]:
    """Build rules from the JSON file layout: {"rules": [{"category", "keywords"}]}."""
    raw_rules = data.get("rules") if isinstance(data, dict) else None
    if not isinstance(raw_rules, list) or not raw_rules:
        raise ValidationError("Category file must contain a non-empty 'rules' list")

    rules = []
    for entry in raw_rules:
        if not isinstance(entry, dict):
            raise ValidationError(f"Invalid category rule: {entry!r}")
        label = entry.get("category")
        keywords = entry.get("keywords")
        if label not in {c.value for c in Category} or label == Category.OTHER.value:
            raise ValidationError(f"Unknown category in rule: {label!r}")
        if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
            raise ValidationError(f"Keywords for {label} must be a list of strings")
        rules.append(CategoryRule(Category(label), keywords))
    return rules


def rules_to_dict(rules: list[CategoryRule]) -> dict:
    return {"rules": [{"category": r.category.value, "keywords": r.keywords} for r in rules]}


def load_rules(path: Path) -> list[CategoryRule]:
    """
    Load category rules from a JSON file.

    Returns the built-in rules when the file does not exist.

    Raises:
        ValidationError: If the file cannot be parsed or is malformed
    """
    if not path.exists():
        return DEFAULT_RULES

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValidationError(f"Failed to read category file {path}: {e}") from e

    return rules_from_dict(data)


def save_rules(rules: list[CategoryRule], path: Path) -> None:
    """Write rules to a JSON file so they can be edited by hand."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(rules_to_dict(rules), f, indent=2, ensure_ascii=False)
