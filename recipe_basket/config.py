"""Configuration and settings for Recipe Basket."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# App directories
APP_NAME = "recipe-basket"
CONFIG_DIR = Path(os.getenv("RECIPE_BASKET_HOME", Path.home() / f".{APP_NAME}"))
DATABASE_FILE = CONFIG_DIR / "recipes.db"
CATEGORIES_FILE = CONFIG_DIR / "categories.json"  # Editable keyword table

# Translation service (any OpenAI-compatible chat completions API)
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
TRANSLATION_MODEL = os.getenv("TRANSLATION_MODEL", "gpt-4o-mini")
DEFAULT_TARGET_LANGUAGE = "French"

# Seconds before an extraction or translation request is abandoned
HTTP_TIMEOUT = float(os.getenv("RECIPE_BASKET_HTTP_TIMEOUT", "30"))


def ensure_config_dir() -> Path:
    """Create the config directory if needed and return it."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR


def get_api_key() -> str | None:
    """Get the translation API key from the environment."""
    return os.getenv("OPENAI_API_KEY") or None
