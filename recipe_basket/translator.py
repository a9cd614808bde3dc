"""Recipe translation through an OpenAI-compatible chat completions API."""

import json
import logging
from typing import Any

import httpx

from .config import (
    DEFAULT_TARGET_LANGUAGE,
    HTTP_TIMEOUT,
    OPENAI_BASE_URL,
    TRANSLATION_MODEL,
    get_api_key,
)
from .errors import TransportError, ValidationError
from .models import Recipe, Translation, format_amount
from .validation import parse_translation_payload

logger = logging.getLogger(__name__)


def build_translation_prompt(recipe: Recipe, target_language: str) -> str:
    """Build the user message asking for a translated recipe."""
    ingredient_lines = []
    for ing in recipe.ingredients:
        amount = format_amount(ing.amount) if ing.amount is not None else ""
        notes = f" ({ing.notes})" if ing.notes else ""
        ingredient_lines.append(f"- {amount} {ing.unit or ''} {ing.name}{notes}")

    return f"""\
Translate the following recipe to {target_language}:

Title: {recipe.title}

Description: {recipe.description}

Ingredients:
{chr(10).join(ingredient_lines)}

Instructions:
{chr(10).join(recipe.steps)}

Format your response as JSON with these properties:
{{
  "translatedTitle": "title in {target_language}",
  "translatedDescription": "description in {target_language}",
  "translatedIngredients": [
    {{"name": "ingredient name in {target_language}", "amount": number, \
"unit": "unit in {target_language}", "notes": "notes in {target_language} if any"}}
  ],
  "translatedSteps": ["step 1 in {target_language}", "step 2 in {target_language}"]
}}

Keep all measurements the same, just translate the text."""


class Translator:
    """Client for translating recipes."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str = OPENAI_BASE_URL,
        model: str = TRANSLATION_MODEL,
        timeout: float = HTTP_TIMEOUT,
    ):
        self.api_key = api_key or get_api_key()
        if not self.api_key:
            raise ValidationError(
                "No API key configured. Set OPENAI_API_KEY in your environment or .env file."
            )
        self.model = model
        self.client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
        )

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "Translator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _complete(self, payload: dict[str, Any]) -> str:
        try:
            response = self.client.post("/chat/completions", json=payload)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("Translation request returned %s", e.response.status_code)
            raise TransportError(
                f"Translation failed: {e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("Translation request failed: %s", e)
            raise TransportError(f"Translation failed: {e}") from e

        try:
            return response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning("Unexpected translation response: %s", response.text[:200])
            raise TransportError("Translation failed: unexpected response format") from e

    def translate(
        self, recipe: Recipe, target_language: str = DEFAULT_TARGET_LANGUAGE
    ) -> Translation:
        """
        Translate a recipe's text fields.

        Any of the returned fields may be missing; amounts are kept as they
        are.

        Args:
            recipe: Recipe to translate
            target_language: Language name, e.g. "French"

        Returns:
            Translation with whatever fields the service returned

        Raises:
            TransportError: If the service fails or returns something unusable
        """
        logger.debug("Translating recipe %r to %s", recipe.title, target_language)
        content = self._complete(
            {
                "model": self.model,
                "response_format": {"type": "json_object"},
                "temperature": 0.2,
                "messages": [
                    {
                        "role": "system",
                        "content": (
                            f"You are a professional culinary translator specializing in "
                            f"{target_language}. Accurately translate recipes while preserving "
                            f"recipe structure and formatting."
                        ),
                    },
                    {"role": "user", "content": build_translation_prompt(recipe, target_language)},
                ],
            }
        )

        try:
            data = json.loads(content)
            translation = parse_translation_payload(data, target_language)
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.warning("Could not parse translation: %s", e)
            raise TransportError(f"Translation failed: {e}") from e

        if translation.is_empty:
            raise TransportError("Translation failed: the response contained no translated text")
        return translation
