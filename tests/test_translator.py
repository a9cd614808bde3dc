"""Tests for the translator module."""

import json

import httpx
import pytest

from recipe_basket.errors import TransportError, ValidationError
from recipe_basket.translator import Translator, build_translation_prompt

BASE_URL = "https://llm.example.test/v1"
COMPLETIONS_URL = f"{BASE_URL}/chat/completions"


def completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


@pytest.fixture
def translator():
    client = Translator("test-key", base_url=BASE_URL, model="test-model")
    yield client
    client.close()


@pytest.fixture
def translated_pancakes():
    return {
        "translatedTitle": "Crêpes épaisses",
        "translatedDescription": "Pour le petit-déjeuner",
        "translatedIngredients": [
            {"name": "farine", "amount": 200, "unit": "g", "notes": ""},
            {"name": "lait", "amount": 300, "unit": "ml", "notes": ""},
            {"name": "sel", "amount": None, "unit": "", "notes": ""},
        ],
        "translatedSteps": ["Mélanger.", "Cuire."],
    }


class TestBuildTranslationPrompt:
    """Tests for build_translation_prompt function."""

    def test_includes_recipe_text(self, pancakes):
        prompt = build_translation_prompt(pancakes, "French")

        assert "Translate the following recipe to French" in prompt
        assert "Title: Pancakes" in prompt
        assert "- 200 g flour" in prompt
        assert '"translatedTitle"' in prompt


class TestTranslator:
    """Tests for Translator."""

    def test_requires_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        with pytest.raises(ValidationError, match="No API key"):
            Translator()

    def test_reads_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "env-key")

        with Translator(base_url=BASE_URL) as client:
            assert client.api_key == "env-key"

    def test_translate(self, translator, pancakes, translated_pancakes, mock_httpx):
        route = mock_httpx.post(COMPLETIONS_URL).mock(
            return_value=httpx.Response(200, json=completion(json.dumps(translated_pancakes)))
        )

        translation = translator.translate(pancakes, "French")

        assert translation.language == "French"
        assert translation.title == "Crêpes épaisses"
        assert [ing.name for ing in translation.ingredients] == ["farine", "lait", "sel"]
        assert translation.ingredients[0].amount == 200.0
        assert translation.steps == ["Mélanger.", "Cuire."]

        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer test-key"
        body = json.loads(request.content)
        assert body["model"] == "test-model"
        assert body["response_format"] == {"type": "json_object"}
        assert "French" in body["messages"][0]["content"]

    def test_partial_translation(self, translator, pancakes, mock_httpx):
        mock_httpx.post(COMPLETIONS_URL).mock(
            return_value=httpx.Response(
                200, json=completion(json.dumps({"translatedTitle": "Crêpes"}))
            )
        )

        translation = translator.translate(pancakes)

        assert translation.title == "Crêpes"
        assert translation.description is None
        assert translation.ingredients is None

    def test_http_error(self, translator, pancakes, mock_httpx):
        mock_httpx.post(COMPLETIONS_URL).mock(return_value=httpx.Response(500))

        with pytest.raises(TransportError, match="500"):
            translator.translate(pancakes)

    def test_connection_error(self, translator, pancakes, mock_httpx):
        mock_httpx.post(COMPLETIONS_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(TransportError, match="Translation failed"):
            translator.translate(pancakes)

    def test_unexpected_response_shape(self, translator, pancakes, mock_httpx):
        mock_httpx.post(COMPLETIONS_URL).mock(
            return_value=httpx.Response(200, json={"error": "nope"})
        )

        with pytest.raises(TransportError, match="unexpected response format"):
            translator.translate(pancakes)

    def test_content_not_json(self, translator, pancakes, mock_httpx):
        mock_httpx.post(COMPLETIONS_URL).mock(
            return_value=httpx.Response(200, json=completion("Voici la recette..."))
        )

        with pytest.raises(TransportError):
            translator.translate(pancakes)

    def test_empty_translation(self, translator, pancakes, mock_httpx):
        mock_httpx.post(COMPLETIONS_URL).mock(
            return_value=httpx.Response(200, json=completion("{}"))
        )

        with pytest.raises(TransportError, match="no translated text"):
            translator.translate(pancakes)
