"""Tests for services.titles."""

from datetime import date

import pytest

from services.titles import TitleGenerator, clean_title, fallback_title, keyword_title
from tests.conftest import FakeTitleModel


def test_fallback_title_embeds_date():
    assert fallback_title(date(2024, 3, 9)) == "Chat - 03/09/2024"


def test_clean_title_strips_quotes_and_label():
    assert clean_title('"Title: Trip to Lisbon"') == "Trip to Lisbon"
    assert clean_title("'Weekly planning'") == "Weekly planning"
    assert clean_title("  title:   Budget review  ") == "Budget review"
    assert clean_title('Title: "Trip to Lisbon"') == "Trip to Lisbon"
    assert clean_title("'Title: \"Quoted twice\"'") == "Quoted twice"


def test_clean_title_truncates_with_ellipsis():
    title = clean_title("word " * 30)

    assert len(title) == 50
    assert title.endswith("...")


def test_keyword_title():
    assert keyword_title("how do I bake sourdough bread at home?") == "Bake Sourdough Bread Home"
    assert keyword_title("a b c d e f g h i j").startswith("Chat - ")


@pytest.mark.asyncio
async def test_short_message_skips_model():
    model = FakeTitleModel()
    title = await TitleGenerator(model).generate("hi there")

    assert title.startswith("Chat - ")
    assert model.prompts == []


@pytest.mark.asyncio
async def test_model_title_is_cleaned():
    model = FakeTitleModel(answer='"Title: Weather Chat Testing"\n')
    title = await TitleGenerator(model).generate(
        "What's the weather like today in general conversation testing"
    )

    assert title == "Weather Chat Testing"


@pytest.mark.asyncio
async def test_long_message_preview_is_truncated():
    model = FakeTitleModel(answer="Long message")
    await TitleGenerator(model).generate("x" * 500)

    prompt = model.prompts[0]
    assert "x" * 200 + "..." in prompt
    assert "x" * 201 not in prompt


@pytest.mark.asyncio
@pytest.mark.parametrize("answer", ["", "  ", "ab", '""'])
async def test_unusable_answer_falls_back(answer):
    title = await TitleGenerator(FakeTitleModel(answer=answer)).generate("Tell me about the history of Rome")

    assert title.startswith("Chat - ")


@pytest.mark.asyncio
async def test_model_error_never_raises():
    model = FakeTitleModel(error=RuntimeError("rate limited"))
    title = await TitleGenerator(model).generate("Tell me about the history of Rome")

    assert title.startswith("Chat - ")


@pytest.mark.asyncio
async def test_without_model_uses_keywords():
    title = await TitleGenerator().generate("Tell me about the history of Rome")

    assert title == "Tell About History Rome"
