# backend/tests/test_prompts.py
"""Prompt template tests."""

import pytest

from campus.constants.chat import GENERAL_KNOWLEDGE_MARKER, NO_CONTEXT_PLACEHOLDER
from campus.prompts import (
    PromptTemplate,
    SENTIMENT_TEMPLATE,
    SUMMARY_TEMPLATE,
    TAGS_TEMPLATE,
    format_context,
    get_chat_system_prompt,
)
from campus.retrieval.schemas import ScoredCandidate


def test_prompt_template_renders_variables():
    """PromptTemplate substitutes variables correctly."""
    template = PromptTemplate("Hello {name}, welcome to {place}.")

    assert template.render(name="Asha", place="campus") == "Hello Asha, welcome to campus."


def test_prompt_template_missing_variable():
    with pytest.raises(KeyError):
        PromptTemplate("Hello {name}").render()


def test_context_lists_posts_in_rank_order(make_post):
    first = make_post(title="Aptitude prep", body="Practice daily")
    second = make_post(title="Hostel rules", body="Gates close at ten")

    context = format_context([ScoredCandidate(first, 0.9), ScoredCandidate(second, 0.4)])

    assert context.index('[Post 1] "Aptitude prep" (2024-01-01)') < context.index(
        '[Post 2] "Hostel rules"'
    )
    assert "Practice daily" in context
    assert context.count("---") == 2


def test_empty_context_uses_placeholder():
    assert format_context([]) == NO_CONTEXT_PLACEHOLDER


def test_system_prompt_carries_marker_and_context(make_post):
    post = make_post(title="Aptitude prep")

    prompt = get_chat_system_prompt([ScoredCandidate(post, 1.0)])

    assert f'"{GENERAL_KNOWLEDGE_MARKER}"' in prompt
    assert "Aptitude prep" in prompt
    assert NO_CONTEXT_PLACEHOLDER not in prompt


def test_system_prompt_without_posts():
    assert get_chat_system_prompt([]).endswith(NO_CONTEXT_PLACEHOLDER)


def test_enrichment_templates_render():
    summary = SUMMARY_TEMPLATE.render(max_chars=150, title="T", content="C")
    tags = TAGS_TEMPLATE.render(max_tags=5, title="T", content="C")
    sentiment = SENTIMENT_TEMPLATE.render(content="C")

    assert "max 150 characters" in summary
    assert "3-5 relevant tags" in tags
    assert "JSON array" in tags
    assert '"score"' in sentiment
