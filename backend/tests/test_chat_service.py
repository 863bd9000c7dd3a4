"""Chat assistant tests."""

import pytest
from unittest.mock import AsyncMock, patch

from litellm.exceptions import ServiceUnavailableError, Timeout

from campus.chat.schemas import ChatMode, ConversationTurn
from campus.chat.service import (
    RAGAssistant,
    build_sources,
    build_turns,
    classify_mode,
    normalize_history,
)
from campus.constants.chat import GENERAL_KNOWLEDGE_MARKER, NO_CONTEXT_PLACEHOLDER
from campus.errors import RAGFailure, ValidationError
from campus.embeddings.provider import LiteLLMEmbeddings
from campus.llm.client import LLMClient, LLMConnectionError
from campus.retrieval.retriever import CandidateRetriever


def turn(role, text):
    return ConversationTurn(role=role, text=text)


@pytest.fixture
def make_assistant(store, mock_llm, fake_embeddings):
    def _make(default=(1.0, 0.0), **kwargs):
        embeddings = fake_embeddings(default=list(default) if default else None)
        return RAGAssistant(CandidateRetriever(store, embeddings), mock_llm, **kwargs)

    return _make


class TestConversationTurn:
    """History turns arrive in several shapes."""

    def test_model_role_is_assistant(self):
        assert ConversationTurn.model_validate({"role": "model", "text": "hi"}).role == "assistant"

    def test_unknown_role_is_user(self):
        assert ConversationTurn.model_validate({"role": "bot", "text": "hi"}).role == "user"

    def test_parts_shape(self):
        parsed = ConversationTurn.model_validate({"role": "user", "parts": [{"text": "hello"}]})
        assert parsed.text == "hello"

    def test_content_shape(self):
        parsed = ConversationTurn.model_validate({"role": "assistant", "content": "hello"})
        assert parsed.text == "hello"


class TestHistory:
    """History normalization."""

    def test_blank_turns_are_dropped(self):
        messages = normalize_history([turn("user", "hi"), turn("assistant", "  ")])
        assert messages == [{"role": "user", "content": "hi"}]

    def test_leading_assistant_turns_are_dropped(self):
        messages = normalize_history([turn("assistant", "welcome"), turn("user", "hi")])
        assert messages == [{"role": "user", "content": "hi"}]

    def test_consecutive_same_role_turns_are_merged(self):
        messages = normalize_history(
            [turn("user", "a"), turn("user", "b"), turn("assistant", "c")]
        )
        assert messages == [
            {"role": "user", "content": "a\n\nb"},
            {"role": "assistant", "content": "c"},
        ]

    def test_only_most_recent_turns_are_kept(self):
        history = [turn("user", "old"), turn("assistant", "older answer"), turn("user", "new")]
        assert normalize_history(history, max_turns=1) == [{"role": "user", "content": "new"}]
        assert normalize_history(history, max_turns=0) == []

    def test_question_is_the_final_user_turn(self):
        messages = build_turns("system", [turn("user", "hi"), turn("assistant", "hello")], "q?")

        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[-1]["content"] == "q?"

    def test_trailing_user_turn_merges_with_question(self):
        messages = build_turns("system", [turn("user", "context")], "q?")

        assert [m["role"] for m in messages] == ["system", "user"]
        assert messages[-1]["content"] == "context\n\nq?"


class TestModeAndSources:
    def test_marker_means_general_mode(self):
        assert classify_mode(f"{GENERAL_KNOWLEDGE_MARKER}\n\nSome advice") is ChatMode.GENERAL

    def test_no_marker_means_community_mode(self):
        assert classify_mode("According to community discussions...") is ChatMode.COMMUNITY

    def test_general_mode_has_single_general_source(self):
        sources = build_sources(ChatMode.GENERAL, [])

        assert len(sources) == 1
        assert sources[0].id is None
        assert sources[0].similarity == 0


class TestRAGAssistant:
    """End-to-end chat turns with a mocked model."""

    async def test_community_answer_lists_sources(self, make_assistant, make_post, mock_llm):
        near = make_post(embedding=[1.0, 0.0], title="Aptitude prep")
        far = make_post(embedding=[0.0, 1.0], title="Hostel food")
        assistant = make_assistant(top_k=5)

        answer = await assistant.answer("How to prepare for aptitude?")

        assert answer.mode is ChatMode.COMMUNITY
        assert answer.posts_used == 2
        assert [(s.id, s.similarity) for s in answer.sources] == [(near.id, 100), (far.id, 0)]
        assert answer.sources[0].author == "Asha Patil"

        messages = mock_llm.complete.call_args.args[0]
        assert messages[0]["role"] == "system"
        assert '[Post 1] "Aptitude prep"' in messages[0]["content"]
        assert messages[-1] == {"role": "user", "content": "How to prepare for aptitude?"}

    async def test_empty_index_still_answers_in_general_mode(self, make_assistant, mock_llm):
        mock_llm.complete.return_value = f"{GENERAL_KNOWLEDGE_MARKER}\n\n## Tips\n- Practice"
        assistant = make_assistant()

        answer = await assistant.answer("How do I negotiate an offer?")

        assert answer.mode is ChatMode.GENERAL
        assert answer.posts_used == 0
        assert [s.title for s in answer.sources] == ["General Knowledge"]
        system_prompt = mock_llm.complete.call_args.args[0][0]["content"]
        assert NO_CONTEXT_PLACEHOLDER in system_prompt

    async def test_question_is_truncated(self, make_assistant, mock_llm):
        assistant = make_assistant(max_question_length=10)

        await assistant.answer("x" * 50)

        messages = mock_llm.complete.call_args.args[0]
        assert messages[-1]["content"] == "x" * 10

    async def test_configured_temperature_is_passed(self, make_assistant, mock_llm):
        await make_assistant(temperature=0.2).answer("question")

        assert mock_llm.complete.call_args.kwargs["temperature"] == 0.2

    @pytest.mark.parametrize("question", ["", "   "])
    async def test_blank_question_is_rejected(self, make_assistant, mock_llm, question):
        with pytest.raises(ValidationError):
            await make_assistant().answer(question)

        mock_llm.complete.assert_not_called()

    async def test_embedding_failure_is_rag_failure(self, make_assistant, mock_llm):
        with pytest.raises(RAGFailure):
            await make_assistant(default=None).answer("question")

        mock_llm.complete.assert_not_called()

    async def test_llm_failure_is_rag_failure(self, make_assistant, mock_llm):
        mock_llm.complete = AsyncMock(side_effect=LLMConnectionError("refused"))

        with pytest.raises(RAGFailure):
            await make_assistant().answer("question")

    async def test_model_timeout_is_rag_failure(self, store, fake_embeddings):
        retriever = CandidateRetriever(store, fake_embeddings(default=[1.0, 0.0]))
        assistant = RAGAssistant(retriever, LLMClient(provider="openai", model="gpt-4o"))

        with patch("campus.llm.client.acompletion", new_callable=AsyncMock) as completion:
            completion.side_effect = Timeout(
                message="timed out", model="gpt-4o", llm_provider="openai"
            )
            with pytest.raises(RAGFailure):
                await assistant.answer("question")

    async def test_embedding_outage_is_rag_failure(self, store, mock_llm):
        embeddings = LiteLLMEmbeddings(provider="openai", model="text-embedding-3-small")
        assistant = RAGAssistant(CandidateRetriever(store, embeddings), mock_llm)

        with patch("campus.embeddings.provider.aembedding", new_callable=AsyncMock) as embed:
            embed.side_effect = ServiceUnavailableError(
                message="overloaded", llm_provider="openai", model="text-embedding-3-small"
            )
            with pytest.raises(RAGFailure):
                await assistant.answer("question")

        mock_llm.complete.assert_not_called()

    async def test_empty_answer_is_rag_failure(self, make_assistant, mock_llm):
        mock_llm.complete.return_value = "   "

        with pytest.raises(RAGFailure):
            await make_assistant().answer("question")

    async def test_answer_does_not_write(self, make_assistant, make_post, store):
        post = make_post(embedding=[1.0, 0.0])
        before = store.get(post.id)

        await make_assistant().answer("question")

        after = store.get(post.id)
        assert after.updated_at == before.updated_at
        assert after.upvotes == before.upvotes
