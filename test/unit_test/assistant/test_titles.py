"""Unit tests for chat title generation."""

import pytest

from loopwell.assistant.titles import TITLE_MODEL, clean_title, fallback_title, generate_title


class TestFallbackTitle:
    def test_first_four_words_without_punctuation(self):
        assert fallback_title("How do I deploy, the staging app?") == "How do I deploy"

    def test_long_words_are_truncated(self):
        title = fallback_title("Supercalifragilistic expialidocious internationalization documentation")

        assert len(title) == 30
        assert title.endswith("...")

    @pytest.mark.parametrize("message", ["", "?!"])
    def test_empty_message(self, message):
        assert fallback_title(message) == "New Chat"


class TestCleanTitle:
    def test_strips_quotes(self):
        assert clean_title('  "Deploying Staging"  ') == "Deploying Staging"

    def test_caps_length(self):
        title = clean_title("x" * 80)

        assert len(title) == 50
        assert title.endswith("...")


class TestGenerateTitle:
    @pytest.mark.asyncio
    async def test_uses_model_reply(self, llm, fake_llm):
        fake_llm.reply = '"Staging Deployment Steps"'

        title = await generate_title(llm, "How do I deploy staging?", "Run the pipeline")

        assert title == "Staging Deployment Steps"
        assert fake_llm.requested_models == [TITLE_MODEL]

    @pytest.mark.asyncio
    async def test_short_reply_falls_back(self, llm, fake_llm):
        fake_llm.reply = "Ok"

        assert await generate_title(llm, "Quarterly planning notes", "Sure") == "Quarterly planning notes"

    @pytest.mark.asyncio
    async def test_model_failure_falls_back(self, failing_llm):
        assert await generate_title(failing_llm, "Where is the handbook?", "Here") == "Where is the handbook"
