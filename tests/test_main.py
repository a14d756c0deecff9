"""
Tests for Meme Studio Main Application

Tests cover the MemeStudio facade, the JSON outcomes produced per CLI
command and exit codes.
"""

import json
import pytest
from unittest.mock import MagicMock, patch
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from main import MemeStudio, run_command, parse_arguments, needs_model, main
from services.style_guide_service import NO_GUIDE_MESSAGE
from utils.exceptions import ConfigurationError, InvalidRequestError


@pytest.fixture
def studio(store, mock_model):
    return MemeStudio(store=store, model=mock_model)


# =============================================================================
# Facade Tests
# =============================================================================

class TestCollectPost:
    """Tests for MemeStudio.collect_post."""

    @pytest.mark.asyncio
    async def test_url_required(self, studio):
        with pytest.raises(InvalidRequestError):
            await studio.collect_post({"text": "no url"})

    @pytest.mark.asyncio
    async def test_defaults(self, studio):
        post = await studio.collect_post({"url": "https://x.com/a/status/1", "likes": "12"})

        assert post.id is not None
        assert post.platform == "twitter"
        assert post.likes == 12
        assert post.retweets == 0
        assert post.collected_at is not None

    @pytest.mark.asyncio
    async def test_bad_counter(self, studio):
        with pytest.raises(InvalidRequestError):
            await studio.collect_post({"url": "https://x.com/a/status/1", "views": "lots"})

    @pytest.mark.asyncio
    async def test_recollect_keeps_identity_and_analysis(self, studio, store, post_factory):
        original = store.add(post_factory(url="https://x.com/a/status/7", likes=3, topics=["AI"]))

        refreshed = await studio.collect_post({"url": "https://x.com/a/status/7", "likes": 300})

        assert refreshed.id == original.id
        assert refreshed.likes == 300
        assert refreshed.topics == ["AI"]
        assert refreshed.analyzed_at == original.analyzed_at
        assert len(store.posts) == 1


class TestModelRequirement:
    """Tests for running without a model client."""

    @pytest.mark.asyncio
    async def test_generate_needs_model(self, store):
        with pytest.raises(ConfigurationError):
            await MemeStudio(store=store).generate("AI")

    @pytest.mark.asyncio
    async def test_read_only_commands_work_without_model(self, store):
        studio = MemeStudio(store=store)

        assert await studio.get_style_guide() is None
        assert (await studio.get_trends(7)).total_memes == 0

    def test_needs_model(self):
        assert needs_model(parse_arguments(["generate", "AI"]))
        assert needs_model(parse_arguments(["style-guide", "generate"]))
        assert not needs_model(parse_arguments(["style-guide"]))
        assert not needs_model(parse_arguments(["trends"]))


# =============================================================================
# Command Outcome Tests
# =============================================================================

class TestRunCommand:
    """Tests for the JSON outcome of each command."""

    @pytest.mark.asyncio
    async def test_missing_topic_outcome(self, studio):
        outcome = await run_command(studio, parse_arguments(["generate", "   "]))

        assert outcome == {"success": False, "error": "Topic is required", "kind": "MissingTopicError"}

    @pytest.mark.asyncio
    async def test_generate_outcome(self, studio, mock_model):
        mock_model.generate_text.return_value = "1. one\n---\n2. two\n---"

        outcome = await run_command(studio, parse_arguments(["generate", "AI", "--count", "2"]))

        assert outcome["success"] is True
        assert outcome["approach"] == "text-only"
        assert outcome["savedCount"] == 2
        assert [m["text"] for m in outcome["memes"]] == ["one", "two"]

    @pytest.mark.asyncio
    async def test_style_guide_show_without_guide(self, studio):
        outcome = await run_command(studio, parse_arguments(["style-guide", "show"]))

        assert outcome == {"success": True, "guide": None, "message": NO_GUIDE_MESSAGE}

    @pytest.mark.asyncio
    async def test_style_guide_generate_without_content(self, studio):
        outcome = await run_command(studio, parse_arguments(["style-guide", "generate"]))

        assert outcome["success"] is False
        assert outcome["kind"] == "NoAnalyzedContentError"

    @pytest.mark.asyncio
    async def test_collect_then_list_and_history(self, studio):
        collected = await run_command(studio, parse_arguments([
            "collect", "--url", "https://x.com/a/status/1", "--image", "https://img/1.png", "--likes", "4"
        ]))
        listed = await run_command(studio, parse_arguments(["posts", "--analyzed", "false"]))
        history = await run_command(studio, parse_arguments(["history", "--topic", "AI"]))

        assert collected["meme"]["images"] == ["https://img/1.png"]
        assert listed["count"] == 1
        assert history == {"success": True, "memes": []}

    @pytest.mark.asyncio
    async def test_store_outage_outcome(self, studio, store):
        store.unavailable = True

        outcome = await run_command(studio, parse_arguments(["trends", "--days", "3"]))

        assert outcome["success"] is False
        assert outcome["kind"] == "StoreUnavailableError"


# =============================================================================
# Entry Point Tests
# =============================================================================

class TestMain:
    """Tests for main() exit codes and output."""

    def test_success_exit_code(self, store, capsys):
        with patch('main.create_meme_studio', return_value=MemeStudio(store=store)):
            code = main(["history"])

        assert code == 0
        assert json.loads(capsys.readouterr().out) == {"success": True, "memes": []}

    def test_application_error_exit_code(self, store, capsys):
        with patch('main.create_meme_studio', return_value=MemeStudio(store=store)):
            code = main(["analyze", "missing-id"])

        assert code == 1
        assert json.loads(capsys.readouterr().out)["kind"] == "ConfigurationError"

    def test_configuration_error_exit_code(self, capsys):
        with patch('main.create_meme_studio', side_effect=ConfigurationError("Missing DB_SERVER")):
            code = main(["trends"])

        assert code == 2
        assert json.loads(capsys.readouterr().out)["error"] == "Missing DB_SERVER"

    def test_unexpected_error_exit_code(self, capsys):
        broken = MagicMock()
        with patch('main.create_meme_studio', return_value=broken), \
             patch('main.run_command', side_effect=RuntimeError("boom")):
            code = main(["trends"])

        assert code == 2
        assert json.loads(capsys.readouterr().out)["kind"] == "RuntimeError"

    def test_log_level_applied(self, store):
        with patch('main.create_meme_studio', return_value=MemeStudio(store=store)), \
             patch('main.setup_file_logging') as setup:
            main(["--log-level", "DEBUG", "history"])

        setup.assert_called_once_with(None, 10)
