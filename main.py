"""
Meme Studio Application

This is the main entry point for Meme Studio.
It collects memes, analyzes them with Gemini, reports topic trends,
maintains a style guide and generates new memes (text-only or image-first).

Every command prints a JSON outcome: {"success": true, ...} or
{"success": false, "error": "...", "kind": "..."}.
"""

import sys
import json
import asyncio
import argparse
import logging
from typing import Optional, List, Dict, Any

from config import settings
from config.style_hints import STYLES, GENERATION_FORMATS
from config.validators import validate_settings, get_config_summary
from data.database import SqlCorpusStore
from data.models import Post
from data.protocols import CorpusStore
from services.ai_service import AIService
from services.analysis_service import AnalysisService
from services.generation_service import GenerationOrchestrator
from services.image_selector import ImageSelector
from services.meme_generator import MemeTextGenerator
from services.protocols import ModelClient
from services.style_guide_service import StyleGuideService, NO_GUIDE_MESSAGE
from services.trend_service import TrendService
from utils.exceptions import MemeStudioError, ConfigurationError, InvalidRequestError
from utils.helpers import is_valid_url, to_jsonable, utc_now
from utils.logger import get_logger, setup_file_logging

# Set up logging
logger = get_logger(__name__)

# Commands that call the language model
AI_COMMANDS = {"analyze", "generate"}

COUNTER_FIELDS = ("likes", "retweets", "views", "comments", "bookmarks")


class MemeStudio:
    """
    Main application class for Meme Studio.

    This class wires the corpus store and the model client into the
    services and exposes one coroutine per user-facing operation.
    """

    def __init__(self, store: Optional[CorpusStore] = None, model: Optional[ModelClient] = None):
        """
        Initialize Meme Studio.

        Args:
            store: Corpus store (defaults to SQL Server).
            model: Model client; when omitted, model-backed operations are unavailable.
        """
        self.store = store or SqlCorpusStore()
        self.model = model
        self.trend_service = TrendService(self.store)
        self.style_guide_service = StyleGuideService(self.store, model)

        self.analysis_service = None
        self.generation = None
        if model is not None:
            self.analysis_service = AnalysisService(self.store, model)
            self.generation = GenerationOrchestrator(
                self.store,
                ImageSelector(self.store, model),
                MemeTextGenerator(self.store, model),
            )

    def _require_model(self):
        if self.model is None:
            raise ConfigurationError("This operation needs the Gemini model client")

    async def collect_post(self, payload: Dict[str, Any]) -> Post:
        """
        Store a meme sent by the collector; an existing URL is refreshed.

        Raises:
            InvalidRequestError: If the URL is missing or malformed, or a counter is not a number.
        """
        url = payload.get("url")
        if not url:
            raise InvalidRequestError("URL is required")
        if not is_valid_url(url):
            raise InvalidRequestError(f"Invalid URL: {url}")

        counters = {}
        for name in COUNTER_FIELDS:
            try:
                counters[name] = int(payload.get(name) or 0)
            except (TypeError, ValueError):
                raise InvalidRequestError(f"{name} must be a number") from None

        post = Post(
            url=url,
            text=payload.get("text") or None,
            images=list(payload.get("images") or []),
            author=payload.get("author") or None,
            platform=payload.get("platform") or settings.DEFAULT_PLATFORM,
            collected_at=utc_now(),
            **counters
        )
        return await self.store.upsert_post(post)

    async def list_posts(self, limit: int = 50, offset: int = 0, analyzed: Optional[bool] = None) -> List[Post]:
        return await self.store.list_posts(limit=limit, offset=offset, analyzed=analyzed)

    async def analyze(self, post_ids: List[str]):
        self._require_model()
        return await self.analysis_service.analyze_posts(post_ids)

    async def get_trends(self, days: Optional[int] = None):
        return await self.trend_service.get_trends(days)

    async def get_style_guide(self):
        return await self.style_guide_service.get_latest()

    async def generate_style_guide(self):
        self._require_model()
        return await self.style_guide_service.generate()

    async def generate(self, topic: Optional[str], style: Optional[str] = None,
                       output_format: Optional[str] = None, count: Optional[int] = None,
                       custom_prompt: Optional[str] = None):
        self._require_model()
        return await self.generation.generate(topic, style, output_format, count, custom_prompt)

    async def history(self, limit: int = 20, topic: Optional[str] = None):
        return await self.store.list_generated_memes(limit=limit, topic=topic)


def needs_model(args: argparse.Namespace) -> bool:
    if args.command == "style-guide":
        return args.action == "generate"
    return args.command in AI_COMMANDS


def create_meme_studio(needs_ai: bool = True) -> MemeStudio:
    """
    Build a MemeStudio with production dependencies.

    The Gemini client is only created when needs_ai is set.
    """
    validate_settings(require_database=True, require_ai=needs_ai)
    logger.debug(f"Configuration: {get_config_summary()}")
    model = AIService() if needs_ai else None
    return MemeStudio(store=SqlCorpusStore(), model=model)


def failure(error: MemeStudioError) -> Dict[str, Any]:
    return {"success": False, "error": error.message, "kind": type(error).__name__}


async def run_command(studio: MemeStudio, args: argparse.Namespace) -> Dict[str, Any]:
    """
    Execute one CLI command and shape its JSON outcome.

    Application errors become {"success": false, ...}; anything else propagates.
    """
    try:
        if args.command == "collect":
            post = await studio.collect_post({
                "url": args.url,
                "text": args.text,
                "images": args.image,
                "author": args.author,
                "platform": args.platform,
                "likes": args.likes,
                "retweets": args.retweets,
                "views": args.views,
                "comments": args.comments,
                "bookmarks": args.bookmarks,
            })
            return {"success": True, "meme": post.to_dict()}

        if args.command == "posts":
            analyzed = {"true": True, "false": False}.get(args.analyzed) if args.analyzed else None
            posts = await studio.list_posts(args.limit, args.offset, analyzed)
            return {"success": True, "memes": [p.to_dict() for p in posts], "count": len(posts)}

        if args.command == "analyze":
            batch = await studio.analyze(args.ids)
            return {"success": True, **batch.to_dict()}

        if args.command == "trends":
            report = await studio.get_trends(args.days)
            return {"success": True, **report.to_dict()}

        if args.command == "style-guide":
            if args.action == "generate":
                result = await studio.generate_style_guide()
                return {"success": True, **result.to_dict()}
            guide = await studio.get_style_guide()
            if guide is None:
                return {"success": True, "guide": None, "message": NO_GUIDE_MESSAGE}
            return {"success": True, "guide": guide.to_dict()}

        if args.command == "generate":
            result = await studio.generate(
                args.topic, args.style, args.format, args.count, args.custom_prompt
            )
            return {"success": True, **result.to_dict()}

        if args.command == "history":
            memes = await studio.history(args.limit, args.topic)
            return {"success": True, "memes": [m.to_dict() for m in memes]}

        raise InvalidRequestError(f"Unknown command: {args.command}")

    except MemeStudioError as e:
        logger.error(f"{args.command} failed: {e.message}")
        return failure(e)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Meme Studio')
    parser.add_argument('--log-file', type=str, default=None, help='Log file path')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default='INFO', help='Logging level')
    sub = parser.add_subparsers(dest='command', required=True)

    collect = sub.add_parser('collect', help='Store or refresh a collected meme')
    collect.add_argument('--url', required=True)
    collect.add_argument('--text')
    collect.add_argument('--image', action='append', default=[], help='Image URL (repeatable)')
    collect.add_argument('--author')
    collect.add_argument('--platform', default=settings.DEFAULT_PLATFORM)
    for counter in COUNTER_FIELDS:
        collect.add_argument(f'--{counter}', type=int, default=0)

    posts = sub.add_parser('posts', help='List collected memes')
    posts.add_argument('--limit', type=int, default=settings.POSTS_PAGE_SIZE)
    posts.add_argument('--offset', type=int, default=0)
    posts.add_argument('--analyzed', choices=['true', 'false'], default=None)

    analyze = sub.add_parser('analyze', help='Analyze memes by id')
    analyze.add_argument('ids', nargs='+')

    trends = sub.add_parser('trends', help='Show trending topics')
    trends.add_argument('--days', type=int, default=settings.TREND_DEFAULT_DAYS)

    guide = sub.add_parser('style-guide', help='Show or regenerate the style guide')
    guide.add_argument('action', choices=['show', 'generate'], nargs='?', default='show')

    generate = sub.add_parser('generate', help='Generate memes about a topic')
    generate.add_argument('topic')
    generate.add_argument('--style', choices=STYLES, default=settings.DEFAULT_STYLE)
    generate.add_argument('--format', choices=GENERATION_FORMATS, default=settings.DEFAULT_FORMAT)
    generate.add_argument('--count', type=int, default=settings.DEFAULT_GENERATION_COUNT)
    generate.add_argument('--custom-prompt', dest='custom_prompt', default=None)

    history = sub.add_parser('history', help='List generated memes')
    history.add_argument('--limit', type=int, default=settings.GENERATED_PAGE_SIZE)
    history.add_argument('--topic', default=None)

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level)
    setup_file_logging(args.log_file, log_level)

    logger.info(f"Starting Meme Studio: {args.command}")

    try:
        studio = create_meme_studio(needs_model(args))
        outcome = asyncio.run(run_command(studio, args))
        exit_code = 0 if outcome.get("success") else 1
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.message}")
        outcome = failure(e)
        exit_code = 2
    except Exception as e:
        logger.error(f"Unhandled exception in Meme Studio: {e}", exc_info=True)
        outcome = {"success": False, "error": "Unexpected error", "kind": type(e).__name__}
        exit_code = 2

    print(json.dumps(to_jsonable(outcome), indent=2))
    logger.info(f"Meme Studio finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
