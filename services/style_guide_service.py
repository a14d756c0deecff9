"""
Style Guide Service Module

This module condenses the analyzed corpus into a style guide: frequency
statistics and a truncated per-meme digest go into one structured model
call, and the result is stored as a new snapshot.
"""

from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Tuple

from config import settings
from data.models import Post, StyleGuide
from data.protocols import CorpusStore
from services.protocols import ModelClient
from services.schemas import StyleGuideContent, validate_style_guide
from utils.exceptions import NoAnalyzedContentError, StoreUnavailableError
from utils.helpers import clip, count_occurrences, rank_counts, format_counts, utc_now
from utils.logger import get_logger

logger = get_logger(__name__)

NO_GUIDE_MESSAGE = "No style guide generated yet. Generate one first."


@dataclass
class StyleGuideStats:
    """Frequency tables behind a style guide digest."""
    topics: List[Tuple[str, int]]
    humor_types: List[Tuple[str, int]]
    tones: List[Tuple[str, int]]
    formats: Dict[str, int]


@dataclass
class StyleGuideResult:
    """Outcome of a style guide generation.

    `saved` is False when the model call succeeded but the snapshot could
    not be stored; the guide content is still returned in that case.
    """
    guide: StyleGuide
    meme_count: int
    saved: bool
    message: str
    save_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "guide": self.guide.to_dict(),
            "memeCount": self.meme_count,
            "saved": self.saved,
            "message": self.message,
        }
        if self.save_error:
            result["saveError"] = self.save_error
        return result


def compute_stats(posts: List[Post], top_topics: int = 10) -> StyleGuideStats:
    """Count topics, humor types, tones and formats across posts."""
    return StyleGuideStats(
        topics=rank_counts(count_occurrences(t for p in posts for t in (p.topics or [])), top_topics),
        humor_types=rank_counts(count_occurrences(p.humor_type for p in posts)),
        tones=rank_counts(count_occurrences(p.tone for p in posts)),
        formats=count_occurrences(p.format for p in posts),
    )


def summarize_post(position: int, post: Post, text_length: int = 100, image_length: int = 50) -> str:
    """One digest line for a meme, with text and image description clipped."""
    return (
        f"[{position}] {clip(post.text, text_length) or 'No text'}... "
        f"| Topics: {', '.join(post.topics or []) or 'none'} "
        f"| Humor: {post.humor_type or 'unknown'} "
        f"| Tone: {post.tone or 'unknown'} "
        f"| Structure: {post.joke_structure or 'unknown'} "
        f"| Image: {clip(post.image_analysis, image_length) or 'none'}"
    )


def build_digest(posts: List[Post], stats: StyleGuideStats,
                 text_length: int = 100, image_length: int = 50) -> str:
    """Statistics block followed by one line per meme."""
    summaries = "\n".join(
        summarize_post(i + 1, post, text_length, image_length) for i, post in enumerate(posts)
    )
    return f"""
STATISTICS FROM {len(posts)} ANALYZED MEMES:

Top Topics: {format_counts(stats.topics)}
Humor Types: {format_counts(stats.humor_types)}
Tones: {format_counts(stats.tones)}
Formats: {format_counts(stats.formats.items())}

MEME EXAMPLES:
{summaries}
"""


def build_prompt(digest: str) -> str:
    return f"""You are a meme analysis expert. Based on this collection of analyzed memes, create a comprehensive style guide that captures what makes these memes work. Extract patterns, common themes, and guidelines for creating similar content.

{digest}

Create a detailed style guide that someone could use to create memes in this same style without seeing all the original memes. Focus on:
1. What topics resonate most
2. What humor patterns work best
3. How to structure jokes effectively
4. Tone and voice guidelines
5. Image usage patterns
6. Common do's and don'ts"""


class StyleGuideService:
    """Generates and reads style guide snapshots."""

    def __init__(self, store: CorpusStore, model: ModelClient, guide_type: Optional[str] = None):
        self.store = store
        self.model = model
        self.guide_type = guide_type or settings.STYLE_GUIDE_TYPE

    async def get_latest(self, guide_type: Optional[str] = None) -> Optional[StyleGuide]:
        """Return the newest snapshot of a guide type, or None if none exists."""
        return await self.store.get_latest_style_guide(guide_type or self.guide_type)

    async def generate(self) -> StyleGuideResult:
        """
        Build a new style guide from every analyzed meme.

        Returns:
            StyleGuideResult: The guide, the corpus size and the save status.

        Raises:
            NoAnalyzedContentError: If no analyzed memes exist (no model call is made).
            ModelCallFailedError: If the model call fails or returns an invalid guide.
        """
        posts = await self.store.list_analyzed_posts()
        if not posts:
            raise NoAnalyzedContentError()

        stats = compute_stats(posts, settings.STYLE_GUIDE_TOP_TOPICS)
        digest = build_digest(posts, stats, settings.STYLE_GUIDE_TEXT_LENGTH, settings.STYLE_GUIDE_IMAGE_LENGTH)

        logger.info(f"Generating style guide from {len(posts)} memes...")
        payload = await self.model.generate_structured(build_prompt(digest), StyleGuideContent)
        content = validate_style_guide(payload)

        guide = StyleGuide(
            guide_type=self.guide_type,
            content=content,
            meme_count=len(posts),
            topics=[topic for topic, _ in stats.topics],
            humor_patterns=[humor for humor, _ in stats.humor_types],
            created_at=utc_now(),
        )

        try:
            saved_guide = await self.store.insert_style_guide(guide)
        except StoreUnavailableError as e:
            logger.error(f"Failed to save style guide: {e}")
            return StyleGuideResult(
                guide=guide,
                meme_count=len(posts),
                saved=False,
                message="Style guide generated but failed to save",
                save_error=e.message,
            )

        logger.info(f"Saved style guide {saved_guide.id}")
        return StyleGuideResult(
            guide=saved_guide,
            meme_count=len(posts),
            saved=True,
            message=f"Style guide generated from {len(posts)} analyzed memes",
        )
