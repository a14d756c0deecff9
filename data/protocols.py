"""
Data Layer Protocol Definitions

This module defines typing.Protocol interfaces for data layer operations.
These protocols enable dependency injection for database operations,
making services testable without real database connections.

Protocols defined:
- CorpusStore: Interface for posts, generated memes and style guides
"""

from datetime import datetime
from typing import Protocol, Optional, List, Sequence

from data.models import Post, PostAnalysis, GeneratedMeme, StyleGuide


class CorpusStore(Protocol):
    """Protocol defining the interface for corpus storage operations.

    Every method is a coroutine. Implementations raise
    StoreUnavailableError when the backing store cannot be reached or a
    statement fails; "not found" is reported as None or an empty list.
    """

    async def upsert_post(self, post: Post) -> Post:
        """Insert a post or refresh an existing one with the same URL.

        Re-collection overwrites text, images, author, platform, engagement
        counters and collected_at; identity and analysis fields survive.

        Returns:
            The stored post.
        """
        ...

    async def get_posts_by_ids(self, post_ids: Sequence[str]) -> List[Post]:
        """Fetch the posts whose ids are listed (unknown ids are skipped)."""
        ...

    async def list_posts(
        self,
        limit: int = 50,
        offset: int = 0,
        analyzed: Optional[bool] = None
    ) -> List[Post]:
        """List posts newest-collected first.

        Args:
            limit: Maximum number of posts to return.
            offset: Number of posts to skip.
            analyzed: True for analyzed only, False for unanalyzed only,
                None for all.
        """
        ...

    async def list_recent_posts(self, limit: int) -> List[Post]:
        """List the most recently collected posts, analyzed or not."""
        ...

    async def list_analyzed_posts(
        self,
        since: Optional[datetime] = None,
        limit: Optional[int] = None
    ) -> List[Post]:
        """List analyzed posts newest-collected first.

        Args:
            since: Only posts with collected_at at or after this instant.
            limit: Maximum number of posts, or None for all.
        """
        ...

    async def save_analysis(self, post_id: str, analysis: PostAnalysis) -> None:
        """Write analysis fields to a post."""
        ...

    async def insert_generated_meme(self, meme: GeneratedMeme) -> GeneratedMeme:
        """Insert a generated meme row and return it with id and created_at."""
        ...

    async def list_generated_memes(self, limit: int = 20, topic: Optional[str] = None) -> List[GeneratedMeme]:
        """List generated memes newest first, optionally for one topic."""
        ...

    async def insert_style_guide(self, guide: StyleGuide) -> StyleGuide:
        """Insert a style guide snapshot and return it with id and created_at."""
        ...

    async def get_latest_style_guide(self, guide_type: str) -> Optional[StyleGuide]:
        """Return the most recently created guide of a type, or None."""
        ...
