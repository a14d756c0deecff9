"""
Shared Test Fixtures for Meme Studio

This module provides common fixtures used across all test modules.
Fixtures include an in-memory corpus store, a mock model client,
pyodbc mocks, log capture and data factories for test objects.
"""

import pytest
from unittest.mock import MagicMock, AsyncMock, patch
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, List, Sequence
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import Post, PostAnalysis, GeneratedMeme, StyleGuide
from utils.exceptions import StoreUnavailableError

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Corpus Store Fixtures
# =============================================================================

class InMemoryCorpusStore:
    """
    CorpusStore implementation that keeps everything in dictionaries.

    Failure injection:
        unavailable: every call raises StoreUnavailableError.
        failing_methods: names of methods that raise StoreUnavailableError.
        failing_inserts: 0-based attempt numbers of insert_generated_meme that fail.
    """

    def __init__(self):
        self.posts: Dict[str, Post] = {}
        self.generated: List[GeneratedMeme] = []
        self.style_guides: List[StyleGuide] = []
        self.calls: List[str] = []
        self.unavailable = False
        self.failing_methods = set()
        self.failing_inserts = set()
        self._insert_attempts = 0
        self._next_id = 1

    def _enter(self, method: str):
        self.calls.append(method)
        if self.unavailable or method in self.failing_methods:
            raise StoreUnavailableError(f"{method} failed: store offline")

    def _new_id(self, prefix: str) -> str:
        value = f"{prefix}-{self._next_id}"
        self._next_id += 1
        return value

    def add(self, post: Post) -> Post:
        """Seed a post directly, bypassing upsert rules."""
        stored = replace(post, id=post.id or self._new_id("meme"))
        self.posts[stored.url] = stored
        return stored

    async def upsert_post(self, post: Post) -> Post:
        self._enter("upsert_post")
        existing = self.posts.get(post.url)
        if existing is None:
            stored = replace(post, id=self._new_id("meme"))
        else:
            stored = replace(
                existing,
                text=post.text, images=list(post.images), author=post.author,
                platform=post.platform, likes=post.likes, retweets=post.retweets,
                views=post.views, comments=post.comments, bookmarks=post.bookmarks,
                collected_at=post.collected_at,
            )
        self.posts[post.url] = stored
        return replace(stored)

    async def get_posts_by_ids(self, post_ids: Sequence[str]) -> List[Post]:
        self._enter("get_posts_by_ids")
        wanted = set(post_ids)
        return [replace(p) for p in self.posts.values() if p.id in wanted]

    def _by_recency(self) -> List[Post]:
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(self.posts.values(), key=lambda p: p.collected_at or epoch, reverse=True)

    async def list_posts(self, limit: int = 50, offset: int = 0, analyzed: Optional[bool] = None) -> List[Post]:
        self._enter("list_posts")
        posts = self._by_recency()
        if analyzed is not None:
            posts = [p for p in posts if p.is_analyzed == analyzed]
        return [replace(p) for p in posts[offset:offset + limit]]

    async def list_recent_posts(self, limit: int) -> List[Post]:
        self._enter("list_recent_posts")
        return [replace(p) for p in self._by_recency()[:limit]]

    async def list_analyzed_posts(self, since: Optional[datetime] = None, limit: Optional[int] = None) -> List[Post]:
        self._enter("list_analyzed_posts")
        posts = [p for p in self._by_recency() if p.is_analyzed]
        if since is not None:
            posts = [p for p in posts if p.collected_at and p.collected_at >= since]
        if limit is not None:
            posts = posts[:limit]
        return [replace(p) for p in posts]

    async def save_analysis(self, post_id: str, analysis: PostAnalysis) -> None:
        self._enter("save_analysis")
        for url, post in self.posts.items():
            if post.id == post_id:
                self.posts[url] = replace(
                    post,
                    topics=list(analysis.topics), humor_type=analysis.humor_type,
                    format=analysis.format, template=analysis.template,
                    joke_structure=analysis.joke_structure, tone=analysis.tone,
                    image_analysis=analysis.image_analysis,
                    searchable_text=analysis.searchable_text,
                    analyzed_at=analysis.analyzed_at,
                )

    async def insert_generated_meme(self, meme: GeneratedMeme) -> GeneratedMeme:
        self._enter("insert_generated_meme")
        attempt = self._insert_attempts
        self._insert_attempts += 1
        if attempt in self.failing_inserts:
            raise StoreUnavailableError(f"insert {attempt} rejected")
        stored = replace(meme, id=self._new_id("gen"))
        self.generated.append(stored)
        return stored

    async def list_generated_memes(self, limit: int = 20, topic: Optional[str] = None) -> List[GeneratedMeme]:
        self._enter("list_generated_memes")
        rows = [m for m in reversed(self.generated) if topic is None or m.topic == topic]
        return rows[:limit]

    async def insert_style_guide(self, guide: StyleGuide) -> StyleGuide:
        self._enter("insert_style_guide")
        stored = replace(guide, id=self._new_id("guide"))
        self.style_guides.append(stored)
        return stored

    async def get_latest_style_guide(self, guide_type: str) -> Optional[StyleGuide]:
        self._enter("get_latest_style_guide")
        matching = [g for g in self.style_guides if g.guide_type == guide_type]
        return matching[-1] if matching else None


@pytest.fixture
def store():
    """
    Empty in-memory corpus store.

    Usage:
        async def test_something(store, post_factory):
            store.add(post_factory(topics=['ai']))
    """
    return InMemoryCorpusStore()


# =============================================================================
# Model Fixtures
# =============================================================================

@pytest.fixture
def mock_model():
    """
    Mock model client with awaitable generate_structured / generate_text.

    Usage:
        mock_model.generate_text.return_value = "1. joke\\n---"
        mock_model.generate_structured.side_effect = ModelCallFailedError("boom")

    Returns:
        MagicMock: A ModelClient stand-in whose call history can be asserted.
    """
    model = MagicMock()
    model.generate_structured = AsyncMock(return_value={})
    model.generate_text = AsyncMock(return_value="")
    return model


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def mock_db_connection():
    """
    Mock pyodbc database connection and cursor.

    Usage:
        def test_database(mock_db_connection):
            conn, cursor = mock_db_connection
            cursor.description = [('URL',)]
            cursor.fetchall.return_value = [('https://x.com/1',)]

    Returns:
        tuple: A tuple of (mock_connection, mock_cursor).
    """
    mock_cursor = MagicMock()
    mock_cursor.description = None
    mock_cursor.fetchall.return_value = []

    mock_conn = MagicMock()
    mock_conn.cursor.return_value = mock_cursor

    with patch('pyodbc.connect', return_value=mock_conn):
        yield mock_conn, mock_cursor


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def capture_logs():
    """
    Capture application log records for assertion in tests.

    Returns:
        list: A list that will contain captured log records.
    """
    import logging
    from utils.logger import ROOT_LOGGER_NAME

    class LogCapture(logging.Handler):
        def __init__(self):
            super().__init__()
            self.records = []

        def emit(self, record):
            self.records.append(record)

    handler = LogCapture()
    handler.setLevel(logging.DEBUG)

    app_logger = logging.getLogger(ROOT_LOGGER_NAME)
    original_level = app_logger.level
    app_logger.setLevel(logging.DEBUG)
    app_logger.addHandler(handler)

    yield handler.records

    app_logger.removeHandler(handler)
    app_logger.setLevel(original_level)


# =============================================================================
# Data Model Factories
# =============================================================================

@pytest.fixture
def post_factory():
    """
    Factory fixture for creating Post test objects.

    Posts are analyzed unless analyzed=False is passed.

    Usage:
        post = post_factory(topics=['AI', 'startups'], likes=120)
        raw = post_factory(analyzed=False, images=['https://img/1.png'])
    """
    counter = {"n": 0}

    def _create_post(
        url: Optional[str] = None,
        text: Optional[str] = "When the demo works on the first try",
        images: Optional[List[str]] = None,
        likes: int = 10,
        topics: Optional[List[str]] = None,
        humor_type: Optional[str] = "relatable",
        tone: Optional[str] = "playful",
        meme_format: Optional[str] = "text-only",
        image_analysis: Optional[str] = None,
        collected_at: Optional[datetime] = None,
        analyzed: bool = True,
        post_id: Optional[str] = None,
        **kwargs
    ) -> Post:
        counter["n"] += 1
        n = counter["n"]
        collected = collected_at or (NOW - timedelta(hours=n))
        fields = dict(
            url=url or f"https://x.com/user/status/{n}",
            text=text,
            images=list(images or []),
            likes=likes,
            collected_at=collected,
            id=post_id,
        )
        if analyzed:
            fields.update(
                topics=list(topics if topics is not None else ["tech"]),
                humor_type=humor_type,
                tone=tone,
                format=meme_format,
                joke_structure="setup then punchline",
                image_analysis=image_analysis,
                analyzed_at=collected + timedelta(minutes=5),
            )
        fields.update(kwargs)
        return Post(**fields)

    return _create_post


@pytest.fixture
def style_guide_payload():
    """A structurally valid style guide response."""
    return {
        "topTopics": [{"topic": "AI", "count": 4, "relatedTopics": ["LLMs"]}],
        "humorPatterns": [
            {"pattern": "Expectation vs reality", "description": "d", "example": "e", "effectiveness": "high"},
            {"pattern": "Corporate speak", "description": "d", "example": "e", "effectiveness": "medium"},
            {"pattern": "Third pattern", "description": "d", "example": "e", "effectiveness": "low"},
        ],
        "toneGuidelines": [{"tone": "deadpan", "whenToUse": "always", "examplePhrasing": "sure"}],
        "imageGuidelines": {"preferredFormats": [], "effectiveImageTypes": [], "textImageRelationship": "x"},
        "writingStyle": {"sentenceLength": "short", "punctuationStyle": "none", "capitalization": "lower", "commonPhrases": []},
        "doAndDont": {"do": ["be specific"], "dont": ["explain the joke"]},
    }
