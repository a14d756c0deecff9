"""
Data Models for Meme Studio

This module contains data classes used throughout the application:
collected posts ("memes"), generated memes, style guide snapshots and
the ephemeral records built per request (trends, image catalog entries).
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any


@dataclass
class Post:
    """A collected social media post, analyzed or not."""
    url: str                                   # Natural key
    text: Optional[str] = None
    images: List[str] = field(default_factory=list)
    author: Optional[str] = None
    platform: str = "twitter"
    likes: int = 0
    retweets: int = 0
    views: int = 0
    comments: int = 0
    bookmarks: int = 0
    collected_at: Optional[datetime] = None
    id: Optional[str] = None
    # Analysis fields, written once by the analysis step
    topics: List[str] = field(default_factory=list)
    humor_type: Optional[str] = None
    format: Optional[str] = None
    template: Optional[str] = None
    joke_structure: Optional[str] = None
    tone: Optional[str] = None
    image_analysis: Optional[str] = None
    searchable_text: Optional[str] = None
    analyzed_at: Optional[datetime] = None     # None means unanalyzed

    @property
    def is_analyzed(self) -> bool:
        return self.analyzed_at is not None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PostAnalysis:
    """Analysis fields written back to a post."""
    topics: List[str]
    humor_type: str
    format: str
    template: Optional[str]
    joke_structure: str
    tone: str
    image_analysis: Optional[str]
    searchable_text: str
    analyzed_at: datetime


@dataclass
class GeneratedMeme:
    """One unit of generated output as persisted."""
    topic: str
    style: Optional[str]
    format: Optional[str]
    text_content: str
    image_url: Optional[str] = None
    reference_meme_ids: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StyleGuide:
    """An append-only style guide snapshot."""
    guide_type: str
    content: Dict[str, Any]
    meme_count: int
    topics: List[str] = field(default_factory=list)
    humor_patterns: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class TopicTrend:
    """A trend bucket; recomputed per request, never stored."""
    topic: str
    count: int
    avg_likes: float
    meme_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic": self.topic,
            "count": self.count,
            "avgLikes": self.avg_likes,
            "memeIds": list(self.meme_ids),
        }


@dataclass
class ImageCatalogEntry:
    """A candidate image offered to the selector."""
    index: int                                 # 1-based, catalog-build order
    url: str
    description: str
    original_text: str = ""


@dataclass
class GeneratedItem:
    """A parsed unit of model output, before persistence."""
    text: str
    image_url: Optional[str] = None
    image_suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
