"""
Trend Service Module

This module aggregates analyzed memes into topic trends. Topics are
merged case-insensitively, each bucket keeps a running mean of likes,
and buckets are ranked by count * ln(avgLikes + 1).
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any, Iterable

from config import settings
from data.models import Post, TopicTrend
from data.protocols import CorpusStore
from utils.helpers import count_occurrences, get_date_range
from utils.logger import get_logger

logger = get_logger(__name__)

EMPTY_PERIOD_MESSAGE = "No analyzed memes found for this period"


@dataclass
class TrendReport:
    """Trend query result."""
    trends: List[TopicTrend]
    total_memes: int
    period: str
    humor_types: Dict[str, int] = field(default_factory=dict)
    formats: Dict[str, int] = field(default_factory=dict)
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "trends": [t.to_dict() for t in self.trends],
            "totalMemes": self.total_memes,
            "period": self.period,
            "humorTypes": dict(self.humor_types),
            "formats": dict(self.formats),
        }
        if self.message:
            result["message"] = self.message
        return result


def normalize_topic(topic: str) -> str:
    """Merge key for a topic label."""
    return topic.lower().strip()


def popularity_score(count: int, avg_likes: float) -> float:
    """Rank score for a trend bucket."""
    return count * math.log(avg_likes + 1)


def aggregate_topics(posts: Iterable[Post]) -> List[TopicTrend]:
    """
    Fold posts into topic buckets.

    The first occurrence of a merge key fixes the displayed label. Each
    post counts at most once per bucket; a missing like count is 0.

    Returns:
        List[TopicTrend]: Buckets in first-seen order (unranked).
    """
    buckets: Dict[str, TopicTrend] = {}

    for post in posts:
        if not post.topics:
            continue

        likes = post.likes or 0
        seen_in_post = set()
        for topic in post.topics:
            if not isinstance(topic, str):
                continue
            key = normalize_topic(topic)
            if not key or key in seen_in_post:
                continue
            seen_in_post.add(key)

            bucket = buckets.get(key)
            if bucket is None:
                buckets[key] = TopicTrend(topic=topic, count=1, avg_likes=float(likes), meme_ids=[post.id])
            else:
                bucket.count += 1
                bucket.avg_likes = (bucket.avg_likes * (bucket.count - 1) + likes) / bucket.count
                bucket.meme_ids.append(post.id)

    return list(buckets.values())


def rank_trends(trends: List[TopicTrend], limit: int = 20) -> List[TopicTrend]:
    """Sort buckets by popularity score, highest first, and keep the top `limit`."""
    ranked = sorted(trends, key=lambda t: popularity_score(t.count, t.avg_likes), reverse=True)
    return ranked[:limit]


class TrendService:
    """Computes trend reports from the analyzed corpus."""

    def __init__(self, store: CorpusStore, limit: Optional[int] = None, default_days: Optional[int] = None):
        self.store = store
        self.limit = limit or settings.TREND_LIMIT
        self.default_days = default_days or settings.TREND_DEFAULT_DAYS

    async def get_trends(self, days: Optional[int] = None, now: Optional[datetime] = None) -> TrendReport:
        """
        Build the trend report for the last `days` days.

        Args:
            days: Window length in days (defaults to the configured window).
            now: Reference time, mainly for tests.

        Returns:
            TrendReport: Ranked trends plus humor type and format breakdowns.
        """
        days = days if days is not None else self.default_days
        period = f"Last {days} days"
        start_date, _ = get_date_range(days, now)

        posts = await self.store.list_analyzed_posts(since=start_date)
        if not posts:
            logger.info(f"No analyzed memes since {start_date.isoformat()}")
            return TrendReport(trends=[], total_memes=0, period=period, message=EMPTY_PERIOD_MESSAGE)

        trends = rank_trends(aggregate_topics(posts), self.limit)
        logger.info(f"Computed {len(trends)} trends from {len(posts)} memes ({period})")

        return TrendReport(
            trends=trends,
            total_memes=len(posts),
            period=period,
            humor_types=count_occurrences(p.humor_type for p in posts),
            formats=count_occurrences(p.format for p in posts),
        )
