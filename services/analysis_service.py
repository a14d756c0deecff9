"""
Analysis Service Module

This module classifies collected memes with a multimodal structured
model call: topics, humor type, format, template, joke structure, tone
and an image description. Memes in a batch are analyzed concurrently and
each one succeeds or fails on its own.
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Optional, List, Dict, Any, Sequence

from config.style_hints import platform_label
from data.models import Post, PostAnalysis
from data.protocols import CorpusStore
from services.protocols import ModelClient
from services.schemas import MemeAnalysis, validate_analysis
from utils.exceptions import InvalidRequestError, MemeStudioError
from utils.helpers import utc_now
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class AnalysisOutcome:
    """Result for one meme of a batch."""
    id: str
    success: bool
    analysis: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"id": self.id, "success": self.success}
        if self.success:
            result["analysis"] = self.analysis
        else:
            result["error"] = self.error
        return result


@dataclass
class BatchAnalysisResult:
    results: List[AnalysisOutcome]

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def message(self) -> str:
        return f"Analyzed {self.success_count}/{len(self.results)} memes"

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, "results": [r.to_dict() for r in self.results]}


def create_searchable_text(post: Post, analysis: Dict[str, Any]) -> str:
    """Lower-cased blob of the post text and every analysis field."""
    parts = [
        post.text or "",
        " ".join(analysis.get("topics") or []),
        analysis.get("humor_type") or "",
        analysis.get("format") or "",
        analysis.get("template") or "",
        analysis.get("joke_structure") or "",
        analysis.get("tone") or "",
        analysis.get("image_description") or "",
        analysis.get("why_funny") or "",
    ]
    return " ".join(p for p in parts if p).lower()


def build_analysis_prompt(post: Post) -> str:
    prompt = f"Analyze this meme/post from {platform_label(post.platform)}:\n\n"
    if post.text:
        prompt += f'Tweet text: "{post.text}"\n'
    if post.author:
        prompt += f"Author: {post.author}\n"
    prompt += (
        "\nAnalyze the humor, topics, and structure. If there's an image, describe what's in it "
        "and how the text + image work together to create the joke. Be specific about why it's funny."
    )
    return prompt


class AnalysisService:
    """Runs and stores meme analyses."""

    def __init__(self, store: CorpusStore, model: ModelClient):
        self.store = store
        self.model = model

    async def analyze_posts(self, post_ids: Sequence[str]) -> BatchAnalysisResult:
        """
        Analyze a batch of memes by id.

        Args:
            post_ids: Ids of the memes to analyze.

        Returns:
            BatchAnalysisResult: One outcome per requested id, in request order.
                A repeated id is analyzed once and its outcome is reported for every copy.

        Raises:
            InvalidRequestError: If no ids are given.
            StoreUnavailableError: If the memes cannot be loaded at all.
        """
        if not post_ids:
            raise InvalidRequestError("memeIds array is required")

        posts = await self.store.get_posts_by_ids(list(post_ids))
        # SQL Server returns GUIDs upper-cased
        by_id = {post.id.lower(): post for post in posts}

        async def run(post_id: str) -> AnalysisOutcome:
            post = by_id.get(post_id)
            if post is None:
                return AnalysisOutcome(id=post_id, success=False, error="Meme not found")
            if post.is_analyzed:
                return AnalysisOutcome(id=post_id, success=False, error="Meme already analyzed")
            return await self.analyze_post(post)

        unique_ids = list(dict.fromkeys(str(pid).lower() for pid in post_ids))
        outcomes = await asyncio.gather(*(run(key) for key in unique_ids), return_exceptions=True)

        for key, outcome in zip(unique_ids, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(f"Failed to analyze meme {key}: {outcome}", exc_info=outcome)
        by_key = dict(zip(unique_ids, outcomes))

        results = []
        for post_id in post_ids:
            outcome = by_key[str(post_id).lower()]
            if isinstance(outcome, BaseException):
                outcome = AnalysisOutcome(id=post_id, success=False, error="Analysis failed")
            results.append(replace(outcome, id=post_id))

        batch = BatchAnalysisResult(results=results)
        logger.info(batch.message)
        return batch

    async def analyze_post(self, post: Post) -> AnalysisOutcome:
        """
        Analyze one meme and store the result.

        Model and store failures are reported in the outcome, not raised.
        """
        try:
            payload = await self.model.generate_structured(
                build_analysis_prompt(post),
                MemeAnalysis,
                images=post.images,
                tier="lite"
            )
            analysis = validate_analysis(payload)

            await self.store.save_analysis(post.id, PostAnalysis(
                topics=analysis["topics"],
                humor_type=analysis["humor_type"],
                format=analysis["format"],
                template=analysis["template"],
                joke_structure=analysis["joke_structure"],
                tone=analysis["tone"],
                image_analysis=analysis["image_description"],
                searchable_text=create_searchable_text(post, analysis),
                analyzed_at=utc_now(),
            ))
        except MemeStudioError as e:
            logger.error(f"Failed to analyze meme {post.id}: {e}")
            return AnalysisOutcome(id=post.id, success=False, error=e.message)

        return AnalysisOutcome(id=post.id, success=True, analysis=analysis)
