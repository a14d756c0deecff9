"""
Generation Service Module

This module is the entry point for meme generation. It validates the
request, runs either the text-only path or the image-first path
(select images, then write captions), and stores every generated meme.

Generation and persistence are reported separately: a meme that could not
be saved is still returned, and the save failure is listed next to it.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Tuple

from config import settings
from config.style_hints import GENERATION_FORMATS, STYLES, FALLBACK_STYLE
from data.models import GeneratedItem, GeneratedMeme
from data.protocols import CorpusStore
from services.image_selector import ImageSelector
from services.meme_generator import MemeTextGenerator
from utils.exceptions import (
    MissingTopicError, InvalidRequestError, StoreUnavailableError, PersistencePartialFailure
)
from utils.helpers import utc_now
from utils.logger import get_logger

logger = get_logger(__name__)

TEXT_ONLY = "text-only"
TEXT_ONLY_APPROACH = "text-only"
IMAGE_FIRST_APPROACH = "image-first"


@dataclass
class GenerationResult:
    """Generated memes plus the separate persistence outcome."""
    memes: List[GeneratedItem]
    approach: str
    saved: List[GeneratedMeme] = field(default_factory=list)
    save_failures: List[PersistencePartialFailure] = field(default_factory=list)
    images_considered: Optional[int] = None
    images_used: Optional[int] = None

    @property
    def saved_count(self) -> int:
        return len(self.saved)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "memes": [m.to_dict() for m in self.memes],
            "savedCount": self.saved_count,
            "approach": self.approach,
        }
        if self.images_considered is not None:
            result["imagesConsidered"] = self.images_considered
            result["imagesUsed"] = self.images_used
        if self.save_failures:
            result["saveFailures"] = [f.to_dict() for f in self.save_failures]
        return result


class GenerationOrchestrator:
    """Chooses the generation path and persists the results."""

    def __init__(self, store: CorpusStore, selector: ImageSelector, generator: MemeTextGenerator):
        self.store = store
        self.selector = selector
        self.generator = generator

    async def generate(
        self,
        topic: Optional[str],
        style: Optional[str] = None,
        output_format: Optional[str] = None,
        count: Optional[int] = None,
        custom_prompt: Optional[str] = None
    ) -> GenerationResult:
        """
        Generate memes about a topic.

        Args:
            topic: Required subject of the memes.
            style: Humor style keyword; unknown styles are replaced by the ironic
                style, both in the prompt and in the saved rows.
            output_format: "text-only", "image" or "both".
            count: Desired number of memes (image paths cap this at 3).
            custom_prompt: Optional steering text appended to the prompt.

        Returns:
            GenerationResult: The memes, the path taken and what was saved.

        Raises:
            MissingTopicError: If topic is empty (nothing else is done).
            InvalidRequestError: If output_format or count is invalid.
            NoImagesAvailableError, NoSuitableImagesError: Image-first preconditions.
            ModelCallFailedError: If a model call fails.
        """
        if not topic or not str(topic).strip():
            raise MissingTopicError()

        topic = str(topic).strip()
        style = style or settings.DEFAULT_STYLE
        output_format = output_format or settings.DEFAULT_FORMAT
        count = settings.DEFAULT_GENERATION_COUNT if count is None else count

        if output_format not in GENERATION_FORMATS:
            raise InvalidRequestError(f"Unknown format '{output_format}'. Use one of: {', '.join(GENERATION_FORMATS)}")
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise InvalidRequestError("count must be a positive integer")
        if style not in STYLES:
            logger.warning(f"Unknown style '{style}', using '{FALLBACK_STYLE}'")
            style = FALLBACK_STYLE

        if output_format == TEXT_ONLY:
            items = await self.generator.generate_text_only(topic, style, count, custom_prompt)
            result = GenerationResult(memes=items, approach=TEXT_ONLY_APPROACH)
        else:
            logger.info(f"Image-first generation for topic: \"{topic}\"")
            selection = await self.selector.select(topic, count)
            items = await self.generator.generate_for_images(topic, style, selection.selected, custom_prompt)
            result = GenerationResult(
                memes=items,
                approach=IMAGE_FIRST_APPROACH,
                images_considered=len(selection.catalog),
                images_used=len(selection.selected),
            )

        result.saved, result.save_failures = await self.persist(items, topic, style, output_format)
        logger.info(
            f"Generated {len(items)} memes for '{topic}' ({result.approach}); "
            f"saved {result.saved_count}, failed {len(result.save_failures)}"
        )
        return result

    async def persist(
        self,
        items: List[GeneratedItem],
        topic: str,
        style: str,
        output_format: str
    ) -> Tuple[List[GeneratedMeme], List[PersistencePartialFailure]]:
        """
        Save each item independently.

        A failed save is recorded and the remaining items are still saved.
        """
        saved: List[GeneratedMeme] = []
        failures: List[PersistencePartialFailure] = []

        for index, item in enumerate(items):
            row = GeneratedMeme(
                topic=topic,
                style=style,
                format=output_format,
                text_content=item.text,
                image_url=item.image_url,
                reference_meme_ids=[],
                created_at=utc_now(),
            )
            try:
                saved.append(await self.store.insert_generated_meme(row))
            except StoreUnavailableError as e:
                logger.warning(f"Could not save generated meme {index + 1}/{len(items)}: {e}")
                failures.append(PersistencePartialFailure(
                    f"Failed to save generated meme: {e.message}", item_index=index, cause=e
                ))

        return saved, failures
