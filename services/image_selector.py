"""
Image Selector Module

This module builds the image catalog from recently collected memes and
asks a cheap model to shortlist the images that would be funniest for a
topic. Selection works on text descriptions only; no image is sent to
the model at this stage.
"""

from dataclasses import dataclass
from typing import Optional, List, Dict

from config import settings
from data.models import Post, ImageCatalogEntry
from data.protocols import CorpusStore
from services.protocols import ModelClient
from services.schemas import ImageSelection, validate_image_selection
from utils.exceptions import NoImagesAvailableError, NoSuitableImagesError
from utils.logger import get_logger

logger = get_logger(__name__)

NO_DESCRIPTION = "No description"


@dataclass
class ImageSelectionResult:
    """Catalog offered to the model and the entries it picked, in pick order."""
    catalog: List[ImageCatalogEntry]
    selected: List[ImageCatalogEntry]


def build_catalog(posts: List[Post]) -> List[ImageCatalogEntry]:
    """
    Flatten every image of every post into one numbered catalog.

    Numbers start at 1 and follow post order, then image order within a
    post. All images of a post share the post's description: its image
    analysis, else its text, else a placeholder.
    """
    catalog: List[ImageCatalogEntry] = []
    for post in posts:
        if not post.images:
            continue
        description = post.image_analysis or post.text or NO_DESCRIPTION
        for url in post.images:
            catalog.append(ImageCatalogEntry(
                index=len(catalog) + 1,
                url=url,
                description=description,
                original_text=post.text or "",
            ))
    return catalog


def format_catalog(catalog: List[ImageCatalogEntry]) -> str:
    return "\n".join(f"IMAGE #{entry.index}: {entry.description}" for entry in catalog)


def build_selection_prompt(topic: str, catalog_text: str, pick_count: int) -> str:
    return f"""You're selecting images for memes about "{topic}".

AVAILABLE IMAGES:
{catalog_text}

Pick {pick_count} images that would be FUNNIEST for memes about "{topic}".
Think creatively - unexpected image+topic combos are often funnier.
Consider: reaction images, relatable situations, ironic juxtapositions.
Refer to images only by their IMAGE # number and give a brief reason for each."""


def resolve_selection(numbers: List[int], catalog: List[ImageCatalogEntry], limit: int) -> List[ImageCatalogEntry]:
    """
    Map picked numbers back to catalog entries.

    Unknown numbers and repeats are dropped; at most `limit` entries are kept.
    """
    by_index: Dict[int, ImageCatalogEntry] = {entry.index: entry for entry in catalog}
    selected: List[ImageCatalogEntry] = []
    seen = set()
    for number in numbers:
        entry = by_index.get(number)
        if entry is None:
            logger.warning(f"Model picked unknown image #{number}; ignoring")
            continue
        if number in seen:
            continue
        seen.add(number)
        selected.append(entry)
        if len(selected) >= limit:
            break
    return selected


class ImageSelector:
    """Shortlists catalog images for a topic."""

    def __init__(
        self,
        store: CorpusStore,
        model: ModelClient,
        max_images: Optional[int] = None,
        source_limit: Optional[int] = None
    ):
        self.store = store
        self.model = model
        self.max_images = max_images or settings.MAX_SELECTED_IMAGES
        self.source_limit = source_limit or settings.IMAGE_CATALOG_SOURCE_LIMIT

    def pick_count(self, requested: int) -> int:
        """Requested count clamped to [1, max_images]."""
        return max(1, min(requested, self.max_images))

    async def load_catalog(self) -> List[ImageCatalogEntry]:
        """
        Build the catalog from the most recently collected memes.

        Raises:
            NoImagesAvailableError: If none of those memes has an image.
        """
        posts = await self.store.list_recent_posts(self.source_limit)
        with_images = [p for p in posts if p.images]
        logger.info(f"Found {len(with_images)} memes with images out of {len(posts)} total")

        if not with_images:
            raise NoImagesAvailableError()
        return build_catalog(with_images)

    async def select(self, topic: str, count: int) -> ImageSelectionResult:
        """
        Pick up to min(count, max_images) catalog images for a topic.

        Returns:
            ImageSelectionResult: The full catalog and the picked entries.

        Raises:
            NoImagesAvailableError: If there is nothing to choose from (no model call is made).
            NoSuitableImagesError: If none of the picked numbers resolves.
            ModelCallFailedError: If the selection call fails.
        """
        catalog = await self.load_catalog()
        limit = self.pick_count(count)

        logger.info(f"Selecting up to {limit} of {len(catalog)} images for '{topic}'")
        payload = await self.model.generate_structured(
            build_selection_prompt(topic, format_catalog(catalog), limit),
            ImageSelection,
            tier="lite"
        )
        choices = validate_image_selection(payload)
        for number, reason in choices:
            logger.info(f"Picked image #{number}: {reason}")

        selected = resolve_selection([number for number, _ in choices], catalog, limit)
        if not selected:
            raise NoSuitableImagesError()

        return ImageSelectionResult(catalog=catalog, selected=selected)
