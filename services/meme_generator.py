"""
Meme Generator Module

This module writes meme text with the language model and turns the
model's free-text answer into structured items.

Two paths exist:
- text-only: one prompt asking for `count` numbered memes
- image-first: one multimodal prompt showing the selected images, asking
  for one caption per image

Model output is separated into blocks by a literal separator line. The
block format is not guaranteed, so parsing is lenient: every block goes
through a fixed chain of fallbacks, and blocks that still lack usable
content are dropped rather than reported as errors.
"""

import re
from dataclasses import dataclass
from typing import Optional, List

from config import settings
from config.style_hints import IMAGE_STYLE_HINTS, TEXT_STYLE_HINTS, style_hint
from data.models import GeneratedItem, ImageCatalogEntry
from data.protocols import CorpusStore
from services.protocols import ModelClient
from utils.exceptions import StoreUnavailableError
from utils.helpers import clip, safe_get
from utils.logger import get_logger

logger = get_logger(__name__)

# "TEXT:" marker; the caption runs to the end of the block
TEXT_MARKER_RE = re.compile(r'TEXT:\s*(.+)', re.DOTALL)
# "Image 2" label anywhere in a block
IMAGE_LABEL_RE = re.compile(r'Image\s*(\d+)', re.IGNORECASE)
# First "Image 2:" label, removed when there is no TEXT: marker
IMAGE_LABEL_STRIP_RE = re.compile(r'Image\s*\d+:?', re.IGNORECASE)
# Leading "1." or "[1]." on a text-only block
NUMBER_MARKER_RE = re.compile(r'^\s*\[?\d+\]?\.\s*(.+)', re.DOTALL)


@dataclass
class ImagePosition:
    """Where an image sits in the prompt (1-based) and what it points to."""
    position: int
    url: str
    description: str
    catalog_index: int


def split_blocks(raw: str, separator: str = "---") -> List[str]:
    """Split model output on the separator and drop blank blocks."""
    return [block for block in (raw or "").split(separator) if block.strip()]


def build_manifest(images: List[ImageCatalogEntry]) -> List[ImagePosition]:
    """Number the selected images 1..n in the order they are attached."""
    return [
        ImagePosition(position=i + 1, url=img.url, description=img.description, catalog_index=img.index)
        for i, img in enumerate(images)
    ]


def parse_text_only_response(raw: str, separator: str = "---") -> List[GeneratedItem]:
    """
    Parse a text-only answer of the form "1. text" blocks.

    The leading number marker is removed when present; otherwise the whole
    block is used. Blocks that end up empty are dropped.
    """
    items = []
    for block in split_blocks(raw, separator):
        match = NUMBER_MARKER_RE.match(block)
        text = match.group(1).strip() if match else block.strip()
        if text:
            items.append(GeneratedItem(text=text))
    return items


def parse_image_response(raw: str, manifest: List[ImagePosition], separator: str = "---") -> List[GeneratedItem]:
    """
    Parse an image-first answer into captions paired with image URLs.

    For each non-blank block:
    - text is whatever follows "TEXT:"; without that marker, the block
      minus its first "Image <n>:" label
    - the image is the manifest entry named by an "Image <n>" label; if
      there is no label or it names no manifest entry, the image at the
      block's own ordinal position is used

    Items without both text and an image URL are dropped, and at most one
    item per manifest image is returned.
    """
    by_position = {entry.position: entry for entry in manifest}
    items = []

    for idx, block in enumerate(split_blocks(raw, separator)):
        text_match = TEXT_MARKER_RE.search(block)
        if text_match:
            text = text_match.group(1).strip()
        else:
            text = IMAGE_LABEL_STRIP_RE.sub('', block, count=1).strip()

        entry = None
        label_match = IMAGE_LABEL_RE.search(block)
        if label_match:
            entry = by_position.get(int(label_match.group(1)))

        if entry is None and idx < len(manifest):
            entry = manifest[idx]

        if not text or entry is None:
            logger.debug(f"Dropping unusable block {idx + 1}")
            continue

        items.append(GeneratedItem(
            text=text,
            image_url=entry.url,
            image_suggestion=f"Image {entry.position}",
        ))

    return items[:len(manifest)]


class MemeTextGenerator:
    """Writes meme text for the text-only and image-first paths."""

    def __init__(self, store: CorpusStore, model: ModelClient, separator: Optional[str] = None):
        self.store = store
        self.model = model
        self.separator = separator or settings.BLOCK_SEPARATOR

    # -------------------------------------------------------------------------
    # Text-only path
    # -------------------------------------------------------------------------

    async def build_context(self) -> str:
        """
        Short style context from the latest style guide and a few analyzed memes.

        Either source may be missing or unreachable; the context then simply
        omits that part.
        """
        context = ""

        try:
            guide = await self.store.get_latest_style_guide(settings.STYLE_GUIDE_TYPE)
        except StoreUnavailableError as e:
            logger.warning(f"Style guide unavailable, generating without it: {e}")
            guide = None

        patterns = safe_get(guide.content, "humorPatterns", default=[]) if guide else []
        if isinstance(patterns, list) and patterns:
            names = [p.get("pattern", "") for p in patterns[:settings.TEXT_PATTERN_HINTS] if isinstance(p, dict)]
            context += f"Patterns: {', '.join(names)}\n"

        try:
            examples = await self.store.list_analyzed_posts(limit=settings.TEXT_EXAMPLE_FETCH_LIMIT)
        except StoreUnavailableError as e:
            logger.warning(f"Example memes unavailable, generating without them: {e}")
            examples = []

        if examples:
            lines = "\n".join(
                f'- "{clip(post.text, settings.TEXT_EXAMPLE_LENGTH)}..."'
                for post in examples[:settings.TEXT_EXAMPLE_COUNT]
            )
            context += f"Examples:\n{lines}"

        return context

    def build_text_prompt(self, topic: str, style: str, count: int, context: str,
                          custom_prompt: Optional[str] = None) -> str:
        extra = f"Extra: {custom_prompt}" if custom_prompt else ""
        return f"""Generate {count} viral text-only memes about "{topic}" for tech Twitter.

Style: {style} - {style_hint(style, TEXT_STYLE_HINTS)}
{context}
{extra}

Rules: Under {settings.MEME_CHARACTER_LIMIT} chars. Edgy not offensive. Insider knowledge. No hashtags.

Format each as:
[N]. [meme text]
{self.separator}"""

    async def generate_text_only(self, topic: str, style: str, count: int,
                                 custom_prompt: Optional[str] = None) -> List[GeneratedItem]:
        """
        Generate `count` text-only memes.

        Returns:
            List[GeneratedItem]: Parsed memes, each without an image.

        Raises:
            ModelCallFailedError: If the generation call fails.
        """
        context = await self.build_context()
        prompt = self.build_text_prompt(topic, style, count, context, custom_prompt)

        raw = await self.model.generate_text(prompt, tier="standard")
        logger.debug(f"Raw generated text: {raw}")

        items = parse_text_only_response(raw, self.separator)
        logger.info(f"Parsed {len(items)} text-only memes for '{topic}'")
        return items

    # -------------------------------------------------------------------------
    # Image-first path
    # -------------------------------------------------------------------------

    def build_image_prompt(self, topic: str, style: str, manifest: List[ImagePosition],
                           custom_prompt: Optional[str] = None) -> str:
        extra = f"EXTRA: {custom_prompt}" if custom_prompt else ""
        shown = "\n".join(f"Image {m.position}: {m.description}" for m in manifest)
        sep = self.separator
        return f"""Write meme text for each of these {len(manifest)} images. Topic: "{topic}"

STYLE: {style} - {style_hint(style, IMAGE_STYLE_HINTS)}
{extra}

IMAGES I'M SHOWING YOU:
{shown}

RULES:
- Tweet-length (under {settings.MEME_CHARACTER_LIMIT} chars)
- The text should work WITH the image to create the joke
- Be edgy but not offensive
- Insider tech/startup knowledge
- Sentence case, conversational
- Write ONE DIFFERENT meme for EACH image

Format (one for each image):
Image 1:
TEXT: [meme for first image]
{sep}
Image 2:
TEXT: [meme for second image]
{sep}
(etc for each image)"""

    async def generate_for_images(self, topic: str, style: str, images: List[ImageCatalogEntry],
                                  custom_prompt: Optional[str] = None) -> List[GeneratedItem]:
        """
        Write one caption per selected image, attaching the images in manifest order.

        Returns:
            List[GeneratedItem]: Captions with resolved image URLs (possibly fewer than images).

        Raises:
            ModelCallFailedError: If the generation call fails.
        """
        manifest = build_manifest(images)
        prompt = self.build_image_prompt(topic, style, manifest, custom_prompt)

        logger.info(f"Writing memes for {len(manifest)} images...")
        raw = await self.model.generate_text(prompt, images=[m.url for m in manifest], tier="standard")
        logger.debug(f"Raw generated text: {raw}")

        items = parse_image_response(raw, manifest, self.separator)
        if len(items) < len(manifest):
            logger.warning(f"Only {len(items)} of {len(manifest)} image memes were usable")
        return items
