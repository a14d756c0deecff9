"""
Structured Output Schemas

This module declares the response schemas passed to Gemini's structured
output mode, and validators that check the decoded JSON before any of it
is trusted. A payload that fails validation raises ModelCallFailedError.
"""

import enum
from typing import Optional, List, Dict, Any, Tuple
from typing_extensions import TypedDict

from config.style_hints import HUMOR_TYPES, MEME_FORMATS, TONES, EFFECTIVENESS_LEVELS
from utils.exceptions import ModelCallFailedError


def _str_enum(name: str, values) -> type:
    return enum.Enum(name, {v.upper().replace("-", "_"): v for v in values}, type=str)


HumorType = _str_enum("HumorType", HUMOR_TYPES)
MemeFormat = _str_enum("MemeFormat", MEME_FORMATS)
Tone = _str_enum("Tone", TONES)
Effectiveness = _str_enum("Effectiveness", EFFECTIVENESS_LEVELS)


# =============================================================================
# Image selection
# =============================================================================

class ImageChoice(TypedDict):
    imageNumber: int
    reason: str


class ImageSelection(TypedDict):
    selectedImages: List[ImageChoice]


# =============================================================================
# Meme analysis
# =============================================================================

class MemeAnalysis(TypedDict):
    topics: List[str]
    humor_type: HumorType
    format: MemeFormat
    template: Optional[str]
    joke_structure: str
    tone: Tone
    image_description: Optional[str]
    why_funny: str


# =============================================================================
# Style guide
# =============================================================================

class TopicSummary(TypedDict):
    topic: str
    count: int
    relatedTopics: List[str]


class HumorPattern(TypedDict):
    pattern: str
    description: str
    example: str
    effectiveness: Effectiveness


class ToneGuideline(TypedDict):
    tone: str
    whenToUse: str
    examplePhrasing: str


class ImageGuidelines(TypedDict):
    preferredFormats: List[str]
    effectiveImageTypes: List[str]
    textImageRelationship: str


class WritingStyle(TypedDict):
    sentenceLength: str
    punctuationStyle: str
    capitalization: str
    commonPhrases: List[str]


class DoAndDont(TypedDict):
    do: List[str]
    dont: List[str]


class StyleGuideContent(TypedDict):
    topTopics: List[TopicSummary]
    humorPatterns: List[HumorPattern]
    toneGuidelines: List[ToneGuideline]
    imageGuidelines: ImageGuidelines
    writingStyle: WritingStyle
    doAndDont: DoAndDont


# =============================================================================
# Validators
# =============================================================================

def _require(payload: Dict[str, Any], key: str, kind, schema_name: str):
    if not isinstance(payload, dict) or key not in payload:
        raise ModelCallFailedError(f"{schema_name} response is missing '{key}'")
    value = payload[key]
    if not isinstance(value, kind):
        raise ModelCallFailedError(f"{schema_name} response has invalid '{key}'")
    return value


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    return value if isinstance(value, str) and value.strip() else None


def _choice(payload: Dict[str, Any], key: str, allowed, schema_name: str) -> str:
    value = _require(payload, key, str, schema_name)
    if value not in allowed:
        raise ModelCallFailedError(f"{schema_name} response has unknown {key} '{value}'")
    return value


def validate_analysis(payload: Any) -> Dict[str, Any]:
    """
    Check a decoded analysis response and return a clean copy.

    Raises:
        ModelCallFailedError: If a required field is missing or out of range.
    """
    name = "Analysis"
    topics = _require(payload, "topics", list, name)
    return {
        "topics": [t for t in topics if isinstance(t, str) and t.strip()],
        "humor_type": _choice(payload, "humor_type", HUMOR_TYPES, name),
        "format": _choice(payload, "format", MEME_FORMATS, name),
        "template": _optional_str(payload, "template"),
        "joke_structure": _require(payload, "joke_structure", str, name),
        "tone": _choice(payload, "tone", TONES, name),
        "image_description": _optional_str(payload, "image_description"),
        "why_funny": _require(payload, "why_funny", str, name),
    }


def validate_style_guide(payload: Any) -> Dict[str, Any]:
    """
    Check a decoded style guide response.

    Only the top-level shape is enforced; nested entries are kept as returned.

    Raises:
        ModelCallFailedError: If a section is missing or has the wrong shape.
    """
    name = "Style guide"
    for key in ("topTopics", "humorPatterns", "toneGuidelines"):
        _require(payload, key, list, name)
    for key in ("imageGuidelines", "writingStyle", "doAndDont"):
        _require(payload, key, dict, name)
    do_and_dont = payload["doAndDont"]
    _require(do_and_dont, "do", list, name)
    _require(do_and_dont, "dont", list, name)
    return payload


def validate_image_selection(payload: Any) -> List[Tuple[int, str]]:
    """
    Extract (image number, reason) pairs from a selection response.

    Entries whose number is not an integer are skipped.

    Raises:
        ModelCallFailedError: If selectedImages is missing or not a list.
    """
    choices = _require(payload, "selectedImages", list, "Image selection")
    picked = []
    for choice in choices:
        if not isinstance(choice, dict):
            continue
        number = choice.get("imageNumber")
        if isinstance(number, float) and number.is_integer():
            number = int(number)
        if isinstance(number, bool) or not isinstance(number, int):
            continue
        picked.append((number, str(choice.get("reason") or "")))
    return picked
