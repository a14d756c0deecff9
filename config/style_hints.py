"""
Style Hints and Enumerations for Meme Studio

This module contains the fixed vocabularies used by analysis and generation,
and the per-style directive phrases placed into generation prompts.
The mappings are read-only and built once at import.
"""

from types import MappingProxyType

# Humor styles a caller may request for generation
STYLES = (
    "ironic",
    "sarcastic",
    "absurd",
    "relatable",
    "observational",
    "self-deprecating",
)

# Output formats accepted by the generator
GENERATION_FORMATS = ("text-only", "image", "both")

# Analysis vocabularies
HUMOR_TYPES = STYLES + ("dark", "wholesome")
MEME_FORMATS = ("text-only", "image-meme", "screenshot", "quote-tweet", "thread")
TONES = ("playful", "cynical", "deadpan", "enthusiastic", "frustrated", "confused")
EFFECTIVENESS_LEVELS = ("high", "medium", "low")

# Directive phrases for the image-first prompt
IMAGE_STYLE_HINTS = MappingProxyType({
    "ironic": "Use irony and contrast to expose contradictions.",
    "sarcastic": "Be witty and sharp. Mock with a knowing tone.",
    "absurd": "Go over the top. Humor from ridiculousness.",
    "relatable": '"So true" energy. Shared experience.',
    "observational": "Point out what everyone notices but nobody says.",
    "self-deprecating": "Make fun of yourself/in-group. Humble brag.",
})

# Shorter phrases for the text-only prompt
TEXT_STYLE_HINTS = MappingProxyType({
    "ironic": "Use irony and contrast.",
    "sarcastic": "Witty and sharp.",
    "absurd": "Over the top ridiculous.",
    "relatable": "Shared experience energy.",
    "observational": "Point out the obvious.",
    "self-deprecating": "Humble brag/self-roast.",
})

FALLBACK_STYLE = "ironic"

# Platform display names used in analysis prompts
PLATFORM_LABELS = MappingProxyType({
    "twitter": "X (Twitter)",
    "linkedin": "LinkedIn",
})


def style_hint(style: str, hints=IMAGE_STYLE_HINTS) -> str:
    """Directive for a style, falling back to the ironic hint."""
    return hints.get(style) or hints[FALLBACK_STYLE]


def platform_label(platform: str) -> str:
    """Display name for a platform; anything but twitter reads as LinkedIn."""
    return PLATFORM_LABELS["twitter"] if platform == "twitter" else PLATFORM_LABELS["linkedin"]
