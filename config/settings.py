"""
Configuration Settings for Meme Studio

This module centralizes all configuration settings for the Meme Studio application,
including environment variables, API keys, and application constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))

# API Keys and Authentication
GOOGLE_AI_API_KEY = os.getenv("GOOGLE_AI_API_KEY")

# Database Settings
DB_SERVER = os.getenv("DB_SERVER", "")
DB_NAME = os.getenv("DB_NAME", "")
DB_USER = os.getenv("DB_USER", "")
DB_PASSWORD = os.getenv("DB_PASSWORD", "")
DB_DRIVER = os.getenv("DB_DRIVER", "ODBC Driver 18 for SQL Server")

# Build connection string safely (validation happens in validate_settings())
DB_CONNECTION_STRING = (
    f"DRIVER={{{DB_DRIVER}}}; "
    f"SERVER={DB_SERVER}; "
    f"DATABASE={DB_NAME}; "
    f"UID={DB_USER}; "
    f"PWD={DB_PASSWORD}; "
    f"TrustServerCertificate=yes;"
) if all([DB_SERVER, DB_NAME, DB_USER, DB_PASSWORD]) else ""

# =============================================================================
# AI Model Settings
# =============================================================================

# Standard tier: free-text and multimodal meme writing
DEFAULT_AI_MODELS = [
    'gemini-2.5-flash',
    'gemini-2.0-flash',
    'gemini-2.5-pro',
]

# Lite tier: structured calls (analysis, style guide, image selection)
LITE_AI_MODELS = [
    'gemini-2.0-flash-lite',
    'gemini-2.5-flash-lite',
    'gemini-2.0-flash',
]

AI_REQUEST_TIMEOUT = 60              # Seconds per model call
IMAGE_DOWNLOAD_TIMEOUT = 15          # Seconds per image fetch
IMAGE_USER_AGENT = 'Mozilla/5.0 (compatible; MemeStudio/1.0)'

# =============================================================================
# Trend Settings
# =============================================================================

TREND_DEFAULT_DAYS = 7               # Default trend window
TREND_LIMIT = 20                     # Maximum trends returned

# =============================================================================
# Style Guide Settings
# =============================================================================

STYLE_GUIDE_TYPE = "comprehensive"   # The only guide type currently produced
STYLE_GUIDE_TOP_TOPICS = 10          # Topics kept in the statistics block
STYLE_GUIDE_TEXT_LENGTH = 100        # Post text kept per digest line
STYLE_GUIDE_IMAGE_LENGTH = 50        # Image description kept per digest line

# =============================================================================
# Generation Settings
# =============================================================================

DEFAULT_STYLE = "ironic"
DEFAULT_FORMAT = "text-only"
DEFAULT_GENERATION_COUNT = 3
MEME_CHARACTER_LIMIT = 280
BLOCK_SEPARATOR = "---"

# Image-first path
IMAGE_CATALOG_SOURCE_LIMIT = 50      # Most recent memes scanned for images
MAX_SELECTED_IMAGES = 3              # Hard cap on images per request

# Text-only path
TEXT_EXAMPLE_FETCH_LIMIT = 5         # Analyzed memes fetched as examples
TEXT_EXAMPLE_COUNT = 3               # Example snippets placed in the prompt
TEXT_EXAMPLE_LENGTH = 80             # Characters kept per example snippet
TEXT_PATTERN_HINTS = 2               # Humor patterns taken from the style guide

# =============================================================================
# Collection / Listing Settings
# =============================================================================

DEFAULT_PLATFORM = "twitter"
POSTS_PAGE_SIZE = 50
GENERATED_PAGE_SIZE = 20
