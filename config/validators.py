"""
Configuration Validation for Meme Studio

This module contains configuration validation logic.
Extracted from settings.py for better separation of concerns.
"""

from utils.exceptions import ConfigurationError


def validate_settings(require_database: bool = True, require_ai: bool = True):
    """
    Validate that all required settings are properly configured.

    Args:
        require_database: Whether database credentials must be present.
        require_ai: Whether the Gemini API key must be present.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []

    # Required environment variables
    required_vars = []
    if require_ai:
        required_vars.append(("GOOGLE_AI_API_KEY", settings.GOOGLE_AI_API_KEY))
    if require_database:
        required_vars.extend([
            ("DB_SERVER", settings.DB_SERVER),
            ("DB_NAME", settings.DB_NAME),
            ("DB_USER", settings.DB_USER),
            ("DB_PASSWORD", settings.DB_PASSWORD)
        ])

    for var_name, var_value in required_vars:
        if not var_value:
            errors.append(f"Missing required environment variable: {var_name}")

    # Verify database connection string was built successfully
    if require_database and not settings.DB_CONNECTION_STRING:
        errors.append("Database connection string could not be built. Check DB_SERVER, DB_NAME, DB_USER, DB_PASSWORD.")

    if not settings.DEFAULT_AI_MODELS or not settings.LITE_AI_MODELS:
        errors.append("Both DEFAULT_AI_MODELS and LITE_AI_MODELS need at least one model name")

    # Validate numeric settings are within reasonable bounds
    numeric_validations = [
        ("TREND_DEFAULT_DAYS", settings.TREND_DEFAULT_DAYS, 1, 365),
        ("TREND_LIMIT", settings.TREND_LIMIT, 1, 200),
        ("STYLE_GUIDE_TOP_TOPICS", settings.STYLE_GUIDE_TOP_TOPICS, 1, 100),
        ("IMAGE_CATALOG_SOURCE_LIMIT", settings.IMAGE_CATALOG_SOURCE_LIMIT, 1, 500),
        ("MAX_SELECTED_IMAGES", settings.MAX_SELECTED_IMAGES, 1, 10),
        ("DEFAULT_GENERATION_COUNT", settings.DEFAULT_GENERATION_COUNT, 1, 20),
        ("MEME_CHARACTER_LIMIT", settings.MEME_CHARACTER_LIMIT, 50, 1000),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    # Validate timeout values are positive
    timeout_settings = [
        ("AI_REQUEST_TIMEOUT", settings.AI_REQUEST_TIMEOUT),
        ("IMAGE_DOWNLOAD_TIMEOUT", settings.IMAGE_DOWNLOAD_TIMEOUT),
    ]

    for name, value in timeout_settings:
        if value <= 0:
            errors.append(f"{name} must be positive, got {value}")

    if not settings.BLOCK_SEPARATOR.strip():
        errors.append("BLOCK_SEPARATOR must not be blank")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    # Import settings here to avoid circular imports
    from config import settings

    return {
        "ai": {
            "configured": bool(settings.GOOGLE_AI_API_KEY),
            "default_models": list(settings.DEFAULT_AI_MODELS),
            "lite_models": list(settings.LITE_AI_MODELS),
        },
        "database": {
            "server": settings.DB_SERVER[:20] + "..." if settings.DB_SERVER and len(settings.DB_SERVER) > 20 else settings.DB_SERVER,
            "database": settings.DB_NAME,
        },
        "generation": {
            "default_style": settings.DEFAULT_STYLE,
            "default_format": settings.DEFAULT_FORMAT,
            "max_selected_images": settings.MAX_SELECTED_IMAGES,
            "catalog_source_limit": settings.IMAGE_CATALOG_SOURCE_LIMIT,
        },
        "trends": {
            "default_days": settings.TREND_DEFAULT_DAYS,
            "limit": settings.TREND_LIMIT,
        },
    }
