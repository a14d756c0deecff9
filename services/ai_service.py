"""
AI Service Module

This module handles AI operations using Google's Gemini API.
It provides the two call shapes the rest of the application needs:
structured generation against a declared response schema, and free-text
generation that can take images alongside the prompt.
"""

import asyncio
import io
import json
from typing import Optional, List, Dict, Any, Sequence

import google.generativeai as genai
import requests
from google.api_core import exceptions as google_exceptions
from PIL import Image, UnidentifiedImageError

from config import settings
from utils.exceptions import ConfigurationError, ModelCallFailedError
from utils.logger import get_logger

logger = get_logger(__name__)

STANDARD_TIER = "standard"
LITE_TIER = "lite"


def select_model_name(preferences: Sequence[str], available: Sequence[str]) -> Optional[str]:
    """
    Pick the first preferred model that the API reports as available.

    Args:
        preferences: Model name fragments in order of preference.
        available: Full model names returned by the API.

    Returns:
        Optional[str]: The matching full model name, or None.
    """
    for preferred in preferences:
        for name in available:
            if preferred in name:
                return name
    return None


class AIService:
    """Service for AI operations with Google's Gemini API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_models: Optional[Sequence[str]] = None,
        lite_models: Optional[Sequence[str]] = None,
        request_timeout: Optional[float] = None,
        image_timeout: Optional[float] = None
    ):
        """
        Initialize the AI service with the Gemini API.

        Configures the API key and selects one model per tier based on availability.

        Raises:
            ConfigurationError: If no API key is configured or no model is available.
        """
        api_key = api_key or settings.GOOGLE_AI_API_KEY
        if not api_key:
            raise ConfigurationError("Missing required GOOGLE_AI_API_KEY")

        genai.configure(api_key=api_key)
        self.request_timeout = request_timeout or settings.AI_REQUEST_TIMEOUT
        self.image_timeout = image_timeout or settings.IMAGE_DOWNLOAD_TIMEOUT

        try:
            available_models = [m.name for m in genai.list_models()]
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"Error listing Gemini models: {e}")
            raise ConfigurationError(f"Could not list Gemini models: {e}") from e

        if not available_models:
            raise ConfigurationError("No Gemini models available")

        self.models: Dict[str, Any] = {}
        tiers = {
            STANDARD_TIER: default_models or settings.DEFAULT_AI_MODELS,
            LITE_TIER: lite_models or settings.LITE_AI_MODELS,
        }
        for tier, preferences in tiers.items():
            # If none of our preferred models are available, just use the first one
            model_name = select_model_name(preferences, available_models) or available_models[0]
            logger.info(f"Selected {tier} AI model: {model_name}")
            self.models[tier] = genai.GenerativeModel(model_name=model_name)

    def _model(self, tier: str):
        try:
            return self.models[tier]
        except KeyError:
            raise ValueError(f"Unknown model tier: {tier}") from None

    async def generate_structured(
        self,
        prompt: str,
        schema: Any,
        images: Sequence[str] = (),
        tier: str = LITE_TIER
    ) -> Any:
        """
        Generate JSON that conforms to a response schema.

        Args:
            prompt: Instruction text.
            schema: A TypedDict (or other schema type Gemini accepts).
            images: Image URLs attached after the prompt, in order.
            tier: Which configured model to use.

        Returns:
            The decoded JSON payload.

        Raises:
            ModelCallFailedError: On transport failure or undecodable output.
        """
        contents = [prompt] + await self.load_images(images)
        config = genai.GenerationConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )
        try:
            response = await self._model(tier).generate_content_async(
                contents,
                generation_config=config,
                request_options={"timeout": self.request_timeout}
            )
            return json.loads(response.text)
        except (google_exceptions.GoogleAPIError, ValueError) as e:
            logger.error(f"Structured generation failed ({getattr(schema, '__name__', schema)}): {e}")
            raise ModelCallFailedError(f"Structured generation failed: {e}") from e

    async def generate_text(
        self,
        prompt: str,
        images: Sequence[str] = (),
        tier: str = STANDARD_TIER
    ) -> str:
        """
        Generate free text, optionally looking at images.

        Args:
            prompt: Instruction text.
            images: Image URLs attached after the prompt, in order.
            tier: Which configured model to use.

        Returns:
            str: The raw response text.

        Raises:
            ModelCallFailedError: On transport failure or an empty/blocked response.
        """
        contents = [prompt] + await self.load_images(images)
        try:
            response = await self._model(tier).generate_content_async(
                contents,
                request_options={"timeout": self.request_timeout}
            )
            return response.text
        except (google_exceptions.GoogleAPIError, ValueError) as e:
            logger.error(f"Text generation failed: {e}")
            raise ModelCallFailedError(f"Text generation failed: {e}") from e

    async def load_images(self, urls: Sequence[str]) -> List[Image.Image]:
        """
        Download and decode images, preserving order.

        Raises:
            ModelCallFailedError: If any image cannot be fetched or decoded.
        """
        if not urls:
            return []
        return list(await asyncio.gather(*(asyncio.to_thread(self._download_image, url) for url in urls)))

    def _download_image(self, url: str) -> Image.Image:
        try:
            resp = requests.get(
                url,
                headers={'User-Agent': settings.IMAGE_USER_AGENT},
                timeout=self.image_timeout
            )
            resp.raise_for_status()
            image = Image.open(io.BytesIO(resp.content))
            image.load()
            return image
        except (requests.RequestException, UnidentifiedImageError, OSError) as e:
            logger.error(f"Could not load image {url}: {e}")
            raise ModelCallFailedError(f"Could not load image {url}: {e}") from e
