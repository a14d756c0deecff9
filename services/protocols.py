"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for services used in Meme Studio.
These protocols enable loose coupling, dependency injection, and easier testing.

Protocols defined:
- ModelClient: Interface for the language model (structured and free-text calls)
"""

from typing import Protocol, Any, Sequence


class ModelClient(Protocol):
    """Protocol defining the interface for language model calls.

    Implementations should provide:
    - Structured generation that returns data matching a declared schema
    - Free-text generation accepting a prompt plus ordered images

    Both raise ModelCallFailedError on transport or decoding failure.
    """

    async def generate_structured(
        self,
        prompt: str,
        schema: Any,
        images: Sequence[str] = (),
        tier: str = "lite"
    ) -> Any:
        """Generate a payload conforming to schema.

        Args:
            prompt: Instruction text.
            schema: Response schema type.
            images: Image URLs attached in order after the prompt.
            tier: "lite" for cheap calls, "standard" for the main model.

        Returns:
            The decoded JSON payload.
        """
        ...

    async def generate_text(
        self,
        prompt: str,
        images: Sequence[str] = (),
        tier: str = "standard"
    ) -> str:
        """Generate free text.

        Args:
            prompt: Instruction text.
            images: Image URLs attached in order after the prompt.
            tier: "lite" for cheap calls, "standard" for the main model.

        Returns:
            The raw response text.
        """
        ...
