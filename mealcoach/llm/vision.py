"""
Image description - turns an uploaded meal or workout photo into text that
then goes through the normal submission pipeline.
"""

import logging

from .base import LLMMessage, LLMProvider

logger = logging.getLogger(__name__)

DESCRIBE_PROMPT = (
    "Describe this image for a food and activity log. If it shows food, list "
    "every food item you can identify with an estimated portion size. If it "
    "shows exercise or a fitness tracker screen, state the activity, its "
    "duration and any calories shown. Reply with the description only."
)


class ImageDescriber:
    """Secondary provider path: describe(image_bytes, mime_type) -> text."""

    def __init__(self, provider: LLMProvider, prompt: str = DESCRIBE_PROMPT):
        self.provider = provider
        self.prompt = prompt

    async def describe(self, image_bytes: bytes, mime_type: str) -> str:
        message = LLMMessage.with_images(
            "user", self.prompt, [{"data": image_bytes, "media_type": mime_type}]
        )
        response = await self.provider.chat_completion([message], temperature=0.2)
        description = response.content.strip()
        logger.info(
            "Image described",
            extra={"extra_fields": {
                "media_type": mime_type,
                "image_bytes": len(image_bytes),
                "description_length": len(description),
            }}
        )
        return description
