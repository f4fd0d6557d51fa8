"""
Attachment Registry - holds uploaded images while an entry refers to them.
"""

import logging
from typing import Dict, Iterable, Optional

from ..models.entries import Attachment

logger = logging.getLogger(__name__)


class AttachmentRegistry:
    """In-process store of image bytes, keyed by opaque reference."""

    def __init__(self):
        self._attachments: Dict[str, Attachment] = {}

    def __contains__(self, ref: str) -> bool:
        return ref in self._attachments

    def __len__(self) -> int:
        return len(self._attachments)

    def add(self, data: bytes, media_type: str) -> Attachment:
        attachment = Attachment(data=data, media_type=media_type)
        self._attachments[attachment.ref] = attachment
        return attachment

    def get(self, ref: str) -> Optional[Attachment]:
        return self._attachments.get(ref)

    def release_unreferenced(self, referenced: Iterable[str]) -> int:
        """
        Drop every attachment whose ref is not in ``referenced``.

        Returns:
            Number of attachments released
        """
        keep = set(referenced)
        stale = [ref for ref in self._attachments if ref not in keep]
        for ref in stale:
            del self._attachments[ref]
        if stale:
            logger.debug(f"Released {len(stale)} unreferenced attachment(s)")
        return len(stale)
