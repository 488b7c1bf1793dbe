"""Moderation gate in front of guarded calls."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ai_service.errors import ModerationError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ai_service.models import Message, Moderation
    from ai_service.services.base import ModerationModel

logger = logging.getLogger(__name__)


class ModerationGate:
    """Submits outbound user messages to a moderation model.

    The gate only reports the verdict; callers decide what a flag means.
    """

    def __init__(self, model: ModerationModel) -> None:
        """Initialize the gate."""
        self.model = model

    async def moderate(self, messages: Sequence[Message]) -> Moderation:
        """Classify the user messages among ``messages`` with a single port call."""
        outbound = [m for m in messages if m.role == "user"]
        moderation = await self.model.moderate(outbound)
        if moderation.flagged:
            logger.info("Moderation flagged outbound text: %r", moderation.flagged_text)
        else:
            logger.debug("Moderation passed %d message(s)", len(outbound))
        return moderation


def moderation_error(moderation: Moderation) -> ModerationError:
    """Error to report for a flagged verdict."""
    msg = f'Text "{moderation.flagged_text}" violates content policy'
    return ModerationError(msg, moderation)
