# core/outcomes.py
"""
Result of a state transition plus the best-effort work that followed it.

The primary change is committed before any side channel runs, so
`side_effects` only reports what happened afterwards; it never decides
whether the transition itself succeeded.
"""
import logging
from collections.abc import Awaitable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class SideEffects:
    audit_recorded: bool = False
    # None when the transition does not send anything
    notification_sent: bool | None = None


@dataclass
class TransitionOutcome(Generic[T]):
    value: T
    side_effects: SideEffects = field(default_factory=SideEffects)


async def deliver_best_effort(send: Awaitable[None], description: str) -> bool:
    """Await a notification; log and swallow any failure."""
    try:
        await send
    except Exception:
        logger.warning("Notification failed: %s", description, exc_info=True)
        return False
    return True
