"""Structural validation of a service's session list.

Pure functions, no I/O. Each check raises ``BadRequestError`` with a stable
code; ``validate_session_structure`` runs them in a fixed order so the same
input always fails the same way.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Optional, Sequence

from clinic_os.core.errors import BadRequestError
from clinic_os.core.schemas import SessionIn
from clinic_os.scheduling.models import (
    MAX_SESSION_DURATION,
    MAX_SESSIONS_PER_SERVICE,
    MIN_SESSION_DURATION,
)


def is_valid_order(order: Any) -> bool:
    """True for positive integers, including integral floats such as ``2.0``."""
    if isinstance(order, bool):
        return False
    if isinstance(order, float):
        return order.is_integer() and order >= 1
    return isinstance(order, int) and order >= 1


def validate_max_session_count(sessions: Sequence[SessionIn]) -> None:
    if len(sessions) > MAX_SESSIONS_PER_SERVICE:
        raise BadRequestError(
            "MAX_SESSIONS_EXCEEDED",
            {"count": len(sessions), "max": MAX_SESSIONS_PER_SERVICE},
        )


def validate_session_duration(duration: Optional[int]) -> None:
    """An omitted duration is valid; it is inherited from the service later."""
    if duration is None:
        return
    if duration < MIN_SESSION_DURATION or duration > MAX_SESSION_DURATION:
        raise BadRequestError(
            "INVALID_SESSION_DURATION",
            {"duration": duration, "min": MIN_SESSION_DURATION, "max": MAX_SESSION_DURATION},
        )


def validate_unique_order_numbers(sessions: Sequence[SessionIn]) -> None:
    counts = Counter(int(s.order) for s in sessions)
    duplicates = sorted(order for order, n in counts.items() if n > 1)
    if duplicates:
        raise BadRequestError("DUPLICATE_SESSION_ORDER", {"duplicateOrders": duplicates})


def validate_unique_session_ids(sessions: Sequence[SessionIn]) -> None:
    counts = Counter(s.id for s in sessions if s.id)
    duplicates = sorted(sid for sid, n in counts.items() if n > 1)
    if duplicates:
        raise BadRequestError("INVALID_SESSION_STRUCTURE", {"duplicateSessionIds": duplicates})


def validate_session(session: SessionIn) -> None:
    if session.name is not None and not session.name.strip():
        raise BadRequestError("EMPTY_SESSION_NAME", {"sessionOrder": session.order})
    if not is_valid_order(session.order):
        raise BadRequestError("INVALID_SESSION_ORDER", {"sessionOrder": session.order})
    validate_session_duration(session.duration)


def validate_session_structure(sessions: Sequence[SessionIn]) -> None:
    validate_max_session_count(sessions)
    for session in sessions:
        validate_session(session)
    validate_unique_order_numbers(sessions)
    validate_unique_session_ids(sessions)
