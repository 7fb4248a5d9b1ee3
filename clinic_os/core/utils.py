"""Small shared helpers."""

from __future__ import annotations


def percent_of(part: int, total: int) -> int:
    """Return ``part / total * 100`` rounded half-up to an integer.

    Integer arithmetic keeps ``1/3`` at 33 and ``1/2`` at 50 without float
    drift. A zero ``total`` yields 0.
    """
    if total <= 0:
        return 0
    return (part * 200 + total) // (2 * total)


def to_minutes(hhmm: str) -> int:
    """Minutes since midnight for an ``HH:MM`` time string."""
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def overlaps(start: int, duration: int, other_start: int, other_duration: int) -> bool:
    """True when two ``[start, start + duration)`` minute ranges intersect.

    Back-to-back slots (one ends exactly when the other starts) do not overlap.
    """
    return start < other_start + other_duration and other_start < start + duration
