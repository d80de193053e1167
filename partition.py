"""Chronological sorting and calendar-date grouping of play events."""

from typing import Dict, Iterable, List

from models import PlayEvent


def sort_by_played_at(events: Iterable[PlayEvent]) -> List[PlayEvent]:
    """Oldest first. Events with equal timestamps keep their input order."""
    return sorted(events, key=lambda event: event.timestamp)


def group_by_date(events: Iterable[PlayEvent]) -> Dict[str, List[PlayEvent]]:
    """Group events by the date part of ``played_at``, keeping their order.

    The date is taken as reported (no timezone conversion), so UTC
    timestamps land on their UTC day.
    """
    groups: Dict[str, List[PlayEvent]] = {}
    for event in events:
        groups.setdefault(event.date, []).append(event)
    return groups


def partition_by_date(events: Iterable[PlayEvent]) -> Dict[str, List[PlayEvent]]:
    return group_by_date(sort_by_played_at(events))
