"""Criteria evaluation for smart playlist membership.

Pure functions only: no I/O, no logging, no exceptions for well-formed input.
"""

from typing import Iterable, List, Optional

from ...models import Criteria, Item, MatchMode


def _within(value: Optional[int], low: Optional[int], high: Optional[int]) -> bool:
    """Check an optional value against optional inclusive bounds."""
    if low is None and high is None:
        return True
    if value is None:
        return False
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def matches_include_tags(item: Item, criteria: Criteria) -> bool:
    """Check the include tags using the criteria's match mode."""
    if not criteria.include_tags:
        return True
    present = (item.has_tag(tag) for tag in criteria.include_tags)
    if criteria.match_mode == MatchMode.ANY:
        return any(present)
    return all(present)


def matches_exclude_tags(item: Item, criteria: Criteria) -> bool:
    """Check that none of the exclude tags is applied."""
    return not any(item.has_tag(tag) for tag in criteria.exclude_tags)


def matches_rating(item: Item, criteria: Criteria) -> bool:
    """Check the rating filter.

    An unset rating never satisfies a non-empty rating filter, and neither does
    a literal 0 even if it were part of the set.
    """
    if not criteria.rating_set:
        return True
    return (
        item.rating is not None
        and item.rating > 0
        and item.rating in criteria.rating_set
    )


def matches_energy(item: Item, criteria: Criteria) -> bool:
    """Check the inclusive energy range."""
    return _within(item.energy, criteria.energy_min, criteria.energy_max)


def matches_tempo(item: Item, criteria: Criteria) -> bool:
    """Check the inclusive tempo range."""
    return _within(item.tempo, criteria.tempo_min, criteria.tempo_max)


def matches(item: Item, criteria: Criteria) -> bool:
    """Evaluate whether an item satisfies a criteria expression.

    Args:
        item: Item to evaluate
        criteria: Criteria expression

    Returns:
        True if all five checks pass
    """
    return (
        matches_include_tags(item, criteria)
        and matches_exclude_tags(item, criteria)
        and matches_rating(item, criteria)
        and matches_energy(item, criteria)
        and matches_tempo(item, criteria)
    )


def matching_keys(items: Iterable[Item], criteria: Criteria) -> List[str]:
    """Get the keys of all items matching the criteria, in iteration order."""
    return [item.key for item in items if matches(item, criteria)]
