"""Shared click options for building a criteria expression."""

from typing import Any, Callable, Optional, Sequence

import click
from pydantic import ValidationError

from ...models import Criteria, MatchMode, TagKey


def _parse_tags(values: Sequence[str]) -> list[TagKey]:
    try:
        return [TagKey.parse(value) for value in values]
    except ValueError as e:
        raise click.BadParameter(str(e)) from e


def criteria_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the criteria options to a command."""
    options = [
        click.option(
            "--include",
            "-i",
            "include",
            multiple=True,
            help="Tag the item must carry (category:subcategory:tag)",
        ),
        click.option(
            "--exclude",
            "-x",
            "exclude",
            multiple=True,
            help="Tag the item must not carry",
        ),
        click.option(
            "--mode",
            type=click.Choice([m.value for m in MatchMode]),
            default=MatchMode.ALL.value,
            show_default=True,
            help="Whether all or any include tag must match",
        ),
        click.option(
            "--rating",
            "-r",
            "ratings",
            type=click.IntRange(1, 5),
            multiple=True,
            help="Accepted star rating (repeatable)",
        ),
        click.option("--energy-min", type=click.IntRange(1, 10)),
        click.option("--energy-max", type=click.IntRange(1, 10)),
        click.option("--tempo-min", type=click.IntRange(min=1)),
        click.option("--tempo-max", type=click.IntRange(min=1)),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_criteria(
    include: Sequence[str],
    exclude: Sequence[str],
    mode: str,
    ratings: Sequence[int],
    energy_min: Optional[int],
    energy_max: Optional[int],
    tempo_min: Optional[int],
    tempo_max: Optional[int],
) -> Criteria:
    """Build a Criteria from the parsed option values.

    Raises:
        click.BadParameter: If a tag or range is invalid
    """
    try:
        return Criteria(
            include_tags=_parse_tags(include),
            exclude_tags=_parse_tags(exclude),
            match_mode=MatchMode(mode),
            rating_set=set(ratings),
            energy_min=energy_min,
            energy_max=energy_max,
            tempo_min=tempo_min,
            tempo_max=tempo_max,
        )
    except ValidationError as e:
        raise click.BadParameter(str(e)) from e
