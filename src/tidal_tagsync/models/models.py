"""Data models for the smart playlist sync engine."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

LOCAL_KEY_PREFIX = "local:"
TIDAL_TRACK_PREFIX = "tidal:track:"


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def tidal_track_key(track_id: Any) -> str:
    """Build the item key for a Tidal track id."""
    return f"{TIDAL_TRACK_PREFIX}{track_id}"


def tidal_track_id(item_key: str) -> Optional[str]:
    """Extract the Tidal track id from an item key.

    Returns:
        The track id, or None for local-only and unknown keys
    """
    if not item_key.startswith(TIDAL_TRACK_PREFIX):
        return None
    track_id = item_key[len(TIDAL_TRACK_PREFIX) :]
    return track_id or None


def is_local_key(item_key: str) -> bool:
    """Check whether an item key cannot be resolved against Tidal.

    Local files and keys of any other scheme are both local-only.
    """
    return tidal_track_id(item_key) is None


def _unset_zero(value: Any) -> Any:
    # 0 is the legacy "no value" marker for rating and energy
    if value == 0:
        return None
    return value


class MatchMode(str, Enum):
    """How include tags are combined."""

    ALL = "all"
    ANY = "any"


class TagKey(BaseModel):
    """Compound key of a tag: category, subcategory and leaf tag id."""

    category_id: str = Field(min_length=1)
    subcategory_id: str = Field(min_length=1)
    tag_id: str = Field(min_length=1)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def parse(cls, text: str) -> "TagKey":
        """Parse a ``category:subcategory:tag`` string.

        Raises:
            ValueError: If the text does not have three non-empty parts
        """
        parts = text.strip().split(":")
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"Invalid tag key '{text}', expected category:sub:tag")
        return cls(category_id=parts[0], subcategory_id=parts[1], tag_id=parts[2])

    def __str__(self) -> str:
        """Return the ``category:subcategory:tag`` form."""
        return f"{self.category_id}:{self.subcategory_id}:{self.tag_id}"


class Item(BaseModel):
    """A taggable unit of content with rating, energy, tempo and tags."""

    key: str = Field(min_length=1)
    rating: Optional[int] = None
    energy: Optional[int] = None
    tempo: Optional[int] = None
    tags: List[TagKey] = []
    created_at: datetime = Field(default_factory=utc_now)
    modified_at: datetime = Field(default_factory=utc_now)

    model_config = ConfigDict(frozen=True)

    @field_validator("rating", "energy", mode="before")
    @classmethod
    def validate_unset(cls, v: Any) -> Any:
        """Treat a legacy 0 value as unset."""
        return _unset_zero(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[TagKey]) -> List[TagKey]:
        """Drop repeated tags, keeping first-seen order."""
        return list(dict.fromkeys(v))

    @property
    def is_local(self) -> bool:
        """Whether this item cannot be resolved against the remote catalog."""
        return is_local_key(self.key)

    @property
    def is_empty(self) -> bool:
        """Whether the item carries no rating, energy or tags."""
        return self.rating is None and self.energy is None and not self.tags

    def has_tag(self, tag: TagKey) -> bool:
        """Check whether the tag is applied to this item."""
        return tag in self.tags


class Criteria(BaseModel):
    """Filter deciding smart playlist membership."""

    include_tags: List[TagKey] = []
    exclude_tags: List[TagKey] = []
    match_mode: MatchMode = MatchMode.ALL
    rating_set: Set[int] = set()
    energy_min: Optional[int] = None
    energy_max: Optional[int] = None
    tempo_min: Optional[int] = None
    tempo_max: Optional[int] = None

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_ranges(self) -> "Criteria":
        """Reject inverted ranges."""
        for name, low, high in (
            ("energy", self.energy_min, self.energy_max),
            ("tempo", self.tempo_min, self.tempo_max),
        ):
            if low is not None and high is not None and low > high:
                raise ValueError(f"{name} range is inverted: {low} > {high}")
        return self

    @property
    def is_empty(self) -> bool:
        """Whether the criteria places no constraint at all."""
        return not (
            self.include_tags
            or self.exclude_tags
            or self.rating_set
            or self.energy_min is not None
            or self.energy_max is not None
            or self.tempo_min is not None
            or self.tempo_max is not None
        )

    def describe(self) -> str:
        """Get a short human readable description."""
        parts = []
        if self.include_tags:
            joiner = " & " if self.match_mode == MatchMode.ALL else " | "
            parts.append(joiner.join(str(t) for t in self.include_tags))
        if self.exclude_tags:
            parts.append("not " + ", ".join(str(t) for t in self.exclude_tags))
        if self.rating_set:
            parts.append("rating in " + ",".join(str(r) for r in sorted(self.rating_set)))
        if self.energy_min is not None or self.energy_max is not None:
            parts.append(f"energy {_range_text(self.energy_min, self.energy_max)}")
        if self.tempo_min is not None or self.tempo_max is not None:
            parts.append(f"tempo {_range_text(self.tempo_min, self.tempo_max)}")
        return "; ".join(parts) if parts else "(everything)"


def _range_text(low: Optional[int], high: Optional[int]) -> str:
    return f"{'' if low is None else low}..{'' if high is None else high}"


class SmartPlaylist(BaseModel):
    """A persisted criteria bound to a remote collection."""

    playlist_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    criteria: Criteria = Criteria()
    is_active: bool = True
    expected_members: List[str] = []
    created_at: datetime = Field(default_factory=utc_now)
    last_sync_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("expected_members")
    @classmethod
    def validate_members(cls, v: List[str]) -> List[str]:
        """Keep members duplicate free, in first-seen order."""
        return list(dict.fromkeys(v))

    @property
    def member_count(self) -> int:
        """Number of expected members."""
        return len(self.expected_members)

    def has_member(self, item_key: str) -> bool:
        """Check whether the item is an expected member."""
        return item_key in self.expected_members

    def with_member(self, item_key: str) -> "SmartPlaylist":
        """Return a copy with the item appended to the expected members."""
        if self.has_member(item_key):
            return self
        return self.model_copy(
            update={"expected_members": [*self.expected_members, item_key]}
        )

    def without_member(self, item_key: str) -> "SmartPlaylist":
        """Return a copy with the item dropped from the expected members."""
        if not self.has_member(item_key):
            return self
        return self.model_copy(
            update={
                "expected_members": [
                    key for key in self.expected_members if key != item_key
                ]
            }
        )


class BatchTagUpdate(BaseModel):
    """Tag, rating and energy changes to apply to one item in a batch."""

    item_key: str = Field(min_length=1)
    to_add: Tuple[TagKey, ...] = ()
    to_remove: Tuple[TagKey, ...] = ()
    new_rating: Optional[int] = None
    new_energy: Optional[int] = None
