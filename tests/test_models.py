"""Tests for the data models."""

import pytest
from pydantic import ValidationError

from tidal_tagsync.models import (
    BatchTagUpdate,
    Criteria,
    Item,
    MatchMode,
    SmartPlaylist,
    TagKey,
    is_local_key,
    tidal_track_id,
    tidal_track_key,
)

from conftest import HOUSE, TECHNO


class TestTagKey:
    """Test TagKey parsing and formatting."""

    def test_parse(self):
        """Test parsing the text form."""
        tag = TagKey.parse("genre:electronic:house")

        assert tag == HOUSE
        assert str(tag) == "genre:electronic:house"

    @pytest.mark.parametrize(
        "text", ["genre:house", "genre::house", "a:b:c:d", "", "::"]
    )
    def test_parse_invalid(self, text):
        """Test malformed tag keys are rejected."""
        with pytest.raises(ValueError):
            TagKey.parse(text)

    def test_hashable(self):
        """Test tags can be used in sets."""
        assert len({HOUSE, TagKey.parse("genre:electronic:house"), TECHNO}) == 2


class TestItem:
    """Test Item model."""

    def test_zero_rating_and_energy_are_unset(self):
        """Test legacy zero values become None."""
        item = Item(key="tidal:track:1", rating=0, energy=0, tags=[HOUSE])

        assert item.rating is None
        assert item.energy is None

    def test_tags_deduplicated(self):
        """Test repeated tags collapse, keeping order."""
        item = Item(key="tidal:track:1", tags=[TECHNO, HOUSE, TECHNO])

        assert item.tags == [TECHNO, HOUSE]

    def test_is_empty(self):
        """Test emptiness ignores tempo."""
        assert Item(key="tidal:track:1").is_empty
        assert Item(key="tidal:track:1", tempo=128).is_empty
        assert not Item(key="tidal:track:1", rating=3).is_empty
        assert not Item(key="tidal:track:1", tags=[HOUSE]).is_empty

    def test_is_local(self):
        """Test local-only keys are detected."""
        assert Item(key="local:file.mp3", rating=1).is_local
        assert not Item(key="tidal:track:1", rating=1).is_local

    def test_frozen(self):
        """Test items cannot be mutated in place."""
        item = Item(key="tidal:track:1", rating=3)
        with pytest.raises(ValidationError):
            item.rating = 4


class TestItemKeys:
    """Test item key helpers."""

    def test_track_key_roundtrip(self):
        """Test building and parsing Tidal track keys."""
        assert tidal_track_key(42) == "tidal:track:42"
        assert tidal_track_id("tidal:track:42") == "42"

    def test_non_tidal_keys(self):
        """Test keys without a Tidal track id."""
        assert tidal_track_id("local:song.mp3") is None
        assert tidal_track_id("tidal:track:") is None
        assert is_local_key("local:song.mp3")
        assert not is_local_key("tidal:track:1")

    @pytest.mark.parametrize("key", ["abc", "spotify:track:1", "tidal:track:"])
    def test_unresolvable_keys_are_local(self, key):
        """Test any key without a Tidal track id counts as local-only."""
        assert is_local_key(key)
        assert Item(key=key, rating=1).is_local


class TestCriteria:
    """Test Criteria model."""

    def test_defaults_are_empty(self):
        """Test a default criteria places no constraint."""
        criteria = Criteria()

        assert criteria.is_empty
        assert criteria.match_mode == MatchMode.ALL
        assert criteria.describe() == "(everything)"

    @pytest.mark.parametrize(
        "fields",
        [
            {"energy_min": 8, "energy_max": 3},
            {"tempo_min": 130, "tempo_max": 120},
        ],
    )
    def test_inverted_range_rejected(self, fields):
        """Test min greater than max is malformed."""
        with pytest.raises(ValidationError):
            Criteria(**fields)

    def test_describe(self):
        """Test the human readable description."""
        criteria = Criteria(
            include_tags=[HOUSE, TECHNO],
            match_mode=MatchMode.ANY,
            rating_set={5, 4},
            tempo_min=120,
        )

        description = criteria.describe()

        assert "genre:electronic:house | genre:electronic:techno" in description
        assert "rating in 4,5" in description
        assert "tempo 120.." in description

    def test_json_roundtrip(self):
        """Test criteria survive JSON serialization."""
        criteria = Criteria(include_tags=[HOUSE], rating_set={4, 5}, energy_min=6)

        restored = Criteria.model_validate(criteria.model_dump(mode="json"))

        assert restored == criteria


class TestSmartPlaylist:
    """Test SmartPlaylist model."""

    def test_members_deduplicated(self):
        """Test expected members are duplicate free."""
        playlist = SmartPlaylist(
            playlist_id="pl", name="P", expected_members=["a", "b", "a"]
        )

        assert playlist.expected_members == ["a", "b"]
        assert playlist.member_count == 2

    def test_with_and_without_member(self):
        """Test copies with a member added or dropped."""
        playlist = SmartPlaylist(playlist_id="pl", name="P", expected_members=["a"])

        added = playlist.with_member("b")
        removed = added.without_member("a")

        assert added.expected_members == ["a", "b"]
        assert removed.expected_members == ["b"]
        assert playlist.expected_members == ["a"]
        assert playlist.with_member("a") is playlist

    def test_missing_name_rejected(self):
        """Test name is required."""
        with pytest.raises(ValidationError):
            SmartPlaylist.model_validate({"playlist_id": "pl"})


class TestBatchTagUpdate:
    """Test BatchTagUpdate model."""

    def test_defaults(self):
        """Test an update changes nothing by default."""
        update = BatchTagUpdate(item_key="tidal:track:1")

        assert update.to_add == ()
        assert update.to_remove == ()
        assert update.new_rating is None
        assert update.new_energy is None
