"""Tests for criteria evaluation."""

import pytest

from tidal_tagsync.core.sync.evaluator import matches, matching_keys
from tidal_tagsync.models import Criteria, Item, MatchMode

from conftest import HOUSE, PEAK, TECHNO


@pytest.fixture
def house_item():
    """Create a fully tagged house track."""
    return Item(key="tidal:track:1", tags=[HOUSE], rating=5, energy=8, tempo=128)


class TestMatches:
    """Test the matches function."""

    def test_empty_criteria_matches_everything(self, house_item):
        """Test an empty criteria matches any item."""
        assert matches(house_item, Criteria())
        assert matches(Item(key="local:x.mp3"), Criteria())

    def test_house_scenario(self, house_item):
        """Test a house track at 128 BPM against a peak-time criteria."""
        criteria = Criteria(
            include_tags=[HOUSE],
            match_mode=MatchMode.ALL,
            rating_set={4, 5},
            energy_min=6,
            tempo_min=120,
            tempo_max=130,
        )

        assert matches(house_item, criteria)

    def test_exclude_wins_over_everything(self, house_item):
        """Test an excluded tag rejects the item regardless of other filters."""
        criteria = Criteria(
            include_tags=[HOUSE],
            exclude_tags=[HOUSE],
            rating_set={4, 5},
            energy_min=6,
            tempo_min=120,
            tempo_max=130,
        )

        assert not matches(house_item, criteria)

    def test_all_mode_requires_every_tag(self, house_item):
        """Test ALL mode fails when one include tag is missing."""
        criteria = Criteria(include_tags=[HOUSE, PEAK], match_mode=MatchMode.ALL)

        assert not matches(house_item, criteria)

    def test_any_mode_requires_one_tag(self, house_item):
        """Test ANY mode passes with a single present tag."""
        criteria = Criteria(include_tags=[TECHNO, HOUSE], match_mode=MatchMode.ANY)

        assert matches(house_item, criteria)
        assert not matches(
            house_item, Criteria(include_tags=[TECHNO, PEAK], match_mode=MatchMode.ANY)
        )

    def test_exclude_is_none_of_in_any_mode(self, house_item):
        """Test exclude tags reject on any present tag, even in ANY mode."""
        criteria = Criteria(exclude_tags=[TECHNO, HOUSE], match_mode=MatchMode.ANY)

        assert not matches(house_item, criteria)

    def test_unrated_never_matches_rating_filter(self):
        """Test rating 0 does not match, even with 0 in the set."""
        item = Item(key="tidal:track:2", tags=[HOUSE], rating=0)

        assert not matches(item, Criteria(rating_set={0, 1, 2}))
        assert not matches(item, Criteria(rating_set={1}))

    def test_rating_must_be_in_set(self, house_item):
        """Test the rating set membership."""
        assert matches(house_item, Criteria(rating_set={5}))
        assert not matches(house_item, Criteria(rating_set={3, 4}))

    @pytest.mark.parametrize(
        "bounds",
        [{"energy_min": 1}, {"energy_max": 10}, {"energy_min": 1, "energy_max": 10}],
    )
    def test_unset_energy_fails_any_bound(self, bounds):
        """Test items without energy fail any energy bound."""
        item = Item(key="tidal:track:3", tags=[HOUSE])

        assert not matches(item, Criteria(**bounds))

    def test_energy_bounds_inclusive(self, house_item):
        """Test energy bounds include their endpoints."""
        assert matches(house_item, Criteria(energy_min=8, energy_max=8))
        assert not matches(house_item, Criteria(energy_min=9))
        assert not matches(house_item, Criteria(energy_max=7))

    def test_tempo_bounds(self, house_item):
        """Test tempo range including unset tempo."""
        assert matches(house_item, Criteria(tempo_min=128, tempo_max=128))
        assert not matches(house_item, Criteria(tempo_max=127))
        assert not matches(Item(key="tidal:track:4", rating=3), Criteria(tempo_min=1))


class TestMatchingKeys:
    """Test matching_keys."""

    def test_keeps_catalog_order(self):
        """Test matching keys come back in iteration order."""
        items = [
            Item(key="tidal:track:3", tags=[HOUSE]),
            Item(key="tidal:track:1", tags=[TECHNO]),
            Item(key="local:a.mp3", tags=[HOUSE]),
        ]

        keys = matching_keys(items, Criteria(include_tags=[HOUSE]))

        assert keys == ["tidal:track:3", "local:a.mp3"]
