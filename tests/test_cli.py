"""Tests for the command-line interface."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from tidal_tagsync.cli.commands import TagSyncApp
from tidal_tagsync.cli.main import cli
from tidal_tagsync.core.catalog.item_catalog import ITEMS_KEY
from tidal_tagsync.database import DatabaseService


@pytest.fixture
def env(tmp_path, monkeypatch):
    """Point configuration at a temporary directory."""
    db_path = tmp_path / "state.db"
    monkeypatch.setenv("TIDAL_TAGSYNC_DATABASE_PATH", str(db_path))
    monkeypatch.setenv("TIDAL_TAGSYNC_TIDAL_TOKEN_FILE", str(tmp_path / "session.json"))
    return db_path


@pytest.fixture
def runner(env):
    """Create a CLI runner with logging setup disabled."""
    with patch("tidal_tagsync.cli.main.setup_logging"):
        yield CliRunner()


class TestReadOnlyCommands:
    """Test commands that never talk to Tidal."""

    def test_help(self, runner):
        """Test the command groups are registered."""
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("playlists", "sync", "preview", "tag"):
            assert command in result.output

    def test_playlists_list_empty(self, runner):
        """Test listing without playlists."""
        result = runner.invoke(cli, ["playlists", "list"])

        assert result.exit_code == 0
        assert "No smart playlists yet" in result.output

    def test_preview(self, runner):
        """Test previewing a criteria over an empty catalog."""
        result = runner.invoke(cli, ["preview", "-i", "genre:electronic:house"])

        assert result.exit_code == 0

    def test_preview_rejects_inverted_range(self, runner):
        """Test an inverted range is a usage error."""
        result = runner.invoke(cli, ["preview", "--energy-min", "8", "--energy-max", "3"])

        assert result.exit_code == 2

    def test_preview_rejects_bad_tag(self, runner):
        """Test a malformed tag is a usage error."""
        result = runner.invoke(cli, ["preview", "-i", "house"])

        assert result.exit_code == 2

    def test_sync_unknown_playlist(self, runner):
        """Test syncing an unknown playlist fails before connecting."""
        with patch.object(TagSyncApp, "connect") as mock_connect:
            result = runner.invoke(cli, ["sync", "-p", "missing"])

        assert result.exit_code == 1
        assert "Unknown smart playlist" in result.output
        mock_connect.assert_not_called()

    def test_tempo_requires_tagged_track(self, runner):
        """Test setting a tempo on an untagged track fails."""
        result = runner.invoke(cli, ["tag", "tempo", "123", "128"])

        assert result.exit_code == 1
        assert "Tag the track first" in result.output


class TestTagging:
    """Test tagging commands with the Tidal connection stubbed."""

    def test_rate_persists(self, runner, env):
        """Test a rating is stored under the Tidal track key."""
        with patch.object(TagSyncApp, "connect"):
            result = runner.invoke(cli, ["tag", "rate", "123", "4"])

        assert result.exit_code == 0
        db = DatabaseService(db_path=env)
        stored = db.load(ITEMS_KEY)
        db.close()
        assert stored[0]["key"] == "tidal:track:123"
        assert stored[0]["rating"] == 4

    def test_rate_out_of_range(self, runner):
        """Test click rejects ratings above five."""
        result = runner.invoke(cli, ["tag", "rate", "123", "6"])

        assert result.exit_code == 2

    def test_rate_rejects_unknown_key(self, runner, env):
        """Test keys that are neither Tidal tracks nor local files are refused."""
        with patch.object(TagSyncApp, "connect"):
            result = runner.invoke(cli, ["tag", "rate", "spotify:track:9", "4"])

        assert result.exit_code == 2
        db = DatabaseService(db_path=env)
        stored = db.load(ITEMS_KEY)
        db.close()
        assert stored is None

    def test_batch_toggle(self, runner, env):
        """Test a batch applies the tag to every track."""
        with patch.object(TagSyncApp, "connect"):
            result = runner.invoke(
                cli, ["tag", "batch", "1", "2", "-a", "genre:electronic:house"]
            )

        assert result.exit_code == 0
        db = DatabaseService(db_path=env)
        stored = db.load(ITEMS_KEY)
        db.close()
        assert sorted(record["key"] for record in stored) == [
            "tidal:track:1",
            "tidal:track:2",
        ]

    def test_remove_unknown_playlist(self, runner):
        """Test removing an unknown playlist fails."""
        result = runner.invoke(cli, ["playlists", "remove", "missing", "--yes"])

        assert result.exit_code == 1
        assert "Unknown smart playlist" in result.output
