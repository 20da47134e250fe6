"""Tests for the command-line entry point."""

import os
import signal
from unittest.mock import Mock, patch

import pytest

from petwatch.core.config import Config
from petwatch.core.errors import StoreError
from petwatch.core.geo import Coordinate
from petwatch.core.sighting import Sighting
from petwatch.main import (
    EXIT_DUPLICATE,
    EXIT_ERROR,
    EXIT_OK,
    _get_config,
    build_parser,
    main,
)


@pytest.fixture
def store():
    store = Mock()
    store.find_duplicates.return_value = []
    store.insert.return_value = "abc123"
    store.fetch_all.return_value = [
        Sighting(id="near", name="Luna", coordinate=Coordinate(40.4168, -3.7038)),
        Sighting(id="far", name="Toby", coordinate=Coordinate(41.3874, 2.1686)),
    ]
    store.fetch_by_device.return_value = [
        Sighting(id="mine1", name="Luna", device_id="device-a"),
    ]
    return store


@pytest.fixture
def cli(store):
    """Run main() with a mocked store and device identity."""
    with patch("petwatch.main._get_config", return_value=Config()), \
         patch("petwatch.main._make_store", return_value=store), \
         patch("petwatch.main.get_device_id", return_value="device-a"):
        yield main


class TestBuildParser:
    """Tests for argument parsing."""

    def test_subcommand_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_report_arguments(self):
        args = build_parser().parse_args(
            ["report", "--name", "Luna", "--contact", "600", "--lat", "1.5", "--lon", "2.5"]
        )
        assert args.name == "Luna"
        assert args.lat == 1.5
        assert args.photo is None


class TestGetConfig:
    """Tests for configuration source selection."""

    def test_explicit_path(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("alert_radius_m: 350\n")

        config = _get_config(str(config_file))

        assert config.alert_radius_m == 350

    def test_env_config(self):
        env = {"NOTIFICATION_WEBHOOK_URL": "https://notify.example.com", "ALERT_RADIUS_M": "120"}
        with patch.dict(os.environ, env, clear=True):
            config = _get_config()

        assert config.notification_webhook_url == "https://notify.example.com"
        assert config.alert_radius_m == 120


class TestReportCommand:
    """Tests for the report subcommand."""

    def test_success(self, cli, store, capsys):
        code = cli(["report", "--name", "Luna", "--contact", "600", "--lat", "40.4", "--lon", "-3.7"])

        assert code == EXIT_OK
        assert "abc123" in capsys.readouterr().out
        report = store.insert.call_args[0][0]
        assert report.device_id == "device-a"
        assert report.coordinate == Coordinate(40.4, -3.7)
        store.close.assert_called_once()

    def test_duplicate(self, cli, store, capsys):
        store.find_duplicates.return_value = [
            Sighting(id="old", name="Luna", device_id="device-a"),
        ]

        code = cli(["report", "--name", "Luna", "--contact", "600", "--lat", "40.4", "--lon", "-3.7"])

        assert code == EXIT_DUPLICATE
        assert "Duplicate" in capsys.readouterr().err
        store.insert.assert_not_called()

    def test_missing_location(self, cli, store, capsys):
        code = cli(["report", "--name", "Luna", "--contact", "600"])

        assert code == EXIT_ERROR
        assert "Location is required" in capsys.readouterr().err

    def test_invalid_location(self, cli, capsys):
        code = cli(["report", "--name", "Luna", "--contact", "600", "--lat", "95", "--lon", "0"])

        assert code == EXIT_ERROR
        assert "Invalid location" in capsys.readouterr().err

    def test_unreadable_photo(self, cli, tmp_path, capsys):
        code = cli([
            "report", "--name", "Luna", "--contact", "600",
            "--lat", "40.4", "--lon", "-3.7",
            "--photo", str(tmp_path / "missing.jpg"),
        ])

        assert code == EXIT_ERROR
        assert "Could not read photo" in capsys.readouterr().err

    def test_store_failure(self, cli, store, capsys):
        store.insert.side_effect = StoreError("unavailable")

        code = cli(["report", "--name", "Luna", "--contact", "600", "--lat", "40.4", "--lon", "-3.7"])

        assert code == EXIT_ERROR
        store.close.assert_called_once()


class TestMineCommand:
    """Tests for the mine subcommand."""

    def test_lists_own_reports(self, cli, store, capsys):
        code = cli(["mine"])

        assert code == EXIT_OK
        store.fetch_by_device.assert_called_once_with("device-a")
        assert "[mine1] Luna" in capsys.readouterr().out

    def test_no_reports(self, cli, store, capsys):
        store.fetch_by_device.return_value = []

        cli(["mine"])

        assert "You have no reports" in capsys.readouterr().out


class TestDeleteCommand:
    """Tests for the delete subcommand."""

    def test_deletes_own_report(self, cli, store):
        assert cli(["delete", "mine1"]) == EXIT_OK
        store.delete.assert_called_once_with("mine1")

    def test_refuses_other_report(self, cli, store, capsys):
        code = cli(["delete", "someone-else"])

        assert code == EXIT_ERROR
        store.delete.assert_not_called()
        assert "not one of your reports" in capsys.readouterr().err


class TestNearbyCommand:
    """Tests for the nearby subcommand."""

    def test_lists_sightings_in_radius(self, cli, capsys):
        code = cli(["nearby", "--lat", "40.4168", "--lon", "-3.7038"])

        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert "Luna" in out
        assert "Toby" not in out

    def test_custom_radius(self, cli, capsys):
        cli(["nearby", "--lat", "40.4168", "--lon", "-3.7038", "--radius", "600000"])

        out = capsys.readouterr().out
        assert "Luna" in out
        assert "Toby" in out

    def test_nothing_nearby(self, cli, store, capsys):
        store.fetch_all.return_value = []

        cli(["nearby", "--lat", "0", "--lon", "0"])

        assert "No sightings within 200 m" in capsys.readouterr().out


class TestMain:
    """Tests for configuration validation at startup."""

    def test_invalid_config_exits(self, store):
        with patch("petwatch.main._get_config", return_value=Config(alert_radius_m=-1)), \
             patch("petwatch.main._make_store", return_value=store):
            assert main(["mine"]) == EXIT_ERROR

        store.fetch_by_device.assert_not_called()


class TestWatchCommand:
    """Tests for the watch subcommand."""

    def test_sigterm_stops_session(self):
        """SIGTERM ends the watch loop and stops the session."""
        handlers = {}

        def fake_signal(signum, handler):
            previous = handlers.get(signum, signal.SIG_DFL)
            handlers[signum] = handler
            return previous

        with patch("petwatch.main._get_config", return_value=Config()), \
             patch("petwatch.main.AlertSession") as MockSession, \
             patch("petwatch.main.signal.signal", side_effect=fake_signal):
            session = MockSession.return_value
            session.start.side_effect = lambda: handlers[signal.SIGTERM](signal.SIGTERM, None)

            code = main(["watch"])

        assert code == EXIT_OK
        session.stop.assert_called_once()
        assert handlers[signal.SIGTERM] is signal.SIG_DFL

    def test_keyboard_interrupt_stops_session(self):
        with patch("petwatch.main._get_config", return_value=Config()), \
             patch("petwatch.main.AlertSession") as MockSession, \
             patch("petwatch.main.signal.signal"):
            session = MockSession.return_value
            session.start.side_effect = KeyboardInterrupt

            assert main(["watch"]) == EXIT_OK

        session.stop.assert_called_once()
