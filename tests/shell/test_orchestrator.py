"""Tests for the AlertSession orchestrator.

Tests the coordination between functional core and imperative shell.
Uses mocks for shell components to test orchestration logic.
"""

import threading
from unittest.mock import Mock, patch

import pytest

from petwatch.core.backoff import BackoffPolicy
from petwatch.core.config import Config
from petwatch.core.errors import LocationUnavailableError, PermissionDeniedError, StoreError
from petwatch.core.geo import Coordinate
from petwatch.core.sighting import Sighting
from petwatch.orchestrator import AlertSession, EvaluationResult
from petwatch.shell.notification_client import NotificationResponse
from petwatch.shell.sighting_feed import SightingFeedAdapter
from petwatch.shell.streams import Subscription


USER = Coordinate(10.000, 10.000)
FAST_BACKOFF = BackoffPolicy(initial_seconds=0.01, max_seconds=0.05)


@pytest.fixture
def near_sighting():
    """About 197 m from USER."""
    return Sighting(id="near", name="Luna", coordinate=Coordinate(10.0000, 10.0018))


@pytest.fixture
def far_sighting():
    """About 1.1 km from USER."""
    return Sighting(id="far", name="Toby", coordinate=Coordinate(10.010, 10.000))


@pytest.fixture
def unlocated_sighting():
    return Sighting(id="nocoords", name="Rex", coordinate=None)


@pytest.fixture
def config():
    return Config(alert_radius_m=200, initial_fetch_timeout_seconds=1)


@pytest.fixture
def mock_store(near_sighting, far_sighting):
    store = Mock()
    store.fetch_all.return_value = [near_sighting, far_sighting]
    return store


@pytest.fixture
def mock_provider():
    provider = Mock()
    provider.get_current_position.return_value = USER
    return provider


@pytest.fixture
def mock_dispatcher():
    dispatcher = Mock()
    dispatcher.dispatch.return_value = NotificationResponse(success=True, status_code=200)
    return dispatcher


@pytest.fixture
def mock_location_stream():
    stream = Mock()
    stream.subscribe.side_effect = lambda *a, **kw: Subscription("location")
    return stream


class FakeWatch:
    def __init__(self, on_insert, on_initial):
        self.on_insert = on_insert
        self.on_initial = on_initial
        self.is_active = True

    def unsubscribe(self):
        self.is_active = False


class WatchStore:
    """Store whose watches go live with an empty record set."""

    def __init__(self):
        self.watches = []

    def subscribe_inserts(self, on_insert, on_initial=None):
        watch = FakeWatch(on_insert, on_initial)
        self.watches.append(watch)
        if len(self.watches) == 1:
            on_initial([])
        return watch

    def close(self):
        pass


def wait_for(predicate, timeout=2.0):
    event = threading.Event()
    for _ in range(int(timeout / 0.01)):
        if predicate():
            return True
        event.wait(0.01)
    return predicate()


class FakeFeed:
    """Feed that hands over the store's records on subscribe, like a watch going live."""

    def __init__(self, store):
        self.store = store
        self.calls = []

    def subscribe(self, on_insert, on_resync=None, on_error=None):
        self.calls.append({"on_insert": on_insert, "on_resync": on_resync, "on_error": on_error})
        try:
            sightings = self.store.fetch_all()
        except StoreError:
            sightings = None
        if sightings is not None and on_resync is not None:
            on_resync(sightings)
        return Subscription("sighting-feed")


@pytest.fixture
def mock_feed(mock_store):
    return FakeFeed(mock_store)


@pytest.fixture
def session(config, mock_store, mock_provider, mock_dispatcher, mock_location_stream, mock_feed):
    return AlertSession(
        config,
        store=mock_store,
        location_provider=mock_provider,
        dispatcher=mock_dispatcher,
        location_stream=mock_location_stream,
        sighting_feed=mock_feed,
    )


def dispatched_ids(dispatcher):
    return [c.args[0].sighting_id for c in dispatcher.dispatch.call_args_list]


class TestEvaluationResult:
    """Tests for EvaluationResult dataclass."""

    def test_summary_format(self):
        result = EvaluationResult(trigger="position", sightings_evaluated=4)
        assert result.summary == "position: checked 4 sightings, 0 alerts, 0 delivered, 0 failed"


class TestStart:
    """Tests for AlertSession.start()."""

    def test_loads_state_and_alerts_nearby(self, session, mock_dispatcher):
        """Startup alerts for sightings already near the user."""
        result = session.start()

        assert [i.sighting_id for i in result.intents] == ["near"]
        assert dispatched_ids(mock_dispatcher) == ["near"]
        assert len(session.sightings) == 2
        assert session.position.get() == USER

    def test_subscribes_both_sources(self, session, mock_location_stream, mock_feed):
        session.start()

        assert len(mock_feed.calls) == 1
        assert mock_feed.calls[0]["on_resync"] == session.handle_resync
        mock_location_stream.subscribe.assert_called_once()
        assert mock_location_stream.subscribe.call_args.kwargs["on_error"] == session.handle_location_error

    def test_store_failure_is_not_fatal(self, session, config, mock_store, mock_dispatcher):
        """A feed that never delivers leaves the working set empty."""
        config.initial_fetch_timeout_seconds = 0.05
        mock_store.fetch_all.side_effect = StoreError("down")

        result = session.start()

        assert len(session.sightings) == 0
        assert result.intents == []
        assert session.errors

    def test_no_position_is_not_fatal(self, session, mock_provider, mock_dispatcher, mock_location_stream):
        """Without an initial fix nothing is alerted yet, but the watch starts."""
        mock_provider.get_current_position.side_effect = LocationUnavailableError("no fix")

        result = session.start()

        assert session.position.get() is None
        assert result.intents == []
        mock_dispatcher.dispatch.assert_not_called()
        mock_location_stream.subscribe.assert_called_once()

    def test_permission_denied_is_terminal(self, session, mock_provider, mock_location_stream):
        """A denial at startup is reported once and location is never asked again."""
        mock_provider.get_current_position.side_effect = PermissionDeniedError("location")

        session.start()

        assert session.location_available is False
        assert session.errors == ["Location permission denied; nearby alerts are off"]
        assert mock_provider.get_current_position.call_count == 1
        mock_location_stream.subscribe.assert_not_called()

    def test_feed_records_loaded_before_start_returns(self, session, mock_store, near_sighting):
        """Startup state comes from the feed's first record set."""
        result = session.start()

        assert result.trigger == "startup"
        assert "near" in session.sightings

    def test_cannot_start_twice(self, session):
        session.start()
        with pytest.raises(RuntimeError):
            session.start()

    def test_uses_configured_radius(self, session, config, mock_dispatcher):
        """Radius comes from configuration."""
        config.alert_radius_m = 5000

        result = session.start()

        assert {i.sighting_id for i in result.intents} == {"near", "far"}


class TestHandlePosition:
    """Tests for AlertSession.handle_position()."""

    def test_alerts_when_moving_close(self, session, far_sighting, mock_dispatcher):
        session.sightings.replace_all([far_sighting])

        result = session.handle_position(Coordinate(10.009, 10.000))

        assert [i.sighting_id for i in result.intents] == ["far"]
        assert session.position.get() == Coordinate(10.009, 10.000)

    def test_repeat_position_does_not_realert(self, session, near_sighting, mock_dispatcher):
        session.sightings.replace_all([near_sighting])

        session.handle_position(USER)
        second = session.handle_position(USER)

        assert second.intents == []
        assert mock_dispatcher.dispatch.call_count == 1

    def test_unlocated_never_alerts(self, session, unlocated_sighting, mock_dispatcher):
        session.sightings.replace_all([unlocated_sighting])

        result = session.handle_position(USER)

        assert result.intents == []
        assert result.sightings_evaluated == 1

    def test_failed_delivery_is_not_rolled_back(self, session, near_sighting, mock_dispatcher):
        """A failed notification still counts as notified."""
        mock_dispatcher.dispatch.return_value = NotificationResponse(
            success=False, status_code=403, error="Notification permission denied"
        )
        session.sightings.replace_all([near_sighting])

        first = session.handle_position(USER)
        second = session.handle_position(USER)

        assert [i.sighting_id for i in first.failed] == ["near"]
        assert second.intents == []
        assert session.notified.has_notified("near")


class TestHandleInsert:
    """Tests for AlertSession.handle_insert()."""

    def test_new_nearby_sighting_alerts_immediately(self, session, near_sighting, mock_dispatcher):
        """A fresh report near the user alerts without a location update."""
        session.position.set(USER)

        result = session.handle_insert(near_sighting)

        assert [i.sighting_id for i in result.intents] == ["near"]
        assert "near" in session.sightings

    def test_insert_without_position_waits(self, session, near_sighting, mock_dispatcher):
        """Without a position the sighting is stored and alerted later."""
        session.handle_insert(near_sighting)
        mock_dispatcher.dispatch.assert_not_called()

        result = session.handle_position(USER)

        assert [i.sighting_id for i in result.intents] == ["near"]

    def test_far_insert_is_stored_only(self, session, far_sighting, mock_dispatcher):
        session.position.set(USER)

        result = session.handle_insert(far_sighting)

        assert result.intents == []
        assert "far" in session.sightings

    def test_insert_then_position_alerts_once(self, session, near_sighting, mock_dispatcher):
        """Feed path and location path together alert once."""
        session.position.set(USER)

        session.handle_insert(near_sighting)
        session.handle_position(USER)

        assert dispatched_ids(mock_dispatcher) == ["near"]

    def test_concurrent_paths_alert_once(self, session, near_sighting, mock_dispatcher):
        """Insert and position arriving together alert exactly once."""
        barrier = threading.Barrier(2)

        def insert():
            barrier.wait()
            session.handle_insert(near_sighting)

        def move():
            barrier.wait()
            session.handle_position(USER)

        threads = [threading.Thread(target=insert), threading.Thread(target=move)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert dispatched_ids(mock_dispatcher) == ["near"]


class TestHandleResync:
    """Tests for AlertSession.handle_resync()."""

    def test_replaces_working_set_and_alerts_missed(self, session, near_sighting, far_sighting, mock_dispatcher):
        session.sightings.replace_all([far_sighting])
        session.position.set(USER)
        session.feed_available = False

        result = session.handle_resync([near_sighting])

        assert [s.id for s in session.sightings.snapshot()] == ["near"]
        assert [i.sighting_id for i in result.intents] == ["near"]
        assert session.feed_available is True

    def test_insert_after_reconnect_is_kept(self, config, mock_provider, mock_dispatcher, mock_location_stream, near_sighting):
        """An insert arriving right after a reconnect survives the resync."""
        store = WatchStore()
        session = AlertSession(
            config,
            store=store,
            location_provider=mock_provider,
            dispatcher=mock_dispatcher,
            location_stream=mock_location_stream,
            sighting_feed=SightingFeedAdapter(store, FAST_BACKOFF, health_check_interval=0.01),
        )
        mock_provider.get_current_position.side_effect = LocationUnavailableError("no fix")
        session.start()

        store.watches[0].is_active = False
        assert wait_for(lambda: len(store.watches) == 2)
        reconnected = store.watches[1]
        reconnected.on_initial([])
        reconnected.on_insert(near_sighting)

        result = session.handle_position(USER)
        session.stop()

        assert "near" in session.sightings
        assert [i.sighting_id for i in result.intents] == ["near"]


class TestErrors:
    """Tests for error handlers."""

    def test_location_permission_denied_degrades(self, session):
        session.handle_location_error(PermissionDeniedError("location"))

        assert session.location_available is False
        assert "permission denied" in session.errors[0]

    def test_no_alerts_from_stale_position_after_denial(self, session, near_sighting, mock_dispatcher):
        """Once location is off, inserts are stored but not evaluated."""
        session.position.set(USER)
        session.handle_location_error(PermissionDeniedError("location"))

        result = session.handle_insert(near_sighting)

        assert result.intents == []
        assert "near" in session.sightings
        mock_dispatcher.dispatch.assert_not_called()

    def test_feed_error_keeps_stale_set(self, session, near_sighting):
        session.sightings.replace_all([near_sighting])

        session.handle_feed_error(StoreError("gone"))

        assert session.feed_available is False
        assert len(session.sightings) == 1


class TestStop:
    """Tests for AlertSession.stop()."""

    def test_unsubscribes_and_closes_store(self, session, mock_store):
        session.start()
        subscriptions = list(session._subscriptions)

        session.stop()

        assert all(not s.active for s in subscriptions)
        mock_store.close.assert_called_once()

    def test_stop_is_idempotent(self, session, mock_store):
        session.start()

        session.stop()
        session.stop()

        mock_store.close.assert_called_once()

    def test_stop_without_start(self, session, mock_store):
        session.stop(close_store=False)
        mock_store.close.assert_not_called()


class TestDefaultClients:
    """Tests for client construction from config."""

    def test_builds_clients_from_config(self):
        config = Config(
            notification_webhook_url="https://notify.example.com",
            firestore_database="pets",
            firestore_collection="sightings",
        )
        with patch("petwatch.orchestrator.SightingStore") as MockStore, \
             patch("petwatch.orchestrator.HttpLocationProvider") as MockProvider, \
             patch("petwatch.orchestrator.NotificationClient") as MockClient:
            session = AlertSession(config)

        store_config = MockStore.call_args[0][0]
        assert store_config.database == "pets"
        assert store_config.collection == "sightings"
        MockProvider.assert_called_once()
        MockClient.assert_called_once_with("https://notify.example.com", timeout=10)
        assert session.sighting_feed.store is MockStore.return_value
