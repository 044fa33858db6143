"""
Unit tests for ConnectionStateTracker.

Tests cover:
- Open/close lifecycle and connection status
- Change-only notifications for position and fix status
- Invalid reports updating fix status without moving position
- Source replacement and neutral state
- Suppression of nested reports from listeners
- Listeners that close or replace the source mid-report
"""

import pytest

from fieldtrack_core.proto import (
    PositioningReport,
    GeoPoint,
    FixStatus,
    GnssConstellation,
)
from fieldtrack_core.io import ReplayTransport
from fieldtrack_core.localization import ConnectionStateTracker, ConnectionStatus
from fieldtrack_core.metrics import get_metrics

from conftest import make_report


class FailingTransport:
    """Transport whose device is never there."""

    is_open = False

    def open(self) -> bool:
        return False

    def close(self) -> None:
        pass


@pytest.fixture
def tracker() -> ConnectionStateTracker:
    """Opened tracker on an empty in-memory transport."""
    tracker = ConnectionStateTracker(ReplayTransport())
    assert tracker.open()
    return tracker


def record(signal):
    """Connect a recorder to a signal and return its call list."""
    calls = []
    signal.connect(lambda *args: calls.append(args))
    return calls


class TestLifecycle:
    """Tests for open/close."""

    def test_initial_state(self):
        tracker = ConnectionStateTracker()

        assert tracker.status == ConnectionStatus.NOT_CONNECTED
        assert not tracker.is_connected
        assert tracker.current_fix_status == FixStatus.NO_DATA
        assert tracker.best_constellation == GnssConstellation.UNKNOWN
        assert tracker.last_position is None
        assert tracker.last_report == PositioningReport.no_data()

    def test_open_without_transport(self):
        assert not ConnectionStateTracker().open()

    def test_close_without_transport(self):
        assert not ConnectionStateTracker().close()

    def test_open_failure(self):
        tracker = ConnectionStateTracker(FailingTransport())
        connected = record(tracker.connected)

        assert not tracker.open()
        assert not tracker.is_connected
        assert connected == []

    def test_open_and_first_data(self, valid_report):
        tracker = ConnectionStateTracker(ReplayTransport())
        connected = record(tracker.connected)

        assert tracker.connect()
        assert tracker.status == ConnectionStatus.CONNECTED
        assert len(connected) == 1

        tracker.on_report(valid_report)
        assert tracker.status == ConnectionStatus.DATA_RECEIVED
        assert tracker.is_connected

    def test_close_drops_fix_status(self, tracker, valid_report):
        tracker.on_report(valid_report)
        fixes = record(tracker.fix_status_changed)
        disconnected = record(tracker.disconnected)

        assert tracker.close()

        assert tracker.status == ConnectionStatus.NOT_CONNECTED
        assert tracker.current_fix_status == FixStatus.NO_DATA
        assert fixes == [(FixStatus.NO_DATA,)]
        assert len(disconnected) == 1
        assert not tracker.transport.is_open

    def test_close_at_no_data_does_not_notify(self, tracker):
        fixes = record(tracker.fix_status_changed)
        tracker.close()
        assert fixes == []


class TestReportProcessing:
    """Tests for on_report()."""

    def test_valid_report_moves_position(self, tracker, valid_report):
        positions = record(tracker.position_changed)
        fixes = record(tracker.fix_status_changed)

        tracker.on_report(valid_report)

        assert positions == [(GeoPoint(114.17, 22.29, 5.0),)]
        assert fixes == [(FixStatus.FIX_3D,)]
        assert tracker.best_constellation == GnssConstellation.GPS
        assert tracker.last_position == GeoPoint(114.17, 22.29, 5.0)

    def test_identical_reports_notify_once(self, tracker, valid_report):
        positions = record(tracker.position_changed)
        fixes = record(tracker.fix_status_changed)
        states = record(tracker.state_changed)

        tracker.on_report(valid_report)
        tracker.on_report(make_report(114.17, 22.29, 5.0))

        assert len(positions) == 1
        assert len(fixes) == 1
        assert len(states) == 2

    def test_invalid_report_keeps_position(self, tracker, valid_report, invalid_report):
        tracker.on_report(valid_report)
        positions = record(tracker.position_changed)
        fixes = record(tracker.fix_status_changed)

        tracker.on_report(invalid_report)

        assert positions == []
        assert fixes == [(FixStatus.NO_FIX,)]
        assert tracker.last_position == GeoPoint(114.17, 22.29, 5.0)
        assert tracker.last_report is invalid_report

    def test_elevation_change_is_position_change(self, tracker):
        positions = record(tracker.position_changed)

        tracker.on_report(make_report(1.0, 2.0, 10.0))
        tracker.on_report(make_report(1.0, 2.0, 11.0))

        assert len(positions) == 2

    def test_metrics_counted(self, tracker, valid_report, invalid_report):
        tracker.on_report(valid_report)
        tracker.on_report(invalid_report)

        metrics = get_metrics()
        assert metrics.get_counter('reports_in') == 2
        assert metrics.get_counter('reports_valid') == 1
        assert metrics.get_counter('fix_status_changes') == 2

    def test_listener_exception_propagates(self, tracker, valid_report):
        def boom(_):
            raise RuntimeError("listener failed")

        tracker.position_changed.connect(boom)
        with pytest.raises(RuntimeError):
            tracker.on_report(valid_report)

        # The guard is released afterwards
        tracker.position_changed.disconnect(boom)
        tracker.on_report(make_report(2.0, 2.0))
        assert tracker.last_position == GeoPoint(2.0, 2.0, 0.0)

    def test_nested_report_ignored(self, tracker, valid_report):
        nested = make_report(50.0, 50.0)

        def feed_back(_):
            tracker.on_report(nested)

        tracker.state_changed.connect(feed_back)
        tracker.on_report(valid_report)

        assert tracker.last_report is valid_report
        assert get_metrics().rejection_count('reentrant_update') == 1


class TestReplaceSource:
    """Tests for replace_source() and clear()."""

    def test_replace_source_resets_state(self, tracker, valid_report):
        old_transport = tracker.transport
        tracker.on_report(valid_report)
        disconnected = record(tracker.disconnected)
        fixes = record(tracker.fix_status_changed)

        new_transport = ReplayTransport()
        tracker.replace_source(new_transport)

        assert tracker.transport is new_transport
        assert not old_transport.is_open
        assert not new_transport.is_open
        assert tracker.status == ConnectionStatus.NOT_CONNECTED
        assert tracker.last_position is None
        assert tracker.last_report == PositioningReport.no_data()
        assert fixes == [(FixStatus.NO_DATA,)]
        assert len(disconnected) == 1

    def test_clear(self, tracker, valid_report):
        tracker.on_report(valid_report)
        fixes = record(tracker.fix_status_changed)

        tracker.clear()

        assert tracker.current_fix_status == FixStatus.NO_DATA
        assert tracker.best_constellation == GnssConstellation.UNKNOWN
        assert tracker.last_position is None
        assert fixes == [(FixStatus.NO_DATA,)]

    def test_clear_twice_notifies_once(self, tracker, valid_report):
        tracker.on_report(valid_report)
        fixes = record(tracker.fix_status_changed)

        tracker.clear()
        tracker.clear()
        tracker.on_report(PositioningReport.no_data())

        assert fixes == [(FixStatus.NO_DATA,)]
        assert fixes[-1][0] == tracker.current_fix_status


class TestResetFromListener:
    """Tests for listeners that close or replace the source mid-report."""

    def test_close_from_position_listener(self, tracker, valid_report):
        states = record(tracker.state_changed)
        fixes = record(tracker.fix_status_changed)
        tracker.position_changed.connect(lambda _: tracker.close())

        tracker.on_report(valid_report)

        assert not tracker.is_connected
        assert tracker.current_fix_status == FixStatus.NO_DATA
        assert tracker.best_constellation == GnssConstellation.UNKNOWN
        assert fixes == []
        assert states == []

    def test_replace_source_from_fix_listener(self, tracker, valid_report):
        states = record(tracker.state_changed)
        new_transport = ReplayTransport()

        def swap(status):
            if status == FixStatus.FIX_3D:
                tracker.replace_source(new_transport)

        tracker.fix_status_changed.connect(swap)
        tracker.on_report(valid_report)

        assert tracker.transport is new_transport
        assert tracker.current_fix_status == FixStatus.NO_DATA
        assert tracker.last_report == PositioningReport.no_data()
        assert tracker.last_position is None
        assert states == []

    def test_next_report_after_reset_is_processed(self, tracker, valid_report):
        def closer(_):
            tracker.close()

        tracker.position_changed.connect(closer)
        tracker.on_report(valid_report)
        tracker.position_changed.disconnect(closer)

        assert tracker.open()
        tracker.on_report(make_report(1.0, 1.0))

        assert tracker.current_fix_status == FixStatus.FIX_3D
        assert tracker.last_position == GeoPoint(1.0, 1.0, 0.0)
