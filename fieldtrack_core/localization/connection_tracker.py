"""
Receiver connection state tracking.

Owns the current understanding of one receiver session: last report, last
fix status and last known position. Raises change notifications only when
these values actually change.

The tracker is purely reactive: the transport delivers decoded reports to
on_report() and the tracker never retries or reconnects on its own.
"""

import logging
from enum import IntEnum
from typing import Optional

from fieldtrack_core.proto.positioning_report import (
    PositioningReport,
    GeoPoint,
    FixStatus,
    GnssConstellation,
)
from fieldtrack_core.io.signals import Signal
from fieldtrack_core.io.transport import Transport
from fieldtrack_core.metrics import get_metrics
from .fix_classifier import classify, is_valid

logger = logging.getLogger(__name__)


class ConnectionStatus(IntEnum):
    """Transport lifecycle as seen by the tracker."""

    NOT_CONNECTED = 0
    CONNECTED = 1
    DATA_RECEIVED = 2


class ConnectionStateTracker:
    """
    Fix status and position state machine for one receiver session.

    Signals:
        position_changed(GeoPoint): valid report moved the position
        fix_status_changed(FixStatus): best fix status changed
        state_changed(PositioningReport): any report was processed
        connected(): transport opened
        disconnected(): transport closed

    Usage:
        tracker = ConnectionStateTracker(transport)
        tracker.fix_status_changed.connect(on_fix)
        tracker.open()
        tracker.on_report(report)   # called for every decoded report
    """

    def __init__(self, transport: Optional[Transport] = None):
        """
        Initialize tracker.

        Args:
            transport: Receiver transport (may be set later via replace_source)
        """
        self._transport = transport
        self._status = ConnectionStatus.NOT_CONNECTED

        self._last_report = PositioningReport.no_data()
        self._last_fix_status = FixStatus.NO_DATA
        self._best_constellation = GnssConstellation.UNKNOWN
        self._last_position: Optional[GeoPoint] = None

        # Set while a report is being processed
        self._updating = False
        # Bumped by close() and clear(); a report in flight stops when it changes
        self._session = 0

        self.position_changed = Signal("position_changed")
        self.fix_status_changed = Signal("fix_status_changed")
        self.state_changed = Signal("state_changed")
        self.connected = Signal("connected")
        self.disconnected = Signal("disconnected")

        self.metrics = get_metrics()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def transport(self) -> Optional[Transport]:
        return self._transport

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def is_connected(self) -> bool:
        """True once the transport is open, until it is closed."""
        return self._status != ConnectionStatus.NOT_CONNECTED

    @property
    def last_report(self) -> PositioningReport:
        return self._last_report

    @property
    def current_fix_status(self) -> FixStatus:
        return self._last_fix_status

    @property
    def best_constellation(self) -> GnssConstellation:
        """Constellation that provided the current best fix status."""
        return self._best_constellation

    @property
    def last_position(self) -> Optional[GeoPoint]:
        """Last valid position in the geographic frame (None before the first)."""
        return self._last_position

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> bool:
        """
        Open the transport.

        Returns:
            True if the transport opened, False if there is no transport or
            it failed to open
        """
        if self._transport is None:
            logger.warning("No transport configured, cannot connect")
            return False

        opened = self._transport.open()
        if opened:
            self._status = ConnectionStatus.CONNECTED
            logger.info("Receiver connected")
            self.connected.emit()
        else:
            logger.warning("Receiver transport failed to open")
        return opened

    connect = open

    def close(self) -> bool:
        """
        Close the transport; the fix status drops to NO_DATA.

        Returns:
            False if there is no transport, True otherwise
        """
        if self._transport is None:
            return False

        self._transport.close()
        was_connected = self.is_connected
        self._status = ConnectionStatus.NOT_CONNECTED
        self._session += 1

        self._set_fix_status(FixStatus.NO_DATA, GnssConstellation.UNKNOWN)

        if was_connected:
            logger.info("Receiver disconnected")
            self.disconnected.emit()
        return True

    def replace_source(self, transport: Optional[Transport]) -> None:
        """
        Discard the current transport and adopt a new one.

        The old transport is closed, the fix status drops to NO_DATA and the
        connection state is reset to neutral values. The new transport is
        not opened.
        """
        if self._transport is not None:
            self._transport.close()
            if self.is_connected:
                self.disconnected.emit()
        self._status = ConnectionStatus.NOT_CONNECTED
        self._set_fix_status(FixStatus.NO_DATA, GnssConstellation.UNKNOWN)

        self._transport = transport
        self.clear()
        logger.info("Receiver source replaced")

    def clear(self) -> None:
        """
        Reset last report, fix status and position to neutral values.

        Listeners are told when the fix status drops to NO_DATA.
        """
        self._session += 1
        self._last_report = PositioningReport.no_data()
        self._last_position = None
        self._set_fix_status(FixStatus.NO_DATA, GnssConstellation.UNKNOWN)

    # ------------------------------------------------------------------
    # Report processing
    # ------------------------------------------------------------------

    def on_report(self, report: PositioningReport) -> None:
        """
        Process one decoded report.

        Runs for every report, valid or not: an invalid report does not move
        the position but can still change the fix status. A report delivered
        from inside one of this tracker's own listeners is ignored.
        """
        if self._updating:
            self.metrics.reject('reentrant_update')
            logger.debug("Nested report while updating, ignored")
            return

        self._updating = True
        try:
            self._process(report)
        finally:
            self._updating = False

    def _process(self, report: PositioningReport):
        session = self._session
        self.metrics.increment('reports_in')
        self._last_report = report
        if self._status == ConnectionStatus.CONNECTED:
            self._status = ConnectionStatus.DATA_RECEIVED

        if is_valid(report):
            self.metrics.increment('reports_valid')
            position = report.position
            if position != self._last_position:
                self._last_position = position
                self.metrics.increment('position_changes')
                self.position_changed.emit(position)
                if self._session != session:
                    logger.debug("Connection reset by a position listener, report abandoned")
                    return
        else:
            logger.debug(
                f"Invalid report: status={report.status!r} "
                f"quality={report.quality_indicator.name} "
                f"lon={report.longitude:.6f} lat={report.latitude:.6f}"
            )

        best_fix, constellation = classify(report)
        self._set_fix_status(best_fix, constellation)
        if self._session != session:
            logger.debug("Connection reset by a fix status listener, report abandoned")
            return

        self.state_changed.emit(report)

    def _set_fix_status(self, status: FixStatus, constellation: GnssConstellation):
        self._best_constellation = constellation
        if status == self._last_fix_status:
            return

        logger.info(f"Fix status {self._last_fix_status.name} -> {status.name}")
        self._last_fix_status = status
        self.metrics.increment('fix_status_changes')
        self.fix_status_changed.emit(status)
