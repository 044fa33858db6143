"""
Transport interface and decoded-report replay.

The physical transport (serial port, gpsd socket, Bluetooth) and the
sentence decoder live outside this package. The connection tracker only
needs the transport's lifecycle: open(), close() and whether it is open.

ReplayTransport stands in for "transport + decoder" when reports were
already decoded and stored, one JSON object per line.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Protocol, Union

from fieldtrack_core.proto.positioning_report import PositioningReport
from fieldtrack_core.metrics import get_metrics

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Lifecycle surface of a receiver transport."""

    @property
    def is_open(self) -> bool:
        ...

    def open(self) -> bool:
        ...

    def close(self) -> None:
        ...


class ReplayTransport:
    """
    Replays already-decoded positioning reports.

    Usage:
        transport = ReplayTransport.from_jsonl("session.jsonl")
        tracker = ConnectionStateTracker(transport)
        tracker.open()
        transport.replay(tracker.on_report)

    Opening fails (returns False) when the backing file is missing, like a
    serial device that is not plugged in.
    """

    def __init__(self, reports: Optional[Iterable[PositioningReport]] = None,
                 path: Optional[Union[str, Path]] = None):
        """
        Initialize replay transport.

        Args:
            reports: In-memory reports to replay
            path: JSON-lines file of report dictionaries (read on open)
        """
        self._reports: List[PositioningReport] = list(reports or [])
        self._path = Path(path) if path is not None else None
        self._open = False
        self.metrics = get_metrics()

    @classmethod
    def from_jsonl(cls, path: Union[str, Path]) -> "ReplayTransport":
        return cls(path=path)

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> bool:
        """Open the transport; loads the JSON-lines file if one was given."""
        if self._path is not None:
            if not self._path.exists():
                logger.warning(f"Replay file not found: {self._path}")
                return False
            self._reports = list(self._read_jsonl(self._path))

        self._open = True
        logger.info(f"Replay transport opened ({len(self._reports)} reports)")
        return True

    def close(self) -> None:
        if self._open:
            logger.info("Replay transport closed")
        self._open = False

    def replay(self, on_report) -> int:
        """
        Deliver every report to on_report, one at a time.

        Each call runs to completion before the next report is delivered.
        Stops early if the transport gets closed from a callback.

        Returns:
            Number of reports delivered
        """
        delivered = 0
        for report in self._reports:
            if not self._open:
                break
            on_report(report)
            delivered += 1
        return delivered

    def _read_jsonl(self, path: Path) -> Iterator[PositioningReport]:
        with path.open("r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                try:
                    yield PositioningReport.from_dict(json.loads(line))
                except (ValueError, TypeError, KeyError) as e:
                    self.metrics.reject('malformed_record')
                    raise ValueError(f"{path}:{line_no}: malformed report record: {e}") from e
