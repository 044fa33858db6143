"""
Field track replay.

Feeds a JSON-lines file of decoded positioning reports through the
connection tracker and the track accumulator, then prints the resulting
track summary (and optionally writes the track feature as JSON).
"""

import sys
import json
import signal
import logging
import argparse
from dataclasses import replace
from typing import Optional

from pyproj.exceptions import CRSError

import config
from fieldtrack_core.proto import FixStatus, GeoPoint
from fieldtrack_core.io import ReplayTransport
from fieldtrack_core.localization import ConnectionStateTracker, quality_description
from fieldtrack_core.domain import TrackAccumulator, TrackSettings
from fieldtrack_core.metrics import get_metrics

logging.basicConfig(
    level=getattr(logging, config.LOGGING_CONFIG["level"]),
    format=config.LOGGING_CONFIG["format"]
)
logger = logging.getLogger(__name__)


class FieldTrackReplay:
    """Replay session wiring transport, tracker and accumulator."""

    def __init__(self, path: str, settings: TrackSettings):
        """
        Initialize replay session.

        Args:
            path: JSON-lines file of decoded reports
            settings: Track settings snapshot
        """
        self.transport = ReplayTransport.from_jsonl(path)
        self.tracker = ConnectionStateTracker(self.transport)
        self.accumulator = TrackAccumulator(self.tracker, settings)
        self.metrics = get_metrics()

        self.position_count = 0
        self.print_interval = config.REPLAY_CONFIG["print_interval"]

        self.tracker.fix_status_changed.connect(self._on_fix_status_changed)
        self.tracker.position_changed.connect(self._on_position_changed)
        self.accumulator.track_is_empty_changed.connect(self._on_track_is_empty_changed)

        signal.signal(signal.SIGINT, self._signal_handler)

    def _signal_handler(self, signum, frame):
        logger.info(f"Received signal {signum}, stopping replay...")
        self.tracker.close()

    def _on_fix_status_changed(self, status: FixStatus):
        report = self.tracker.last_report
        print(f"[fix] {status.name} via {self.tracker.best_constellation.name} "
              f"({quality_description(report.quality_indicator, report.quality)})")

    def _on_position_changed(self, position: GeoPoint):
        self.position_count += 1
        if self.position_count % self.print_interval == 0:
            print(f"[pos] ({position.lon:.7f}, {position.lat:.7f}, {position.elevation:.2f}) "
                  f"track={self.accumulator.total_track_length:.2f}m "
                  f"vertices={len(self.accumulator.vertices)}")

    def _on_track_is_empty_changed(self, is_empty: bool):
        print(f"[track] {'empty' if is_empty else 'started'}")

    def run(self) -> bool:
        """
        Replay every report.

        Returns:
            False if the replay file could not be opened
        """
        if not self.tracker.open():
            logger.error("Could not open replay source")
            return False

        try:
            delivered = self.transport.replay(self.tracker.on_report)
            logger.info(f"Replayed {delivered} reports")
        finally:
            self.tracker.close()
        return True

    def print_summary(self):
        feature = self.accumulator.create_feature()
        print("\n" + "=" * 60)
        print("               Track summary")
        print("=" * 60)
        print(f"Vertices:               {len(feature.vertices)}")
        print(f"Total length:           {feature.total_length_m:.2f} m")
        print(f"Distance from start:    {feature.start_to_end_distance_m:.2f} m")
        if feature.start_time and feature.end_time:
            print(f"Time span:              {feature.start_time.isoformat()} -> "
                  f"{feature.end_time.isoformat()}")
        print("=" * 60)


def build_settings(args) -> TrackSettings:
    """Settings from config.py with command line overrides."""
    settings = TrackSettings.from_config(
        config.ACQUISITION_CONFIG, config.CRS_CONFIG, config.TIMESTAMP_CONFIG
    )

    acquisition = {}
    if args.interval is not None:
        acquisition["interval_s"] = args.interval
    if args.distance is not None:
        acquisition["distance_m"] = args.distance
    if args.no_acquisition:
        acquisition["enabled"] = False
    if acquisition:
        settings = settings.with_acquisition(**acquisition)

    if args.ellipsoid:
        settings = replace(settings, ellipsoid=args.ellipsoid)
    if args.receiver_crs:
        settings = replace(settings, receiver_crs=args.receiver_crs)
    if args.working_crs:
        settings = replace(settings, working_crs=args.working_crs)
    return settings


def main(argv: Optional[list] = None) -> int:
    """Entry point."""
    parser = argparse.ArgumentParser(description='Replay decoded GNSS reports into a track')
    parser.add_argument('reports', type=str,
                        help='JSON-lines file of decoded positioning reports')
    parser.add_argument('--interval', '-i', type=float, default=None,
                        help='Minimum seconds between vertices')
    parser.add_argument('--distance', '-D', type=float, default=None,
                        help='Minimum meters between vertices')
    parser.add_argument('--no-acquisition', action='store_true',
                        help='Accept every valid report as a vertex')
    parser.add_argument('--ellipsoid', '-e', type=str, default=None,
                        help='Ellipsoid for length calculations (e.g. WGS84, GRS80)')
    parser.add_argument('--receiver-crs', type=str, default=None,
                        help='CRS the report positions are expressed in')
    parser.add_argument('--working-crs', type=str, default=None,
                        help='CRS of the map the track is presented in')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help='Write the track feature as JSON to this file')
    parser.add_argument('--metrics', action='store_true',
                        help='Print metrics summary')
    parser.add_argument('--debug', '-d', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = build_settings(args)
        replay = FieldTrackReplay(args.reports, settings)
    except (ValueError, KeyError, CRSError) as e:
        logger.error(f"Invalid settings: {e}")
        return 2

    try:
        if not replay.run():
            return 1
    except ValueError as e:
        logger.error(str(e))
        return 2

    replay.print_summary()

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(replay.accumulator.create_feature().to_dict(), f, indent=2)
        logger.info(f"Track feature written to {args.output}")

    if args.metrics:
        get_metrics().print_summary()

    return 0


if __name__ == "__main__":
    sys.exit(main())
