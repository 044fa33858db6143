"""
Unit tests for GNSS fix classification.

Tests cover:
- Best fix status over constellations (priority and tie-break)
- Validity decision (veto signals, positive signals, range check)
- Scalar-only fix status
- Quality descriptions and information components
"""

import math

import pytest

from fieldtrack_core.proto import (
    PositioningReport,
    FixStatus,
    NmeaFixType,
    QualityIndicator,
    GnssConstellation,
    InformationComponent,
)
from fieldtrack_core.localization import (
    classify,
    best_fix_status,
    is_valid,
    fix_status,
    quality_description,
    component_value,
)

from conftest import make_report


class TestClassify:
    """Tests for classify()."""

    def test_empty_mapping_is_no_data(self):
        """Test that a report without constellation status is NO_DATA."""
        assert classify(PositioningReport()) == (FixStatus.NO_DATA, GnssConstellation.UNKNOWN)

    def test_fix_3d_wins_over_2d(self):
        """Test that a 3D fix beats a 2D fix regardless of order."""
        report = PositioningReport(constellation_fix_status={
            GnssConstellation.GPS: FixStatus.FIX_2D,
            GnssConstellation.GALILEO: FixStatus.FIX_3D,
            GnssConstellation.GLONASS: FixStatus.NO_FIX,
        })
        assert classify(report) == (FixStatus.FIX_3D, GnssConstellation.GALILEO)

    def test_fix_2d_wins_over_no_fix(self):
        """Test that a 2D fix beats NoFix."""
        report = PositioningReport(constellation_fix_status={
            GnssConstellation.GPS: FixStatus.NO_FIX,
            GnssConstellation.BEIDOU: FixStatus.FIX_2D,
        })
        assert classify(report) == (FixStatus.FIX_2D, GnssConstellation.BEIDOU)

    def test_no_fix_only(self):
        """Test that NoFix replaces the initial NO_DATA."""
        report = PositioningReport(constellation_fix_status={
            GnssConstellation.GLONASS: FixStatus.NO_FIX,
        })
        assert classify(report) == (FixStatus.NO_FIX, GnssConstellation.GLONASS)

    def test_no_data_entries_ignored(self):
        """Test that NO_DATA entries never become the best."""
        report = PositioningReport(constellation_fix_status={
            GnssConstellation.GPS: FixStatus.NO_DATA,
        })
        assert classify(report) == (FixStatus.NO_DATA, GnssConstellation.UNKNOWN)

    def test_tie_goes_to_lowest_ordinal(self):
        """Test deterministic tie-break independent of insertion order."""
        forward = PositioningReport(constellation_fix_status={
            GnssConstellation.GPS: FixStatus.FIX_3D,
            GnssConstellation.GALILEO: FixStatus.FIX_3D,
        })
        backward = PositioningReport(constellation_fix_status={
            GnssConstellation.GALILEO: FixStatus.FIX_3D,
            GnssConstellation.GPS: FixStatus.FIX_3D,
        })
        assert classify(forward) == (FixStatus.FIX_3D, GnssConstellation.GPS)
        assert classify(backward) == (FixStatus.FIX_3D, GnssConstellation.GPS)

    def test_alias(self):
        """Test best_fix_status is the same reduction."""
        assert best_fix_status is classify


class TestIsValid:
    """Tests for is_valid()."""

    def test_default_report_is_invalid(self):
        """Test that the neutral report is not a usable position."""
        assert not is_valid(PositioningReport.no_data())

    def test_valid_3d_report(self):
        """Test a fully consistent 3D fix."""
        assert is_valid(make_report(114.17, 22.29))

    def test_void_status_vetoes(self):
        """Test that status V makes the report invalid."""
        assert not is_valid(make_report(114.17, 22.29, status="V"))

    def test_best_no_fix_vetoes(self):
        """Test that a NoFix best constellation status vetoes validity."""
        report = make_report(
            114.17, 22.29,
            constellation_fix_status={GnssConstellation.GPS: FixStatus.NO_FIX},
        )
        assert not is_valid(report)

    def test_invalid_quality_vetoes(self):
        """Test that an INVALID quality indicator vetoes validity."""
        report = make_report(114.17, 22.29, quality_indicator=QualityIndicator.INVALID)
        assert not is_valid(report)

    def test_quality_alone_is_enough(self):
        """Test that a non-invalid quality indicator alone makes it valid."""
        report = PositioningReport(
            quality_indicator=QualityIndicator.RTK,
            longitude=10.0,
            latitude=50.0,
        )
        assert is_valid(report)

    def test_unknown_quality_counts_as_positive(self):
        """Test that an unmapped quality code is not a veto."""
        report = PositioningReport(
            quality_indicator=QualityIndicator.UNKNOWN,
            quality=9,
            longitude=10.0,
            latitude=50.0,
        )
        assert is_valid(report)

    @pytest.mark.parametrize("lon,lat", [
        (180.5, 0.0),
        (-181.0, 0.0),
        (0.0, 90.1),
        (0.0, -95.0),
    ])
    def test_out_of_range_coordinates_rejected(self, lon, lat):
        """Test the unconditional coordinate range check."""
        assert not is_valid(make_report(lon, lat))

    def test_range_boundaries_accepted(self):
        """Test that range bounds are inclusive."""
        assert is_valid(make_report(180.0, 90.0))
        assert is_valid(make_report(-180.0, -90.0))


class TestFixStatus:
    """Tests for scalar-only fix_status()."""

    def test_default_report_is_no_fix(self):
        """Test that never-received fields vote NoFix."""
        assert fix_status(PositioningReport()) == FixStatus.NO_FIX

    def test_void_status(self):
        report = make_report(status="V")
        assert fix_status(report) == FixStatus.NO_FIX

    def test_fix_type_2d(self):
        report = make_report(fix_type=NmeaFixType.FIX_2D)
        assert fix_status(report) == FixStatus.FIX_2D

    def test_fix_type_3d(self):
        report = make_report(status="", fix_type=NmeaFixType.FIX_3D)
        assert fix_status(report) == FixStatus.FIX_3D

    def test_ignores_constellation_map(self):
        """Test that the per-constellation map is not consulted."""
        report = make_report(
            constellation_fix_status={GnssConstellation.GPS: FixStatus.NO_FIX},
        )
        assert fix_status(report) == FixStatus.FIX_3D


class TestQualityDescription:
    """Tests for quality_description()."""

    @pytest.mark.parametrize("indicator,expected", [
        (QualityIndicator.GPS, "Autonomous"),
        (QualityIndicator.DGPS, "DGPS"),
        (QualityIndicator.RTK, "Fixed RTK"),
        (QualityIndicator.FLOAT_RTK, "Float RTK"),
        (QualityIndicator.INVALID, "Invalid"),
        (QualityIndicator.SIMULATION, "Simulation mode"),
    ])
    def test_known_labels(self, indicator, expected):
        assert quality_description(indicator) == expected

    def test_unknown_shows_raw_code(self):
        """Test that UNKNOWN shows the raw code."""
        assert quality_description(QualityIndicator.UNKNOWN, 9) == "Unknown (9)"

    def test_every_indicator_has_label(self):
        for indicator in QualityIndicator:
            assert quality_description(indicator)

    def test_not_an_indicator_raises(self):
        with pytest.raises(TypeError):
            quality_description(4)


class TestComponentValue:
    """Tests for component_value()."""

    def test_invalid_report_gives_none(self, invalid_report):
        assert component_value(invalid_report, InformationComponent.LOCATION) is None

    def test_report_components(self):
        report = make_report(114.17, 22.29, 5.0, speed=12.5, direction=270.0)
        assert component_value(report, InformationComponent.LOCATION) == (114.17, 22.29)
        assert component_value(report, InformationComponent.ALTITUDE) == 5.0
        assert component_value(report, InformationComponent.GROUND_SPEED) == 12.5
        assert component_value(report, InformationComponent.BEARING) == 270.0

    def test_nan_bearing_is_undefined(self):
        report = make_report(114.17, 22.29, direction=math.nan)
        assert component_value(report, InformationComponent.BEARING) is None

    def test_track_components_not_on_report(self, valid_report):
        assert component_value(valid_report, InformationComponent.TOTAL_TRACK_LENGTH) is None
        assert component_value(valid_report, InformationComponent.TRACK_DISTANCE_FROM_START) is None

    def test_bad_component_raises(self, valid_report):
        with pytest.raises(TypeError):
            component_value(valid_report, "altitude")
