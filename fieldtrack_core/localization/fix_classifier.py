"""
GNSS fix classification.

Reduces the possibly contradictory legacy (RMC status, GSA fix type) and
modern (per-constellation fix status, GGA quality indicator) signals of one
positioning report into a single fix status and a validity decision.

Two reductions are provided and both are kept on purpose:
- classify(): constellation-aware, consults only the per-constellation map
- fix_status(): scalar-only, consults status, fix type and quality indicator
"""

from typing import Optional, Tuple

from fieldtrack_core.proto.positioning_report import (
    PositioningReport,
    FixStatus,
    NmeaFixType,
    QualityIndicator,
    GnssConstellation,
    InformationComponent,
    STATUS_ACTIVE,
    STATUS_VOID,
)


QUALITY_DESCRIPTIONS = {
    QualityIndicator.SIMULATION: "Simulation mode",
    QualityIndicator.MANUAL: "Manual input mode",
    QualityIndicator.ESTIMATED: "Estimated",
    QualityIndicator.FLOAT_RTK: "Float RTK",
    QualityIndicator.RTK: "Fixed RTK",
    QualityIndicator.PPS: "PPS",
    QualityIndicator.DGPS: "DGPS",
    QualityIndicator.GPS: "Autonomous",
    QualityIndicator.INVALID: "Invalid",
}


def classify(report: PositioningReport) -> Tuple[FixStatus, GnssConstellation]:
    """
    Best fix status over all constellations in the report.

    Constellations are visited in ordinal order and an entry only replaces
    the current best when it is strictly better, so ties go to the
    constellation with the lowest ordinal.

    Args:
        report: Decoded positioning report

    Returns:
        (best_status, constellation); (NO_DATA, UNKNOWN) if the report
        carries no per-constellation status
    """
    best_status = FixStatus.NO_DATA
    best_constellation = GnssConstellation.UNKNOWN

    for constellation in sorted(report.constellation_fix_status):
        status = report.constellation_fix_status[constellation]
        if (
            (status == FixStatus.FIX_3D and best_status != FixStatus.FIX_3D)
            or (status == FixStatus.FIX_2D and best_status < FixStatus.FIX_2D)
            or (status == FixStatus.NO_FIX and best_status == FixStatus.NO_DATA)
        ):
            best_status = status
            best_constellation = constellation

    return best_status, best_constellation


best_fix_status = classify


def is_valid(report: PositioningReport) -> bool:
    """
    Decide whether the report's position is usable.

    A void status, a NoFix best constellation status or an INVALID quality
    indicator make the report invalid; otherwise any positive signal
    (active status, 2D/3D fix, a non-invalid quality) makes it valid.
    Coordinates outside their geographic range are always rejected.
    """
    best_fix, _ = classify(report)

    if (
        report.status == STATUS_VOID
        or best_fix == FixStatus.NO_FIX
        or report.quality_indicator == QualityIndicator.INVALID
    ):
        return False

    valid = (
        report.status == STATUS_ACTIVE
        or best_fix in (FixStatus.FIX_2D, FixStatus.FIX_3D)
        or report.quality_indicator != QualityIndicator.INVALID
    )

    return valid and report.has_coordinates_in_range


def fix_status(report: PositioningReport) -> FixStatus:
    """
    Scalar-only fix status from status, fix type and quality indicator.

    Does not consult the per-constellation map. Default field values are
    deliberately "bad" values, so a field whose sentence was never received
    counts as a NoFix vote.
    """
    if (
        report.status == STATUS_VOID
        or report.fix_type == NmeaFixType.BAD
        or report.quality_indicator == QualityIndicator.INVALID
    ):
        return FixStatus.NO_FIX

    if report.fix_type == NmeaFixType.FIX_2D:
        return FixStatus.FIX_2D

    if (
        report.status == STATUS_ACTIVE
        or report.fix_type == NmeaFixType.FIX_3D
        or report.quality_indicator != QualityIndicator.INVALID
    ):
        return FixStatus.FIX_3D

    return FixStatus.NO_DATA


def quality_description(indicator: QualityIndicator, raw_code: Optional[int] = None) -> str:
    """
    Human readable label for a quality indicator.

    Args:
        indicator: Quality indicator
        raw_code: Raw GGA quality code, shown for UNKNOWN indicators

    Returns:
        Label such as "Fixed RTK" or "Unknown (9)"

    Raises:
        TypeError: If indicator is not a QualityIndicator
    """
    if not isinstance(indicator, QualityIndicator):
        raise TypeError(f"Not a QualityIndicator: {indicator!r}")

    if indicator == QualityIndicator.UNKNOWN:
        return f"Unknown ({raw_code if raw_code is not None else int(indicator)})"

    return QUALITY_DESCRIPTIONS[indicator]


def component_value(report: PositioningReport, component: InformationComponent):
    """
    Read one information component off a report.

    Returns None for invalid reports, for an undefined bearing and for the
    track components, which a single report cannot answer.
    """
    if not is_valid(report):
        return None

    if component == InformationComponent.LOCATION:
        return (report.longitude, report.latitude)
    if component == InformationComponent.ALTITUDE:
        return report.elevation
    if component == InformationComponent.GROUND_SPEED:
        return report.speed
    if component == InformationComponent.BEARING:
        return report.direction
    if component in (
        InformationComponent.TOTAL_TRACK_LENGTH,
        InformationComponent.TRACK_DISTANCE_FROM_START,
    ):
        return None

    raise TypeError(f"Not an InformationComponent: {component!r}")
