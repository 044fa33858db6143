"""
Field Track Core Package.

GNSS fix classification and track accumulation for interactive field-mapping
tools: decide report by report whether a position is good enough to use, and
how the digitized track has grown.

Package structure:
- io: Transport interface and decoded-report replay
- proto: Positioning report schema and fix/quality enumerations
- localization: Fix classification, connection state, CRS transform, geodesic distances
- domain: Acquisition policy, settings snapshot, track accumulation
- metrics: Diagnostics, counters, histograms
"""

__version__ = "0.1.0"
__author__ = "Field Track Team"
