"""
Field track configuration.
"""

# Vertex acquisition
ACQUISITION_CONFIG = {
    "enabled": True,              # False: every valid report becomes a vertex
    "interval_s": 0.0,            # Min seconds between vertices (0 = unused)
    "distance_m": 0.0,            # Min meters between vertices (0 = unused)
    "auto_add_vertices": True,    # Offer every report to the track
}

# Coordinate frames and ellipsoid
CRS_CONFIG = {
    "receiver_crs": "EPSG:4326",    # Frame positions arrive in
    "working_crs": "EPSG:4326",     # Frame of the live map
    "geographic_crs": "EPSG:4326",  # Frame vertices are stored in
    "ellipsoid": "WGS84",           # Length calculations
}

# Vertex timestamps
TIMESTAMP_CONFIG = {
    "apply_leap_seconds": False,
    "leap_seconds": 18,
    "time_spec": "utc",           # utc / local / offset / timezone
    "offset_from_utc_s": 0,
    "time_zone": "UTC",
}

# Replay
REPLAY_CONFIG = {
    "print_interval": 10,         # Print a status line every N reports
}

# Logging
LOGGING_CONFIG = {
    "level": "INFO",
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}
