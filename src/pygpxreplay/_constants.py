"""Internal constants shared across the library."""

DEFAULT_PROVIDER_ID = "gps"

# ------------------------------------------------------------------
# Enrichment
# ------------------------------------------------------------------

#: Heading/speed assigned to the first point of a session (no predecessor).
FIRST_POINT_HEADING: float = 0.0
FIRST_POINT_SPEED: float = 15.0

#: Planar distance (degrees) → speed scale.
SPEED_SCALE: float = 100_000.0

# ------------------------------------------------------------------
# Scheduling
# ------------------------------------------------------------------

#: Maximum number of repeat deliveries issued by one hold activation.
HOLD_QUEUE_SIZE = 100
DEFAULT_HOLD_INTERVAL: float = 1.0

#: Delay used for points whose recorded time is missing or unparseable.
DEFAULT_FALLBACK_DELAY: float = 2.0

DEFAULT_INGEST_CHUNK_SIZE = 256

# ------------------------------------------------------------------
# GPX
# ------------------------------------------------------------------

GPX_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
POINT_TAGS: frozenset[str] = frozenset({"trkpt"})
LEAF_TAGS: frozenset[str] = frozenset({"ele", "time", "sat", "fix"})
