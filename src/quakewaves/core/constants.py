"""Projection domain, motion defaults and feed endpoints."""

# Longitude domain mapped onto [0, width). The asymmetric range centres the
# map on the Pacific.
LON_MIN = -170.0
LON_MAX = 190.0

# Latitude domain mapped onto [height, 0) (screen y grows downward)
LAT_MIN = -55.0
LAT_MAX = 83.0

# Pixel colour that marks land in a background raster
LAND_SENTINEL_RGB = (0, 0, 0)

# Wave motion defaults (per tick)
WAVE_SPEED_X = 1.0
DEFAULT_DECAY_RATE = 0.001
DEFAULT_NOISE_SCALE = 0.01
DEFAULT_NOISE_OFFSET = 0.4

# Value noise layering
NOISE_OCTAVES = 4
NOISE_FALLOFF = 0.5
NOISE_LATTICE_SIZE = 256

# USGS earthquake feeds
USGS_BASE_URL = "https://earthquake.usgs.gov"
USGS_SUMMARY_PATH = "/earthquakes/feed/v1.0/summary/{feed}.geojson"
USGS_QUERY_PATH = "/fdsnws/event/1/query"
USGS_MONTH_FEED = "all_month"

# Earliest year accepted for a free date range
MIN_QUERY_YEAR = 1900

# Unit conversion
MILLIS_PER_SECOND = 1000
