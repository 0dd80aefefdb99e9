# Ballistics
TRUE_MOA_INCHES_AT_100_YARDS = 1.047
DEFAULT_DISTANCE_YARDS = 100.0
DEFAULT_CLICK_VALUE_MOA = 0.25
DEFAULT_DEADBAND_INCHES = 0.0
CLICK_DECIMALS = 2

# Target paper
DEFAULT_TARGET_SIZE = "8.5x11"

# Thresholding (0=black..255=white)
FIXED_THRESHOLD = 128
ADAPTIVE_OFFSET = 40.0
ADAPTIVE_MIN_THRESHOLD = 40.0
ADAPTIVE_MAX_THRESHOLD = 200.0

# Connected components
DEFAULT_CONNECTIVITY = 8
# Components larger than this many times MAX_HOLE_AREA are flagged oversized
OVERSIZE_AREA_FACTOR = 8

# Hole classification (pixels)
MIN_HOLE_AREA = 12
MAX_HOLE_AREA = 2500
MAX_ASPECT_RATIO = 2.5

# Exclusion zones
BORDER_MARGIN_INCHES = 0.25
CROSSHAIR_HALF_WIDTH_INCHES = 0.08
HEADER_FRACTION = 0.0
FOOTER_FRACTION = 0.0
FIDUCIAL_ZONE_INCHES = 0.6

# Frame location
BORDER_DENSITY_THRESHOLD = 0.5
MIN_BORDER_FRACTION = 0.2
ASPECT_TOLERANCE = 0.12
CROSSHAIR_BAND_FRACTION = 0.5
FIDUCIAL_INSET_INCHES = 0.5
FIDUCIAL_MAX_ASPECT_RATIO = 1.5
FIDUCIAL_MIN_AREA = 20
FIDUCIAL_MIN_FILL = 0.6
MAX_INTERIOR_DARK_FRACTION = 0.5

# Shot group selection
DEFAULT_MIN_SHOTS = 1
DEFAULT_MAX_SHOTS = 7
RECOMMENDED_MIN_SHOTS = 3
CLUSTER_MIN_K = 3
CLUSTER_GROWTH_LIMIT = 2.5

# Image bounds
MIN_IMAGE_DIMENSION = 32
MAX_IMAGE_DIMENSION = 4000
TARGET_RESOLUTION = 1600
MAX_PIXELS = 16_000_000

# Concurrency
DEFAULT_MAX_CONCURRENCY = 4
