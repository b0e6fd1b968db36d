"""Race and playback constants shared by the replay engine."""

SECONDS_PER_MINUTE = 60
SECONDS_PER_HOUR = 3600

# Gap estimation
DEFAULT_SPEED_KMH = 40.0
MIN_SPEED_KMH = 10.0
MIN_TIME_FOR_SPEED_SECONDS = 3
GROUP_GAP_THRESHOLD_SECONDS = 5

# Used when no rider has any distance telemetry
FALLBACK_TOTAL_DISTANCE_KM = 42

MAX_POSITION = 200

# Playback
PLAYBACK_SPEEDS: tuple[int, ...] = (1, 5, 10, 30)
DEFAULT_PLAYBACK_SPEED = 10

# Power comparison chart
CHART_WINDOW_SECONDS = 600
CHART_SAMPLE_STEP_SECONDS = 10

ELEVATION_MAX_POINTS = 300

LEAD_GROUP_NAME = "Lead Group"
