"""Constants for the Valetudo integration."""
from __future__ import annotations

from enum import IntEnum

DOMAIN = "valetudo"

# Config entry data
CONF_HOST = "host"
CONF_NAME = "name"

# Options
CONF_POLL_INTERVAL = "poll_interval"
CONF_MAP_CACHE_REFRESH_HOURS = "map_cache_refresh_hours"
CONF_POSITION_TRACKING = "position_tracking"
CONF_CONSUMABLES_ENABLED = "consumables_enabled"
CONF_WARNING_THRESHOLD = "warning_threshold"
CONF_MAX_LIFETIME_MAIN_BRUSH = "max_lifetime_main_brush"
CONF_MAX_LIFETIME_SIDE_BRUSH = "max_lifetime_side_brush"
CONF_MAX_LIFETIME_DUST_FILTER = "max_lifetime_dust_filter"
CONF_MAX_LIFETIME_SENSOR = "max_lifetime_sensor"
CONF_MODE_VACUUM = "mode_vacuum"
CONF_MODE_MOP = "mode_mop"
CONF_MODE_VACUUM_AND_MOP = "mode_vacuum_and_mop"

# Per-intensity preset overrides, e.g. "quiet_fan_speed" / "quiet_water_usage"
INTENSITY_KEYS = ("auto", "quiet", "quick", "max")
CONF_FAN_SPEED_SUFFIX = "fan_speed"
CONF_WATER_USAGE_SUFFIX = "water_usage"

# Polling (milliseconds)
DEFAULT_POLL_INTERVAL_MS = 30000
MIN_POLL_INTERVAL_MS = 5000
MAX_POLL_INTERVAL_MS = 60000

# Startup pacing (seconds)
INITIAL_POLL_DELAY = 10.0
POLL_STAGGER_PER_DEVICE = 1.0

# Downstream write pacing (seconds)
PUBLISH_PACING_DELAY = 0.2
POSITION_SETTLE_DELAY = 0.5
IDENTIFY_CALL_SPACING = 0.3

# Map cache (hours)
DEFAULT_MAP_CACHE_REFRESH_HOURS = 1.0
MIN_MAP_CACHE_REFRESH_HOURS = 0.1
MAX_MAP_CACHE_REFRESH_HOURS = 24.0

# Request timeouts (seconds)
DEFAULT_REQUEST_TIMEOUT = 10
FULL_MAP_TIMEOUT = 60

# Consumables
CONSUMABLES_CHECK_INTERVAL = 5 * 60  # seconds
DEFAULT_WARNING_THRESHOLD = 10
DEFAULT_MAX_LIFETIMES: dict[str, int] = {
    "mainBrush": 18000,
    "sideBrush": 12000,
    "dustFilter": 9000,
    "sensor": 1800,
}
FALLBACK_MAX_LIFETIME = 10000

# Default operation mode names per clean-mode category
DEFAULT_MODE_VACUUM = "vacuum"
DEFAULT_MODE_MOP = "mop"
DEFAULT_MODE_VACUUM_AND_MOP = "vacuum_and_mop"

# Valetudo capabilities
CAP_BASIC_CONTROL = "BasicControlCapability"
CAP_FAN_SPEED = "FanSpeedControlCapability"
CAP_WATER_USAGE = "WaterUsageControlCapability"
CAP_OPERATION_MODE = "OperationModeControlCapability"
CAP_MAP_SEGMENTATION = "MapSegmentationCapability"
CAP_MAPPING_PASS = "MappingPassCapability"
CAP_CONSUMABLES = "ConsumableMonitoringCapability"
CAP_LOCATE = "LocateCapability"

# Downstream clusters/attributes
CLUSTER_POWER_SOURCE = "PowerSource"
CLUSTER_OPERATIONAL_STATE = "RvcOperationalState"
CLUSTER_RUN_MODE = "RvcRunMode"
CLUSTER_CLEAN_MODE = "RvcCleanMode"
CLUSTER_SERVICE_AREA = "ServiceArea"
CLUSTER_BOOLEAN_STATE = "BooleanState"

ATTR_BAT_PERCENT_REMAINING = "batPercentRemaining"
ATTR_BAT_CHARGE_STATE = "batChargeState"
ATTR_OPERATIONAL_STATE = "operationalState"
ATTR_CURRENT_MODE = "currentMode"
ATTR_CURRENT_AREA = "currentArea"
ATTR_STATE_VALUE = "stateValue"


class OperationalState(IntEnum):
    """RVC operational states."""

    STOPPED = 0x00
    RUNNING = 0x01
    PAUSED = 0x02
    ERROR = 0x03
    SEEKING_CHARGER = 0x40
    CHARGING = 0x41
    DOCKED = 0x42


class RunMode(IntEnum):
    """RVC run modes."""

    IDLE = 1
    CLEANING = 2
    MAPPING = 3


class BatteryChargeState(IntEnum):
    """Power source charge states."""

    UNKNOWN = 0
    CHARGING = 1
    CHARGED = 2
    NOT_CHARGING = 3


class CleanModeTag(IntEnum):
    """RVC clean mode tags."""

    AUTO = 0
    QUICK = 1
    QUIET = 2
    LOW_NOISE = 3
    LOW_ENERGY = 4
    VACATION = 5
    MIN = 6
    MAX = 7
    NIGHT = 8
    DAY = 9
    DEEP_CLEAN = 16384
    VACUUM = 16385
    MOP = 16386


# Clean-mode numeric bands
VACUUM_AND_MOP_BASE = 5
VACUUM_AND_MOP_MAX = 9
MOP_BASE = 31
MOP_MAX = 42
VACUUM_BASE = 66
VACUUM_MAX = 70

OPERATIONAL_STATE_LABELS: dict[OperationalState, str] = {
    OperationalState.STOPPED: "Stopped",
    OperationalState.RUNNING: "Running",
    OperationalState.PAUSED: "Paused",
    OperationalState.ERROR: "Error",
    OperationalState.SEEKING_CHARGER: "Seeking charger",
    OperationalState.CHARGING: "Charging",
    OperationalState.DOCKED: "Docked",
}

RUN_MODE_LABELS: dict[RunMode, str] = {
    RunMode.IDLE: "Idle",
    RunMode.CLEANING: "Cleaning",
    RunMode.MAPPING: "Mapping",
}

BATTERY_CHARGE_STATE_LABELS: dict[BatteryChargeState, str] = {
    BatteryChargeState.UNKNOWN: "Unknown",
    BatteryChargeState.CHARGING: "Charging",
    BatteryChargeState.CHARGED: "Charged",
    BatteryChargeState.NOT_CHARGING: "Not charging",
}
