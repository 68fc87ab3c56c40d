"""
Application constants and metadata.
"""

# Application info
APP_NAME = "HostPulse"
APP_VERSION = "0.1.0"

# Default values
DEFAULT_MQTT_PORT = 1883
DEFAULT_MQTT_KEEPALIVE = 60
DEFAULT_PUBLISH_INTERVAL = 10.0
DEFAULT_QOS = 1

# Collection defaults
DEFAULT_SETTLE_INTERVAL = 0.5
DEFAULT_PROBE_TIMEOUT = 2.0
DEFAULT_PROCESS_LIMIT = 10
DEFAULT_GPU_PROCESS_LIMIT = 5
DEFAULT_AMD_FAN_MAX_RPM = 3000

# sysfs locations
HWMON_PATH = "/sys/class/hwmon"
THERMAL_ZONE_TEMP = "/sys/class/thermal/thermal_zone0/temp"
DRM_CARD_PATH = "/sys/class/drm/card0"
POWER_SUPPLY_PATH = "/sys/class/power_supply"
