"""
HostPulse - hardware snapshot agent.

Collects CPU, memory, disk, network, GPU, sensor, battery and process
telemetry into one normalized snapshot and publishes it over MQTT.
"""

from .const import APP_VERSION

__version__ = APP_VERSION
