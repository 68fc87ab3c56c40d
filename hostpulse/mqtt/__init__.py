"""
MQTT publishing.
"""

from .client import MQTTClient, build_topic, encode_payload

__all__ = [
    "MQTTClient",
    "build_topic",
    "encode_payload",
]
