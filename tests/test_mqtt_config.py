"""
Tests for MQTT retain behavior and payload encoding.
"""

import json

from hostpulse.config.loader import ConfigLoader
from hostpulse.config.schema import MQTTConfig, RetainMode
from hostpulse.mqtt.client import MQTTClient, build_topic, encode_payload


def test_retain_defaults_to_full() -> None:
    config = MQTTConfig()

    assert config.should_retain_data() is True
    assert config.should_retain_status() is True


def test_retain_online_only_retains_status() -> None:
    config = MQTTConfig(retain=RetainMode.ONLINE)

    assert config.should_retain_data() is False
    assert config.should_retain_status() is True


def test_retain_off() -> None:
    config = MQTTConfig(retain=RetainMode.OFF)

    assert config.should_retain_data() is False
    assert config.should_retain_status() is False


def test_retain_accepts_booleans() -> None:
    config = ConfigLoader().load_string("mqtt { retain off; }")

    assert config.mqtt.retain is RetainMode.OFF


def test_encode_payload() -> None:
    assert encode_payload("online") == "online"
    assert encode_payload(True) == "true"
    assert encode_payload(False) == "false"
    assert encode_payload(42) == "42"
    assert encode_payload(1.5) == "1.5"
    assert json.loads(encode_payload({"a": [1, None]})) == {"a": [1, None]}
    assert encode_payload(None) == "null"


def test_build_topic() -> None:
    assert build_topic("hostpulse", "snapshot") == "hostpulse/snapshot"
    assert build_topic("home/hosts/", "/status") == "home/hosts/status"


def test_publish_queues_with_config_defaults() -> None:
    client = MQTTClient(MQTTConfig(qos=0, retain=RetainMode.ONLINE), queue_size=1)

    assert client.availability_topic == "hostpulse/status"
    assert client.publish("hostpulse/snapshot", {"x": 1}) is True
    assert client.queued == 1
    # Queue full: dropped, not raised
    assert client.publish("hostpulse/snapshot", {"x": 2}) is False
    assert client.queued == 1
