"""
MQTT client wrapper for talking to a ListenerSession.

Handles MQTT connection, publishing, and disconnection.
"""

import json
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt


class MQTTCommandClient:
    """
    One-shot MQTT publisher for control commands and simulated fixes.

    Commands go out with QoS 1, fixes with QoS 0.
    """

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None,
        client_id: str = "eonta_cli"
    ):
        self.broker = broker
        self.port = port

        self.client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id
        )

        if username and password:
            self.client.username_pw_set(username, password)

    def publish_json(self, topic: str, payload: Dict[str, Any], qos: int = 1) -> None:
        """
        Connect, publish ``payload`` as JSON, wait for delivery, disconnect.

        Raises:
            ConnectionError: If unable to connect to MQTT broker
            ValueError: If the payload is not JSON serializable
            RuntimeError: If publishing fails
        """
        try:
            message = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid payload: {e}")

        try:
            self.client.connect(self.broker, self.port, keepalive=60)
        except (ConnectionRefusedError, OSError) as e:
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}. "
                f"Is mosquitto running? ({e})"
            )

        try:
            self.client.loop_start()
            info = self.client.publish(topic, message, qos=qos)
            info.wait_for_publish(timeout=5.0)
            if not info.is_published():
                raise RuntimeError(f"Message to {topic} was not delivered")
        finally:
            self.client.loop_stop()
            self.client.disconnect()

    def send_command(self, topic: str, command: Dict[str, Any], qos: int = 1) -> None:
        """Send a control command (e.g. {"command": "status"})."""
        self.publish_json(topic, command, qos=qos)
        print(f"✅ Command sent: {command.get('command', 'unknown')}")

    def send_fix(self, topic: str, fix: Dict[str, Any], qos: int = 0) -> None:
        """Publish a simulated location fix."""
        self.publish_json(topic, fix, qos=qos)
        print(f"📍 Fix sent: {fix['lat']}, {fix['lng']}")
