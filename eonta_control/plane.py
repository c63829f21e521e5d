"""
MQTTControlPlane - remote control of a ListenerSession

Bounded Context: MQTT connection management + command reception
Responsibilities:
  - MQTT connection lifecycle (connect, disconnect)
  - Command reception on the command topic
  - Replies and plane status on the control status topic
  - Command delegation to CommandRegistry

QoS Policy:
  - Commands: QoS 1 (at-least-once delivery)
  - Plane status: QoS 1 + retained (last status persisted)
  - Command replies: QoS 1, not retained

Threading:
  - MQTT client runs its own background thread (loop_start/loop_stop)
  - Command handlers run in the MQTT thread (keep them fast!)
"""

import json
import logging
from datetime import datetime, timezone
from threading import Event
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .registry import CommandRegistry, CommandNotAvailableError

logger = logging.getLogger(__name__)


class MQTTControlPlane:
    """
    MQTT Control Plane for receiving commands and publishing replies.

    Command payload:
        {"command": "start_recording", "composition_id": "c1", "request_id": "..."}

    Reply payload (status topic):
        {"status": "reply", "command": "...", "ok": true, "result": {...},
         "request_id": "...", "timestamp": "...", "client_id": "..."}

    Example:
        control_plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            command_topic="eonta/listener-01/control/commands",
            status_topic="eonta/listener-01/control/status",
            client_id="eonta_listener-01_control"
        )
        control_plane.command_registry.register('status', session.status_command, "Recorder status")

        if control_plane.connect(timeout=5.0):
            print("Connected to MQTT broker")

        control_plane.disconnect()
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        command_topic: str,
        status_topic: str,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        registry: Optional[CommandRegistry] = None,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.command_topic = command_topic
        self.status_topic = status_topic
        self.client_id = client_id

        self.client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv311,
        )
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect

        if username and password:
            self.client.username_pw_set(username, password)

        self._connected = Event()
        self._running = False

        self.command_registry = registry or CommandRegistry()

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    def connect(self, timeout: float = 5.0) -> bool:
        """
        Connect to MQTT broker with timeout.

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            logger.info(f"🔌 Connecting control plane to {self.broker_host}:{self.broker_port}")
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
            self.client.loop_start()
            self._running = True

            if self._connected.wait(timeout=timeout):
                logger.info("✅ MQTT Control Plane connected")
                return True

            logger.error(f"❌ Connection timeout after {timeout}s")
            return False

        except Exception as e:
            logger.error(f"❌ Error connecting to MQTT: {e}")
            return False

    def disconnect(self) -> None:
        """Disconnect from MQTT broker. Safe to call multiple times."""
        if self._running:
            logger.info("🔌 Disconnecting control plane")
            self.publish_status("disconnected")
            self.client.loop_stop()
            self.client.disconnect()
            self._running = False
            self._connected.clear()
            logger.info("✅ MQTT Control Plane disconnected")

    def _envelope(self, status: str, **fields) -> Dict[str, Any]:
        return {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "client_id": self.client_id,
            **fields,
        }

    def publish_status(self, status: str) -> None:
        """Publish a retained plane status ("connected", "disconnected")."""
        try:
            self.client.publish(
                self.status_topic,
                json.dumps(self._envelope(status)),
                qos=1,
                retain=True,
            )
            logger.debug(f"📤 Status published: {status}")
        except Exception as e:
            logger.error(f"❌ Error publishing status: {e}")

    def publish_reply(
        self,
        command: str,
        ok: bool,
        result: Any = None,
        error: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Publish the outcome of one command. Returns the payload sent."""
        reply = self._envelope("reply", command=command, ok=ok)
        if result is not None:
            reply["result"] = result
        if error is not None:
            reply["error"] = error
        if request_id is not None:
            reply["request_id"] = request_id

        try:
            self.client.publish(self.status_topic, json.dumps(reply, default=str), qos=1)
            logger.debug(f"📤 Reply published for '{command}'")
        except Exception as e:
            logger.error(f"❌ Error publishing reply: {e}")
        return reply

    def handle_command(self, command_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Dispatch one decoded command payload and publish the reply.

        Returns:
            The reply payload, or None if the payload carried no command
        """
        command = str(command_data.get('command', '')).strip().lower()
        request_id = command_data.get('request_id')

        if not command:
            logger.warning("⚠️ Empty command received")
            return None

        logger.info(f"🎯 Executing command: {command}")

        try:
            result = self.command_registry.execute(command, command_data)
            logger.debug(f"✅ Command '{command}' executed successfully")
            return self.publish_reply(command, ok=True, result=result, request_id=request_id)

        except CommandNotAvailableError as e:
            logger.warning(f"⚠️ {e}")
            return self.publish_reply(command, ok=False, error=str(e), request_id=request_id)

        except Exception as e:
            logger.error(f"❌ Command '{command}' failed: {e}", exc_info=True)
            return self.publish_reply(command, ok=False, error=str(e), request_id=request_id)

    # ===== MQTT Callbacks (run in MQTT thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error(f"❌ Connection failed ({reason_code})")
            self._connected.clear()
            return

        logger.info(f"✅ Connected to broker ({reason_code})")
        client.subscribe(self.command_topic, qos=1)
        logger.info(f"📥 Subscribed to: {self.command_topic} (QoS 1)")
        self.publish_status("connected")
        self._connected.set()

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.warning(f"⚠️ Unexpected disconnection ({reason_code})")
        else:
            logger.info("✅ Disconnected from broker")
        self._connected.clear()

    def _on_message(self, client, userdata, msg):
        try:
            payload = msg.payload.decode('utf-8')
            logger.debug(f"📦 Command received: {payload}")
            command_data = json.loads(payload)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"❌ Error decoding command: {msg.payload!r} ({e})")
            return

        if not isinstance(command_data, dict):
            logger.warning(f"⚠️ Command payload must be a JSON object, got {type(command_data).__name__}")
            return

        self.handle_command(command_data)
