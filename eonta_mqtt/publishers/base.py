"""
Base MQTT Publisher
==================

Bounded Context: MQTT Infrastructure

Abstract base class for EONTA MQTT publishers.

Design:
- Connection management (connect, disconnect)
- QoS 0 by default (audio commands, status); QoS 1 for hand-offs
- Thread-safe (paho-mqtt network loop + stats lock)
- Structured logging integration

Architecture:
    BasePublisher (abstract)
        ↓
    AudioCommandPublisher, StatusPublisher, RecordingPublisher (concrete)

Responsibilities:
- MQTT connection lifecycle
- Message publishing to broker
- Error handling and logging
- NOT responsible for: Message formatting (delegated to subclasses)
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
import paho.mqtt.client as mqtt

from ..logging import StructuredLogger, LogEvent


class BasePublisher(ABC):
    """
    Abstract base class for MQTT publishers.

    Subclasses implement format_message() for message-specific logic.
    ``publish`` never raises: failures are logged and reported as False.

    Attributes:
        broker_host: MQTT broker hostname
        broker_port: MQTT broker port
        topic: MQTT topic to publish to
        client_id: MQTT client identifier
        qos: Quality of Service
        logger: Structured logger instance

    Thread Safety:
        Thread-safe via paho-mqtt's loop_start() and threading.Event
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        topic: str,
        client_id: str,
        logger: StructuredLogger,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0
    ):
        """
        Initialize MQTT publisher.

        Args:
            broker_host: MQTT broker hostname
            broker_port: MQTT broker port
            topic: Topic to publish to
            client_id: Unique client identifier
            logger: Structured logger for observability
            username: MQTT authentication username (optional)
            password: MQTT authentication password (optional)
            qos: Quality of Service (0=fire-and-forget, 1=at-least-once)
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        # MQTT client setup
        self.client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id
        )
        if username and password:
            self.client.username_pw_set(username, password)

        # Callbacks
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        # Connection state
        self._connected = threading.Event()
        self._message_count = 0
        self._failed_count = 0
        self._stats_lock = threading.Lock()

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        """Callback when connection established."""
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Failed to connect to broker ({reason_code})",
                metadata={'broker': self.broker}
            )
            return

        self._connected.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Connected to MQTT broker",
            metadata={
                'broker': self.broker,
                'client_id': self.client_id,
                'topic': self.topic
            }
        )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        """Callback when disconnected from broker."""
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from MQTT broker",
            metadata={
                'broker': self.broker,
                'reason_code': str(reason_code)
            }
        )

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect to MQTT broker.

        Args:
            timeout: Connection timeout in seconds

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            self.client.connect(self.broker_host, self.broker_port)
            self.client.loop_start()

            if self._connected.wait(timeout=timeout):
                return True

            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Connection timeout",
                metadata={'timeout': timeout, 'broker': self.broker}
            )
            return False

        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Failed to connect to broker",
                exc_info=e,
                metadata={'broker': self.broker}
            )
            return False

    def disconnect(self) -> None:
        """Stop the network loop and disconnect the client."""
        try:
            self.client.loop_stop()
            self.client.disconnect()
            self._connected.clear()
            self.logger.info(
                event=LogEvent.MQTT_DISCONNECTED,
                message="Disconnected from broker",
                metadata={'message_count': self._message_count, 'topic': self.topic}
            )
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Error during disconnect",
                exc_info=e
            )

    def is_connected(self) -> bool:
        """Check if currently connected to broker."""
        return self._connected.is_set()

    @abstractmethod
    def format_message(self, *args, **kwargs) -> Dict[str, Any]:
        """
        Format message for publication.

        Returns:
            Dictionary ready for JSON serialization
        """
        raise NotImplementedError("Subclasses must implement format_message()")

    def _record_failure(self) -> None:
        with self._stats_lock:
            self._failed_count += 1

    def publish(
        self,
        message_data: Dict[str, Any],
        retain: bool = False
    ) -> bool:
        """
        Publish a pre-formatted message to the broker.

        Args:
            message_data: Message dictionary (already formatted)
            retain: MQTT retain flag (default: False)

        Returns:
            True if published successfully, False otherwise
        """
        if not self._connected.is_set():
            self._record_failure()
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Cannot publish: not connected to broker",
                metadata={'topic': self.topic}
            )
            return False

        try:
            json_message = json.dumps(message_data)

            result = self.client.publish(
                topic=self.topic,
                payload=json_message,
                qos=self.qos,
                retain=retain
            )

            if result.rc != mqtt.MQTT_ERR_SUCCESS:
                self._record_failure()
                self.logger.warning(
                    event=LogEvent.MQTT_PUBLISH_FAILED,
                    message=f"Publish failed (rc={result.rc})",
                    metadata={'topic': self.topic}
                )
                return False

            with self._stats_lock:
                self._message_count += 1
                count = self._message_count

            self.logger.debug(
                event=LogEvent.MQTT_PUBLISH_SUCCESS,
                message="Published message",
                metadata={'topic': self.topic, 'message_count': count, 'qos': self.qos}
            )
            return True

        except Exception as e:
            self._record_failure()
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing message",
                exc_info=e,
                metadata={'topic': self.topic}
            )
            return False

    def get_stats(self) -> Dict[str, Any]:
        """
        Get publisher statistics.

        Returns:
            Dictionary with message counts and connection status
        """
        with self._stats_lock:
            return {
                'message_count': self._message_count,
                'failed_count': self._failed_count,
                'connected': self._connected.is_set(),
                'topic': self.topic,
                'broker': self.broker
            }
