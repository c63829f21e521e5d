"""
Location Subscriber
===================

Bounded Context: Message Consumption

Receives position fixes and location errors from MQTT.

Design:
- Callback-based (handlers run in the paho network thread)
- Automatic deserialization with schema validation
- Invalid messages are logged and dropped, never raised

Message Flow:
    1. Subscriber receives JSON from MQTT
    2. Deserializes to LocationFix / LocationError
    3. Invokes the matching callback with the typed message

Example:
    >>> subscriber = LocationSubscriber(
    ...     broker_host="localhost",
    ...     fix_topic="eonta/location/walk_01/fix",
    ...     error_topic="eonta/location/walk_01/error",
    ...     on_fix=hub.publish_fix,
    ...     on_error=hub.publish_error,
    ...     logger=logger
    ... )
    >>> subscriber.connect()
    >>> subscriber.start()
    >>> # ...
    >>> subscriber.stop()
"""

import json
import threading
from typing import Any, Callable, Dict, Optional
import paho.mqtt.client as mqtt

from .schemas import LocationError, LocationFix
from .logging import StructuredLogger, LogEvent


class LocationSubscriber:
    """
    MQTT subscriber for location fixes and errors.

    Attributes:
        broker_host: MQTT broker hostname
        broker_port: MQTT broker port
        fix_topic: Topic carrying {lat, lng, accuracy, altitude?, timestamp}
        error_topic: Topic carrying {code, message?}
        on_fix: Callback for valid fixes
        on_error: Callback for provider errors

    Thread Safety:
        Thread-safe via paho-mqtt's loop_start() and threading.Event
    """

    def __init__(
        self,
        broker_host: str,
        fix_topic: str,
        error_topic: str,
        on_fix: Callable[[LocationFix], None],
        on_error: Callable[[LocationError], None],
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "eonta_location_subscriber",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0
    ):
        """
        Initialize MQTT subscriber.

        Design Note:
            Callbacks are invoked in the MQTT thread. The listener session
            serializes them with its own lock.
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.fix_topic = fix_topic
        self.error_topic = error_topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        self.on_fix = on_fix
        self.on_error = on_error

        self.client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id
        )
        if username and password:
            self.client.username_pw_set(username, password)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self._connected = threading.Event()
        self._running = False
        self._stats_lock = threading.Lock()
        self._message_count = {'fixes': 0, 'errors': 0, 'rejected': 0}

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        """Subscribe to both topics once connected."""
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Failed to connect to broker ({reason_code})",
                metadata={'broker': self.broker}
            )
            return

        client.subscribe(self.fix_topic, qos=self.qos)
        client.subscribe(self.error_topic, qos=self.qos)
        self._connected.set()

        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Connected to MQTT broker and subscribed to location topics",
            metadata={
                'broker': self.broker,
                'fix_topic': self.fix_topic,
                'error_topic': self.error_topic
            }
        )

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from MQTT broker",
            metadata={'broker': self.broker, 'reason_code': str(reason_code)}
        )

    def _on_message(self, client, userdata, msg: mqtt.MQTTMessage) -> None:
        """Decode JSON and route by topic."""
        if not self._running:
            return

        try:
            data = json.loads(msg.payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self._reject()
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Failed to decode JSON message",
                exc_info=e,
                metadata={'topic': msg.topic}
            )
            return

        if not isinstance(data, dict):
            self._reject()
            self.logger.warning(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message="Location message is not a JSON object",
                metadata={'topic': msg.topic}
            )
            return

        if msg.topic == self.fix_topic:
            self.handle_fix_message(data)
        elif msg.topic == self.error_topic:
            self.handle_error_message(data)
        else:
            self.logger.warning(
                event=LogEvent.DESERIALIZATION_ERROR,
                message=f"Received message from unknown topic: {msg.topic}"
            )

    def _reject(self) -> None:
        with self._stats_lock:
            self._message_count['rejected'] += 1

    def handle_fix_message(self, data: Dict[str, Any]) -> None:
        """Deserialize a fix and invoke ``on_fix``."""
        try:
            fix = LocationFix.from_dict(data)
        except ValueError as e:
            self._reject()
            self.logger.error(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message="Location fix failed schema validation",
                exc_info=e,
                metadata={'data': data}
            )
            return

        with self._stats_lock:
            self._message_count['fixes'] += 1

        self.logger.debug(
            event=LogEvent.LOCATION_FIX_RECEIVED,
            message="Received location fix",
            metadata={'lat': fix.lat, 'lng': fix.lng, 'accuracy': fix.accuracy}
        )

        try:
            self.on_fix(fix)
        except Exception as e:
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Error handling location fix",
                exc_info=e
            )

    def handle_error_message(self, data: Dict[str, Any]) -> None:
        """Deserialize a provider error and invoke ``on_error``."""
        try:
            error = LocationError.from_dict(data)
        except ValueError as e:
            self._reject()
            self.logger.error(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message="Location error message failed schema validation",
                exc_info=e,
                metadata={'data': data}
            )
            return

        with self._stats_lock:
            self._message_count['errors'] += 1

        self.logger.warning(
            event=LogEvent.LOCATION_ERROR_RECEIVED,
            message="Received location error",
            metadata=error.to_dict()
        )

        try:
            self.on_error(error)
        except Exception as e:
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Error handling location error",
                exc_info=e
            )

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect to MQTT broker and start the network loop.

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

    def start(self) -> None:
        """Begin delivering messages to the callbacks."""
        self._running = True
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Subscriber started (listening for fixes)",
            metadata={'fix_topic': self.fix_topic, 'error_topic': self.error_topic}
        )

    def stop(self) -> None:
        """Stop delivering messages and disconnect."""
        self._running = False
        self.client.loop_stop()
        self.client.disconnect()
        self._connected.clear()

        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Subscriber stopped",
            metadata=self.get_stats()
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def is_running(self) -> bool:
        return self._running

    def get_stats(self) -> Dict[str, Any]:
        """Message counts and connection status."""
        with self._stats_lock:
            return {
                'fixes_received': self._message_count['fixes'],
                'errors_received': self._message_count['errors'],
                'rejected': self._message_count['rejected'],
                'connected': self._connected.is_set(),
                'running': self._running,
                'fix_topic': self.fix_topic,
                'error_topic': self.error_topic,
                'broker': self.broker
            }
