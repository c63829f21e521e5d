"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

Typed event names for structured logging across the listener session.

Design:
- Enum-based (typos fail at import, not in the log aggregator)
- Hierarchical naming (namespace.category.action)

Event Naming Convention:
    <component>.<category>.<action>

    component: mqtt, transition, capture, location, error
    category: region, recording, fix
    action: entered, exited, started, stopped

Example Log Query (Loki):
    {component="transition"} | json | event = "transition.region.entered"
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - mqtt.*: MQTT broker interactions
    - transition.*: Region entry/exit and parameter automation
    - capture.*: Path recording lifecycle
    - location.*: Position fixes and provider errors
    - control.*: Remote commands
    - error.*: Error conditions
    """

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message successfully published to broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication failed."""

    # ========== Transition Events ==========
    REGION_ENTERED = "transition.region.entered"
    """Listener moved inside a region's transition radius."""

    REGION_EXITED = "transition.region.exited"
    """Listener left a region's transition radius; fade-out issued."""

    REGION_UPDATED = "transition.region.updated"
    """Volume or effect parameters re-sent for an active region."""

    CROSSFADE_APPLIED = "transition.crossfade.applied"
    """Crossfade volumes computed for overlapping regions."""

    TRANSITION_RESET = "transition.reset"
    """All active regions faded out."""

    AUDIO_COMMAND_SERIALIZED = "transition.command.serialized"
    """Audio command message serialized to JSON."""

    # ========== Capture Events ==========
    RECORDING_STARTED = "capture.recording.started"
    """Path recording started."""

    RECORDING_STOPPED = "capture.recording.stopped"
    """Path recording stopped (outcome in metadata)."""

    RECORDING_SUBMITTED = "capture.recording.submitted"
    """Recording handed off to the composition generator."""

    RECORDING_MAX_DURATION = "capture.recording.max_duration"
    """Recording auto-stopped at the maximum duration."""

    POSITION_CAPTURED = "capture.position.captured"
    """Position appended to the recording path."""

    POSITION_FILTERED = "capture.position.filtered"
    """Position dropped (too close to the previous point)."""

    # ========== Location Events ==========
    LOCATION_FIX_RECEIVED = "location.fix.received"
    """Position fix received from the provider."""

    LOCATION_ERROR_RECEIVED = "location.error.received"
    """Provider reported a location error."""

    # ========== Error Events ==========
    SERIALIZATION_ERROR = "error.serialization"
    """Failed to serialize message to JSON."""

    DESERIALIZATION_ERROR = "error.deserialization"
    """Failed to deserialize message from JSON."""

    SCHEMA_VALIDATION_ERROR = "error.schema_validation"
    """Message failed schema validation."""

    INVALID_INPUT = "error.invalid_input"
    """Position, region or audio data rejected."""

    AUDIO_SINK_ERROR = "error.audio_sink"
    """Audio sink raised while handling a command."""

    GENERATION_ERROR = "error.generation"
    """Composition generator raised during hand-off."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Error during message publication."""


# Event categories for filtering
MQTT_EVENTS = {
    LogEvent.MQTT_CONNECTED,
    LogEvent.MQTT_DISCONNECTED,
    LogEvent.MQTT_PUBLISH_SUCCESS,
    LogEvent.MQTT_PUBLISH_FAILED,
}

TRANSITION_EVENTS = {
    LogEvent.REGION_ENTERED,
    LogEvent.REGION_EXITED,
    LogEvent.REGION_UPDATED,
    LogEvent.CROSSFADE_APPLIED,
    LogEvent.TRANSITION_RESET,
    LogEvent.AUDIO_COMMAND_SERIALIZED,
}

CAPTURE_EVENTS = {
    LogEvent.RECORDING_STARTED,
    LogEvent.RECORDING_STOPPED,
    LogEvent.RECORDING_SUBMITTED,
    LogEvent.RECORDING_MAX_DURATION,
    LogEvent.POSITION_CAPTURED,
    LogEvent.POSITION_FILTERED,
}

ERROR_EVENTS = {
    LogEvent.SERIALIZATION_ERROR,
    LogEvent.DESERIALIZATION_ERROR,
    LogEvent.SCHEMA_VALIDATION_ERROR,
    LogEvent.INVALID_INPUT,
    LogEvent.AUDIO_SINK_ERROR,
    LogEvent.GENERATION_ERROR,
    LogEvent.MQTT_CONNECTION_ERROR,
    LogEvent.MQTT_PUBLISH_ERROR,
}
