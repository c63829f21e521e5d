"""
Recording Publisher
===================

Bounded Context: Composition Generation Hand-off

Hands a finalized path recording to the composition generator over MQTT.

Design:
- QoS 1 (at-least-once): a recording is produced once per walk
- generate() satisfies the CompositionGenerator contract and raises on
  failure so the recorder can report GENERATION_FAILED

Message Flow:
    PathRecorder.stop_recording() → RecordingPublisher.generate() → MQTT → Generator
"""

from typing import Dict, Any, Optional
from .base import BasePublisher
from ..logging import StructuredLogger, LogEvent


class RecordingHandoffError(RuntimeError):
    """Raised when a recording could not be handed to the broker."""
    pass


class RecordingPublisher(BasePublisher):
    """
    Publisher for finalized path recordings.

    Accepts any recording object exposing ``to_dict()`` and
    ``composition_id`` (eonta_capture.PathRecording).
    """

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "eonta_recording_publisher",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1
    ):
        super().__init__(
            broker_host=broker_host,
            broker_port=broker_port,
            topic=topic,
            client_id=client_id,
            logger=logger,
            username=username,
            password=password,
            qos=qos
        )

    def format_message(self, recording: Any) -> Dict[str, Any]:
        """
        Format a recording to its wire layout.

        Raises:
            ValueError: If the recording cannot be serialized
        """
        try:
            return recording.to_dict()
        except Exception as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize path recording",
                exc_info=e,
                metadata={'composition_id': getattr(recording, 'composition_id', None)}
            )
            raise ValueError(f"Failed to format path recording: {e}")

    def publish_recording(self, recording: Any) -> bool:
        """
        Publish a recording.

        Returns:
            True if published successfully, False otherwise
        """
        try:
            return self.publish(self.format_message(recording))
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing path recording",
                exc_info=e,
                metadata={'topic': self.topic}
            )
            return False

    def generate(self, recording: Any) -> Dict[str, Any]:
        """
        Hand ``recording`` off for composition generation.

        Returns:
            Hand-off receipt (topic, composition id, point count)

        Raises:
            RecordingHandoffError: If the recording was not published
        """
        if not self.publish_recording(recording):
            raise RecordingHandoffError(
                f"Recording '{getattr(recording, 'composition_id', None)}' "
                f"could not be published to {self.topic}"
            )

        receipt = {
            'topic': self.topic,
            'composition_id': recording.composition_id,
            'points': len(recording.path),
        }
        self.logger.info(
            event=LogEvent.RECORDING_SUBMITTED,
            message="Recording handed off for composition generation",
            metadata=receipt
        )
        return receipt
