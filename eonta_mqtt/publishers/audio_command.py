"""
Audio Command Publisher
=======================

Bounded Context: Audio Command Production

Publishes AudioCommandMessage instances for an external audio renderer.

Message Flow:
    MqttAudioSink → AudioCommandMessage → AudioCommandPublisher → MQTT Broker
"""

from typing import Dict, Any, Optional
from .base import BasePublisher
from ..schemas import AudioCommandMessage
from ..logging import StructuredLogger, LogEvent


class AudioCommandPublisher(BasePublisher):
    """
    Publisher for audio commands.

    QoS 0 by default: commands are re-derived every position tick, so a
    lost one is superseded by the next.

    Example:
        >>> publisher = AudioCommandPublisher(
        ...     broker_host="localhost",
        ...     topic="eonta/audio/walk_01",
        ...     logger=logger
        ... )
        >>> publisher.connect()
        >>> publisher.publish_command(AudioCommandMessage.create(
        ...     "walk_01", AudioAction.SET_VOLUME, "fountain", volume=0.5
        ... ))
    """

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "eonta_audio_publisher",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0
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

    def format_message(self, command: AudioCommandMessage) -> Dict[str, Any]:
        """
        Format AudioCommandMessage to JSON-compatible dict.

        Raises:
            ValueError: If the command cannot be serialized
        """
        try:
            formatted = command.to_dict()
            self.logger.debug(
                event=LogEvent.AUDIO_COMMAND_SERIALIZED,
                message="Serialized audio command",
                metadata={'action': command.action.value, 'region_id': command.region_id}
            )
            return formatted

        except Exception as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize audio command",
                exc_info=e,
                metadata={'region_id': getattr(command, 'region_id', None)}
            )
            raise ValueError(f"Failed to format audio command: {e}")

    def publish_command(self, command: AudioCommandMessage) -> bool:
        """
        Publish one audio command.

        Returns:
            True if published successfully, False otherwise
        """
        try:
            return self.publish(self.format_message(command))
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing audio command",
                exc_info=e,
                metadata={'topic': self.topic}
            )
            return False
