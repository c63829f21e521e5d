"""
Status Publisher
================

Bounded Context: Recording Status Production

Publishes StatusMessage instances for UIs observing a listener session.

Message Flow:
    PathRecorder → StatusMessage → StatusPublisher → MQTT Broker → UI
"""

from typing import Dict, Any, Optional
from .base import BasePublisher
from ..schemas import StatusMessage
from ..logging import StructuredLogger, LogEvent


class StatusPublisher(BasePublisher):
    """
    Publisher for recording status events.

    Example:
        >>> publisher = StatusPublisher(
        ...     broker_host="localhost",
        ...     topic="eonta/status/walk_01",
        ...     logger=logger
        ... )
        >>> recorder.add_status_listener(publisher.publish_status)
    """

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "eonta_status_publisher",
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

    def format_message(self, status: StatusMessage) -> Dict[str, Any]:
        """
        Format StatusMessage to JSON-compatible dict.

        Raises:
            ValueError: If the message cannot be serialized
        """
        try:
            return status.to_dict()
        except Exception as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize status message",
                exc_info=e
            )
            raise ValueError(f"Failed to format status message: {e}")

    def publish_status(self, status: StatusMessage) -> bool:
        """
        Publish one status event.

        Returns:
            True if published successfully, False otherwise
        """
        try:
            return self.publish(self.format_message(status))
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing status message",
                exc_info=e,
                metadata={'topic': self.topic}
            )
            return False
