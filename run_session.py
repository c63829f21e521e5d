#!/usr/bin/env python3
"""
Listener Session - Entry Point
==============================

This script starts one EONTA listener session, which:
- Receives location fixes (and location errors) over MQTT
- Drives the transition engine (region entry/exit, crossfades)
- Publishes audio commands for the listener's audio renderer
- Records the listener's path on request and submits it for composition
- Responds to control commands via the MQTT control plane

Usage:
    uv run python run_session.py --config config/eonta_session/session_config.yaml

Architecture:
    - ListenerSession: Engine + recorder + location hub (eonta_session)
    - MQTTControlPlane: Command handler (eonta_control)
    - LocationSubscriber: Fix/error topics -> LocationHub (eonta_mqtt)
    - AudioCommandPublisher / StatusPublisher / RecordingPublisher (eonta_mqtt)

Lifecycle:
    1. Load configuration from YAML
    2. Setup logging (console + file)
    3. Create publishers, control plane and location subscriber
    4. Create ListenerSession and register its commands
    5. Connect everything and start delivering fixes
    6. Wait for stop signal (Ctrl+C or SIGTERM)
    7. Graceful shutdown (in-progress recording is submitted)

Logs:
    - Console: INFO level
    - File: logs/session.log (INFO level)
"""

import argparse
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import List, Optional

from eonta_control import MQTTControlPlane
from eonta_mqtt import (
    AudioCommandPublisher,
    BasePublisher,
    LocationSubscriber,
    RecordingPublisher,
    StatusPublisher,
    create_logger,
)
from eonta_session import ListenerSession, SessionConfig
from eonta_transition import MqttAudioSink


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None) -> logging.Logger:
    """
    Setup logging for the session runner.

    Args:
        log_file: Optional path to log file (default: logs/session.log)
    """
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            *(
                [logging.FileHandler(log_file)]
                if log_file
                else []
            )
        ]
    )

    return logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Main Service
# ─────────────────────────────────────────────────────────────────────────────

class SessionApp:
    """
    Main application wrapper for ListenerSession.

    Handles:
    - Configuration loading
    - Component initialization (publishers, subscriber, control plane)
    - Signal handling (SIGTERM, SIGINT)
    - Graceful shutdown
    """

    def __init__(self, config_path: Path, log_file: Optional[Path] = None):
        self.config_path = config_path
        self.log_file = log_file
        self.logger = setup_logging(log_file)

        # Components (initialized in setup())
        self.config: Optional[SessionConfig] = None
        self.control_plane: Optional[MQTTControlPlane] = None
        self.subscriber: Optional[LocationSubscriber] = None
        self.publishers: List[BasePublisher] = []
        self.session: Optional[ListenerSession] = None

        self._shutdown_requested = False
        self._stop_event = threading.Event()

    def setup(self):
        """
        Setup all components.

        Steps:
        1. Load configuration from YAML
        2. Create publishers (audio, status, recording)
        3. Create ListenerSession
        4. Create control plane and register commands
        5. Create location subscriber feeding the session hub
        """
        self.logger.info("=" * 80)
        self.logger.info("🚀 EONTA Listener Session - Starting")
        self.logger.info("=" * 80)

        # 1. Load configuration
        self.logger.info(f"📄 Loading configuration: {self.config_path}")
        self.config = SessionConfig.from_yaml(self.config_path)
        self.logger.info(f"✅ Configuration loaded (service_id={self.config.service_id})")

        mqtt_config = self.config.mqtt_config
        service_id = self.config.service_id
        topics = self.config.topics
        mqtt_logger = create_logger(component="mqtt")

        # 2. Create publishers
        self.logger.info("📤 Creating MQTT publishers")
        audio_publisher = AudioCommandPublisher(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            topic=topics['audio'],
            logger=mqtt_logger,
            client_id=f"eonta_{service_id}_audio",
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )
        status_publisher = StatusPublisher(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            topic=topics['status'],
            logger=mqtt_logger,
            client_id=f"eonta_{service_id}_status",
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )
        recording_publisher = RecordingPublisher(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            topic=topics['recording'],
            logger=mqtt_logger,
            client_id=f"eonta_{service_id}_recording",
            username=mqtt_config.username,
            password=mqtt_config.password,
        )
        self.publishers = [audio_publisher, status_publisher, recording_publisher]

        for name in ('audio', 'status', 'recording'):
            self.logger.info(f"  - {name} topic: {topics[name]}")
        self.logger.info("✅ Publishers created")

        # 3. Create session
        self.logger.info("🏗️  Creating listener session")
        self.session = ListenerSession(
            config=self.config,
            audio_sink=MqttAudioSink(service_id, audio_publisher),
            composition_generator=recording_publisher,
            status_listener=status_publisher.publish_status,
        )
        self.logger.info("✅ Session created")

        # 4. Control plane
        self.logger.info("🔌 Creating MQTT control plane")
        self.control_plane = MQTTControlPlane(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            command_topic=topics['command'],
            status_topic=topics['control_status'],
            client_id=f"eonta_{service_id}_control",
            username=mqtt_config.username,
            password=mqtt_config.password,
        )
        self.session.register_commands(self.control_plane.command_registry)
        self.logger.info("✅ Control plane created")

        # 5. Location subscriber
        self.subscriber = LocationSubscriber(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            fix_topic=topics['fix'],
            error_topic=topics['error'],
            on_fix=self.session.hub.publish_fix,
            on_error=self.session.hub.publish_error,
            logger=create_logger(component="location"),
            client_id=f"eonta_{service_id}_location",
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )
        self.logger.info(f"  - fix topic: {topics['fix']}")
        self.logger.info(f"  - error topic: {topics['error']}")

        self.logger.info("=" * 80)

    def run(self):
        """
        Connect, start and block until shutdown is requested.
        """
        if not self.session:
            raise RuntimeError("Session not initialized. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            for publisher in self.publishers:
                if not publisher.connect():
                    raise RuntimeError(f"Publisher {publisher.client_id} could not connect")

            if not self.control_plane.connect(timeout=5.0):
                raise RuntimeError("Control plane could not connect")

            self.session.start()

            if not self.subscriber.connect():
                raise RuntimeError("Location subscriber could not connect")
            self.subscriber.start()

            self.logger.info("✅ Session started successfully")
            self.logger.info("Press Ctrl+C to stop")
            self.logger.info("=" * 80)

            self._stop_event.wait()

        except KeyboardInterrupt:
            self.logger.info("\n⚠️  KeyboardInterrupt received")
            self.shutdown()

        except Exception as e:
            self.logger.error(f"❌ Session error: {e}", exc_info=True)
            self.shutdown()
            sys.exit(1)

    def shutdown(self):
        """
        Graceful shutdown of all components.

        Order:
        1. Stop location delivery
        2. Stop session (submits an in-progress recording, fades out audio)
        3. Disconnect control plane and publishers
        """
        if self._shutdown_requested:
            self.logger.warning("⚠️  Shutdown already in progress")
            return

        self._shutdown_requested = True

        self.logger.info("=" * 80)
        self.logger.info("🛑 Shutting down listener session")
        self.logger.info("=" * 80)

        if self.subscriber:
            try:
                self.subscriber.stop()
                self.logger.info("✅ Location subscriber stopped")
            except Exception as e:
                self.logger.error(f"❌ Error stopping location subscriber: {e}")

        if self.session:
            try:
                result = self.session.stop()
                if result is not None:
                    self.logger.info(f"✅ Recording finalized: {result.outcome.value}")
                self.logger.info("✅ Session stopped")
            except Exception as e:
                self.logger.error(f"❌ Error stopping session: {e}")

        if self.control_plane:
            try:
                self.control_plane.disconnect()
                self.logger.info("✅ Control plane disconnected")
            except Exception as e:
                self.logger.error(f"❌ Error disconnecting control plane: {e}")

        for publisher in self.publishers:
            try:
                publisher.disconnect()
            except Exception as e:
                self.logger.error(f"❌ Error disconnecting {publisher.client_id}: {e}")

        self._stop_event.set()

        self.logger.info("=" * 80)
        self.logger.info("✅ Shutdown complete")
        self.logger.info("=" * 80)

    def _signal_handler(self, signum, frame):
        signal_name = signal.Signals(signum).name
        self.logger.info(f"\n⚠️  Received signal {signal_name} ({signum})")
        self.shutdown()
        sys.exit(0)


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args():
    parser = argparse.ArgumentParser(
        description="EONTA Listener Session - location-triggered audio over MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start with default config
  uv run python run_session.py --config config/eonta_session/session_config.yaml

  # Custom log file
  uv run python run_session.py --config config/eonta_session/session_config.yaml --log-file logs/walk.log

  # Console only
  uv run python run_session.py --config config/eonta_session/session_config.yaml --no-log-file
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        required=True,
        help='Path to session configuration YAML file'
    )

    parser.add_argument(
        '--log-file',
        type=Path,
        default=Path('logs/session.log'),
        help='Path to log file (default: logs/session.log)'
    )

    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Disable file logging (console only)'
    )

    return parser.parse_args()


def main():
    args = parse_args()

    log_file = None if args.no_log_file else args.log_file

    if not args.config.exists():
        print(f"❌ Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    app = SessionApp(
        config_path=args.config,
        log_file=log_file
    )

    try:
        app.setup()
        app.run()
    except Exception as e:
        print(f"❌ Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
