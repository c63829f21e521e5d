"""
EONTA CLI - Main entry point.

Command-line interface for a listener session:
  - remote control over MQTT (start / stop recording, status)
  - simulated location fixes over MQTT
  - offline tools: probe positions against a session config, inspect a
    recorded path
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from eonta_capture import PathRecording, format_duration
from eonta_geo import distance_to_boundary_edge, point_in_polygon
from eonta_mqtt.logging import create_logger
from eonta_session.config import MQTTConfig, SessionConfig
from eonta_transition import TransitionEngine, entry_progress

from .mqtt_client import MQTTCommandClient


class DryRunSink:
    """AudioSink that prints commands instead of playing anything."""

    def __init__(self):
        self.commands: List[Tuple[str, str, Any]] = []
        self._active: Dict[str, Dict[str, Any]] = {}

    def _record(self, action: str, region_id: str, detail: Any) -> bool:
        self.commands.append((action, region_id, detail))
        print(f"    🔊 {action:<14} {region_id:<20} {detail}")
        return True

    def play_audio(self, region_id: str, url: str, options: Dict[str, Any]) -> bool:
        self._active[region_id] = {'id': region_id, 'volume': options.get('volume', 1.0),
                                   'effects': dict(options.get('effects') or {})}
        return self._record('play', region_id, options)

    def stop_audio(self, region_id: str, fade_out_seconds: float = 0.0) -> bool:
        self._active.pop(region_id, None)
        return self._record('stop', region_id, {'fade_out': fade_out_seconds})

    def fade_out_audio(self, region_id: str, duration_seconds: float) -> bool:
        self._active.pop(region_id, None)
        return self._record('fade_out', region_id, {'duration': duration_seconds})

    def set_volume(self, region_id: str, volume: float) -> bool:
        if region_id in self._active:
            self._active[region_id]['volume'] = volume
        return self._record('set_volume', region_id, round(volume, 4))

    def apply_effect(self, region_id: str, effect_type: str, params: Dict[str, Any]) -> bool:
        if region_id in self._active:
            self._active[region_id]['effects'][effect_type] = dict(params)
        return self._record('apply_effect', region_id, {effect_type: params})

    def get_active_audio(self) -> List[Dict[str, Any]]:
        return [dict(a) for a in self._active.values()]


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load a YAML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")


def parse_point(raw: str) -> Tuple[float, float]:
    """Parse "lat,lng"."""
    try:
        lat, lng = (float(part) for part in raw.split(','))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected 'lat,lng', got {raw!r}")
    return lat, lng


def resolve_topics(args: argparse.Namespace) -> Dict[str, str]:
    """Topics from --config if given, else the default templates."""
    if args.config:
        config = SessionConfig.from_yaml(args.config)
        return config.topics
    return MQTTConfig(broker=args.broker, port=args.port).topics(args.service_id)


def send_command(args: argparse.Namespace, command: Dict[str, Any]) -> None:
    topics = resolve_topics(args)
    client = MQTTCommandClient(broker=args.broker, port=args.port)
    client.send_command(topics['command'], command, qos=1)


def send_fix(args: argparse.Namespace) -> None:
    topics = resolve_topics(args)
    lat, lng = args.point
    fix = {
        'lat': lat,
        'lng': lng,
        'accuracy': args.accuracy,
        'timestamp': time.time() * 1000.0,
    }
    client = MQTTCommandClient(broker=args.broker, port=args.port)
    client.send_fix(topics['fix'], fix)


def probe(config_path: str, points: List[Tuple[float, float]]) -> None:
    """Walk ``points`` through a dry-run engine, printing every command."""
    config = SessionConfig.from_yaml(config_path)
    regions = config.build_regions()
    sink = DryRunSink()
    engine = TransitionEngine(
        regions,
        sink=sink,
        logger=create_logger("cli", level=logging.WARNING),
        projection=config.projection,
    )

    print(f"📄 {config.service_id}: {len(regions)} regions ({config.projection.value})")
    for lat, lng in points:
        print(f"\n📍 {lat}, {lng}")
        for region in regions:
            distance = distance_to_boundary_edge((lat, lng), region.polygon, config.projection)
            inside = point_in_polygon((lat, lng), region.polygon, config.projection)
            progress = entry_progress(distance, region.transition_radius)
            print(
                f"  {region.id:<20} inside={str(inside):<5} "
                f"edge={distance:>10.2f}  progress={progress:.3f}"
            )
        result = engine.update((lat, lng))
        if not result.changed:
            print("    (no audio changes)")


def inspect_recording(path: str) -> None:
    """Print stats for a recording JSON file."""
    with open(path) as f:
        recording = PathRecording.from_dict(json.load(f))

    validation = recording.validate_path()
    stats = recording.stats()

    print(f"🎼 Composition:  {recording.composition_id}")
    print(f"⏱️  Duration:     {format_duration(recording.duration)}")
    print(f"📍 Points:       {stats['points']}")
    print(f"🔊 Snapshots:    {stats['audio_events']}")
    print(f"📏 Distance:     {stats['total_distance_m']:.1f} m")
    print(f"🚶 Avg speed:    {stats['average_speed_mps']:.2f} m/s")
    print(f"🗺️  Regions:      {stats['unique_regions_visited']}")
    if validation.valid:
        print("✅ Path is valid")
    else:
        print(f"⚠️  {validation.message}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eonta-cli",
        description="EONTA CLI - control a listener session and inspect its data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Remote control
  eonta-cli start comp-7
  eonta-cli stop
  eonta-cli --service-id listener-02 status
  eonta-cli send config/commands/start_recording.yaml

  # Simulate the listener's phone
  eonta-cli send-fix 40.4166,-3.7038 --accuracy 4

  # Offline
  eonta-cli probe config/eonta_session/session_config.yaml 40.4150,-3.7040 40.4165,-3.7038
  eonta-cli inspect recordings/comp-7.json
"""
    )

    # Global arguments
    parser.add_argument(
        "--service-id",
        default="listener-01",
        help="Target service ID (default: listener-01)"
    )
    parser.add_argument(
        "--broker",
        default="localhost",
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=1883,
        help="MQTT broker port (default: 1883)"
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Session config YAML to read topics from"
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    start = subparsers.add_parser('start', help='Start recording the listener path')
    start.add_argument('composition_id', help='Composition being experienced')

    subparsers.add_parser('stop', help='Stop recording and submit the path')
    subparsers.add_parser('status', help='Query session status')

    send = subparsers.add_parser('send', help='Send a command payload from YAML')
    send.add_argument('payload', help='Path to command YAML (must contain "command")')

    fix = subparsers.add_parser('send-fix', help='Publish a simulated location fix')
    fix.add_argument('point', type=parse_point, help='Position as lat,lng')
    fix.add_argument('--accuracy', type=float, default=5.0, help='Accuracy in meters')

    probe_cmd = subparsers.add_parser('probe', help='Dry-run positions against a session config')
    probe_cmd.add_argument('session_config', help='Path to session config YAML')
    probe_cmd.add_argument('points', nargs='+', type=parse_point, help='Positions as lat,lng')

    inspect_cmd = subparsers.add_parser('inspect', help='Show stats for a recording JSON file')
    inspect_cmd.add_argument('recording', help='Path to recording JSON')

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == 'start':
            send_command(args, {'command': 'start_recording', 'composition_id': args.composition_id})

        elif args.command == 'stop':
            send_command(args, {'command': 'stop_recording'})

        elif args.command == 'status':
            send_command(args, {'command': 'status'})

        elif args.command == 'send':
            payload = load_yaml_config(args.payload)
            if not isinstance(payload, dict) or 'command' not in payload:
                raise ValueError(f"{args.payload} must define a 'command' key")
            send_command(args, payload)

        elif args.command == 'send-fix':
            send_fix(args)

        elif args.command == 'probe':
            probe(args.session_config, args.points)

        elif args.command == 'inspect':
            inspect_recording(args.recording)

    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
