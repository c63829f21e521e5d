"""
Configuration schema for a listener session.

This module defines the configuration structure for one EONTA listener:
the composition's audio regions, the coordinate projection, path capture
tunables and the MQTT topics the session talks on.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from eonta_geo import Projection
from eonta_capture.config import CaptureSettings
from eonta_transition import AudioRegion


@dataclass(frozen=True)
class RegionConfig:
    """Audio region declaration (polygon as [lat, lng] pairs)."""

    region_id: str
    coordinates: List[Tuple[float, float]]
    audio_ref: str
    base_volume: float = 1.0
    settings: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True

    def __post_init__(self):
        """Validate region configuration."""
        if not self.region_id:
            raise ValueError("region_id cannot be empty")

        if len(self.coordinates) < 3:
            raise ValueError(
                f"Region '{self.region_id}' must have at least 3 points, "
                f"got {len(self.coordinates)}"
            )

        if not self.audio_ref:
            raise ValueError(f"Region '{self.region_id}' has no audio_ref")

    def to_region(self, projection: Projection = Projection.GEOGRAPHIC) -> AudioRegion:
        """
        Build the immutable AudioRegion.

        Raises:
            ValueError: If the polygon or transition settings are invalid
        """
        return AudioRegion.from_dict(
            {
                'id': self.region_id,
                'polygon': [list(coord) for coord in self.coordinates],
                'audio_ref': self.audio_ref,
                'base_volume': self.base_volume,
                'settings': dict(self.settings),
            },
            projection,
        )


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 0  # Data plane QoS (fire-and-forget)

    fix_topic: str = "eonta/{service_id}/location/fix"
    error_topic: str = "eonta/{service_id}/location/error"
    audio_topic: str = "eonta/{service_id}/audio/commands"
    status_topic: str = "eonta/{service_id}/recording/status"
    recording_topic: str = "eonta/{service_id}/recording/submit"
    command_topic: str = "eonta/{service_id}/control/commands"
    control_status_topic: str = "eonta/{service_id}/control/status"

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not self.broker:
            raise ValueError("MQTT broker cannot be empty")

        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

    def topics(self, service_id: str) -> Dict[str, str]:
        """Resolve every topic template for ``service_id``."""
        return {
            'fix': self.fix_topic.format(service_id=service_id),
            'error': self.error_topic.format(service_id=service_id),
            'audio': self.audio_topic.format(service_id=service_id),
            'status': self.status_topic.format(service_id=service_id),
            'recording': self.recording_topic.format(service_id=service_id),
            'command': self.command_topic.format(service_id=service_id),
            'control_status': self.control_status_topic.format(service_id=service_id),
        }


@dataclass(frozen=True)
class SessionConfig:
    """
    Main configuration for a ListenerSession.

    Loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    # Service identification
    service_id: str

    # Coordinate handling
    projection: Projection = Projection.GEOGRAPHIC

    # Composition
    regions: List[RegionConfig] = field(default_factory=list)

    # Path capture
    capture: CaptureSettings = field(default_factory=CaptureSettings)

    # MQTT configuration
    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)

    def __post_init__(self):
        """Validate session configuration."""
        if not self.service_id:
            raise ValueError("service_id cannot be empty")

        if not isinstance(self.projection, Projection):
            raise ValueError(f"Invalid projection: {self.projection!r}")

        seen = set()
        for region in self.regions:
            if region.region_id in seen:
                raise ValueError(f"Duplicate region_id: {region.region_id}")
            seen.add(region.region_id)

    @property
    def topics(self) -> Dict[str, str]:
        return self.mqtt_config.topics(self.service_id)

    def build_regions(self) -> List[AudioRegion]:
        """AudioRegions for every enabled region, in file order."""
        return [r.to_region(self.projection) for r in self.regions if r.enabled]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionConfig":
        """
        Build from an already-parsed mapping (see from_yaml for the layout).

        Raises:
            ValueError: If required fields missing or invalid
        """
        if not isinstance(data, dict):
            raise ValueError("Session configuration must be a mapping")
        if "service_id" not in data:
            raise ValueError("Missing required field: service_id")

        try:
            projection = Projection(data.get("projection", Projection.GEOGRAPHIC.value))
        except ValueError:
            raise ValueError(
                f"Invalid projection: {data.get('projection')}. "
                f"Must be one of {[p.value for p in Projection]}"
            )

        capture = CaptureSettings(**(data.get("capture") or {}))
        mqtt_config = MQTTConfig(**(data.get("mqtt_config") or {}))

        regions = []
        for r in data.get("regions") or []:
            try:
                regions.append(RegionConfig(
                    region_id=r["region_id"],
                    coordinates=[tuple(coord) for coord in r["coordinates"]],
                    audio_ref=r["audio_ref"],
                    base_volume=r.get("base_volume", 1.0),
                    settings=dict(r.get("settings") or {}),
                    enabled=r.get("enabled", True),
                ))
            except KeyError as e:
                raise ValueError(f"Region missing required field: {e}")

        return cls(
            service_id=data["service_id"],
            projection=projection,
            regions=regions,
            capture=capture,
            mqtt_config=mqtt_config,
        )

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "SessionConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            service_id: "listener-01"
            projection: "geographic"

            capture:
              capture_interval_ms: 1000
              min_distance_m: 2.0
              max_duration_ms: 3600000
              include_audio_snapshot: true

            regions:
              - region_id: "fountain"
                coordinates: [[40.4160, -3.7045], [40.4160, -3.7030], [40.4175, -3.7030]]
                audio_ref: "https://audio.example/fountain.mp3"
                base_volume: 0.8
                settings:
                  fade_in_type: "lowpass_filter"
                  transition_radius: 15

            mqtt_config:
              broker: "localhost"
              port: 1883

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the content is invalid
        """
        with open(yaml_path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data)
