"""
Listener session tests (eonta_session + eonta_control).

The session runs against the conftest fakes; the control plane gets a
stub paho client so replies can be inspected without a broker.

Usage:
    pytest test_session.py -v
"""

import json
from pathlib import Path

import paho.mqtt.client as mqtt
import pytest

from eonta_capture import CaptureSettings, StopOutcome
from eonta_control import CommandNotAvailableError, CommandRegistry, MQTTControlPlane
from eonta_geo import Projection
from eonta_mqtt.schemas import LocationError, LocationErrorCode, StatusEventType
from eonta_session import ListenerSession, MQTTConfig, RegionConfig, SessionConfig
from eonta_transition import TransitionType

from conftest import make_fix, square

SHIPPED_CONFIG = Path(__file__).parent / "config" / "eonta_session" / "session_config.yaml"


def planar_config(**overrides) -> SessionConfig:
    data = {
        'service_id': 'listener-test',
        'projection': 'planar',
        'regions': [
            {
                'region_id': 'a',
                'coordinates': square(0, 0, 10),
                'audio_ref': 'https://audio.example/a.mp3',
                'base_volume': 0.8,
            },
        ],
    }
    data.update(overrides)
    return SessionConfig.from_dict(data)


@pytest.fixture
def status_events():
    return []


@pytest.fixture
def session(sink, generator, scheduler, clock, status_events):
    return ListenerSession(
        config=planar_config(),
        audio_sink=sink,
        composition_generator=generator,
        status_listener=status_events.append,
        scheduler=scheduler,
        clock=clock,
    )


@pytest.fixture
def registry(session):
    registry = CommandRegistry()
    session.register_commands(registry)
    return registry


# ===== SessionConfig =====

def test_shipped_config_loads():
    config = SessionConfig.from_yaml(SHIPPED_CONFIG)

    assert config.service_id == "listener-01"
    assert config.projection == Projection.GEOGRAPHIC
    assert [r.region_id for r in config.regions] == ["fountain", "arcade", "garden"]
    assert config.capture == CaptureSettings()

    regions = config.build_regions()
    assert [r.id for r in regions] == ["fountain", "arcade"]
    fountain = regions[0]
    assert fountain.settings.fade_in_type == TransitionType.LOWPASS_FILTER
    assert fountain.settings.fade_out_type == TransitionType.REVERB_TAIL
    assert fountain.transition_radius == 15
    assert regions[1].settings.advanced_settings.pitch_shift.end == -6


def test_topics_are_resolved_per_service():
    config = SessionConfig.from_yaml(SHIPPED_CONFIG)

    assert config.topics == {
        'fix': "eonta/listener-01/location/fix",
        'error': "eonta/listener-01/location/error",
        'audio': "eonta/listener-01/audio/commands",
        'status': "eonta/listener-01/recording/status",
        'recording': "eonta/listener-01/recording/submit",
        'command': "eonta/listener-01/control/commands",
        'control_status': "eonta/listener-01/control/status",
    }
    assert MQTTConfig().topics("x")['command'] == "eonta/x/control/commands"


def test_config_from_yaml_file(tmp_path):
    path = tmp_path / "session.yaml"
    path.write_text(
        "service_id: walk-02\n"
        "projection: planar\n"
        "capture:\n"
        "  min_distance_m: 0.5\n"
        "regions:\n"
        "  - region_id: r1\n"
        "    coordinates: [[0, 0], [0, 4], [4, 4]]\n"
        "    audio_ref: r1.mp3\n"
        "    settings: {fade_in_type: crossfade, transition_radius: 2}\n"
    )

    config = SessionConfig.from_yaml(path)

    assert config.projection == Projection.PLANAR
    assert config.capture.min_distance_m == 0.5
    assert config.mqtt_config == MQTTConfig()
    region = config.build_regions()[0]
    assert region.settings.fade_in_type == TransitionType.CROSSFADE
    assert region.transition_radius == 2


@pytest.mark.parametrize("data", [
    ["not", "a", "mapping"],
    {'projection': 'planar'},
    {'service_id': ''},
    {'service_id': 'x', 'projection': 'mercator'},
    {'service_id': 'x', 'regions': [{'region_id': 'r', 'coordinates': square(0, 0, 1)}]},
    {'service_id': 'x', 'regions': [
        {'region_id': 'r', 'coordinates': square(0, 0, 1), 'audio_ref': 'a'},
        {'region_id': 'r', 'coordinates': square(5, 5, 1), 'audio_ref': 'b'},
    ]},
    {'service_id': 'x', 'regions': [{'region_id': 'r', 'coordinates': [[0, 0], [1, 1]], 'audio_ref': 'a'}]},
    {'service_id': 'x', 'capture': {'capture_interval_ms': 1}},
    {'service_id': 'x', 'mqtt_config': {'port': 0}},
    {'service_id': 'x', 'mqtt_config': {'qos': 3}},
])
def test_invalid_config_raises(data):
    with pytest.raises(ValueError):
        SessionConfig.from_dict(data)


def test_invalid_region_settings_fail_when_building():
    config = SessionConfig(
        service_id="x",
        regions=[RegionConfig("r", [(0, 0), (0, 1), (1, 1)], "r.mp3", settings={'fade_in_type': 'wobble'})],
    )
    with pytest.raises(ValueError):
        config.build_regions()


def test_missing_config_file():
    with pytest.raises(FileNotFoundError):
        SessionConfig.from_yaml("does/not/exist.yaml")


# ===== ListenerSession =====

def test_fixes_drive_the_engine(session, sink):
    session.start()

    session.hub.publish_fix(make_fix(5, 5))

    assert sink.methods() == ['play_audio']
    assert session.last_tick.entered == ('a',)
    assert session.get_status()['active_regions'] == ['a']


def test_fixes_before_start_are_ignored(session, sink):
    session.hub.publish_fix(make_fix(5, 5))

    assert sink.calls == []
    assert not session.is_running


def test_start_twice_keeps_one_subscription(session):
    session.start()
    session.start()

    assert session.hub.subscriber_count == 1


def test_recording_commands_round_trip(session, registry, generator, clock, status_events):
    session.start()

    reply = registry.execute('start_recording', {'composition_id': 'comp-1'})
    assert reply == {'started': True, 'composition_id': 'comp-1'}

    session.hub.publish_fix(make_fix(5, 5))
    clock.advance(2000)
    session.hub.publish_fix(make_fix(5, 8))

    # The engine has already started region 'a' when the recorder snapshots
    assert session.recorder.audio_events[0].region_ids == ['a']

    reply = registry.execute('stop_recording')

    assert reply['outcome'] == "submitted"
    assert reply['composition_id'] == "comp-1"
    assert reply['receipt'] == {'accepted': 'comp-1'}
    assert reply['stats']['points'] == 2
    assert reply['stats']['total_distance_m'] == pytest.approx(3.0)
    assert len(generator.recordings) == 1

    event_types = [e.event_type for e in status_events]
    assert event_types[0] == StatusEventType.RECORDING_STARTED
    assert event_types[-1] == StatusEventType.RECORDING_STOPPED


def test_stop_recording_without_movement(session, registry):
    session.start()
    registry.execute('start_recording', {'composition_id': 'comp-1'})

    reply = registry.execute('stop_recording')

    assert reply['outcome'] == "insufficient_movement"
    assert reply['message']
    assert 'receipt' not in reply


def test_start_recording_rejects_missing_id(registry):
    assert registry.execute('start_recording') == {'started': False, 'composition_id': None}


def test_status_command(session, registry):
    session.start()
    session.hub.publish_fix(make_fix(5, 5))
    session.hub.publish_error(LocationError(code=LocationErrorCode.TIMEOUT))

    status = registry.execute('status')

    assert status['service_id'] == "listener-test"
    assert status['running'] is True
    assert status['fixes_processed'] == 1
    assert status['active_regions'] == ['a']
    assert status['recording'] == {'is_recording': False}
    assert status['last_location_error'] == {'code': 'timeout'}


def test_stop_fades_out_and_submits(session, registry, sink):
    session.start()
    registry.execute('start_recording', {'composition_id': 'comp-1'})
    session.hub.publish_fix(make_fix(5, 5))
    session.hub.publish_fix(make_fix(5, 9))

    result = session.stop()

    assert result.outcome == StopOutcome.SUBMITTED
    assert sink.methods()[-1] == 'fade_out_audio'
    assert not session.is_running
    assert session.get_status()['active_regions'] == []

    sink.clear()
    session.hub.publish_fix(make_fix(5, 5))
    assert sink.calls == []


def test_stop_when_idle_returns_none(session):
    session.start()
    assert session.stop() is None


def test_disabled_regions_are_not_loaded(sink, generator):
    config = planar_config(regions=[
        {'region_id': 'on', 'coordinates': square(0, 0, 10), 'audio_ref': 'on.mp3'},
        {'region_id': 'off', 'coordinates': square(0, 0, 10), 'audio_ref': 'off.mp3', 'enabled': False},
    ])
    session = ListenerSession(config, sink, generator)
    session.start()

    session.hub.publish_fix(make_fix(5, 5))

    assert [r.id for r in session.engine.regions] == ['on']
    assert sink.methods('off') == []


# ===== CommandRegistry =====

def test_registry_registration():
    registry = CommandRegistry()
    registry.register(' Status ', lambda data: {'ok': True}, "Session status")

    assert registry.is_available('status')
    assert len(registry) == 1
    assert registry.get_help() == {'status': "Session status"}
    assert registry.execute('status') == {'ok': True}

    with pytest.raises(ValueError):
        registry.register('status', lambda data: None, "again")
    with pytest.raises(ValueError):
        registry.register('   ', lambda data: None, "blank")

    registry.unregister('status')
    assert registry.available_commands == set()


def test_registry_unknown_command(registry):
    with pytest.raises(CommandNotAvailableError) as exc_info:
        registry.execute('reboot')

    assert "start_recording" in str(exc_info.value)


# ===== MQTTControlPlane =====

class StubClient:
    def __init__(self):
        self.published = []

    def publish(self, topic, payload, qos=0, retain=False):
        self.published.append((topic, json.loads(payload), qos, retain))


@pytest.fixture
def plane(registry):
    plane = MQTTControlPlane(
        broker_host="localhost",
        broker_port=1883,
        command_topic="eonta/listener-test/control/commands",
        status_topic="eonta/listener-test/control/status",
        client_id="eonta_listener-test_control",
        registry=registry,
    )
    plane.client = StubClient()
    return plane


def test_control_plane_replies_to_commands(plane, session):
    session.start()

    reply = plane.handle_command({'command': ' STATUS ', 'request_id': 'r-1'})

    assert reply['ok'] is True
    assert reply['command'] == "status"
    assert reply['request_id'] == "r-1"
    assert reply['result']['service_id'] == "listener-test"

    topic, payload, qos, retain = plane.client.published[-1]
    assert topic == "eonta/listener-test/control/status"
    assert payload['status'] == "reply"
    assert qos == 1
    assert retain is False


def test_control_plane_reports_failures(plane, registry):
    def explode(data):
        raise RuntimeError("recorder jammed")

    registry.register('explode', explode, "Always fails")

    unknown = plane.handle_command({'command': 'reboot'})
    failed = plane.handle_command({'command': 'explode'})

    assert unknown['ok'] is False
    assert "not available" in unknown['error']
    assert failed['ok'] is False
    assert failed['error'] == "recorder jammed"
    assert len(plane.client.published) == 2


def test_control_plane_ignores_bad_payloads(plane):
    assert plane.handle_command({'request_id': 'r-2'}) is None

    for raw in (b"{broken", b"[1, 2, 3]"):
        message = mqtt.MQTTMessage(topic=b"eonta/listener-test/control/commands")
        message.payload = raw
        plane._on_message(plane.client, None, message)

    assert plane.client.published == []


def test_control_plane_dispatches_mqtt_messages(plane):
    message = mqtt.MQTTMessage(topic=b"eonta/listener-test/control/commands")
    message.payload = json.dumps({'command': 'start_recording', 'composition_id': 'comp-9'}).encode()

    plane._on_message(plane.client, None, message)

    payload = plane.client.published[-1][1]
    assert payload['result'] == {'started': True, 'composition_id': 'comp-9'}


def test_retained_plane_status(plane):
    plane.publish_status("connected")

    topic, payload, qos, retain = plane.client.published[-1]
    assert payload['status'] == "connected"
    assert payload['client_id'] == "eonta_listener-test_control"
    assert retain is True
