"""
Transition engine tests (eonta_transition).

All regions use the planar projection, so distances are plain units and
the default transition radius (10) is easy to reason about.

Usage:
    pytest test_transition_engine.py -v
"""

import math

import pytest

from eonta_geo import Projection
from eonta_mqtt.schemas import AudioAction
from eonta_transition import (
    AdvancedSettings,
    AudioRegion,
    MqttAudioSink,
    TransitionEngine,
    TransitionType,
    create_transition_settings,
    entry_progress,
    interpolate,
    validate_delay_time,
    validate_frequency,
)
from eonta_transition.effects import semitones_to_rate

from conftest import make_region, square

PLANAR = Projection.PLANAR


def make_engine(regions, sink):
    return TransitionEngine(regions, sink=sink, projection=PLANAR)


# ===== entry_progress =====

def test_entry_progress_band_edges():
    assert entry_progress(10.0, 10.0) == 0.0
    assert entry_progress(0.0, 10.0) == 1.0
    assert entry_progress(5.0, 10.0) == pytest.approx(0.5)
    assert entry_progress(-3.0, 10.0) == 1.0
    assert entry_progress(25.0, 10.0) == 0.0


def test_entry_progress_no_signal_and_zero_radius():
    assert entry_progress(math.inf, 10.0) == 0.0
    assert entry_progress(float('nan'), 10.0) == 0.0
    assert entry_progress(0.0, 0.0) == 1.0
    assert entry_progress(0.5, 0.0) == 0.0


def test_entry_progress_monotone_and_continuous():
    distances = [d / 4.0 for d in range(-20, 60)]
    values = [entry_progress(d, 10.0) for d in distances]

    assert all(0.0 <= v <= 1.0 for v in values)
    assert all(a >= b for a, b in zip(values, values[1:]))

    eps = 1e-9
    assert entry_progress(10.0 - eps, 10.0) == pytest.approx(0.0, abs=1e-6)
    assert entry_progress(10.0 + eps, 10.0) == 0.0
    assert entry_progress(eps, 10.0) == pytest.approx(1.0, abs=1e-6)
    assert entry_progress(-eps, 10.0) == 1.0


# ===== interpolate =====

def test_volume_only_types_have_no_effect():
    advanced = AdvancedSettings()
    assert interpolate(TransitionType.VOLUME_FADE, 0.5, advanced) is None
    assert interpolate(TransitionType.CROSSFADE, 0.5, advanced) is None


def test_lowpass_walks_from_end_to_start():
    advanced = AdvancedSettings()

    outside = interpolate(TransitionType.LOWPASS_FILTER, 0.0, advanced)
    halfway = interpolate(TransitionType.LOWPASS_FILTER, 0.5, advanced)
    inside = interpolate(TransitionType.LOWPASS_FILTER, 1.0, advanced)

    assert outside.to_dict() == {'lowpass': {'frequency': 500.0}}
    assert halfway.params['frequency'] == pytest.approx(10250.0)
    assert inside.params['frequency'] == 20000.0


def test_effect_parameters_are_clamped():
    advanced = AdvancedSettings().merged({
        'delay_feedback': {'end': 2.0},
        'delay_time': {'end': 30.0},
        'lowpass_frequency': {'end': 1.0},
        'spatial_position': {'end': 4.0},
    })

    delay = interpolate(TransitionType.DELAY_FEEDBACK, 0.0, advanced)
    assert delay.params == {'feedback': 0.95, 'time': 5.0}

    lowpass = interpolate(TransitionType.LOWPASS_FILTER, 0.0, advanced)
    assert lowpass.params['frequency'] == 20.0

    spatial = interpolate(TransitionType.SPATIAL_BLEND, 0.0, advanced)
    assert spatial.params == {'pan': 1.0}


def test_doppler_reports_pitch_and_rate():
    effect = interpolate(TransitionType.DOPPLER, 0.0, AdvancedSettings())

    assert effect.effect_type == "doppler"
    assert effect.params['semitones'] == -4.0
    assert effect.params['playback_rate'] == pytest.approx(semitones_to_rate(-4.0))
    assert semitones_to_rate(12.0) == pytest.approx(2.0)


def test_interpolate_rejects_unknown_type():
    with pytest.raises(ValueError):
        interpolate("wobble", 0.5, AdvancedSettings())


def test_validators():
    assert validate_frequency(5) == 20.0
    assert validate_frequency(50_000) == 20000.0
    assert validate_frequency("loud") == 1000.0
    assert validate_delay_time(0.0) == 0.01
    assert validate_delay_time(None) == 0.3


# ===== settings / regions =====

def test_create_transition_settings_merges_and_coerces():
    settings = create_transition_settings({
        'fade_in_type': 'lowpass_filter',
        'transition_radius': 25,
        'advanced_settings': {'lowpass_frequency': {'end': 800}},
    })

    assert settings.fade_in_type == TransitionType.LOWPASS_FILTER
    assert settings.fade_out_type == TransitionType.VOLUME_FADE
    assert settings.transition_radius == 25
    assert settings.advanced_settings.lowpass_frequency.start == 20000.0
    assert settings.advanced_settings.lowpass_frequency.end == 800
    # Untouched ranges keep their defaults
    assert settings.advanced_settings.reverb_mix == AdvancedSettings().reverb_mix


@pytest.mark.parametrize("overrides", [
    {'fade_in_type': 'wobble'},
    {'transition_radius': -1},
    {'blending_enabled': 'yes'},
    {'colour': 'blue'},
    {'advanced_settings': {'chorus': {'start': 0, 'end': 1}}},
    {'advanced_settings': {'pitch_shift': {'start': float('nan')}}},
])
def test_invalid_settings_raise(overrides):
    with pytest.raises(ValueError):
        create_transition_settings(overrides)


def test_region_from_dict():
    region = AudioRegion.from_dict({
        'id': 'plaza',
        'polygon': [[0, 0], [0, 10], ['bad', 1], [10, 10], [10, 0]],
        'audio_ref': 'https://audio.example/plaza.mp3',
        'base_volume': 0.5,
        'settings': {'fade_in_type': 'reverb_tail'},
    }, PLANAR)

    assert len(region.polygon) == 4
    assert region.centroid.lat == pytest.approx(5.0)
    assert region.settings.fade_in_type == TransitionType.REVERB_TAIL
    assert region.to_dict()['settings']['fade_in_type'] == 'reverb_tail'


@pytest.mark.parametrize("data", [
    {'id': 'a', 'polygon': [[0, 0], [0, 1]], 'audio_ref': 'x'},
    {'id': 'a', 'polygon': square(0, 0, 1), 'audio_ref': 'x', 'base_volume': 1.5},
    {'id': '', 'polygon': square(0, 0, 1), 'audio_ref': 'x'},
    {'polygon': square(0, 0, 1), 'audio_ref': 'x'},
])
def test_invalid_region_raises(data):
    with pytest.raises(ValueError):
        AudioRegion.from_dict(data, PLANAR)


# ===== entry / exit =====

def test_entering_region_plays_once(sink):
    region = make_region('a', square(0, 0, 10), base_volume=0.8)
    engine = make_engine([region], sink)

    result = engine.update((5, 5))

    assert result.entered == ('a',)
    assert sink.methods() == ['play_audio']
    method, region_id, options = sink.calls[0]
    assert options == {'loop': True, 'volume': 0.8, 'fade_in': 1.5, 'effects': {}}
    assert engine.active_region_ids == ['a']


def test_identical_positions_are_debounced(sink):
    engine = make_engine([make_region('a', square(0, 0, 10))], sink)

    engine.update((5, 5))
    sink.clear()
    result = engine.update((5, 5))

    assert sink.calls == []
    assert not result.changed
    assert result.active == ('a',)


def test_leaving_issues_exactly_one_fade_out(sink):
    engine = make_engine([make_region('a', square(0, 0, 10))], sink)

    engine.update((5, 5))
    sink.clear()
    first = engine.update((50, 50))
    second = engine.update((60, 60))

    assert first.exited == ('a',)
    assert second.exited == ()
    assert sink.calls == [('fade_out_audio', 'a', 2.0)]
    assert engine.active_region_ids == []


def test_band_entry_uses_partial_progress(sink):
    engine = make_engine([make_region('a', square(0, 0, 10), base_volume=0.8)], sink)

    result = engine.update((15, 5))

    assert result.progress['a'] == pytest.approx(0.5)
    assert sink.calls[0][2]['volume'] == pytest.approx(0.4)


def test_approaching_updates_volume(sink):
    engine = make_engine([make_region('a', square(0, 0, 10), base_volume=0.8)], sink)

    engine.update((15, 5))
    sink.clear()
    result = engine.update((12, 5))

    assert result.updated == ('a',)
    assert sink.methods() == ['set_volume']
    assert sink.calls[0][2] == pytest.approx(0.64)


def test_entry_effect_follows_fade_in_type(sink):
    region = make_region('a', square(0, 0, 10), fade_in_type='lowpass_filter')
    engine = make_engine([region], sink)

    engine.update((15, 5))
    effects = sink.calls[0][2]['effects']
    assert effects['lowpass']['frequency'] == pytest.approx(10250.0)

    sink.clear()
    engine.update((5, 5))
    assert ('apply_effect', 'a', ('lowpass', {'frequency': 20000.0})) in sink.calls


def test_exit_applies_fade_out_effect_before_fading(sink):
    region = make_region('a', square(0, 0, 10), fade_out_type='reverb_tail', fade_out_length=3.0)
    engine = make_engine([region], sink)

    engine.update((5, 5))
    sink.clear()
    engine.update((50, 50))

    assert sink.calls == [
        ('apply_effect', 'a', ('reverb', {'mix': 0.7, 'decay': 3.0})),
        ('fade_out_audio', 'a', 3.0),
    ]


def test_blending_disabled_plays_full_volume_in_band(sink):
    region = make_region('a', square(0, 0, 10), base_volume=0.6, blending_enabled=False)
    engine = make_engine([region], sink)

    result = engine.update((15, 5))

    assert result.progress['a'] == 1.0
    assert sink.calls[0][2]['volume'] == pytest.approx(0.6)


# ===== crossfades =====

def test_equal_centroid_distances_give_equal_crossfade(sink):
    a = make_region('a', square(0, 0, 10), base_volume=1.0)
    b = make_region('b', square(0, 10, 10), base_volume=0.6)
    engine = make_engine([a, b], sink)

    result = engine.update((5, 10))

    assert set(result.entered) == {'a', 'b'}
    assert result.crossfade_volumes['a'] == pytest.approx(0.85)
    assert result.crossfade_volumes['b'] == pytest.approx(0.85 * 0.6)
    volumes = {rid: options['volume'] for _, rid, options in sink.calls}
    assert volumes == pytest.approx({'a': 0.85, 'b': 0.51})


def test_closer_centroid_is_louder(sink):
    a = make_region('a', square(0, 0, 10))
    b = make_region('b', square(0, 10, 10))
    engine = make_engine([a, b], sink)

    result = engine.update((5, 8))

    assert result.crossfade_volumes['a'] == pytest.approx(0.91)
    assert result.crossfade_volumes['b'] == pytest.approx(0.79)


def test_crossfade_opt_out(sink):
    a = make_region('a', square(0, 0, 10), crossfade_overlap=False)
    b = make_region('b', square(0, 10, 10))
    engine = make_engine([a, b], sink)

    result = engine.update((5, 8))

    assert result.crossfade_volumes == {}
    assert result.progress['b'] == pytest.approx(0.8)


# ===== failure handling =====

def test_refused_play_is_retried(sink):
    engine = make_engine([make_region('a', square(0, 0, 10))], sink)

    sink.accept = False
    first = engine.update((5, 5))
    sink.accept = True
    second = engine.update((5, 5))

    assert first.entered == ()
    assert second.entered == ('a',)
    assert sink.methods() == ['play_audio', 'play_audio']


def test_sink_exceptions_are_contained(sink):
    engine = make_engine([make_region('a', square(0, 0, 10))], sink)
    sink.fail_with = RuntimeError("renderer gone")

    result = engine.update((5, 5))

    assert result.entered == ()
    assert engine.active_region_ids == []


@pytest.mark.parametrize("position", [None, "here", (float('nan'), 1.0), {'lat': 1}])
def test_invalid_position_is_ignored(sink, position):
    engine = make_engine([make_region('a', square(0, 0, 10))], sink)

    result = engine.update(position)

    assert not result.changed
    assert sink.calls == []


# ===== region set / reset =====

def test_removing_active_region_fades_it_out(sink):
    a = make_region('a', square(0, 0, 10))
    b = make_region('b', square(100, 100, 10))
    engine = make_engine([a, b], sink)

    engine.update((5, 5))
    sink.clear()
    engine.set_regions([b])

    assert sink.calls == [('fade_out_audio', 'a', 2.0)]
    assert engine.active_region_ids == []
    assert engine.get_region('a') is None


def test_set_regions_skips_duplicates_and_junk(sink):
    a = make_region('a', square(0, 0, 10))
    a_again = make_region('a', square(50, 50, 10))
    engine = make_engine([a, a_again, "junk"], sink)

    assert [r.id for r in engine.regions] == ['a']
    assert engine.get_region('a') is a


def test_reset_fades_everything(sink):
    a = make_region('a', square(0, 0, 10))
    b = make_region('b', square(0, 10, 10))
    engine = make_engine([a, b], sink)

    engine.update((5, 10))
    sink.clear()

    assert sorted(engine.reset()) == ['a', 'b']
    assert sorted(sink.methods()) == ['fade_out_audio', 'fade_out_audio']
    assert engine.active_region_ids == []


# ===== MqttAudioSink =====

class FakeCommandPublisher:
    def __init__(self, ok=True):
        self.ok = ok
        self.commands = []

    def publish_command(self, command):
        self.commands.append(command)
        return self.ok


def test_mqtt_sink_mirrors_published_state():
    publisher = FakeCommandPublisher()
    audio_sink = MqttAudioSink(session_id="walk", publisher=publisher)

    assert audio_sink.play_audio('a', 'https://audio.example/a.mp3',
                                 {'volume': 0.5, 'effects': {'lowpass': {'frequency': 800.0}}})
    assert audio_sink.set_volume('a', 0.7)
    assert audio_sink.apply_effect('a', 'lowpass', {'frequency': 1200.0})

    assert audio_sink.get_active_audio() == [
        {'id': 'a', 'volume': 0.7, 'effects': {'lowpass': {'frequency': 1200.0}}}
    ]
    assert [c.action for c in publisher.commands] == [
        AudioAction.PLAY, AudioAction.SET_VOLUME, AudioAction.APPLY_EFFECT
    ]

    assert audio_sink.fade_out_audio('a', 2.0)
    assert audio_sink.get_active_audio() == []


def test_mqtt_sink_does_not_mirror_failed_publish():
    audio_sink = MqttAudioSink(session_id="walk", publisher=FakeCommandPublisher(ok=False))

    assert audio_sink.play_audio('a', 'https://audio.example/a.mp3', {'volume': 0.5}) is False
    assert audio_sink.get_active_audio() == []


def test_mqtt_sink_rejects_invalid_command():
    publisher = FakeCommandPublisher()
    audio_sink = MqttAudioSink(session_id="walk", publisher=publisher)

    assert audio_sink.play_audio('a', '', {'volume': 0.5}) is False
    assert publisher.commands == []
