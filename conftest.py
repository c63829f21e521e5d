"""
Shared fakes for the EONTA test suite.

No broker and no audio device are needed: the engine talks to
FakeAudioSink, the recorder to FakeLocationProvider / ManualScheduler /
FakeClock / FakeGenerator.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from eonta_capture import Subscription
from eonta_geo import GeoPoint, Projection
from eonta_mqtt.schemas import LocationFix
from eonta_transition import AudioRegion, create_transition_settings


METERS_PER_DEG_LAT = 111_195.0


class FakeAudioSink:
    """In-memory AudioSink recording every call."""

    def __init__(self):
        self.calls: List[Tuple[str, str, Any]] = []
        self.active: Dict[str, Dict[str, Any]] = {}
        self.accept = True
        self.fail_with: Optional[Exception] = None

    def _call(self, method: str, region_id: str, detail: Any) -> bool:
        self.calls.append((method, region_id, detail))
        if self.fail_with is not None:
            raise self.fail_with
        return self.accept

    def play_audio(self, region_id, url, options):
        ok = self._call('play_audio', region_id, dict(options))
        if ok:
            self.active[region_id] = {
                'id': region_id,
                'url': url,
                'volume': options['volume'],
                'effects': dict(options.get('effects') or {}),
            }
        return ok

    def stop_audio(self, region_id, fade_out_seconds=0.0):
        ok = self._call('stop_audio', region_id, fade_out_seconds)
        self.active.pop(region_id, None)
        return ok

    def fade_out_audio(self, region_id, duration_seconds):
        ok = self._call('fade_out_audio', region_id, duration_seconds)
        self.active.pop(region_id, None)
        return ok

    def set_volume(self, region_id, volume):
        ok = self._call('set_volume', region_id, volume)
        if ok and region_id in self.active:
            self.active[region_id]['volume'] = volume
        return ok

    def apply_effect(self, region_id, effect_type, params):
        ok = self._call('apply_effect', region_id, (effect_type, dict(params)))
        if ok and region_id in self.active:
            self.active[region_id]['effects'][effect_type] = dict(params)
        return ok

    def get_active_audio(self):
        return [
            {'id': a['id'], 'volume': a['volume'], 'effects': dict(a['effects'])}
            for a in self.active.values()
        ]

    def methods(self, region_id: Optional[str] = None) -> List[str]:
        return [m for m, rid, _ in self.calls if region_id is None or rid == region_id]

    def clear(self):
        self.calls.clear()


class ManualTimer:
    def __init__(self, interval_s: float, callback: Callable[[], None]):
        self.interval_s = interval_s
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler whose timers only fire when the test calls tick()."""

    def __init__(self):
        self.timers: List[ManualTimer] = []

    def schedule(self, interval_s, callback):
        timer = ManualTimer(interval_s, callback)
        self.timers.append(timer)
        return timer

    def tick(self, include_cancelled: bool = False):
        for timer in list(self.timers):
            if include_cancelled or not timer.cancelled:
                timer.callback()

    @property
    def live(self) -> List[ManualTimer]:
        return [t for t in self.timers if not t.cancelled]


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 1_700_000_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeLocationProvider:
    """LocationProvider that keeps cancelled subscriptions around."""

    def __init__(self):
        self.subscriptions: List[Subscription] = []
        self.refuse = False

    def subscribe(self, on_fix, on_error=None):
        if self.refuse:
            raise PermissionError("location services disabled")
        subscription = Subscription(on_fix=on_fix, on_error=on_error)
        self.subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription):
        subscription.cancel()

    @property
    def live(self) -> List[Subscription]:
        return [s for s in self.subscriptions if s.active]

    def emit_fix(self, fix):
        for subscription in self.live:
            subscription.on_fix(fix)

    def emit_error(self, error):
        for subscription in self.live:
            if subscription.on_error is not None:
                subscription.on_error(error)


class FakeGenerator:
    """CompositionGenerator capturing hand-offs."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.recordings = []

    def generate(self, recording):
        if self.fail:
            raise RuntimeError("generator offline")
        self.recordings.append(recording)
        return {'accepted': recording.composition_id}


def make_fix(lat: float, lng: float, accuracy: float = 5.0, timestamp: float = 0.0) -> LocationFix:
    return LocationFix(lat=lat, lng=lng, accuracy=accuracy, timestamp=timestamp)


def square(x0: float, y0: float, size: float) -> List[Tuple[float, float]]:
    return [(x0, y0), (x0, y0 + size), (x0 + size, y0 + size), (x0 + size, y0)]


def make_region(
    region_id: str,
    coords,
    base_volume: float = 1.0,
    audio_ref: Optional[str] = None,
    **settings
) -> AudioRegion:
    return AudioRegion(
        id=region_id,
        polygon=tuple(GeoPoint(lat=float(a), lng=float(b)) for a, b in coords),
        audio_ref=audio_ref or f"https://audio.example/{region_id}.mp3",
        base_volume=base_volume,
        settings=create_transition_settings(settings),
    )


@pytest.fixture
def sink():
    return FakeAudioSink()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def provider():
    return FakeLocationProvider()


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def planar():
    return Projection.PLANAR
