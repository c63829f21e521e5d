"""
Transition Engine
=================

Turns a stream of listener positions into audio-sink commands.

Per tick:
    1. Signed distance from the position to every region's edge
    2. Active iff the distance is within the region's transition radius
    3. Regions leaving the band get exactly one fade-out
    4. Crossfade volumes for overlapping active regions
    5. Newly active regions start playing; already-active ones get
       in-place volume/effect updates, debounced by PROGRESS_EPSILON

Design:
- One engine per listener; state lives in a RegionStateTracker
- Never raises from update(): bad input and sink failures are logged
- The engine is driven from a single thread (the session serializes fixes)
"""

import math
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Dict, Iterable, List, Optional, Tuple

from eonta_geo import Projection, distance_between, distance_to_boundary_edge, to_point
from eonta_mqtt.logging import LogEvent, StructuredLogger, create_logger
from eonta_transition.effects import EffectParameters, entry_progress, interpolate
from eonta_transition.region import AudioRegion
from eonta_transition.settings import TransitionType
from eonta_transition.sink import AudioSink
from eonta_transition.state import RegionStateTracker


PROGRESS_EPSILON = 1e-3
CROSSFADE_FLOOR = 0.7
CROSSFADE_SPAN = 0.3


@dataclass(frozen=True)
class TickResult:
    """
    What one update() did.

    Attributes:
        entered: Regions that started playing
        exited: Regions that were faded out
        updated: Active regions that received volume/effect updates
        progress: Progress per active region
        crossfade_volumes: Volumes set by crossfading
    """
    entered: Tuple[str, ...] = ()
    exited: Tuple[str, ...] = ()
    updated: Tuple[str, ...] = ()
    progress: Dict[str, float] = field(default_factory=dict)
    crossfade_volumes: Dict[str, float] = field(default_factory=dict)

    @property
    def active(self) -> Tuple[str, ...]:
        return tuple(self.progress)

    @property
    def changed(self) -> bool:
        return bool(self.entered or self.exited or self.updated)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entered': list(self.entered),
            'exited': list(self.exited),
            'updated': list(self.updated),
            'progress': dict(self.progress),
            'crossfade_volumes': dict(self.crossfade_volumes),
        }


class TransitionEngine:
    """
    Region entry/exit and crossfade automation for one listener.

    Example:
        >>> engine = TransitionEngine(regions, sink=audio_sink)
        >>> result = engine.update(GeoPoint(lat=40.4168, lng=-3.7038))
        >>> result.entered
        ('plaza',)
    """

    def __init__(
        self,
        regions: Iterable[AudioRegion],
        sink: AudioSink,
        logger: Optional[StructuredLogger] = None,
        projection: Projection = Projection.GEOGRAPHIC,
        progress_epsilon: float = PROGRESS_EPSILON
    ):
        self.sink = sink
        self.logger = logger or create_logger("transition")
        self.projection = projection
        self.progress_epsilon = progress_epsilon
        self.tracker = RegionStateTracker()
        self._regions: Dict[str, AudioRegion] = {}
        self.set_regions(regions)

    # ===== Region set =====

    @property
    def regions(self) -> List[AudioRegion]:
        return list(self._regions.values())

    def get_region(self, region_id: str) -> Optional[AudioRegion]:
        return self._regions.get(region_id)

    def set_regions(self, regions: Iterable[AudioRegion]) -> None:
        """
        Replace the region set.

        Non-region entries and duplicate ids are logged and skipped.
        Active regions that disappear are faded out.
        """
        accepted: Dict[str, AudioRegion] = {}
        for region in regions or ():
            if not isinstance(region, AudioRegion):
                self.logger.warning(
                    event=LogEvent.INVALID_INPUT,
                    message="Ignoring invalid region",
                    metadata={'type': type(region).__name__}
                )
                continue
            if region.id in accepted:
                self.logger.warning(
                    event=LogEvent.INVALID_INPUT,
                    message="Ignoring duplicate region id",
                    metadata={'region_id': region.id}
                )
                continue
            accepted[region.id] = region

        for region_id in self.tracker.active_ids():
            if region_id not in accepted:
                self.apply_exit_transition(self._regions[region_id])

        self._regions = accepted
        self.tracker.prune(accepted)

    @property
    def active_region_ids(self) -> List[str]:
        return self.tracker.active_ids()

    # ===== Helpers =====

    def _call_sink(self, method: str, region_id: str, *args) -> bool:
        try:
            return bool(getattr(self.sink, method)(region_id, *args))
        except Exception as e:
            self.logger.error(
                event=LogEvent.AUDIO_SINK_ERROR,
                message=f"Audio sink {method} failed",
                exc_info=e,
                metadata={'region_id': region_id}
            )
            return False

    def _effect(
        self,
        region: AudioRegion,
        transition_type: TransitionType,
        progress: float
    ) -> Optional[EffectParameters]:
        try:
            return interpolate(transition_type, progress, region.settings.advanced_settings)
        except ValueError as e:
            self.logger.warning(
                event=LogEvent.INVALID_INPUT,
                message="Cannot interpolate transition",
                metadata={'region_id': region.id, 'error': str(e)}
            )
            return None

    def _progress(self, region: AudioRegion, distance: float) -> float:
        if not region.settings.blending_enabled:
            return 1.0 if distance <= region.transition_radius else 0.0
        return entry_progress(distance, region.transition_radius)

    # ===== Single-region transitions =====

    def apply_entry_transition(
        self,
        region: AudioRegion,
        distance_to_edge: float = 0.0,
        volume: Optional[float] = None
    ) -> bool:
        """
        Start playing ``region``.

        Args:
            region: Region being entered
            distance_to_edge: Signed distance used for the initial progress
            volume: Volume override (crossfade); default base_volume * progress

        Returns:
            True if the sink accepted the play command
        """
        if not isinstance(region, AudioRegion):
            self.logger.warning(
                event=LogEvent.INVALID_INPUT,
                message="Invalid region data for entry transition",
                metadata={'type': type(region).__name__}
            )
            return False

        progress = self._progress(region, distance_to_edge)
        target = region.base_volume * progress if volume is None else volume
        effect = self._effect(region, region.settings.fade_in_type, progress)

        options = {
            'loop': True,
            'volume': target,
            'fade_in': region.settings.fade_in_length,
            'effects': effect.to_dict() if effect else {},
        }
        if not self._call_sink('play_audio', region.id, region.audio_ref, options):
            return False

        self.tracker.get(region.id).mark_entered(progress, target, effect)
        self.logger.info(
            event=LogEvent.REGION_ENTERED,
            message="Entered region",
            metadata={
                'region_id': region.id,
                'distance': distance_to_edge,
                'progress': progress,
                'volume': target,
                'fade_in_type': region.settings.fade_in_type.value
            }
        )
        return True

    def apply_exit_transition(self, region: AudioRegion) -> bool:
        """
        Fade ``region`` out.

        Non-volume fade-out types first push their effect to its outside
        value. The region is marked inactive even if the sink refuses, so
        the fade-out is never re-issued.

        Returns:
            True if the sink accepted the fade-out
        """
        if not isinstance(region, AudioRegion):
            self.logger.warning(
                event=LogEvent.INVALID_INPUT,
                message="Invalid region data for exit transition",
                metadata={'type': type(region).__name__}
            )
            return False

        effect = self._effect(region, region.settings.fade_out_type, 0.0)
        if effect is not None:
            self._call_sink('apply_effect', region.id, effect.effect_type, dict(effect.params))

        faded = self._call_sink('fade_out_audio', region.id, region.settings.fade_out_length)
        self.tracker.get(region.id).mark_exited()

        self.logger.info(
            event=LogEvent.REGION_EXITED,
            message="Exited region",
            metadata={
                'region_id': region.id,
                'fade_out_length': region.settings.fade_out_length,
                'fade_out_type': region.settings.fade_out_type.value,
                'acknowledged': faded
            }
        )
        return faded

    def _update_active(self, region: AudioRegion, progress: float, volume: float) -> bool:
        """Send in-place updates that moved more than the debounce epsilon."""
        state = self.tracker.get(region.id)
        changed = False

        if state.volume is None or abs(volume - state.volume) > self.progress_epsilon:
            if self._call_sink('set_volume', region.id, volume):
                state.volume = volume
                changed = True

        effect = self._effect(region, region.settings.fade_in_type, progress)
        if effect is None:
            state.progress = progress
        elif state.effect is None or abs(progress - state.progress) > self.progress_epsilon:
            if self._call_sink('apply_effect', region.id, effect.effect_type, dict(effect.params)):
                state.progress = progress
                state.effect = effect
                changed = True

        if changed:
            self.logger.debug(
                event=LogEvent.REGION_UPDATED,
                message="Updated region parameters",
                metadata={'region_id': region.id, 'progress': progress, 'volume': volume}
            )
        return changed

    # ===== Crossfade =====

    def handle_crossfades(self, active_regions: List[AudioRegion], position: Any) -> Dict[str, float]:
        """
        Crossfade volumes for every pair of overlapping active regions.

        ratio_i = 1 - d_i / (d_i + d_j), volume_i = base_i * (0.7 + 0.3 * ratio_i),
        with d the distance to each region's centroid. Pairs with a zero (or
        non-finite) total distance are skipped. A region in several pairs
        keeps the value from the last pair.

        Returns:
            region_id -> crossfade volume
        """
        point = to_point(position, self.projection)
        if point is None or not active_regions or len(active_regions) < 2:
            return {}

        volumes: Dict[str, float] = {}
        for first, second in combinations(active_regions, 2):
            if not (first.settings.crossfade_overlap and second.settings.crossfade_overlap):
                continue

            d_first = distance_between(point, first.centroid, self.projection)
            d_second = distance_between(point, second.centroid, self.projection)
            total = d_first + d_second
            if not math.isfinite(total) or total == 0:
                continue

            ratio_first = 1.0 - d_first / total
            ratio_second = 1.0 - d_second / total
            volumes[first.id] = first.base_volume * (CROSSFADE_FLOOR + CROSSFADE_SPAN * ratio_first)
            volumes[second.id] = second.base_volume * (CROSSFADE_FLOOR + CROSSFADE_SPAN * ratio_second)

        if volumes:
            self.logger.debug(
                event=LogEvent.CROSSFADE_APPLIED,
                message="Computed crossfade volumes",
                metadata={'volumes': volumes}
            )
        return volumes

    # ===== Tick =====

    def update(self, position: Any) -> TickResult:
        """
        Process one listener position.

        Args:
            position: GeoPoint, LocationFix, {lat, lng} mapping or (lat, lng)

        Returns:
            TickResult (empty for an invalid position)
        """
        point = to_point(position, self.projection)
        if point is None:
            self.logger.warning(
                event=LogEvent.INVALID_INPUT,
                message="Ignoring invalid position",
                metadata={'position': repr(position)}
            )
            return TickResult()

        distances: Dict[str, float] = {}
        active: List[AudioRegion] = []
        exited: List[str] = []

        for region in self._regions.values():
            distance = distance_to_boundary_edge(point, region.polygon, self.projection)
            if math.isfinite(distance) and distance <= region.transition_radius:
                distances[region.id] = distance
                active.append(region)
            elif self.tracker.is_active(region.id):
                self.apply_exit_transition(region)
                exited.append(region.id)

        crossfades = self.handle_crossfades(active, point)

        entered: List[str] = []
        updated: List[str] = []
        progress_by_region: Dict[str, float] = {}

        for region in active:
            distance = distances[region.id]
            progress = self._progress(region, distance)
            progress_by_region[region.id] = progress
            volume = crossfades.get(region.id, region.base_volume * progress)

            if not self.tracker.is_active(region.id):
                if self.apply_entry_transition(region, distance, volume=volume):
                    entered.append(region.id)
            elif self._update_active(region, progress, volume):
                updated.append(region.id)

        return TickResult(
            entered=tuple(entered),
            exited=tuple(exited),
            updated=tuple(updated),
            progress=progress_by_region,
            crossfade_volumes=crossfades,
        )

    def reset(self) -> List[str]:
        """
        Fade out every active region and forget all state.

        Returns:
            Ids of the regions that were faded out
        """
        faded = []
        for region_id in self.tracker.active_ids():
            region = self._regions.get(region_id)
            if region is not None:
                self.apply_exit_transition(region)
                faded.append(region_id)

        self.tracker.reset()
        self.logger.info(
            event=LogEvent.TRANSITION_RESET,
            message="Transition state reset",
            metadata={'faded': faded}
        )
        return faded
