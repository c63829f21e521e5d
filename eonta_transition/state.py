"""
Region State Tracker
====================

Per-listener memory of what was last sent to the audio sink.

Design:
- Encapsulates region_id -> ActiveRegionState
- Mutable, single owner (the TransitionEngine); caller must synchronize
- Provides the debounce inputs: last progress, last volume, last edge
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from eonta_transition.effects import EffectParameters


class RegionEdge(str, Enum):
    """Last boundary crossing seen for a region."""
    ENTERING = "entering"
    EXITING = "exiting"


@dataclass
class ActiveRegionState:
    """
    What the sink was last told about one region.

    Attributes:
        region_id: Region identifier
        progress: Progress at the last effect command
        volume: Volume at the last volume command (None before playback)
        edge: Last crossing direction
        active: Region currently inside its transition band
        effect: Last effect command sent
    """
    region_id: str
    progress: float = 0.0
    volume: Optional[float] = None
    edge: RegionEdge = RegionEdge.EXITING
    active: bool = False
    effect: Optional[EffectParameters] = None

    def mark_entered(self, progress: float, volume: float, effect: Optional[EffectParameters]) -> None:
        self.progress = progress
        self.volume = volume
        self.effect = effect
        self.edge = RegionEdge.ENTERING
        self.active = True

    def mark_exited(self) -> None:
        self.progress = 0.0
        self.volume = None
        self.effect = None
        self.edge = RegionEdge.EXITING
        self.active = False


class RegionStateTracker:
    """
    Tracks ActiveRegionState per region id.

    Usage:
        tracker = RegionStateTracker()

        state = tracker.get("fountain")
        if not state.active:
            ...  # play, then state.mark_entered(...)
    """

    def __init__(self):
        """Initialize empty tracker state."""
        self._states: Dict[str, ActiveRegionState] = {}

    def get(self, region_id: str) -> ActiveRegionState:
        """Return the state for ``region_id``, creating an inactive one if new."""
        state = self._states.get(region_id)
        if state is None:
            state = ActiveRegionState(region_id=region_id)
            self._states[region_id] = state
        return state

    @property
    def states(self) -> Dict[str, ActiveRegionState]:
        return self._states

    def active_ids(self) -> List[str]:
        """Ids of regions currently marked active."""
        return [rid for rid, state in self._states.items() if state.active]

    def is_active(self, region_id: str) -> bool:
        state = self._states.get(region_id)
        return state is not None and state.active

    def reset(self) -> None:
        """Forget all regions."""
        self._states.clear()

    def prune(self, known_region_ids: Iterable[str]) -> None:
        """Drop state for regions no longer configured."""
        stale_ids = set(self._states) - set(known_region_ids)
        for region_id in stale_ids:
            del self._states[region_id]

    def __len__(self) -> int:
        return len(self._states)

    def __repr__(self) -> str:
        return f"RegionStateTracker(tracked={len(self._states)}, active={len(self.active_ids())})"
