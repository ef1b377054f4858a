"""Track lifecycle as a pure state machine."""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class TrackState(str, Enum):
    TENTATIVE = "tentative"
    CONFIRMED = "confirmed"
    LOST = "lost"
    DELETED = "deleted"


@dataclass(frozen=True)
class Lifecycle:
    state: TrackState = TrackState.TENTATIVE
    hits: int = 1
    misses: int = 0


@dataclass(frozen=True)
class LifecyclePolicy:
    confirm_hits: int = 3
    max_misses: int = 15
    delete_after_misses: int = 90


def on_match(current: Lifecycle, policy: LifecyclePolicy, reidentified: bool = False) -> Lifecycle:
    """Transition after the track was associated with a detection this frame.

    A lost track only comes back through re-identification; a plain
    positional match leaves it lost.
    """

    state = current.state
    if state is TrackState.DELETED:
        return current
    if state is TrackState.LOST:
        if not reidentified:
            return current
        return Lifecycle(TrackState.CONFIRMED, hits=current.hits + 1, misses=0)
    hits = current.hits + 1
    if state is TrackState.TENTATIVE and hits >= policy.confirm_hits:
        state = TrackState.CONFIRMED
    return Lifecycle(state, hits=hits, misses=0)


def on_miss(current: Lifecycle, policy: LifecyclePolicy) -> Lifecycle:
    """Transition after a frame with no associated detection."""

    state = current.state
    if state is TrackState.DELETED:
        return current
    misses = current.misses + 1
    if state is TrackState.TENTATIVE:
        # unconfirmed hypotheses die on the first gap
        return Lifecycle(TrackState.DELETED, hits=0, misses=misses)
    if state is TrackState.CONFIRMED:
        if misses >= policy.max_misses:
            return replace(current, state=TrackState.LOST, misses=misses)
        return replace(current, misses=misses)
    if misses >= policy.delete_after_misses:
        return replace(current, state=TrackState.DELETED, misses=misses)
    return replace(current, misses=misses)
