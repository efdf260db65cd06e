"""
Per-file state tracking.

`WorkUnit` carries one discovered file through discovery, probing, classification
and its terminal outcome. `ProtocolState` is the finer-grained state of the safe
replacement protocol for files that get the TRANSCODE verdict; its transitions are
checked so no stage can run before the previous one completed.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .media import DiscoveredFile, MediaProfile
from .plan import Decision


class LifecycleState(Enum):
    DISCOVERED = "discovered"
    PROBED = "probed"
    CLASSIFIED = "classified"
    SKIPPED = "skipped"
    REMUXED_IN_PLACE = "remuxed_in_place"
    TRANSCODED = "transcoded"
    FINALIZED = "finalized"
    FAILED = "failed"


class ProtocolState(Enum):
    START = "start"
    VIDEO_READY = "video_ready"
    AUDIO_READY = "audio_ready"
    MUXED = "muxed"
    DECIDED = "decided"
    COMMITTED = "committed"
    FAILED = "failed"


_PROTOCOL_ORDER = [
    ProtocolState.START,
    ProtocolState.VIDEO_READY,
    ProtocolState.AUDIO_READY,
    ProtocolState.MUXED,
    ProtocolState.DECIDED,
    ProtocolState.COMMITTED,
]

_LIFECYCLE_TRANSITIONS = {
    LifecycleState.DISCOVERED: {LifecycleState.PROBED, LifecycleState.SKIPPED, LifecycleState.FAILED},
    LifecycleState.PROBED: {LifecycleState.CLASSIFIED, LifecycleState.FAILED},
    LifecycleState.CLASSIFIED: {
        LifecycleState.SKIPPED,
        LifecycleState.REMUXED_IN_PLACE,
        LifecycleState.TRANSCODED,
        LifecycleState.FINALIZED,
        LifecycleState.FAILED,
    },
    LifecycleState.SKIPPED: set(),
    LifecycleState.REMUXED_IN_PLACE: {LifecycleState.FINALIZED, LifecycleState.FAILED},
    LifecycleState.TRANSCODED: {LifecycleState.FINALIZED, LifecycleState.FAILED},
    LifecycleState.FINALIZED: set(),
    LifecycleState.FAILED: set(),
}


class IllegalTransition(RuntimeError):
    """A programming error: a stage ran out of order."""


class ProtocolTracker:
    """Enforces the strict START -> ... -> COMMITTED order; FAILED is reachable from anywhere."""

    def __init__(self):
        self.state = ProtocolState.START
        self.history: List[ProtocolState] = [ProtocolState.START]

    def advance(self, new_state: ProtocolState):
        if self.state in (ProtocolState.COMMITTED, ProtocolState.FAILED):
            raise IllegalTransition(f"Protocol already ended in {self.state.name}")
        if new_state is not ProtocolState.FAILED:
            expected = _PROTOCOL_ORDER[_PROTOCOL_ORDER.index(self.state) + 1]
            if new_state is not expected:
                raise IllegalTransition(
                    f"Cannot go from {self.state.name} to {new_state.name}; expected {expected.name}"
                )
        self.state = new_state
        self.history.append(new_state)

    def fail(self):
        if self.state not in (ProtocolState.COMMITTED, ProtocolState.FAILED):
            self.advance(ProtocolState.FAILED)


@dataclass
class WorkUnit:
    """
    One file's pass through the pipeline.

    Attributes:
        source: The discovered file.
        profile: Set once probing succeeded.
        decision: Set once classified.
        final_path: The committed output, once finalized.
        original_size / final_size: Byte sizes for the success narration.
        error_stage / error_message: Set when the unit failed.
    """

    source: DiscoveredFile
    state: LifecycleState = LifecycleState.DISCOVERED
    profile: Optional[MediaProfile] = None
    decision: Optional[Decision] = None
    final_path: Optional[Path] = None
    original_size: int = 0
    final_size: int = 0
    error_stage: Optional[str] = None
    error_message: Optional[str] = None
    history: List[LifecycleState] = field(default_factory=lambda: [LifecycleState.DISCOVERED])

    def transition(self, new_state: LifecycleState):
        if new_state not in _LIFECYCLE_TRANSITIONS[self.state]:
            raise IllegalTransition(f"{self.source.path.name}: {self.state.name} -> {new_state.name}")
        self.state = new_state
        self.history.append(new_state)

    def fail(self, stage: str, message: str):
        self.error_stage = stage
        self.error_message = message
        # FAILED is reachable from every state, including ones with no forward edge.
        if self.state is not LifecycleState.FAILED:
            self.state = LifecycleState.FAILED
            self.history.append(LifecycleState.FAILED)

    @property
    def is_terminal(self) -> bool:
        return not _LIFECYCLE_TRANSITIONS[self.state]
