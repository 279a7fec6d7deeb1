"""Event models published on the pub/sub bus."""

import time
from dataclasses import dataclass, field
from enum import Enum


class MediaEventKind(Enum):
    """Playback lifecycle transitions of a media source."""
    PLAY = "play"
    PAUSE = "pause"
    ENDED = "ended"


@dataclass(frozen=True)
class MediaEvent:
    """Playback lifecycle event emitted by a media source."""
    source_id: str
    kind: MediaEventKind
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ConnectivityEvent:
    """Online/offline transition."""
    is_online: bool
    timestamp: float = field(default_factory=time.time)
