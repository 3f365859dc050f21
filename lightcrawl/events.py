"""Notification events emitted by the simulation.

Events are plain frozen records collected during a tick and handed out with
that tick's snapshot.  How they are shown (toasts, overlays, sounds) is up to
the consumer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from lightcrawl.game_state import Phase


@dataclass(frozen=True)
class OrbCollected:
    orb_id: int
    light_value: float
    new_total: float


@dataclass(frozen=True)
class LightDepleted:
    pass


@dataclass(frozen=True)
class PhaseChanged:
    to: Phase
    previous: Phase


GameEvent = Union[OrbCollected, LightDepleted, PhaseChanged]
