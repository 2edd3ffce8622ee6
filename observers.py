"""Read-only turn observers (analytics and logging consumers)."""

import logging
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.context import TurnRoute
from schemas.responses import TurnState

logger = logging.getLogger(__name__)


class TurnOutcome(BaseModel):
    """Immutable summary of a finished turn."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    utterance: str
    route: TurnRoute
    tier: Optional[str] = None
    manifest_size: int = 0
    item_ids: tuple[str, ...] = ()
    dropped_ids: tuple[str, ...] = ()
    refine: bool = False
    malformed: bool = False
    states: tuple[TurnState, ...] = ()
    finished_at: datetime = Field(default_factory=datetime.now)


class TurnObserver(ABC):
    """Consumer notified after each turn. It cannot change the response."""

    @abstractmethod
    def on_turn(self, outcome: TurnOutcome) -> None:
        pass


class LoggingTurnObserver(TurnObserver):
    """Logs one line per turn."""

    def on_turn(self, outcome: TurnOutcome) -> None:
        logger.info(
            f"turn session={outcome.session_id} route={outcome.route.value} "
            f"tier={outcome.tier} manifest={outcome.manifest_size} "
            f"items={len(outcome.item_ids)} dropped={len(outcome.dropped_ids)} "
            f"refine={outcome.refine}"
        )


class MetricsTurnObserver(TurnObserver):
    """In-process counters of turn outcomes."""

    def __init__(self):
        self.turns = 0
        self.routes: Counter = Counter()
        self.tiers: Counter = Counter()
        self.refines = 0
        self.dropped_ids = 0
        self.malformed = 0

    def on_turn(self, outcome: TurnOutcome) -> None:
        self.turns += 1
        self.routes[outcome.route.value] += 1
        if outcome.tier:
            self.tiers[outcome.tier] += 1
        if outcome.refine:
            self.refines += 1
        if outcome.malformed:
            self.malformed += 1
        self.dropped_ids += len(outcome.dropped_ids)

    def summary(self) -> dict:
        return {
            "turns": self.turns,
            "routes": dict(self.routes),
            "tiers": dict(self.tiers),
            "refines": self.refines,
            "dropped_ids": self.dropped_ids,
            "malformed": self.malformed,
        }
