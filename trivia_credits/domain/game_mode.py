"""Game modes and their credit cost policies

Each game mode charges credits in exactly one way: per question, a fixed
amount, or per started time interval. Policies are static configuration and
are never persisted per user.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class GameMode(str, Enum):
    """Game modes a session can be played in"""
    QUESTION_LIMITED = "question-limited"
    TIME_LIMITED = "time-limited"
    UNLIMITED = "unlimited"
    MULTIPLAYER = "multiplayer"


# Wire value meaning "no question limit". Converted to Unlimited() at the boundary.
UNLIMITED_SESSION_SIZE = -1

MAX_QUESTIONS_PER_REQUEST = 10


@dataclass(frozen=True)
class Bounded:
    """Session of a known size (questions, or seconds for time-based modes)"""
    value: int

    def resolve(self, max_questions_per_request: int) -> int:
        return self.value


@dataclass(frozen=True)
class Unlimited:
    """Session without a question limit"""

    def resolve(self, max_questions_per_request: int) -> int:
        return max_questions_per_request


SessionSize = Union[Bounded, Unlimited]


def session_size_from_wire(raw: int) -> SessionSize:
    if raw == UNLIMITED_SESSION_SIZE:
        return Unlimited()
    return Bounded(raw)


def session_size_to_wire(size: SessionSize) -> int:
    if isinstance(size, Unlimited):
        return UNLIMITED_SESSION_SIZE
    return size.value


@dataclass(frozen=True)
class TimeIntervalCost:
    credits_per_interval: int
    interval_seconds: int


@dataclass(frozen=True)
class CostPolicy:
    """
    How a game mode is charged

    Exactly one of cost_per_question, fixed_cost and cost_per_time_interval
    applies. When none is set the mode is charged one credit per question.
    """
    cost_per_question: Optional[float] = None
    fixed_cost: Optional[int] = None
    cost_per_time_interval: Optional[TimeIntervalCost] = None
    charge_after_session_ends: bool = False
    only_primary_player_pays: bool = False

    @property
    def is_time_based(self) -> bool:
        return self.cost_per_time_interval is not None


# 30 seconds = 5 credits, 60 seconds = 10 credits, 120 seconds = 20 credits
TIME_LIMITED_CREDITS_PER_30_SECONDS = 5

CREDIT_COSTS: dict[GameMode, CostPolicy] = {
    GameMode.QUESTION_LIMITED: CostPolicy(cost_per_question=1),
    GameMode.TIME_LIMITED: CostPolicy(
        cost_per_time_interval=TimeIntervalCost(
            credits_per_interval=TIME_LIMITED_CREDITS_PER_30_SECONDS,
            interval_seconds=30,
        ),
    ),
    GameMode.UNLIMITED: CostPolicy(cost_per_question=1),
    GameMode.MULTIPLAYER: CostPolicy(cost_per_question=1, only_primary_player_pays=True),
}


def parse_game_mode(raw: Union[str, GameMode, None]) -> Optional[GameMode]:
    """Return the GameMode for a wire value, or None if it is unknown"""
    if raw is None:
        return GameMode.QUESTION_LIMITED
    if isinstance(raw, GameMode):
        return raw
    try:
        return GameMode(raw.strip().lower())
    except (ValueError, AttributeError):
        return None
