"""Cost Calculator

Maps a session size and game mode to the number of credits it costs.
Used for both the pre-flight check and the actual deduction.
"""

import math
from decimal import Decimal
from typing import Mapping, Optional
from trivia_credits.domain.game_mode import (
    CREDIT_COSTS,
    MAX_QUESTIONS_PER_REQUEST,
    CostPolicy,
    GameMode,
    SessionSize,
)


def required_credits(
    session_size: SessionSize,
    mode: GameMode,
    policies: Optional[Mapping[GameMode, CostPolicy]] = None,
    max_questions_per_request: int = MAX_QUESTIONS_PER_REQUEST,
) -> int:
    """
    Credits required to play a session

    Args:
        session_size: Bounded(n) questions (seconds for time-based modes) or Unlimited()
        mode: Game mode selecting the cost policy
        policies: Cost policies per mode (defaults to CREDIT_COSTS)
        max_questions_per_request: Size an Unlimited session is charged as

    Returns:
        Non-negative integer credit amount
    """
    policy = (policies or CREDIT_COSTS).get(mode, CostPolicy())
    size = max(0, session_size.resolve(max_questions_per_request))

    if policy.cost_per_time_interval is not None:
        interval = policy.cost_per_time_interval
        buckets = math.ceil(size / interval.interval_seconds)
        return buckets * interval.credits_per_interval

    if policy.fixed_cost is not None:
        return max(0, policy.fixed_cost)

    cost_per_question = policy.cost_per_question if policy.cost_per_question is not None else 1
    # exact product: 30 questions at 0.1 cost 3, not 4
    return max(0, math.ceil(Decimal(size) * Decimal(str(cost_per_question))))
