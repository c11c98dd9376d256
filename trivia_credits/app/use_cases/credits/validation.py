"""Request validation shared by the credit use cases

Turns raw wire values (user id, session size, game mode string) into domain
values, or an INVALID_INPUT error.
"""

from dataclasses import dataclass
from typing import Mapping, Optional
from libs.result import Result, Return, Error
from trivia_credits.domain.game_mode import (
    CREDIT_COSTS,
    UNLIMITED_SESSION_SIZE,
    CostPolicy,
    GameMode,
    SessionSize,
    parse_game_mode,
    session_size_from_wire,
)


@dataclass(frozen=True)
class SessionLimits:
    min_questions: int = 1
    max_questions: int = 10
    min_time_seconds: int = 30
    max_time_seconds: int = 300

    @classmethod
    def from_config(cls, config) -> "SessionLimits":
        return cls(
            min_questions=config.MIN_QUESTIONS_PER_REQUEST,
            max_questions=config.MAX_QUESTIONS_PER_REQUEST,
            min_time_seconds=config.MIN_TIME_LIMIT_SECONDS,
            max_time_seconds=config.MAX_TIME_LIMIT_SECONDS,
        )


@dataclass(frozen=True)
class SessionRequest:
    user_id: str
    session_size: SessionSize
    game_mode: GameMode


def invalid_input(message: str, reason: Optional[str] = None) -> Error:
    return Error(code="INVALID_INPUT", message=message, reason=reason)


def validate_user_id(user_id: Optional[str]) -> Optional[Error]:
    if user_id is None or not str(user_id).strip():
        return invalid_input("User id is required")
    return None


def validate_session_request(
    user_id: Optional[str],
    session_size: Optional[int],
    game_mode: Optional[str],
    limits: SessionLimits = SessionLimits(),
    policies: Optional[Mapping[GameMode, CostPolicy]] = None,
) -> Result[SessionRequest]:
    """
    Validate a play request

    Question-based modes accept min_questions..max_questions, or -1 for an
    unlimited session. Time-based modes take the session size in seconds and
    accept min_time_seconds..max_time_seconds.
    """
    error = validate_user_id(user_id)
    if error:
        return Return.err(error)

    mode = parse_game_mode(game_mode)
    if mode is None:
        return Return.err(
            invalid_input(
                f"Unknown game mode '{game_mode}'",
                reason=f"expected one of {[m.value for m in GameMode]}",
            )
        )

    if session_size is None or isinstance(session_size, bool) or not isinstance(session_size, int):
        return Return.err(invalid_input("Session size must be an integer", reason=f"session_size={session_size!r}"))

    policy = (policies or CREDIT_COSTS).get(mode, CostPolicy())

    if policy.is_time_based:
        if not limits.min_time_seconds <= session_size <= limits.max_time_seconds:
            return Return.err(
                invalid_input(
                    f"Time limit must be between {limits.min_time_seconds} and "
                    f"{limits.max_time_seconds} seconds",
                    reason=f"session_size={session_size}",
                )
            )
    elif session_size != UNLIMITED_SESSION_SIZE and not (
        limits.min_questions <= session_size <= limits.max_questions
    ):
        return Return.err(
            invalid_input(
                f"Questions per request must be between {limits.min_questions} and "
                f"{limits.max_questions}, or {UNLIMITED_SESSION_SIZE} for unlimited",
                reason=f"session_size={session_size}",
            )
        )

    return Return.ok(
        SessionRequest(
            user_id=user_id,
            session_size=session_size_from_wire(session_size),
            game_mode=mode,
        )
    )
