"""Telegraphy engine - clock, codec and protocol state machine."""

from .clock import Clock
from .codec import (
    digits_to_integer,
    integer_to_digits,
    to_fixed_hex,
    random_integer,
)
from .classifier import Role, RoleDecision, DigitReading, RoleClassifier
from .protocol import (
    TelegraphEngine,
    ProtocolState,
    SendResult,
    ReceiveResult,
    CycleResult,
)
from .session import TelegraphSession, SessionMetrics
from .sink import ResultSink, CallbackSink, HttpResultSink

__all__ = [
    "Clock",
    "digits_to_integer",
    "integer_to_digits",
    "to_fixed_hex",
    "random_integer",
    "Role",
    "RoleDecision",
    "DigitReading",
    "RoleClassifier",
    "TelegraphEngine",
    "ProtocolState",
    "SendResult",
    "ReceiveResult",
    "CycleResult",
    "TelegraphSession",
    "SessionMetrics",
    "ResultSink",
    "CallbackSink",
    "HttpResultSink",
]
