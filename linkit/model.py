"""Operation histories and the sequential model they are checked against."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Operation:
    """A completed operation with its invocation and response times."""

    input: Any
    call: int
    output: Any
    ret: int
    client_id: int = 0


class EventKind(enum.Enum):
    CALL = "call"
    RETURN = "return"


@dataclass(frozen=True)
class Event:
    """A call or return event; a call and its return share an ``id``."""

    kind: EventKind
    value: Any
    id: int
    client_id: int = 0


class CheckResult(str, enum.Enum):
    UNKNOWN = "Unknown"  # timed out
    OK = "Ok"
    ILLEGAL = "Illegal"


def no_partition(history: Sequence[Operation]) -> List[List[Operation]]:
    """Treat the whole history as a single partition."""
    return [list(history)]


def no_partition_event(history: Sequence[Event]) -> List[List[Event]]:
    """Treat the whole event history as a single partition."""
    return [list(history)]


def shallow_equal(state1: Any, state2: Any) -> bool:
    return state1 == state2


def default_describe_operation(inp: Any, out: Any) -> str:
    return f"{inp} -> {out}"


def default_describe_state(state: Any) -> str:
    return f"{state}"


@dataclass
class Model:
    """A sequential specification.

    ``step(state, input, output)`` returns ``(ok, new_state)`` and must not
    mutate ``state``. The partition functions split a history such that it is
    linearizable exactly when every part is.
    """

    init: Callable[[], Any]
    step: Callable[[Any, Any, Any], Tuple[bool, Any]]
    partition: Optional[Callable[[Sequence[Operation]], List[List[Operation]]]] = no_partition
    partition_event: Optional[Callable[[Sequence[Event]], List[List[Event]]]] = no_partition_event
    equal: Optional[Callable[[Any, Any], bool]] = shallow_equal
    describe_operation: Optional[Callable[[Any, Any], str]] = default_describe_operation
    describe_state: Optional[Callable[[Any], str]] = default_describe_state

    def __post_init__(self) -> None:
        if self.partition is None:
            self.partition = no_partition
        if self.partition_event is None:
            self.partition_event = no_partition_event
        if self.equal is None:
            self.equal = shallow_equal
        if self.describe_operation is None:
            self.describe_operation = default_describe_operation
        if self.describe_state is None:
            self.describe_state = default_describe_state