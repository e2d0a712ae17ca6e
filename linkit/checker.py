"""Linearizability checking of operation and event histories."""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from linkit.bitset import Bitset
from linkit.model import CheckResult, Event, EventKind, Model, Operation


@dataclass(frozen=True)
class _Entry:
    kind: EventKind
    value: Any
    id: int
    time: int
    client_id: int


@dataclass
class LinearizationInfo:
    """Per-partition entries and the longest partial linearizations found."""

    history: List[List[_Entry]] = field(default_factory=list)
    partial_linearizations: List[List[List[int]]] = field(default_factory=list)


class _Node:
    __slots__ = ("value", "match", "id", "next", "prev")

    def __init__(self, value: Any, match: Optional[_Node], node_id: int) -> None:
        self.value = value
        self.match = match  # a call node points at its return; returns have None
        self.id = node_id
        self.next: Optional[_Node] = None
        self.prev: Optional[_Node] = None


def _make_entries(history: Sequence[Operation]) -> List[_Entry]:
    entries: List[_Entry] = []
    for op_id, op in enumerate(history):
        entries.append(_Entry(EventKind.CALL, op.input, op_id, op.call, op.client_id))
        entries.append(_Entry(EventKind.RETURN, op.output, op_id, op.ret, op.client_id))
    # calls sort before returns that share a timestamp
    entries.sort(key=lambda e: (e.time, e.kind is EventKind.RETURN))
    return entries


def _renumber(events: Sequence[Event]) -> List[Event]:
    mapping: Dict[int, int] = {}
    renumbered = []
    for event in events:
        new_id = mapping.setdefault(event.id, len(mapping))
        renumbered.append(Event(event.kind, event.value, new_id, event.client_id))
    return renumbered


def _convert_entries(events: Sequence[Event]) -> List[_Entry]:
    # the position in the sequence stands in for time
    return [
        _Entry(event.kind, event.value, event.id, index, event.client_id)
        for index, event in enumerate(events)
    ]


def _insert_before(node: _Node, mark: Optional[_Node]) -> _Node:
    if mark is not None:
        before = mark.prev
        mark.prev = node
        node.next = mark
        if before is not None:
            node.prev = before
            before.next = node
    return node


def _length(node: Optional[_Node]) -> int:
    count = 0
    while node is not None:
        node = node.next
        count += 1
    return count


def _make_linked_entries(entries: Sequence[_Entry]) -> Optional[_Node]:
    root: Optional[_Node] = None
    returns: Dict[int, _Node] = {}
    for entry in reversed(entries):
        if entry.kind is EventKind.RETURN:
            node = _Node(entry.value, None, entry.id)
            returns[entry.id] = node
        else:
            node = _Node(entry.value, returns.get(entry.id), entry.id)
        _insert_before(node, root)
        root = node
    return root


def _lift(entry: _Node) -> None:
    entry.prev.next = entry.next
    entry.next.prev = entry.prev
    match = entry.match
    match.prev.next = match.next
    if match.next is not None:
        match.next.prev = match.prev


def _unlift(entry: _Node) -> None:
    match = entry.match
    match.prev.next = match
    if match.next is not None:
        match.next.prev = match
    entry.prev.next = entry
    entry.next.prev = entry


def _check_single(
    model: Model,
    history: Sequence[_Entry],
    compute_partial: bool,
    kill: threading.Event,
) -> Tuple[bool, List[Optional[List[int]]]]:
    entry = _make_linked_entries(history)
    n = _length(entry) // 2
    linearized = Bitset(n)
    cache: Dict[Bitset, List[Any]] = {}
    calls: List[Tuple[_Node, Any]] = []
    # longest linearizable prefix that includes each operation
    longest: List[Optional[List[int]]] = [None] * n

    state = model.init()
    head = _insert_before(_Node(None, None, -1), entry)
    while head.next is not None:
        if kill.is_set():
            return False, longest
        if entry.match is not None:
            ok, new_state = model.step(state, entry.value, entry.match.value)
            if ok:
                new_linearized = linearized.clone().set(entry.id)
                seen = cache.get(new_linearized, [])
                if not any(model.equal(new_state, old) for old in seen):
                    cache.setdefault(new_linearized, []).append(new_state)
                    calls.append((entry, state))
                    state = new_state
                    linearized.set(entry.id)
                    _lift(entry)
                    entry = head.next
                else:
                    entry = entry.next
            else:
                entry = entry.next
        else:
            if not calls:
                return False, longest
            if compute_partial:
                seq: Optional[List[int]] = None
                for node, _ in calls:
                    current = longest[node.id]
                    if current is None or len(calls) > len(current):
                        if seq is None:
                            seq = [c.id for c, _ in calls]
                        longest[node.id] = seq
            entry, state = calls.pop()
            linearized.clear(entry.id)
            _unlift(entry)
            entry = entry.next

    complete = [node.id for node, _ in calls]
    return True, [complete] * n


def _check_parallel(
    model: Model,
    histories: List[List[_Entry]],
    compute_info: bool,
    timeout: Optional[float],
) -> Tuple[CheckResult, LinearizationInfo]:
    kill = threading.Event()
    results: "queue.Queue[Tuple[bool, Optional[BaseException]]]" = queue.Queue()
    longest: List[List[Optional[List[int]]]] = [[] for _ in histories]

    def worker(index: int, subhistory: List[_Entry]) -> None:
        try:
            ok, partial = _check_single(model, subhistory, compute_info, kill)
        except BaseException as exc:  # surfaced in the calling thread
            results.put((False, exc))
            return
        longest[index] = partial
        results.put((ok, None))

    for index, subhistory in enumerate(histories):
        threading.Thread(target=worker, args=(index, subhistory), daemon=True).start()

    deadline = time.monotonic() + timeout if timeout and timeout > 0 else None
    ok = True
    timed_out = False
    count = 0

    def receive(wait: Optional[float]) -> bool:
        result, error = results.get(timeout=wait)
        if error is not None:
            kill.set()
            raise error
        return result

    while count < len(histories):
        try:
            if deadline is None:
                result = receive(None)
            else:
                result = receive(max(0.0, deadline - time.monotonic()))
        except queue.Empty:
            # a timeout may hide a violation
            timed_out = True
            kill.set()
            break
        count += 1
        ok = ok and result
        if not ok and not compute_info:
            kill.set()
            break

    info = LinearizationInfo()
    if compute_info:
        while count < len(histories):
            receive(None)
            count += 1
        partials: List[List[List[int]]] = []
        for per_partition in longest:
            unique: Dict[int, List[int]] = {}
            for seq in per_partition:
                if seq is not None:
                    unique.setdefault(id(seq), seq)
            partials.append([list(seq) for seq in unique.values()])
        info = LinearizationInfo(history=histories, partial_linearizations=partials)

    if not ok:
        return CheckResult.ILLEGAL, info
    if timed_out:
        return CheckResult.UNKNOWN, info
    return CheckResult.OK, info


def _check_events(
    model: Model, history: Sequence[Event], verbose: bool, timeout: Optional[float]
) -> Tuple[CheckResult, LinearizationInfo]:
    partitions = model.partition_event(list(history))
    entries = [_convert_entries(_renumber(sub)) for sub in partitions]
    return _check_parallel(model, entries, verbose, timeout)


def _check_operations(
    model: Model, history: Sequence[Operation], verbose: bool, timeout: Optional[float]
) -> Tuple[CheckResult, LinearizationInfo]:
    partitions = model.partition(list(history))
    entries = [_make_entries(sub) for sub in partitions]
    return _check_parallel(model, entries, verbose, timeout)


def check_operations(model: Model, history: Sequence[Operation]) -> bool:
    """Whether the operation history is linearizable."""
    result, _ = _check_operations(model, history, False, None)
    return result is CheckResult.OK


def check_operations_timeout(
    model: Model, history: Sequence[Operation], timeout: Optional[float]
) -> CheckResult:
    """Check with a timeout in seconds (0 or None for none); a timeout may miss a violation."""
    result, _ = _check_operations(model, history, False, timeout)
    return result


def check_operations_verbose(
    model: Model, history: Sequence[Operation], timeout: Optional[float]
) -> Tuple[CheckResult, LinearizationInfo]:
    """Check and also return the partial linearizations found."""
    return _check_operations(model, history, True, timeout)


def check_events(model: Model, history: Sequence[Event]) -> bool:
    """Whether the event history is linearizable."""
    result, _ = _check_events(model, history, False, None)
    return result is CheckResult.OK


def check_events_timeout(
    model: Model, history: Sequence[Event], timeout: Optional[float]
) -> CheckResult:
    """Check with a timeout in seconds (0 or None for none); a timeout may miss a violation."""
    result, _ = _check_events(model, history, False, timeout)
    return result


def check_events_verbose(
    model: Model, history: Sequence[Event], timeout: Optional[float]
) -> Tuple[CheckResult, LinearizationInfo]:
    """Check and also return the partial linearizations found."""
    return _check_events(model, history, True, timeout)