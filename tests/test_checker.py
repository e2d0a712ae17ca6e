import time

import pytest

from linkit.checker import (
    check_events,
    check_events_timeout,
    check_events_verbose,
    check_operations,
    check_operations_timeout,
    check_operations_verbose,
)
from linkit.model import CheckResult, Event, EventKind, Model, Operation


def _register_step(state, inp, out):
    kind, value = inp
    if kind == "put":
        return True, value
    return out == state, state


REGISTER = Model(init=lambda: 0, step=_register_step)

PUT = ("put",)
GET = ("get", None)

LEGAL = [
    Operation(("put", 100), 0, None, 100, client_id=0),
    Operation(GET, 25, 100, 75, client_id=1),
    Operation(GET, 30, 0, 60, client_id=2),
]

ILLEGAL = [
    Operation(("put", 200), 0, None, 100, client_id=0),
    Operation(GET, 10, 200, 30, client_id=1),
    Operation(GET, 40, 0, 90, client_id=2),
]


def _replays(model, ops, linearization):
    state = model.init()
    for op_id in linearization:
        ok, state = model.step(state, ops[op_id].input, ops[op_id].output)
        if not ok:
            return False
    return True


def test_legal_register_history():
    assert check_operations(REGISTER, LEGAL)


def test_illegal_register_history():
    assert not check_operations(REGISTER, ILLEGAL)


def test_empty_history_is_linearizable():
    assert check_operations(REGISTER, [])
    assert check_events(REGISTER, [])


def test_timeout_variant_results():
    assert check_operations_timeout(REGISTER, LEGAL, 0) is CheckResult.OK
    assert check_operations_timeout(REGISTER, ILLEGAL, None) is CheckResult.ILLEGAL


def test_verbose_legal_gives_full_linearization():
    result, info = check_operations_verbose(REGISTER, LEGAL, 0)
    assert result is CheckResult.OK
    assert len(info.history) == 1
    assert len(info.history[0]) == 2 * len(LEGAL)
    partials = info.partial_linearizations[0]
    assert len(partials) == 1
    assert sorted(partials[0]) == [0, 1, 2]
    assert partials[0] == [2, 0, 1]
    assert _replays(REGISTER, LEGAL, partials[0])


def test_verbose_illegal_partials_are_valid_prefixes():
    result, info = check_operations_verbose(REGISTER, ILLEGAL, 0)
    assert result is CheckResult.ILLEGAL
    partials = info.partial_linearizations[0]
    assert partials
    for lin in partials:
        assert len(lin) < len(ILLEGAL)
        assert len(set(lin)) == len(lin)
        assert _replays(REGISTER, ILLEGAL, lin)


def test_verbose_history_sorted_with_calls_first():
    ops = [
        Operation(("put", 1), 0, None, 5),
        Operation(GET, 5, 1, 10),
    ]
    _, info = check_operations_verbose(REGISTER, ops, 0)
    times = [(e.time, e.kind is EventKind.RETURN) for e in info.history[0]]
    assert times == sorted(times)


def test_non_verbose_info_is_empty():
    _, info = check_operations_verbose(REGISTER, LEGAL, 0)
    assert info.history
    result = check_operations_timeout(REGISTER, LEGAL, 0)
    assert result is CheckResult.OK


def _events(ops_order):
    return [Event(kind, value, op_id, client) for kind, value, op_id, client in ops_order]


LEGAL_EVENTS = _events(
    [
        (EventKind.CALL, ("put", 100), 10, 0),
        (EventKind.CALL, GET, 20, 1),
        (EventKind.CALL, GET, 30, 2),
        (EventKind.RETURN, 0, 30, 2),
        (EventKind.RETURN, 100, 20, 1),
        (EventKind.RETURN, None, 10, 0),
    ]
)

ILLEGAL_EVENTS = _events(
    [
        (EventKind.CALL, ("put", 200), 7, 0),
        (EventKind.CALL, GET, 8, 1),
        (EventKind.RETURN, 200, 8, 1),
        (EventKind.CALL, GET, 9, 2),
        (EventKind.RETURN, 0, 9, 2),
        (EventKind.RETURN, None, 7, 0),
    ]
)


def test_events_legal_and_illegal():
    assert check_events(REGISTER, LEGAL_EVENTS)
    assert not check_events(REGISTER, ILLEGAL_EVENTS)
    assert check_events_timeout(REGISTER, ILLEGAL_EVENTS, 0) is CheckResult.ILLEGAL


def test_events_are_renumbered():
    result, info = check_events_verbose(REGISTER, LEGAL_EVENTS, 0)
    assert result is CheckResult.OK
    ids = sorted({e.id for e in info.history[0]})
    assert ids == list(range(3))
    assert [e.time for e in info.history[0]] == list(range(len(LEGAL_EVENTS)))


def _kv_step(state, inp, out):
    kind, key, value = inp
    if kind == "put":
        return True, value
    return out == state, state


def _kv_partition(history):
    groups = {}
    for op in history:
        groups.setdefault(op.input[1], []).append(op)
    return list(groups.values())


KV = Model(init=lambda: "", step=_kv_step, partition=_kv_partition)


def test_partitioned_model():
    ops = [
        Operation(("put", "a", "x"), 0, None, 10),
        Operation(("put", "b", "y"), 0, None, 10),
        Operation(("get", "a", None), 20, "x", 30),
        Operation(("get", "b", None), 20, "y", 30),
    ]
    result, info = check_operations_verbose(KV, ops, 0)
    assert result is CheckResult.OK
    assert len(info.history) == 2
    bad = ops[:3] + [Operation(("get", "b", None), 20, "x", 30)]
    assert not check_operations(KV, bad)


def test_timeout_gives_unknown():
    def slow_step(state, inp, out):
        time.sleep(0.2)
        return _register_step(state, inp, out)

    model = Model(init=lambda: 0, step=slow_step)
    assert check_operations_timeout(model, LEGAL, 0.01) is CheckResult.UNKNOWN


def test_step_error_propagates():
    def broken(state, inp, out):
        raise ValueError("bad step")

    model = Model(init=lambda: 0, step=broken)
    with pytest.raises(ValueError):
        check_operations(model, LEGAL)