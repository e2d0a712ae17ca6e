# linkit

Tools for testing distributed systems:

- a **linearizability checker** for histories of concurrent operations
  (`linkit.checker`, with models and histories in `linkit.model`),
- an **HTML visualization** of the partial linearizations the checker found
  (`linkit.visualization`, `linkit.page`),
- a small **persister** that keeps a server's persisted state and snapshot
  together (`linkit.persister`),
- a **shard configuration** type that assigns shards to replica groups and
  keeps them balanced (`linkit.shardcfg`).

## Installation

```
pip install .
```

Tests need the `test` extra:

```
pip install ".[test]"
pytest
```

## Checking a history

Describe the system as a `Model`: an `init` function giving the initial state
and a `step(state, input, output)` function that returns `(ok, new_state)`,
saying whether an operation with that input and output may be applied to the
state and what the state becomes. `step` must not mutate the state it is
given.

```python
from linkit.model import Model, Operation
from linkit.checker import check_operations

# A single register: input is ("put", v) or ("get", None).
def step(state, inp, out):
    kind, value = inp
    if kind == "put":
        return True, value
    return out == state, state

register = Model(init=lambda: 0, step=step)

history = [
    Operation(input=("put", 1), call=0, output=None, ret=10, client_id=0),
    Operation(input=("get", None), call=5, output=1, ret=15, client_id=1),
]

assert check_operations(register, history)
```

An `Operation` holds its `input`, invocation time `call`, `output`,
response time `ret` and an optional `client_id` (used only for drawing).

Histories can also be given as a sequence of `Event`s, each with a `kind`
(`EventKind.CALL` or `EventKind.RETURN`), a `value`, an `id` shared by a call
and its return, and an optional `client_id`; check them with `check_events`.
Their order in the sequence stands for time.

`check_operations_timeout` and `check_events_timeout` take a timeout in
seconds (`0` or `None` means none) and return a `CheckResult`: `OK`,
`ILLEGAL`, or `UNKNOWN` if time ran out. A timed-out check may have missed a
violation. The `*_verbose` variants take the same timeout and return the
result together with a `LinearizationInfo`, which holds the longest partial
linearizations found for each partition.

A model may split a history into independent partitions (for example, one per
key) with `partition` and `partition_event`; partitions are checked in
parallel threads. By default the whole history is one partition
(`no_partition`, `no_partition_event`), states are compared with
`shallow_equal` (`==`), and operations and states are described with
`default_describe_operation` (`"input -> output"`) and
`default_describe_state`.

## Visualizing a result

```python
from linkit.checker import check_operations_verbose
from linkit.page import visualize_path

result, info = check_operations_verbose(register, history, 0)
visualize_path(register, info, "history.html")
```

Open the file in a browser to see every operation on its client's row, the
partial linearizations found, and the operations that could not legally be
linearized next. Hovering over an operation shows the model state before and
after it.

- `linkit.visualization.compute_visualization_data(model, info)` replays each
  partial linearization through the model and returns a list of
  `PartitionVisualizationData` (with `HistoryElement`s and
  `LinearizationStep`s); it raises `RuntimeError` if the model rejects a step.
- `linkit.visualization.visualization_json(data)` turns that data into
  compact JSON safe to embed in a script element.
- `linkit.page.render_page(json_data)` returns the complete HTML page;
  `linkit.page.visualize(model, info, output)` writes it to a text stream.

## Persisting state

```python
from linkit.persister import Persister

p = Persister()
p.save(b"raft state", b"snapshot")
assert p.read_raft_state() == b"raft state"
assert p.snapshot_size() == 8
fresh = p.copy()
```

`save` stores state and snapshot together under one lock; `None` is stored as
empty bytes. The persister keeps everything in memory; it does not write to
disk.

## Shard configurations

```python
from linkit.shardcfg import ShardConfig, key_to_shard, from_string

cfg = ShardConfig()
cfg.join_balance({1: ["x", "y", "z"]})
cfg.join_balance({2: ["a", "b", "c"]})
cfg.check_config([1, 2])

gid, servers, ok = cfg.gid_servers(key_to_shard("some key"))
same = from_string(cfg.to_json())
```

There are `N_SHARDS` (12) shards; `key_to_shard` maps a key to one with
32-bit FNV-1a. `join` and `leave` change the groups and bump `num`;
`rebalance` (or `join_balance` / `leave_balance`) moves shards so that no
group holds more than one shard more than another. `is_member` tells whether a
group is assigned any shard. Invalid changes, such as joining a group twice,
placing a server in two groups or leaving a group that is not present, raise
`ShardConfigError`, as does `check_config` when the configuration does not
have exactly the given groups, leaves a shard unassigned or is unbalanced.

## What it does not do

linkit provides the checking and bookkeeping pieces only. It contains no
consensus implementation, no network or RPC layer, and no key/value or
sharded storage service; it has no command-line program.