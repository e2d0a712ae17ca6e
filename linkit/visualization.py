"""Data behind the history visualization: operations, partial linearizations and states."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from linkit.checker import LinearizationInfo
from linkit.model import EventKind, Model


@dataclass
class HistoryElement:
    """One operation as drawn: who issued it, when, and what it did."""

    client_id: int = 0
    start: int = 0
    end: int = 0
    description: str = ""

    def to_json_obj(self) -> Dict[str, Any]:
        return {
            "ClientId": self.client_id,
            "Start": self.start,
            "End": self.end,
            "Description": self.description,
        }


@dataclass(frozen=True)
class LinearizationStep:
    """An operation in a partial linearization and the state after it."""

    index: int
    state_description: str

    def to_json_obj(self) -> Dict[str, Any]:
        return {"Index": self.index, "StateDescription": self.state_description}


@dataclass
class PartitionVisualizationData:
    """Visualization data for a single partition of the history.

    ``largest`` maps an operation index to the position, in
    ``partial_linearizations``, of the longest linearization containing it.
    """

    history: List[HistoryElement] = field(default_factory=list)
    partial_linearizations: List[List[LinearizationStep]] = field(default_factory=list)
    largest: Dict[int, int] = field(default_factory=dict)

    def to_json_obj(self) -> Dict[str, Any]:
        largest = {str(k): v for k, v in self.largest.items()}
        return {
            "History": [el.to_json_obj() for el in self.history],
            "PartialLinearizations": [
                [step.to_json_obj() for step in lin] for lin in self.partial_linearizations
            ],
            "Largest": {k: largest[k] for k in sorted(largest)},
        }


def _partition_data(
    model: Model, entries: Sequence[Any], partials: Sequence[Sequence[int]]
) -> PartitionVisualizationData:
    history = [HistoryElement() for _ in range(len(entries) // 2)]
    call_value: Dict[int, Any] = {}
    return_value: Dict[int, Any] = {}
    for entry in entries:
        element = history[entry.id]
        if entry.kind is EventKind.CALL:
            element.client_id = entry.client_id
            element.start = entry.time
            call_value[entry.id] = entry.value
        else:
            element.end = entry.time
            element.description = model.describe_operation(call_value.get(entry.id), entry.value)
            return_value[entry.id] = entry.value

    largest_index: Dict[int, int] = {}
    largest_size: Dict[int, int] = {}
    linearizations: List[List[LinearizationStep]] = []
    ordered = sorted(partials, key=len, reverse=True)
    for position, partial in enumerate(ordered):
        steps: List[LinearizationStep] = []
        state = model.init()
        for hist_id in partial:
            ok, state = model.step(state, call_value.get(hist_id), return_value.get(hist_id))
            if not ok:
                raise RuntimeError(
                    "valid partial linearization returned non-ok result from model step"
                )
            steps.append(LinearizationStep(hist_id, model.describe_state(state)))
            if largest_size.get(hist_id, 0) < len(partial):
                largest_size[hist_id] = len(partial)
                largest_index[hist_id] = position
        linearizations.append(steps)

    return PartitionVisualizationData(history, linearizations, largest_index)


def compute_visualization_data(
    model: Model, info: LinearizationInfo
) -> List[PartitionVisualizationData]:
    """Replay each partial linearization through the model and describe every step."""
    return [
        _partition_data(model, entries, partials)
        for entries, partials in zip(info.history, info.partial_linearizations)
    ]


_HTML_SAFE = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def visualization_json(data: Sequence[PartitionVisualizationData]) -> str:
    """Compact JSON for the visualization, safe to embed in an HTML script."""
    text = json.dumps(
        [partition.to_json_obj() for partition in data],
        separators=(",", ":"),
        ensure_ascii=False,
    )
    return "".join(_HTML_SAFE.get(ch, ch) for ch in text)