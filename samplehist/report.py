"""Rank sampled values and render them as a table or JSON.

Frequencies are in-sample: the share of a reservoir's occupied slots holding a
value, which estimates that value's share of the whole input for the key.
"""

from __future__ import annotations

import json
from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any

import pandas as pd

from samplehist.data.records import Key
from samplehist.reservoir.base import Reservoir
from samplehist.sampler import KeyedReservoirSet

MISSING_LABEL = "<no value>"


@dataclass
class ValueFrequency:
    """One sampled value and its in-sample frequency."""

    val: str
    freq: float


def histogram(reservoir: Reservoir) -> dict[Any, float]:
    """Map each sampled value to its share of the occupied slots."""
    if not reservoir.slots:
        return {}
    size = len(reservoir.slots)
    return {value: count / size for value, count in Counter(reservoir.slots).items()}


def histogram_top_k(reservoir: Reservoir | None, n: int) -> list[ValueFrequency]:
    """Return the *n* most frequent sampled values, ties broken by value (descending)."""
    if reservoir is None:
        return []
    ranked = sorted(histogram(reservoir).items(), key=lambda item: (item[1], item[0]), reverse=True)
    return [ValueFrequency(val=value, freq=freq) for value, freq in ranked[:n]]


def key_label(key: Key) -> str:
    return "line" if key is None else f"field {key}"


def top_k_frame(result: KeyedReservoirSet, keys: list[Key], n: int) -> pd.DataFrame:
    """Build the report table: one (frequency, value) column pair per key.

    The body always has *n* rows, padded with blanks. When any key has missing
    fields, a blank row and a row of missing counts follow.
    """
    columns: dict[str, list[str]] = {}
    for key in keys:
        top = histogram_top_k(result.get(key), n)
        padding = [""] * (n - len(top))
        label = key_label(key)
        columns[f"freq ({label})"] = [f"{vf.freq:.5f}" for vf in top] + padding
        columns[f"value ({label})"] = [str(vf.val) for vf in top] + padding
    frame = pd.DataFrame(columns)

    if any(result.missing(key) for key in keys):
        footer: list[str] = []
        for key in keys:
            n_missing = result.missing(key)
            footer += [str(n_missing), MISSING_LABEL] if n_missing else ["", ""]
        extra = pd.DataFrame([[""] * len(footer), footer], columns=frame.columns)
        frame = pd.concat([frame, extra], ignore_index=True)
    return frame


def render_table(result: KeyedReservoirSet, keys: list[Key], n: int) -> str:
    return top_k_frame(result, keys, n).to_string(index=False)


def render_json(result: KeyedReservoirSet, keys: list[Key], n: int) -> str:
    """Render the report as pretty-printed JSON.

    Lists are aligned with ``fields`` (``null`` stands for whole-line sampling).
    """
    payload = {
        "fields": list(keys),
        "top_k_fields": [[asdict(vf) for vf in histogram_top_k(result.get(key), n)] for key in keys],
        "observed_counts": [result.count(key) for key in keys],
        "missing_field_counts": [result.missing(key) for key in keys],
    }
    return json.dumps(payload, indent=2)
