# src/polkaregistry/runtime/metrics.py
from __future__ import annotations

"""Block-weight metrics fed by charge_weight.

Counters, per dispatch class:
  weight_admitted_<class>_total      units of work admitted
  weight_admitted_<class>_weight     weight charged, base extrinsic included
  weight_rejected_<class>_<reason>   rejections by reason

Gauges:
  normal_fullness_ppb                normal-class share of its limit after the last charge
  normal_fullness_target_ppb         TARGET_BLOCK_FULLNESS
  normal_fullness_above_target       1 while the last charge left the block above target

Recording is a no-op unless POLKAREGISTRY_METRICS_ENABLED is truthy.
"""

import os
import threading
from typing import Dict

from polkaregistry.runtime.perbill import Perbill

_lock = threading.Lock()
_counters: Dict[str, int] = {}
_gauges: Dict[str, int] = {}


def metrics_enabled() -> bool:
    v = (os.environ.get("POLKAREGISTRY_METRICS_ENABLED") or "").strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def record_admission(dispatch_class: str, weight: int) -> None:
    if not metrics_enabled():
        return
    with _lock:
        k = f"weight_admitted_{dispatch_class}"
        _counters[f"{k}_total"] = _counters.get(f"{k}_total", 0) + 1
        _counters[f"{k}_weight"] = _counters.get(f"{k}_weight", 0) + int(weight)


def record_rejection(dispatch_class: str, reason: str) -> None:
    if not metrics_enabled():
        return
    with _lock:
        k = f"weight_rejected_{dispatch_class}_{reason}"
        _counters[k] = _counters.get(k, 0) + 1


def set_block_fullness(fullness: Perbill, target: Perbill) -> None:
    if not metrics_enabled():
        return
    with _lock:
        _gauges["normal_fullness_ppb"] = fullness.deconstruct()
        _gauges["normal_fullness_target_ppb"] = target.deconstruct()
        _gauges["normal_fullness_above_target"] = 1 if fullness > target else 0


def reset() -> None:
    with _lock:
        _counters.clear()
        _gauges.clear()


def snapshot() -> dict:
    with _lock:
        return {"counters": dict(_counters), "gauges": dict(_gauges)}


def format_prometheus(prefix: str = "polkaregistry_") -> str:
    pre = str(prefix or "").strip() or "polkaregistry_"
    snap = snapshot()
    lines: list[str] = []
    for name, v in sorted(snap["counters"].items()):
        lines.append(f"# TYPE {pre}{name} counter")
        lines.append(f"{pre}{name} {int(v)}")
    for name, v in sorted(snap["gauges"].items()):
        lines.append(f"# TYPE {pre}{name} gauge")
        lines.append(f"{pre}{name} {int(v)}")
    return "\n".join(lines) + "\n"
