# src/polkaregistry/runtime/weight_admission.py
from __future__ import annotations

"""Per-class weight admission.

The block overhead (`base_block`) is charged against every class before any
work is measured, and every unit of work pays `base_extrinsic` on top of its
own weight. For a normal or operational unit of work:

  1. class bound:  base_block + class_so_far + candidate + base_extrinsic <= max_total(class)
  2. block bound:  if the block total (all classes, mandatory included) would
     pass max_block, the unit is admitted only when the class total with
     overhead still fits the class's reserve.

`admit()` only sees one class counter, so it applies the class bound.
`admit_against()` and `charge_weight()` take the block's ConsumedWeight and
apply both. Mandatory work is always admitted and still accounted.

Normal's max_total is 75% of the block and its reserve is zero; operational's
max_total is the whole block and its reserve is the remaining 25%. Counters
are kept per class, so normal work can never borrow the operational reserve.

`charge_weight()` does not retry; deferring the work is the caller's decision.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, Optional

from polkaregistry.runtime import metrics
from polkaregistry.runtime.errors import CapacityExceeded
from polkaregistry.runtime.fee import TARGET_BLOCK_FULLNESS
from polkaregistry.runtime.perbill import Perbill
from polkaregistry.runtime.runtime_logging import log_event
from polkaregistry.runtime.weights import (
    WEIGHT_MAX,
    BlockLength,
    BlockWeights,
    DispatchClass,
    as_weight,
)

_log = logging.getLogger("polkaregistry.weights")


@dataclass(frozen=True)
class WeightVerdict:
    ok: bool
    code: str
    reason: str
    details: Optional[Dict[str, Any]] = None

    def __iter__(self) -> Iterator[Any]:
        """Allow `ok, details = admit(...)` unpacking."""
        yield self.ok
        yield self.details

    @staticmethod
    def admit() -> "WeightVerdict":
        return WeightVerdict(True, "ok", "admitted", None)

    @staticmethod
    def reject(code: str, reason: str, details: Optional[Dict[str, Any]] = None) -> "WeightVerdict":
        return WeightVerdict(False, code, reason, details)


def _class_bound(limits: BlockWeights, cls: DispatchClass, class_after: int) -> Optional[WeightVerdict]:
    max_total = limits.class_limit(cls)
    if max_total is None:
        return None
    used = limits.base_block + class_after
    if used <= max_total:
        return None
    return WeightVerdict.reject(
        "capacity_exceeded",
        "class_ceiling_reached",
        {
            "dispatch_class": cls.value,
            "needed": used,
            "allowed": max_total,
            "base_block": limits.base_block,
        },
    )


def admit(
    limits: BlockWeights,
    dispatch_class: DispatchClass,
    weight_so_far_in_class: int,
    candidate_weight: int,
) -> WeightVerdict:
    cls = DispatchClass.parse(dispatch_class)
    so_far = as_weight(weight_so_far_in_class, name="weight_so_far_in_class")
    candidate = as_weight(candidate_weight, name="candidate_weight")

    if cls is DispatchClass.MANDATORY:
        return WeightVerdict.admit()

    rej = _class_bound(limits, cls, so_far + candidate + limits.base_extrinsic(cls))
    return rej or WeightVerdict.admit()


@dataclass(frozen=True)
class ConsumedWeight:
    """Independent running totals for one block, one per dispatch class."""

    normal: int = 0
    operational: int = 0
    mandatory: int = 0

    @staticmethod
    def for_new_block(limits: BlockWeights) -> "ConsumedWeight":
        # Block execution overhead is unskippable and is accounted with mandatory work.
        return ConsumedWeight(mandatory=int(limits.base_block))

    def get(self, dispatch_class: DispatchClass) -> int:
        return int(getattr(self, DispatchClass.parse(dispatch_class).value))

    @property
    def total(self) -> int:
        return min(WEIGHT_MAX, self.normal + self.operational + self.mandatory)

    def accrue(self, dispatch_class: DispatchClass, weight: int) -> "ConsumedWeight":
        cls = DispatchClass.parse(dispatch_class)
        w = as_weight(weight)
        return replace(self, **{cls.value: min(WEIGHT_MAX, self.get(cls) + w)})

    def to_json(self) -> Dict[str, int]:
        return {
            "normal": self.normal,
            "operational": self.operational,
            "mandatory": self.mandatory,
            "total": self.total,
        }


def admit_against(
    limits: BlockWeights,
    consumed: ConsumedWeight,
    dispatch_class: DispatchClass,
    candidate_weight: int,
) -> WeightVerdict:
    """Admission against the running totals of a block."""
    cls = DispatchClass.parse(dispatch_class)
    candidate = as_weight(candidate_weight, name="candidate_weight")

    if cls is DispatchClass.MANDATORY:
        return WeightVerdict.admit()

    extrinsic = candidate + limits.base_extrinsic(cls)
    class_after = consumed.get(cls) + extrinsic

    rej = _class_bound(limits, cls, class_after)
    if rej is not None:
        return rej

    total_after = consumed.total + extrinsic
    if total_after <= limits.max_block:
        return WeightVerdict.admit()

    # Over the block: only the class's own reserve is left.
    reserved = limits.headroom(cls)
    used = limits.base_block + class_after
    if used <= reserved:
        return WeightVerdict.admit()

    return WeightVerdict.reject(
        "capacity_exceeded",
        "block_weight_reached",
        {
            "dispatch_class": cls.value,
            "needed": total_after,
            "allowed": limits.max_block,
            "class_used": used,
            "reserved": reserved,
        },
    )


def normal_fullness(limits: BlockWeights, consumed: ConsumedWeight) -> Perbill:
    """Share of the normal class limit in use; the fee multiplier steers this to TARGET_BLOCK_FULLNESS."""
    max_total = limits.class_limit(DispatchClass.NORMAL) or limits.max_block
    return Perbill.from_rational(min(consumed.normal, max_total), max_total)


def charge_weight(
    limits: BlockWeights,
    consumed: ConsumedWeight,
    dispatch_class: DispatchClass,
    candidate_weight: int,
) -> ConsumedWeight:
    """Admit one unit of work and account it, base extrinsic weight included.

    Raises:
        CapacityExceeded: the class or the block has no room left for this unit of work.
    """
    cls = DispatchClass.parse(dispatch_class)
    verdict = admit_against(limits, consumed, cls, candidate_weight)
    if not verdict.ok:
        metrics.record_rejection(cls.value, verdict.reason)
        log_event(_log, "weight_rejected", level=logging.DEBUG, **(verdict.details or {}))
        raise CapacityExceeded(dispatch_class=cls.value, reason=verdict.reason, details=verdict.details)

    extrinsic = int(candidate_weight) + limits.base_extrinsic(cls)
    after = consumed.accrue(cls, extrinsic)

    metrics.record_admission(cls.value, extrinsic)
    metrics.set_block_fullness(normal_fullness(limits, after), TARGET_BLOCK_FULLNESS)
    return after


def admit_length(
    limits: BlockLength,
    dispatch_class: DispatchClass,
    length_so_far_in_class: int,
    candidate_len: int,
) -> WeightVerdict:
    cls = DispatchClass.parse(dispatch_class)
    so_far = as_weight(length_so_far_in_class, name="length_so_far_in_class")
    candidate = as_weight(candidate_len, name="candidate_len")

    allowed = limits.get(cls)
    if so_far + candidate <= allowed:
        return WeightVerdict.admit()
    return WeightVerdict.reject(
        "length_exceeded",
        "class_length_reached",
        {"dispatch_class": cls.value, "needed": so_far + candidate, "allowed": allowed},
    )
