# src/polkaregistry/runtime/weights.py
from __future__ import annotations

"""Per-block weight and length limits.

A block has one hard weight ceiling (`max_block`). It is split by dispatch class:

  - normal:      max_total = NORMAL_DISPATCH_RATIO * max_block, no reserve
  - operational: max_total = max_block, reserved = max_block - normal max_total
  - mandatory:   unlimited (system hooks that must run)

The average-on-initialize ratio is recorded and only feeds the advisory
per-class `max_extrinsic` figure. Nothing here enforces it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from polkaregistry.runtime.errors import BlockWeightsError
from polkaregistry.runtime.perbill import Perbill

# Weight is an unsigned 64-bit integer.
WEIGHT_MAX: int = 2**64 - 1

# One second of compute on reference hardware.
WEIGHT_PER_SECOND: int = 1_000_000_000_000
WEIGHT_PER_MILLIS: int = WEIGHT_PER_SECOND // 1000
WEIGHT_PER_MICROS: int = WEIGHT_PER_MILLIS // 1000

# Cost of an empty block (initialize + finalize).
BLOCK_EXECUTION_WEIGHT: int = 5 * WEIGHT_PER_MILLIS
# Cost of the smallest possible extrinsic; also the fee calibration anchor.
EXTRINSIC_BASE_WEIGHT: int = 125 * WEIGHT_PER_MICROS

# ~10% of the block is assumed to go to on_initialize hooks.
AVERAGE_ON_INITIALIZE_RATIO: Perbill = Perbill.from_percent(10)
# Normal extrinsics may fill the block up to 75%; the rest is for operational ones.
NORMAL_DISPATCH_RATIO: Perbill = Perbill.from_percent(75)
# 0.5s of compute per 6s block.
MAXIMUM_BLOCK_WEIGHT: int = WEIGHT_PER_SECOND // 2

MAXIMUM_BLOCK_LENGTH: int = 5 * 1024 * 1024


class DispatchClass(str, Enum):
    NORMAL = "normal"
    OPERATIONAL = "operational"
    MANDATORY = "mandatory"

    @staticmethod
    def parse(v: Any) -> "DispatchClass":
        if isinstance(v, DispatchClass):
            return v
        s = str(v or "").strip().lower()
        try:
            return DispatchClass(s)
        except ValueError:
            raise ValueError(f"unknown dispatch class: {v!r}") from None


def as_weight(v: Any, *, name: str = "weight") -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"{name} must be an int; got {type(v).__name__}")
    if v < 0:
        raise ValueError(f"{name} must be >= 0; got {v}")
    return v


@dataclass(frozen=True)
class WeightsPerClass:
    base_extrinsic: int
    max_extrinsic: Optional[int] = None
    # None means unlimited.
    max_total: Optional[int] = None
    reserved: Optional[int] = None


@dataclass(frozen=True)
class BlockWeights:
    base_block: int
    max_block: int
    per_class: Mapping[DispatchClass, WeightsPerClass] = field(default_factory=dict)
    avg_block_initialization: Perbill = field(default_factory=Perbill.zero)

    def get(self, dispatch_class: DispatchClass) -> WeightsPerClass:
        return self.per_class[DispatchClass.parse(dispatch_class)]

    def ceiling(self, dispatch_class: DispatchClass) -> Optional[int]:
        return self.get(dispatch_class).max_total

    def headroom(self, dispatch_class: DispatchClass) -> int:
        return int(self.get(dispatch_class).reserved or 0)

    def class_limit(self, dispatch_class: DispatchClass) -> Optional[int]:
        """Bound on one class's weight, block overhead included.

        For operational this is the normal ceiling plus the reserve (the whole block).
        """
        return self.get(dispatch_class).max_total

    def base_extrinsic(self, dispatch_class: DispatchClass) -> int:
        return self.get(dispatch_class).base_extrinsic

    def init_weight(self) -> int:
        """Weight assumed spent on initialization hooks (advisory)."""
        return self.avg_block_initialization.mul_floor(self.max_block)

    def to_json(self) -> Dict[str, Any]:
        return {
            "base_block": self.base_block,
            "max_block": self.max_block,
            "avg_block_initialization_ppb": self.avg_block_initialization.deconstruct(),
            "per_class": {
                c.value: {
                    "base_extrinsic": w.base_extrinsic,
                    "max_extrinsic": w.max_extrinsic,
                    "max_total": w.max_total,
                    "reserved": w.reserved,
                }
                for c, w in self.per_class.items()
            },
        }


def build_block_weights(
    *,
    max_block: int,
    base_block: int,
    base_extrinsic: int,
    normal_ratio: Perbill,
    avg_block_initialization: Perbill,
) -> BlockWeights:
    """Split `max_block` into per-class limits and validate the result."""

    max_block = as_weight(max_block, name="max_block")
    base_block = as_weight(base_block, name="base_block")
    base_extrinsic = as_weight(base_extrinsic, name="base_extrinsic")

    normal_total = normal_ratio.mul_floor(max_block)
    init_weight = avg_block_initialization.mul_floor(max_block)

    def _max_extrinsic(max_total: Optional[int]) -> Optional[int]:
        if max_total is None:
            return None
        return max(0, max(0, max_total - init_weight) - base_extrinsic)

    per_class = {
        DispatchClass.NORMAL: WeightsPerClass(
            base_extrinsic=base_extrinsic,
            max_extrinsic=_max_extrinsic(normal_total),
            max_total=normal_total,
            reserved=0,
        ),
        DispatchClass.OPERATIONAL: WeightsPerClass(
            base_extrinsic=base_extrinsic,
            max_extrinsic=_max_extrinsic(max_block),
            max_total=max_block,
            # Lets operational work in even when normal work has filled its share.
            reserved=max_block - normal_total,
        ),
        DispatchClass.MANDATORY: WeightsPerClass(
            base_extrinsic=base_extrinsic,
            max_extrinsic=None,
            max_total=None,
            reserved=None,
        ),
    }

    weights = BlockWeights(
        base_block=base_block,
        max_block=max_block,
        per_class=per_class,
        avg_block_initialization=avg_block_initialization,
    )
    validate_block_weights(weights)
    return weights


def validate_block_weights(w: BlockWeights) -> None:
    """Fail-fast consistency checks, run once when limits are built."""

    for name, v in (("max_block", w.max_block), ("base_block", w.base_block)):
        if as_weight(v, name=name) > WEIGHT_MAX:
            raise BlockWeightsError(f"{name} exceeds WEIGHT_MAX: {v}")

    if w.base_block >= w.max_block:
        raise BlockWeightsError(f"base_block ({w.base_block}) must be below max_block ({w.max_block})")

    missing = [c.value for c in DispatchClass if c not in w.per_class]
    if missing:
        raise BlockWeightsError(f"missing limits for dispatch classes: {missing}")

    for cls, pc in w.per_class.items():
        tag = cls.value
        for name, v in (
            ("base_extrinsic", pc.base_extrinsic),
            ("max_extrinsic", pc.max_extrinsic),
            ("max_total", pc.max_total),
            ("reserved", pc.reserved),
        ):
            if v is None:
                continue
            if as_weight(v, name=f"{tag}.{name}") > WEIGHT_MAX:
                raise BlockWeightsError(f"[{tag}] {name} exceeds WEIGHT_MAX: {v}")

        room = pc.max_total if pc.max_total is not None else (pc.reserved if pc.reserved is not None else w.max_block)
        floor_ = w.base_block + pc.base_extrinsic
        if room <= floor_ and not (pc.max_total is None and pc.reserved is None):
            raise BlockWeightsError(
                f"[{tag}] {room} (total) has to be greater than {floor_} (base block + base extrinsic)"
            )

        if pc.max_total is not None and pc.max_total > w.max_block:
            raise BlockWeightsError(f"[{tag}] max_total {pc.max_total} exceeds max_block {w.max_block}")

        if pc.max_extrinsic is not None and pc.max_total is not None:
            if pc.max_extrinsic + pc.base_extrinsic > pc.max_total:
                raise BlockWeightsError(
                    f"[{tag}] max_extrinsic {pc.max_extrinsic} + base_extrinsic {pc.base_extrinsic} "
                    f"exceeds max_total {pc.max_total}"
                )


@dataclass(frozen=True)
class BlockLength:
    """Maximum encoded block length in bytes, per dispatch class."""

    max: Mapping[DispatchClass, int]

    @staticmethod
    def max_with_normal_ratio(max_len: int, normal: Perbill) -> "BlockLength":
        max_len = as_weight(max_len, name="max_len")
        return BlockLength(
            max={
                DispatchClass.NORMAL: normal.mul_floor(max_len),
                DispatchClass.OPERATIONAL: max_len,
                DispatchClass.MANDATORY: max_len,
            }
        )

    def get(self, dispatch_class: DispatchClass) -> int:
        return int(self.max[DispatchClass.parse(dispatch_class)])


RUNTIME_BLOCK_WEIGHTS: BlockWeights = build_block_weights(
    max_block=MAXIMUM_BLOCK_WEIGHT,
    base_block=BLOCK_EXECUTION_WEIGHT,
    base_extrinsic=EXTRINSIC_BASE_WEIGHT,
    normal_ratio=NORMAL_DISPATCH_RATIO,
    avg_block_initialization=AVERAGE_ON_INITIALIZE_RATIO,
)

RUNTIME_BLOCK_LENGTH: BlockLength = BlockLength.max_with_normal_ratio(MAXIMUM_BLOCK_LENGTH, NORMAL_DISPATCH_RATIO)
