# src/polkaregistry/runtime/fee.py
from __future__ import annotations

"""Weight-to-fee conversion and deposit pricing.

The fee curve is a polynomial kept as a list of coefficients so a higher
degree term can be appended without changing callers:

    fee(w) = sum( sign * (coeff_integer * w**degree + floor(coeff_frac * w**degree)) )

Integer and fractional parts are evaluated separately in unbounded ints and
the running sum saturates into [0, BALANCE_MAX]. The runtime curve is linear
and calibrated so EXTRINSIC_BASE_WEIGHT costs 1/100 CENT.

At construction time the curve is evaluated at max_block without saturation;
if that does not fit in a Balance the calibration is rejected.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from polkaregistry.ledger.constants import (
    BALANCE_MAX,
    CENTS,
    DEPOSIT_PER_BYTE_MILLICENTS,
    DEPOSIT_PER_ITEM_DOTS,
    DOT,
    MILLICENTS,
    U32_MAX,
)
from polkaregistry.runtime.errors import FeeCalibrationError
from polkaregistry.runtime.perbill import BILLION, Perbill
from polkaregistry.runtime.weights import EXTRINSIC_BASE_WEIGHT, MAXIMUM_BLOCK_WEIGHT, as_weight

# Block saturation level the fee multiplier steers towards.
TARGET_BLOCK_FULLNESS: Perbill = Perbill.from_percent(25)

# The base extrinsic costs reference / FEE_DIVISOR (1/100 CENT).
FEE_DIVISOR: int = 100


@dataclass(frozen=True)
class WeightToFeeCoefficient:
    degree: int
    negative: bool
    coeff_frac: Perbill
    coeff_integer: int

    def __post_init__(self) -> None:
        if isinstance(self.degree, bool) or not isinstance(self.degree, int) or self.degree < 0:
            raise FeeCalibrationError(f"degree must be an int >= 0; got {self.degree!r}")
        if isinstance(self.coeff_integer, bool) or not isinstance(self.coeff_integer, int):
            raise FeeCalibrationError(f"coeff_integer must be an int; got {self.coeff_integer!r}")
        if self.coeff_integer < 0 or self.coeff_integer > BALANCE_MAX:
            raise FeeCalibrationError(f"coeff_integer out of Balance range: {self.coeff_integer}")

    def term(self, weight: int) -> int:
        """Unsigned magnitude of this term at `weight` (unbounded)."""
        w = weight**self.degree
        return self.coeff_integer * w + (self.coeff_frac.deconstruct() * w) // BILLION

    def to_json(self) -> Dict[str, Any]:
        return {
            "degree": self.degree,
            "negative": self.negative,
            "coeff_frac_ppb": self.coeff_frac.deconstruct(),
            "coeff_integer": self.coeff_integer,
        }


class WeightToFee:
    """Polynomial weight -> Balance mapping."""

    def __init__(self, coefficients: Sequence[WeightToFeeCoefficient], *, max_weight: int = MAXIMUM_BLOCK_WEIGHT) -> None:
        self._coefficients: Tuple[WeightToFeeCoefficient, ...] = tuple(coefficients)
        self._max_weight = as_weight(max_weight, name="max_weight")
        self._check_range()

    @staticmethod
    def calibrated(
        reference: int = CENTS,
        base_weight: int = EXTRINSIC_BASE_WEIGHT,
        *,
        divisor: int = FEE_DIVISOR,
        max_weight: int = MAXIMUM_BLOCK_WEIGHT,
    ) -> "WeightToFee":
        """Linear curve where `base_weight` costs `reference // divisor`.

        p = reference, q = divisor * base_weight;
        coefficient = p // q + (p % q) / q.
        """
        p = as_weight(reference, name="reference")
        base = as_weight(base_weight, name="base_weight")
        d = as_weight(divisor, name="divisor")
        if base == 0 or d == 0:
            raise FeeCalibrationError("base_weight and divisor must be > 0")

        q = d * base
        frac = Perbill.from_rational(p % q, q)
        if not frac.is_exact_rational(p % q, q):
            raise FeeCalibrationError(
                f"base_weight {base} with divisor {d} and reference {p} gives a fee coefficient "
                f"{p // q} + {p % q}/{q} that is not exact in parts per billion; "
                f"divisor * base_weight must divide reference * 10**9 = {p * BILLION}"
                + (f", so base_weight must divide {p * BILLION // d}" if (p * BILLION) % d == 0 else "")
            )

        coeff = WeightToFeeCoefficient(
            degree=1,
            negative=False,
            coeff_frac=frac,
            coeff_integer=p // q,
        )
        return WeightToFee([coeff], max_weight=max_weight)

    @property
    def coefficients(self) -> Tuple[WeightToFeeCoefficient, ...]:
        return self._coefficients

    @property
    def max_weight(self) -> int:
        return self._max_weight

    def _check_range(self) -> None:
        worst = 0
        for c in self._coefficients:
            if not c.negative:
                worst += c.term(self._max_weight)
        if worst > BALANCE_MAX:
            raise FeeCalibrationError(
                f"fee curve overflows Balance at max weight {self._max_weight}: {worst} > {BALANCE_MAX}"
            )

    def fee_for(self, weight: int) -> int:
        w = as_weight(weight)
        acc = 0
        for c in self._coefficients:
            t = c.term(w)
            if c.negative:
                acc = max(0, acc - t)
            else:
                acc = min(BALANCE_MAX, acc + t)
        return acc

    __call__ = fee_for

    def to_json(self) -> List[Dict[str, Any]]:
        return [c.to_json() for c in self._coefficients]


@dataclass(frozen=True)
class DepositPricing:
    """Linear state-deposit price: items * per_item + bytes * per_byte."""

    per_item: int
    per_byte: int

    def __post_init__(self) -> None:
        for name, v in (("per_item", self.per_item), ("per_byte", self.per_byte)):
            if isinstance(v, bool) or not isinstance(v, int) or v < 0:
                raise FeeCalibrationError(f"{name} must be an int >= 0; got {v!r}")
        if self.per_item * U32_MAX + self.per_byte * U32_MAX > BALANCE_MAX:
            raise FeeCalibrationError("deposit pricing overflows Balance for u32 inputs")

    def deposit(self, items: int, bytes: int) -> int:
        for name, v in (("items", items), ("bytes", bytes)):
            if isinstance(v, bool) or not isinstance(v, int):
                raise ValueError(f"{name} must be an int; got {type(v).__name__}")
            if v < 0 or v > U32_MAX:
                raise ValueError(f"{name} must be in 0..{U32_MAX}; got {v}")
        return items * self.per_item + bytes * self.per_byte


RUNTIME_WEIGHT_TO_FEE: WeightToFee = WeightToFee.calibrated(CENTS, EXTRINSIC_BASE_WEIGHT)

RUNTIME_DEPOSIT_PRICING: DepositPricing = DepositPricing(
    per_item=DEPOSIT_PER_ITEM_DOTS * DOT,
    per_byte=DEPOSIT_PER_BYTE_MILLICENTS * MILLICENTS,
)


def fee_for(weight: int) -> int:
    """Fee charged by the runtime curve for `weight`."""
    return RUNTIME_WEIGHT_TO_FEE.fee_for(weight)
