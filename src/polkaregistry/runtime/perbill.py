# src/polkaregistry/runtime/perbill.py
from __future__ import annotations

"""Parts-per-billion ratios.

Every ratio used by the runtime policy (dispatch ratios, fee coefficients,
target fullness) is an exact integer count of billionths. Multiplication
floors; nothing here ever touches a float.
"""

from dataclasses import dataclass
from typing import Any

BILLION: int = 1_000_000_000


def _as_nonneg_int(v: Any, *, name: str) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"{name} must be an int; got {type(v).__name__}")
    if v < 0:
        raise ValueError(f"{name} must be >= 0; got {v}")
    return v


@dataclass(frozen=True, order=True)
class Perbill:
    parts: int

    def __post_init__(self) -> None:
        p = _as_nonneg_int(self.parts, name="parts")
        if p > BILLION:
            raise ValueError(f"parts must be <= {BILLION}; got {p}")

    @staticmethod
    def zero() -> "Perbill":
        return Perbill(0)

    @staticmethod
    def one() -> "Perbill":
        return Perbill(BILLION)

    @staticmethod
    def from_parts(parts: int) -> "Perbill":
        """Clamp to one, like the runtime's saturating constructor."""
        return Perbill(min(_as_nonneg_int(parts, name="parts"), BILLION))

    @staticmethod
    def from_percent(percent: int) -> "Perbill":
        pct = min(_as_nonneg_int(percent, name="percent"), 100)
        return Perbill(pct * (BILLION // 100))

    @staticmethod
    def from_rational(p: int, q: int) -> "Perbill":
        """floor(p / q) in billionths. Requires 0 <= p <= q, q > 0."""
        p = _as_nonneg_int(p, name="p")
        q = _as_nonneg_int(q, name="q")
        if q == 0:
            raise ValueError("q must be > 0")
        if p > q:
            raise ValueError(f"rational must be <= 1; got {p}/{q}")
        return Perbill((p * BILLION) // q)

    def deconstruct(self) -> int:
        return self.parts

    def is_exact_rational(self, p: int, q: int) -> bool:
        """True when p/q is represented without rounding."""
        return self.parts * q == p * BILLION

    def complement(self) -> "Perbill":
        return Perbill(BILLION - self.parts)

    def mul_floor(self, n: int) -> int:
        n = _as_nonneg_int(n, name="n")
        return (n * self.parts) // BILLION

    def __mul__(self, n: int) -> int:
        return self.mul_floor(n)

    __rmul__ = __mul__

    def __str__(self) -> str:
        return f"{self.parts}ppb"


__all__ = ["BILLION", "Perbill"]
