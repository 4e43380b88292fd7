# src/polkaregistry/ledger/constants.py
from __future__ import annotations

"""Monetary and block-time constants.

Denominations (atomic units):
- OLDDOT     = 10**12
- DOT        = OLDDOT / 100
- CENTS      = DOT / 100
- MILLICENTS = CENTS / 100

Every derived unit must divide its parent exactly. The table is checked when
this module is imported, so a bad ratio fails the build rather than a block.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Sequence, Tuple

from polkaregistry.runtime.errors import CurrencyConfigError

# Balance is an unsigned 128-bit integer.
BALANCE_BITS: int = 128
BALANCE_MAX: int = 2**BALANCE_BITS - 1

U32_MAX: int = 2**32 - 1

BASE_UNIT_NAME: str = "OLDDOT"
BASE_UNIT: int = 1_000_000_000_000

# (name, ratio to the previous unit)
DENOMINATION_RATIOS: Tuple[Tuple[str, int], ...] = (
    ("DOT", 100),
    ("CENTS", 100),
    ("MILLICENTS", 100),
)


@dataclass(frozen=True)
class CurrencyUnits:
    """Ordered denomination chain, largest unit first."""

    base_name: str
    base: int
    ratios: Tuple[Tuple[str, int], ...]
    values: Tuple[Tuple[str, int], ...]

    @staticmethod
    def from_ratios(base: int, ratios: Sequence[Tuple[str, int]], *, base_name: str = BASE_UNIT_NAME) -> "CurrencyUnits":
        if isinstance(base, bool) or not isinstance(base, int) or base <= 0:
            raise CurrencyConfigError(f"base unit must be a positive int; got {base!r}")
        if base > BALANCE_MAX:
            raise CurrencyConfigError(f"base unit does not fit Balance: {base}")

        values = [(str(base_name), int(base))]
        seen = {str(base_name)}
        parent = int(base)
        for name, ratio in ratios:
            name = str(name).strip()
            if not name or name in seen:
                raise CurrencyConfigError(f"denomination names must be unique and non-empty; got {name!r}")
            if isinstance(ratio, bool) or not isinstance(ratio, int) or ratio <= 1:
                raise CurrencyConfigError(f"{name}: ratio must be an int > 1; got {ratio!r}")
            if parent % ratio != 0:
                raise CurrencyConfigError(f"{name}: {parent} is not divisible by {ratio}")
            parent = parent // ratio
            seen.add(name)
            values.append((name, parent))

        return CurrencyUnits(
            base_name=str(base_name),
            base=int(base),
            ratios=tuple((str(n), int(r)) for n, r in ratios),
            values=tuple(values),
        )

    def __getitem__(self, name: str) -> int:
        for n, v in self.values:
            if n == name:
                return v
        raise KeyError(name)

    def as_mapping(self) -> Dict[str, int]:
        return dict(self.values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_name": self.base_name,
            "base": self.base,
            "ratios": [[n, r] for n, r in self.ratios],
            "values": {n: v for n, v in self.values},
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "CurrencyUnits":
        """Rebuild from ratios and cross-check any serialized values."""
        raw_ratios = d.get("ratios")
        if not isinstance(raw_ratios, list):
            raise CurrencyConfigError("ratios must be a list of [name, ratio] pairs")
        ratios = []
        for it in raw_ratios:
            if not isinstance(it, (list, tuple)) or len(it) != 2:
                raise CurrencyConfigError(f"ratio entry must be [name, ratio]; got {it!r}")
            ratios.append((str(it[0]), it[1]))

        units = CurrencyUnits.from_ratios(d.get("base"), ratios, base_name=str(d.get("base_name") or BASE_UNIT_NAME))

        recorded = d.get("values")
        if isinstance(recorded, dict):
            derived = units.as_mapping()
            if {str(k): v for k, v in recorded.items()} != derived:
                raise CurrencyConfigError(f"serialized values disagree with ratios: {recorded!r} != {derived!r}")
        return units


CURRENCY: CurrencyUnits = CurrencyUnits.from_ratios(BASE_UNIT, DENOMINATION_RATIOS)

OLDDOT: int = CURRENCY["OLDDOT"]  # 1_000_000_000_000
DOT: int = CURRENCY["DOT"]  # 10_000_000_000
CENTS: int = CURRENCY["CENTS"]  # 100_000_000
MILLICENTS: int = CURRENCY["MILLICENTS"]  # 1_000_000

# Minimum balance an account must hold to exist.
EXISTENTIAL_DEPOSIT: int = 100 * CENTS

# Deposit policy multipliers
DEPOSIT_PER_ITEM_DOTS: int = 2
DEPOSIT_PER_BYTE_MILLICENTS: int = 10


def _as_u32(v: Any, *, name: str) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"{name} must be an int; got {type(v).__name__}")
    if v < 0 or v > U32_MAX:
        raise ValueError(f"{name} must be in 0..{U32_MAX}; got {v}")
    return v


def deposit(items: int, bytes: int) -> int:
    """Balance charged for persisting `items` storage items totalling `bytes` bytes."""
    items = _as_u32(items, name="items")
    nbytes = _as_u32(bytes, name="bytes")
    return items * DEPOSIT_PER_ITEM_DOTS * DOT + nbytes * DEPOSIT_PER_BYTE_MILLICENTS * MILLICENTS


if deposit(U32_MAX, U32_MAX) > BALANCE_MAX:
    raise CurrencyConfigError("deposit() overflows Balance for u32 inputs")

# Block cadence
MILLISECS_PER_BLOCK: int = 6000
SLOT_DURATION: int = MILLISECS_PER_BLOCK

# Time measured in blocks
MINUTES: int = 60_000 // MILLISECS_PER_BLOCK
HOURS: int = MINUTES * 60
DAYS: int = HOURS * 24
