from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class CapacityExceeded(Exception):
    """A unit of work does not fit its dispatch class ceiling plus headroom.

    Recoverable: the caller defers or drops the unit of work.
    """

    dispatch_class: str
    code: str = "capacity_exceeded"
    reason: str = "class_ceiling_reached"
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}:{self.dispatch_class}"
        return f"{self.code}:{self.reason}:{self.dispatch_class}:{self.details}"


class CurrencyConfigError(ValueError):
    """Denomination table does not divide exactly."""


class BlockWeightsError(ValueError):
    """Block weight limits are inconsistent."""


class FeeCalibrationError(ValueError):
    """Fee curve coefficients overflow Balance over the block weight range."""


class RuntimeConfigError(ValueError):
    """Runtime configuration file is malformed or rejected by validation."""
