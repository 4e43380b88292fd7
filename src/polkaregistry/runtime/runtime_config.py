# src/polkaregistry/runtime/runtime_config.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from polkaregistry.env import load_dotenv_if_present
from polkaregistry.ledger.constants import (
    CENTS,
    DEPOSIT_PER_BYTE_MILLICENTS,
    DEPOSIT_PER_ITEM_DOTS,
    DOT,
    MILLICENTS,
)
from polkaregistry.runtime.errors import RuntimeConfigError
from polkaregistry.runtime.fee import FEE_DIVISOR, DepositPricing, WeightToFee
from polkaregistry.runtime.perbill import Perbill
from polkaregistry.runtime.runtime_logging import log_event
from polkaregistry.runtime.weights import (
    BLOCK_EXECUTION_WEIGHT,
    EXTRINSIC_BASE_WEIGHT,
    MAXIMUM_BLOCK_LENGTH,
    MAXIMUM_BLOCK_WEIGHT,
    WEIGHT_MAX,
    BlockLength,
    BlockWeights,
    build_block_weights,
)

Json = Dict[str, Any]

_log = logging.getLogger("polkaregistry.config")


class _StrictModel(BaseModel):
    """Strict model: reject unknown keys and type coercion."""

    model_config = ConfigDict(extra="forbid", strict=True)


class RuntimeConfigFile(_StrictModel):
    """On-disk shape. Every key is optional; missing keys take runtime defaults."""

    max_block_weight: Optional[int] = Field(default=None, gt=0, le=WEIGHT_MAX)
    block_execution_weight: Optional[int] = Field(default=None, ge=0, le=WEIGHT_MAX)
    extrinsic_base_weight: Optional[int] = Field(default=None, gt=0, le=WEIGHT_MAX)
    normal_dispatch_percent: Optional[int] = Field(default=None, gt=0, le=100)
    avg_on_initialize_percent: Optional[int] = Field(default=None, ge=0, le=100)
    max_block_length: Optional[int] = Field(default=None, gt=0)
    fee_reference: Optional[int] = Field(default=None, ge=0)
    fee_divisor: Optional[int] = Field(default=None, gt=0)
    deposit_per_item: Optional[int] = Field(default=None, ge=0)
    deposit_per_byte: Optional[int] = Field(default=None, ge=0)
    log_level: Optional[str] = None


@dataclass(frozen=True)
class RuntimeConfig:
    max_block_weight: int
    block_execution_weight: int
    extrinsic_base_weight: int

    normal_dispatch_percent: int
    avg_on_initialize_percent: int

    max_block_length: int

    # Base extrinsic costs fee_reference / fee_divisor.
    fee_reference: int
    fee_divisor: int

    deposit_per_item: int
    deposit_per_byte: int

    log_level: str


_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_runtime_config(cfg: RuntimeConfig) -> None:
    """Fail-fast validation. The policy objects run their own range checks on top."""

    if int(cfg.max_block_weight) <= 0:
        raise RuntimeConfigError(f"max_block_weight must be > 0; got {cfg.max_block_weight}")

    if int(cfg.block_execution_weight) >= int(cfg.max_block_weight):
        raise RuntimeConfigError(
            f"block_execution_weight must be below max_block_weight; got {cfg.block_execution_weight}"
        )

    if not 0 < int(cfg.normal_dispatch_percent) <= 100:
        raise RuntimeConfigError(f"normal_dispatch_percent must be 1..100; got {cfg.normal_dispatch_percent}")

    if not 0 <= int(cfg.avg_on_initialize_percent) <= 100:
        raise RuntimeConfigError(f"avg_on_initialize_percent must be 0..100; got {cfg.avg_on_initialize_percent}")

    if int(cfg.fee_divisor) <= 0:
        raise RuntimeConfigError(f"fee_divisor must be > 0; got {cfg.fee_divisor}")

    level = str(cfg.log_level or "").strip().upper()
    if level not in _ALLOWED_LOG_LEVELS:
        raise RuntimeConfigError(f"log_level must be one of {sorted(_ALLOWED_LOG_LEVELS)}; got {cfg.log_level!r}")


def default_runtime_config() -> RuntimeConfig:
    return RuntimeConfig(
        max_block_weight=MAXIMUM_BLOCK_WEIGHT,
        block_execution_weight=BLOCK_EXECUTION_WEIGHT,
        extrinsic_base_weight=EXTRINSIC_BASE_WEIGHT,
        normal_dispatch_percent=75,
        avg_on_initialize_percent=10,
        max_block_length=MAXIMUM_BLOCK_LENGTH,
        fee_reference=CENTS,
        fee_divisor=FEE_DIVISOR,
        deposit_per_item=DEPOSIT_PER_ITEM_DOTS * DOT,
        deposit_per_byte=DEPOSIT_PER_BYTE_MILLICENTS * MILLICENTS,
        log_level="INFO",
    )


def _read_raw(p: Path) -> Any:
    text = p.read_text(encoding="utf-8")
    try:
        if p.suffix.lower() in {".yaml", ".yml"}:
            return yaml.safe_load(text)
        return json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise RuntimeConfigError(f"failed to parse runtime config {str(p)!r}: {e}") from e


def runtime_config_from_mapping(raw: Any) -> RuntimeConfig:
    if not isinstance(raw, dict):
        raise RuntimeConfigError("runtime config must be an object")

    try:
        parsed = RuntimeConfigFile.model_validate(raw)
    except ValidationError as e:
        raise RuntimeConfigError(f"runtime config rejected: {e}") from e

    d = default_runtime_config()
    overrides = {k: v for k, v in parsed.model_dump().items() if v is not None}
    merged = {**asdict(d), **overrides}
    merged["log_level"] = str(merged["log_level"]).strip().upper()

    cfg = RuntimeConfig(**merged)
    validate_runtime_config(cfg)
    return cfg


def read_runtime_config_file(path: str) -> RuntimeConfig:
    p = Path(path)
    if not p.is_file():
        raise RuntimeConfigError(f"runtime config file not found: {path!r}")
    cfg = runtime_config_from_mapping(_read_raw(p))
    log_event(_log, "runtime_config_loaded", path=str(p), **asdict(cfg))
    return cfg


def _env_name(field_name: str) -> str:
    return f"POLKAREGISTRY_{field_name.upper()}"


def _env_overrides() -> Json:
    """Per-knob overrides from POLKAREGISTRY_<FIELD> variables."""
    out: Json = {}
    for f in fields(RuntimeConfig):
        raw = (os.environ.get(_env_name(f.name)) or "").strip()
        if not raw:
            continue
        if f.name == "log_level":
            out[f.name] = raw.upper()
            continue
        try:
            v = int(raw)
        except ValueError:
            raise RuntimeConfigError(f"{_env_name(f.name)} must be an int; got {raw!r}") from None
        if v < 0:
            raise RuntimeConfigError(f"{_env_name(f.name)} must be >= 0; got {v}")
        out[f.name] = v
    return out


def load_runtime_config(*, config_path: Optional[str] = None) -> RuntimeConfig:
    """File (or defaults), then POLKAREGISTRY_<FIELD> overrides on top.

    A .env file is loaded first, so it may supply the config path or any knob.
    """
    load_dotenv_if_present()

    p = config_path or os.environ.get("POLKAREGISTRY_RUNTIME_CONFIG_PATH")
    cfg = read_runtime_config_file(p) if p else default_runtime_config()

    overrides = _env_overrides()
    if overrides:
        cfg = replace(cfg, **overrides)
        log_event(_log, "runtime_config_env_overrides", keys=sorted(overrides))
    validate_runtime_config(cfg)
    return cfg


def apply_runtime_config_to_env(cfg: RuntimeConfig) -> None:
    validate_runtime_config(cfg)
    for name, v in asdict(cfg).items():
        os.environ[_env_name(name)] = str(v)


@dataclass(frozen=True)
class RuntimePolicy:
    block_weights: BlockWeights
    block_length: BlockLength
    weight_to_fee: WeightToFee
    deposit_pricing: DepositPricing


def build_runtime_policy(cfg: RuntimeConfig) -> RuntimePolicy:
    """Derive the immutable policy objects from a validated config."""

    validate_runtime_config(cfg)
    normal_ratio = Perbill.from_percent(cfg.normal_dispatch_percent)

    block_weights = build_block_weights(
        max_block=cfg.max_block_weight,
        base_block=cfg.block_execution_weight,
        base_extrinsic=cfg.extrinsic_base_weight,
        normal_ratio=normal_ratio,
        avg_block_initialization=Perbill.from_percent(cfg.avg_on_initialize_percent),
    )
    policy = RuntimePolicy(
        block_weights=block_weights,
        block_length=BlockLength.max_with_normal_ratio(cfg.max_block_length, normal_ratio),
        weight_to_fee=WeightToFee.calibrated(
            cfg.fee_reference,
            cfg.extrinsic_base_weight,
            divisor=cfg.fee_divisor,
            max_weight=cfg.max_block_weight,
        ),
        deposit_pricing=DepositPricing(per_item=cfg.deposit_per_item, per_byte=cfg.deposit_per_byte),
    )

    log_event(
        _log,
        "runtime_policy_built",
        block_weights=block_weights.to_json(),
        fee_curve=policy.weight_to_fee.to_json(),
        base_extrinsic_fee=policy.weight_to_fee.fee_for(cfg.extrinsic_base_weight),
    )
    return policy
