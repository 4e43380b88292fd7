from __future__ import annotations

import pytest

from polkaregistry.ledger.constants import BALANCE_MAX, CENTS
from polkaregistry.runtime.errors import FeeCalibrationError
from polkaregistry.runtime.fee import (
    RUNTIME_WEIGHT_TO_FEE,
    TARGET_BLOCK_FULLNESS,
    WeightToFee,
    WeightToFeeCoefficient,
    fee_for,
)
from polkaregistry.runtime.perbill import Perbill
from polkaregistry.runtime.weights import EXTRINSIC_BASE_WEIGHT, MAXIMUM_BLOCK_WEIGHT


def test_runtime_curve_shape() -> None:
    (coeff,) = RUNTIME_WEIGHT_TO_FEE.coefficients
    assert coeff.degree == 1
    assert coeff.negative is False
    assert coeff.coeff_integer == 0
    # 10**8 / (100 * 125_000_000) = 0.008
    assert coeff.coeff_frac == Perbill(8_000_000)


def test_base_extrinsic_costs_one_hundredth_of_a_cent() -> None:
    assert fee_for(EXTRINSIC_BASE_WEIGHT) == CENTS // 100


def test_zero_weight_is_free() -> None:
    assert fee_for(0) == 0


def test_fee_is_monotonic() -> None:
    weights = [0, 1, 124, 125, 126, 10_000, EXTRINSIC_BASE_WEIGHT - 1, EXTRINSIC_BASE_WEIGHT, 10**10, MAXIMUM_BLOCK_WEIGHT]
    fees = [fee_for(w) for w in weights]
    assert fees == sorted(fees)


def test_full_block_fee() -> None:
    assert fee_for(MAXIMUM_BLOCK_WEIGHT) == 40 * CENTS


def test_small_scale_calibration_cent_of_100() -> None:
    # CENT = 100 atomic units; base weight 125 costs 1/100 of it.
    curve = WeightToFee.calibrated(100, 125, max_weight=1_000_000)
    (coeff,) = curve.coefficients
    assert coeff.coeff_integer == 0
    assert coeff.coeff_frac.deconstruct() == 8_000_000
    assert curve.fee_for(125) == 1


def test_small_scale_calibration_base_weight_costs_100() -> None:
    curve = WeightToFee.calibrated(10_000, 125, max_weight=1_000_000)
    (coeff,) = curve.coefficients
    assert coeff.coeff_integer == 0
    assert coeff.coeff_frac.deconstruct() == 800_000_000
    assert curve.fee_for(125) == 100
    assert curve(250) == 200


def test_integer_part_is_carried() -> None:
    # p // q = 2, p % q / q = 0.5
    curve = WeightToFee.calibrated(250, 1, max_weight=1_000)
    (coeff,) = curve.coefficients
    assert coeff.coeff_integer == 2
    assert coeff.coeff_frac == Perbill.from_percent(50)
    assert curve.fee_for(1) == 2
    assert curve.fee_for(2) == 5
    assert curve.fee_for(3) == 7


def test_higher_degree_terms_and_negative_saturation() -> None:
    curve = WeightToFee(
        [
            WeightToFeeCoefficient(degree=2, negative=False, coeff_frac=Perbill.zero(), coeff_integer=1),
            WeightToFeeCoefficient(degree=0, negative=True, coeff_frac=Perbill.zero(), coeff_integer=50),
        ],
        max_weight=1_000,
    )
    assert curve.fee_for(0) == 0
    assert curve.fee_for(5) == 0
    assert curve.fee_for(10) == 50


def test_saturates_at_balance_max_beyond_calibrated_range() -> None:
    curve = WeightToFee(
        [WeightToFeeCoefficient(degree=1, negative=False, coeff_frac=Perbill.zero(), coeff_integer=2**100)],
        max_weight=1,
    )
    assert curve.fee_for(2**64 - 1) == BALANCE_MAX


def test_calibration_rejects_overflowing_curve() -> None:
    with pytest.raises(FeeCalibrationError):
        WeightToFee(
            [WeightToFeeCoefficient(degree=1, negative=False, coeff_frac=Perbill.zero(), coeff_integer=2**100)],
            max_weight=2**40,
        )


def test_calibration_rejects_inexact_fraction() -> None:
    with pytest.raises(FeeCalibrationError):
        WeightToFee.calibrated(1, 3, divisor=1)


def test_inexact_calibration_names_the_usable_base_weights() -> None:
    with pytest.raises(FeeCalibrationError, match=r"base_weight 3 with divisor 100") as ei:
        WeightToFee.calibrated(CENTS, 3, divisor=100)
    assert f"base_weight must divide {CENTS * 10**9 // 100}" in str(ei.value)

    # A base weight taken from that hint calibrates.
    assert WeightToFee.calibrated(CENTS, 4, divisor=100).fee_for(4) == CENTS // 100


def test_calibration_rejects_zero_base_weight() -> None:
    with pytest.raises(FeeCalibrationError):
        WeightToFee.calibrated(CENTS, 0)


def test_negative_weight_rejected() -> None:
    with pytest.raises(ValueError):
        fee_for(-1)


def test_target_block_fullness() -> None:
    assert TARGET_BLOCK_FULLNESS == Perbill.from_percent(25)


def test_to_json() -> None:
    assert RUNTIME_WEIGHT_TO_FEE.to_json() == [
        {"degree": 1, "negative": False, "coeff_frac_ppb": 8_000_000, "coeff_integer": 0}
    ]
