from __future__ import annotations

import json

import pytest

from polkaregistry.ledger import constants as c
from polkaregistry.ledger.constants import CurrencyUnits
from polkaregistry.runtime.errors import CurrencyConfigError


def test_denominations_are_exact_hundredths() -> None:
    assert c.OLDDOT == 1_000_000_000_000
    assert c.DOT == 10_000_000_000
    assert c.CENTS == 100_000_000
    assert c.MILLICENTS == 1_000_000

    assert c.DOT * 100 == c.OLDDOT
    assert c.CENTS * 100 == c.DOT
    assert c.MILLICENTS * 100 == c.CENTS


def test_existential_deposit_is_one_dot() -> None:
    assert c.EXISTENTIAL_DEPOSIT == 100 * c.CENTS == c.DOT


def test_block_time_constants() -> None:
    assert c.SLOT_DURATION == c.MILLISECS_PER_BLOCK == 6000
    assert c.MINUTES == 10
    assert c.HOURS == 600
    assert c.DAYS == 14_400


def test_units_round_trip_through_json_bit_identical() -> None:
    blob = json.dumps(c.CURRENCY.to_dict(), sort_keys=True)
    rebuilt = CurrencyUnits.from_dict(json.loads(blob))

    assert rebuilt == c.CURRENCY
    assert rebuilt["OLDDOT"] == c.OLDDOT
    assert rebuilt["DOT"] == c.DOT
    assert rebuilt["CENTS"] == c.CENTS
    assert rebuilt["MILLICENTS"] == c.MILLICENTS


def test_from_ratios_rejects_inexact_division() -> None:
    with pytest.raises(CurrencyConfigError):
        CurrencyUnits.from_ratios(1_000, [("A", 100), ("B", 100)])


def test_from_ratios_rejects_bad_ratio_and_duplicate_names() -> None:
    with pytest.raises(CurrencyConfigError):
        CurrencyUnits.from_ratios(10_000, [("A", 1)])
    with pytest.raises(CurrencyConfigError):
        CurrencyUnits.from_ratios(10_000, [("OLDDOT", 10)])
    with pytest.raises(CurrencyConfigError):
        CurrencyUnits.from_ratios(0, [])


def test_from_dict_rejects_tampered_values() -> None:
    d = c.CURRENCY.to_dict()
    d["values"]["CENTS"] = d["values"]["CENTS"] + 1
    with pytest.raises(CurrencyConfigError):
        CurrencyUnits.from_dict(d)


def test_unknown_unit_lookup_raises_keyerror() -> None:
    with pytest.raises(KeyError):
        c.CURRENCY["PLANCK"]
