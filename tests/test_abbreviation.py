from __future__ import annotations

import pytest

from invoice_desk.services.abbreviation import PLACEHOLDER, client_abbreviation


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("FocalDive", "FD"),
        ("Arshaq", "ARSH"),
        ("Zigzag Car Wash", "ZCW"),
        ("FocalDive (Pvt) Ltd", "FD"),
        ("The Bank of Ceylon", "BC"),
        ("Alpha Beta Gamma Delta Epsilon", "ABGD"),
        ("  acme   corp  ", "AC"),
        ("Al", "AL"),
        ("O'Neil", "ONEI"),
        ("ABC", "ABC"),
        ("McDonald", "MD"),
    ],
)
def test_client_abbreviation(name: str, expected: str) -> None:
    assert client_abbreviation(name) == expected


@pytest.mark.parametrize("name", ["Pvt Ltd Co", "", "   ", "The and of", "123"])
def test_placeholder_when_nothing_usable_remains(name: str) -> None:
    assert client_abbreviation(name) == PLACEHOLDER == "XXXX"


def test_stoplist_is_case_insensitive() -> None:
    assert client_abbreviation("ACME PVT LTD") == "ACME"
    assert client_abbreviation("acme pvt ltd") == "ACME"


def test_abbreviation_is_deterministic() -> None:
    assert client_abbreviation("Zigzag Car Wash") == client_abbreviation("Zigzag Car Wash")
