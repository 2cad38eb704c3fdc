"""Unit tests for bill numbers, voucher numbers and synthetic ids."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pharma_ledger import numbering


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("B0042", 42),
        ("INV-7/A3", 73),
        ("DRAFT", None),
        (None, None),
        (17, None),
    ],
)
def test_numeric_suffix_extracts_digits(value, expected):
    """numeric_suffix should join every digit and ignore non-strings."""

    assert numbering.numeric_suffix(value) == expected


def test_next_bill_number_starts_at_one():
    assert numbering.next_bill_number([]) == "B0001"


def test_next_bill_number_uses_highest_number_despite_gaps():
    """Bill numbers continue from the maximum, never filling gaps."""

    records = [{"billNumber": "B0001"}, {"billNumber": "B0005"}, {"billNumber": "B0002"}]
    assert numbering.next_bill_number(records) == "B0006"


def test_next_bill_number_ignores_unparseable_numbers():
    records = [{"billNumber": "DRAFT"}, {"billNumber": None}, {}, {"billNumber": "B0003"}]
    assert numbering.next_bill_number(records) == "B0004"


def test_next_bill_number_grows_past_padding_width():
    assert numbering.next_bill_number([{"billNumber": "B9999"}]) == "B10000"


def test_next_voucher_number_counts_existing_payments():
    """Voucher numbers are derived from the payment count."""

    assert numbering.next_voucher_number([]) == "PV-0001"
    assert numbering.next_voucher_number([{}, {}, {}]) == "PV-0004"


def test_next_voucher_number_accepts_custom_prefix():
    assert numbering.next_voucher_number([{}], prefix="RV-") == "RV-0002"


def test_new_batch_id_embeds_timestamp():
    """Batch ids carry the UTC timestamp with microseconds."""

    moment = datetime(2025, 1, 2, 3, 4, 5, 6, tzinfo=UTC)
    batch_id = numbering.new_batch_id(when=moment)

    assert batch_id.startswith("batch_20250102030405000006_")


def test_new_batch_id_unique_within_same_instant():
    """Ids allocated for the same instant still differ."""

    moment = datetime(2025, 1, 2, 3, 4, 5, 6, tzinfo=UTC)
    ids = {numbering.new_batch_id(when=moment) for _ in range(50)}
    assert len(ids) == 50


def test_new_document_id_is_opaque_hex():
    first = numbering.new_document_id()
    second = numbering.new_document_id()

    assert first != second
    assert len(first) == 32
    int(first, 16)
