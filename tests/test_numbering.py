from datetime import date

import pytest

from app.core.exceptions import MalformedInput
from app.services.quotations.numbering import (
    generate_quotation_id,
    next_quotation_number,
    revise_number,
    revision_base,
    split_revision,
)

TODAY = date(2025, 6, 15)


def test_first_number_of_the_day():
    assert next_quotation_number([], TODAY) == "20250615Q1"


def test_next_number_is_max_plus_one():
    assert next_quotation_number(["20250615Q1", "20250615Q2"], TODAY) == "20250615Q3"


def test_gaps_and_order_do_not_matter():
    assert next_quotation_number(["20250615Q7", "20250615Q2"], TODAY) == "20250615Q8"


def test_other_days_are_ignored():
    assert next_quotation_number(["20250614Q9", "20250616Q4"], TODAY) == "20250615Q1"


def test_revisions_do_not_advance_the_sequence():
    # "...Q1R2" has no trailing Q<digits>
    assert next_quotation_number(["20250615Q1", "20250615Q1R2"], TODAY) == "20250615Q2"


def test_malformed_numbers_count_as_zero():
    assert next_quotation_number(["20250615garbage", "20250615Q"], TODAY) == "20250615Q1"


@pytest.mark.parametrize("bad", [None, "20250615Q1", 42])
def test_non_list_input_is_rejected(bad):
    with pytest.raises(MalformedInput):
        next_quotation_number(bad, TODAY)


def test_non_string_entry_is_rejected():
    with pytest.raises(MalformedInput):
        next_quotation_number(["20250615Q1", 7], TODAY)


def test_revise_unrevised_number():
    assert revise_number("20250101Q1") == "20250101Q1R1"


def test_revise_revised_number():
    assert revise_number("20250101Q1R1") == "20250101Q1R2"
    assert revise_number("20250101Q1R9") == "20250101Q1R10"


def test_unparsable_suffix_counts_as_zero():
    assert revise_number("20250101Q1Rx") == "20250101Q1R1"


def test_revision_chain_shares_the_base():
    chain = ["20250101Q4"]
    for _ in range(3):
        chain.append(revise_number(chain[-1]))

    assert chain[-1] == "20250101Q4R3"
    assert {revision_base(n) for n in chain} == {"20250101Q4"}
    assert [split_revision(n)[1] for n in chain] == [0, 1, 2, 3]


@pytest.mark.parametrize("bad", ["", None])
def test_revise_rejects_empty_input(bad):
    with pytest.raises(MalformedInput):
        revise_number(bad)


def test_generated_ids_are_unique_and_prefixed():
    ids = {generate_quotation_id() for _ in range(200)}
    assert len(ids) == 200
    assert all(i.startswith("QT") and len(i) == 18 for i in ids)
