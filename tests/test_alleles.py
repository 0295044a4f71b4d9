"""Tests for cross-source allele unification."""

from __future__ import annotations

import pytest

from conftest import make_record, tagged
from vcf_combine.alleles import is_symbolic, pad_allele, unify_alleles
from vcf_combine.logging_utils import AlleleConflictError
from vcf_combine.priority import PriorityList


def test_identical_alleles_need_no_reconciliation():
    result = unify_alleles(
        [tagged("A", make_record("G", ["T"])), tagged("B", make_record("G", ["T"]))],
        PriorityList(["A", "B"]),
    )
    assert result.reference == "G"
    assert result.alternates == ("T",)
    assert result.remaps == {"A": (0, 1), "B": (0, 1)}
    assert result.needed_reconciliation is False


def test_distinct_alternates_follow_priority_order():
    records = [tagged("A", make_record("G", ["T"])), tagged("B", make_record("G", ["A"]))]

    result = unify_alleles(records, PriorityList(["A", "B"]))
    assert result.alleles == ("G", "T", "A")
    assert result.remaps["B"] == (0, 2)
    assert result.needed_reconciliation is True

    reversed_priority = unify_alleles(records, PriorityList(["B", "A"]))
    assert reversed_priority.alternates == ("A", "T")
    assert reversed_priority.remaps["A"] == (0, 2)


def test_shared_alternate_maps_to_one_index():
    result = unify_alleles(
        [tagged("A", make_record("G", ["T", "C"])), tagged("B", make_record("G", ["C"]))],
        PriorityList(["A", "B"]),
    )
    assert result.alternates == ("T", "C")
    assert result.remaps["B"] == (0, 2)


def test_shorter_reference_alternates_are_padded():
    snv = tagged("A", make_record("G", ["T"]))
    deletion = tagged("B", make_record("GA", ["G"]))

    result = unify_alleles([snv, deletion], PriorityList(["A", "B"]))

    assert result.reference == "GA"
    assert result.alternates == ("TA", "G")
    assert result.remaps == {"A": (0, 1), "B": (0, 2)}
    assert result.needed_reconciliation is True


def test_symbolic_alleles_are_not_padded():
    result = unify_alleles(
        [tagged("A", make_record("G", ["<DEL>"])), tagged("B", make_record("GA", ["G"]))],
        PriorityList(["A", "B"]),
    )
    assert result.alternates == ("<DEL>", "G")


def test_conflicting_references_raise():
    records = [tagged("A", make_record("G", ["T"])), tagged("B", make_record("CA", ["C"]))]
    with pytest.raises(AlleleConflictError):
        unify_alleles(records, PriorityList(["A", "B"]))
    with pytest.raises(AlleleConflictError):
        unify_alleles(records, PriorityList(["A", "B"]), reference_bases="gat")


def test_genome_mismatch_keeps_record_alleles(combiner_caplog):
    result = unify_alleles(
        [tagged("A", make_record("CA", ["C"]))],
        PriorityList(["A"]),
        reference_bases="gat",
    )
    assert result.reference == "CA"
    assert result.alternates == ("C",)
    assert result.remaps == {"A": (0, 1)}
    assert any("disagrees with the reference genome" in rec.message for rec in combiner_caplog.records)


def test_genome_match_is_silent(combiner_caplog):
    unify_alleles(
        [tagged("A", make_record("G", ["T"])), tagged("B", make_record("GA", ["G"]))],
        PriorityList(["A", "B"]),
        reference_bases="GAT",
    )
    assert not any("disagrees" in rec.message for rec in combiner_caplog.records)


def test_lowercase_record_keeps_its_case():
    result = unify_alleles([tagged("A", make_record("g", ["t"]))], PriorityList(["A"]), reference_bases="GAT")
    assert result.alleles == ("g", "t")
    assert result.needed_reconciliation is False


def test_mixed_case_references_are_upper_cased():
    result = unify_alleles(
        [tagged("A", make_record("g", ["t"])), tagged("B", make_record("GA", ["G"]))],
        PriorityList(["A", "B"]),
    )
    assert result.reference == "GA"
    assert result.alternates == ("TA", "G")
    assert result.needed_reconciliation is True


def test_alternate_folding_onto_reference_raises():
    with pytest.raises(AlleleConflictError):
        unify_alleles(
            [tagged("A", make_record("g", ["G"])), tagged("B", make_record("GA", ["T"]))],
            PriorityList(["A", "B"]),
        )


def test_unify_requires_records():
    with pytest.raises(ValueError):
        unify_alleles([], PriorityList(["A"]))


@pytest.mark.parametrize("allele", ["<DEL>", "*", "G]chr2:100]", ".A", "A."])
def test_symbolic_allele_detection(allele):
    assert is_symbolic(allele)


def test_pad_allele():
    assert pad_allele("T", "G", "GAC") == "TAC"
    assert pad_allele("G", "GA", "GA") == "G"
    assert pad_allele("<INS>", "G", "GA") == "<INS>"
