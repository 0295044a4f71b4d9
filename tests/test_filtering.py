"""Tests for merged filter status resolution."""

from __future__ import annotations

import itertools

import pytest

from conftest import make_record, tagged
from vcf_combine.filtering import is_filtered_status, normalize_filters, resolve_filter
from vcf_combine.models import MergeType
from vcf_combine.priority import PriorityList

SOURCES = ["A", "B", "C", "D"]


def _records(statuses):
    return [
        tagged(source, make_record(filters=("LowQual",) if filtered else ()))
        for source, filtered in zip(SOURCES, statuses)
    ]


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, None),
        ([], None),
        (["."], None),
        (["PASS"], ()),
        (["LowQual"], ("LowQual",)),
        (["PASS", "LowQual"], ("LowQual",)),
    ],
)
def test_normalize_filters(raw, expected):
    assert normalize_filters(raw) == expected


def test_is_filtered_status():
    assert not is_filtered_status(None)
    assert not is_filtered_status(())
    assert not is_filtered_status(["PASS"])
    assert is_filtered_status(["LowQual"])


@pytest.mark.parametrize("size", [1, 2, 3, 4])
def test_union_is_filtered_only_when_every_record_is(size):
    for statuses in itertools.product([False, True], repeat=size):
        resolution = resolve_filter(_records(statuses), MergeType.UNION, False)
        assert resolution.is_filtered == all(statuses), statuses


@pytest.mark.parametrize("size", [1, 2, 3, 4])
def test_intersection_is_filtered_when_any_record_is(size):
    for statuses in itertools.product([False, True], repeat=size):
        resolution = resolve_filter(_records(statuses), MergeType.INTERSECTION, False)
        assert resolution.is_filtered == any(statuses), statuses


def test_filtered_records_can_be_treated_as_uncalled():
    records = _records([False, True])
    resolution = resolve_filter(records, MergeType.INTERSECTION, True)
    assert resolution.filters == ()
    assert resolution.provenance_sources == ("A",)
    assert [t.source for t in resolution.contributing] == ["A"]


def test_all_filtered_and_uncalled_leaves_nothing():
    resolution = resolve_filter(_records([True, True]), MergeType.UNION, True)
    assert resolution.contributing == ()
    assert resolution.filters is None


def test_pass_wins_over_unknown_status():
    records = [tagged("A", make_record(filters=None)), tagged("B", make_record(filters=()))]
    assert resolve_filter(records, MergeType.UNION, False).filters == ()
    unknown = [tagged("A", make_record(filters=None))]
    assert resolve_filter(unknown, MergeType.UNION, False).filters is None


def test_filter_names_are_unioned_in_priority_order():
    records = [
        tagged("B", make_record(filters=("LowDP", "LowQual"))),
        tagged("A", make_record(filters=("LowQual",))),
    ]
    resolution = resolve_filter(records, MergeType.UNION, False, PriorityList(["A", "B"]))
    assert resolution.filters == ("LowQual", "LowDP")
    assert resolution.provenance_sources == ("A", "B")
    assert resolution.filtered_sources == ("A", "B")


def test_intersection_reports_filtered_sources():
    resolution = resolve_filter(_records([False, True]), MergeType.INTERSECTION, False)
    assert resolution.filters == ("LowQual",)
    assert resolution.filtered_sources == ("B",)
