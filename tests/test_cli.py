"""Tests for the vcf-combine command line."""

from __future__ import annotations

import pytest
import vcfpy

from conftest import write_vcf
from vcf_combine import cli
from vcf_combine.logging_utils import LOG_FILE
from vcf_combine.models import GenotypeMergeType, MergeType

ROW_A = "chr1\t100\t.\tG\tT\t50\tPASS\t.\tGT\t0/1"
ROW_B = "chr1\t100\t.\tG\tA\t50\tLowQual\t.\tGT\t1/1"


@pytest.fixture
def inputs(tmp_path):
    a = write_vcf(tmp_path / "a.vcf", ["S1"], [ROW_A])
    b = write_vcf(tmp_path / "b.vcf", ["S2"], [ROW_B])
    return a, b


def test_parse_arguments_defaults(tmp_path):
    args = cli.parse_arguments(["-V", "calls1=a.vcf", "-o", str(tmp_path / "out.vcf")])
    assert list(args.input_bindings) == ["calls1"]
    assert args.genotype_merge_option is GenotypeMergeType.PRIORITIZE
    assert args.variant_merge_option is MergeType.UNION
    assert args.set_key == "set"
    assert args.annotate is True
    assert args.threads == 1


def test_parse_arguments_accepts_long_option_aliases():
    args = cli.parse_arguments(
        [
            "--variant", "A=a.vcf",
            "--variant", "B=b.vcf",
            "-o", "out.vcf",
            "--genotypeMergeOptions", "uniquify",
            "--variantMergeOptions", "intersection",
            "--rod-priority-list", "B,A",
            "--minimal-vcf",
            "--no-annotation",
        ]
    )
    assert list(args.input_bindings) == ["A", "B"]
    assert args.genotype_merge_option is GenotypeMergeType.UNIQUIFY
    assert args.variant_merge_option is MergeType.INTERSECTION
    assert args.priority == "B,A"
    assert args.minimal_vcf is True
    assert args.annotate is False


@pytest.mark.parametrize(
    "argv",
    [
        ["-o", "out.vcf"],
        ["-V", "a.vcf", "-o", "out.vcf"],
        ["-V", "A=a.vcf", "-V", "A=b.vcf", "-o", "out.vcf"],
        ["-V", "A=a.vcf", "-o", "out.vcf", "--threads", "0"],
        ["-V", "A=a.vcf", "-o", "out.vcf", "--variantMergeOptions", "XOR"],
    ],
)
def test_parse_arguments_rejects_bad_input(argv):
    with pytest.raises(SystemExit):
        cli.parse_arguments(argv)


def test_main_writes_combined_vcf(inputs, tmp_path, capsys):
    a, b = inputs
    out = tmp_path / "results" / "combined.vcf"

    cli.main(["-V", f"A={a}", "-V", f"B={b}", "-o", str(out), "--priority", "A,B"])

    assert "Wrote:" in capsys.readouterr().out
    assert (out.parent / LOG_FILE).exists()
    with vcfpy.Reader.from_path(str(out)) as reader:
        records = list(reader)
    assert len(records) == 1
    assert records[0].INFO["set"] == "A-filterInB"
    assert records[0].FILTER == ["PASS"]


def test_main_intersection_marks_site_filtered(inputs, tmp_path):
    a, b = inputs
    out = tmp_path / "combined.vcf"

    cli.main(
        ["-V", f"A={a}", "-V", f"B={b}", "-o", str(out), "--priority", "A,B", "--variantMergeOptions", "INTERSECTION"]
    )

    with vcfpy.Reader.from_path(str(out)) as reader:
        (record,) = list(reader)
    assert record.FILTER == ["LowQual"]


def test_main_reports_missing_priority(inputs, tmp_path, capsys):
    a, b = inputs
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["-V", f"A={a}", "-V", f"B={b}", "-o", str(tmp_path / "out.vcf")])
    assert excinfo.value.code == 1
    assert "ERROR:" in capsys.readouterr().out


def test_main_reports_missing_input(tmp_path, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["-V", f"A={tmp_path / 'absent.vcf'}", "-o", str(tmp_path / "out.vcf"), "--priority", "A"])
    assert excinfo.value.code == 1
    assert "does not exist" in capsys.readouterr().out
