"""Tests for the bin/run_analysis.py command-line entry point."""

import logging
import os
import sys

import awkward as ak
import numpy as np
import pytest
import uproot

from hgamcoffea.analysis_config import TREE_NAME
from hgamcoffea.save_hists import read_histograms

BIN_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "bin",
)
if BIN_DIR not in sys.path:
    sys.path.insert(0, BIN_DIR)

import run_analysis


def _write_input(path, tree_name=TREE_NAME, photon_pt=62.65):
    """One event: m_yy = 2 * photon_pt from back-to-back photons, one 40 GeV jet."""
    columns = {
        "njets": np.array([1], dtype=np.uint32),
        "photon_pt": [np.array([photon_pt, photon_pt], dtype=np.float32)],
        "photon_eta": [np.array([0.0, 0.0], dtype=np.float32)],
        "photon_phi": [np.array([0.0, np.pi], dtype=np.float32)],
        "photon_m": [np.array([0.0, 0.0], dtype=np.float32)],
        "jet_pt": [np.array([40.0], dtype=np.float32)],
        "jet_eta": [np.array([0.3], dtype=np.float32)],
        "jet_phi": [np.array([1.2], dtype=np.float32)],
        "jet_m": [np.array([6.0], dtype=np.float32)],
    }
    branch_types = {"njets": np.uint32}
    branch_types.update({k: "var * float32" for k in columns if k != "njets"})
    with uproot.recreate(path) as f:
        f.mktree(tree_name, branch_types)
        f[tree_name].extend({k: (v if k == "njets" else ak.values_astype(ak.Array(v), np.float32)) for k, v in columns.items()})
    return path


@pytest.mark.parametrize("argv", [[], ["only_one.root"], ["a.root", "b.root", "c.root"]])
def test_wrong_argument_count(argv, tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert run_analysis.main(argv) == 1
    assert "usage: run_analysis.py data.root histograms.root" in capsys.readouterr().out
    assert list(tmp_path.iterdir()) == []


def test_wrong_argument_count_does_not_touch_existing_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    existing = tmp_path / "b.root"
    existing.write_text("keep me\n", encoding="utf-8")
    assert run_analysis.main(["a.root", "b.root", "c.root"]) == 1
    assert existing.read_text(encoding="utf-8") == "keep me\n"


def test_invalid_step_size_is_usage_error(tmp_path):
    out = tmp_path / "hists.root"
    assert run_analysis.main([str(tmp_path / "in.root"), str(out), "--step-size", "0"]) == 1
    assert not out.exists()


def test_success(tmp_path, caplog):
    inp = _write_input(tmp_path / "data.root")
    out = tmp_path / "hists.root"
    with caplog.at_level(logging.INFO):
        assert run_analysis.main([str(inp), str(out), "--no-progress"]) == 0
    assert "m_yy=1, pT_j1=1" in caplog.text

    hists = read_histograms(out)
    assert hists["m_yy"].values().sum() == 1
    pt = hists["pT_j1"]
    assert pt.values()[pt.axes[0].index(40.0)] == 1


def test_summary_reports_written_histograms(tmp_path, caplog):
    # m_yy = 200 GeV lands in the overflow bin
    inp = _write_input(tmp_path / "data.root", photon_pt=100.0)
    out = tmp_path / "hists.root"
    with caplog.at_level(logging.INFO):
        assert run_analysis.main([str(inp), str(out), "--no-progress", "--summary"]) == 0
    assert "m_yy: entries=1 (underflow=0, overflow=1)" in caplog.text
    assert "pT_j1: entries=1 (underflow=0, overflow=0)" in caplog.text


def test_no_summary_by_default(tmp_path, caplog):
    inp = _write_input(tmp_path / "data.root")
    with caplog.at_level(logging.INFO):
        assert run_analysis.main([str(inp), str(tmp_path / "hists.root"), "--no-progress"]) == 0
    assert "entries=" not in caplog.text


def test_output_open_failure(tmp_path, caplog):
    inp = _write_input(tmp_path / "data.root")
    with caplog.at_level(logging.ERROR):
        code = run_analysis.main([str(inp), str(tmp_path / "no_dir" / "hists.root"), "--no-progress"])
    assert code == 1
    assert "cannot open output ROOT file" in caplog.text


def test_input_open_failure(tmp_path, caplog):
    with caplog.at_level(logging.ERROR):
        code = run_analysis.main([str(tmp_path / "missing.root"), str(tmp_path / "hists.root"), "--no-progress"])
    assert code == 1
    assert "cannot open input ROOT file" in caplog.text


def test_missing_tree(tmp_path, caplog):
    inp = _write_input(tmp_path / "data.root", tree_name="Events")
    out = tmp_path / "hists.root"
    with caplog.at_level(logging.ERROR):
        code = run_analysis.main([str(inp), str(out), "--no-progress"])
    assert code == 1
    assert "cannot get TTree \"HGamData\"" in caplog.text
    assert read_histograms(out) == {}


class TestColorFormatter:
    def _record(self, level):
        return logging.LogRecord("x", level, __file__, 1, "message", None, None)

    def test_error_is_red(self):
        fmt = run_analysis._ColorFormatter("%(message)s")
        assert fmt.format(self._record(logging.ERROR)) == "\033[31mmessage\033[0m"

    def test_info_is_plain(self):
        fmt = run_analysis._ColorFormatter("%(message)s")
        assert fmt.format(self._record(logging.INFO)) == "message"
