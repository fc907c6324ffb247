"""H->yy event analyzer.

High-level flow:
    1) Create the output ROOT file and book the histograms into it.
    2) Open the input ROOT file and locate the ``HGamData`` tree.
    3) Read the tree chunk by chunk in storage order; for each chunk build
       photon and jet 4-vectors and fill ``m_yy`` / ``pT_j1``.
    4) Write the histograms once, after the last chunk.

Both files are closed on every exit path. If anything fails before step 4 the
output file is left without histograms.
"""

import logging
import time
from dataclasses import dataclass, field

import awkward as ak
import numpy as np
import uproot
from coffea.nanoevents.methods import vector
from uproot.behaviors.TTree import TTree

from hgamcoffea.analysis_config import (
    BRANCH_NJETS, BRANCHES, DEFAULT_STEP_SIZE, JET_BRANCHES, N_PHOTONS,
    PHOTON_BRANCHES, TREE_NAME,
)
from hgamcoffea.errors import InputOpenError, MalformedEventError, MissingCollectionError
from hgamcoffea.histograms import HIST_SPECS, fill_histograms
from hgamcoffea.save_hists import HistogramFile

ak.behavior.update(vector.behavior)
logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Outcome of a run() call."""
    input_path: str
    output_path: str
    n_events: int = 0
    n_chunks: int = 0
    entries: dict[str, int] = field(default_factory=dict)
    elapsed: float = 0.0


# ---------------------------------------------------------------------------
# 4-vector construction
# ---------------------------------------------------------------------------

def _zip_vectors(events, branches, selection):
    # kinematics in double precision; float32 inputs widen exactly
    return ak.zip(
        {
            coord: ak.values_astype(events[branch][selection], np.float64)
            for coord, branch in branches.items()
        },
        with_name="PtEtaPhiMLorentzVector",
    )


def build_photons(events):
    """Photon 4-vectors from the first ``N_PHOTONS`` slots, in index order."""
    return _zip_vectors(events, PHOTON_BRANCHES, (slice(None), slice(None, N_PHOTONS)))


def build_jets(events):
    """Jet 4-vectors from the first ``njets`` slots of each event, in index order."""
    keep = ak.local_index(events[JET_BRANCHES["pt"]], axis=1) < events[BRANCH_NJETS]
    return _zip_vectors(events, JET_BRANCHES, keep)


def validate_events(events, entry_start=0):
    """Raise MalformedEventError if an event has too few photon or jet entries.

    ``entry_start`` is the tree entry of the first event in the chunk and is
    only used for the error message.
    """
    njets = ak.to_numpy(events[BRANCH_NJETS])
    checks = [(branch, N_PHOTONS) for branch in PHOTON_BRANCHES.values()]
    checks += [(branch, njets) for branch in JET_BRANCHES.values()]

    for branch, needed in checks:
        bad = ak.to_numpy(ak.num(events[branch], axis=1)) < needed
        if np.any(bad):
            idx = int(np.flatnonzero(bad)[0])
            expected = needed if np.isscalar(needed) else int(needed[idx])
            raise MalformedEventError(
                f"event {entry_start + idx}: branch \"{branch}\" has "
                f"{len(events[branch][idx])} entries, expected at least {expected}"
            )


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------

def open_events_tree(path):
    """Open *path* and return ``(file, tree)`` for the ``HGamData`` tree.

    The caller owns the returned file and must close it.
    """
    try:
        fin = uproot.open(path)
    except (OSError, ValueError) as e:
        raise InputOpenError(f"cannot open input ROOT file \"{path}\"") from e

    try:
        tree = fin[TREE_NAME] if TREE_NAME in fin else None
        if not isinstance(tree, TTree):
            raise MissingCollectionError(f"cannot get TTree \"{TREE_NAME}\"")
        missing = [b for b in BRANCHES if b not in tree]
        if missing:
            raise MissingCollectionError(
                f"TTree \"{TREE_NAME}\" has no branch(es): {', '.join(missing)}"
            )
    except BaseException:
        fin.close()
        raise
    return fin, tree


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------

def book_histograms(fout):
    """Book every histogram in HIST_SPECS into *fout*; return name -> Hist."""
    return {name: fout.book(name, bins, label) for name, bins, label in HIST_SPECS}


class HGamAnalysis:
    """Fill the diphoton-mass and leading-jet-pT histograms chunk by chunk.

    The histograms are borrowed from their owner (normally a HistogramFile);
    this class only fills them.
    """

    def __init__(self, hists):
        missing = [name for name, _, _ in HIST_SPECS if name not in hists]
        if missing:
            raise ValueError(f"Missing histograms for analysis: {missing}")
        self._hists = hists

    def process(self, events, entry_start=0):
        """Validate and fill one chunk of events. Returns entries filled per histogram."""
        validate_events(events, entry_start=entry_start)
        photons = build_photons(events)
        jets = build_jets(events)
        return fill_histograms(self._hists, photons, jets)


def run(input_path, output_path, *, step_size=DEFAULT_STEP_SIZE, progress=None):
    """Run the full analysis from *input_path* into *output_path*.

    ``progress`` is an optional tqdm-like observer: ``progress.update(n)`` is
    called with the number of events in each processed chunk, and
    ``progress.reset(total=...)`` (if present) once the event count is known.
    It has no effect on the histograms.
    """
    if step_size < 1:
        raise ValueError("step_size must be a positive integer")

    t0 = time.monotonic()
    summary = RunSummary(input_path=str(input_path), output_path=str(output_path))

    with HistogramFile(output_path) as fout:
        analysis = HGamAnalysis(book_histograms(fout))

        print(f"reading input ROOT file \"{input_path}\"", flush=True)
        fin, tree = open_events_tree(input_path)
        with fin:
            logger.info("Found %d events in TTree \"%s\"", tree.num_entries, TREE_NAME)
            if progress is not None and hasattr(progress, "reset"):
                progress.reset(total=tree.num_entries)

            summary.entries = {name: 0 for name, _, _ in HIST_SPECS}
            for events, report in tree.iterate(
                BRANCHES, step_size=step_size, library="ak", report=True
            ):
                filled = analysis.process(events, entry_start=report.tree_entry_start)
                for name, n in filled.items():
                    summary.entries[name] += n
                summary.n_events += len(events)
                summary.n_chunks += 1
                if progress is not None:
                    progress.update(len(events))

        fout.write()

    summary.elapsed = time.monotonic() - t0
    return summary
