"""Histogram specification, creation, and filling for the H->yy analysis.

Canonical naming choice:
  - Histogram key in the output dict == numeric axis name == ROOT key

Each spec is: (name, bins, label) with bins = (nbins, low, high). Bins are
half-open: ``low`` lands in the first bin, ``high`` in the overflow bin.
"""

import logging

import awkward as ak
import hist

logger = logging.getLogger(__name__)


HIST_SPECS: list[tuple[str, tuple[int, float, float], str]] = [
    ("m_yy",  (110, 105,  160), r"$m_{\gamma\gamma}$ [GeV]"),
    ("pT_j1", (500,   0, 1000), r"$p_{T}$ of the leading jet [GeV]"),
]


def _booking_specs() -> dict[str, tuple[tuple[int, float, float], str]]:
    """Return histogram booking metadata keyed by canonical histogram name."""
    return {name: (bins, label) for name, bins, label in HIST_SPECS}


def create_hist(name, bins, label):
    """Create a single 1D physics histogram with under/overflow bins."""
    return (
        hist.Hist.new
        .Reg(*bins, name=name, label=label)
        .Weight()
    )


def diphoton_mass(photons):
    """Invariant mass of the system of the first two photons in each event."""
    diphoton = photons[:, 0] + photons[:, 1]
    return diphoton.mass


def leading_jet_pt(jets):
    """pT of the first stored jet, for events with at least one jet.

    No sorting is done: jets are assumed to be stored in descending pT.
    """
    has_jet = ak.num(jets, axis=1) >= 1
    return jets[has_jet][:, 0].pt


def fill_histograms(output, photons, jets):
    """Fill ``m_yy`` and ``pT_j1`` for one chunk of events.

    ``m_yy`` receives one value per event regardless of the jet multiplicity;
    ``pT_j1`` only for events with at least one jet in *jets*.

    Returns the number of values filled per histogram.
    """
    m_yy = ak.to_numpy(diphoton_mass(photons))
    output["m_yy"].fill(m_yy=m_yy)

    pt_j1 = ak.to_numpy(leading_jet_pt(jets))
    if len(pt_j1):
        output["pT_j1"].fill(pT_j1=pt_j1)

    logger.debug("Filled %d m_yy and %d pT_j1 values", len(m_yy), len(pt_j1))
    return {"m_yy": len(m_yy), "pT_j1": len(pt_j1)}
