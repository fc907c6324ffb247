"""Lightweight configuration for the H->yy histogramming analysis.

Keep this module dependency-free so it can be imported cheaply by the CLI and
the tests.
"""

# Name of the input TTree holding one entry per event
TREE_NAME = "HGamData"

# --- Branch names (single source of truth for string keys) ---------------------
BRANCH_NJETS = "njets"

PHOTON_BRANCHES = {
    "pt": "photon_pt",
    "eta": "photon_eta",
    "phi": "photon_phi",
    "mass": "photon_m",
}

JET_BRANCHES = {
    "pt": "jet_pt",
    "eta": "jet_eta",
    "phi": "jet_phi",
    "mass": "jet_m",
}

BRANCHES = [BRANCH_NJETS, *PHOTON_BRANCHES.values(), *JET_BRANCHES.values()]

# Every event carries exactly two photons
N_PHOTONS = 2

# Entries read from the input tree per chunk
DEFAULT_STEP_SIZE = 100_000

# Seconds between progress bar refreshes
PROGRESS_MININTERVAL = 1.0
