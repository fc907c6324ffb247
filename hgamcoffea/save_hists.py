import logging
from pathlib import Path
from types import MappingProxyType

import uproot
from hist import Hist

from hgamcoffea.errors import OutputOpenError
from hgamcoffea.histograms import create_hist

logger = logging.getLogger(__name__)


class HistogramFile:
    """Output ROOT file that owns the histograms booked into it.

    The file is created (truncating any existing content) on construction.
    Booked histograms live as long as the file object; ``write()`` persists
    all of them under their own names in one go. Closing without writing
    leaves the file with no histograms in it.

    Usage::

        with HistogramFile("histograms.root") as fout:
            h = fout.book("m_yy", (110, 105, 160), "m_yy")
            h.fill(m_yy=[125.0])
            fout.write()
    """

    def __init__(self, path):
        self.path = Path(path)
        try:
            self._file = uproot.recreate(self.path)
        except OSError as e:
            raise OutputOpenError(f"cannot open output ROOT file \"{self.path}\"") from e
        self._hists: dict[str, Hist] = {}
        self._written = False
        logger.debug("Opened output file %s", self.path)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def histograms(self):
        """Read-only view of the booked histograms, in booking order."""
        return MappingProxyType(self._hists)

    @property
    def closed(self) -> bool:
        return self._file is None

    def book(self, name, bins, label):
        """Create a histogram owned by this file and return it."""
        if name in self._hists:
            raise ValueError(f"Histogram '{name}' is already booked in {self.path}.")
        h = create_hist(name, bins, label)
        self._hists[name] = h
        return h

    def write(self):
        """Write every booked histogram to the file. Later calls are no-ops."""
        if self._written:
            return
        if self._file is None:
            raise ValueError(f"Cannot write to closed output file {self.path}.")
        for name, h in self._hists.items():
            self._file[name] = h
        self._written = True
        logger.info("Histograms saved to %s.", self.path)

    def close(self):
        if self._file is None:
            return
        self._file.close()
        self._file = None


def read_histograms(path) -> dict[str, Hist]:
    """Read every 1D histogram stored at the top level of a ROOT file."""
    out = {}
    with uproot.open(path) as f:
        for key, classname in f.classnames(cycle=False).items():
            if classname.startswith("TH1"):
                out[key] = f[key].to_hist()
    return out
