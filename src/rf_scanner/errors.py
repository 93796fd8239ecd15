"""Exception hierarchy for rf_scanner.

Numeric degeneracies are clamped where they occur and never raised;
classification misses are the ``"Unknown"`` label.  What remains are
failures of the external collaborators a session talks to.
"""


class ScannerError(Exception):
    """Base class for all rf_scanner errors."""


class AcquisitionError(ScannerError):
    """The radio front end could not retune or deliver a sample block.

    Fatal to the session that hit it.  Retry policy, if any, belongs
    to the acquisition collaborator itself.
    """


class StoreError(ScannerError):
    """A detected signal could not be persisted."""


class ExportError(ScannerError):
    """A finished scan or spectral history could not be exported."""
