"""Exceptions raised by the adoption pipeline.

Skippable problems (undecodable test names, unknown clients, malformed
table rows) are reported and never raised. These exceptions mark failures
that abort the current EIP.
"""

from __future__ import annotations


class AdoptionError(Exception):
    """Base class for unrecoverable pipeline errors."""


class ExportNotFoundError(AdoptionError):
    """No Hive results export was found in the output directory."""


class ResultsNotFoundError(AdoptionError):
    """The persisted test results document does not exist."""


class ManifestNotFoundError(AdoptionError):
    """The fork manifest does not exist or is not valid JSON."""


class TableFormatError(AdoptionError):
    """The test case table could not be located in a document."""


class HiveNotFoundError(AdoptionError):
    """The Hive CLI is not installed at the configured location."""


class FetchError(AdoptionError):
    """An EIP test case document could not be fetched."""
