"""Fatal error types raised by the pipeline.

Every condition that aborts a run derives from `PipelineError` so the CLI can
report it and exit without writing a snapshot. Row-level data problems
(unparseable or non-positive numbers) are never raised; those rows are simply
left out of the results.
"""

from __future__ import annotations

from typing import Sequence


class PipelineError(RuntimeError):
    """Base class for fatal pipeline failures."""


class ConfigurationError(PipelineError):
    """Ticker map missing/empty or an invalid setting."""


class SourceUnavailable(PipelineError):
    """No candidate year could be downloaded, extracted and selected."""


class MissingRequiredFile(PipelineError):
    """The archive lacks the general table or every supplementary candidate."""


class SchemaDetectionFailure(PipelineError):
    """Required columns could not be located in a table header.

    Attributes:
        headers: The raw header row that was inspected.
        missing: Logical column roles that could not be resolved.
    """

    def __init__(self, message: str, headers: Sequence[str] = (), missing: Sequence[str] = ()) -> None:
        self.headers = list(headers)
        self.missing = list(missing)
        if self.headers:
            message = f"{message} (headers: {self.headers})"
        super().__init__(message)


class NoMatchingRows(PipelineError):
    """No scanned row matched the wanted identifier set."""
