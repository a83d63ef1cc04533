"""Exceptions and warnings raised by the sex-linkage pipeline."""

from __future__ import annotations

from typing import Sequence


class SexLinkageError(Exception):
    """Base class for every fatal pipeline error."""


class MissingInputFile(SexLinkageError, FileNotFoundError):
    pass


class SchemaMismatch(SexLinkageError, ValueError):
    """An input table is missing required columns or has unusable values."""


class InvalidRecord(SexLinkageError, ValueError):
    """A single record cannot be used (zero loci, unknown sex label, ...)."""


class InsufficientSampleSize(SexLinkageError, ValueError):
    """A scaffold lacks the two observations per sex a t-test needs."""

    def __init__(self, scaffolds: Sequence[str], message: str | None = None):
        self.scaffolds = list(scaffolds)
        if message is None:
            message = (
                "Fewer than 2 observations per sex for scaffold(s): "
                + ", ".join(self.scaffolds)
            )
        super().__init__(message)


class NoMatchingIndividual(SexLinkageError, RuntimeError):
    """The join between homozygosity records and sex labels is empty."""


class ExcludedScaffoldWarning(UserWarning):
    """Scaffolds were left out of the comparison table."""
