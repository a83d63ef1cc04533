"""Detect sex-linked scaffolds from per-scaffold heterozygosity statistics."""

from .config import FEMALE, MALE, SEXES, PipelineConfig, get_pipeline_ctx
from .errors import (
    ExcludedScaffoldWarning,
    InsufficientSampleSize,
    InvalidRecord,
    MissingInputFile,
    NoMatchingIndividual,
    SchemaMismatch,
    SexLinkageError,
)
from .run import PipelineResult, analyze, run_pipeline

__all__ = [
    "FEMALE",
    "MALE",
    "SEXES",
    "PipelineConfig",
    "get_pipeline_ctx",
    "ExcludedScaffoldWarning",
    "InsufficientSampleSize",
    "InvalidRecord",
    "MissingInputFile",
    "NoMatchingIndividual",
    "SchemaMismatch",
    "SexLinkageError",
    "PipelineResult",
    "analyze",
    "run_pipeline",
]

__version__ = "0.1.0"
