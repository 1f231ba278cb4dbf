"""
Exception hierarchy for the sign analysis pipeline.
"""


class SignAnalysisError(Exception):
    """Base class for all pipeline errors."""


class ResourceLoadError(SignAnalysisError):
    """Vocabulary or normalization resource is missing or malformed.

    Fatal to the analysis session: the analyzer cannot be built without
    both tables.
    """


class ClassificationError(SignAnalysisError):
    """Classifier invocation failed for a single frame."""
