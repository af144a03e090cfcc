"""Exceptions raised inside the research pipeline."""


class ExtremeSearchError(Exception):
    """Base exception for research pipeline errors."""


class EmptyPromptError(ExtremeSearchError, ValueError):
    """Raised before the pipeline starts when the prompt is blank."""


class SearchProviderError(ExtremeSearchError):
    """Raised when a search provider is misconfigured or unsupported."""


class SandboxError(ExtremeSearchError):
    """Raised when the code sandbox cannot be created or run."""


class PlannerError(ExtremeSearchError):
    """Raised when plan generation fails or violates the plan schema."""


class SynthesisError(ExtremeSearchError):
    """Raised when report generation fails or returns nothing."""
