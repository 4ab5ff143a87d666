"""Exception hierarchy shared by the pipeline, providers and CLI."""


class HandscoreError(Exception):
    """Base class for every error raised by handscore."""


class PreprocessError(HandscoreError):
    """A preprocessing stage failed; the pipeline produced no output."""


class DecodeError(PreprocessError):
    """Input bytes are not a readable image, or its dimensions are degenerate."""


class ComputeError(PreprocessError):
    """An internal invariant was violated between pipeline stages."""


class EncodeError(PreprocessError):
    """The final buffer could not be serialised."""


class ScoringError(HandscoreError):
    """The scoring provider failed or returned an unusable response."""
