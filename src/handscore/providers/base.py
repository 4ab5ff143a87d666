"""Abstract base for handwriting scoring providers."""

from abc import ABC, abstractmethod

from handscore.analysis import HandwritingAnalysis
from handscore.preprocessing import ScoringPayload


class BaseProvider(ABC):
    @abstractmethod
    def score(self, payload: ScoringPayload) -> HandwritingAnalysis:
        """Score one preprocessed handwriting image against the standard."""
        ...
