"""Base model abstract class."""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseModel(ABC):
    """Abstract base class for pyheckmange models."""

    @abstractmethod
    def fit(self, cluster=None, *, allow_degraded: bool = False):
        """Estimate model parameters, optionally with clustered errors."""
        ...
