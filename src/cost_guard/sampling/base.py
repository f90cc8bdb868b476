"""
Abstract cost sampler and sampler registry.

A sampler produces one amount per tracked service for a given day. The
simulated sampler ships today; a billing-backed sampler can be registered
with ``SamplerFactory`` without changing the detector or the scheduler.
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Any


class CostSampler(ABC):
    """Abstract base class for per-service daily cost sources."""

    @property
    @abstractmethod
    def services(self) -> list[str]:
        """Tracked service names, each sampled exactly once per day."""
        pass

    @abstractmethod
    async def sample_day(self, day: date, seed: int) -> dict[str, Decimal]:
        """
        Produce the cost of every tracked service for one day.

        Args:
            day: Calendar day being sampled
            seed: Random seed chosen by the caller; the same seed must yield
                the same amounts

        Returns:
            Mapping of service name to non-negative amount
        """
        pass

    @classmethod
    @abstractmethod
    def from_config(cls, config) -> "CostSampler":
        """Build the sampler from a CostGuardConfig."""
        pass


class SamplerFactory:
    """Factory class for creating cost sampler instances."""

    _samplers: dict[str, type] = {}

    @classmethod
    def register_sampler(cls, name: str, sampler_class: type):
        """Register a sampler class with the factory."""
        cls._samplers[name.lower()] = sampler_class

    @classmethod
    def create_sampler(cls, name: str, config: Any) -> CostSampler:
        """
        Create a sampler instance.

        Args:
            name: Registered sampler name
            config: CostGuardConfig handed to the sampler's ``from_config``

        Raises:
            ValueError: If sampler not found
        """
        name = name.lower()
        if name not in cls._samplers:
            available = ", ".join(cls._samplers.keys())
            raise ValueError(f"Unknown sampler '{name}'. Available samplers: {available}")

        return cls._samplers[name].from_config(config)

    @classmethod
    def get_available_samplers(cls) -> list[str]:
        """Get list of available sampler names."""
        return list(cls._samplers.keys())
