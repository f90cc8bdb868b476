"""
Simulated cost sampler.

Draws each service's daily cost around a fixed baseline with uniform noise
and occasionally multiplies one service by a spike factor, so the anomaly
detector has something to find in demos and tests.
"""

import logging
import random
from collections.abc import Mapping, Sequence
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from ..errors import ConfigurationError
from ..storage.models import CENT
from .base import CostSampler, SamplerFactory

logger = logging.getLogger(__name__)

DEFAULT_NOISE = 0.3
DEFAULT_MINIMUM = 0.05
DEFAULT_SPIKE_PROBABILITY = 1 / 14
DEFAULT_SPIKE_FACTOR = 3.0
MIN_SPIKE_FACTOR = 3.0


class SimulatedCostSampler(CostSampler):
    """Reproducible synthetic cost feed.

    Amounts depend only on the baseline table and the seed, never on the
    sampled date, so backfills replay exactly for the same seeds.
    """

    def __init__(
        self,
        baselines: Mapping[str, Decimal | float],
        services: Sequence[str] | None = None,
        noise: float = DEFAULT_NOISE,
        minimum: float = DEFAULT_MINIMUM,
        spike_probability: float = DEFAULT_SPIKE_PROBABILITY,
        spike_factor: float = DEFAULT_SPIKE_FACTOR,
    ):
        self._services = list(services) if services is not None else list(baselines)
        if not self._services:
            raise ConfigurationError("At least one tracked service is required")
        if len(set(self._services)) != len(self._services):
            raise ConfigurationError(f"Duplicate service names: {self._services}")

        missing = [s for s in self._services if s not in baselines]
        if missing:
            raise ConfigurationError(f"No baseline configured for services: {', '.join(missing)}")
        if noise < 0:
            raise ConfigurationError("noise must be >= 0")
        if Decimal(str(minimum)) < CENT:
            raise ConfigurationError(f"minimum must be >= {CENT}")
        if not 0 <= spike_probability <= 1:
            raise ConfigurationError("spike_probability must be between 0 and 1")
        if spike_factor < MIN_SPIKE_FACTOR:
            raise ConfigurationError(f"spike_factor must be >= {MIN_SPIKE_FACTOR}")

        self.baselines = {s: float(baselines[s]) for s in self._services}
        self.noise = noise
        self.minimum = minimum
        self.spike_probability = spike_probability
        self.spike_factor = spike_factor

    @property
    def services(self) -> list[str]:
        return list(self._services)

    @classmethod
    def from_config(cls, config) -> "SimulatedCostSampler":
        options = config.sampler
        return cls(
            baselines=config.baselines,
            services=config.services,
            noise=float(options.get("noise", DEFAULT_NOISE)),
            minimum=float(options.get("minimum", DEFAULT_MINIMUM)),
            spike_probability=float(options.get("spike_probability", DEFAULT_SPIKE_PROBABILITY)),
            spike_factor=float(options.get("spike_factor", DEFAULT_SPIKE_FACTOR)),
        )

    async def sample_day(self, day: date, seed: int) -> dict[str, Decimal]:
        amounts = self.draw(seed)
        logger.debug(f"Sampled {day.isoformat()} with seed {seed}: {amounts}")
        return amounts

    def draw(self, seed: int) -> dict[str, Decimal]:
        """Draw one day's amounts for every tracked service from ``seed``."""
        rng = random.Random(seed)

        # Occasionally spike one service
        spike_service = None
        if rng.random() < self.spike_probability:
            spike_service = self._services[rng.randrange(len(self._services))]

        amounts = {}
        for service in self._services:
            amount = self.baselines[service] + rng.uniform(-self.noise, self.noise)
            amount = max(amount, self.minimum)
            if service == spike_service:
                amount *= self.spike_factor
            amounts[service] = Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)

        return amounts


SamplerFactory.register_sampler("simulated", SimulatedCostSampler)
