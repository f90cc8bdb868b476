"""Daily cost samplers."""

# Import sampler implementations to register them with SamplerFactory
from . import simulated  # noqa: F401
from .base import CostSampler, SamplerFactory
from .simulated import SimulatedCostSampler

__all__ = ["CostSampler", "SamplerFactory", "SimulatedCostSampler"]
