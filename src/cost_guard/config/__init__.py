"""Settings loading for cost guard."""

from .settings import CostGuardConfig, get_config, load_config, reload_config

__all__ = ["CostGuardConfig", "get_config", "load_config", "reload_config"]
