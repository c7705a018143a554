"""Alert generation — distribution parsing and weighted sampling."""

from src.generator.distribution import DistributionTable, WeightedValue, parse_distribution
from src.generator.exceptions import DistributionError, GeneratorError
from src.generator.sampler import (
    AlertSampler,
    boilerplate_alert,
    canonical_test_alert,
    custom_alert,
    is_test_alert,
)

__all__ = [
    "AlertSampler",
    "DistributionError",
    "DistributionTable",
    "GeneratorError",
    "WeightedValue",
    "boilerplate_alert",
    "canonical_test_alert",
    "custom_alert",
    "is_test_alert",
    "parse_distribution",
]
