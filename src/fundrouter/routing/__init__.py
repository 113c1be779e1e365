"""Conversion gateway interface and the simulated swap engine."""

from fundrouter.routing.base import (
    DEFAULT_FEE_TIERS,
    FEE_TIER_DENOMINATOR,
    ConversionGateway,
    ConversionResult,
    ExactInputRequest,
    ExactOutputRequest,
)
from fundrouter.routing.dry_run import SimulatedGateway

__all__ = [
    # Base classes
    "ConversionGateway",
    "ConversionResult",
    "ExactInputRequest",
    "ExactOutputRequest",
    "DEFAULT_FEE_TIERS",
    "FEE_TIER_DENOMINATOR",
    # Gateways
    "SimulatedGateway",
]
