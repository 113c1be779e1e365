"""Abstract conversion gateway interface."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

# Fee tiers in hundredths of a basis point (3000 = 0.30%)
FEE_TIER_DENOMINATOR = 1_000_000
DEFAULT_FEE_TIERS: tuple[int, ...] = (100, 500, 3000, 10000)


@dataclass(frozen=True)
class ExactOutputRequest:
    """Convert at most ``amount_in_max`` of token_in for exactly ``amount_out`` of token_out."""

    token_in: str
    token_out: str
    fee_tier: int
    payer: str
    recipient: str
    deadline: float
    amount_out: int
    amount_in_max: int


@dataclass(frozen=True)
class ExactInputRequest:
    """Convert exactly ``amount_in`` of token_in for at least ``amount_out_min`` of token_out."""

    token_in: str
    token_out: str
    fee_tier: int
    payer: str
    recipient: str
    deadline: float
    amount_in: int
    amount_out_min: int


@dataclass
class ConversionResult:
    """Outcome of a conversion; carries both legs, one of which was fixed by the request."""

    provider: str
    token_in: str
    token_out: str
    fee_tier: int
    amount_in: int
    amount_out: int
    route_details: Optional[dict] = field(default_factory=dict)
    is_simulated: bool = False
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging and storage."""
        return {
            "provider": self.provider,
            "token_in": self.token_in,
            "token_out": self.token_out,
            "fee_tier": self.fee_tier,
            "amount_in": str(self.amount_in),
            "amount_out": str(self.amount_out),
            "is_simulated": self.is_simulated,
        }


class ConversionGateway(ABC):
    """Abstract base class for swap engines.

    Implementations raise ``ConversionFailed`` when the price bound,
    deadline, or available liquidity cannot be satisfied.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Gateway name identifier."""
        pass

    @property
    @abstractmethod
    def supported_assets(self) -> list[str]:
        """List of supported asset symbols."""
        pass

    @abstractmethod
    async def exact_output(self, request: ExactOutputRequest) -> ConversionResult:
        """
        Execute an exact-output conversion.

        Returns:
            Result whose ``amount_in`` is what was actually spent
        """
        pass

    @abstractmethod
    async def exact_input(self, request: ExactInputRequest) -> ConversionResult:
        """
        Execute an exact-input conversion.

        Returns:
            Result whose ``amount_out`` is what was actually received
        """
        pass

    def supports_pair(self, token_in: str, token_out: str) -> bool:
        """Check if this gateway supports the asset pair."""
        assets = self.supported_assets
        return token_in.upper() in assets and token_out.upper() in assets
