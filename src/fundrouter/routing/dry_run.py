"""Simulated conversion gateway for dry-run mode and tests."""

import logging
import math
import time
from fractions import Fraction
from typing import Callable, Optional, Union

from fundrouter.custody.memory import InMemoryTokenBank
from fundrouter.errors import ConversionFailed
from fundrouter.routing.base import (
    DEFAULT_FEE_TIERS,
    FEE_TIER_DENOMINATOR,
    ConversionGateway,
    ConversionResult,
    ExactInputRequest,
    ExactOutputRequest,
)

logger = logging.getLogger(__name__)

# Simulated market prices in USD per whole token.
# These are for demonstration purposes only.
SIMULATED_PRICES: dict[str, str] = {
    "ETH": "3900.00",
    "WETH": "3900.00",
    "WBTC": "100000.00",
    "USDC": "1.00",
    "USDT": "1.00",
    "DAI": "1.00",
    "LINK": "28.00",
    "UNI": "17.50",
    "AAVE": "185.00",
    "MATIC": "0.62",
}

TOKEN_DECIMALS: dict[str, int] = {
    "ETH": 18,
    "WETH": 18,
    "WBTC": 8,
    "USDC": 6,
    "USDT": 6,
    "DAI": 18,
    "LINK": 18,
    "UNI": 18,
    "AAVE": 18,
    "MATIC": 18,
}


def price_per_base_unit(usd_price: str, decimals: int) -> Fraction:
    """Convert a USD price per whole token into USD per smallest unit."""
    return Fraction(usd_price) / (10 ** decimals)


class SimulatedGateway(ConversionGateway):
    """
    Simulated swap engine backed by an InMemoryTokenBank.

    Quotes come from a price table with a fee tier haircut. Liquidity is
    whatever the pool account holds in the bank, so conversions fail when the
    pool runs dry. Input is taken from the request's payer and output sent to
    its recipient.
    """

    def __init__(
        self,
        bank: InMemoryTokenBank,
        pool_account: str = "gateway:pool",
        fee_tiers: tuple[int, ...] = DEFAULT_FEE_TIERS,
        clock: Callable[[], float] = time.time,
    ):
        self.bank = bank
        self.pool_account = pool_account
        self.fee_tiers = fee_tiers
        self.clock = clock
        self._prices: dict[str, Fraction] = {
            asset: price_per_base_unit(usd, TOKEN_DECIMALS[asset])
            for asset, usd in SIMULATED_PRICES.items()
        }

    @property
    def name(self) -> str:
        return "dry_run"

    @property
    def supported_assets(self) -> list[str]:
        return list(self._prices.keys())

    def set_price(self, asset: str, price: Union[Fraction, int, str]) -> None:
        """Set simulated USD price per base unit of an asset."""
        self._prices[asset.upper()] = Fraction(price)

    def get_price(self, asset: str) -> Optional[Fraction]:
        """Get simulated USD price per base unit of an asset."""
        return self._prices.get(asset.upper())

    def add_liquidity(self, asset: str, amount: int) -> None:
        """Seed the pool with output liquidity."""
        self.bank.mint(asset, self.pool_account, amount)

    def liquidity(self, asset: str) -> int:
        return self.bank.balance_of(asset, self.pool_account)

    def _validate(
        self, token_in: str, token_out: str, fee_tier: int, deadline: float
    ) -> tuple[Fraction, Fraction]:
        if self.clock() > deadline:
            raise ConversionFailed("Transaction too old: deadline has passed", deadline)
        if fee_tier not in self.fee_tiers:
            raise ConversionFailed(f"Unsupported fee tier: {fee_tier}", fee_tier)
        if token_in.upper() == token_out.upper():
            raise ConversionFailed(f"Cannot convert {token_in} into itself", token_in)

        price_in = self._prices.get(token_in.upper())
        price_out = self._prices.get(token_out.upper())
        if price_in is None or price_out is None or price_in <= 0 or price_out <= 0:
            raise ConversionFailed(
                f"No pool for {token_in} -> {token_out}", f"{token_in}/{token_out}"
            )
        return price_in, price_out

    def _net_rate(self, price_in: Fraction, price_out: Fraction, fee_tier: int) -> Fraction:
        """Units of token_out received per unit of token_in after fees."""
        fee_factor = Fraction(FEE_TIER_DENOMINATOR - fee_tier, FEE_TIER_DENOMINATOR)
        return price_in / price_out * fee_factor

    async def _settle(
        self,
        token_in: str,
        token_out: str,
        payer: str,
        recipient: str,
        amount_in: int,
        amount_out: int,
    ) -> None:
        if self.liquidity(token_out) < amount_out:
            raise ConversionFailed(
                f"Insufficient liquidity: pool holds {self.liquidity(token_out)} {token_out}, "
                f"need {amount_out}",
                amount_out,
            )
        if self.bank.balance_of(token_in, payer) < amount_in:
            raise ConversionFailed(
                f"Payer {payer} holds less than {amount_in} {token_in}", amount_in
            )
        if not await self.bank.push(token_in, payer, self.pool_account, amount_in):
            raise ConversionFailed(f"Could not collect {amount_in} {token_in} from {payer}")
        if not await self.bank.push(token_out, self.pool_account, recipient, amount_out):
            raise ConversionFailed(f"Could not pay {amount_out} {token_out} to {recipient}")

    async def exact_output(self, request: ExactOutputRequest) -> ConversionResult:
        price_in, price_out = self._validate(
            request.token_in, request.token_out, request.fee_tier, request.deadline
        )
        if request.amount_out <= 0:
            raise ConversionFailed("Output amount must be positive", request.amount_out)

        rate = self._net_rate(price_in, price_out, request.fee_tier)
        amount_in = math.ceil(request.amount_out / rate)

        if amount_in > request.amount_in_max:
            raise ConversionFailed(
                f"Too much requested: {amount_in} {request.token_in} needed, "
                f"max {request.amount_in_max}",
                amount_in,
            )

        await self._settle(
            request.token_in,
            request.token_out,
            request.payer,
            request.recipient,
            amount_in,
            request.amount_out,
        )
        logger.debug(
            f"Exact output: {amount_in} {request.token_in} -> "
            f"{request.amount_out} {request.token_out} (fee {request.fee_tier})"
        )

        return ConversionResult(
            provider=self.name,
            token_in=request.token_in.upper(),
            token_out=request.token_out.upper(),
            fee_tier=request.fee_tier,
            amount_in=amount_in,
            amount_out=request.amount_out,
            route_details={"rate": str(rate)},
            is_simulated=True,
        )

    async def exact_input(self, request: ExactInputRequest) -> ConversionResult:
        price_in, price_out = self._validate(
            request.token_in, request.token_out, request.fee_tier, request.deadline
        )
        if request.amount_in <= 0:
            raise ConversionFailed("Input amount must be positive", request.amount_in)

        rate = self._net_rate(price_in, price_out, request.fee_tier)
        amount_out = math.floor(request.amount_in * rate)

        if amount_out <= 0 or amount_out < request.amount_out_min:
            raise ConversionFailed(
                f"Too little received: {amount_out} {request.token_out}, "
                f"min {request.amount_out_min}",
                amount_out,
            )

        await self._settle(
            request.token_in,
            request.token_out,
            request.payer,
            request.recipient,
            request.amount_in,
            amount_out,
        )
        logger.debug(
            f"Exact input: {request.amount_in} {request.token_in} -> "
            f"{amount_out} {request.token_out} (fee {request.fee_tier})"
        )

        return ConversionResult(
            provider=self.name,
            token_in=request.token_in.upper(),
            token_out=request.token_out.upper(),
            fee_tier=request.fee_tier,
            amount_in=request.amount_in,
            amount_out=amount_out,
            route_details={"rate": str(rate)},
            is_simulated=True,
        )
