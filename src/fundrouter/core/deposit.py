"""Deposit orchestrator: input token -> gas subsidy + settlement credit.

Flow:
1. Pull the full input amount from the caller into custody
2. Exact-output conversion into the gas asset for the current subsidy
3. Unwrap and deliver the gas to the destination
4. Exact-input conversion of what is left into the settlement asset
5. Credit the destination's ledger balance and record the deposit
"""

import logging
from dataclasses import dataclass

from fundrouter.custody.base import GasDelivery, TokenTransfers
from fundrouter.errors import (
    ConservationViolation,
    ConversionFailed,
    GasDeliveryFailed,
    InvalidAmount,
    InvalidRequest,
    RouterError,
    TransferFailed,
)
from fundrouter.events import DepositEvent
from fundrouter.ledger.repository import LedgerRepository
from fundrouter.routing.base import (
    ConversionGateway,
    ConversionResult,
    ExactInputRequest,
    ExactOutputRequest,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepositRequest:
    """Caller-supplied deposit parameters."""

    destination: str
    input_asset: str
    total_amount_in: int
    deadline: float
    max_gas_conversion_input: int
    gas_fee_tier: int
    settlement_fee_tier: int
    min_settlement_out: int

    def validate(self) -> None:
        """Reject malformed parameters before anything moves."""
        if not self.destination:
            raise InvalidRequest("Destination is required", self.destination)
        for field_name in (
            "total_amount_in",
            "max_gas_conversion_input",
            "min_settlement_out",
        ):
            value = getattr(self, field_name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise InvalidAmount(f"{field_name} must be a non-negative integer", value)
        if self.total_amount_in == 0:
            raise InvalidAmount("total_amount_in must be positive", self.total_amount_in)


@dataclass(frozen=True)
class DepositReceipt:
    """Result of a completed deposit."""

    deposit_id: int
    donor: str
    destination: str
    input_asset: str
    total_amount_in: int
    gas_amount_in: int
    gas_amount_out: int
    settlement_amount_out: int
    balance_after: int

    def to_dict(self) -> dict:
        return {
            "deposit_id": self.deposit_id,
            "donor": self.donor,
            "destination": self.destination,
            "input_asset": self.input_asset,
            "total_amount_in": str(self.total_amount_in),
            "gas_amount_in": str(self.gas_amount_in),
            "gas_amount_out": str(self.gas_amount_out),
            "settlement_amount_out": str(self.settlement_amount_out),
            "balance_after": str(self.balance_after),
        }


class DepositOrchestrator:
    """Drives the two conversions and the ledger credit for one deposit."""

    def __init__(
        self,
        transfers: TokenTransfers,
        gateway: ConversionGateway,
        courier: GasDelivery,
        custody_account: str,
        gas_asset: str,
        settlement_asset: str,
    ):
        self.transfers = transfers
        self.gateway = gateway
        self.courier = courier
        self.custody_account = custody_account
        self.gas_asset = gas_asset
        self.settlement_asset = settlement_asset

    async def _pull(self, caller: str, request: DepositRequest) -> None:
        try:
            ok = await self.transfers.pull(
                request.input_asset,
                owner=caller,
                spender=self.custody_account,
                recipient=self.custody_account,
                amount=request.total_amount_in,
            )
        except RouterError:
            raise
        except Exception as e:
            raise TransferFailed(
                f"Pull of {request.total_amount_in} {request.input_asset} from {caller} raised "
                f"{type(e).__name__}: {e}",
                request.total_amount_in,
            ) from e
        if not ok:
            raise TransferFailed(
                f"Could not pull {request.total_amount_in} {request.input_asset} from {caller}",
                request.total_amount_in,
            )

    async def _convert(self, request) -> ConversionResult:
        try:
            if isinstance(request, ExactOutputRequest):
                return await self.gateway.exact_output(request)
            return await self.gateway.exact_input(request)
        except RouterError:
            raise
        except Exception as e:
            raise ConversionFailed(
                f"{self.gateway.name} raised {type(e).__name__}: {e}"
            ) from e

    async def _deliver_gas(self, destination: str, amount: int) -> None:
        try:
            ok = await self.courier.deliver(
                self.gas_asset, self.custody_account, destination, amount
            )
        except RouterError:
            raise
        except Exception as e:
            raise GasDeliveryFailed(
                f"Gas delivery to {destination} raised {type(e).__name__}: {e}", destination
            ) from e
        if not ok:
            raise GasDeliveryFailed(f"Gas delivery to {destination} was rejected", destination)

    async def deposit(
        self,
        repo: LedgerRepository,
        caller: str,
        request: DepositRequest,
        gas_subsidy: int,
        events: list,
    ) -> DepositReceipt:
        """Run one deposit.

        Must run inside an operation that rolls back the session and the
        token bank on failure.
        """
        request.validate()

        await self._pull(caller, request)

        gas = await self._convert(
            ExactOutputRequest(
                token_in=request.input_asset,
                token_out=self.gas_asset,
                fee_tier=request.gas_fee_tier,
                payer=self.custody_account,
                recipient=self.custody_account,
                deadline=request.deadline,
                amount_out=gas_subsidy,
                amount_in_max=request.max_gas_conversion_input,
            )
        )
        if gas.amount_out != gas_subsidy:
            raise ConservationViolation(
                f"Gas conversion returned {gas.amount_out}, expected exactly {gas_subsidy}",
                gas.amount_out,
            )
        if gas.amount_in < 0 or gas.amount_in > request.max_gas_conversion_input:
            raise ConservationViolation(
                f"Gas conversion spent {gas.amount_in}, cap was {request.max_gas_conversion_input}",
                gas.amount_in,
            )

        await self._deliver_gas(request.destination, gas.amount_out)

        remaining = request.total_amount_in - gas.amount_in
        if remaining < 0:
            logger.critical(
                f"Gas conversion spent {gas.amount_in} of {request.total_amount_in} deposited"
            )
            raise ConservationViolation(
                f"Gas conversion spent more than deposited: {remaining}", remaining
            )
        if remaining == 0:
            raise ConversionFailed(
                "Nothing left to convert into settlement currency after gas", remaining
            )

        settlement = await self._convert(
            ExactInputRequest(
                token_in=request.input_asset,
                token_out=self.settlement_asset,
                fee_tier=request.settlement_fee_tier,
                payer=self.custody_account,
                recipient=self.custody_account,
                deadline=request.deadline,
                amount_in=remaining,
                amount_out_min=request.min_settlement_out,
            )
        )
        if settlement.amount_in != remaining:
            raise ConservationViolation(
                f"Settlement conversion consumed {settlement.amount_in}, expected {remaining}",
                settlement.amount_in,
            )
        if settlement.amount_out < request.min_settlement_out:
            raise ConversionFailed(
                f"Settlement output {settlement.amount_out} below floor "
                f"{request.min_settlement_out}",
                settlement.amount_out,
            )

        balance_after = await repo.credit(request.destination, settlement.amount_out)

        record = await repo.record_deposit(
            donor=caller,
            destination=request.destination,
            input_asset=request.input_asset.upper(),
            total_amount_in=request.total_amount_in,
            gas_amount_in=gas.amount_in,
            gas_amount_out=gas.amount_out,
            settlement_amount_out=settlement.amount_out,
        )
        events.append(
            DepositEvent(
                donor=caller,
                destination=request.destination,
                input_asset=request.input_asset.upper(),
                total_amount_in=request.total_amount_in,
                gas_amount_out=gas.amount_out,
                settlement_amount_out=settlement.amount_out,
            )
        )

        logger.info(
            f"Deposit {record.id}: {request.total_amount_in} {request.input_asset} from {caller} -> "
            f"{gas.amount_out} {self.gas_asset} gas + {settlement.amount_out} "
            f"{self.settlement_asset} credited to {request.destination}"
        )

        return DepositReceipt(
            deposit_id=record.id,
            donor=caller,
            destination=request.destination,
            input_asset=request.input_asset.upper(),
            total_amount_in=request.total_amount_in,
            gas_amount_in=gas.amount_in,
            gas_amount_out=gas.amount_out,
            settlement_amount_out=settlement.amount_out,
            balance_after=balance_after,
        )
