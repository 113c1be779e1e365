"""FundRouter: the public entry points wired to their collaborators.

Every mutating call runs as one operation:

1. Enter the OperationGuard (nested calls fail with ReentrantCall)
2. Checkpoint every journaled collaborator
3. Open a database session
4. Run the deposit / finalize / admin step
5. Commit, or roll back the session and restore every checkpoint
6. Publish the events collected in step 4
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import AsyncIterator, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fundrouter.config import Settings, get_settings
from fundrouter.core.admin import AdminControls
from fundrouter.core.auth import AuthorizationPolicy, OperatorPolicy
from fundrouter.core.deposit import DepositOrchestrator, DepositReceipt, DepositRequest
from fundrouter.core.distribution import DistributionEngine, FinalizeReceipt
from fundrouter.core.registry import CharityRegistry
from fundrouter.custody.base import GasDelivery, Journaled, TokenTransfers
from fundrouter.custody.memory import InMemoryTokenBank, NativeGasCourier
from fundrouter.events import EventBus, RouterEvent
from fundrouter.ledger.database import get_db
from fundrouter.ledger.models import Charity, Deposit, Donation
from fundrouter.ledger.repository import LedgerRepository
from fundrouter.notifications.webhook import WebhookNotifier
from fundrouter.routing.base import ConversionGateway
from fundrouter.routing.dry_run import SimulatedGateway
from fundrouter.utils.locks import OperationGuard

logger = logging.getLogger(__name__)


@dataclass
class OperationContext:
    """State shared by the steps of one guarded operation."""

    name: str
    repo: LedgerRepository
    events: list[RouterEvent] = field(default_factory=list)


class FundRouter:
    """Custodial fund router."""

    def __init__(
        self,
        transfers: TokenTransfers,
        gateway: ConversionGateway,
        courier: GasDelivery,
        policy: Optional[AuthorizationPolicy] = None,
        settings: Optional[Settings] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.settings = settings or get_settings()
        self.transfers = transfers
        self.gateway = gateway
        self.courier = courier
        self.policy = policy or OperatorPolicy(self.settings.operators)
        self.session_factory = session_factory
        self.events = event_bus or EventBus()
        self.guard = OperationGuard(timeout=self.settings.operation_lock_timeout)
        self._publish_lock = asyncio.Lock()
        self._publishing: ContextVar[bool] = ContextVar(
            f"fund_router_publishing_{id(self)}", default=False
        )

        self.custody_account = self.settings.custody_account
        self.settlement_asset = self.settings.settlement_asset.upper()
        self.gas_asset = self.settings.gas_asset.upper()

        self.admin = AdminControls(self.policy, self.settings.gas_subsidy)
        self.registry = CharityRegistry(self.policy)
        self.depositor = DepositOrchestrator(
            transfers=transfers,
            gateway=gateway,
            courier=courier,
            custody_account=self.custody_account,
            gas_asset=self.gas_asset,
            settlement_asset=self.settlement_asset,
        )
        self.distributor = DistributionEngine(
            transfers=transfers,
            policy=self.policy,
            custody_account=self.custody_account,
            settlement_asset=self.settlement_asset,
        )

        # Same object may play several roles (bank + courier); journal it once
        self._journaled: list[Journaled] = []
        for collaborator in (transfers, gateway, courier):
            if isinstance(collaborator, Journaled) and not any(
                collaborator is j for j in self._journaled
            ):
                self._journaled.append(collaborator)

    # Plumbing
    @asynccontextmanager
    async def _operation(self, name: str) -> AsyncIterator[OperationContext]:
        """Run a guarded all-or-nothing operation."""
        async with self.guard.hold(name):
            checkpoints = [(j, j.checkpoint()) for j in self._journaled]
            try:
                async with get_db(self.session_factory) as session:
                    ctx = OperationContext(name=name, repo=LedgerRepository(session))
                    yield ctx
            except BaseException as e:
                for journaled, token in reversed(checkpoints):
                    journaled.rollback(token)
                logger.warning(f"{name} rolled back: {type(e).__name__}: {e}")
                raise
        await self._publish(ctx.events)

    async def _publish(self, events: list[RouterEvent]) -> None:
        """Deliver one operation's events without interleaving another's."""
        if self._publishing.get():
            # Operation started by a subscriber of the events being published
            await self.events.publish(events)
            return

        # Queued straight after the guard is released, so slots follow commit order
        async with self._publish_lock:
            token = self._publishing.set(True)
            try:
                await self.events.publish(events)
            finally:
                self._publishing.reset(token)

    @asynccontextmanager
    async def _reader(self) -> AsyncIterator[LedgerRepository]:
        async with get_db(self.session_factory) as session:
            yield LedgerRepository(session)

    async def initialize(self) -> None:
        """Persist startup parameters (gas subsidy) if not already stored."""
        async with self._operation("initialize") as op:
            await self.admin.initialize(op.repo)

    # Core entry points
    async def deposit(
        self,
        caller: str,
        destination: str,
        input_asset: str,
        total_amount_in: int,
        deadline: float,
        max_gas_conversion_input: int,
        gas_fee_tier: int,
        settlement_fee_tier: int,
        min_settlement_out: int,
    ) -> DepositReceipt:
        """Convert a deposit into a gas subsidy for destination plus a settlement credit."""
        request = DepositRequest(
            destination=destination,
            input_asset=input_asset,
            total_amount_in=total_amount_in,
            deadline=deadline,
            max_gas_conversion_input=max_gas_conversion_input,
            gas_fee_tier=gas_fee_tier,
            settlement_fee_tier=settlement_fee_tier,
            min_settlement_out=min_settlement_out,
        )
        async with self._operation("deposit") as op:
            await self.admin.ensure_not_paused(op.repo, "deposit")
            gas_subsidy = await self.admin.get_gas_subsidy(op.repo)
            return await self.depositor.deposit(
                op.repo, caller, request, gas_subsidy, op.events
            )

    async def finalize(
        self,
        caller: str,
        beneficiary: str,
        charity_names: Sequence[str],
        amounts: Sequence[int],
    ) -> FinalizeReceipt:
        """Disburse beneficiary's entire balance across the named charities."""
        async with self._operation("finalize") as op:
            self.policy.require_authorized(caller, beneficiary)
            await self.admin.ensure_not_paused(op.repo, "finalize")
            return await self.distributor.finalize(
                op.repo, caller, beneficiary, list(charity_names), list(amounts), op.events
            )

    # Admin
    async def set_gas_subsidy(self, caller: str, amount: int) -> int:
        async with self._operation("set_gas_subsidy") as op:
            return await self.admin.set_gas_subsidy(op.repo, caller, amount)

    async def pause(self, caller: str) -> None:
        async with self._operation("pause") as op:
            await self.admin.set_paused(op.repo, caller, True)

    async def unpause(self, caller: str) -> None:
        async with self._operation("unpause") as op:
            await self.admin.set_paused(op.repo, caller, False)

    async def register_charity(self, caller: str, name: str, address: str) -> Charity:
        async with self._operation("register_charity") as op:
            return await self.registry.register(op.repo, caller, name, address)

    # Read queries
    async def get_balance(self, identity: str) -> int:
        async with self._reader() as repo:
            return await repo.get_balance(identity)

    async def get_gas_subsidy(self) -> int:
        async with self._reader() as repo:
            return await self.admin.get_gas_subsidy(repo)

    async def is_paused(self) -> bool:
        async with self._reader() as repo:
            return await self.admin.is_paused(repo)

    async def resolve_charity(self, name: str) -> str:
        async with self._reader() as repo:
            return await self.registry.resolve(repo, name)

    async def list_charity_names(self) -> list[str]:
        async with self._reader() as repo:
            return await self.registry.list_names(repo)

    async def list_charity_addresses(self) -> set[str]:
        async with self._reader() as repo:
            return await self.registry.list_addresses(repo)

    async def get_deposits(self, destination: str, limit: int = 20, offset: int = 0) -> list[Deposit]:
        async with self._reader() as repo:
            return await repo.get_deposits(destination, limit=limit, offset=offset)

    async def get_donations(self, beneficiary: str, limit: int = 50, offset: int = 0) -> list[Donation]:
        async with self._reader() as repo:
            return await repo.get_donations(beneficiary, limit=limit, offset=offset)

    async def reconcile(self) -> dict:
        """Compare custody's settlement holdings with what the ledger owes."""
        async with self._reader() as repo:
            owed = await repo.get_total_owed()
        held = self.transfers.balance_of(self.settlement_asset, self.custody_account)
        discrepancy = held - owed
        if discrepancy < 0:
            logger.error(
                f"Custody shortfall: holds {held} {self.settlement_asset}, owes {owed}"
            )
        return {
            "asset": self.settlement_asset,
            "custody_holdings": held,
            "ledger_total": owed,
            "discrepancy": discrepancy,
            "balanced": discrepancy >= 0,
        }

    async def get_stats(self) -> dict:
        async with self._reader() as repo:
            return {
                "beneficiaries": await repo.get_beneficiary_count(),
                "total_owed": await repo.get_total_owed(),
                "deposits": await repo.get_deposit_count(),
                "donations": await repo.get_donation_count(),
                "charities": len(await repo.list_charities()),
                "paused": await self.admin.is_paused(repo),
                "gas_subsidy": await self.admin.get_gas_subsidy(repo),
            }


def create_dry_run_router(
    settings: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    policy: Optional[AuthorizationPolicy] = None,
) -> FundRouter:
    """Create a router backed by the in-memory bank and simulated gateway."""
    settings = settings or get_settings()
    bank = InMemoryTokenBank()
    gateway = SimulatedGateway(bank)
    courier = NativeGasCourier(bank, native_asset=settings.native_asset)
    router = FundRouter(
        transfers=bank,
        gateway=gateway,
        courier=courier,
        policy=policy,
        settings=settings,
        session_factory=session_factory,
    )
    if settings.event_webhook_url:
        router.events.subscribe(
            WebhookNotifier(settings.event_webhook_url, timeout=settings.event_webhook_timeout)
        )
    return router
