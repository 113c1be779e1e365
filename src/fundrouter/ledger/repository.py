"""Repository for ledger operations."""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fundrouter.errors import ConservationViolation, DuplicateCharity, InvalidAmount
from fundrouter.ledger.models import (
    BeneficiaryBalance,
    Charity,
    Deposit,
    Donation,
    SystemConfig,
)


class LedgerRepository:
    """Repository for all ledger-related database operations.

    Beneficiary balances have exactly two mutators: ``credit`` (additive,
    deposit only) and ``drain_to_zero`` (full drain, finalize only).
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # Balance operations
    async def get_balance_record(
        self, identity: str, for_update: bool = False
    ) -> Optional[BeneficiaryBalance]:
        """Get the balance row for a beneficiary."""
        stmt = select(BeneficiaryBalance).where(BeneficiaryBalance.identity == identity)
        if for_update:
            # Rendered only on dialects that support row locks
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_balance(self, identity: str) -> int:
        """Get the amount owed to a beneficiary (0 if never credited)."""
        record = await self.get_balance_record(identity)
        return record.amount if record else 0

    async def credit(self, identity: str, amount: int) -> int:
        """Add amount to a beneficiary's balance and return the new balance."""
        if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
            raise InvalidAmount(f"Credit amount must be a positive integer, got {amount!r}", amount)

        record = await self.get_balance_record(identity, for_update=True)
        if record is None:
            record = BeneficiaryBalance(identity=identity, amount=0)
            self.session.add(record)

        record.amount = record.amount + amount
        await self.session.flush()
        return record.amount

    async def drain_to_zero(self, identity: str) -> int:
        """Zero a beneficiary's balance and return what it held."""
        record = await self.get_balance_record(identity, for_update=True)
        if record is None:
            return 0

        prior = record.amount
        if prior < 0:
            raise ConservationViolation(f"Negative balance for {identity}: {prior}", prior)

        record.amount = 0
        await self.session.flush()
        return prior

    async def get_total_owed(self) -> int:
        """Sum of every beneficiary balance."""
        result = await self.session.execute(select(BeneficiaryBalance.amount))
        return sum(result.scalars().all())

    async def get_beneficiary_count(self) -> int:
        """Number of beneficiaries with a non-zero balance."""
        result = await self.session.execute(select(BeneficiaryBalance.amount))
        return sum(1 for amount in result.scalars().all() if amount > 0)

    # Charity registry operations
    async def get_charity_by_name(self, name: str) -> Optional[Charity]:
        """Get charity by registered name."""
        stmt = select(Charity).where(Charity.name == name)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_charity_by_address(self, address: str) -> Optional[Charity]:
        """Get charity by payout address."""
        stmt = select(Charity).where(Charity.address == address)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def register_charity(
        self, name: str, address: str, registered_by: Optional[str] = None
    ) -> Charity:
        """Register a charity. Raises DuplicateCharity if name or address is taken."""
        if await self.get_charity_by_name(name) is not None:
            raise DuplicateCharity(f"Charity name already registered: {name}", name)
        if await self.get_charity_by_address(address) is not None:
            raise DuplicateCharity(f"Charity address already registered: {address}", address)

        charity = Charity(name=name, address=address, registered_by=registered_by)
        self.session.add(charity)
        await self.session.flush()
        return charity

    async def list_charities(self) -> list[Charity]:
        """Get all charities in registration order."""
        stmt = select(Charity).order_by(Charity.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # Deposit records
    async def record_deposit(
        self,
        donor: str,
        destination: str,
        input_asset: str,
        total_amount_in: int,
        gas_amount_in: int,
        gas_amount_out: int,
        settlement_amount_out: int,
    ) -> Deposit:
        """Persist the audit record of a completed deposit."""
        deposit = Deposit(
            donor=donor,
            destination=destination,
            input_asset=input_asset,
            total_amount_in=total_amount_in,
            gas_amount_in=gas_amount_in,
            gas_amount_out=gas_amount_out,
            settlement_amount_out=settlement_amount_out,
        )
        self.session.add(deposit)
        await self.session.flush()
        return deposit

    async def get_deposits(
        self, destination: str, limit: int = 20, offset: int = 0
    ) -> list[Deposit]:
        """Get deposit history credited to a destination."""
        stmt = (
            select(Deposit)
            .where(Deposit.destination == destination)
            .order_by(Deposit.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # Donation records
    async def record_donation(
        self,
        batch_id: str,
        beneficiary: str,
        charity_name: str,
        charity_address: str,
        settlement_amount: int,
        finalized_by: str,
    ) -> Donation:
        """Persist the audit record of one disbursement."""
        donation = Donation(
            batch_id=batch_id,
            beneficiary=beneficiary,
            charity_name=charity_name,
            charity_address=charity_address,
            settlement_amount=settlement_amount,
            finalized_by=finalized_by,
        )
        self.session.add(donation)
        await self.session.flush()
        return donation

    async def get_donations(
        self, beneficiary: str, limit: int = 50, offset: int = 0
    ) -> list[Donation]:
        """Get donation history for a beneficiary."""
        stmt = (
            select(Donation)
            .where(Donation.beneficiary == beneficiary)
            .order_by(Donation.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    # System Config operations
    async def get_config(self, key: str) -> Optional[str]:
        """Get a system config value."""
        stmt = select(SystemConfig).where(SystemConfig.key == key)
        result = await self.session.execute(stmt)
        config = result.scalar_one_or_none()
        return config.value if config else None

    async def set_config(
        self, key: str, value: str, updated_by: Optional[str] = None
    ) -> SystemConfig:
        """Set a system config value."""
        stmt = select(SystemConfig).where(SystemConfig.key == key)
        result = await self.session.execute(stmt)
        config = result.scalar_one_or_none()

        if config is None:
            config = SystemConfig(key=key, value=value, updated_by=updated_by)
            self.session.add(config)
        else:
            config.value = value
            config.updated_by = updated_by

        await self.session.flush()
        return config

    # Admin statistics
    async def get_deposit_count(self) -> int:
        """Get total deposit count."""
        return await self.session.scalar(select(func.count(Deposit.id))) or 0

    async def get_donation_count(self) -> int:
        """Get total donation count."""
        return await self.session.scalar(select(func.count(Donation.id))) or 0
