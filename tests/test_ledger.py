"""Tests for the ledger module."""

import pytest

from fundrouter.errors import DuplicateCharity, InvalidAmount
from fundrouter.ledger.repository import LedgerRepository


class TestBalanceOperations:
    """Tests for balance operations."""

    @pytest.mark.asyncio
    async def test_unknown_identity_has_zero_balance(self, ledger_repo: LedgerRepository):
        """Test that a never-credited identity reads as zero."""
        assert await ledger_repo.get_balance("nobody") == 0

    @pytest.mark.asyncio
    async def test_credit_balance(self, ledger_repo: LedgerRepository, db_session):
        """Test crediting creates the balance implicitly."""
        balance = await ledger_repo.credit("alice", 940)
        await db_session.commit()

        assert balance == 940
        assert await ledger_repo.get_balance("alice") == 940

    @pytest.mark.asyncio
    async def test_credits_accumulate(self, ledger_repo: LedgerRepository, db_session):
        """Test that credits are additive."""
        await ledger_repo.credit("alice", 100)
        await ledger_repo.credit("alice", 250)
        await db_session.commit()

        assert await ledger_repo.get_balance("alice") == 350

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5, 1.5, True])
    async def test_credit_rejects_non_positive(self, ledger_repo: LedgerRepository, amount):
        """Test that credit only accepts positive integers."""
        with pytest.raises(InvalidAmount):
            await ledger_repo.credit("alice", amount)

    @pytest.mark.asyncio
    async def test_drain_to_zero(self, ledger_repo: LedgerRepository, db_session):
        """Test draining returns the prior balance and leaves zero."""
        await ledger_repo.credit("alice", 940)
        prior = await ledger_repo.drain_to_zero("alice")
        await db_session.commit()

        assert prior == 940
        assert await ledger_repo.get_balance("alice") == 0

    @pytest.mark.asyncio
    async def test_drain_unknown_identity(self, ledger_repo: LedgerRepository):
        """Test draining a never-credited identity returns zero."""
        assert await ledger_repo.drain_to_zero("nobody") == 0

    @pytest.mark.asyncio
    async def test_amounts_beyond_64_bits(self, ledger_repo: LedgerRepository, db_session):
        """Test that amounts past 2**64 survive storage exactly."""
        huge = 2**200 + 7
        await ledger_repo.credit("whale", huge)
        await db_session.commit()

        assert await ledger_repo.get_balance("whale") == huge
        assert await ledger_repo.get_total_owed() == huge

    @pytest.mark.asyncio
    async def test_total_owed_and_count(self, ledger_repo: LedgerRepository, db_session):
        """Test aggregate queries skip drained balances in the count."""
        await ledger_repo.credit("alice", 10)
        await ledger_repo.credit("bob", 20)
        await ledger_repo.credit("carol", 30)
        await ledger_repo.drain_to_zero("carol")
        await db_session.commit()

        assert await ledger_repo.get_total_owed() == 30
        assert await ledger_repo.get_beneficiary_count() == 2


class TestCharityOperations:
    """Tests for the charity directory."""

    @pytest.mark.asyncio
    async def test_register_and_lookup(self, ledger_repo: LedgerRepository, db_session):
        """Test registering a charity and resolving it by name and address."""
        charity = await ledger_repo.register_charity("A", "addr:a", registered_by="operator")
        await db_session.commit()

        assert charity.id is not None
        assert (await ledger_repo.get_charity_by_name("A")).address == "addr:a"
        assert (await ledger_repo.get_charity_by_address("addr:a")).name == "A"
        assert await ledger_repo.get_charity_by_name("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_name_rejected(self, ledger_repo: LedgerRepository):
        await ledger_repo.register_charity("A", "addr:a")

        with pytest.raises(DuplicateCharity):
            await ledger_repo.register_charity("A", "addr:other")

    @pytest.mark.asyncio
    async def test_duplicate_address_rejected(self, ledger_repo: LedgerRepository):
        await ledger_repo.register_charity("A", "addr:a")

        with pytest.raises(DuplicateCharity):
            await ledger_repo.register_charity("B", "addr:a")

    @pytest.mark.asyncio
    async def test_list_in_registration_order(self, ledger_repo: LedgerRepository):
        await ledger_repo.register_charity("Zeta", "addr:z")
        await ledger_repo.register_charity("Alpha", "addr:a")

        names = [c.name for c in await ledger_repo.list_charities()]
        assert names == ["Zeta", "Alpha"]


class TestRecords:
    """Tests for deposit and donation history."""

    @pytest.mark.asyncio
    async def test_record_and_list_deposits(self, ledger_repo: LedgerRepository, db_session):
        """Test deposit history is filtered by destination, newest first."""
        for amount in (100, 200):
            await ledger_repo.record_deposit(
                donor="donor",
                destination="dest-1",
                input_asset="TKN",
                total_amount_in=amount,
                gas_amount_in=5,
                gas_amount_out=1,
                settlement_amount_out=amount - 10,
            )
        await ledger_repo.record_deposit(
            donor="donor",
            destination="dest-2",
            input_asset="TKN",
            total_amount_in=50,
            gas_amount_in=5,
            gas_amount_out=1,
            settlement_amount_out=40,
        )
        await db_session.commit()

        deposits = await ledger_repo.get_deposits("dest-1")
        assert [d.total_amount_in for d in deposits] == [200, 100]
        assert await ledger_repo.get_deposit_count() == 3

    @pytest.mark.asyncio
    async def test_record_and_list_donations(self, ledger_repo: LedgerRepository, db_session):
        await ledger_repo.record_donation(
            batch_id="batch-1",
            beneficiary="alice",
            charity_name="A",
            charity_address="addr:a",
            settlement_amount=104,
            finalized_by="alice",
        )
        await db_session.commit()

        donations = await ledger_repo.get_donations("alice")
        assert len(donations) == 1
        assert donations[0].settlement_amount == 104
        assert await ledger_repo.get_donations("bob") == []
        assert await ledger_repo.get_donation_count() == 1


class TestSystemConfig:
    """Tests for system config storage."""

    @pytest.mark.asyncio
    async def test_set_and_update_config(self, ledger_repo: LedgerRepository, db_session):
        assert await ledger_repo.get_config("gas_subsidy") is None

        await ledger_repo.set_config("gas_subsidy", "10", "operator")
        await ledger_repo.set_config("gas_subsidy", "20", "operator")
        await db_session.commit()

        assert await ledger_repo.get_config("gas_subsidy") == "20"
