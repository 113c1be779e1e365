"""Deposit flow tests.

These tests ensure that:
1. A deposit delivers exactly the gas subsidy and credits the rest
2. Any failure leaves tokens, ledger and history untouched
3. Paused routers reject deposits
"""

import pytest

from conftest import DESTINATION, DONOR, GAS_SUBSIDY, OPERATOR, TOKEN
from fundrouter.errors import (
    ConversionFailed,
    GasDeliveryFailed,
    InvalidAmount,
    InvalidRequest,
    ReentrantCall,
    RouterPaused,
    TransferFailed,
)
from fundrouter.events import DepositEvent


def assert_untouched(bank, settings, allowance: int = 1000):
    """Donor still holds everything; nothing reached custody or destination."""
    assert bank.balance_of(TOKEN, DONOR) == 1000
    assert bank.allowance(TOKEN, DONOR, settings.custody_account) == allowance
    assert bank.balance_of(TOKEN, settings.custody_account) == 0
    assert bank.balance_of("WETH", settings.custody_account) == 0
    assert bank.balance_of("USDC", settings.custody_account) == 0
    assert bank.balance_of("ETH", DESTINATION) == 0


class TestDepositHappyPath:
    """Tests for successful deposits."""

    @pytest.mark.asyncio
    async def test_example_deposit(self, router, bank, settings, fund_donor, deposit_args):
        """Test 1000 TKN -> 10 gas to destination + 940 USDC credited."""
        fund_donor()

        receipt = await router.deposit(**deposit_args)

        assert receipt.gas_amount_in == 50
        assert receipt.gas_amount_out == GAS_SUBSIDY
        assert receipt.settlement_amount_out == 940
        assert receipt.balance_after == 940

        assert await router.get_balance(DESTINATION) == 940
        assert bank.balance_of("ETH", DESTINATION) == GAS_SUBSIDY
        assert bank.balance_of(TOKEN, DONOR) == 0
        assert bank.balance_of("USDC", settings.custody_account) == 940
        assert bank.balance_of(TOKEN, settings.custody_account) == 0
        assert bank.balance_of("WETH", settings.custody_account) == 0

    @pytest.mark.asyncio
    async def test_deposits_accumulate(self, router, fund_donor, deposit_args):
        """Test two deposits to the same destination add up."""
        fund_donor(amount=2000)

        await router.deposit(**deposit_args)
        await router.deposit(**deposit_args)

        assert await router.get_balance(DESTINATION) == 1880

    @pytest.mark.asyncio
    async def test_deposit_recorded_and_published(self, router, fund_donor, deposit_args):
        """Test the deposit lands in history and one event is published."""
        fund_donor()
        received = []
        router.events.subscribe(received.append)

        receipt = await router.deposit(**deposit_args)

        history = await router.get_deposits(DESTINATION)
        assert [d.id for d in history] == [receipt.deposit_id]
        assert history[0].donor == DONOR
        assert history[0].settlement_amount_out == 940

        assert received == [
            DepositEvent(
                donor=DONOR,
                destination=DESTINATION,
                input_asset=TOKEN,
                total_amount_in=1000,
                gas_amount_out=GAS_SUBSIDY,
                settlement_amount_out=940,
            )
        ]

    @pytest.mark.asyncio
    async def test_gas_subsidy_change_applies(self, router, bank, fund_donor, deposit_args):
        """Test a new gas subsidy is used by the next deposit."""
        fund_donor()
        await router.set_gas_subsidy(OPERATOR, 20)

        receipt = await router.deposit(**{**deposit_args, "min_settlement_out": 890})

        assert receipt.gas_amount_out == 20
        assert receipt.gas_amount_in == 100
        assert receipt.settlement_amount_out == 890
        assert bank.balance_of("ETH", DESTINATION) == 20


class TestDepositAtomicity:
    """Tests that failed deposits revert every effect."""

    @pytest.mark.asyncio
    async def test_settlement_below_floor(self, router, bank, settings, fund_donor, deposit_args):
        """Test ConversionFailed after gas delivery rolls back the gas too."""
        fund_donor()
        events = []
        router.events.subscribe(events.append)

        with pytest.raises(ConversionFailed):
            await router.deposit(**{**deposit_args, "min_settlement_out": 941})

        assert_untouched(bank, settings)
        assert await router.get_balance(DESTINATION) == 0
        assert await router.get_deposits(DESTINATION) == []
        assert events == []

    @pytest.mark.asyncio
    async def test_gas_cap_too_low(self, router, bank, settings, fund_donor, deposit_args):
        fund_donor()

        with pytest.raises(ConversionFailed):
            await router.deposit(**{**deposit_args, "max_gas_conversion_input": 49})

        assert_untouched(bank, settings)

    @pytest.mark.asyncio
    async def test_nothing_left_after_gas(self, router, bank, settings, fund_donor, deposit_args):
        """Test a deposit fully consumed by gas is rejected."""
        fund_donor()

        with pytest.raises(ConversionFailed, match="Nothing left"):
            await router.deposit(**{**deposit_args, "total_amount_in": 50})

        assert bank.balance_of(TOKEN, DONOR) == 1000
        assert await router.get_balance(DESTINATION) == 0

    @pytest.mark.asyncio
    async def test_deadline_passed(self, router, bank, settings, fund_donor, deposit_args):
        fund_donor()

        with pytest.raises(ConversionFailed, match="deadline"):
            await router.deposit(**{**deposit_args, "deadline": 1.0})

        assert_untouched(bank, settings)

    @pytest.mark.asyncio
    async def test_gas_delivery_rejected(self, router, bank, settings, fund_donor, deposit_args):
        """Test a destination refusing native currency aborts the deposit."""
        fund_donor()
        bank.reject_account(DESTINATION)

        with pytest.raises(GasDeliveryFailed):
            await router.deposit(**deposit_args)

        assert_untouched(bank, settings)
        assert await router.get_balance(DESTINATION) == 0

    @pytest.mark.asyncio
    async def test_pull_without_allowance(self, router, bank, settings, deposit_args):
        """Test TransferFailed when custody was never approved."""
        bank.mint(TOKEN, DONOR, 1000)

        with pytest.raises(TransferFailed):
            await router.deposit(**deposit_args)

        assert_untouched(bank, settings, allowance=0)

    @pytest.mark.asyncio
    async def test_pull_exceeds_holdings(self, router, bank, settings, deposit_args):
        bank.mint(TOKEN, DONOR, 500)
        bank.approve(TOKEN, DONOR, settings.custody_account, 1000)

        with pytest.raises(TransferFailed):
            await router.deposit(**deposit_args)

        assert bank.balance_of(TOKEN, DONOR) == 500

    @pytest.mark.asyncio
    async def test_reentrant_call_from_gas_receipt(
        self, router, bank, settings, fund_donor, deposit_args, charities
    ):
        """Test a destination calling back into the router aborts the deposit."""
        fund_donor()

        async def call_back(asset, sender, amount):
            await router.finalize(DESTINATION, DESTINATION, ["A"], [1])

        bank.on_receive(DESTINATION, call_back)

        with pytest.raises(ReentrantCall):
            await router.deposit(**deposit_args)

        assert_untouched(bank, settings)
        assert await router.get_balance(DESTINATION) == 0


class TestDepositValidation:
    """Tests for rejected parameters."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -1])
    async def test_invalid_total(self, router, fund_donor, deposit_args, amount):
        fund_donor()

        with pytest.raises(InvalidAmount):
            await router.deposit(**{**deposit_args, "total_amount_in": amount})

    @pytest.mark.asyncio
    async def test_empty_destination(self, router, fund_donor, deposit_args):
        fund_donor()

        with pytest.raises(InvalidRequest):
            await router.deposit(**{**deposit_args, "destination": ""})

    @pytest.mark.asyncio
    async def test_paused(self, router, bank, fund_donor, deposit_args):
        """Test deposits are rejected while paused and accepted after unpause."""
        fund_donor()
        await router.pause(OPERATOR)

        with pytest.raises(RouterPaused):
            await router.deposit(**deposit_args)
        assert bank.balance_of(TOKEN, DONOR) == 1000

        await router.unpause(OPERATOR)
        receipt = await router.deposit(**deposit_args)
        assert receipt.settlement_amount_out == 940
