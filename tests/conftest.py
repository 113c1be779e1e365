"""Pytest configuration and fixtures."""

import os
from fractions import Fraction
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEBUG"] = "false"
os.environ["ADMIN_TOKEN"] = "test-admin-token"

from fundrouter.config import Settings
from fundrouter.core.auth import OperatorPolicy
from fundrouter.core.router import FundRouter
from fundrouter.custody.memory import InMemoryTokenBank, NativeGasCourier
from fundrouter.ledger.models import Base
from fundrouter.ledger.repository import LedgerRepository
from fundrouter.routing.dry_run import SimulatedGateway

OPERATOR = "operator"
DONOR = "donor"
DESTINATION = "ephemeral-1"
TOKEN = "TKN"
GAS_SUBSIDY = 10


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory database engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def ledger_repo(db_session: AsyncSession) -> LedgerRepository:
    """Create ledger repository for testing."""
    return LedgerRepository(db_session)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        gas_subsidy=GAS_SUBSIDY,
        operator_ids=OPERATOR,
        operation_lock_timeout=1.0,
    )


@pytest.fixture
def bank() -> InMemoryTokenBank:
    return InMemoryTokenBank()


@pytest.fixture
def gateway(bank: InMemoryTokenBank) -> SimulatedGateway:
    """Gateway priced so 10 WETH costs 50 TKN and 950 TKN buys 940 USDC.

    Fee tier 0 is enabled so the example figures come out exact.
    """
    gw = SimulatedGateway(bank, fee_tiers=(0, 100, 500, 3000, 10000))
    gw.set_price(TOKEN, Fraction(94, 95))
    gw.set_price("USDC", 1)
    gw.set_price("WETH", Fraction(94, 19))
    gw.add_liquidity("WETH", 1_000_000)
    gw.add_liquidity("USDC", 1_000_000)
    return gw


@pytest_asyncio.fixture
async def router(settings, bank, gateway, session_factory) -> FundRouter:
    """FundRouter on the in-memory bank, simulated gateway and test database."""
    fund_router = FundRouter(
        transfers=bank,
        gateway=gateway,
        courier=NativeGasCourier(bank, native_asset=settings.native_asset),
        policy=OperatorPolicy(settings.operators),
        settings=settings,
        session_factory=session_factory,
    )
    await fund_router.initialize()
    return fund_router


@pytest.fixture
def fund_donor(bank: InMemoryTokenBank, settings: Settings):
    """Give a donor tokens and approve custody to pull them."""

    def _fund(donor: str = DONOR, amount: int = 1000, asset: str = TOKEN) -> None:
        bank.mint(asset, donor, amount)
        bank.approve(asset, donor, settings.custody_account, amount)

    return _fund


@pytest.fixture
def deposit_args() -> dict:
    """Arguments for the 1000 TKN -> 10 WETH gas + 940 USDC example deposit."""
    return {
        "caller": DONOR,
        "destination": DESTINATION,
        "input_asset": TOKEN,
        "total_amount_in": 1000,
        "deadline": 4_102_444_800.0,
        "max_gas_conversion_input": 100,
        "gas_fee_tier": 0,
        "settlement_fee_tier": 0,
        "min_settlement_out": 900,
    }


@pytest_asyncio.fixture
async def charities(router: FundRouter) -> dict[str, str]:
    """Register charities A and B."""
    registered = {"A": "addr:charity-a", "B": "addr:charity-b"}
    for name, address in registered.items():
        await router.register_charity(OPERATOR, name, address)
    return registered


@pytest_asyncio.fixture
async def funded_beneficiary(router: FundRouter, fund_donor, deposit_args) -> str:
    """Run the example deposit so DESTINATION is owed 940 USDC."""
    fund_donor()
    await router.deposit(**deposit_args)
    return DESTINATION
