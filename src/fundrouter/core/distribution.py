"""Distribution engine: drains a beneficiary's balance into charities.

Disbursement formula, for a balance ``B`` and requested amounts ``a_i``
summing to ``A`` with ``R = B - A``::

    d_i = a_i + a_i * R // A          for every entry but the last
    d_last = B - sum(d_0 .. d_{n-2})

Integer division truncates, and the last entry absorbs the dust, so the
disbursements always sum to exactly ``B``.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Sequence

from fundrouter.core.auth import AuthorizationPolicy
from fundrouter.custody.base import TokenTransfers
from fundrouter.errors import (
    AllocationMismatch,
    AllocationTooHigh,
    ConservationViolation,
    EmptyAllocation,
    NegativeAllocation,
    RouterError,
    TransferFailed,
    UnknownCharity,
    ZeroAllocation,
)
from fundrouter.events import DonationEvent
from fundrouter.ledger.models import Charity
from fundrouter.ledger.repository import LedgerRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Disbursement:
    """Amount routed to one charity."""

    charity_name: str
    charity_address: str
    amount: int


@dataclass
class FinalizeReceipt:
    """Result of a finalize call."""

    batch_id: str
    beneficiary: str
    prior_balance: int
    disbursements: list[Disbursement] = field(default_factory=list)

    @property
    def total_disbursed(self) -> int:
        return sum(d.amount for d in self.disbursements)

    def to_dict(self) -> dict:
        return {
            "batch_id": self.batch_id,
            "beneficiary": self.beneficiary,
            "prior_balance": str(self.prior_balance),
            "total_disbursed": str(self.total_disbursed),
            "disbursements": [
                {
                    "charity_name": d.charity_name,
                    "charity_address": d.charity_address,
                    "amount": str(d.amount),
                }
                for d in self.disbursements
            ],
        }


def validate_allocation(balance: int, amounts: Sequence[int]) -> int:
    """Check requested amounts against a balance and return their sum."""
    for amount in amounts:
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise NegativeAllocation(
                f"Allocation amounts must be non-negative integers, got {amount!r}", amount
            )

    total = sum(amounts)
    if total > balance:
        raise AllocationTooHigh(
            f"Requested {total} exceeds balance {balance}", total
        )
    if balance > 0 and not amounts:
        raise EmptyAllocation(f"Balance {balance} cannot be finalized to no charities", balance)
    if balance > 0 and total == 0:
        raise ZeroAllocation(
            f"Balance {balance} cannot be split by an all-zero allocation", total
        )
    return total


def compute_disbursements(balance: int, amounts: Sequence[int]) -> list[int]:
    """Split ``balance`` across ``amounts`` proportionally, dust to the last entry."""
    total = validate_allocation(balance, amounts)
    if balance == 0:
        return [0] * len(amounts)

    remainder = balance - total
    shares: list[int] = []
    for amount in amounts[:-1]:
        # Multiply before dividing; dividing first truncates every share to zero
        shares.append(amount + amount * remainder // total)

    last = balance - sum(shares)
    shares.append(last)

    if sum(shares) != balance or last < amounts[-1]:
        logger.critical(
            f"Conservation violated: balance={balance} amounts={list(amounts)} shares={shares}"
        )
        raise ConservationViolation(
            f"Disbursed {sum(shares)} but balance was {balance}", sum(shares)
        )
    return shares


class DistributionEngine:
    """Resolves charities, drains the ledger and pushes settlement currency out."""

    def __init__(
        self,
        transfers: TokenTransfers,
        policy: AuthorizationPolicy,
        custody_account: str,
        settlement_asset: str,
    ):
        self.transfers = transfers
        self.policy = policy
        self.custody_account = custody_account
        self.settlement_asset = settlement_asset

    async def _resolve(self, repo: LedgerRepository, names: Sequence[str]) -> list[Charity]:
        charities = []
        for name in names:
            charity = await repo.get_charity_by_name(name)
            if charity is None:
                raise UnknownCharity(f"Charity not registered: {name}", name)
            charities.append(charity)
        return charities

    async def _push(self, charity: Charity, amount: int) -> None:
        try:
            ok = await self.transfers.push(
                self.settlement_asset, self.custody_account, charity.address, amount
            )
        except RouterError:
            raise
        except Exception as e:
            raise TransferFailed(
                f"Transfer of {amount} {self.settlement_asset} to {charity.name} raised "
                f"{type(e).__name__}: {e}",
                charity.name,
            ) from e
        if not ok:
            raise TransferFailed(
                f"Transfer of {amount} {self.settlement_asset} to {charity.name} "
                f"({charity.address}) failed",
                charity.name,
            )

    async def finalize(
        self,
        repo: LedgerRepository,
        caller: str,
        beneficiary: str,
        charity_names: Sequence[str],
        amounts: Sequence[int],
        events: list,
    ) -> FinalizeReceipt:
        """Disburse the beneficiary's entire balance.

        Must run inside an operation that rolls back the session and the
        token bank on failure.
        """
        self.policy.require_authorized(caller, beneficiary)

        if len(charity_names) != len(amounts):
            raise AllocationMismatch(
                f"{len(charity_names)} charities but {len(amounts)} amounts",
                len(charity_names),
            )

        charities = await self._resolve(repo, charity_names)
        balance = await repo.get_balance(beneficiary)
        shares = compute_disbursements(balance, amounts)

        receipt = FinalizeReceipt(
            batch_id=uuid.uuid4().hex,
            beneficiary=beneficiary,
            prior_balance=balance,
        )
        if balance == 0:
            logger.info(f"Finalize for {beneficiary}: nothing owed, no-op")
            return receipt

        # Zero the balance before any transfer can call back into the router
        drained = await repo.drain_to_zero(beneficiary)
        if drained != balance:
            raise ConservationViolation(
                f"Balance of {beneficiary} changed from {balance} to {drained} mid-finalize",
                drained,
            )

        for charity, amount in zip(charities, shares):
            if amount == 0:
                continue
            await self._push(charity, amount)
            await repo.record_donation(
                batch_id=receipt.batch_id,
                beneficiary=beneficiary,
                charity_name=charity.name,
                charity_address=charity.address,
                settlement_amount=amount,
                finalized_by=caller,
            )
            receipt.disbursements.append(
                Disbursement(charity_name=charity.name, charity_address=charity.address, amount=amount)
            )
            events.append(
                DonationEvent(
                    beneficiary=beneficiary,
                    charity_name=charity.name,
                    charity_address=charity.address,
                    settlement_amount=amount,
                )
            )

        if receipt.total_disbursed != balance:
            logger.critical(
                f"Conservation violated for {beneficiary}: disbursed "
                f"{receipt.total_disbursed} of {balance}"
            )
            raise ConservationViolation(
                f"Disbursed {receipt.total_disbursed} but balance was {balance}",
                receipt.total_disbursed,
            )

        logger.info(
            f"Finalized {beneficiary}: {balance} {self.settlement_asset} to "
            f"{len(receipt.disbursements)} charities (by {caller})"
        )
        return receipt
