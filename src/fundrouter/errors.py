"""Error taxonomy for router operations.

Every error aborts the enclosing deposit or finalize call and reverts all of
its state changes. ``kind`` is the machine-readable identifier surfaced to API
clients; ``value`` carries the offending input where one exists.
"""

from typing import Any, Optional


class RouterError(Exception):
    """Base class for all rejected router operations."""

    kind = "router_error"

    def __init__(self, message: str, value: Optional[Any] = None):
        self.value = value
        super().__init__(message)

    def to_dict(self) -> dict:
        """Serialize for API responses."""
        return {
            "error": self.kind,
            "detail": str(self),
            "value": None if self.value is None else str(self.value),
        }


class TransferFailed(RouterError):
    """An external token movement did not complete for the full amount."""

    kind = "transfer_failed"


class ConversionFailed(RouterError):
    """The conversion gateway could not satisfy the requested bound before the deadline."""

    kind = "conversion_failed"


class GasDeliveryFailed(RouterError):
    """Native-currency delivery to the destination was rejected."""

    kind = "gas_delivery_failed"


class Unauthorized(RouterError):
    """Caller lacks rights for the requested beneficiary or admin action."""

    kind = "unauthorized"


class UnknownCharity(RouterError):
    """Referenced charity name is not registered."""

    kind = "unknown_charity"


class DuplicateCharity(RouterError):
    """Charity name or address is already registered."""

    kind = "duplicate_charity"


class InvalidRequest(RouterError):
    """Malformed request parameters."""

    kind = "invalid_request"


class InvalidCharity(InvalidRequest):
    """Charity name or address is empty."""

    kind = "invalid_charity"


class InvalidAmount(InvalidRequest):
    """Amount is not a positive integer."""

    kind = "invalid_amount"


class InvalidAllocation(RouterError):
    """Malformed finalize request."""

    kind = "invalid_allocation"


class AllocationTooHigh(InvalidAllocation):
    """Requested amounts exceed the beneficiary's balance."""

    kind = "allocation_too_high"


class AllocationMismatch(InvalidAllocation):
    """Charity names and amounts have different lengths."""

    kind = "allocation_length_mismatch"


class EmptyAllocation(AllocationTooHigh):
    """A non-zero balance cannot be finalized to no charities."""

    kind = "empty_allocation"


class ZeroAllocation(InvalidAllocation):
    """All requested amounts are zero while the balance is not."""

    kind = "zero_allocation"


class NegativeAllocation(InvalidAllocation):
    """A requested amount is negative."""

    kind = "negative_allocation"


class ConservationViolation(RouterError):
    """Internal arithmetic invariant broken. Indicates a defect, never caller error."""

    kind = "conservation_violation"


class ReentrantCall(RouterError):
    """Nested call into a mutating entry point while one is in flight."""

    kind = "reentrant_call"


class RouterPaused(RouterError):
    """Mutating operations are disabled by an operator."""

    kind = "paused"
