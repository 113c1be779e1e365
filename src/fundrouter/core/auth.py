"""Authorization policies for acting on a beneficiary's balance."""

import logging
from abc import ABC, abstractmethod
from typing import Iterable

from fundrouter.errors import Unauthorized

logger = logging.getLogger(__name__)


class AuthorizationPolicy(ABC):
    """Decides whether a caller may act for a subject."""

    @abstractmethod
    def is_authorized(self, caller: str, subject: str) -> bool:
        """Check if caller may act on subject's balance."""
        pass

    @abstractmethod
    def is_operator(self, caller: str) -> bool:
        """Check if caller holds operator (admin) rights."""
        pass

    def require_authorized(self, caller: str, subject: str) -> None:
        """Raise Unauthorized unless caller may act for subject."""
        if not self.is_authorized(caller, subject):
            logger.warning(f"Unauthorized: {caller} attempted to act for {subject}")
            raise Unauthorized(f"{caller} may not act for {subject}", caller)

    def require_operator(self, caller: str, action: str = "this action") -> None:
        """Raise Unauthorized unless caller is an operator."""
        if not self.is_operator(caller):
            logger.warning(f"Unauthorized: {caller} attempted {action}")
            raise Unauthorized(f"{caller} is not an operator and cannot perform {action}", caller)


class OperatorPolicy(AuthorizationPolicy):
    """A subject may act for itself; operators may act for anyone."""

    def __init__(self, operators: Iterable[str] = ()):
        self.operators: set[str] = set(operators)

    def add_operator(self, identity: str) -> None:
        self.operators.add(identity)

    def remove_operator(self, identity: str) -> None:
        self.operators.discard(identity)

    def is_operator(self, caller: str) -> bool:
        return caller in self.operators

    def is_authorized(self, caller: str, subject: str) -> bool:
        return caller == subject or self.is_operator(caller)
