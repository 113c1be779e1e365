"""Utility modules for fundrouter."""

from fundrouter.utils.locks import LockTimeoutError, OperationGuard

__all__ = ["LockTimeoutError", "OperationGuard"]
