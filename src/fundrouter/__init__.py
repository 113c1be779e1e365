"""Fundrouter - custodial deposit conversion and charity disbursement service."""

__version__ = "0.1.0"
