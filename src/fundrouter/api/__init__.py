"""HTTP API for the fund router."""
