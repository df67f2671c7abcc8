"""Hex, hash, logging and formatting helpers plus a JSON-RPC/HTTP monitoring API for a mining farm."""

__version__ = "0.19.0"

__all__ = [
    "api_params",
    "api_server",
    "api_session",
    "api_stats",
    "common_data",
    "fixed_hash",
    "log",
]