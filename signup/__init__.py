"""
Hive Signup - Server Package

Provisions Hive accounts behind a free verification step or a paid HIVE
transfer. Includes the SQLite ledger, HIVE price cache, payment webhook
reconciliation, and REST API.
"""

__version__ = "0.1.0"

__all__ = [
    "amounts",
    "config",
    "errors",
    "hive",
    "pricing",
    "reconciler",
    "server",
    "storage",
    "widget",
    "workflow",
]
