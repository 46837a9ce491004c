from ._schema import SCHEMA_VERSION, SCHEMA_SQL
from .pending_accounts import (
    CREATION_CREATED,
    CREATION_CREATING,
    CREATION_FAILED,
    CREATION_NOT_STARTED,
    STATUS_PAID,
    STATUS_PENDING,
    PendingAccountRepo,
)
from .manager import StorageManager

__all__ = [
    "SCHEMA_VERSION",
    "SCHEMA_SQL",
    "CREATION_CREATED",
    "CREATION_CREATING",
    "CREATION_FAILED",
    "CREATION_NOT_STARTED",
    "STATUS_PAID",
    "STATUS_PENDING",
    "PendingAccountRepo",
    "StorageManager",
]
