from .adapter import DatabaseAdapter, ITransactionHandle
from .cache import ICacheService

__all__ = [
    "DatabaseAdapter",
    "ICacheService",
    "ITransactionHandle",
]
