"""Store adapters.

Each module declares the Protocol its service depends on and a
PostgreSQL implementation of it.
"""

from citizen_backend.repositories.messages import (
    MessageStore,
    Page,
    PagedQuery,
    SqlMessageRepository,
)
from citizen_backend.repositories.user_data_processing import (
    SqlUserDataProcessingRepository,
    UserDataProcessingStore,
)

__all__ = [
    "MessageStore",
    "Page",
    "PagedQuery",
    "SqlMessageRepository",
    "SqlUserDataProcessingRepository",
    "UserDataProcessingStore",
]
