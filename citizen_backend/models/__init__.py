"""ORM models package.

Import all models here so that SQLAlchemy's metadata is fully populated
when Alembic runs autogenerate.
"""

from citizen_backend.models.message import MessageRecord
from citizen_backend.models.user_data_processing import (
    UserDataProcessingChoice,
    UserDataProcessingRecord,
    UserDataProcessingStatus,
    make_user_data_processing_id,
)

__all__ = [
    "MessageRecord",
    "UserDataProcessingChoice",
    "UserDataProcessingRecord",
    "UserDataProcessingStatus",
    "make_user_data_processing_id",
]
