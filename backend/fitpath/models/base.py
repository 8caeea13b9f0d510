"""
Shared model base - snake_case attributes, camelCase JSON.
"""

from datetime import datetime, timezone

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Accepts both ``date_of_birth`` and ``dateOfBirth``; dumps camelCase with ``by_alias``."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
