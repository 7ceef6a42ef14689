"""
Credential model backing the local identity provider
"""

from sqlmodel import Field, SQLModel
from datetime import datetime
from typing import Optional
import uuid


class Credential(SQLModel, table=True):
    """Sign-in account: email plus password hash"""

    __tablename__ = "credentials"

    uid: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=128)
    email: str = Field(unique=True, index=True, nullable=False, max_length=255)
    password_hash: str = Field(nullable=False)

    # Status
    disabled: bool = Field(default=False)
    failed_attempts: int = Field(default=0)
    locked_until: Optional[datetime] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    last_sign_in_at: Optional[datetime] = None
