"""Base data model class"""
from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field


class BaseModel(SQLModel):
    """Base class for all data tables with common fields"""

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(
        default_factory=datetime.now,
        nullable=False,
        index=True,
    )
    updated_at: datetime = Field(
        default_factory=datetime.now,
        nullable=False,
    )

    def touch(self):
        """Mark record as updated now"""
        self.updated_at = datetime.now()
