from sqlmodel import SQLModel, Field
from sqlalchemy import UniqueConstraint
from typing import Optional
from datetime import datetime


class StoredValue(SQLModel, table=True):
    __tablename__ = "stored_value"
    __table_args__ = (UniqueConstraint("namespace", "key"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    namespace: str = Field(index=True)
    key: str
    value: str
    updated_at: datetime = Field(default_factory=datetime.utcnow)
