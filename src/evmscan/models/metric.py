"""Stored explorer metric model."""

from typing import Any

from sqlalchemy import JSON, BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from evmscan.models.base import Base


class StorageMetric(Base):
    """Opaque JSON value saved by a front end under a key."""

    __tablename__ = "metrics"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    data: Mapped[Any] = mapped_column(JSON, nullable=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
