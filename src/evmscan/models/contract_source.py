"""Contract source metadata model."""

from typing import Optional

from sqlalchemy import BigInteger, Boolean, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from evmscan.models.base import Base


class ContractSourceCode(Base):
    """Source code and compiler settings, one row per lowercase address."""

    __tablename__ = "contract_sources"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    source_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    compiler: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    optimization: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    runs: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    # Epoch milliseconds
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
