"""Verified contract ABI model."""

from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from evmscan.models.base import Base


class ContractAbi(Base):
    """Contract ABI table, one row per lowercase address."""

    __tablename__ = "contract_abis"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    abi: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, index=True
    )
    # Epoch milliseconds, as exposed by the storage API
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
