"""Explorer read models."""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_serializer

from evmscan.infrastructure.blockchain.methods import MethodResolution
from evmscan.infrastructure.blockchain.types import (
    DecodedCall,
    DecodedEvent,
    LogRecord,
    ReceiptRecord,
    TransactionRecord,
)


class EnrichedTransaction(TransactionRecord):
    """Transaction with its resolved method label and contract name."""

    method: str = Field(..., description="Decoded function name or fallback label")
    abi_decoded: bool = Field(False, description="Label came from a stored ABI")
    contract_name: str | None = Field(None, description="Name of the verified recipient")

    @classmethod
    def from_record(
        cls,
        record: TransactionRecord,
        resolution: MethodResolution,
        contract_name: str | None = None,
    ) -> "EnrichedTransaction":
        return cls(
            **record.model_dump(),
            method=resolution.name,
            abi_decoded=resolution.abi_decoded,
            contract_name=contract_name,
        )


class TransactionDetail(EnrichedTransaction):
    """Single transaction view: receipt merged in, call and logs decoded."""

    status: Literal["success", "reverted"] | None = Field(
        None, description="Execution status (None while pending)"
    )
    gas_used: int | None = Field(None, description="Gas used")
    effective_gas_price: int | None = Field(None, description="Price paid per gas")
    created_contract: str | None = Field(None, description="Deployed contract address")
    logs: list[LogRecord] = Field(default_factory=list)
    decoded_call: DecodedCall | None = Field(None, description="Decoded call arguments")
    decoded_logs: list[DecodedEvent] = Field(
        default_factory=list, description="Logs decoded against stored ABIs"
    )

    @classmethod
    def build(
        cls,
        record: TransactionRecord,
        resolution: MethodResolution,
        receipt: ReceiptRecord | None,
        decoded_logs: list[DecodedEvent],
        contract_name: str | None = None,
    ) -> "TransactionDetail":
        receipt_fields: dict[str, Any] = {}
        if receipt is not None:
            receipt_fields = {
                "status": receipt.status,
                "gas_used": receipt.gas_used,
                "effective_gas_price": receipt.effective_gas_price,
                "created_contract": receipt.contract_address,
                "logs": receipt.logs,
            }
        return cls(
            **record.model_dump(),
            method=resolution.name,
            abi_decoded=resolution.abi_decoded,
            contract_name=contract_name,
            decoded_call=resolution.call,
            decoded_logs=decoded_logs,
            **receipt_fields,
        )

    @field_serializer("effective_gas_price", when_used="json")
    def _serialize_price(self, value: int | None) -> str | None:
        return None if value is None else str(value)


class AddressSummary(BaseModel):
    """Balance, nonce and code of an address."""

    address: str = Field(..., description="Lowercase address")
    balance: int = Field(..., description="Balance in wei")
    nonce: int = Field(..., description="Transaction count")
    code: str = Field("0x", description="Deployed bytecode")
    is_contract: bool = Field(..., description="Address holds code")
    verified: bool = Field(False, description="An ABI is stored for the address")
    contract_name: str | None = Field(None, description="Verified contract name")

    @field_serializer("balance", when_used="json")
    def _serialize_balance(self, value: int) -> str:
        return str(value)


class VerifyContractRequest(BaseModel):
    """Body of a contract verification request."""

    abi: Any = Field(..., description="Contract ABI (JSON array)")
    name: str | None = Field(None, description="Contract display name")
