"""
Parameter models for every tool.

Models forbid unknown fields and use strict primitive types so that a string
never silently becomes an integer. Shape checks that need more than a type
(base58 lengths, pagination bounds) live in field validators and surface as
``invalid_value``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator, model_validator
from pydantic_core import PydanticCustomError

from amadeus_mcp.config import DEFAULT_HISTORY_LIMIT, MAX_HISTORY_LIMIT
from amadeus_mcp.tools.validators import (
    ADDRESS_BYTES,
    HASH_BYTES,
    is_atomic_amount,
    is_valid_address,
    is_valid_tx_hash,
)


class ToolParams(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    def model_dump_one_level(self) -> Dict[str, Any]:
        """Field values one level deep; nested models stay models."""
        return {name: getattr(self, name) for name in self.__class__.model_fields}


def _check_address(value: str) -> str:
    if not is_valid_address(value):
        raise ValueError(f"must be a base58-encoded {ADDRESS_BYTES}-byte public key")
    return value


class NoParams(ToolParams):
    pass


class AddressParams(ToolParams):
    address: StrictStr = Field(description="Account address (base58 public key).")

    check_address = field_validator("address")(_check_address)


class BlockHeightParams(ToolParams):
    height: StrictInt = Field(ge=0, description="Block height (non-negative).")


class TransactionHashParams(ToolParams):
    hash: StrictStr = Field(description="Transaction hash (base58).")

    @field_validator("hash")
    @classmethod
    def check_hash(cls, value: str) -> str:
        if not is_valid_tx_hash(value):
            raise ValueError(f"must be a base58-encoded {HASH_BYTES}-byte hash")
        return value


class TransactionHistoryParams(ToolParams):
    address: StrictStr
    limit: StrictInt = Field(default=DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_HISTORY_LIMIT)
    offset: Optional[StrictInt] = Field(default=None, ge=0)
    page: Optional[StrictInt] = Field(default=None, ge=1, description="1-based page; exclusive with offset.")
    sort: Literal["asc", "desc"] = "desc"

    check_address = field_validator("address")(_check_address)

    @model_validator(mode="after")
    def check_page_or_offset(self) -> "TransactionHistoryParams":
        if self.page is not None and self.offset is not None:
            raise ValueError("page and offset are mutually exclusive")
        return self


class ContractStateParams(ToolParams):
    address: StrictStr = Field(description="Contract address (base58).")
    key: StrictStr = Field(min_length=1, description="Storage key.")

    check_address = field_validator("address")(_check_address)


class GenericTransferParams(ToolParams):
    """Any contract call: ``signer`` calls ``contract.function(*args)``."""

    signer: StrictStr
    contract: StrictStr = Field(min_length=1)
    function: StrictStr = Field(min_length=1)
    args: List[Any]
    nonce: Optional[StrictInt] = Field(default=None, ge=0)
    attached_symbol: Optional[StrictStr] = None
    attached_amount: Optional[StrictStr] = None

    check_signer = field_validator("signer")(_check_address)

    @field_validator("attached_amount")
    @classmethod
    def check_attached_amount(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_atomic_amount(value):
            raise ValueError("must be a non-negative integer amount in atomic units")
        return value


class SimpleTransferParams(ToolParams):
    """Token transfer shorthand, expanded to ``Coin.transfer``."""

    source: StrictStr
    destination: StrictStr
    amount: Any = Field(json_schema_extra={"type": ["string", "integer"]})
    symbol: StrictStr = Field(default="AMA", min_length=1)
    nonce: Optional[StrictInt] = Field(default=None, ge=0)

    check_source = field_validator("source")(_check_address)
    check_destination = field_validator("destination")(_check_address)

    @field_validator("amount")
    @classmethod
    def check_amount(cls, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise PydanticCustomError("wrong_type", "amount must be an integer or a decimal string")
        if isinstance(value, str):
            if not is_atomic_amount(value):
                raise ValueError("amount must be a non-negative integer in atomic units")
            return int(value)
        if value < 0:
            raise ValueError("amount must be non-negative")
        return value


def select_transfer_model(arguments: Dict[str, Any]) -> type[ToolParams]:
    if {"source", "destination", "amount"} & arguments.keys():
        return SimpleTransferParams
    return GenericTransferParams


class TransactionFields(ToolParams):
    """Logical fields of a transaction being submitted; ``blob`` is what the caller signed."""

    signer: StrictStr
    contract: StrictStr = Field(min_length=1)
    function: StrictStr = Field(min_length=1)
    args: List[Any]
    nonce: StrictInt = Field(ge=0)
    attached_symbol: Optional[StrictStr] = None
    attached_amount: Optional[StrictStr] = None
    blob: Optional[StrictStr] = None


class SubmitBlobParams(ToolParams):
    transaction: StrictStr = Field(description="Base58 unsigned transaction blob.")
    signature: StrictStr = Field(description="Base58 BLS12-381 signature.")
    network: Literal["mainnet", "testnet"] = "mainnet"


class SubmitFieldsParams(ToolParams):
    transaction: TransactionFields
    signature: StrictStr = Field(description="Base58 BLS12-381 signature.")
    network: Literal["mainnet", "testnet"] = "mainnet"


def select_submit_model(arguments: Dict[str, Any]) -> type[ToolParams]:
    if isinstance(arguments.get("transaction"), dict):
        return SubmitFieldsParams
    return SubmitBlobParams


ClaimParams = AddressParams
