"""Logical transaction types and their canonical byte form."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

import base58

from amadeus_mcp.transaction.codec import CodecError, decode, encode

OP_CALL = "call"
BASE58_REGEX = re.compile(r"^[1-9A-HJ-NP-Za-km-z]+$")


@dataclass(frozen=True, slots=True)
class IntegerArg:
    """Unsigned integer, carried as its decimal string."""

    value: int

    kind = "integer"

    def payload(self) -> bytes:
        return str(self.value).encode("ascii")

    def to_json(self) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class TextArg:
    value: str

    kind = "text"

    def payload(self) -> bytes:
        return self.value.encode("utf-8")

    def to_json(self) -> Any:
        return self.value


@dataclass(frozen=True, slots=True)
class AddressArg:
    """Bare base58 reference (``{"b58": ...}``), carried as the decoded bytes."""

    value: str

    kind = "address"

    def payload(self) -> bytes:
        return base58.b58decode(self.value)

    def to_json(self) -> Any:
        return {"b58": self.value}


@dataclass(frozen=True, slots=True)
class WrappedAddressArg:
    """Structured account reference (``{"address": ...}``)."""

    value: str

    kind = "wrapped_address"

    def payload(self) -> bytes:
        return base58.b58decode(self.value)

    def to_json(self) -> Any:
        return {"address": self.value}


@dataclass(frozen=True, slots=True)
class BytesArg:
    """Raw bytes given as hex (``{"hex": ...}``)."""

    value: bytes

    kind = "bytes"

    def payload(self) -> bytes:
        return self.value

    def to_json(self) -> Any:
        return {"hex": self.value.hex()}


TxArg = Union[IntegerArg, TextArg, AddressArg, WrappedAddressArg, BytesArg]


def transfer_args(destination: str, amount: int, symbol: str) -> Tuple[BytesArg, ...]:
    """``Coin.transfer`` arguments in the layout the node reads: receiver key, decimal amount, symbol."""
    return (
        BytesArg(base58.b58decode(destination)),
        BytesArg(str(amount).encode("ascii")),
        BytesArg(symbol.encode("utf-8")),
    )


def _decode_integer(payload: bytes) -> IntegerArg:
    text = payload.decode("ascii")
    if not text.isdigit() or (len(text) > 1 and text[0] == "0"):
        raise CodecError("integer argument is not a canonical decimal string")
    return IntegerArg(int(text))


def _decode_text(payload: bytes) -> TextArg:
    return TextArg(payload.decode("utf-8"))


def _decode_address(payload: bytes) -> AddressArg:
    return AddressArg(base58.b58encode(payload).decode("ascii"))


def _decode_wrapped(payload: bytes) -> WrappedAddressArg:
    return WrappedAddressArg(base58.b58encode(payload).decode("ascii"))


_ARG_DECODERS = {
    IntegerArg.kind: _decode_integer,
    TextArg.kind: _decode_text,
    AddressArg.kind: _decode_address,
    WrappedAddressArg.kind: _decode_wrapped,
}


def encode_arg(arg: TxArg) -> Union[bytes, List[bytes]]:
    """
    Wire form of one argument.

    Raw bytes go out as a bare byte string, the layout the node's contracts
    read. Every other kind is a ``[kind, payload]`` pair so it decodes back to
    the same variant.
    """
    if isinstance(arg, BytesArg):
        return arg.value
    return [arg.kind.encode("ascii"), arg.payload()]


def decode_arg(raw: Any) -> TxArg:
    if isinstance(raw, bytes):
        return BytesArg(raw)
    if not isinstance(raw, list) or len(raw) != 2 or not all(isinstance(part, bytes) for part in raw):
        raise CodecError("argument must be a byte string or a [kind, payload] pair")
    kind = raw[0].decode("ascii", errors="replace")
    decoder = _ARG_DECODERS.get(kind)
    if decoder is None:
        raise CodecError(f"unknown argument kind {kind!r}")
    try:
        return decoder(raw[1])
    except (UnicodeDecodeError, ValueError) as exc:
        raise CodecError(f"invalid {kind} argument") from exc


@dataclass(frozen=True, slots=True)
class UnsignedTransaction:
    signer: str
    contract: str
    function: str
    args: Tuple[TxArg, ...]
    nonce: int
    attached_symbol: Optional[str] = None
    attached_amount: Optional[str] = None

    def signer_key(self) -> bytes:
        return base58.b58decode(self.signer)

    def to_value(self) -> Dict[str, Any]:
        action: Dict[str, Any] = {
            "op": OP_CALL,
            "contract": self.contract,
            "function": self.function,
            "args": [encode_arg(arg) for arg in self.args],
        }
        if self.attached_symbol is not None:
            action["attached_symbol"] = self.attached_symbol
        if self.attached_amount is not None:
            action["attached_amount"] = self.attached_amount
        return {"signer": self.signer_key(), "nonce": self.nonce, "action": action}

    def describe(self) -> Dict[str, Any]:
        """JSON-friendly view of the logical fields (what the caller is about to sign)."""
        described: Dict[str, Any] = {
            "signer": self.signer,
            "contract": self.contract,
            "function": self.function,
            "args": [arg.to_json() for arg in self.args],
            "nonce": self.nonce,
        }
        if self.attached_symbol is not None:
            described["attached_symbol"] = self.attached_symbol
        if self.attached_amount is not None:
            described["attached_amount"] = self.attached_amount
        return described


def encode_transaction(tx: UnsignedTransaction) -> bytes:
    return encode(tx.to_value())


def _text_field(mapping: Dict[Any, Any], key: bytes, *, optional: bool = False) -> Optional[str]:
    raw = mapping.get(key)
    if raw is None and optional:
        return None
    if not isinstance(raw, bytes):
        raise CodecError(f"field {key.decode()} must be a byte string")
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CodecError(f"field {key.decode()} is not UTF-8") from exc


def decode_transaction(blob: bytes) -> UnsignedTransaction:
    """Inverse of ``encode_transaction``; raises ``CodecError`` for anything else."""
    value = decode(blob)
    if not isinstance(value, dict) or set(value) != {b"signer", b"nonce", b"action"}:
        raise CodecError("transaction must contain exactly signer, nonce and action")
    action = value[b"action"]
    allowed = {b"op", b"contract", b"function", b"args", b"attached_symbol", b"attached_amount"}
    if not isinstance(action, dict) or not set(action) <= allowed:
        raise CodecError("malformed action")
    if action.get(b"op") != OP_CALL.encode():
        raise CodecError("unsupported action op")
    signer = value[b"signer"]
    nonce = value[b"nonce"]
    raw_args = action.get(b"args")
    if not isinstance(signer, bytes) or not signer:
        raise CodecError("signer must be a byte string")
    if not isinstance(nonce, int) or isinstance(nonce, bool):
        raise CodecError("nonce must be an integer")
    if not isinstance(raw_args, list):
        raise CodecError("args must be a list")
    return UnsignedTransaction(
        signer=base58.b58encode(signer).decode("ascii"),
        contract=_text_field(action, b"contract") or "",
        function=_text_field(action, b"function") or "",
        args=tuple(decode_arg(raw) for raw in raw_args),
        nonce=nonce,
        attached_symbol=_text_field(action, b"attached_symbol", optional=True),
        attached_amount=_text_field(action, b"attached_amount", optional=True),
    )


def signing_hash(blob: bytes) -> bytes:
    """Digest that the signer signs and the verifier checks."""
    return hashlib.sha256(blob).digest()


def pack_signed(blob: bytes, signature: bytes) -> Tuple[bytes, bytes]:
    """Pack ``{hash, signature, tx}`` for submission; returns ``(packed, hash)``."""
    digest = signing_hash(blob)
    packed = encode({"hash": digest, "signature": signature, "tx": decode(blob)})
    return packed, digest
