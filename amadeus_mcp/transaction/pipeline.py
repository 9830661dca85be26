"""
Build, verify and submit Amadeus transactions.

``build_transaction`` produces the canonical unsigned blob a caller signs
externally. ``submit_signed`` re-derives that blob from what the caller sends
back, checks the BLS signature over its signing hash and only then forwards
the packed transaction to the node. Nothing is submitted unless both checks
pass.
"""

from __future__ import annotations

import asyncio
import binascii
import logging
import time
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple, Union

import base58

from amadeus_mcp.errors import EncodingMismatchError, GatewayError, SignatureError, ValidationError
from amadeus_mcp.metrics import MetricsRecorder, default_metrics
from amadeus_mcp.transaction.codec import CodecError
from amadeus_mcp.transaction.model import (
    BASE58_REGEX,
    AddressArg,
    BytesArg,
    IntegerArg,
    TextArg,
    TxArg,
    UnsignedTransaction,
    WrappedAddressArg,
    decode_transaction,
    encode_transaction,
    pack_signed,
    signing_hash,
)
from amadeus_mcp.transaction.signature import signature_shape_error, verify

logger = logging.getLogger(__name__)

NEXT_STEP = (
    "Sign signing_payload with the signer's BLS12-381 key, then call "
    "submit_transaction with the transaction fields (or blob) and the base58 signature."
)

_OBJECT_ARG_KINDS = {
    "b58": AddressArg,
    "address": WrappedAddressArg,
    "utf8": TextArg,
}


def _b58_text(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a base58 string", field=field, reason="wrong_type")
    # b58decode strips surrounding whitespace, which would not survive a round trip.
    if not BASE58_REGEX.fullmatch(value):
        raise ValidationError(f"{field} is not valid base58", field=field)
    try:
        raw = base58.b58decode(value)
    except ValueError as exc:
        raise ValidationError(f"{field} is not valid base58", field=field) from exc
    if not raw:
        raise ValidationError(f"{field} must not be empty", field=field)
    return value


def parse_arg(raw: Any, field: str) -> TxArg:
    """Map one JSON argument onto its tagged variant."""
    if isinstance(raw, bool):
        raise ValidationError("booleans are not valid arguments", field=field, reason="wrong_type")
    if isinstance(raw, int):
        if raw < 0:
            raise ValidationError("integer arguments must be non-negative", field=field)
        return IntegerArg(raw)
    if isinstance(raw, str):
        return TextArg(raw)
    if isinstance(raw, dict):
        if len(raw) != 1:
            raise ValidationError(
                "argument objects must have exactly one of b58, address, hex, utf8",
                field=field,
                reason="unexpected_field",
            )
        (kind, value), = raw.items()
        if kind == "hex":
            if not isinstance(value, str):
                raise ValidationError("hex value must be a string", field=f"{field}.hex", reason="wrong_type")
            if value.startswith(("0x", "0X")):
                value = value[2:]
            try:
                return BytesArg(binascii.unhexlify(value))
            except (binascii.Error, ValueError) as exc:
                raise ValidationError("hex value is not valid hex", field=f"{field}.hex") from exc
        arg_type = _OBJECT_ARG_KINDS.get(kind)
        if arg_type is None:
            raise ValidationError(
                f"unknown argument form '{kind}'", field=f"{field}.{kind}", reason="unexpected_field"
            )
        if arg_type is TextArg:
            if not isinstance(value, str):
                raise ValidationError("utf8 value must be a string", field=f"{field}.utf8", reason="wrong_type")
            return TextArg(value)
        return arg_type(_b58_text(value, f"{field}.{kind}"))
    raise ValidationError("unsupported argument type", field=field, reason="wrong_type")


def parse_args(raw_args: Sequence[Any]) -> Tuple[TxArg, ...]:
    return tuple(parse_arg(raw, f"args[{index}]") for index, raw in enumerate(raw_args))


def make_transaction(
    *,
    signer: str,
    contract: str,
    function: str,
    args: Sequence[Any],
    nonce: Optional[int] = None,
    attached_symbol: Optional[str] = None,
    attached_amount: Optional[str] = None,
    clock: Callable[[], int] = time.time_ns,
) -> UnsignedTransaction:
    """Assemble an ``UnsignedTransaction`` from JSON fields; ``nonce`` defaults to ``clock()``."""
    _b58_text(signer, "signer")
    return UnsignedTransaction(
        signer=signer,
        contract=contract,
        function=function,
        args=parse_args(args),
        nonce=clock() if nonce is None else nonce,
        attached_symbol=attached_symbol,
        attached_amount=attached_amount,
    )


def build_transaction(tx: UnsignedTransaction) -> Dict[str, Any]:
    """Encode ``tx`` and describe what the caller is about to sign."""
    try:
        blob = encode_transaction(tx)
    except CodecError as exc:
        raise ValidationError(f"transaction cannot be encoded: {exc}", field="args") from exc
    digest = signing_hash(blob)
    return {
        "blob": base58.b58encode(blob).decode("ascii"),
        "signing_payload": digest.hex(),
        "transaction_hash": base58.b58encode(digest).decode("ascii"),
        "status": "unsigned",
        "transaction": tx.describe(),
        "next_step": NEXT_STEP,
    }


def _decode_blob(blob_b58: str, field: str) -> bytes:
    if not isinstance(blob_b58, str) or not BASE58_REGEX.fullmatch(blob_b58):
        raise ValidationError(f"{field} is not valid base58", field=field)
    try:
        blob = base58.b58decode(blob_b58)
    except ValueError as exc:
        raise ValidationError(f"{field} is not valid base58", field=field) from exc
    if not blob:
        raise ValidationError(f"{field} must not be empty", field=field)
    return blob


def resolve_submission(
    transaction: Union[str, Mapping[str, Any]],
) -> Tuple[UnsignedTransaction, bytes]:
    """
    Return the logical transaction and its canonical blob.

    A string is a base58 blob: it must decode and re-encode to the same bytes.
    A mapping carries the logical fields (``nonce`` required) and optionally the
    blob the caller signed, which must equal the blob re-derived from the fields.
    """
    if isinstance(transaction, str):
        supplied = _decode_blob(transaction, "transaction")
        try:
            tx = decode_transaction(supplied)
        except CodecError as exc:
            raise EncodingMismatchError(f"Blob is not a canonical transaction encoding: {exc}") from exc
        if encode_transaction(tx) != supplied:
            raise EncodingMismatchError("Blob does not re-encode to the same bytes.")
        return tx, supplied

    fields = dict(transaction)
    supplied_b58 = fields.pop("blob", None)
    if fields.get("nonce") is None:
        raise ValidationError("nonce is required to re-derive the blob", field="transaction.nonce", reason="missing")
    tx = make_transaction(**fields)
    try:
        derived = encode_transaction(tx)
    except CodecError as exc:
        raise ValidationError(f"transaction cannot be encoded: {exc}", field="transaction.args") from exc
    if supplied_b58 is not None and _decode_blob(supplied_b58, "transaction.blob") != derived:
        logger.warning("Supplied blob disagrees with canonical encoding", extra={"kind": "encoding_mismatch"})
        raise EncodingMismatchError("Supplied blob does not match the canonical encoding of the fields.")
    return tx, derived


def verify_signature(tx: UnsignedTransaction, blob: bytes, signature_b58: str) -> bytes:
    """Return the raw signature, or raise ``SignatureError`` (malformed | mismatch)."""
    try:
        signer_key: Optional[bytes] = tx.signer_key()
    except ValueError:
        signer_key = None
    problem = signature_shape_error(signer_key, signature_b58)
    if problem is not None:
        raise SignatureError(f"Malformed signature input: {problem}", reason="malformed")
    signature = base58.b58decode(signature_b58)
    if not verify(signer_key, signing_hash(blob), signature):
        logger.info("Signature verification failed", extra={"kind": "signature_error"})
        raise SignatureError("Signature does not verify for this transaction.", reason="mismatch")
    return signature


def pack_for_submission(blob: bytes, signature: bytes) -> Tuple[str, str]:
    """Return ``(packed_b58, tx_hash_b58)`` for a verified transaction."""
    packed, digest = pack_signed(blob, signature)
    return base58.b58encode(packed).decode("ascii"), base58.b58encode(digest).decode("ascii")


async def submit_signed(
    client: Any,
    transaction: Union[str, Mapping[str, Any]],
    signature_b58: str,
    network: str = "mainnet",
    *,
    metrics: MetricsRecorder = default_metrics,
) -> Dict[str, Any]:
    """Re-derive, verify, then submit. Each stage halts before the node is contacted."""
    try:
        tx, blob = resolve_submission(transaction)
        # Pairing checks take most of a second in pure Python; keep them off the event loop.
        signature = await asyncio.to_thread(verify_signature, tx, blob, signature_b58)
        packed_b58, tx_hash = pack_for_submission(blob, signature)
        await client.submit_transaction(packed_b58, network=network)
    except GatewayError as exc:
        metrics.record_submission(network, exc.kind)
        raise
    metrics.record_submission(network, "submitted")
    return {"status": "submitted", "tx_hash": tx_hash, "network": network}
