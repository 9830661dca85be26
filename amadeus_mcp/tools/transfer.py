"""Transaction building and submission tools."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel

from amadeus_mcp.amadeus_api import default_client
from amadeus_mcp.transaction.model import UnsignedTransaction, transfer_args
from amadeus_mcp.transaction.pipeline import build_transaction, make_transaction, submit_signed

logger = logging.getLogger(__name__)

TRANSFER_CONTRACT = "Coin"
TRANSFER_FUNCTION = "transfer"


def transfer_transaction(
    *,
    source: str,
    destination: str,
    amount: int,
    symbol: str = "AMA",
    nonce: Optional[int] = None,
    clock: Callable[[], int] = time.time_ns,
) -> UnsignedTransaction:
    """Expand the transfer shorthand into a ``Coin.transfer`` call signed by ``source``."""
    return UnsignedTransaction(
        signer=source,
        contract=TRANSFER_CONTRACT,
        function=TRANSFER_FUNCTION,
        args=transfer_args(destination, amount, symbol),
        nonce=clock() if nonce is None else nonce,
    )


async def create_transfer(*, clock: Callable[[], int] = time.time_ns, **fields: Any) -> Dict[str, Any]:
    """
    Build an unsigned transaction.

    Accepts either the generic form (signer, contract, function, args) or the
    transfer shorthand (source, destination, amount, symbol). The returned
    ``transaction`` echoes every field, including the nonce that was chosen.
    """
    if "source" in fields:
        tx = transfer_transaction(clock=clock, **fields)
    else:
        tx = make_transaction(clock=clock, **fields)
    return build_transaction(tx)


async def submit_transaction(
    transaction: Any,
    signature: str,
    network: str = "mainnet",
    *,
    client=default_client,
) -> Dict[str, Any]:
    if isinstance(transaction, BaseModel):
        transaction = transaction.model_dump()
    result = await submit_signed(client, transaction, signature, network)
    logger.info("Transaction submitted to %s", network, extra={"tool": "submit_transaction"})
    return result
