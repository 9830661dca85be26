"""LLM-facing tool implementations."""

from .account import get_account_balance
from .chain import get_block_by_height, get_chain_stats, get_validators
from .contracts import get_contract_state
from .faucet import claim_testnet_ama
from .transactions import get_transaction, get_transaction_history
from .transfer import create_transfer, submit_transaction

__all__ = [
    "claim_testnet_ama",
    "create_transfer",
    "get_account_balance",
    "get_block_by_height",
    "get_chain_stats",
    "get_contract_state",
    "get_transaction",
    "get_transaction_history",
    "get_validators",
    "submit_transaction",
]
