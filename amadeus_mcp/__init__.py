"""
Amadeus MCP gateway package.

This package exposes LLM-friendly tools backed by the Amadeus node HTTP API:
read-only chain queries, transaction building and verified submission, and a
rate-limited testnet faucet. See DESIGN.md for full details.
"""

__version__ = "0.1.0"

__all__ = ["config", "__version__"]
