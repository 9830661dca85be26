"""HTTP client wrappers for the Amadeus node API."""

from .client import NETWORKS, AmadeusClient, default_client

__all__ = [
    "AmadeusClient",
    "NETWORKS",
    "default_client",
]
