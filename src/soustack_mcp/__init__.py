"""Soustack ingestion gateway package."""

from .config import GatewaySettings

__version__ = "0.1.0"

__all__ = ["GatewaySettings", "__version__"]
