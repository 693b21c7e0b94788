"""
Store connectors.
Each connector moves wire rows and TagPairs to and from one kind of store.
"""

from tagvault.connectors.base import StoreConnector
from tagvault.connectors.memory import MemoryConnector
from tagvault.connectors.webserver import WebserverConnector

__all__ = [
    "StoreConnector",
    "MemoryConnector",
    "WebserverConnector",
]
