"""
Local persistence for sessions and usage.
"""

from .session_store import JsonSessionStore
from .usage import UsageLedger

__all__ = [
    'JsonSessionStore',
    'UsageLedger'
]
