"""
Session management module.

Provides the CallOrchestrator driving one signaling WebSocket.
"""
from .orchestrator import CallOrchestrator

__all__ = ["CallOrchestrator"]
