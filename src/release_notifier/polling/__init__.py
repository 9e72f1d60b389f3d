"""
Polling system for the release notifier.

This package contains the poll scheduler, the change detector with its
watermark store, and the emitter that carries new releases to delivery.
"""

from .emitter import ReleaseEmitter
from .orchestrator import PollingOrchestrator
from .state_tracker import ChangeDetector, WatermarkStore

__all__ = ["ChangeDetector", "PollingOrchestrator", "ReleaseEmitter", "WatermarkStore"]
