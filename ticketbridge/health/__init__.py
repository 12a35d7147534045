"""
Printer state monitoring.

Provides background polling of the device probe with change detection.
"""

from .monitor import PrinterStateWatcher

__all__ = ["PrinterStateWatcher"]
