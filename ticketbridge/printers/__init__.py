from .base import (
    DeviceProbe,
    DispatchAdapter,
    DispatchResult,
    PrinterBackend,
    PrinterInfo,
    PrinterStatus,
    SpoolerState,
    classify_status,
)

__all__ = [
    "DeviceProbe",
    "DispatchAdapter",
    "DispatchResult",
    "PrinterBackend",
    "PrinterInfo",
    "PrinterStatus",
    "SpoolerState",
    "classify_status",
]
