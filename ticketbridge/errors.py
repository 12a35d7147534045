"""
Error taxonomy for the print bridge.

Only ValidationError ever reaches a caller as an exception. The other
errors are raised inside a job's execution and turned into job failures
by the scheduler.
"""

PRINTER_UNAVAILABLE = "PRINTER_UNAVAILABLE"
DISPATCH_FAILURE = "DISPATCH_FAILURE"
RENDER_FAILURE = "RENDER_FAILURE"


class TicketBridgeError(Exception):
    """Base class for print bridge errors."""

    error_code = "ERROR"

    def __init__(self, message: str, error_code: str = None):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code


class ValidationError(TicketBridgeError):
    """Raised when a request payload is malformed. The job never enters the queue."""

    error_code = "INVALID_PAYLOAD"


class PrinterUnavailableError(TicketBridgeError):
    error_code = PRINTER_UNAVAILABLE


class DispatchError(TicketBridgeError):
    error_code = DISPATCH_FAILURE


class RenderError(TicketBridgeError):
    """Raised when a payload cannot be laid out as a ticket."""

    error_code = RENDER_FAILURE
