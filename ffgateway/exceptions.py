"""
Error taxonomy for the gateway.

Every failure a request can hit is one of the classes below. Each carries a
machine-readable ``kind``, the HTTP status the routers answer with, and an
optional ``step`` naming the pipeline stage that failed.
"""

from typing import Any, Dict, Optional


class GatewayError(Exception):
    """Base class for all errors raised by gateway services."""

    kind = "gateway_error"
    status_code = 500
    # Client-fault errors report their own message as the response "error"
    client_fault = False

    def __init__(self, message: str, details: Optional[str] = None, step: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details
        self.step = step

    def to_payload(self, headline: str) -> Dict[str, Any]:
        """
        Build the JSON error body for this error.

        Args:
            headline: Endpoint-level summary used as "error" for execution failures

        Returns:
            Dictionary with "error" and, when available, "details"
        """
        if self.client_fault:
            payload = {"error": self.message}
            if self.details:
                payload["details"] = self.details
            return payload
        return {"error": headline, "details": self.message}


class ValidationError(GatewayError):
    """Bad option token, output format, or request parameter."""

    kind = "validation_error"
    status_code = 400
    client_fault = True


class PayloadTooLarge(GatewayError):
    """An artifact or download exceeded its size ceiling."""

    kind = "payload_too_large"
    status_code = 413
    client_fault = True


class SpawnError(GatewayError):
    """The external tool could not be started."""

    kind = "spawn_error"


class ProcessError(GatewayError):
    """The external tool exited with a nonzero status."""

    kind = "process_error"

    def __init__(self, message: str, returncode: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.returncode = returncode


class ExecutionTimeout(GatewayError):
    """The external tool exceeded its wall-clock budget and was killed."""

    kind = "timeout"


class WorkspaceIOError(GatewayError):
    """Reading or writing workspace files failed."""

    kind = "io_error"


class ResolverError(GatewayError):
    """The remote video could not be resolved or downloaded."""

    kind = "resolver_error"
