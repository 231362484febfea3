"""
Gateway error taxonomy
Every failure is scoped to a single request; nothing here is fatal to the process
"""
from typing import Any, List, Optional


class GatewayError(Exception):
    """Base class for failures raised by the model gateway"""


class MissingCredentials(GatewayError):
    """GEMINI_API_KEY is not configured"""


class TransportError(GatewayError):
    """The remote call itself failed (network, timeout or non-200 status)"""

    def __init__(self, message: str, status_code: Optional[int] = None, timeout: bool = False):
        super().__init__(message)
        self.status_code = status_code
        self.timeout = timeout


class EmptyResponse(GatewayError):
    """The model returned no text"""


class MalformedResponse(GatewayError):
    """The reply text could not be parsed as JSON after fence stripping"""

    def __init__(self, message: str, raw_text: str):
        super().__init__(message)
        self.raw_text = raw_text


class UnexpectedResultShape(MalformedResponse):
    """The reply parsed as JSON but does not match the expected result shape"""

    def __init__(self, message: str, raw_text: str, errors: Optional[List[Any]] = None):
        super().__init__(message, raw_text)
        self.errors = errors or []


class RequestInFlight(Exception):
    """A session call was submitted while another one is still pending"""
