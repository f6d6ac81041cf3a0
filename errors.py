"""Failure kinds raised below the tool dispatcher."""

from enum import Enum
from typing import List


class ErrorKind(str, Enum):
    """Closed set of failure categories reported to the host"""

    CONFIGURATION = "configuration"
    UNKNOWN_OPERATION = "unknown_operation"
    INVALID_ARGUMENTS = "invalid_arguments"
    REMOTE_REJECTION = "remote_rejection"
    TRANSPORT = "transport"
    DECODE = "decode"


class RaindropError(Exception):
    """Base class for every failure the server reports"""

    kind: ErrorKind

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(RaindropError):
    """Startup configuration is missing or malformed"""

    kind = ErrorKind.CONFIGURATION


class UnknownOperationError(RaindropError):
    """Tool name not in the registry"""

    kind = ErrorKind.UNKNOWN_OPERATION

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class InvalidArgumentsError(RaindropError):
    """Arguments cannot be routed into a request"""

    kind = ErrorKind.INVALID_ARGUMENTS

    def __init__(self, operation: str, fields: List[str], reason: str = "missing"):
        super().__init__(
            f"Invalid argument(s) for {operation} ({reason}): {', '.join(fields)}"
        )
        self.operation = operation
        self.fields = fields
        self.reason = reason


class RemoteRejectionError(RaindropError):
    """Raindrop answered with a non-success HTTP status"""

    kind = ErrorKind.REMOTE_REJECTION

    def __init__(self, status: int, body: str):
        super().__init__(f"Raindrop API error ({status}): {body}")
        self.status = status
        self.body = body


class TransportError(RaindropError):
    """Raindrop could not be reached, or the request timed out"""

    kind = ErrorKind.TRANSPORT

    def __init__(self, reason: str):
        super().__init__(f"Network error contacting Raindrop API: {reason}")
        self.reason = reason


class DecodeError(RaindropError):
    """Success response whose body is not JSON"""

    kind = ErrorKind.DECODE

    def __init__(self, reason: str):
        super().__init__(f"Invalid JSON in Raindrop API response: {reason}")
        self.reason = reason
