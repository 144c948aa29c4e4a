"""Exception handling package for the application

This package provides:
- Error codes (error_codes.py)
- Custom exception classes (base.py)
- FastAPI exception handlers (handlers.py)
- WebSocket error helpers (websocket.py)
"""

# Error codes
from sshbridge.core.exceptions.error_codes import (
    ErrorCode,
    ErrorCategory,
    WSCloseCode,
    get_error_category,
)

# Base exceptions
from sshbridge.core.exceptions.base import (
    BaseAppException,
    GeneralException,
    ValidationException,
    MissingParametersException,
    InvalidDimensionsException,
    ResourceNotFoundException,
    SSHException,
    SSHConnectionException,
    SSHAuthException,
    SSHChannelException,
    SSHShellUnsupportedException,
    WebSocketException,
    WSInvalidMessageException,
    TerminalException,
    NoPriorConnectionException,
    ChannelUnavailableException,
    TerminalConnectionNotFoundException,
    TerminalConnectionExistsException,
)

# FastAPI handlers
from sshbridge.core.exceptions.handlers import (
    register_exception_handlers,
    ErrorResponse,
)

# WebSocket handlers
from sshbridge.core.exceptions.websocket import (
    WSErrorResponse,
    send_error_and_close,
)

__all__ = [
    # Error codes
    "ErrorCode",
    "ErrorCategory",
    "WSCloseCode",
    "get_error_category",
    # Base exceptions
    "BaseAppException",
    "GeneralException",
    "ValidationException",
    "MissingParametersException",
    "InvalidDimensionsException",
    "ResourceNotFoundException",
    "SSHException",
    "SSHConnectionException",
    "SSHAuthException",
    "SSHChannelException",
    "SSHShellUnsupportedException",
    "WebSocketException",
    "WSInvalidMessageException",
    "TerminalException",
    "NoPriorConnectionException",
    "ChannelUnavailableException",
    "TerminalConnectionNotFoundException",
    "TerminalConnectionExistsException",
    # FastAPI handlers
    "register_exception_handlers",
    "ErrorResponse",
    # WebSocket handlers
    "WSErrorResponse",
    "send_error_and_close",
]
