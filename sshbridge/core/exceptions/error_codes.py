"""Error code system

Error code structure (5 digits):
- 1st digit: Category (1=General, 2=SSH, 3=WebSocket, 5=Terminal)
- 2nd-3rd digits: Sub-category
- 4th-5th digits: Specific error

Example: 20001 = SSH(2) Connection(00) Timeout(01)
"""

from enum import Enum


class ErrorCategory(str, Enum):
    """Error categories"""
    GENERAL = "1"
    SSH = "2"
    WEBSOCKET = "3"
    TERMINAL = "5"


class ErrorCode(Enum):
    """Error code definitions. Each code is (code, message, http_status) tuple."""

    # 1XXX: General Errors
    INTERNAL_SERVER_ERROR = (10000, "Internal server error", 500)
    SERVICE_UNAVAILABLE = (10001, "Service temporarily unavailable", 503)

    UNAUTHORIZED = (11000, "Authentication required", 401)
    FORBIDDEN = (11001, "Access denied", 403)

    VALIDATION_ERROR = (12000, "Validation failed", 422)
    MISSING_REQUIRED_FIELD = (12002, "Missing connection parameters", 400)
    INVALID_DIMENSIONS = (12004, "Invalid terminal dimensions", 400)

    RESOURCE_NOT_FOUND = (13000, "Resource not found", 404)

    QUOTA_EXCEEDED = (14001, "Quota exceeded", 429)

    # 2XXX: SSH Errors
    SSH_CONNECTION_FAILED = (20000, "SSH connection failed", 503)
    SSH_CONNECTION_TIMEOUT = (20001, "SSH connection timeout", 504)
    SSH_CONNECTION_REFUSED = (20002, "SSH connection refused", 503)
    SSH_NOT_CONNECTED = (20004, "Not connected to SSH", 400)
    SSH_HANDSHAKE_FAILED = (20006, "SSH algorithm negotiation failed", 503)

    SSH_AUTH_FAILED = (21000, "SSH authentication failed", 401)
    SSH_NO_AUTH_METHOD = (21004, "No usable SSH authentication method", 401)

    SSH_CHANNEL_ERROR = (22003, "SSH channel error", 500)
    SSH_SHELL_ERROR = (22004, "SSH shell error", 500)
    SSH_SHELL_UNSUPPORTED = (22005, "Remote does not support interactive shell", 501)
    SSH_EXEC_ERROR = (22006, "SSH exec terminal error", 500)

    # 3XXX: WebSocket Errors
    WS_INVALID_MESSAGE_FORMAT = (31002, "Invalid message format", 400)

    # 5XXX: Terminal Bridge Errors
    TERMINAL_COMMAND_FAILED = (50000, "Failed to process command", 500)
    TERMINAL_NO_PRIOR_CONNECTION = (51001, "No previous connection to retry", 400)
    TERMINAL_CHANNEL_UNAVAILABLE = (51002, "Cannot send data, channel unavailable", 409)
    TERMINAL_CONNECTION_NOT_FOUND = (51003, "Terminal connection not found", 404)
    TERMINAL_CONNECTION_EXISTS = (51004, "Terminal connection already registered", 409)

    @property
    def code(self) -> int:
        """Return error code"""
        return self.value[0]

    @property
    def message(self) -> str:
        """Return error message"""
        return self.value[1]

    @property
    def http_status(self) -> int:
        """Return HTTP status code"""
        return self.value[2]


class WSCloseCode(Enum):
    """WebSocket close codes (RFC 6455)"""
    NORMAL_CLOSURE = 1000
    POLICY_VIOLATION = 1008
    INTERNAL_ERROR = 1011


ERROR_CATEGORY_MAP = {
    ErrorCategory.GENERAL: range(10000, 20000),
    ErrorCategory.SSH: range(20000, 30000),
    ErrorCategory.WEBSOCKET: range(30000, 40000),
    ErrorCategory.TERMINAL: range(50000, 60000),
}


def get_error_category(error_code: int) -> ErrorCategory:
    """Get category from error code"""
    for category, code_range in ERROR_CATEGORY_MAP.items():
        if error_code in code_range:
            return category
    return ErrorCategory.GENERAL
