"""커스텀 예외 클래스 정의

예외 계층도:
    BaseAppException
    |-- GeneralException (일반 예외)
    |   |-- ValidationException
    |   |-- MissingParametersException
    |   |-- InvalidDimensionsException
    |   +-- ResourceNotFoundException
    |-- SSHException (SSH 예외)
    |   |-- SSHConnectionException
    |   |-- SSHAuthException
    |   |-- SSHChannelException
    |   +-- SSHShellUnsupportedException (exec 채널 폴백 신호)
    |-- WebSocketException (웹소켓 예외)
    |   +-- WSInvalidMessageException
    +-- TerminalException (터미널 브릿지 예외)
        |-- NoPriorConnectionException
        |-- ChannelUnavailableException
        |-- TerminalConnectionNotFoundException
        +-- TerminalConnectionExistsException
"""

from typing import Optional, Dict, Any
from sshbridge.core.exceptions.error_codes import ErrorCode, get_error_category, ErrorCategory


class BaseAppException(Exception):
    """Base application exception. All custom exceptions inherit from this."""

    def __init__(
        self,
        error_code: ErrorCode,
        detail: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.error_code = error_code
        self.detail = detail
        self.context = context or {}
        self.original_exception = original_exception

        message = error_code.message
        if detail:
            message = f"{message}: {detail}"

        super().__init__(message)

    @property
    def code(self) -> int:
        return self.error_code.code

    @property
    def http_status(self) -> int:
        return self.error_code.http_status

    @property
    def category(self) -> ErrorCategory:
        return get_error_category(self.code)

    @property
    def message(self) -> str:
        """사용자에게 보여줄 메시지 (detail 포함)"""
        if self.detail:
            return f"{self.error_code.message}: {self.detail}"
        return self.error_code.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for client response"""
        result = {
            "error_code": self.code,
            "message": self.error_code.message,
            "category": self.category.value,
        }
        if self.detail:
            result["detail"] = self.detail
        return result

    def to_log_dict(self) -> Dict[str, Any]:
        """Convert to logging dictionary with more information"""
        log_data = self.to_dict()
        if self.context:
            log_data["context"] = self.context
        if self.original_exception:
            log_data["original_error"] = {
                "type": type(self.original_exception).__name__,
                "message": str(self.original_exception),
            }
        return log_data

    def __str__(self) -> str:
        return f"[{self.code}] {self.error_code.message}" + (
            f": {self.detail}" if self.detail else ""
        )

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code}, "
            f"message='{self.error_code.message}', "
            f"detail='{self.detail}'"
            f")"
        )


# General Exceptions (1XXX)
class GeneralException(BaseAppException):
    """General exception"""
    pass


class ValidationException(GeneralException):
    """Validation exception"""
    def __init__(self, detail: Optional[str] = None, field: Optional[str] = None, **kwargs):
        if field and not detail:
            detail = f"'{field}' field validation failed"
        super().__init__(ErrorCode.VALIDATION_ERROR, detail=detail, **kwargs)


class MissingParametersException(GeneralException):
    """connect 요청에 connectionConfig 가 없거나 필수 필드가 빠진 경우"""
    def __init__(self, field: Optional[str] = None, detail: Optional[str] = None, **kwargs):
        context = {}
        if field:
            context["field"] = field
            detail = detail or f"'{field}' is required"
        super().__init__(ErrorCode.MISSING_REQUIRED_FIELD, detail=detail, context=context, **kwargs)


class InvalidDimensionsException(GeneralException):
    """Non-positive terminal dimensions"""
    def __init__(self, cols: Any = None, rows: Any = None, **kwargs):
        detail = f"{cols}x{rows}"
        super().__init__(
            ErrorCode.INVALID_DIMENSIONS,
            detail=detail,
            context={"cols": cols, "rows": rows},
            **kwargs
        )


class ResourceNotFoundException(GeneralException):
    """Resource not found"""
    def __init__(self, resource_type: str, resource_id: Any, **kwargs):
        detail = f"{resource_type} '{resource_id}' not found"
        super().__init__(
            ErrorCode.RESOURCE_NOT_FOUND,
            detail=detail,
            context={"resource_type": resource_type, "resource_id": resource_id},
            **kwargs
        )


# SSH Exceptions (2XXX)
class SSHException(BaseAppException):
    """SSH related base exception"""
    pass


class SSHConnectionException(SSHException):
    """SSH connection exception"""
    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        detail: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.SSH_CONNECTION_FAILED,
        **kwargs
    ):
        context = {}
        if host:
            context["host"] = host
        if port:
            context["port"] = port
        super().__init__(error_code, detail=detail, context=context, **kwargs)


class SSHAuthException(SSHException):
    """SSH authentication exception"""
    def __init__(
        self,
        username: Optional[str] = None,
        detail: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.SSH_AUTH_FAILED,
        **kwargs
    ):
        context = {}
        if username:
            context["username"] = username
        super().__init__(error_code, detail=detail, context=context, **kwargs)


class SSHChannelException(SSHException):
    """Shell / exec 채널 오픈 또는 스트림 에러"""
    def __init__(
        self,
        operation: Optional[str] = None,
        detail: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.SSH_CHANNEL_ERROR,
        **kwargs
    ):
        context = {}
        if operation:
            context["operation"] = operation
        super().__init__(error_code, detail=detail, context=context, **kwargs)


class SSHShellUnsupportedException(SSHChannelException):
    """원격 장비가 인터랙티브 셸을 지원하지 않음 (exec 채널로 폴백)"""
    def __init__(self, detail: Optional[str] = None, **kwargs):
        super().__init__(
            operation="open_shell",
            detail=detail,
            error_code=ErrorCode.SSH_SHELL_UNSUPPORTED,
            **kwargs
        )


# WebSocket Exceptions (3XXX)
class WebSocketException(BaseAppException):
    """WebSocket related base exception"""
    pass


class WSInvalidMessageException(WebSocketException):
    """Invalid WebSocket message"""
    def __init__(self, message_data: Optional[Any] = None, reason: Optional[str] = None, **kwargs):
        detail = f"Message format error: {reason}" if reason else None
        context = {}
        if message_data:
            context["message_data"] = str(message_data)[:200]
        super().__init__(ErrorCode.WS_INVALID_MESSAGE_FORMAT, detail=detail, context=context, **kwargs)


# Terminal Bridge Exceptions (5XXX)
class TerminalException(BaseAppException):
    """Terminal bridge base exception"""
    pass


class NoPriorConnectionException(TerminalException):
    """retry-with-legacy 요청 시 이전 연결 설정이 없는 경우"""
    def __init__(self, connection_id: Optional[str] = None, **kwargs):
        context = {}
        if connection_id:
            context["connection_id"] = connection_id
        super().__init__(ErrorCode.TERMINAL_NO_PRIOR_CONNECTION, context=context, **kwargs)


class ChannelUnavailableException(TerminalException):
    """Input arrived while no channel is live"""
    def __init__(self, channel_exists: bool = False, status: Optional[str] = None, **kwargs):
        detail = f"channel {'exists' if channel_exists else 'does not exist'}, status: {status}"
        super().__init__(
            ErrorCode.TERMINAL_CHANNEL_UNAVAILABLE,
            detail=detail,
            context={"channel_exists": channel_exists, "status": status},
            **kwargs
        )


class TerminalConnectionNotFoundException(TerminalException):
    """Terminal connection not registered"""
    def __init__(self, connection_id: str, **kwargs):
        super().__init__(
            ErrorCode.TERMINAL_CONNECTION_NOT_FOUND,
            detail=f"Connection '{connection_id}' not found",
            context={"connection_id": connection_id},
            **kwargs
        )


class TerminalConnectionExistsException(TerminalException):
    """Terminal connection id already in use"""
    def __init__(self, connection_id: str, **kwargs):
        super().__init__(
            ErrorCode.TERMINAL_CONNECTION_EXISTS,
            detail=f"Connection '{connection_id}' is already registered",
            context={"connection_id": connection_id},
            **kwargs
        )
