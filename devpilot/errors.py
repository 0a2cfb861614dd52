"""
Error types and the recover-and-report boundary

Every public entry point of the orchestration layer runs through
ErrorReporter: the failure is classified, logged, surfaced to the editor
with an affordance that fits its kind, and either replaced by a safe
fallback or re-raised.
"""

import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

import httpx

if TYPE_CHECKING:
    from .editor import EditorBridge

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class ErrorKind(Enum):
    """Error categories"""

    CONFIGURATION = "Configuration"
    API = "API"
    FILESYSTEM = "FileSystem"
    STORAGE = "Storage"
    TERMINAL = "Terminal"
    ANALYSIS = "Analysis"
    UNKNOWN = "Unknown"


class DevPilotError(Exception):
    """Base error carrying a kind and the original cause"""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str, cause: BaseException | None = None, kind: ErrorKind | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if kind is not None:
            self.kind = kind

    def __str__(self) -> str:
        return self.message


class ConfigurationError(DevPilotError):
    kind = ErrorKind.CONFIGURATION


class StorageError(DevPilotError):
    kind = ErrorKind.STORAGE


class FileSystemError(DevPilotError):
    kind = ErrorKind.FILESYSTEM


class TerminalError(DevPilotError):
    kind = ErrorKind.TERMINAL


class AnalysisError(DevPilotError):
    kind = ErrorKind.ANALYSIS


# =============================================================================
# Provider (API) errors
# =============================================================================


class ProviderError(DevPilotError):
    """Unexpected provider error"""

    kind = ErrorKind.API


class ServiceUnreachableError(ProviderError):
    """Connection refused, DNS failure or timeout"""


class AuthenticationError(ProviderError):
    """Credential rejected by the provider"""


class ProviderResponseError(ProviderError):
    """Provider answered with an error status or an unusable payload"""


# =============================================================================
# Tool dispatch errors
# =============================================================================


class ToolError(DevPilotError):
    """Failure tied to a tool action"""

    def __init__(
        self,
        message: str,
        tool: str,
        command: str | None = None,
        cause: BaseException | None = None,
        kind: ErrorKind | None = None,
    ):
        super().__init__(message, cause=cause, kind=kind)
        self.tool = tool
        self.command = command


class UnknownToolError(ToolError):
    pass


class UnknownCommandError(ToolError):
    pass


class ToolExecutionError(ToolError):
    """A tool operation raised; kind follows the underlying failure"""


def classify(error: BaseException) -> ErrorKind:
    """Map any exception to an ErrorKind"""
    if isinstance(error, DevPilotError):
        return error.kind
    if isinstance(error, httpx.HTTPError):
        return ErrorKind.API
    if isinstance(error, OSError):
        return ErrorKind.FILESYSTEM
    return ErrorKind.UNKNOWN


def describe(error: BaseException) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        return f"Server error ({error.response.status_code}): {error.response.reason_phrase}"
    if isinstance(error, httpx.RequestError):
        return "No response from server. Please check your connection."
    return str(error) or type(error).__name__


class ErrorReporter:
    """
    Log a failure and surface it to the user.

    Configuration errors offer to open settings, API errors offer to check
    the credential; everything else is a plain error message.
    """

    AFFORDANCES = {
        ErrorKind.CONFIGURATION: ("Open Settings",),
        ErrorKind.API: ("Check API Key",),
    }

    def __init__(self, editor: "EditorBridge | None" = None):
        self.editor = editor

    def handle(self, error: BaseException, context: str = "") -> ErrorKind:
        kind = classify(error)
        message = describe(error)
        where = f"({context}) " if context else ""
        logger.error(f"[{kind.value}] {where}{message}", exc_info=error)

        if self.editor is not None:
            self.editor.show_error(
                f"{kind.value} Error: {message}",
                self.AFFORDANCES.get(kind, ()),
            )
        return kind

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        context: str,
        fallback: Any = _MISSING,
    ) -> T:
        """Await operation; on failure report it, then return fallback or re-raise"""
        try:
            return await operation()
        except Exception as e:
            self.handle(e, context)
            if fallback is _MISSING:
                raise
            return fallback() if callable(fallback) else fallback
