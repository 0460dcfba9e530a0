"""
Domain Exceptions

Architectural Intent:
- Error taxonomy for terminal session operations
- Each error carries a stable machine-readable code for the dispatch layer
- Raised synchronously by the call that detects the failure
"""

from typing import Any, Optional


class TerminalError(Exception):
    """Base class for terminal session errors."""

    code = "terminal_error"

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "code": self.code,
                "message": str(self),
                "details": self.details,
            }
        }


class SessionNotFound(TerminalError):
    code = "session_not_found"

    def __init__(self, terminal_id: str):
        super().__init__(
            f"Terminal not found: {terminal_id}", {"terminal_id": terminal_id}
        )


class SessionTerminated(TerminalError):
    code = "session_terminated"

    def __init__(self, terminal_id: str, exit_code: Optional[int] = None):
        super().__init__(
            f"Terminal process has exited: {terminal_id}",
            {"terminal_id": terminal_id, "exit_code": exit_code},
        )


class CapacityExceeded(TerminalError):
    code = "capacity_exceeded"

    def __init__(self, limit: int):
        super().__init__(
            f"Maximum number of terminals reached: {limit}", {"limit": limit}
        )


class InvalidWorkdir(TerminalError):
    code = "invalid_workdir"

    def __init__(self, workdir: str, reason: str):
        super().__init__(
            f"Invalid working directory {workdir}: {reason}", {"workdir": workdir}
        )


class HttpRequestFailed(TerminalError):
    code = "http_request_failed"

    def __init__(self, url: str, reason: str):
        super().__init__(f"Request to {url} failed: {reason}", {"url": url})


class CommandTimeout(TerminalError):
    code = "command_timeout"

    def __init__(self, timeout: float):
        super().__init__(
            f"Command timed out after {timeout} seconds", {"timeout": timeout}
        )
