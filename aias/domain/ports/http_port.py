"""
HTTP Port

Architectural Intent:
- Port interface for proxying a single HTTP request on behalf of a tool call
- Responses are text only; every status code is a response, not an error
- Transport failures (DNS, refused connection, timeout) raise HttpRequestFailed
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS")


@dataclass(frozen=True)
class HttpResponse:
    status: int
    status_text: str
    headers: dict[str, str] = field(default_factory=dict)
    data: str = ""

    @property
    def success(self) -> bool:
        return 200 <= self.status < 300

    def to_dict(self) -> dict[str, Any]:
        result = {
            "status": self.status,
            "status_text": self.status_text,
            "headers": dict(self.headers),
            "data": self.data,
            "success": self.success,
        }
        if self.status >= 400:
            result["error"] = f"HTTP error: {self.status}"
        return result


class HttpPort(ABC):
    @abstractmethod
    async def request(
        self,
        method: str,
        url: str,
        headers: Optional[dict[str, str]] = None,
        params: Optional[dict[str, Any]] = None,
        data: Any = None,
        json_data: Optional[dict[str, Any]] = None,
        timeout: float = 30,
    ) -> HttpResponse:
        pass
