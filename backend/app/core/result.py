"""
Result wrapper returned by application services.

Services never raise for expected business failures; they return
Result.fail(message, code) and the API layer translates the code into an
HTTP status.
"""
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class Result:
    success: bool
    data: Any = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "Result":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, message: str, code: Optional[str] = None) -> "Result":
        return cls(success=False, error_message=message, error_code=code)

    @property
    def is_failure(self) -> bool:
        return not self.success
