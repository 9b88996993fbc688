"""
Operation Results

Tagged success/failure outcome returned by every governance operation.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from daocore.errors import DEFAULT_MESSAGES, ErrorCode, GovernanceError

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Result returned from a governance operation."""
    success: bool
    value: T | None = None
    error: ErrorCode | None = None
    message: str | None = None

    @classmethod
    def ok(cls, value: T) -> "OperationResult[T]":
        """Create a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: ErrorCode, message: str | None = None) -> "OperationResult[T]":
        """Create a failed result."""
        code = ErrorCode(error)
        return cls(success=False, error=code, message=message or DEFAULT_MESSAGES[code])

    @classmethod
    def from_error(cls, exc: GovernanceError) -> "OperationResult[T]":
        return cls.fail(exc.code, exc.message)

    @property
    def failed(self) -> bool:
        return not self.success

    def unwrap(self) -> T:
        """Return the value or raise the failure as a GovernanceError."""
        if self.success:
            return self.value  # type: ignore[return-value]
        if self.error is None:
            raise ValueError("failed result carries no error code")
        raise GovernanceError(self.error, self.message)

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"ok": True, "value": self.value}
        if self.error is None:
            raise ValueError("failed result carries no error code")
        return {
            "ok": False,
            "error": {
                "code": int(self.error),
                "kind": self.error.kind,
                "message": self.message,
            },
        }
