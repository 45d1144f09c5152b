from typing import Any, Optional
from pydantic import BaseModel, ValidationError


class ToolResult(BaseModel):
    """Envelope returned by every store call and every agent tool."""

    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    data: Optional[Any] = None

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ToolResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, error=error)

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


def first_error_message(exc: ValidationError) -> str:
    """Human readable message for the first failing field of a pydantic error."""
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    field = ".".join(str(p) for p in err.get("loc", ())) or "value"
    if err.get("type") == "value_error":
        return str(err.get("ctx", {}).get("error") or err.get("msg"))
    if err.get("type") == "missing":
        return f"{field} is required"
    return f"{field}: {err.get('msg')}"
