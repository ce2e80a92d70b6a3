"""Tagged result returned by every public ledger operation."""

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from planledger.billing.exceptions import ErrorKind, LedgerError

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Success with a value, or failure with exactly one error kind.

    Usage:
        result = ledger.purchase("alice", "basic")
        if result.ok:
            subscription = result.value
        elif result.error is ErrorKind.INSUFFICIENT_BALANCE:
            ...
    """

    ok: bool
    value: T | None = None
    error: ErrorKind | None = None
    message: str = ""
    context: dict[str, Any] = field(default_factory=dict)
    exception: LedgerError | None = field(default=None, repr=False, compare=False)

    @classmethod
    def success(cls, value: T | None = None) -> "OperationResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, exc: LedgerError) -> "OperationResult[T]":
        return cls(
            ok=False,
            error=exc.kind,
            message=exc.message,
            context=dict(exc.context),
            exception=exc,
        )

    def unwrap(self) -> T:
        """Return the value, or raise the error this result carries."""
        if self.ok:
            return self.value  # type: ignore[return-value]
        if self.exception is not None:
            raise self.exception
        raise LedgerError(self.message or str(self.error))

    def to_dict(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "value": _dump(self.value)}
        return {
            "ok": False,
            "error": self.error.value if self.error else None,
            "message": self.message,
            "context": self.context,
        }


def _dump(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value
