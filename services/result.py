"""
Outcome type returned by user-facing service operations.

Linking, opening a window and placing a bet all fail in expected ways (bad
Riot ID, no open window, not enough coins). Those are reported as a failed
Result with a code from services.error_codes; exceptions are kept for
infrastructure faults.

    result = betting_service.place_bet(bettor_id, "win", 100)
    if result.is_error(error_codes.INSUFFICIENT_FUNDS):
        ...
    elif result:
        bet = result.value
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    success: bool
    value: T | None = None
    error: str | None = None  # shown to the Discord user as-is
    error_code: str | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "Result[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, code: str | None = None) -> "Result[T]":
        return cls(success=False, error=error, error_code=code)

    def __bool__(self) -> bool:
        return self.success

    def is_error(self, code: str) -> bool:
        """True when this is a failure carrying the given error code."""
        return not self.success and self.error_code == code

    def unwrap(self) -> T:
        """
        Return the value of a successful result.

        Raises:
            ValueError: If the result is a failure
        """
        if not self.success:
            raise ValueError(f"Cannot unwrap failed result ({self.error_code}): {self.error}")
        return self.value  # type: ignore
