"""Success-or-failure container returned by adapters and the adapter factory."""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class Result:
    """Either a value or the error that prevented producing it.

    Build with ``Result.ok(value)`` or ``Result.fail(error)``; never both.
    """

    value: Any = None
    error: Optional[Exception] = None

    @classmethod
    def ok(cls, value) -> "Result":
        return cls(value=value)

    @classmethod
    def fail(cls, error: Exception) -> "Result":
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self):
        """Return the value or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value
