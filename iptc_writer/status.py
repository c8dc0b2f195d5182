"""
Status values shared by entries and aggregate operations.
"""

from dataclasses import dataclass
from typing import Optional

IDLE = "idle"
LOADING = "loading"
SUCCESS = "success"
ERROR = "error"


@dataclass(frozen=True)
class StatusState:
    """Immutable progress/result indicator: idle, loading, success or error."""
    type: str = IDLE
    message: str = ""
    missing: Optional[int] = None

    @classmethod
    def idle(cls) -> 'StatusState':
        return cls()

    @classmethod
    def loading(cls, message: str) -> 'StatusState':
        return cls(LOADING, message)

    @classmethod
    def success(cls, message: str, missing: Optional[int] = None) -> 'StatusState':
        return cls(SUCCESS, message, missing)

    @classmethod
    def error(cls, message: str) -> 'StatusState':
        return cls(ERROR, message)

    @property
    def is_idle(self) -> bool:
        return self.type == IDLE

    @property
    def is_loading(self) -> bool:
        return self.type == LOADING

    @property
    def is_success(self) -> bool:
        return self.type == SUCCESS

    @property
    def is_error(self) -> bool:
        return self.type == ERROR

    @property
    def has_warning(self) -> bool:
        """True for a success that still left some entries uncovered."""
        return self.is_success and bool(self.missing)


INITIAL_STATUS = StatusState()
