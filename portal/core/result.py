"""Tagged result returned by every forwarded backend call."""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

from portal.core.errors import ErrorKind, ForwardError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    data: T
    status_code: int = 200

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.data


@dataclass(frozen=True)
class Err:
    kind: ErrorKind
    message: str
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def is_session_expired(self) -> bool:
        return self.kind == ErrorKind.SESSION_EXPIRED

    def unwrap(self) -> Any:
        raise ForwardError(self.kind, self.message, self.status_code)


ForwardResult = Union[Ok[Any], Err]
