"""Three-state container for a value that is being fetched."""
import logging
from enum import Enum
from typing import Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class State(Enum):
    EMPTY = "empty"
    LOADING = "loading"
    VALID = "valid"


class InvalidTransition(RuntimeError):
    pass


class AsyncResult(Generic[T]):
    """Empty -> Loading -> Valid, one instance per request

    Valid is terminal; a new request gets a new instance. Transitions are not
    synchronized, callers serialize them.
    """

    def __init__(self):
        self.state = State.EMPTY
        self.data: Optional[T] = None

    @classmethod
    def empty(cls) -> "AsyncResult[T]":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.state is State.EMPTY

    @property
    def is_loading(self) -> bool:
        return self.state is State.LOADING

    @property
    def is_valid(self) -> bool:
        return self.state is State.VALID

    def start_loading(self) -> None:
        if self.state is not State.EMPTY:
            raise InvalidTransition(f"start_loading() called in state {self.state.value}")
        logger.debug("start_loading")
        self.state = State.LOADING

    def finish_loading(self, value: T) -> None:
        if self.state is not State.LOADING:
            raise InvalidTransition(f"finish_loading() called in state {self.state.value}")
        logger.debug(f"finish_loading <- {value!r}")
        self.state = State.VALID
        self.data = value

    def __repr__(self):
        return f"AsyncResult(state={self.state.value}, data={self.data!r})"
