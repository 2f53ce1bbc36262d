## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

from typing import Generic, TypeVar

from .errors import TinyResourceError, TinyTagError


HEAP_SIZE = 1 << 24
STACK_SIZE = 1 << 18

T = TypeVar('T')


class Arena(Generic[T]):
    """Append-only store with a fixed capacity.  Records are addressed by the integer index
    returned from `alloc`, which stays valid until the whole arena is discarded.
    """

    def __init__(self, capacity: int = HEAP_SIZE, resource: str = "arena"):
        assert capacity >= 0
        self.capacity = capacity
        self.resource = resource
        self._records: list[T] = []

    def alloc(self, record: T) -> int:
        if (index := len(self._records)) >= self.capacity:
            raise TinyResourceError(f"Closure {self.resource} has run out of memory ({self.capacity:,} records).",
                                    resource=self.resource, capacity=self.capacity)
        self._records.append(record)
        return index

    def __getitem__(self, index: int) -> T:
        if not 0 <= index < len(self._records):
            raise TinyTagError(f"Pointer `{index}` does not address a live record in the {self.resource}.", tiny_token=index)
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)


class CallStack(Generic[T]):
    """Bounded stack of suspended caller frames."""

    def __init__(self, capacity: int = STACK_SIZE, resource: str = "stack"):
        assert capacity >= 0
        self.capacity = capacity
        self.resource = resource
        self._frames: list[T] = []

    def push(self, frame: T) -> None:
        if len(self._frames) >= self.capacity:
            raise TinyResourceError(f"Call stack has overflown ({self.capacity:,} frames).",
                                    resource=self.resource, capacity=self.capacity)
        self._frames.append(frame)

    def pop(self) -> T:
        return self._frames.pop()

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self):
        return iter(self._frames)
