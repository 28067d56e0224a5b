"""A bounded LIFO stack whose capacity only ever grows."""

from __future__ import annotations

from typing import Generic, TypeVar

T = TypeVar("T")

MAX_CAPACITY = 0xFFFF


class StackError(Exception):
    """Raised when a stack operation cannot be carried out."""


class Stack(Generic[T]):
    """A stack holding at most ``capacity`` elements.

    The capacity never shrinks; it can be raised with :meth:`grow`.
    """

    def __init__(self, capacity: int = 0) -> None:
        self._capacity = 0
        self._elements: list[T] = []
        if capacity < 0 or capacity > MAX_CAPACITY:
            raise StackError(f"capacity must be between 0 and {MAX_CAPACITY}")
        if capacity > 0:
            self.grow(capacity)

    @property
    def capacity(self) -> int:
        """How many elements the stack can hold."""
        return self._capacity

    def __len__(self) -> int:
        return len(self._elements)

    def grow(self, capacity: int) -> None:
        """Raise the capacity to ``capacity``; it cannot be decreased."""
        if capacity <= self._capacity:
            raise StackError("capacity cannot be decreased")
        if capacity > MAX_CAPACITY:
            raise StackError(f"capacity cannot exceed {MAX_CAPACITY}")
        self._capacity = capacity

    def push(self, element: T) -> None:
        """Put ``element`` on top of the stack."""
        if len(self._elements) >= self._capacity:
            raise StackError("stack is full - failed to push")
        self._elements.append(element)

    def pop(self) -> T:
        """Remove and return the top element."""
        if not self._elements:
            raise StackError("stack is empty - failed to pop")
        return self._elements.pop()

    def peek(self) -> T:
        """Return the top element without removing it."""
        if not self._elements:
            raise StackError("stack is empty - failed to peek")
        return self._elements[-1]