"""Execution state shared by the interpreters: stack, memory and the call context."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterator, Optional, Union

UINT256_MAX = (1 << 256) - 1


class StatusCode(IntEnum):
    """Result status of an execution."""

    SUCCESS = 0
    FAILURE = 1
    REVERT = 2
    OUT_OF_GAS = 3
    INVALID_INSTRUCTION = 4
    UNDEFINED_INSTRUCTION = 5
    STACK_OVERFLOW = 6
    STACK_UNDERFLOW = 7
    BAD_JUMP_DESTINATION = 8
    INVALID_MEMORY_ACCESS = 9
    CALL_DEPTH_EXCEEDED = 10
    STATIC_MODE_VIOLATION = 11
    PRECOMPILE_FAILURE = 12
    CONTRACT_VALIDATION_FAILURE = 13
    ARGUMENT_OUT_OF_RANGE = 14
    INTERNAL_ERROR = -1
    REJECTED = -2
    OUT_OF_MEMORY = -3


@dataclass
class Message:
    """The parameters of a call: gas limit, addresses, value and input."""

    gas: int = 0
    kind: int = 0
    flags: int = 0
    depth: int = 0
    recipient: bytes = bytes(20)
    sender: bytes = bytes(20)
    input_data: bytes = b""
    value: bytes = bytes(32)


def _check_word(item: int) -> int:
    if not 0 <= item <= UINT256_MAX:
        raise ValueError(f"value out of 256-bit range: {item}")
    return item


class Stack:
    """The stack of 256-bit EVM words.

    Items are addressed from the top: ``stack[0]`` is the top item.
    The stack limit is not checked on push; callers enforce it.
    """

    limit = 1024

    def __init__(self) -> None:
        self._items: list[int] = []

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[int]:
        """Iterate from the top item down to the bottom one."""
        return reversed(self._items)

    def _position(self, index: int) -> int:
        if not 0 <= index < len(self._items):
            raise IndexError(f"stack index {index} out of range")
        return len(self._items) - 1 - index

    def __getitem__(self, index: int) -> int:
        return self._items[self._position(index)]

    def __setitem__(self, index: int, item: int) -> None:
        self._items[self._position(index)] = _check_word(item)

    def top(self) -> int:
        """Return the top item."""
        return self[0]

    def push(self, item: int) -> None:
        """Push an item on the stack."""
        self._items.append(_check_word(item))

    def pop(self) -> int:
        """Remove and return the top item."""
        if not self._items:
            raise IndexError("pop from empty stack")
        return self._items.pop()

    def clear(self) -> None:
        """Remove all items."""
        self._items.clear()


class Memory:
    """The EVM memory.

    Capacity starts at one page of 4 KiB and doubles when exceeded; if doubling
    is not enough it becomes the required size rounded up to whole pages.
    """

    page_size = 4 * 1024

    def __init__(self) -> None:
        self._data = bytearray()
        self._capacity = self.page_size

    @property
    def size(self) -> int:
        """The current (virtual) size in bytes."""
        return len(self._data)

    @property
    def capacity(self) -> int:
        """The reserved capacity in bytes; unchanged by clear()."""
        return self._capacity

    @property
    def data(self) -> bytes:
        """A copy of the memory contents."""
        return bytes(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __getitem__(self, index: Union[int, slice]) -> Union[int, bytes]:
        if isinstance(index, slice):
            return bytes(self._data[index])
        return self._data[index]

    def __setitem__(self, index: Union[int, slice], value: Any) -> None:
        if isinstance(index, slice):
            value = bytes(value)
            start, stop, step = index.indices(len(self._data))
            if len(range(start, stop, step)) != len(value):
                raise ValueError("slice assignment must not change memory size")
        self._data[index] = value

    def grow(self, new_size: int) -> None:
        """Grow the memory to ``new_size`` bytes, filling the extension with zeros.

        ``new_size`` must be a multiple of 32 and larger than the current size.
        """
        if new_size % 32 != 0:
            raise ValueError(f"memory size must be a multiple of 32: {new_size}")
        if new_size <= len(self._data):
            raise ValueError(
                f"memory can only grow: {new_size} <= {len(self._data)}"
            )
        if new_size > self._capacity:
            self._capacity *= 2
            if self._capacity < new_size:
                pages = (new_size + self.page_size - 1) // self.page_size
                self._capacity = pages * self.page_size
        self._data.extend(bytes(new_size - len(self._data)))

    def clear(self) -> None:
        """Set the size to zero; the capacity stays unchanged."""
        self._data.clear()


@dataclass
class ExecutionState:
    """Generic execution state used by instruction implementations."""

    gas_left: int = 0
    stack: Stack = field(default_factory=Stack)
    memory: Memory = field(default_factory=Memory)
    msg: Optional[Message] = None
    host: Any = None
    rev: int = 0
    return_data: bytes = b""
    code: bytes = b""
    status: StatusCode = StatusCode.SUCCESS
    output_offset: int = 0
    output_size: int = 0
    analysis: Any = None

    @classmethod
    def create(
        cls, message: Message, revision: int, host: Any, code: bytes
    ) -> "ExecutionState":
        """Build a state for executing ``code`` for the given message."""
        return cls(
            gas_left=message.gas,
            msg=message,
            host=host,
            rev=revision,
            code=bytes(code),
        )

    def reset(self, message: Message, revision: int, host: Any, code: bytes) -> None:
        """Reset the state so that it can be reused for another execution."""
        self.gas_left = message.gas
        self.stack.clear()
        self.memory.clear()
        self.msg = message
        self.host = host
        self.rev = revision
        self.return_data = b""
        self.code = bytes(code)
        self.status = StatusCode.SUCCESS
        self.output_offset = 0
        self.output_size = 0