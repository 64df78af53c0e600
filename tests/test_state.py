import pytest

from evmkit.state import (
    UINT256_MAX,
    ExecutionState,
    Memory,
    Message,
    Stack,
    StatusCode,
)


def test_stack_push_pop_order():
    stack = Stack()
    for value in (1, 2, 3):
        stack.push(value)
    assert len(stack) == 3
    assert stack.top() == 3
    assert [stack.pop(), stack.pop(), stack.pop()] == [3, 2, 1]
    assert len(stack) == 0


def test_stack_indexing_from_top():
    stack = Stack()
    for value in (10, 20, 30):
        stack.push(value)
    assert stack[0] == 30
    assert stack[2] == 10
    stack[1] = 99
    assert list(stack) == [30, 99, 10]


def test_stack_index_out_of_range():
    stack = Stack()
    stack.push(5)
    with pytest.raises(IndexError):
        stack[1]
    with pytest.raises(IndexError):
        stack[-1]
    assert stack[0] == 5
    assert len(stack) == 1


def test_stack_pop_empty_raises():
    with pytest.raises(IndexError):
        Stack().pop()


def test_stack_clear():
    stack = Stack()
    stack.push(7)
    stack.push(8)
    stack.clear()
    assert len(stack) == 0
    with pytest.raises(IndexError):
        stack.top()


def test_stack_word_range():
    stack = Stack()
    stack.push(UINT256_MAX)
    assert stack.top() == UINT256_MAX
    with pytest.raises(ValueError):
        stack.push(UINT256_MAX + 1)
    with pytest.raises(ValueError):
        stack.push(-1)


def test_stack_holds_limit_items():
    stack = Stack()
    for value in range(Stack.limit):
        stack.push(value)
    assert Stack.limit == 1024
    assert len(stack) == 1024
    assert stack.top() == 1023
    assert stack[1023] == 0


def test_memory_initial():
    memory = Memory()
    assert memory.size == 0
    assert memory.capacity == Memory.page_size == 4096


def test_memory_grow_zero_filled():
    memory = Memory()
    memory.grow(64)
    assert memory.size == 64
    assert memory.data == bytes(64)
    assert memory.capacity == 4096


def test_memory_write_and_read():
    memory = Memory()
    memory.grow(32)
    memory[0] = 0xAA
    memory[1:3] = b"\x01\x02"
    assert memory[0] == 0xAA
    assert memory[0:3] == b"\xaa\x01\x02"
    with pytest.raises(ValueError):
        memory[0:2] = b"\x01"
    assert memory.size == 32


def test_memory_capacity_doubles():
    memory = Memory()
    memory.grow(4096 + 32)
    assert memory.capacity == 8192


def test_memory_capacity_rounded_to_pages():
    memory = Memory()
    memory.grow(9600)
    assert memory.capacity % Memory.page_size == 0
    assert memory.capacity >= 9600
    assert memory.capacity > 2 * Memory.page_size


def test_memory_grow_errors():
    memory = Memory()
    with pytest.raises(ValueError):
        memory.grow(33)
    memory.grow(64)
    with pytest.raises(ValueError):
        memory.grow(64)
    with pytest.raises(ValueError):
        memory.grow(32)


def test_memory_clear_keeps_capacity_and_rezeros():
    memory = Memory()
    memory.grow(8192 + 32)
    capacity = memory.capacity
    memory[5] = 1
    memory.clear()
    assert memory.size == 0
    assert memory.capacity == capacity
    memory.grow(32)
    assert memory.data == bytes(32)


def test_execution_state_create():
    msg = Message(gas=1000)
    state = ExecutionState.create(msg, 7, "host", b"\x60\x01")
    assert state.gas_left == 1000
    assert state.msg is msg
    assert state.rev == 7
    assert state.code == b"\x60\x01"
    assert state.status is StatusCode.SUCCESS


def test_execution_state_reset():
    state = ExecutionState.create(Message(gas=50), 1, None, b"\x00")
    state.stack.push(1)
    state.memory.grow(32)
    state.gas_left = 3
    state.return_data = b"abc"
    state.status = StatusCode.REVERT
    state.output_offset = 4
    state.output_size = 5

    msg = Message(gas=77)
    state.reset(msg, 2, "other", b"\x5b")
    assert state.gas_left == 77
    assert len(state.stack) == 0
    assert state.memory.size == 0
    assert state.msg is msg
    assert state.host == "other"
    assert state.rev == 2
    assert state.return_data == b""
    assert state.code == b"\x5b"
    assert state.status is StatusCode.SUCCESS
    assert (state.output_offset, state.output_size) == (0, 0)


def test_default_state_is_empty():
    state = ExecutionState()
    assert state.gas_left == 0
    assert state.msg is None
    assert state.status == StatusCode.SUCCESS
    assert len(state.stack) == 0