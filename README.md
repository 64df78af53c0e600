# evmkit

Building blocks for an Ethereum Virtual Machine interpreter: the machine's
execution state and an analysis pass that splits bytecode into basic blocks.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## `evmkit.state`

- `StatusCode` – an `IntEnum` of execution outcomes: `SUCCESS`, `REVERT`,
  `OUT_OF_GAS`, `STACK_UNDERFLOW`, `BAD_JUMP_DESTINATION` and the rest.
- `Message` – a dataclass describing a call: `gas`, `kind`, `flags`, `depth`,
  `recipient`, `sender`, `input_data` and `value`.
- `Stack` – a stack of 256-bit words. `push(item)`, `pop()`, `top()` and
  `clear()`; `stack[i]` reads or writes the item `i` places below the top, and
  iterating goes from the top down. Values outside `0 .. 2**256 - 1` raise
  `ValueError`; popping an empty stack or indexing past it raises `IndexError`.
  `Stack.limit` is 1024, but `push` does not check it: that is left to the
  caller.
- `Memory` – byte-addressable memory. `grow(new_size)` extends it with zero
  bytes; `new_size` must be a multiple of 32 and larger than the current size,
  otherwise `ValueError` is raised. `clear()` sets the size to zero. `size`,
  `capacity` and `data` (a copy of the contents) are read-only properties.
  Indexing and slice assignment are supported, but an assignment may not change
  the size. Capacity starts at 4 KiB, doubles when exceeded, and is rounded up to
  whole 4 KiB pages when doubling is not enough.
- `ExecutionState` – a dataclass holding gas left, stack, memory, message,
  revision, host, return data, code, status, output offset and size, and the
  analysis in use. `ExecutionState.create(message, revision, host, code)` builds
  one whose gas left is the message's gas; `reset(message, revision, host, code)`
  prepares an existing one for another run.

## `evmkit.analysis`

- `analyze(code, op_table)` walks the bytecode once and returns a
  `CodeAnalysis`. `op_table` must have exactly 256 `OpTableEntry` items
  (handler `fn`, `gas_cost`, `stack_req`, `stack_change`); otherwise
  `ValueError` is raised.
- `CodeAnalysis` holds:
  - `instrs` – the `Instruction`s to run. Each basic block begins with a
    block-begin instruction (the JUMPDEST handler) whose `arg` is a `BlockInfo`
    with the block's base gas cost, required stack height and maximum stack
    growth. A JUMPDEST that starts a block is represented by that block-begin
    instruction. PUSH instructions carry their value (missing bytes at the end of
    the code count as zeros), gas-using instructions carry the block's gas cost
    up to and including them, and PC carries its code offset. A STOP is always
    appended at the end.
  - `push_values` – the values of PUSH9 to PUSH32 in order of appearance.
  - `jumpdest_offsets` and `jumpdest_targets` – each JUMPDEST's code offset and
    the index of the instruction a jump to it lands on.
- `find_jumpdest(analysis, offset)` returns the instruction index for a
  JUMPDEST at `offset`, or `-1` if there is none.
- `Opcode` – an `IntEnum` of the named EVM opcodes; `OPX_BEGINBLOCK` is the
  block-begin alias of `Opcode.JUMPDEST`.
- `AdvancedExecutionState` – an `ExecutionState` that also tracks
  `current_block_cost`. `exit(status_code)` sets the status and returns `None`;
  `reset(...)` also clears the analysis and the block cost.

## Example

```python
from evmkit.analysis import Opcode, OpTableEntry, analyze, find_jumpdest

table = [OpTableEntry(fn=None, gas_cost=1, stack_req=0, stack_change=0)] * 256
code = bytes([Opcode.PUSH1, 4, Opcode.JUMP, Opcode.STOP, Opcode.JUMPDEST])

analysis = analyze(code, table)
print(find_jumpdest(analysis, 4))   # index of the instruction at offset 4
print(find_jumpdest(analysis, 3))   # -1: not a jump destination
```

## What this package does not do

It does not execute bytecode. There are no instruction implementations, no
operation tables with real gas costs per revision, and no host interface for
accounts, storage or calls: you supply the operation table to `analyze` and the
host object to the execution state yourself.