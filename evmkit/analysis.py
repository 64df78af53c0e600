"""Code analysis for the advanced interpreter: basic blocks, push values and jump targets."""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable, List, Optional, Sequence, Union

from .state import ExecutionState, Message, StatusCode


def _opcode_members() -> list[tuple[str, int]]:
    members = [
        ("STOP", 0x00), ("ADD", 0x01), ("MUL", 0x02), ("SUB", 0x03),
        ("DIV", 0x04), ("SDIV", 0x05), ("MOD", 0x06), ("SMOD", 0x07),
        ("ADDMOD", 0x08), ("MULMOD", 0x09), ("EXP", 0x0A), ("SIGNEXTEND", 0x0B),
        ("LT", 0x10), ("GT", 0x11), ("SLT", 0x12), ("SGT", 0x13),
        ("EQ", 0x14), ("ISZERO", 0x15), ("AND", 0x16), ("OR", 0x17),
        ("XOR", 0x18), ("NOT", 0x19), ("BYTE", 0x1A), ("SHL", 0x1B),
        ("SHR", 0x1C), ("SAR", 0x1D), ("KECCAK256", 0x20),
        ("ADDRESS", 0x30), ("BALANCE", 0x31), ("ORIGIN", 0x32), ("CALLER", 0x33),
        ("CALLVALUE", 0x34), ("CALLDATALOAD", 0x35), ("CALLDATASIZE", 0x36),
        ("CALLDATACOPY", 0x37), ("CODESIZE", 0x38), ("CODECOPY", 0x39),
        ("GASPRICE", 0x3A), ("EXTCODESIZE", 0x3B), ("EXTCODECOPY", 0x3C),
        ("RETURNDATASIZE", 0x3D), ("RETURNDATACOPY", 0x3E), ("EXTCODEHASH", 0x3F),
        ("BLOCKHASH", 0x40), ("COINBASE", 0x41), ("TIMESTAMP", 0x42),
        ("NUMBER", 0x43), ("DIFFICULTY", 0x44), ("GASLIMIT", 0x45),
        ("CHAINID", 0x46), ("SELFBALANCE", 0x47), ("BASEFEE", 0x48),
        ("POP", 0x50), ("MLOAD", 0x51), ("MSTORE", 0x52), ("MSTORE8", 0x53),
        ("SLOAD", 0x54), ("SSTORE", 0x55), ("JUMP", 0x56), ("JUMPI", 0x57),
        ("PC", 0x58), ("MSIZE", 0x59), ("GAS", 0x5A), ("JUMPDEST", 0x5B),
    ]
    members += [(f"PUSH{n}", 0x60 + n - 1) for n in range(1, 33)]
    members += [(f"DUP{n}", 0x80 + n - 1) for n in range(1, 17)]
    members += [(f"SWAP{n}", 0x90 + n - 1) for n in range(1, 17)]
    members += [(f"LOG{n}", 0xA0 + n) for n in range(5)]
    members += [
        ("CREATE", 0xF0), ("CALL", 0xF1), ("CALLCODE", 0xF2), ("RETURN", 0xF3),
        ("DELEGATECALL", 0xF4), ("CREATE2", 0xF5), ("STATICCALL", 0xFA),
        ("REVERT", 0xFD), ("INVALID", 0xFE), ("SELFDESTRUCT", 0xFF),
    ]
    return members


Opcode = IntEnum("Opcode", _opcode_members(), module=__name__)
Opcode.__doc__ = "EVM opcodes."

#: The intrinsic BEGINBLOCK instruction, an alias of JUMPDEST. It replaces every
#: JUMPDEST and is injected at the start of each basic block.
OPX_BEGINBLOCK = Opcode.JUMPDEST

_UINT32_MAX = (1 << 32) - 1
_INT16_MAX = (1 << 15) - 1

_TERMINATORS = frozenset(
    {Opcode.JUMP, Opcode.JUMPI, Opcode.STOP, Opcode.RETURN, Opcode.REVERT, Opcode.SELFDESTRUCT}
)

_GAS_USERS = frozenset(
    {
        Opcode.GAS, Opcode.CALL, Opcode.CALLCODE, Opcode.DELEGATECALL,
        Opcode.STATICCALL, Opcode.CREATE, Opcode.CREATE2, Opcode.SSTORE,
    }
)

_SMALL_PUSH_MAX_SIZE = 8


@dataclass(frozen=True)
class BlockInfo:
    """Compressed information about a basic block."""

    gas_cost: int = 0
    stack_req: int = 0
    stack_max_growth: int = 0


@dataclass(frozen=True)
class OpTableEntry:
    """Execution function and static metrics of one opcode."""

    fn: Optional[Callable[..., Any]]
    gas_cost: int
    stack_req: int
    stack_change: int


@dataclass
class Instruction:
    """An instruction of the analysed program with its argument.

    The argument is a ``BlockInfo`` for block-starting instructions, the push
    value for PUSH instructions, the gas cost so far for gas-using ones and the
    code offset for PC.
    """

    fn: Optional[Callable[..., Any]]
    arg: Union[int, BlockInfo, None] = None


@dataclass
class CodeAnalysis:
    """The result of analysing a piece of code."""

    instrs: List[Instruction] = field(default_factory=list)
    push_values: List[int] = field(default_factory=list)
    jumpdest_offsets: List[int] = field(default_factory=list)
    jumpdest_targets: List[int] = field(default_factory=list)


@dataclass
class AdvancedExecutionState(ExecutionState):
    """Execution state specialised for the advanced interpreter."""

    current_block_cost: int = 0

    def exit(self, status_code: StatusCode) -> None:
        """Terminate the execution with the given status; there is no next instruction."""
        self.status = status_code
        return None

    def reset(self, message: Message, revision: int, host: Any, code: bytes) -> None:
        """Reset the state so that it can be reused for another execution."""
        super().reset(message, revision, host, code)
        self.analysis = None
        self.current_block_cost = 0


@dataclass
class _BlockAnalysis:
    begin_block_index: int
    gas_cost: int = 0
    stack_req: int = 0
    stack_max_growth: int = 0
    stack_change: int = 0

    def close(self) -> BlockInfo:
        gas = min(self.gas_cost, _UINT32_MAX) & _UINT32_MAX
        return BlockInfo(
            gas_cost=gas,
            stack_req=min(self.stack_req, _INT16_MAX),
            stack_max_growth=min(self.stack_max_growth, _INT16_MAX),
        )


def analyze(code: bytes, op_table: Sequence[OpTableEntry]) -> CodeAnalysis:
    """Split ``code`` into basic blocks using the metrics in ``op_table``."""
    if len(op_table) != 256:
        raise ValueError(f"op table must have 256 entries, got {len(op_table)}")

    code = bytes(code)
    beginblock_fn = op_table[OPX_BEGINBLOCK].fn
    analysis = CodeAnalysis()
    instrs = analysis.instrs

    instrs.append(Instruction(beginblock_fn))
    block = _BlockAnalysis(0)

    end = len(code)
    pos = 0
    while pos < end:
        opcode = code[pos]
        pos += 1
        info = op_table[opcode]

        block.stack_req = max(block.stack_req, info.stack_req - block.stack_change)
        block.stack_change += info.stack_change
        block.stack_max_growth = max(block.stack_max_growth, block.stack_change)
        block.gas_cost += info.gas_cost

        if opcode == Opcode.JUMPDEST:
            # A JUMPDEST always starts a block; its BEGINBLOCK stands in for it.
            analysis.jumpdest_offsets.append(pos - 1)
            analysis.jumpdest_targets.append(len(instrs) - 1)
        else:
            instrs.append(Instruction(info.fn))

        instr = instrs[-1]

        if Opcode.PUSH1 <= opcode <= Opcode.PUSH32:
            push_size = opcode - Opcode.PUSH1 + 1
            data = code[pos : pos + push_size]
            pos += len(data)
            value = int.from_bytes(data.ljust(push_size, b"\0"), "big")
            if push_size > _SMALL_PUSH_MAX_SIZE:
                analysis.push_values.append(value)
            instr.arg = value
        elif opcode in _GAS_USERS:
            instr.arg = block.gas_cost
        elif opcode == Opcode.PC:
            instr.arg = pos - 1

        if opcode in _TERMINATORS or (pos < end and code[pos] == Opcode.JUMPDEST):
            instrs[block.begin_block_index].arg = block.close()
            instrs.append(Instruction(beginblock_fn))
            block = _BlockAnalysis(len(instrs) - 1)

    instrs[block.begin_block_index].arg = block.close()
    instrs.append(Instruction(op_table[Opcode.STOP].fn))
    return analysis


def find_jumpdest(analysis: CodeAnalysis, offset: int) -> int:
    """Return the instruction index for a JUMPDEST at ``offset``, or -1 if there is none."""
    offsets = analysis.jumpdest_offsets
    i = bisect_left(offsets, offset)
    if i < len(offsets) and offsets[i] == offset:
        return analysis.jumpdest_targets[i]
    return -1