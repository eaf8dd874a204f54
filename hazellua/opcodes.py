"""Instruction encoding for the virtual machine.

Instructions are unsigned 32-bit integers.  The low 6 bits hold the opcode,
followed by the fields 'A' (8 bits), 'C' (9 bits) and 'B' (9 bits).  'Bx'
covers 'B' and 'C' together (18 bits), 'Ax' covers 'A', 'B' and 'C'
(26 bits), and 'sBx' is 'Bx' read in excess-K notation.
"""

from __future__ import annotations

from enum import IntEnum
from typing import NamedTuple

SIZE_C = 9
SIZE_B = 9
SIZE_BX = SIZE_C + SIZE_B
SIZE_A = 8
SIZE_AX = SIZE_C + SIZE_B + SIZE_A
SIZE_OP = 6

POS_OP = 0
POS_A = POS_OP + SIZE_OP
POS_C = POS_A + SIZE_A
POS_B = POS_C + SIZE_C
POS_BX = POS_C
POS_AX = POS_A

MAXARG_BX = (1 << SIZE_BX) - 1
MAXARG_SBX = MAXARG_BX >> 1
MAXARG_AX = (1 << SIZE_AX) - 1
MAXARG_A = (1 << SIZE_A) - 1
MAXARG_B = (1 << SIZE_B) - 1
MAXARG_C = (1 << SIZE_C) - 1

INSTRUCTION_MASK = 0xFFFFFFFF

# This bit set in an RK operand means "constant"; clear means "register".
BITRK = 1 << (SIZE_B - 1)
MAXINDEXRK = BITRK - 1

# An invalid register that still fits in 8 bits.
NO_REG = MAXARG_A

# Number of list items to accumulate before a SETLIST instruction.
LFIELDS_PER_FLUSH = 50


class OpMode(IntEnum):
    """Basic instruction formats."""

    ABC = 0
    ABX = 1
    ASBX = 2
    AX = 3


class OpArgMask(IntEnum):
    """How an instruction uses its B or C argument."""

    N = 0  # not used
    U = 1  # used
    R = 2  # a register or a jump offset
    K = 3  # a constant or register/constant


class OpCode(IntEnum):
    """Virtual machine opcodes, in encoding order."""

    MOVE = 0
    LOADK = 1
    LOADKX = 2
    LOADBOOL = 3
    LOADNIL = 4
    GETUPVAL = 5
    GETTABUP = 6
    GETTABLE = 7
    SETTABUP = 8
    SETUPVAL = 9
    SETTABLE = 10
    NEWTABLE = 11
    SELF = 12
    ADD = 13
    SUB = 14
    MUL = 15
    MOD = 16
    POW = 17
    DIV = 18
    IDIV = 19
    BAND = 20
    BOR = 21
    BXOR = 22
    SHL = 23
    SHR = 24
    UNM = 25
    BNOT = 26
    NOT = 27
    LEN = 28
    CONCAT = 29
    JMP = 30
    EQ = 31
    LT = 32
    LE = 33
    TEST = 34
    TESTSET = 35
    CALL = 36
    TAILCALL = 37
    RETURN = 38
    FORLOOP = 39
    FORPREP = 40
    TFORCALL = 41
    TFORLOOP = 42
    SETLIST = 43
    CLOSURE = 44
    VARARG = 45
    EXTRAARG = 46


class _OpProps(NamedTuple):
    test: bool
    sets_a: bool
    b: OpArgMask
    c: OpArgMask
    mode: OpMode


_N, _U, _R, _K = OpArgMask.N, OpArgMask.U, OpArgMask.R, OpArgMask.K
_ABC, _ABX, _ASBX, _AX = OpMode.ABC, OpMode.ABX, OpMode.ASBX, OpMode.AX

_ARITH = _OpProps(False, True, _K, _K, _ABC)
_UNARY = _OpProps(False, True, _R, _N, _ABC)
_COMPARE = _OpProps(True, False, _K, _K, _ABC)

_PROPS: dict[OpCode, _OpProps] = {
    OpCode.MOVE: _OpProps(False, True, _R, _N, _ABC),
    OpCode.LOADK: _OpProps(False, True, _K, _N, _ABX),
    OpCode.LOADKX: _OpProps(False, True, _N, _N, _ABX),
    OpCode.LOADBOOL: _OpProps(False, True, _U, _U, _ABC),
    OpCode.LOADNIL: _OpProps(False, True, _U, _N, _ABC),
    OpCode.GETUPVAL: _OpProps(False, True, _U, _N, _ABC),
    OpCode.GETTABUP: _OpProps(False, True, _U, _K, _ABC),
    OpCode.GETTABLE: _OpProps(False, True, _R, _K, _ABC),
    OpCode.SETTABUP: _OpProps(False, False, _K, _K, _ABC),
    OpCode.SETUPVAL: _OpProps(False, False, _U, _N, _ABC),
    OpCode.SETTABLE: _OpProps(False, False, _K, _K, _ABC),
    OpCode.NEWTABLE: _OpProps(False, True, _U, _U, _ABC),
    OpCode.SELF: _OpProps(False, True, _R, _K, _ABC),
    OpCode.ADD: _ARITH,
    OpCode.SUB: _ARITH,
    OpCode.MUL: _ARITH,
    OpCode.MOD: _ARITH,
    OpCode.POW: _ARITH,
    OpCode.DIV: _ARITH,
    OpCode.IDIV: _ARITH,
    OpCode.BAND: _ARITH,
    OpCode.BOR: _ARITH,
    OpCode.BXOR: _ARITH,
    OpCode.SHL: _ARITH,
    OpCode.SHR: _ARITH,
    OpCode.UNM: _UNARY,
    OpCode.BNOT: _UNARY,
    OpCode.NOT: _UNARY,
    OpCode.LEN: _UNARY,
    OpCode.CONCAT: _OpProps(False, True, _R, _R, _ABC),
    OpCode.JMP: _OpProps(False, False, _R, _N, _ASBX),
    OpCode.EQ: _COMPARE,
    OpCode.LT: _COMPARE,
    OpCode.LE: _COMPARE,
    OpCode.TEST: _OpProps(True, False, _N, _U, _ABC),
    OpCode.TESTSET: _OpProps(True, True, _R, _U, _ABC),
    OpCode.CALL: _OpProps(False, True, _U, _U, _ABC),
    OpCode.TAILCALL: _OpProps(False, True, _U, _U, _ABC),
    OpCode.RETURN: _OpProps(False, False, _U, _N, _ABC),
    OpCode.FORLOOP: _OpProps(False, True, _R, _N, _ASBX),
    OpCode.FORPREP: _OpProps(False, True, _R, _N, _ASBX),
    OpCode.TFORCALL: _OpProps(False, False, _N, _U, _ABC),
    OpCode.TFORLOOP: _OpProps(False, True, _R, _N, _ASBX),
    OpCode.SETLIST: _OpProps(False, False, _U, _U, _ABC),
    OpCode.CLOSURE: _OpProps(False, True, _U, _N, _ABX),
    OpCode.VARARG: _OpProps(False, True, _U, _N, _ABC),
    OpCode.EXTRAARG: _OpProps(False, False, _U, _U, _AX),
}


def _check_field(value: int, maximum: int, name: str) -> int:
    if not 0 <= value <= maximum:
        raise ValueError(f"argument {name}={value} out of range 0..{maximum}")
    return value


def _check_instruction(i: int) -> int:
    if not 0 <= i <= INSTRUCTION_MASK:
        raise ValueError(f"instruction {i} is not an unsigned 32-bit value")
    return i


def _opcode(op: int) -> OpCode:
    try:
        return OpCode(op)
    except ValueError:
        raise ValueError(f"invalid opcode {op}") from None


def _getarg(i: int, pos: int, size: int) -> int:
    return (_check_instruction(i) >> pos) & ((1 << size) - 1)


def _setarg(i: int, value: int, pos: int, size: int, name: str) -> int:
    _check_instruction(i)
    _check_field(value, (1 << size) - 1, name)
    mask = ((1 << size) - 1) << pos
    return (i & ~mask & INSTRUCTION_MASK) | (value << pos)


def create_abc(op: int, a: int, b: int, c: int) -> int:
    """Encode an instruction in the iABC format."""
    return (
        (_opcode(op) << POS_OP)
        | (_check_field(a, MAXARG_A, "A") << POS_A)
        | (_check_field(b, MAXARG_B, "B") << POS_B)
        | (_check_field(c, MAXARG_C, "C") << POS_C)
    )


def create_abx(op: int, a: int, bx: int) -> int:
    """Encode an instruction in the iABx format."""
    return (
        (_opcode(op) << POS_OP)
        | (_check_field(a, MAXARG_A, "A") << POS_A)
        | (_check_field(bx, MAXARG_BX, "Bx") << POS_BX)
    )


def create_asbx(op: int, a: int, sbx: int) -> int:
    """Encode an instruction in the iAsBx format (signed Bx)."""
    if not -MAXARG_SBX <= sbx <= MAXARG_BX - MAXARG_SBX:
        raise ValueError(f"argument sBx={sbx} out of range")
    return create_abx(op, a, sbx + MAXARG_SBX)


def create_ax(op: int, ax: int) -> int:
    """Encode an instruction in the iAx format."""
    return (_opcode(op) << POS_OP) | (_check_field(ax, MAXARG_AX, "Ax") << POS_AX)


def get_opcode(i: int) -> OpCode:
    """Return the opcode of instruction ``i``."""
    return _opcode(_getarg(i, POS_OP, SIZE_OP))


def get_a(i: int) -> int:
    return _getarg(i, POS_A, SIZE_A)


def get_b(i: int) -> int:
    return _getarg(i, POS_B, SIZE_B)


def get_c(i: int) -> int:
    return _getarg(i, POS_C, SIZE_C)


def get_bx(i: int) -> int:
    return _getarg(i, POS_BX, SIZE_BX)


def get_sbx(i: int) -> int:
    return get_bx(i) - MAXARG_SBX


def get_ax(i: int) -> int:
    return _getarg(i, POS_AX, SIZE_AX)


def with_opcode(i: int, op: int) -> int:
    """Return ``i`` with its opcode replaced by ``op``."""
    return _setarg(i, int(_opcode(op)), POS_OP, SIZE_OP, "OP")


def with_a(i: int, a: int) -> int:
    return _setarg(i, a, POS_A, SIZE_A, "A")


def with_b(i: int, b: int) -> int:
    return _setarg(i, b, POS_B, SIZE_B, "B")


def with_c(i: int, c: int) -> int:
    return _setarg(i, c, POS_C, SIZE_C, "C")


def with_bx(i: int, bx: int) -> int:
    return _setarg(i, bx, POS_BX, SIZE_BX, "Bx")


def with_sbx(i: int, sbx: int) -> int:
    if not -MAXARG_SBX <= sbx <= MAXARG_BX - MAXARG_SBX:
        raise ValueError(f"argument sBx={sbx} out of range")
    return with_bx(i, sbx + MAXARG_SBX)


def with_ax(i: int, ax: int) -> int:
    return _setarg(i, ax, POS_AX, SIZE_AX, "Ax")


def is_k(x: int) -> bool:
    """Whether an RK operand refers to a constant."""
    return bool(x & BITRK)


def index_k(r: int) -> int:
    """Constant index carried by an RK operand."""
    return r & ~BITRK


def rk_as_k(x: int) -> int:
    """Encode constant index ``x`` as an RK operand."""
    return _check_field(x, MAXINDEXRK, "K") | BITRK


def op_mode(op: int) -> OpMode:
    return _PROPS[_opcode(op)].mode


def b_mode(op: int) -> OpArgMask:
    return _PROPS[_opcode(op)].b


def c_mode(op: int) -> OpArgMask:
    return _PROPS[_opcode(op)].c


def sets_register_a(op: int) -> bool:
    """Whether the instruction assigns register A."""
    return _PROPS[_opcode(op)].sets_a


def is_test(op: int) -> bool:
    """Whether the instruction is a test (next instruction must be a jump)."""
    return _PROPS[_opcode(op)].test