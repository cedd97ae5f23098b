"""CHIP-8 instruction decoding."""

import enum
from typing import Optional

import jax.numpy as jnp
import numpy as np
from chex import dataclass

from chipax.errors import DecodeError


class Kind(enum.Enum):
    """Instruction kinds, named after the classic CHIP-8 mnemonics."""
    NOP = "NOP"                # 0000
    CLS = "CLS"                # 00E0
    RET = "RET"                # 00EE
    JP = "JP"                  # 1NNN
    CALL = "CALL"              # 2NNN
    SE_IMM = "SE_IMM"          # 3XKK
    SNE_IMM = "SNE_IMM"        # 4XKK
    SE_REG = "SE_REG"          # 5XY0
    LD_IMM = "LD_IMM"          # 6XKK
    ADD_IMM = "ADD_IMM"        # 7XKK
    LD_REG = "LD_REG"          # 8XY0
    OR = "OR"                  # 8XY1
    AND = "AND"                # 8XY2
    XOR = "XOR"                # 8XY3
    ADD_REG = "ADD_REG"        # 8XY4
    SUB = "SUB"                # 8XY5
    SHR = "SHR"                # 8XY6
    SUBN = "SUBN"              # 8XY7
    SHL = "SHL"                # 8XYE
    SNE_REG = "SNE_REG"        # 9XY0
    LD_I = "LD_I"              # ANNN
    JP_V0 = "JP_V0"            # BNNN
    RND = "RND"                # CXKK
    DRW = "DRW"                # DXYN
    SKP = "SKP"                # EX9E
    SKNP = "SKNP"              # EXA1
    LD_VX_DT = "LD_VX_DT"      # FX07
    LD_VX_K = "LD_VX_K"        # FX0A
    LD_DT = "LD_DT"            # FX15
    LD_ST = "LD_ST"            # FX18
    ADD_I = "ADD_I"            # FX1E
    LD_F = "LD_F"              # FX29
    LD_B = "LD_B"              # FX33
    LD_MEM_V = "LD_MEM_V"      # FX55
    LD_V_MEM = "LD_V_MEM"      # FX65


@dataclass(frozen=True)
class DecodedInstruction:
    """Decoded CHIP-8 instruction with extracted operands."""
    raw: int
    kind: Kind
    opcode: int  # First nibble
    x: int       # Second nibble (VX register)
    y: int       # Third nibble (VY register)
    n: int       # Fourth nibble (4-bit immediate)
    nn: int      # Last byte (8-bit immediate, "kk")
    nnn: int     # Last 12 bits (12-bit address)


# Classes selected by the first nibble alone.
_PRIMARY = {
    0x1: Kind.JP,
    0x2: Kind.CALL,
    0x3: Kind.SE_IMM,
    0x4: Kind.SNE_IMM,
    0x5: Kind.SE_REG,
    0x6: Kind.LD_IMM,
    0x7: Kind.ADD_IMM,
    0x9: Kind.SNE_REG,
    0xA: Kind.LD_I,
    0xB: Kind.JP_V0,
    0xC: Kind.RND,
    0xD: Kind.DRW,
}

# Class 0x0 is keyed by the whole word.
_SYSTEM = {
    0x0000: Kind.NOP,
    0x00E0: Kind.CLS,
    0x00EE: Kind.RET,
}

# Class 0x8 is keyed by the last nibble.
_ALU = {
    0x0: Kind.LD_REG,
    0x1: Kind.OR,
    0x2: Kind.AND,
    0x3: Kind.XOR,
    0x4: Kind.ADD_REG,
    0x5: Kind.SUB,
    0x6: Kind.SHR,
    0x7: Kind.SUBN,
    0xE: Kind.SHL,
}

# Classes 0xE and 0xF are keyed by the last byte.
_KEYS = {
    0x9E: Kind.SKP,
    0xA1: Kind.SKNP,
}

_MISC = {
    0x07: Kind.LD_VX_DT,
    0x0A: Kind.LD_VX_K,
    0x15: Kind.LD_DT,
    0x18: Kind.LD_ST,
    0x1E: Kind.ADD_I,
    0x29: Kind.LD_F,
    0x33: Kind.LD_B,
    0x55: Kind.LD_MEM_V,
    0x65: Kind.LD_V_MEM,
}


def classify(instruction: int) -> Optional[Kind]:
    """Return the kind of a 16-bit instruction word, or None if it has none."""
    opcode = (instruction & 0xF000) >> 12
    if opcode == 0x0:
        return _SYSTEM.get(instruction)
    if opcode == 0x8:
        return _ALU.get(instruction & 0x000F)
    if opcode == 0xE:
        return _KEYS.get(instruction & 0x00FF)
    if opcode == 0xF:
        return _MISC.get(instruction & 0x00FF)
    return _PRIMARY[opcode]


def decode(instruction: int, pc: Optional[int] = None) -> DecodedInstruction:
    """Decode 16-bit instruction into components.

    Args:
        instruction: Raw instruction word
        pc: Address the word was fetched from, reported on failure

    Raises:
        DecodeError: If the word matches no CHIP-8 instruction.
    """
    instruction = int(instruction) & 0xFFFF
    kind = classify(instruction)
    if kind is None:
        raise DecodeError(instruction, pc)
    return DecodedInstruction(
        raw=instruction,
        kind=kind,
        opcode=(instruction & 0xF000) >> 12,
        x=(instruction & 0x0F00) >> 8,
        y=(instruction & 0x00F0) >> 4,
        n=instruction & 0x000F,
        nn=instruction & 0x00FF,
        nnn=instruction & 0x0FFF
    )


@dataclass(frozen=True)
class Operands:
    """Operand fields of an instruction word, as arrays for compiled kernels."""
    x: jnp.ndarray
    y: jnp.ndarray
    n: jnp.ndarray
    nn: jnp.ndarray
    nnn: jnp.ndarray


def split_operands(word) -> Operands:
    """Extract the operand fields of a (possibly traced) instruction word."""
    word = jnp.astype(word, jnp.int32)
    return Operands(
        x=(word & 0x0F00) >> 8,
        y=(word & 0x00F0) >> 4,
        n=word & 0x000F,
        nn=word & 0x00FF,
        nnn=word & 0x0FFF,
    )


KINDS = tuple(Kind)
UNKNOWN_KIND_CODE = len(KINDS)

_KIND_CODE = {kind: code for code, kind in enumerate(KINDS)}

# Kind code of every 16-bit word; words outside the instruction set map to
# UNKNOWN_KIND_CODE.
KIND_CODES = jnp.asarray(
    np.array(
        [_KIND_CODE.get(classify(word), UNKNOWN_KIND_CODE) for word in range(0x10000)],
        dtype=np.int32,
    )
)
