"""CHIP-8 ALU operations (8xxx)."""

from typing import Callable

import jax.numpy as jnp

from chipax.constants import FLAG_REGISTER
from chipax.state import EmulatorState
from chipax.decode import Operands, Kind
from chipax.instructions.system import advance


def alu_set(vx, vy):
    """8XY0 - Set: VX = VY."""
    return vy, None


def alu_or(vx, vy):
    """8XY1 - Binary OR: VX |= VY."""
    return vx | vy, None


def alu_and(vx, vy):
    """8XY2 - Binary AND: VX &= VY."""
    return vx & vy, None


def alu_xor(vx, vy):
    """8XY3 - Logical XOR: VX ^= VY."""
    return vx ^ vy, None


def alu_add(vx, vy):
    """8XY4 - Add: VX += VY, VF = carry."""
    result = vx + vy
    return result % 256, result > 0xFF


def alu_sub_xy(vx, vy):
    """8XY5 - Subtract: VX -= VY, VF = 1 if VX > VY."""
    return (vx - vy) % 256, vx > vy


def alu_shift_right(vx, vy):
    """8XY6 - Shift right: VX >>= 1, VF = old LSB."""
    return vx >> 1, vx & 1


def alu_sub_yx(vx, vy):
    """8XY7 - Subtract: VX = VY - VX, VF = 1 if VY > VX."""
    return (vy - vx) % 256, vy > vx


def alu_shift_left(vx, vy):
    """8XYE - Shift left: VX <<= 1, VF = old MSB."""
    return (vx << 1) % 256, (vx & 0x80) >> 7


ALU_OPERATIONS: dict[Kind, Callable] = {
    Kind.LD_REG: alu_set,
    Kind.OR: alu_or,
    Kind.AND: alu_and,
    Kind.XOR: alu_xor,
    Kind.ADD_REG: alu_add,
    Kind.SUB: alu_sub_xy,
    Kind.SHR: alu_shift_right,
    Kind.SUBN: alu_sub_yx,
    Kind.SHL: alu_shift_left,
}


def make_alu_instruction(operation):
    """Factory for 8XYN instructions.

    Operands are widened to int32 before ``operation`` runs. The result is
    written to VX first and the flag to VF second, so the flag wins when X
    is F.
    """
    def alu_instruction(state: EmulatorState, instruction: Operands) -> EmulatorState:
        vx = jnp.astype(state.V[instruction.x], jnp.int32)
        vy = jnp.astype(state.V[instruction.y], jnp.int32)

        result, vf = operation(vx, vy)

        new_V = state.V.at[instruction.x].set(jnp.astype(result, jnp.uint8))
        if vf is not None:
            new_V = new_V.at[FLAG_REGISTER].set(jnp.astype(vf, jnp.uint8))
        return advance(state.replace(V=new_V))
    return alu_instruction


ALU_INSTRUCTIONS = {kind: make_alu_instruction(operation) for kind, operation in ALU_OPERATIONS.items()}
