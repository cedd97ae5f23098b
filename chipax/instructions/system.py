"""CHIP-8 system instructions (0x0xxx)."""

import jax.numpy as jnp

from chipax.state import EmulatorState
from chipax.decode import Operands
from chipax.stack import pop, underflow_fault


def advance(state: EmulatorState, count=1) -> EmulatorState:
    """Move PC past ``count`` instructions."""
    return state.replace(pc=jnp.astype(state.pc + 2 * count, jnp.uint16))


def execute_nop(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """0000 - No operation."""
    return advance(state)


def execute_clear_screen(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """00E0 - Clear display."""
    return advance(state.replace(
        display=jnp.zeros_like(state.display),
        draw_flag=jnp.ones((), dtype=jnp.bool_),
    ))


def execute_return(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """00EE - Return from subroutine."""
    stack, address = pop(state.stack)
    return state.replace(stack=stack, pc=jnp.astype(address, jnp.uint16))


def check_return(state: EmulatorState, instruction: Operands) -> jnp.ndarray:
    return underflow_fault(state.stack)
