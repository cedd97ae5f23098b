"""CHIP-8 control flow instructions."""

import jax.numpy as jnp

from chipax.constants import ADDRESS_MASK
from chipax.state import EmulatorState
from chipax.decode import Operands
from chipax.stack import overflow_fault, push
from chipax.instructions.system import advance


def execute_jump(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """1NNN - Jump to address NNN."""
    return state.replace(pc=jnp.astype(instruction.nnn, jnp.uint16))


def execute_call(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """2NNN - Call subroutine at NNN, pushing the address of the next instruction."""
    return_address = jnp.astype(state.pc, jnp.int32) + 2
    state = state.replace(stack=push(state.stack, return_address))
    return execute_jump(state, instruction)


def check_call(state: EmulatorState, instruction: Operands) -> jnp.ndarray:
    return overflow_fault(state.stack)


def make_skip_instruction(condition_fn):
    """Factory for skip instructions: PC += 4 when the condition holds, else PC += 2."""
    def skip_instruction(state: EmulatorState, instruction: Operands) -> EmulatorState:
        condition = condition_fn(state, instruction)
        return advance(state, jnp.where(condition, 2, 1))
    return skip_instruction


execute_skip_if_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == inst.nn
)

execute_skip_if_not_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != inst.nn
)

execute_skip_if_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == state.V[inst.y]
)

execute_skip_if_not_equal_register = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.y]
)

execute_skip_if_key = make_skip_instruction(
    lambda state, inst: state.keypad[state.V[inst.x] & 0xF]
)

execute_skip_if_not_key = make_skip_instruction(
    lambda state, inst: ~state.keypad[state.V[inst.x] & 0xF]
)


def execute_jump_with_offset(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """BNNN - Jump to address NNN + V0."""
    jump_address = (instruction.nnn + jnp.astype(state.V[0], jnp.int32)) & ADDRESS_MASK
    return state.replace(pc=jnp.astype(jump_address, jnp.uint16))
