"""Main CHIP-8 emulator execution engine.

Instructions run inside compiled kernels. Each handler is a pure function of
the state and the instruction's operands; handlers that can fail have a
matching check that reports a fault code. The Python entry points turn a
fault into the matching :class:`~chipax.errors.ExecutionError`.
"""

from typing import Callable, Optional, Tuple

import jax
import jax.lax
import jax.numpy as jnp

from chipax.constants import MEMORY_SIZE, STACK_SIZE
from chipax.errors import (
    ExecutionError, DecodeError, MemoryAccessError, StackOverflowError, StackUnderflowError,
    FAULT_NONE, FAULT_DECODE, FAULT_STACK_OVERFLOW, FAULT_STACK_UNDERFLOW, FAULT_MEMORY, FAULT_FETCH,
    fault_if,
)
from chipax.state import EmulatorState
from chipax.decode import KINDS, KIND_CODES, Kind, Operands, decode, split_operands
from chipax.instructions.system import execute_nop, execute_clear_screen, execute_return, check_return
from chipax.instructions.control_flow import (
    execute_jump, execute_call, check_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_skip_if_key, execute_skip_if_not_key,
)
from chipax.instructions.alu import ALU_INSTRUCTIONS
from chipax.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chipax.instructions.display import execute_display, check_display
from chipax.instructions.misc import (
    execute_get_delay_timer, execute_wait_for_key, execute_set_delay_timer,
    execute_set_sound_timer, execute_add_to_index, execute_font_character,
    execute_bcd_conversion, check_bcd_conversion, execute_store_registers,
    execute_load_registers, check_register_transfer,
)

Handler = Callable[[EmulatorState, Operands], EmulatorState]
Check = Callable[[EmulatorState, Operands], jnp.ndarray]

HANDLERS: dict[Kind, Handler] = {
    Kind.NOP: execute_nop,
    Kind.CLS: execute_clear_screen,
    Kind.RET: execute_return,
    Kind.JP: execute_jump,
    Kind.CALL: execute_call,
    Kind.SE_IMM: execute_skip_if_equal_immediate,
    Kind.SNE_IMM: execute_skip_if_not_equal_immediate,
    Kind.SE_REG: execute_skip_if_equal_register,
    Kind.LD_IMM: execute_set,
    Kind.ADD_IMM: execute_add,
    **ALU_INSTRUCTIONS,
    Kind.SNE_REG: execute_skip_if_not_equal_register,
    Kind.LD_I: execute_set_index,
    Kind.JP_V0: execute_jump_with_offset,
    Kind.RND: execute_random,
    Kind.DRW: execute_display,
    Kind.SKP: execute_skip_if_key,
    Kind.SKNP: execute_skip_if_not_key,
    Kind.LD_VX_DT: execute_get_delay_timer,
    Kind.LD_VX_K: execute_wait_for_key,
    Kind.LD_DT: execute_set_delay_timer,
    Kind.LD_ST: execute_set_sound_timer,
    Kind.ADD_I: execute_add_to_index,
    Kind.LD_F: execute_font_character,
    Kind.LD_B: execute_bcd_conversion,
    Kind.LD_MEM_V: execute_store_registers,
    Kind.LD_V_MEM: execute_load_registers,
}

# Preconditions of the instructions that can fail
FAULT_CHECKS: dict[Kind, Check] = {
    Kind.RET: check_return,
    Kind.CALL: check_call,
    Kind.DRW: check_display,
    Kind.LD_B: check_bcd_conversion,
    Kind.LD_MEM_V: check_register_transfer,
    Kind.LD_V_MEM: check_register_transfer,
}


def _make_branch(kind: Kind):
    handler = HANDLERS[kind]
    check = FAULT_CHECKS.get(kind)

    def branch(state: EmulatorState, operands: Operands):
        fault = check(state, operands) if check is not None else jnp.int32(FAULT_NONE)
        return handler(state, operands), fault
    return branch


def _unknown_instruction(state: EmulatorState, operands: Operands):
    return state, jnp.int32(FAULT_DECODE)


# One branch per kind code, the unknown-word branch last
_BRANCHES = [_make_branch(kind) for kind in KINDS] + [_unknown_instruction]


def _execute_word(state: EmulatorState, word) -> Tuple[EmulatorState, jnp.ndarray]:
    word = jnp.astype(word, jnp.int32)
    return jax.lax.switch(KIND_CODES[word], _BRANCHES, state, split_operands(word))


def _fetch_word(state: EmulatorState) -> Tuple[jnp.ndarray, jnp.ndarray]:
    pc = jnp.astype(state.pc, jnp.int32)
    word = _pack_u16(state.memory[pc], state.memory[pc + 1])
    return word, fault_if(pc + 1 >= MEMORY_SIZE, FAULT_FETCH)


def _pack_u16(high, low) -> jnp.ndarray:
    """Pack two bytes into a 16-bit word."""
    return (jnp.astype(high, jnp.int32) << 8) | jnp.astype(low, jnp.int32)


def _decay(state: EmulatorState, ticks) -> EmulatorState:
    return state.replace(
        delay_timer=jnp.astype(jnp.maximum(jnp.astype(state.delay_timer, jnp.int32) - ticks, 0), jnp.uint8),
        sound_timer=jnp.astype(jnp.maximum(jnp.astype(state.sound_timer, jnp.int32) - ticks, 0), jnp.uint8),
    )


_execute_kernel = jax.jit(_execute_word)


@jax.jit
def _run_kernel(state, count, timer_numerator, timer_denominator, phase):
    """Run up to ``count`` instructions, stopping before the first fault.

    After cycle ``c`` (counted from ``phase``) the timers decay by
    ``floor((c + 1) * num / den) - floor(c * num / den)``, which spreads
    ``num`` decrements evenly over every ``den`` cycles.
    """
    def cond(carry):
        _, executed, fault = carry
        return (executed < count) & (fault == FAULT_NONE)

    def body(carry):
        state, executed, _ = carry
        word, fetch_fault = _fetch_word(state)
        new_state, fault = _execute_word(state, word)
        fault = jnp.where(fetch_fault != FAULT_NONE, fetch_fault, fault)
        completed = fault == FAULT_NONE

        cycle = phase + executed
        ticks = ((cycle + 1) * timer_numerator) // timer_denominator - (cycle * timer_numerator) // timer_denominator
        new_state = _decay(new_state, ticks)

        state = jax.tree_util.tree_map(
            lambda new, old: jnp.where(completed, new, old), new_state, state
        )
        return state, executed + jnp.astype(completed, jnp.int32), fault

    return jax.lax.while_loop(cond, body, (state, jnp.int32(0), jnp.int32(FAULT_NONE)))


def fault_error(fault: int, state: EmulatorState, opcode: Optional[int], pc: int) -> ExecutionError:
    """Build the exception for a fault raised by ``opcode`` at ``pc`` in ``state``."""
    if fault == FAULT_DECODE:
        return DecodeError(opcode, pc)
    if fault == FAULT_STACK_OVERFLOW:
        return StackOverflowError(f"Call stack overflow, depth {STACK_SIZE} exceeded", opcode, pc)
    if fault == FAULT_STACK_UNDERFLOW:
        return StackUnderflowError("Return with empty call stack", opcode, pc)
    if fault == FAULT_MEMORY:
        return MemoryAccessError(f"Memory access out of range from I=0x{int(state.I):03X}", opcode, pc)
    if fault == FAULT_FETCH:
        return MemoryAccessError("Instruction fetch past end of memory", pc=pc)
    return ExecutionError(f"Unknown fault code {fault}", opcode, pc)


def execute(state: EmulatorState, instruction: int) -> EmulatorState:
    """Execute single CHIP-8 instruction word located at the current PC.

    Raises:
        ExecutionError: On unknown opcodes, stack faults or out-of-range
            memory accesses. The error carries the opcode and PC.
    """
    pc = int(state.pc)
    decoded_instruction = decode(instruction, pc)
    new_state, fault = _execute_kernel(state, jnp.int32(decoded_instruction.raw))
    fault = int(fault)
    if fault != FAULT_NONE:
        raise fault_error(fault, state, decoded_instruction.raw, pc)
    return new_state


def fetch(state: EmulatorState) -> int:
    """Fetch the instruction word at PC. Does not move PC."""
    pc = int(state.pc)
    if pc + 1 >= MEMORY_SIZE:
        raise MemoryAccessError("Instruction fetch past end of memory", pc=pc)
    return int(_pack_u16(state.memory[pc], state.memory[pc + 1]))


def step(state: EmulatorState) -> EmulatorState:
    """Run one fetch-decode-execute cycle."""
    return execute(state, fetch(state))


def run_batch(
    state: EmulatorState,
    count: int,
    timer_ratio: Tuple[int, int] = (0, 1),
    phase: int = 0,
) -> Tuple[EmulatorState, int, Optional[ExecutionError]]:
    """Run ``count`` cycles in one compiled loop.

    Args:
        state: State to start from
        count: Number of cycles to run
        timer_ratio: ``(timer decrements, cycles)``; the timers decay at this
            rate while the batch runs. ``(0, 1)`` leaves them alone.
        phase: Cycles already run at this ratio, so consecutive batches
            decay the timers as one long run would

    Returns:
        The state after the last completed cycle, the number of completed
        cycles and, if a cycle failed, the error it raised. The failing
        cycle leaves no trace in the returned state.
    """
    if count <= 0:
        return state, 0, None
    numerator, denominator = timer_ratio
    state, executed, fault = _run_kernel(
        state, jnp.int32(count), jnp.int32(numerator), jnp.int32(denominator),
        jnp.int32(phase % denominator),
    )
    fault = int(fault)
    if fault == FAULT_NONE:
        return state, int(executed), None
    pc = int(state.pc)
    opcode = None if fault == FAULT_FETCH else fetch(state)
    return state, int(executed), fault_error(fault, state, opcode, pc)


def decay_timers(state: EmulatorState, ticks: int = 1) -> EmulatorState:
    """Count both timers down by ``ticks``, stopping at zero."""
    if ticks <= 0:
        return state
    return _decay(state, ticks)
