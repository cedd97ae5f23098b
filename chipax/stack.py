"""CHIP-8 stack operations."""

import jax.numpy as jnp

from chipax.constants import ADDRESS_MASK, STACK_SIZE
from chipax.errors import FAULT_STACK_OVERFLOW, FAULT_STACK_UNDERFLOW, fault_if
from chipax.state import StackState


def overflow_fault(stack: StackState) -> jnp.ndarray:
    """Fault code for a push onto ``stack``."""
    return fault_if(stack.pointer >= STACK_SIZE, FAULT_STACK_OVERFLOW)


def underflow_fault(stack: StackState) -> jnp.ndarray:
    """Fault code for a pop from ``stack``."""
    return fault_if(stack.pointer <= 0, FAULT_STACK_UNDERFLOW)


def push(stack: StackState, address) -> StackState:
    """Push address onto stack.

    A push onto a full stack leaves it unchanged; callers check
    :func:`overflow_fault` first.
    """
    masked_address = jnp.astype(address & ADDRESS_MASK, jnp.uint16)
    new_data = stack.data.at[stack.pointer].set(masked_address)
    return stack.replace(data=new_data, pointer=jnp.minimum(stack.pointer + 1, STACK_SIZE))


def pop(stack: StackState) -> tuple[StackState, jnp.ndarray]:
    """Pop address from stack."""
    new_pointer = jnp.maximum(stack.pointer - 1, 0)
    popped_address = stack.data[new_pointer]
    new_data = stack.data.at[new_pointer].set(jnp.uint16(0))
    return stack.replace(data=new_data, pointer=new_pointer), popped_address
