"""CHIP-8 display operations."""

import jax.numpy as jnp

from chipax.constants import (
    FLAG_REGISTER, MAX_SPRITE_HEIGHT, NUM_PIXELS, SCREEN_HEIGHT, SCREEN_WIDTH, SPRITE_WIDTH,
)
from chipax.state import EmulatorState
from chipax.decode import Operands
from chipax.instructions.memory import check_range
from chipax.instructions.system import advance

# Sprite rows and columns; bit shifts select columns most significant bit first
_rows = jnp.arange(MAX_SPRITE_HEIGHT)
_columns = jnp.arange(SPRITE_WIDTH)
_shifts = (SPRITE_WIDTH - 1) - _columns


def execute_display(state: EmulatorState, instruction: Operands) -> EmulatorState:
    """DXYN - Draw sprite at (VX, VY) with height N.

    Sprite rows are read from memory at I. Set bits are XORed onto the
    display, wrapping around both screen edges. VF is 1 if any lit pixel was
    turned off by the sprite, else 0.

    All 15 possible rows are computed and rows past N are masked out. A
    15x8 sprite never wraps onto itself, so the pixel indices are unique.
    """
    sprite_x = jnp.astype(state.V[instruction.x], jnp.int32) % SCREEN_WIDTH
    sprite_y = jnp.astype(state.V[instruction.y], jnp.int32) % SCREEN_HEIGHT

    sprite_bytes = jnp.astype(state.memory[jnp.astype(state.I, jnp.int32) + _rows], jnp.int32)
    visible = (_rows < instruction.n)[:, None]
    bits = jnp.astype(((sprite_bytes[:, None] >> _shifts[None, :]) & 1) * visible, jnp.uint8)

    pixel_x = (sprite_x + _columns[None, :]) % SCREEN_WIDTH
    pixel_y = (sprite_y + _rows[:, None]) % SCREEN_HEIGHT
    pixel_index = pixel_x + pixel_y * SCREEN_WIDTH

    sprite = jnp.zeros(NUM_PIXELS, dtype=jnp.uint8).at[pixel_index.ravel()].set(bits.ravel())
    collision = jnp.any((state.display & sprite) == 1)

    return advance(state.replace(
        display=state.display ^ sprite,
        draw_flag=jnp.ones((), dtype=jnp.bool_),
        V=state.V.at[FLAG_REGISTER].set(jnp.astype(collision, jnp.uint8)),
    ))


def check_display(state: EmulatorState, instruction: Operands) -> jnp.ndarray:
    return check_range(state.I, instruction.n)
