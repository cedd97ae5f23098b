"""CHIP-8 virtual machine package."""

from chipax.state import EmulatorState, create_state, load_rom
from chipax.emulator import execute, fetch, step, run_batch, decay_timers
from chipax.decode import DecodedInstruction, Kind, decode
from chipax.clock import ExecutionClock
from chipax.config import EmulatorConfig
from chipax.driver import Emulator
from chipax.rom import read_rom
from chipax.errors import (
    Chip8Error, RomLoadError, RomTooLargeError, ExecutionError, DecodeError,
    StackOverflowError, StackUnderflowError, MemoryAccessError,
)
from chipax.constants import (
    PROGRAM_START, FONT_START, SCREEN_WIDTH, SCREEN_HEIGHT, MAX_ROM_SIZE, STACK_SIZE,
)
from chipax.rendering import display_to_rgb, display_to_text, create_color_scheme

__all__ = [
    "EmulatorState",
    "create_state",
    "load_rom",
    "fetch",
    "execute",
    "step",
    "run_batch",
    "decay_timers",
    "DecodedInstruction",
    "Kind",
    "decode",
    "ExecutionClock",
    "EmulatorConfig",
    "Emulator",
    "read_rom",
    "Chip8Error",
    "RomLoadError",
    "RomTooLargeError",
    "ExecutionError",
    "DecodeError",
    "StackOverflowError",
    "StackUnderflowError",
    "MemoryAccessError",
    "PROGRAM_START",
    "FONT_START",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "MAX_ROM_SIZE",
    "STACK_SIZE",
    "display_to_rgb",
    "display_to_text",
    "create_color_scheme",
]
