"""CHIP-8 emulator exceptions."""

from typing import Optional

import jax.numpy as jnp


class Chip8Error(Exception):
    """Base class for all emulator errors."""


class RomLoadError(Chip8Error):
    """ROM could not be read or does not fit in memory."""


class RomTooLargeError(RomLoadError):
    """ROM is larger than the program area (0x200-0xFFF)."""

    def __init__(self, filename: str, size: int, limit: int):
        self.filename = filename
        self.size = size
        self.limit = limit
        super().__init__(
            f"ROM '{filename}' is too large to fit into CHIP-8 memory: "
            f"{size} bytes, limit is {limit}"
        )


class ExecutionError(Chip8Error):
    """Fatal error raised while executing an instruction.

    Attributes:
        opcode: Raw 16-bit instruction word, if one was fetched
        pc: Address of the instruction
    """

    def __init__(self, message: str, opcode: Optional[int] = None, pc: Optional[int] = None):
        self.message = message
        self.opcode = opcode
        self.pc = pc
        super().__init__(self._describe())

    def _describe(self) -> str:
        location = []
        if self.opcode is not None:
            location.append(f"opcode 0x{self.opcode:04X}")
        if self.pc is not None:
            location.append(f"pc 0x{self.pc:03X}")
        if not location:
            return self.message
        return f"{self.message} ({', '.join(location)})"

    def locate(self, opcode: int, pc: int) -> "ExecutionError":
        """Attach the faulting instruction to an error raised below the executor."""
        if self.opcode is None:
            self.opcode = opcode
        if self.pc is None:
            self.pc = pc
        self.args = (self._describe(),)
        return self


class DecodeError(ExecutionError):
    """Instruction word matches no known instruction."""

    def __init__(self, opcode: int, pc: Optional[int] = None):
        super().__init__("Unknown opcode", opcode=opcode, pc=pc)


class StackOverflowError(ExecutionError):
    """CALL with a full call stack."""


class StackUnderflowError(ExecutionError):
    """RET with an empty call stack."""


class MemoryAccessError(ExecutionError):
    """Memory access outside 0x000-0xFFF."""


# Fault codes reported by the compiled instruction kernels. A non-zero code
# means the instruction did not complete and its state must be discarded.
FAULT_NONE = 0
FAULT_DECODE = 1
FAULT_STACK_OVERFLOW = 2
FAULT_STACK_UNDERFLOW = 3
FAULT_MEMORY = 4
FAULT_FETCH = 5


def fault_if(condition, fault: int) -> jnp.ndarray:
    """Return ``fault`` where ``condition`` holds, else ``FAULT_NONE``, as int32."""
    return jnp.where(condition, jnp.int32(fault), jnp.int32(FAULT_NONE))
