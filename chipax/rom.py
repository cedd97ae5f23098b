"""ROM file loading."""

import os

from chipax.constants import MAX_ROM_SIZE
from chipax.errors import RomLoadError, RomTooLargeError


def read_rom(filename: str) -> bytes:
    """Read a raw CHIP-8 ROM image.

    Args:
        filename: Path to the ROM file

    Returns:
        The ROM bytes, at most 3584 long

    Raises:
        RomTooLargeError: If the ROM does not fit in the program area
        RomLoadError: If the file cannot be read
    """
    try:
        with open(filename, 'rb') as f:
            rom_data = f.read()
    except OSError as e:
        raise RomLoadError(f"Failed to read ROM '{filename}': {e}") from e

    if len(rom_data) > MAX_ROM_SIZE:
        raise RomTooLargeError(os.path.basename(filename), len(rom_data), MAX_ROM_SIZE)
    return rom_data
