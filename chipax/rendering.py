"""CHIP-8 rendering utilities for visualization."""

from typing import Tuple

import numpy as np

from chipax.constants import NUM_PIXELS, SCREEN_HEIGHT, SCREEN_WIDTH


def _as_grid(frame) -> np.ndarray:
    """Accept a flat 2048-pixel buffer or a (32, 64) grid, return a boolean grid."""
    pixels = np.asarray(frame)
    if pixels.shape == (NUM_PIXELS,):
        pixels = pixels.reshape(SCREEN_HEIGHT, SCREEN_WIDTH)
    if pixels.shape != (SCREEN_HEIGHT, SCREEN_WIDTH):
        raise ValueError(
            f"Expected {NUM_PIXELS} pixels or shape ({SCREEN_HEIGHT}, {SCREEN_WIDTH}), got {pixels.shape}"
        )
    return pixels.astype(np.bool_)


def display_to_rgb(
    frame,
    scale: int = 8,
    on_color: Tuple[int, int, int] = (255, 255, 255),
    off_color: Tuple[int, int, int] = (0, 0, 0),
) -> np.ndarray:
    """Convert a CHIP-8 display buffer to an RGB array with optional upscaling.

    Args:
        frame: Display buffer, flat row-major (2048,) or (32, 64)
        scale: Upscaling factor for better visibility (default: 8x)
        on_color: RGB color for "on" pixels (default: white)
        off_color: RGB color for "off" pixels (default: black)

    Returns:
        RGB array of shape (32*scale, 64*scale, 3) with uint8 values
    """
    if scale < 1:
        raise ValueError(f"scale must be at least 1, got {scale}")
    pixels = _as_grid(frame)

    rgb_frame = np.zeros((SCREEN_HEIGHT, SCREEN_WIDTH, 3), dtype=np.uint8)
    rgb_frame[pixels] = on_color
    rgb_frame[~pixels] = off_color

    # Nearest neighbour upscaling
    if scale > 1:
        rgb_frame = np.repeat(np.repeat(rgb_frame, scale, axis=0), scale, axis=1)

    return rgb_frame


def display_to_text(frame, on: str = "#", off: str = ".") -> str:
    """Render a display buffer as 32 lines of 64 characters."""
    pixels = _as_grid(frame)
    return "\n".join("".join(on if lit else off for lit in row) for row in pixels)


def create_color_scheme(
    scheme: str = "classic",
) -> Tuple[Tuple[int, int, int], Tuple[int, int, int]]:
    """Get predefined color schemes for CHIP-8 rendering.

    Args:
        scheme: Color scheme name ("classic", "green", "amber", "blue", "retro")

    Returns:
        Tuple of (on_color, off_color) as RGB tuples
    """
    schemes = {
        "classic": ((255, 255, 255), (0, 0, 0)),  # White on black
        "green": ((0, 255, 0), (0, 0, 0)),  # Green on black
        "amber": ((255, 176, 0), (0, 0, 0)),  # Amber on black
        "blue": ((0, 255, 255), (0, 0, 64)),  # Cyan on dark blue
        "retro": ((255, 255, 0), (64, 0, 64)),  # Yellow on purple
    }

    if scheme not in schemes:
        raise ValueError(
            f"Unknown color scheme '{scheme}'. Available: {list(schemes.keys())}"
        )

    return schemes[scheme]
