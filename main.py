"""
chipax launcher: pygame front end and headless runner
"""

import argparse
import sys

from chipax import Emulator, EmulatorConfig, Chip8Error, create_color_scheme, display_to_rgb, display_to_text
from chipax.logging import ConsoleLogger


# CHIP-8 keypad      Keyboard
#   1 2 3 C           1 2 3 4
#   4 5 6 D           Q W E R
#   7 8 9 E           A S D F
#   A 0 B F           Z X C V
KEY_LAYOUT = {
    "1": 0x1, "2": 0x2, "3": 0x3, "4": 0xC,
    "q": 0x4, "w": 0x5, "e": 0x6, "r": 0xD,
    "a": 0x7, "s": 0x8, "d": 0x9, "f": 0xE,
    "z": 0xA, "x": 0x0, "c": 0xB, "v": 0xF,
}


def build_key_map(pygame):
    """Map pygame key codes to CHIP-8 key indices."""
    return {pygame.key.key_code(name): key for name, key in KEY_LAYOUT.items()}


def run_window(emulator: Emulator, scale: int = 10, color_scheme: str = "classic", fps: int = 60) -> int:
    """Present the emulator in a pygame window until closed.

    Returns:
        Process exit status: 1 if emulation halted on an error, else 0
    """
    import pygame

    on_color, off_color = create_color_scheme(color_scheme)

    pygame.init()
    screen = pygame.display.set_mode((64 * scale, 32 * scale))
    pygame.display.set_caption(f"chipax - {emulator.name}")
    clock = pygame.time.Clock()
    key_map = build_key_map(pygame)

    emulator.start()
    running = True
    paused = False
    try:
        while running:
            clock.tick(fps)

            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        running = False
                    elif event.key == pygame.K_p:
                        paused = not paused
                        if paused:
                            emulator.stop()
                            emulator.join()
                        else:
                            emulator.start()
                    elif event.key in key_map:
                        emulator.set_key(key_map[event.key], True)
                elif event.type == pygame.KEYUP:
                    if event.key in key_map:
                        emulator.set_key(key_map[event.key], False)

            if not paused and not emulator.running:
                # Halted on its own: the error is re-raised by join()
                running = False

            if emulator.consume_draw_flag():
                rgb = display_to_rgb(emulator.frame(), scale=scale, on_color=on_color, off_color=off_color)
                pygame.surfarray.blit_array(screen, rgb.swapaxes(0, 1))
                pygame.display.flip()
    finally:
        emulator.stop()
        pygame.quit()

    emulator.join()
    return 0


def run_headless(emulator: Emulator, cycles: int, progress: bool = True) -> int:
    """Run a fixed number of cycles and print the final display."""
    emulator.run_cycles(cycles, progress=progress)
    print(display_to_text(emulator.frame()))
    return 0


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="CHIP-8 emulator")
    parser.add_argument("rom", type=str, help="Path to a raw CHIP-8 ROM image")
    parser.add_argument("--scale", type=int, default=10, help="Window pixels per CHIP-8 pixel")
    parser.add_argument(
        "--color-scheme", type=str, default="classic",
        help="Colors: classic, green, amber, blue, retro",
    )
    parser.add_argument("--cpu-frequency", type=int, default=500, help="Instructions per second")
    parser.add_argument(
        "--random-mask-register",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="CXKK masks the random byte with the current VX (default); --no-random-mask-register masks with KK",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    )
    parser.add_argument(
        "--headless", type=int, default=None, metavar="CYCLES",
        help="Run CYCLES instructions without a window and print the display",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logger = ConsoleLogger("chipax", log_level=args.log_level)

    try:
        config = EmulatorConfig(
            cpu_frequency=args.cpu_frequency,
            random_mask_register=args.random_mask_register,
            log_level=args.log_level,
        )
        emulator = Emulator.from_file(args.rom, config=config)
        if args.headless is not None:
            return run_headless(emulator, args.headless)
        return run_window(emulator, scale=args.scale, color_scheme=args.color_scheme)
    except Chip8Error as e:
        logger.error(str(e))
        return 1
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2


if __name__ == "__main__":
    sys.exit(main())
