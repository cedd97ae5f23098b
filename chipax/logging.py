"""Console logging utilities for chipax.

This module provides a small console logging system used by the emulation
driver and the launcher: a level-filtered, colourised logger and a session
logger that reports configuration and run statistics. Headless runs get a
tqdm progress bar over the executed cycles.
"""

import sys
import time
from typing import Any, Dict, Optional

from tqdm import tqdm


LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConsoleLogger:
    """Flexible console logger with level filtering and colours."""

    def __init__(
        self,
        name: str = "chipax",
        log_level: str = "INFO",
        use_colors: bool = True,
        show_timestamps: bool = True,
        stream=None,
    ):
        self.name = name
        self.stream = stream if stream is not None else sys.stdout
        self.log_level = log_level.upper()
        if self.log_level not in LEVELS:
            raise ValueError(f"Unknown log level '{log_level}'. Available: {list(LEVELS)}")
        self.use_colors = (
            use_colors and hasattr(self.stream, "isatty") and self.stream.isatty()
        )
        self.show_timestamps = show_timestamps
        self.start_time = time.time()

        self.colors = (
            {
                "DEBUG": "\033[36m",
                "INFO": "\033[32m",
                "WARNING": "\033[33m",
                "ERROR": "\033[31m",
                "CRITICAL": "\033[35m",
                "RESET": "\033[0m"
            }
            if self.use_colors
            else {k: "" for k in LEVELS + ("RESET",)}
        )

        self.level_order = {level: i for i, level in enumerate(LEVELS)}

    def is_enabled_for(self, level: str) -> bool:
        """Check if message should be logged based on current log level."""
        return self.level_order.get(level.upper(), 1) >= self.level_order.get(
            self.log_level, 1
        )

    def _format_message(self, level: str, message: str) -> str:
        """Format log message with timestamp, level, and colors."""
        timestamp = (
            f"[{time.time() - self.start_time:8.2f}s]" if self.show_timestamps else ""
        )
        level_str = f"[{level:>8s}]"
        name_str = f"[{self.name}]"

        if self.use_colors:
            color = self.colors.get(level.upper(), "")
            reset = self.colors["RESET"]
            level_str = f"{color}{level_str}{reset}"

        return f"{timestamp}{level_str}{name_str} {message}"

    def log(self, level: str, message: str):
        """Log a message at the specified level."""
        if self.is_enabled_for(level):
            print(self._format_message(level, message), file=self.stream, flush=True)

    def debug(self, message: str):
        """Log debug message."""
        self.log("DEBUG", message)

    def info(self, message: str):
        """Log info message."""
        self.log("INFO", message)

    def warning(self, message: str):
        """Log warning message."""
        self.log("WARNING", message)

    def error(self, message: str):
        """Log error message."""
        self.log("ERROR", message)

    def critical(self, message: str):
        """Log critical message."""
        self.log("CRITICAL", message)


class SessionLogger(ConsoleLogger):
    """Logger for one emulation session: configuration, start and end."""

    def __init__(self, name: str = "chipax.driver", **kwargs):
        super().__init__(name, **kwargs)
        self.session_start: Optional[float] = None

    def log_session_start(self, rom_name: str, config: Dict[str, Any]):
        """Log ROM name and configuration."""
        self.session_start = time.time()
        self.info("=" * 60)
        self.info(f"Starting session for '{rom_name}' with configuration:")
        for key, value in config.items():
            if isinstance(value, float):
                self.info(f"  {key}: {value:.4f}")
            else:
                self.info(f"  {key}: {value}")
        self.info("=" * 60)

    def log_session_end(self, cycles: int, error: Optional[BaseException] = None):
        """Log run statistics, and the error that halted the session if any."""
        elapsed = time.time() - (self.session_start or self.start_time)
        rate = cycles / elapsed if elapsed > 0 else 0.0
        if error is not None:
            self.error(f"Session halted: {error}")
        self.info(f"Executed {cycles:,} cycles in {elapsed:.1f}s ({rate:.0f} Hz)")


def build_progress_bar(total: int, desc: Optional[str] = None, **kwargs) -> tqdm:
    """Build a tqdm progress bar over emulated cycles."""
    kwargs.setdefault("unit", "cycle")
    return tqdm(total=total, desc=desc or f"Emulating ({total:,} cycles)", **kwargs)

