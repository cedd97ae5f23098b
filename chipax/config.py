"""Emulator runtime configuration."""

from typing import Optional

from chex import dataclass

from chipax.constants import CPU_FREQUENCY, TIMER_FREQUENCY


@dataclass(frozen=True)
class EmulatorConfig:
    """Runtime settings for the emulation driver.

    Attributes:
        cpu_frequency: Instructions executed per second of wall time
        timer_frequency: Delay/sound timer decrements per second
        tick_sleep: Seconds the run loop sleeps between ticks
        max_catch_up: Optional upper bound in seconds on the wall time one tick
            may cover; cycles beyond it are dropped with a warning
        random_mask_register: If True, CXKK masks the random byte with the
            current value of VX; if False, with the KK operand
        log_level: Console log level for the emulator loggers
    """
    cpu_frequency: int = CPU_FREQUENCY
    timer_frequency: int = TIMER_FREQUENCY
    tick_sleep: float = 0.01
    max_catch_up: Optional[float] = None
    random_mask_register: bool = True
    log_level: str = "INFO"

    def __post_init__(self):
        if self.cpu_frequency <= 0:
            raise ValueError(f"cpu_frequency must be positive, got {self.cpu_frequency}")
        if self.timer_frequency <= 0:
            raise ValueError(f"timer_frequency must be positive, got {self.timer_frequency}")
        if self.tick_sleep < 0:
            raise ValueError(f"tick_sleep must not be negative, got {self.tick_sleep}")
        if self.max_catch_up is not None and self.max_catch_up <= 0:
            raise ValueError(f"max_catch_up must be positive, got {self.max_catch_up}")
