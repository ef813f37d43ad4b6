from dataclasses import dataclass

# BatchGetItem accepts at most this many keys per request.
MAX_BATCH_GET_KEYS = 100


@dataclass(frozen=True)
class BackoffConfig:
    """
    Exponential backoff parameters shared by the unprocessed-keys loop
    and the transport retry loop.

    Each delay is the current interval randomized by +/- randomization_factor,
    after which the interval grows by `multiplier` up to `max_interval`.
    A `max_elapsed_time` of None means the policy never gives up.
    """

    initial_interval: float = 0.5
    multiplier: float = 1.5
    randomization_factor: float = 0.5
    max_interval: float = 60.0
    max_elapsed_time: float | None = None

    def __post_init__(self) -> None:
        if self.initial_interval < 0:
            raise ValueError("initial_interval must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if not 0 <= self.randomization_factor < 1:
            raise ValueError("randomization_factor must be in [0, 1)")
        if self.max_interval < self.initial_interval:
            raise ValueError("max_interval must be >= initial_interval")
        if self.max_elapsed_time is not None and self.max_elapsed_time <= 0:
            raise ValueError("max_elapsed_time must be positive or None")


DEFAULT_BACKOFF = BackoffConfig()
