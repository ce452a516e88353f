"""Router configuration.

RouterConfig is a frozen dataclass: immutable after creation, so a running
router cannot have its behaviour changed underneath in-flight requests.
"""

from dataclasses import dataclass
from pathlib import Path

from bifrost.request import DEFAULT_MAX_BODY_SIZE


@dataclass(frozen=True, slots=True)
class RouterConfig:
    """Router configuration. All fields have defaults::

        config = RouterConfig(public_dir="dist", spa=True, livereload=True)
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 3000
    debug: bool = False

    # Routes discovered from a directory of page modules
    pages_dir: str | Path | None = None

    # Static fallback
    public_dir: str | Path = "public"
    spa: bool = False
    livereload: bool = False

    # Per-request limits; None / 0 disables
    timeout: float | None = 30.0
    max_body_size: int = DEFAULT_MAX_BODY_SIZE

    def __post_init__(self) -> None:
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive or None")
        if self.max_body_size < 0:
            raise ValueError("max_body_size must not be negative")
