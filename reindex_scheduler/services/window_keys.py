"""Window quantization and Redis key naming for coalesced reindex requests."""

import math

# Member of the fields set meaning "reindex all fields"
ALL_FIELDS = "*"


def derive_window(now: float, latency: int) -> int:
    """
    Quantize a timestamp to the start of its coalescing window.

    Every instant in ``[k * latency, (k + 1) * latency)`` maps to
    ``k * latency``, so all processes agree on the window regardless of
    which one computes it.

    Args:
        now: Unix timestamp in seconds
        latency: Window size in seconds (must be positive)

    Returns:
        Window start as an integer Unix timestamp
    """
    if latency <= 0:
        raise ValueError(f"latency must be positive, got {latency}")
    return int(math.floor(now / latency)) * latency


def window_deadline(window_start: int, latency: int, margin: int) -> int:
    """Instant at which a window's job may claim it."""
    return window_start + latency + margin


def registry_key(prefix: str, index_name: str) -> str:
    """Build Redis key for an index's sorted set of open windows."""
    return f"{prefix}:{index_name}:windows"


def ids_key(prefix: str, index_name: str, window_start: int) -> str:
    """Build Redis key for a window's record-id set."""
    return f"{prefix}:{index_name}:{window_start}:ids"


def fields_key(prefix: str, index_name: str, window_start: int) -> str:
    """Build Redis key for a window's field-name set."""
    return f"{prefix}:{index_name}:{window_start}:fields"


def index_from_registry_key(prefix: str, key: str) -> str:
    """Recover the index name from a registry key."""
    return key[len(prefix) + 1 : -len(":windows")]
