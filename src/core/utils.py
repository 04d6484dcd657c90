import time


def time_now_ms() -> int:
    return int(time.time() * 1000)


def clamp_limit(limit: int, maximum: int) -> int:
    """Zero or over-the-cap limits fall back to the endpoint maximum."""
    if limit <= 0 or limit > maximum:
        return maximum
    return limit
