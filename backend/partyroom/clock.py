import time


def now_ms() -> float:
    """Wall clock in epoch milliseconds.

    Every service reads time through this function so a test can freeze it.
    """
    return time.time() * 1000.0
