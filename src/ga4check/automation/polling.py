from typing import Callable, Optional, TypeVar

T = TypeVar("T")


def poll_until(
    probe: Callable[[], Optional[T]],
    timeout_ms: int,
    wait: Callable[[int], None],
    clock: Callable[[], int],
    interval_ms: int = 250,
) -> Optional[T]:
    """Call ``probe`` until it returns a truthy value or ``timeout_ms`` elapses.

    Returns the probe's value, or None on timeout. ``wait`` must yield to the
    browser (``engine.wait``) so request callbacks keep firing between probes.
    The probe is always evaluated at least once, and once more at the deadline.
    """
    deadline = clock() + max(timeout_ms, 0)
    interval_ms = max(interval_ms, 1)
    while True:
        result = probe()
        if result:
            return result
        remaining = deadline - clock()
        if remaining <= 0:
            return None
        wait(min(interval_ms, remaining))
