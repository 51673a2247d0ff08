"""
Fan-out / fan-in helper.

Runs independent callables on a thread pool and waits for every one of them.
A failure in one call is recorded, never raised early, and does not cancel
the others.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional


@dataclass(frozen=True)
class Outcome:
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_concurrently(calls: Iterable[Callable[[], Any]], max_workers: Optional[int] = None) -> list[Outcome]:
    """
    Run every call concurrently and return one Outcome per call, in input order.

    This is a join, not a race: it returns only after all calls have finished.
    """
    calls = list(calls)
    if not calls:
        return []

    with ThreadPoolExecutor(max_workers=max_workers or len(calls)) as executor:
        futures = [executor.submit(call) for call in calls]

    # Leaving the `with` block waits for all futures
    outcomes = []
    for future in futures:
        error = future.exception()
        if error is not None:
            outcomes.append(Outcome(error=error))
        else:
            outcomes.append(Outcome(value=future.result()))
    return outcomes
