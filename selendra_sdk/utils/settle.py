"""
Joins over independently failing coroutines.

- settle_all(branches)            -> every branch's Outcome (value or error)
- first_terminal(branches, accept) -> first Outcome whose value is accepted,
                                      losers cancelled and awaited

All branches are scheduled before anything is awaited. A branch's exception is
captured in its Outcome and never hides another branch's result. Whatever way
the join exits (result, error, caller cancellation), no branch task is left
running.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import (Awaitable, Callable, Dict, Generic, List, Mapping,
                    Optional, Set, Tuple, TypeVar)

T = TypeVar("T")

__all__ = ["Outcome", "settle_all", "first_terminal"]


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of one branch: exactly one of `value` / `error` is meaningful."""

    name: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def _outcome(name: str, task: "asyncio.Future[T]") -> Outcome[T]:
    if task.cancelled():
        return Outcome(name=name, error=asyncio.CancelledError(f"branch {name} cancelled"))
    exc = task.exception()
    if exc is not None:
        return Outcome(name=name, error=exc)
    return Outcome(name=name, value=task.result())


async def _cancel_and_wait(pending: Set["asyncio.Future[T]"]) -> None:
    for t in pending:
        t.cancel()
    if pending:
        await asyncio.wait(pending)


async def settle_all(branches: Mapping[str, Awaitable[T]]) -> Dict[str, Outcome[T]]:
    """
    Run every branch concurrently and return {name: Outcome} in branch order.
    """
    tasks: Dict[str, "asyncio.Future[T]"] = {
        name: asyncio.ensure_future(aw) for name, aw in branches.items()
    }
    try:
        if tasks:
            await asyncio.wait(tasks.values())
    finally:
        await _cancel_and_wait({t for t in tasks.values() if not t.done()})
    return {name: _outcome(name, t) for name, t in tasks.items()}


async def first_terminal(
    branches: Mapping[str, Awaitable[T]],
    accept: Callable[[T], bool],
) -> Tuple[Optional[Outcome[T]], Dict[str, Outcome[T]]]:
    """
    Race the branches; return (winner, outcomes_so_far).

    The winner is the first successful Outcome whose value satisfies `accept`.
    When several branches finish in the same loop step, branch order breaks
    the tie. Winner is None when every branch finished without an accepted
    value (errors included).
    """
    order: List[str] = list(branches)
    by_task: Dict["asyncio.Future[T]", str] = {
        asyncio.ensure_future(aw): name for name, aw in branches.items()
    }
    pending: Set["asyncio.Future[T]"] = set(by_task)
    outcomes: Dict[str, Outcome[T]] = {}
    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
            for task in sorted(done, key=lambda t: order.index(by_task[t])):
                outcome = _outcome(by_task[task], task)
                outcomes[outcome.name] = outcome
                if outcome.ok and accept(outcome.value):  # type: ignore[arg-type]
                    return outcome, outcomes
        return None, outcomes
    finally:
        await _cancel_and_wait(pending)
