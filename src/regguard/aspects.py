"""Async middleware ("aspect") composition.

An aspect is ``async def aspect(ctx, next_) -> result``. It may change the
context before calling ``next_``, transform what ``next_`` returns,
short-circuit by never calling ``next_``, or catch errors raised below it.
The first aspect in a list is the outermost one.
"""

from collections.abc import Awaitable, Callable, Sequence
from functools import partial
from typing import TypeVar

C = TypeVar("C")
R = TypeVar("R")

Next = Callable[[C], Awaitable[R]]
Aspect = Callable[[C, Next[C, R]], Awaitable[R]]


def apply_aspects(base: Next[C, R], aspects: Sequence[Aspect[C, R]]) -> Next[C, R]:
    """Wrap ``base`` in ``aspects``.

    Args:
        base: Innermost async callable
        aspects: Middlewares, outermost first

    Returns:
        Async callable taking the context and returning the final result
    """
    wrapped = base
    for aspect in reversed(aspects):
        wrapped = partial(_invoke, aspect, wrapped)
    return wrapped


async def _invoke(aspect: Aspect[C, R], next_: Next[C, R], ctx: C) -> R:
    return await aspect(ctx, next_)
