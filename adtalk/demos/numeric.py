"""Finite-difference derivatives and their step-size trade-off."""

from __future__ import annotations

from typing import Callable, List, Sequence, Tuple


def forward_difference(f: Callable[[float], float], x: float, h: float = 1e-6) -> float:
    return (f(x + h) - f(x)) / h


def central_difference(f: Callable[[float], float], x: float, h: float = 1e-5) -> float:
    return (f(x + h) - f(x - h)) / (2 * h)


def error_table(
    f: Callable[[float], float],
    df: Callable[[float], float],
    x: float,
    steps: Sequence[float] = tuple(10.0 ** -k for k in range(1, 16, 2)),
) -> List[Tuple[float, float, float]]:
    """Absolute error of both schemes against the exact derivative.

    Each row is ``(h, forward error, central error)``. Errors shrink with
    ``h`` until floating-point cancellation takes over.
    """
    exact = df(x)
    return [
        (h, abs(forward_difference(f, x, h) - exact), abs(central_difference(f, x, h) - exact))
        for h in steps
    ]
