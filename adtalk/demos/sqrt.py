"""Square root by a fixed number of Newton (Babylonian) steps."""

from __future__ import annotations


def babylonian(x, iterations: int = 3):
    """Approximate sqrt(x) with ``t <- (t + x/t) / 2``.

    Written with plain arithmetic only, so it also runs on ``Dual`` and
    ``Var`` inputs and can be differentiated straight through the loop.
    """
    t = (1 + x) / 2
    for _ in range(iterations):
        t = (t + x / t) / 2
    return t
