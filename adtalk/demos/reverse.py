"""Reverse-mode AD on a tape of scalar operations."""

from __future__ import annotations

import math
from typing import Callable, List, Tuple


class Var:
    """A scalar that records how it was computed.

    Each Var keeps its parents together with the local partial derivative
    with respect to each of them. ``backward`` walks the graph in reverse
    topological order and accumulates adjoints into ``grad``.
    """

    __slots__ = ("value", "grad", "parents")

    def __init__(self, value: float, parents: Tuple[Tuple["Var", float], ...] = ()) -> None:
        self.value = value
        self.grad = 0.0
        self.parents = parents

    def __repr__(self) -> str:
        return f"Var(value={self.value!r}, grad={self.grad!r})"

    @staticmethod
    def lift(other) -> "Var":
        return other if isinstance(other, Var) else Var(other)

    def __add__(self, other):
        other = Var.lift(other)
        return Var(self.value + other.value, ((self, 1.0), (other, 1.0)))

    __radd__ = __add__

    def __neg__(self):
        return Var(-self.value, ((self, -1.0),))

    def __sub__(self, other):
        return self + (-Var.lift(other))

    def __rsub__(self, other):
        return Var.lift(other) - self

    def __mul__(self, other):
        other = Var.lift(other)
        return Var(self.value * other.value, ((self, other.value), (other, self.value)))

    __rmul__ = __mul__

    def __truediv__(self, other):
        other = Var.lift(other)
        return Var(
            self.value / other.value,
            ((self, 1.0 / other.value), (other, -self.value / other.value ** 2)),
        )

    def __rtruediv__(self, other):
        return Var.lift(other) / self

    def __pow__(self, power: float):
        return Var(self.value ** power, ((self, power * self.value ** (power - 1)),))

    def _topological_order(self) -> List["Var"]:
        order: List[Var] = []
        visited = set()
        stack = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                order.append(node)
                continue
            if id(node) in visited:
                continue
            visited.add(id(node))
            stack.append((node, True))
            for parent, _ in node.parents:
                if id(parent) not in visited:
                    stack.append((parent, False))
        return order

    def backward(self) -> None:
        """Seed d(self)/d(self) = 1 and propagate adjoints to every input."""
        self.grad = 1.0
        for node in reversed(self._topological_order()):
            for parent, local in node.parents:
                parent.grad += local * node.grad


def sin(x):
    if isinstance(x, Var):
        return Var(math.sin(x.value), ((x, math.cos(x.value)),))
    return math.sin(x)


def cos(x):
    if isinstance(x, Var):
        return Var(math.cos(x.value), ((x, -math.sin(x.value)),))
    return math.cos(x)


def exp(x):
    if isinstance(x, Var):
        value = math.exp(x.value)
        return Var(value, ((x, value),))
    return math.exp(x)


def log(x):
    if isinstance(x, Var):
        return Var(math.log(x.value), ((x, 1.0 / x.value),))
    return math.log(x)


def gradient(f: Callable[..., Var], *xs: float) -> List[float]:
    """All partial derivatives of a scalar ``f`` from a single reverse sweep."""
    inputs = [Var(x) for x in xs]
    f(*inputs).backward()
    return [v.grad for v in inputs]
