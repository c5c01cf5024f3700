"""Forward-mode AD with dual numbers."""

from __future__ import annotations

import math
from typing import Callable, Union

Number = Union[int, float]


class Dual:
    """A value paired with its derivative.

    Arithmetic on a Dual applies the usual rules of differentiation to the
    derivative component, so evaluating ``f(Dual(x, 1.0))`` yields
    ``f(x)`` and ``f'(x)`` in one pass.
    """

    __slots__ = ("value", "derivative")

    def __init__(self, value: Number, derivative: Number = 0.0) -> None:
        self.value = value
        self.derivative = derivative

    def __repr__(self) -> str:
        return f"Dual({self.value!r}, {self.derivative!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Dual):
            return self.value == other.value and self.derivative == other.derivative
        return NotImplemented

    __hash__ = None

    @staticmethod
    def lift(other: Union["Dual", Number]) -> "Dual":
        return other if isinstance(other, Dual) else Dual(other, 0.0)

    def __add__(self, other):
        other = Dual.lift(other)
        return Dual(self.value + other.value, self.derivative + other.derivative)

    __radd__ = __add__

    def __neg__(self):
        return Dual(-self.value, -self.derivative)

    def __sub__(self, other):
        return self + (-Dual.lift(other))

    def __rsub__(self, other):
        return Dual.lift(other) - self

    def __mul__(self, other):
        other = Dual.lift(other)
        return Dual(
            self.value * other.value,
            self.derivative * other.value + self.value * other.derivative,
        )

    __rmul__ = __mul__

    def __truediv__(self, other):
        other = Dual.lift(other)
        return Dual(
            self.value / other.value,
            (self.derivative * other.value - self.value * other.derivative) / other.value ** 2,
        )

    def __rtruediv__(self, other):
        return Dual.lift(other) / self

    def __pow__(self, power):
        if isinstance(power, Dual):
            # d(u^v) = u^v (v' log u + v u'/u)
            value = self.value ** power.value
            return Dual(
                value,
                value * (power.derivative * math.log(self.value) + power.value * self.derivative / self.value),
            )
        return Dual(self.value ** power, power * self.value ** (power - 1) * self.derivative)

    def __rpow__(self, base):
        return Dual.lift(base) ** self


def sin(x):
    if isinstance(x, Dual):
        return Dual(math.sin(x.value), math.cos(x.value) * x.derivative)
    return math.sin(x)


def cos(x):
    if isinstance(x, Dual):
        return Dual(math.cos(x.value), -math.sin(x.value) * x.derivative)
    return math.cos(x)


def exp(x):
    if isinstance(x, Dual):
        value = math.exp(x.value)
        return Dual(value, value * x.derivative)
    return math.exp(x)


def log(x):
    if isinstance(x, Dual):
        return Dual(math.log(x.value), x.derivative / x.value)
    return math.log(x)


def sqrt(x):
    if isinstance(x, Dual):
        value = math.sqrt(x.value)
        return Dual(value, x.derivative / (2 * value))
    return math.sqrt(x)


def derivative(f: Callable, x: Number) -> float:
    """f'(x) by seeding a unit perturbation."""
    return f(Dual(x, 1.0)).derivative
