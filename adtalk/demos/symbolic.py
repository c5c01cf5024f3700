"""A toy computer-algebra system, enough to show expression swell."""

from __future__ import annotations

import math
from typing import Dict, Union

Number = Union[int, float]


def _wrap(value: Union["Expr", Number]) -> "Expr":
    return value if isinstance(value, Expr) else Const(value)


class Expr:
    def __add__(self, other):
        return Add(self, _wrap(other))

    def __radd__(self, other):
        return Add(_wrap(other), self)

    def __sub__(self, other):
        return Add(self, Mul(Const(-1), _wrap(other)))

    def __rsub__(self, other):
        return Add(_wrap(other), Mul(Const(-1), self))

    def __mul__(self, other):
        return Mul(self, _wrap(other))

    def __rmul__(self, other):
        return Mul(_wrap(other), self)

    def __truediv__(self, other):
        return Mul(self, Pow(_wrap(other), -1))

    def __pow__(self, power: Number):
        return Pow(self, power)

    def __neg__(self):
        return Mul(Const(-1), self)

    def diff(self, var: "Var") -> "Expr":
        raise NotImplementedError

    def evaluate(self, env: Dict[str, Number]) -> float:
        raise NotImplementedError

    def size(self) -> int:
        """Number of nodes in the tree."""
        return 1 + sum(child.size() for child in self.children())

    def children(self):
        return ()

    def simplify(self) -> "Expr":
        return self


class Const(Expr):
    def __init__(self, value: Number) -> None:
        self.value = value

    def __repr__(self) -> str:
        return repr(self.value)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Const) and other.value == self.value

    __hash__ = None

    def diff(self, var):
        return Const(0)

    def evaluate(self, env):
        return self.value


class Var(Expr):
    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return self.name

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Var) and other.name == self.name

    __hash__ = None

    def diff(self, var):
        return Const(1 if var.name == self.name else 0)

    def evaluate(self, env):
        return env[self.name]


class Add(Expr):
    def __init__(self, left: Expr, right: Expr) -> None:
        self.left, self.right = left, right

    def __repr__(self) -> str:
        return f"({self.left!r} + {self.right!r})"

    def children(self):
        return (self.left, self.right)

    def diff(self, var):
        return Add(self.left.diff(var), self.right.diff(var))

    def evaluate(self, env):
        return self.left.evaluate(env) + self.right.evaluate(env)

    def simplify(self):
        left, right = self.left.simplify(), self.right.simplify()
        if isinstance(left, Const) and isinstance(right, Const):
            return Const(left.value + right.value)
        if left == Const(0):
            return right
        if right == Const(0):
            return left
        return Add(left, right)


class Mul(Expr):
    def __init__(self, left: Expr, right: Expr) -> None:
        self.left, self.right = left, right

    def __repr__(self) -> str:
        return f"{self.left!r}*{self.right!r}"

    def children(self):
        return (self.left, self.right)

    def diff(self, var):
        # product rule; the duplication here is the swell
        return Add(Mul(self.left.diff(var), self.right), Mul(self.left, self.right.diff(var)))

    def evaluate(self, env):
        return self.left.evaluate(env) * self.right.evaluate(env)

    def simplify(self):
        left, right = self.left.simplify(), self.right.simplify()
        if isinstance(left, Const) and isinstance(right, Const):
            return Const(left.value * right.value)
        if left == Const(0) or right == Const(0):
            return Const(0)
        if left == Const(1):
            return right
        if right == Const(1):
            return left
        return Mul(left, right)


class Pow(Expr):
    def __init__(self, base: Expr, power: Number) -> None:
        self.base, self.power = base, power

    def __repr__(self) -> str:
        return f"{self.base!r}^{self.power!r}"

    def children(self):
        return (self.base,)

    def diff(self, var):
        return Mul(Mul(Const(self.power), Pow(self.base, self.power - 1)), self.base.diff(var))

    def evaluate(self, env):
        return self.base.evaluate(env) ** self.power

    def simplify(self):
        base = self.base.simplify()
        if self.power == 0:
            return Const(1)
        if self.power == 1:
            return base
        if isinstance(base, Const):
            return Const(base.value ** self.power)
        return Pow(base, self.power)


class _Unary(Expr):
    name = ""
    fn = staticmethod(lambda x: x)

    def __init__(self, arg: Expr) -> None:
        self.arg = _wrap(arg)

    def __repr__(self) -> str:
        return f"{self.name}({self.arg!r})"

    def children(self):
        return (self.arg,)

    def evaluate(self, env):
        return self.fn(self.arg.evaluate(env))

    def simplify(self):
        return type(self)(self.arg.simplify())


class Sin(_Unary):
    name = "sin"
    fn = staticmethod(math.sin)

    def diff(self, var):
        return Mul(Cos(self.arg), self.arg.diff(var))


class Cos(_Unary):
    name = "cos"
    fn = staticmethod(math.cos)

    def diff(self, var):
        return Mul(Mul(Const(-1), Sin(self.arg)), self.arg.diff(var))


class Exp(_Unary):
    name = "exp"
    fn = staticmethod(math.exp)

    def diff(self, var):
        return Mul(Exp(self.arg), self.arg.diff(var))


class Log(_Unary):
    name = "log"
    fn = staticmethod(math.log)

    def diff(self, var):
        return Mul(Pow(self.arg, -1), self.arg.diff(var))
