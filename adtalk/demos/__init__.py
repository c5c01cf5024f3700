"""Live-demo snippets shown (and executed) during the talk."""

from .dual import Dual, derivative
from .numeric import central_difference, error_table, forward_difference
from .reverse import Var, gradient
from .sqrt import babylonian

__all__ = [
    "Dual",
    "derivative",
    "central_difference",
    "error_table",
    "forward_difference",
    "Var",
    "gradient",
    "babylonian",
]
