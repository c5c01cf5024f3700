"""The running example, differentiated by hand."""

import math


def f(x):
    return math.sin(x) * math.exp(x)


def df(x):
    # product rule: (sin x)' e^x + sin x (e^x)'
    return math.cos(x) * math.exp(x) + math.sin(x) * math.exp(x)
