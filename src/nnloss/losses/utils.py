"""
Numerically stable utilites for loss computations
"""

from __future__ import annotations
import numpy as np

Array = np.ndarray


def softplus(x: Array) -> Array:
    # softplus(x) = log(1 + exp(x))
    # = max(x, 0) + log1p(exp(-|x|)), exp never sees a positive argument
    x = np.asarray(x, dtype=float)
    return np.maximum(x, 0.0) + np.log1p(np.exp(-np.abs(x)))


def stable_sigmoid(logits: Array) -> Array:
    # Stable sigmoid from logits, uses piecewise formulation to avoid overflow when x << 0 or x >> 0
    x = np.asarray(logits, dtype=float)
    out = np.empty_like(x)
    pos = x >= 0
    neg = ~pos
    out[pos] = 1.0 / (1.0 + np.exp(-x[pos]))
    ex = np.exp(x[neg])
    out[neg] = ex / (1.0 + ex)
    return out


def log_sigmoid(logits: Array) -> Array:
    # log(sigmoid(x)) = -softplus(-x)
    return -softplus(-np.asarray(logits, dtype=float))


def log_cosh(x: Array) -> Array:
    # log(cosh(x)) = |x| + log1p(exp(-2|x|)) - log(2)
    # cosh overflows past |x| ~ 710, this form doesn't
    ax = np.abs(np.asarray(x, dtype=float))
    return ax + np.log1p(np.exp(-2.0 * ax)) - np.log(2.0)


def xlogx(x: Array) -> Array:
    # x * log(x) with the 0 * log(0) = 0 convention
    x = np.asarray(x, dtype=float)
    out = np.zeros_like(x)
    pos = x > 0
    out[pos] = x[pos] * np.log(x[pos])
    return out
