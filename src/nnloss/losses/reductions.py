# src/nnloss/losses/reductions.py
import numpy as np
from typing import Literal

from ..errors import ConfigurationError

Reduction = Literal["none", "mean", "sum"]
REDUCTIONS = ("none", "mean", "sum")


def check_reduction(reduction, allowed=REDUCTIONS) -> None:
    if reduction not in allowed:
        raise ConfigurationError(f"unknown reduction {reduction!r}, expected one of {allowed}")


def apply_reduction(x, reduction: Reduction = "mean", sample_weight=None):
    if sample_weight is not None:
        x = x * sample_weight
    if reduction == "none":
        return x
    if reduction == "sum":
        return np.sum(x, dtype=np.float64)
    return np.sum(x, dtype=np.float64) / max(1, x.size)


def reduce_grad(grad, reduction: Reduction = "mean", count=None):
    # mean divides by the number of reduced elements, sum/none leave it alone
    if reduction == "mean":
        return grad / max(1, grad.size if count is None else count)
    return grad
