# src/nnloss/gradcheck.py
"""
Finite-difference checks for the closed-form gradients.

    numerical_gradient(loss, p, t)   central differences of loss.forward
    check_gradient(loss, p, t)       |g - g_num| / |g + g_num|
"""
import numpy as np

from .core.utils import as_array


def numerical_gradient(loss, prediction, target, eps: float = 1e-6) -> np.ndarray:
    p = as_array(prediction).copy()
    t = as_array(target)
    grad = np.zeros_like(p)
    for idx in np.ndindex(p.shape):
        orig = p[idx]
        p[idx] = orig + eps
        plus = float(loss.forward(p, t))
        p[idx] = orig - eps
        minus = float(loss.forward(p, t))
        p[idx] = orig
        grad[idx] = (plus - minus) / (2.0 * eps)
    return grad


def relative_error(analytic: np.ndarray, numeric: np.ndarray) -> float:
    denom = np.linalg.norm(analytic + numeric)
    if denom == 0:
        return float(np.linalg.norm(analytic - numeric))
    return float(np.linalg.norm(analytic - numeric) / denom)


def check_gradient(loss, prediction, target, eps: float = 1e-6) -> float:
    """Relative error between loss.backward and a central-difference estimate."""
    analytic = loss.backward(prediction, target)
    numeric = numerical_gradient(loss, prediction, target, eps)
    return relative_error(analytic, numeric)
