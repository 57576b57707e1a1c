import logging
import numpy as np
from typing import Tuple

from ..errors import ShapeMismatch

logger = logging.getLogger(__name__)


def ensure_grad(t) -> None:
    """Initializes gradient storage for the tensor if it doesn't exist."""
    if t.grad is None:
        t.grad = np.zeros_like(t.data)


def unbroadcast(grad: np.ndarray, target_shape: Tuple[int, ...]) -> np.ndarray:
    """
    Reverses broadcasting by summing along broadcasted dimensions.
    """
    while grad.ndim > len(target_shape):
        grad = grad.sum(axis=0)
    for i, (g, t) in enumerate(zip(grad.shape, target_shape)):
        if t == 1 and g != 1:
            grad = grad.sum(axis=i, keepdims=True)
    return grad


def topo_sort(root) -> reversed:
    """
    Performs a topological sort of the computation graph rooted at `root`,
    returning a list of Tensors in the order they should be backpropagated.
    """
    visited = set()
    order = []

    def build(v):
        if v not in visited:
            visited.add(v)
            for p in v._prev:
                build(p)
            order.append(v)

    build(root)
    return reversed(order)


def as_array(x) -> np.ndarray:
    """Coerce a tensor-like (list, scalar, ndarray) to a float ndarray."""
    return np.asarray(x, dtype=float)


def check_same_shape(prediction: np.ndarray, target: np.ndarray, name: str = "loss") -> None:
    """
    Fail fast when prediction and target shapes differ.
    No broadcasting: the gradient has to come back in the prediction's shape.
    """
    if prediction.shape != target.shape:
        logger.debug("%s: shape mismatch %s vs %s", name, prediction.shape, target.shape)
        raise ShapeMismatch(
            f"{name}: prediction shape {prediction.shape} does not match target shape {target.shape}",
            expected=prediction.shape,
            got=target.shape,
        )


def split_halves(x: np.ndarray, name: str = "loss") -> Tuple[np.ndarray, np.ndarray]:
    """
    Split a stacked input into its two halves along the leading axis.
    x = [input1; input2] --> (input1, input2)
    """
    if x.ndim == 0 or x.shape[0] % 2 != 0:
        raise ShapeMismatch(
            f"{name}: expected an even leading dimension to split into two halves, got shape {x.shape}",
            got=x.shape,
        )
    half = x.shape[0] // 2
    return x[:half], x[half:]
