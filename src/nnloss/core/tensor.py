from __future__ import annotations
import numpy as np
from .utils import ensure_grad, unbroadcast, topo_sort

"""
Pipeline Tensor
A tiny node type for the part of a model that sits *upstream* of a loss.
It wraps an array and records
- data: the numeric values it holds
- grad: the gradient of the loss w.r.t. these values
- _prev / _backward: the inputs it was computed from and how to push a gradient back to them

The losses in nnloss never go through this class to get their own derivative,
each one returns dL/dprediction in closed form. This class is what lets a loss
act as the terminal node of a small differentiable pipeline:

    h = (W @ x + b).sigmoid()
    value = loss.backprop(h, target)   # seeds h.backward(loss.backward(h.data, target))
    W.grad, b.grad                     # now hold dL/dW, dL/db

Backward Closure:
each op attaches a function that, given out.grad, accumulates the gradient of
its inputs. z = x + y gives dL/dx = dL/dz and dL/dy = dL/dz.
"""


class Tensor:
    def __init__(self, data, requires_grad=False, _op=None, _prev=()):
        self.data = np.asarray(data, dtype=float)
        self.grad = np.zeros_like(self.data) if requires_grad else None
        self.requires_grad = requires_grad
        self._op = _op
        self._prev = tuple(_prev)  # tuple over set to maintain order
        self._backward = lambda: None

    @property
    def shape(self):
        return self.data.shape

    def zero_grad(self):
        if self.grad is not None:
            self.grad[...] = 0

    """
    backward

    reverse-mode pass starting at this tensor.
    `grad` is dL/d(self). For a pipeline output feeding a loss this is the
    loss's backward() result, so it must have self's shape.
    Without a seed the tensor is treated as the loss itself (dL/dL = 1).
    """
    def backward(self, grad=None):
        if not self.requires_grad:
            return
        if grad is None:
            grad = np.ones_like(self.data)
        grad = np.asarray(grad, dtype=float)
        if grad.shape != self.data.shape:
            raise ValueError(f"seed gradient shape {grad.shape} does not match tensor shape {self.data.shape}")
        ensure_grad(self)
        self.grad += grad
        # outputs --> inputs, each node pushes its grad into its parents
        for t in topo_sort(self):
            t._backward()

    def __add__(self, other):
        other = other if isinstance(other, Tensor) else Tensor(other)
        requires = self.requires_grad or other.requires_grad
        out = Tensor(self.data + other.data, requires_grad=requires, _op="add", _prev=(self, other))

        def _backward():
            if self.requires_grad:
                ensure_grad(self)
                self.grad += unbroadcast(out.grad, self.data.shape)
            if other.requires_grad:
                ensure_grad(other)
                other.grad += unbroadcast(out.grad, other.data.shape)
        out._backward = _backward
        return out

    def __radd__(self, other):
        return self.__add__(other)

    def __neg__(self):
        return self * -1.0

    def __sub__(self, other):
        return self + (-(other if isinstance(other, Tensor) else Tensor(other)))

    def __mul__(self, other):
        other = other if isinstance(other, Tensor) else Tensor(other)
        requires = self.requires_grad or other.requires_grad
        out = Tensor(self.data * other.data, requires_grad=requires, _op="mul", _prev=(self, other))

        def _backward():
            if self.requires_grad:
                ensure_grad(self)
                self.grad += unbroadcast(out.grad * other.data, self.data.shape)
            if other.requires_grad:
                ensure_grad(other)
                other.grad += unbroadcast(out.grad * self.data, other.data.shape)
        out._backward = _backward
        return out

    def __rmul__(self, other):
        return self.__mul__(other)

    """
    matmul

    z = x @ y with x (m x n), y (n x p)
    dL/dx = dL/dz @ y.T
    dL/dy = x.T @ dL/dz
    """
    def __matmul__(self, other):
        other = other if isinstance(other, Tensor) else Tensor(other)
        requires = self.requires_grad or other.requires_grad
        out = Tensor(self.data @ other.data, requires_grad=requires, _op="matmul", _prev=(self, other))

        def _backward():
            if self.requires_grad:
                ensure_grad(self)
                self.grad += out.grad @ other.data.T
            if other.requires_grad:
                ensure_grad(other)
                other.grad += self.data.T @ out.grad
        out._backward = _backward
        return out

    """
    sigmoid

    s(x) = 1 / (1 + exp(-x)), ds/dx = s(x)(1 - s(x))
    the usual squashing layer in front of a reconstruction or cross-entropy loss
    """
    def sigmoid(self):
        # piecewise form, never exponentiates a large positive number
        x = self.data
        s = np.where(x >= 0, 1.0 / (1.0 + np.exp(-np.abs(x))), np.exp(-np.abs(x)) / (1.0 + np.exp(-np.abs(x))))
        out = Tensor(s, requires_grad=self.requires_grad, _op="sigmoid", _prev=(self,))

        def _backward():
            if self.requires_grad:
                ensure_grad(self)
                self.grad += s * (1.0 - s) * out.grad
        out._backward = _backward
        return out
