# src/nnloss/losses/regression.py
"""
Regression losses: residual r = prediction - target, elementwise.

All of these default to reduction="mean" except LogCoshLoss, which sums.
Under "mean" the gradient is divided by the total element count, not by the
batch (column) count.
"""
from dataclasses import dataclass

import numpy as np

from ..core.utils import as_array, check_same_shape
from ..errors import ConfigurationError, DomainViolation
from ..registry import LOSS_REGISTRY
from .base import ElementwiseLoss, Loss, LossConfig, LossOut, ReductionConfig
from .reductions import Reduction, apply_reduction, check_reduction
from .utils import log_cosh


def mse(yhat, y, reduction="mean", sample_weight=None, return_grad=False):
    yhat, y = as_array(yhat), as_array(y)
    check_same_shape(yhat, y, "mse")
    check_reduction(reduction)
    diff = yhat - y
    loss = np.square(diff)
    if return_grad:
        grad = 2 * diff
        if sample_weight is not None:
            grad = grad * sample_weight
        return LossOut(
            value=apply_reduction(loss, reduction, sample_weight),
            grad=grad / np.maximum(1, y.size) if reduction == "mean" else grad
        )
    return LossOut(value=apply_reduction(loss, reduction, sample_weight))


@LOSS_REGISTRY.register("mse")
class MeanSquaredError(ElementwiseLoss):
    """L = (p - t)^2, dL/dp = 2(p - t)."""

    name = "mean_squared_error"

    def _elementwise(self, p, t, cfg):
        return np.square(p - t)

    def _elementwise_grad(self, p, t, cfg):
        return 2.0 * (p - t)


@LOSS_REGISTRY.register("l1")
class L1Loss(ElementwiseLoss):
    """L = |p - t|, dL/dp = sign(p - t) (0 where p == t)."""

    name = "l1_loss"

    def _elementwise(self, p, t, cfg):
        return np.abs(p - t)

    def _elementwise_grad(self, p, t, cfg):
        return np.sign(p - t)


MeanAbsoluteError = L1Loss
LOSS_REGISTRY.register("mae")(L1Loss)


@LOSS_REGISTRY.register("msle")
class MeanSquaredLogarithmicError(ElementwiseLoss):
    """
    L = (log(1 + p) - log(1 + t))^2
    dL/dp = 2 (log(1 + p) - log(1 + t)) / (1 + p)

    Both tensors must be > -1.
    """

    name = "mean_squared_logarithmic_error"

    def _check(self, prediction, target):
        p, t = super()._check(prediction, target)
        if np.any(p <= -1) or np.any(t <= -1):
            raise DomainViolation(f"{self.name}: prediction and target must be > -1")
        return p, t

    def _elementwise(self, p, t, cfg):
        return np.square(np.log1p(p) - np.log1p(t))

    def _elementwise_grad(self, p, t, cfg):
        return 2.0 * (np.log1p(p) - np.log1p(t)) / (1.0 + p)


@LOSS_REGISTRY.register("mbe")
class MeanBiasError(ElementwiseLoss):
    """
    L = t - p. The gradient is the constant -1 for every element and every
    reduction; it carries direction only, never magnitude.
    """

    name = "mean_bias_error"

    def _elementwise(self, p, t, cfg):
        return t - p

    def _backward(self, p, t, cfg):
        return -np.ones_like(p)


@LOSS_REGISTRY.register("mape")
class MeanAbsolutePercentageError(Loss):
    """
    L = 100 * mean(|(p - t) / t|)
    dL/dp = 100 * sign(p - t) / t / N

    A zero target is outside the domain.
    """

    name = "mean_absolute_percentage_error"
    config_cls = LossConfig

    def _check(self, prediction, target):
        p, t = super()._check(prediction, target)
        if np.any(t == 0):
            raise DomainViolation(f"{self.name}: target contains zeros")
        return p, t

    def _forward(self, p, t, cfg):
        return 100.0 * apply_reduction(np.abs((p - t) / t), "mean")

    def _backward(self, p, t, cfg):
        return 100.0 * np.sign(p - t) / t / max(1, p.size)


@dataclass
class HuberConfig(ReductionConfig):
    delta: float = 1.0

    def validate(self) -> None:
        super().validate()
        if not self.delta > 0:
            raise ConfigurationError(f"huber delta must be positive, got {self.delta}")


@LOSS_REGISTRY.register("huber")
class HuberLoss(ElementwiseLoss):
    """
    Quadratic for |r| <= delta, linear beyond:

        L = 0.5 r^2                    if |r| <= delta
            delta (|r| - 0.5 delta)    otherwise

    dL/dp = r inside the band, delta * sign(r) outside; both branches meet at
    |r| = delta.
    """

    name = "huber_loss"
    config_cls = HuberConfig

    def _elementwise(self, p, t, cfg):
        r = p - t
        ar = np.abs(r)
        return np.where(ar <= cfg.delta, 0.5 * np.square(r), cfg.delta * (ar - 0.5 * cfg.delta))

    def _elementwise_grad(self, p, t, cfg):
        r = p - t
        return np.where(np.abs(r) <= cfg.delta, r, cfg.delta * np.sign(r))


@dataclass
class LogCoshConfig(ReductionConfig):
    a: float = 1.0
    reduction: Reduction = "sum"

    def validate(self) -> None:
        super().validate()
        if not self.a > 0:
            raise ConfigurationError(f"log-cosh smoothing factor must be positive, got {self.a}")


@LOSS_REGISTRY.register("log_cosh")
class LogCoshLoss(ElementwiseLoss):
    """
    L = log(cosh(a (p - t))) / a, dL/dp = tanh(a (p - t)).
    Behaves like MSE near zero and like MAE for large residuals; larger `a`
    sharpens the transition.
    """

    name = "log_cosh_loss"
    config_cls = LogCoshConfig

    def _elementwise(self, p, t, cfg):
        return log_cosh(cfg.a * (p - t)) / cfg.a

    def _elementwise_grad(self, p, t, cfg):
        return np.tanh(cfg.a * (p - t))
