# src/nnloss/losses/classification.py
"""
Probability and classification losses.

Inputs are either probabilities (CrossEntropyError, KLDivergence, DiceLoss,
PoissonNLLLoss with log_input=False) or raw scores/logits
(SigmoidCrossEntropyError, SoftMarginLoss, HingeEmbeddingLoss,
PoissonNLLLoss with log_input=True).
"""
from dataclasses import dataclass

import numpy as np

from ..errors import ConfigurationError, DomainViolation
from ..registry import LOSS_REGISTRY
from .base import ElementwiseLoss, Loss, LossConfig, ReductionConfig
from .reductions import Reduction, apply_reduction, reduce_grad
from .utils import log_sigmoid, softplus, stable_sigmoid, xlogx


@dataclass
class CrossEntropyConfig(ReductionConfig):
    eps: float = 1e-10
    reduction: Reduction = "sum"

    def validate(self) -> None:
        super().validate()
        if self.eps < 0:
            raise ConfigurationError(f"eps must be non-negative, got {self.eps}")


@LOSS_REGISTRY.register("cross_entropy")
class CrossEntropyError(ElementwiseLoss):
    """
    Binary cross-entropy on probabilities, eps keeps both logs finite at 0 and 1:

        L     = -[t log(p + eps) + (1 - t) log(1 - p + eps)]
        dL/dp = (1 - t) / (1 - p + eps) - t / (p + eps)
    """

    name = "cross_entropy_error"
    config_cls = CrossEntropyConfig

    def _elementwise(self, p, t, cfg):
        return -(t * np.log(p + cfg.eps) + (1.0 - t) * np.log(1.0 - p + cfg.eps))

    def _elementwise_grad(self, p, t, cfg):
        return (1.0 - t) / (1.0 - p + cfg.eps) - t / (p + cfg.eps)


@dataclass
class SigmoidCrossEntropyConfig(ReductionConfig):
    reduction: Reduction = "sum"


@LOSS_REGISTRY.register("sigmoid_cross_entropy")
class SigmoidCrossEntropyError(ElementwiseLoss):
    """
    Cross-entropy computed straight from pre-sigmoid logits:

        L     = max(p, 0) - p t + log(1 + exp(-|p|))
        dL/dp = sigmoid(p) - t

    exp(-p) is never formed, so large positive logits don't overflow.
    """

    name = "sigmoid_cross_entropy_error"
    config_cls = SigmoidCrossEntropyConfig

    def _elementwise(self, p, t, cfg):
        # softplus(p) == max(p, 0) + log1p(exp(-|p|))
        return softplus(p) - p * t

    def _elementwise_grad(self, p, t, cfg):
        return stable_sigmoid(p) - t


@dataclass
class PoissonNLLConfig(ReductionConfig):
    log_input: bool = True
    full: bool = False
    eps: float = 1e-8

    def validate(self) -> None:
        super().validate()
        if self.eps < 0:
            raise ConfigurationError(f"eps must be non-negative, got {self.eps}")


@LOSS_REGISTRY.register("poisson_nll")
class PoissonNLLLoss(ElementwiseLoss):
    """
    Negative log likelihood of a Poisson-distributed target.

    log_input=True   prediction is log(rate):  L = exp(p) - t p
    log_input=False  prediction is the rate:   L = p - t log(p + eps)
                     (the rate has to lie in [0, 1])

    full=True adds the Stirling approximation of log(t!)

        t log(t) - t + 0.5 log(2 pi t)

    for targets > 1; smaller targets contribute 0.
    """

    name = "poisson_nll_loss"
    config_cls = PoissonNLLConfig

    def _inputs(self, prediction, target):
        p, t = super()._inputs(prediction, target)
        if not self.config.log_input and (np.any(p < 0) or np.any(p > 1)):
            raise DomainViolation(f"{self.name}: probabilities must lie in [0, 1] when log_input is False")
        return p, t

    def _elementwise(self, p, t, cfg):
        if cfg.log_input:
            loss = np.exp(p) - t * p
        else:
            loss = p - t * np.log(p + cfg.eps)
        if cfg.full:
            loss = loss + self.stirling(t)
        return loss

    def _elementwise_grad(self, p, t, cfg):
        if cfg.log_input:
            return np.exp(p) - t
        return 1.0 - t / (p + cfg.eps)

    @staticmethod
    def stirling(t):
        mask = t > 1
        # dummy value where masked out, keeps log() away from 0
        ts = np.where(mask, t, 1.0)
        return np.where(mask, ts * np.log(ts) - ts + 0.5 * np.log(2.0 * np.pi * ts), 0.0)


@dataclass
class KLDivergenceConfig(LossConfig):
    take_mean: bool = False


@LOSS_REGISTRY.register("kl_divergence")
class KLDivergence(Loss):
    """
    KL(t || p) over tensors that already hold probabilities (not logits):

        L     = sum t (log t - log p),   0 log 0 = 0
        dL/dp = -t / p

    take_mean averages over all elements instead of summing.
    """

    name = "kl_divergence"
    config_cls = KLDivergenceConfig

    def _check(self, prediction, target):
        p, t = super()._check(prediction, target)
        if np.any(p <= 0):
            raise DomainViolation(f"{self.name}: prediction must be strictly positive")
        if np.any(t < 0):
            raise DomainViolation(f"{self.name}: target must be non-negative")
        return p, t

    def _forward(self, p, t, cfg):
        loss = xlogx(t) - t * np.log(p)
        return apply_reduction(loss, "mean" if cfg.take_mean else "sum")

    def _backward(self, p, t, cfg):
        return reduce_grad(-t / p, "mean" if cfg.take_mean else "sum")


@dataclass
class DiceConfig(LossConfig):
    smooth: float = 1.0

    def validate(self) -> None:
        if self.smooth < 0:
            raise ConfigurationError(f"dice smoothing must be non-negative, got {self.smooth}")


@LOSS_REGISTRY.register("dice")
class DiceLoss(Loss):
    """
    L = 1 - (2 sum(p t) + s) / (sum(p^2) + sum(t^2) + s)

    With N = 2 sum(p t) + s and D = sum(p^2) + sum(t^2) + s, the quotient rule gives

        dL/dp = -2 (t D - p N) / D^2

    s guards the 0/0 case of two all-zero tensors.
    """

    name = "dice_loss"
    config_cls = DiceConfig

    def _terms(self, p, t, cfg):
        numerator = 2.0 * np.sum(p * t) + cfg.smooth
        denominator = np.sum(p * p) + np.sum(t * t) + cfg.smooth
        if denominator == 0:
            raise DomainViolation(f"{self.name}: all-zero inputs need a positive smoothing constant")
        return numerator, denominator

    def _forward(self, p, t, cfg):
        numerator, denominator = self._terms(p, t, cfg)
        return 1.0 - numerator / denominator

    def _backward(self, p, t, cfg):
        numerator, denominator = self._terms(p, t, cfg)
        return -2.0 * (t * denominator - p * numerator) / denominator ** 2


@dataclass
class SoftMarginConfig(ReductionConfig):
    reduction: Reduction = "sum"


@LOSS_REGISTRY.register("soft_margin")
class SoftMarginLoss(ElementwiseLoss):
    """
    Two-class logistic loss with targets in {1, -1}:

        L     = log(1 + exp(-t p))
        dL/dp = -t sigmoid(-t p)
    """

    name = "soft_margin_loss"
    config_cls = SoftMarginConfig

    def _elementwise(self, p, t, cfg):
        return -log_sigmoid(t * p)

    def _elementwise_grad(self, p, t, cfg):
        return -t * stable_sigmoid(-t * p)


@dataclass
class HingeEmbeddingConfig(ReductionConfig):
    margin: float = 1.0

    def validate(self) -> None:
        super().validate()
        if self.margin < 0:
            raise ConfigurationError(f"hinge embedding margin must be non-negative, got {self.margin}")


@LOSS_REGISTRY.register("hinge_embedding")
class HingeEmbeddingLoss(ElementwiseLoss):
    """
    L     = max(0, margin - t p)
    dL/dp = -t inside the margin, 0 past it

    Targets are labels in {1, -1}; a 0 label is read as -1.
    """

    name = "hinge_embedding_loss"
    config_cls = HingeEmbeddingConfig

    def _check(self, prediction, target):
        p, t = super()._check(prediction, target)
        if not np.all(np.isin(t, (-1.0, 0.0, 1.0))):
            raise DomainViolation(f"{self.name}: target labels must be 1 or -1")
        return p, np.where(t == 0, -1.0, t)

    def _elementwise(self, p, t, cfg):
        return np.maximum(0.0, cfg.margin - t * p)

    def _elementwise_grad(self, p, t, cfg):
        return np.where(cfg.margin - t * p > 0, -t, 0.0)
