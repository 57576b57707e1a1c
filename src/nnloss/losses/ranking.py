# src/nnloss/losses/ranking.py
"""
Pairwise and ranking losses.

MarginRankingLoss takes both inputs stacked in one prediction tensor
([input1; input2] along axis 0) and returns a gradient stacked the same way.
CosineEmbeddingLoss compares prediction and target pair by pair:

    0-D / 1-D   one pair
    2-D         one pair per column (features x batch)
    3-D and up  one pair per slice along axis 0, each slice flattened

Under reduction="mean" these losses average over pairs.
"""
from dataclasses import dataclass

import numpy as np

from ..core.utils import as_array, check_same_shape, split_halves
from ..errors import ConfigurationError
from ..registry import LOSS_REGISTRY
from .base import ElementwiseLoss, Loss, ReductionConfig
from .reductions import Reduction, apply_reduction, reduce_grad


@dataclass
class MarginRankingConfig(ReductionConfig):
    margin: float = 1.0


@LOSS_REGISTRY.register("margin_ranking")
class MarginRankingLoss(Loss):
    """
    prediction = [x1; x2], target t in {1, -1} says which of the two should rank higher.

        L      = max(0, -t (x1 - x2) + margin)
        dL/dx1 = -t   where the hinge is active, else 0
        dL/dx2 = +t   where the hinge is active, else 0
    """

    name = "margin_ranking_loss"
    config_cls = MarginRankingConfig

    def _check(self, prediction, target):
        p, t = as_array(prediction), as_array(target)
        x1, _ = split_halves(p, self.name)
        check_same_shape(x1, t, self.name)
        return p, t

    def _hinge(self, p, t, cfg):
        x1, x2 = split_halves(p, self.name)
        return -t * (x1 - x2) + cfg.margin

    def _forward(self, p, t, cfg):
        return apply_reduction(np.maximum(0.0, self._hinge(p, t, cfg)), cfg.reduction)

    def _backward(self, p, t, cfg):
        active = self._hinge(p, t, cfg) > 0
        g1 = np.where(active, -t, 0.0)
        grad = np.concatenate([g1, -g1], axis=0)
        return reduce_grad(grad, cfg.reduction, count=t.size)


@dataclass
class CosineEmbeddingConfig(ReductionConfig):
    margin: float = 0.0
    similarity: bool = True
    reduction: Reduction = "sum"

    def validate(self) -> None:
        super().validate()
        if not -1.0 <= self.margin <= 1.0:
            raise ConfigurationError(f"cosine embedding margin must lie in [-1, 1], got {self.margin}")


def _to_pairs(x):
    # rows of the returned matrix are the vectors being compared
    if x.ndim < 2:
        return x.reshape(1, -1)
    if x.ndim == 2:
        return x.T
    return x.reshape(x.shape[0], -1)


def _from_pairs(g, shape):
    if len(shape) < 2:
        return g.reshape(shape)
    if len(shape) == 2:
        return np.ascontiguousarray(g.T)
    return g.reshape(shape)


def cosine_similarity(a, b):
    """
    Row-wise cosine similarity of two (pairs x dim) matrices and its gradient
    w.r.t. `a`:

        cos     = a.b / (|a| |b|)
        dcos/da = b / (|a| |b|) - cos a / |a|^2

    A pair with a zero-norm vector has cos = 0 and a zero gradient.
    """
    na = np.linalg.norm(a, axis=1)
    nb = np.linalg.norm(b, axis=1)
    valid = (na > 0) & (nb > 0)
    na_safe = np.where(valid, na, 1.0)
    nb_safe = np.where(valid, nb, 1.0)
    cos = np.where(valid, np.sum(a * b, axis=1) / (na_safe * nb_safe), 0.0)
    dcos = b / (na_safe * nb_safe)[:, None] - (cos / na_safe ** 2)[:, None] * a
    dcos = np.where(valid[:, None], dcos, 0.0)
    return cos, dcos


@LOSS_REGISTRY.register("cosine_embedding")
class CosineEmbeddingLoss(Loss):
    """
    similarity=True   L = 1 - cos(p, t)                   pull pairs together
    similarity=False  L = max(0, cos(p, t) - margin)      push pairs apart

    `similarity` is read from the config on every call, so it can be flipped
    between calls on the same instance: loss.config.similarity = False
    """

    name = "cosine_embedding_loss"
    config_cls = CosineEmbeddingConfig

    def _per_pair(self, p, t, cfg):
        cos, dcos = cosine_similarity(_to_pairs(p), _to_pairs(t))
        if cfg.similarity:
            return 1.0 - cos, -dcos
        active = cos - cfg.margin > 0
        return np.maximum(0.0, cos - cfg.margin), np.where(active[:, None], dcos, 0.0)

    def _forward(self, p, t, cfg):
        loss, _ = self._per_pair(p, t, cfg)
        return apply_reduction(loss, cfg.reduction)

    def _backward(self, p, t, cfg):
        loss, grad = self._per_pair(p, t, cfg)
        grad = reduce_grad(grad, cfg.reduction, count=loss.size)
        return _from_pairs(grad, p.shape)


@LOSS_REGISTRY.register("earth_mover")
class EarthMoverDistance(ElementwiseLoss):
    """
    Label-weighted linear score used as a lightweight Earth Mover proxy,
    not an optimal-transport distance:

        L = -p t,   dL/dp = -t
    """

    name = "earth_mover_distance"

    def _elementwise(self, p, t, cfg):
        return -p * t

    def _elementwise_grad(self, p, t, cfg):
        return -t
