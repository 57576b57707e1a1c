# src/nnloss/losses/composite.py
from dataclasses import dataclass, field

import numpy as np

from ..core.utils import as_array, check_same_shape
from ..errors import ConfigurationError, ShapeMismatch
from ..registry import LOSS_REGISTRY
from .base import Loss, LossConfig
from .reductions import Reduction
from .regression import MeanSquaredError


@dataclass
class LatentPartition:
    """
    Layout of a combined model output along axis 0:

        [ reconstruction rows | latent_size mean rows | latent_size log-variance rows ]
    """

    latent_size: int = 0

    def split(self, x: np.ndarray):
        k = self.latent_size
        if x.ndim == 0 or x.shape[0] <= 2 * k:
            raise ShapeMismatch(
                f"output with shape {x.shape} has no room for a reconstruction block "
                f"plus 2 x {k} latent rows",
                got=x.shape,
            )
        n = x.shape[0] - 2 * k
        return x[:n], x[n:n + k], x[n + k:]

    def join(self, recon, mean, logvar) -> np.ndarray:
        return np.concatenate([recon, mean, logvar], axis=0)


def _default_inner():
    return MeanSquaredError()


@dataclass
class ReconstructionConfig(LossConfig):
    inner: Loss = field(default_factory=_default_inner)
    latent_size: int = 0
    beta: float = 1.0
    kl_reduction: Reduction = "mean"

    def validate(self) -> None:
        if not isinstance(self.inner, Loss):
            raise ConfigurationError(f"inner must be a Loss, got {type(self.inner).__name__}")
        if getattr(self.inner.config, "reduction", None) == "none":
            raise ConfigurationError("inner reconstruction loss must reduce to a scalar")
        if isinstance(self.latent_size, bool) or not isinstance(self.latent_size, (int, np.integer)) \
                or self.latent_size < 0:
            raise ConfigurationError(f"latent_size must be a non-negative int, got {self.latent_size!r}")
        if self.beta < 0:
            raise ConfigurationError(f"beta must be non-negative, got {self.beta}")
        if self.kl_reduction not in ("mean", "sum"):
            raise ConfigurationError(f"kl_reduction must be 'mean' or 'sum', got {self.kl_reduction!r}")


@LOSS_REGISTRY.register("reconstruction")
class ReconstructionLoss(Loss):
    """
    Reconstruction term from an inner loss plus a KL term pulling the latent
    Gaussian N(mean, exp(logvar)) towards N(0, 1):

        L = inner(recon, target) + beta * KL
        KL = -0.5 sum(1 + logvar - mean^2 - exp(logvar))

    The KL sum runs over latent rows and is averaged over the batch under
    kl_reduction="mean". Gradients of the three blocks are stacked back in the
    prediction's layout:

        d/drecon  = inner.backward(recon, target)
        d/dmean   = beta * mean
        d/dlogvar = beta * 0.5 (exp(logvar) - 1)

    With latent_size=0 this is just the inner loss. An inner
    SigmoidCrossEntropyError gives the Bernoulli reconstruction likelihood.
    """

    name = "reconstruction_loss"
    config_cls = ReconstructionConfig

    def _check(self, prediction, target):
        p, t = as_array(prediction), as_array(target)
        recon = p
        if self.config.latent_size:
            recon, _, _ = LatentPartition(self.config.latent_size).split(p)
        check_same_shape(recon, t, self.name)
        return p, t

    def _inputs(self, prediction, target):
        # validate first: the partition depends on latent_size
        self.config.validate()
        return self._check(prediction, target)

    @staticmethod
    def _batch(p):
        return max(1, p.size // max(1, p.shape[0]))

    def _forward(self, p, t, cfg):
        if not cfg.latent_size:
            return cfg.inner.forward(p, t)
        recon, mean, logvar = LatentPartition(cfg.latent_size).split(p)
        kl = -0.5 * np.sum(1.0 + logvar - np.square(mean) - np.exp(logvar))
        if cfg.kl_reduction == "mean":
            kl = kl / self._batch(p)
        return cfg.inner.forward(recon, t) + cfg.beta * kl

    def _backward(self, p, t, cfg):
        if not cfg.latent_size:
            return cfg.inner.backward(p, t)
        partition = LatentPartition(cfg.latent_size)
        recon, mean, logvar = partition.split(p)
        scale = cfg.beta / (self._batch(p) if cfg.kl_reduction == "mean" else 1)
        return partition.join(
            cfg.inner.backward(recon, t),
            scale * mean,
            scale * 0.5 * (np.exp(logvar) - 1.0),
        )
