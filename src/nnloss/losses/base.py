# src/nnloss/losses/base.py
import logging
from dataclasses import dataclass, fields
from typing import Optional, Union

import numpy as np

from ..core.utils import as_array, check_same_shape
from ..errors import ConfigurationError
from .reductions import Reduction, apply_reduction, check_reduction, reduce_grad

logger = logging.getLogger(__name__)


@dataclass
class LossOut:
    value: Union[float, np.ndarray]    # reduced loss, or per-element loss under reduction="none"
    grad: Optional[np.ndarray] = None  # gradient w.r.t. predictions or logits


@dataclass
class LossConfig:
    """
    Base for per-loss configuration.
    Configs are plain mutable dataclasses owned by the caller; a loss re-reads
    (and re-validates) its config on every call, nothing is cached.
    """

    def validate(self) -> None:
        pass


@dataclass
class ReductionConfig(LossConfig):
    reduction: Reduction = "mean"

    def validate(self) -> None:
        check_reduction(self.reduction)


# common interface for loss classes
class Loss:
    """
    A loss is two closed-form maps over (prediction, target):

        forward(p, t)  -> scalar loss (or per-element loss under reduction="none")
        backward(p, t) -> dL/dp, always shaped like p

    Subclasses set `config_cls` and implement `_forward` / `_backward` on
    already-coerced, shape-checked arrays.
    """

    name = "loss"
    config_cls = LossConfig

    def __init__(self, config: Optional[LossConfig] = None, **params):
        if config is None:
            config = self.config_cls(**params)
        elif params:
            raise ConfigurationError(f"{self.name}: pass either a config or keyword params, not both")
        if not isinstance(config, self.config_cls):
            raise ConfigurationError(
                f"{self.name}: expected {self.config_cls.__name__}, got {type(config).__name__}"
            )
        config.validate()
        self.config = config
        logger.debug("built %s with %s", type(self).__name__, config)

    def _check(self, prediction, target):
        p, t = as_array(prediction), as_array(target)
        check_same_shape(p, t, self.name)
        return p, t

    def _inputs(self, prediction, target):
        p, t = self._check(prediction, target)
        self.config.validate()
        return p, t

    def forward(self, prediction, target):
        p, t = self._inputs(prediction, target)
        return self._forward(p, t, self.config)

    def backward(self, prediction, target) -> np.ndarray:
        p, t = self._inputs(prediction, target)
        return self._backward(p, t, self.config)

    def _forward(self, p, t, cfg):
        raise NotImplementedError

    def _backward(self, p, t, cfg):
        raise NotImplementedError

    def __call__(self, prediction, target) -> LossOut:
        return LossOut(value=self.forward(prediction, target), grad=self.backward(prediction, target))

    def backprop(self, output, target):
        """
        Use this loss as the terminal node of a pipeline.
        `output` is a core.Tensor; its backward pass is seeded with dL/doutput.
        """
        value = self.forward(output.data, target)
        output.backward(self.backward(output.data, target))
        return value

    def __repr__(self):
        params = ", ".join(f"{f.name}={getattr(self.config, f.name)!r}" for f in fields(self.config))
        return f"{type(self).__name__}({params})"


class ElementwiseLoss(Loss):
    """
    Loss whose per-element value and gradient are computed independently and
    then collapsed by the config's reduction.
    """

    config_cls = ReductionConfig

    def _forward(self, p, t, cfg):
        return apply_reduction(self._elementwise(p, t, cfg), cfg.reduction)

    def _backward(self, p, t, cfg):
        return reduce_grad(self._elementwise_grad(p, t, cfg), cfg.reduction)

    def _elementwise(self, p, t, cfg):
        raise NotImplementedError

    def _elementwise_grad(self, p, t, cfg):
        raise NotImplementedError
