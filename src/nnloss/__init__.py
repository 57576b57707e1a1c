"""
nnloss: closed-form loss functions for gradient-based training.

Each loss maps (prediction, target) to a scalar via `forward` and to
dL/dprediction via `backward`; `loss(prediction, target)` returns both.

    >>> from nnloss import HuberLoss
    >>> out = HuberLoss(delta=1.0)(prediction, target)
    >>> out.value, out.grad
"""
import logging

from .errors import ConfigurationError, DomainViolation, LossError, ShapeMismatch
from .registry import LOSS_REGISTRY, build_loss
from .core import Tensor
from .losses import *  # noqa: F401,F403
from .gradcheck import check_gradient, numerical_gradient

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
