# src/nnloss/losses/__init__.py
from .base import ElementwiseLoss, Loss, LossConfig, LossOut, ReductionConfig
from .reductions import Reduction, apply_reduction
from .regression import (
    HuberConfig,
    HuberLoss,
    L1Loss,
    LogCoshConfig,
    LogCoshLoss,
    MeanAbsoluteError,
    MeanAbsolutePercentageError,
    MeanBiasError,
    MeanSquaredError,
    MeanSquaredLogarithmicError,
    mse,
)
from .classification import (
    CrossEntropyConfig,
    CrossEntropyError,
    DiceConfig,
    DiceLoss,
    HingeEmbeddingConfig,
    HingeEmbeddingLoss,
    KLDivergence,
    KLDivergenceConfig,
    PoissonNLLConfig,
    PoissonNLLLoss,
    SigmoidCrossEntropyConfig,
    SigmoidCrossEntropyError,
    SoftMarginConfig,
    SoftMarginLoss,
)
from .ranking import (
    CosineEmbeddingConfig,
    CosineEmbeddingLoss,
    EarthMoverDistance,
    MarginRankingConfig,
    MarginRankingLoss,
)
from .composite import LatentPartition, ReconstructionConfig, ReconstructionLoss
