from .tensor import Tensor
from .utils import as_array, check_same_shape, split_halves

__all__ = ["Tensor", "as_array", "check_same_shape", "split_halves"]
