from __future__ import annotations

import logging

import torch

from lowering_backend.errors import UnimplementedError
from lowering_backend.tensors import Tensor

logger = logging.getLogger(__name__)


def is_splatted(tensor: Tensor, value: float) -> bool:
    """True when ``tensor`` is constant and every element equals ``value`` exactly."""
    if not tensor.is_const:
        return False
    if tensor.dtype is not torch.float32:
        raise UnimplementedError(
            f"splat check is implemented only for torch.float32, {tensor.name} is {tensor.dtype}"
        )
    return bool(torch.all(tensor.values() == value).item())


def sqrt_with_epsilon(values: torch.Tensor, epsilon: float) -> torch.Tensor:
    return torch.sqrt(values + epsilon)


def fold_stddev_inplace(tensor: Tensor, epsilon: float) -> Tensor:
    values = tensor.values()
    values.copy_(sqrt_with_epsilon(values, epsilon))
    logger.debug("folded sqrt(%s + %g) in place", tensor.name, epsilon)
    return tensor


def fold_stddev_copy(tensor: Tensor, epsilon: float, name: str) -> Tensor:
    folded = Tensor.constant(name, sqrt_with_epsilon(tensor.values(), epsilon))
    logger.debug(
        "folded sqrt(%s + %g) into private constant %s", tensor.name, epsilon, name
    )
    return folded
