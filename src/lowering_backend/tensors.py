from __future__ import annotations

from dataclasses import dataclass, field
from math import prod
from typing import Tuple

import torch

from lowering_backend.errors import CodegenBackendError, CodegenShapeError


@dataclass(eq=False)
class Tensor:
    """A graph value: a static shape, an element type and, when constant, its data.

    Tensors are shared by reference between the nodes that consume them, so
    identity (not value) equality is used.
    """

    name: str
    shape: Tuple[int, ...]
    dtype: torch.dtype
    is_const: bool = False
    data: torch.Tensor | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self.shape = tuple(int(dim) for dim in self.shape)
        if any(dim < 0 for dim in self.shape):
            raise CodegenShapeError(
                f"tensor {self.name} has a negative extent in shape {self.shape}"
            )
        if self.is_const and self.data is None:
            raise CodegenBackendError(f"constant tensor {self.name} has no data")
        if not self.is_const and self.data is not None:
            raise CodegenBackendError(f"non-constant tensor {self.name} carries data")
        if self.data is not None:
            if tuple(self.data.shape) != self.shape:
                raise CodegenShapeError(
                    f"tensor {self.name} data shape {tuple(self.data.shape)} "
                    f"does not match {self.shape}"
                )
            if self.data.dtype is not self.dtype:
                raise CodegenBackendError(
                    f"tensor {self.name} data is {self.data.dtype}, expected {self.dtype}"
                )

    @classmethod
    def constant(cls, name: str, data: torch.Tensor) -> "Tensor":
        return cls(
            name=name,
            shape=tuple(data.shape),
            dtype=data.dtype,
            is_const=True,
            data=data,
        )

    @property
    def rank(self) -> int:
        return len(self.shape)

    def numel(self) -> int:
        return prod(self.shape)

    def values(self) -> torch.Tensor:
        if self.data is None:
            raise CodegenBackendError(
                f"tensor {self.name} is not constant and has no values"
            )
        return self.data
