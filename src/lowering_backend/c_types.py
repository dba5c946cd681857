from __future__ import annotations

import torch

from lowering_backend.dtypes import _CODEGEN_DTYPES, _CodegenDType, _PLAIN_FLOATING_DTYPES
from lowering_backend.errors import UnimplementedError


def is_plain_floating(dtype: torch.dtype) -> bool:
    return dtype in _PLAIN_FLOATING_DTYPES


def codegen_dtype(dtype: torch.dtype) -> _CodegenDType:
    info = _CODEGEN_DTYPES.get(dtype)
    if info is not None:
        return info
    raise UnimplementedError(
        f"codegen backend emits only torch.float32 or torch.float64 tensors, got {dtype}"
    )


def _format_scalar_literal(value: float, dtype: _CodegenDType) -> str:
    if dtype.torch_dtype is torch.float32:
        return f"{float(value)!r}f"
    if dtype.torch_dtype is torch.float64:
        return repr(float(value))
    raise UnimplementedError(
        f"codegen backend cannot format a literal for {dtype.torch_dtype}"
    )
