from __future__ import annotations

from dataclasses import dataclass

import torch


@dataclass(frozen=True)
class _CodegenDType:
    torch_dtype: torch.dtype
    c_type: str
    sqrt_fn: str
    suffix: str


_CODEGEN_DTYPES = {
    torch.float32: _CodegenDType(
        torch_dtype=torch.float32,
        c_type="float",
        sqrt_fn="sqrtf",
        suffix="f32",
    ),
    torch.float64: _CodegenDType(
        torch_dtype=torch.float64,
        c_type="double",
        sqrt_fn="sqrt",
        suffix="f64",
    ),
}

_PLAIN_FLOATING_DTYPES = {
    torch.float16,
    torch.bfloat16,
    torch.float32,
    torch.float64,
}
