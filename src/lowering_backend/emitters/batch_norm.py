from __future__ import annotations

from typing import List, Sequence

from lowering_backend.c_types import _format_scalar_literal
from lowering_backend.dtypes import _CodegenDType
from lowering_backend.emitters.base import (
    KindEmitterBase,
    _close_loops,
    _format_array_suffix,
    emit_loops,
    format_indexed_access,
)
from lowering_backend.errors import CodegenBackendError, CodegenShapeError
from lowering_backend.kinds import KernelEmitRequest
from lowering_backend.templates import get_template_env


def _write_batch_norm_kernel(
    node_index: int,
    op_name: str,
    input_shape: Sequence[int],
    output_shape: Sequence[int],
    dtype: _CodegenDType,
    eps: float,
    momentum: float,
    has_scale: bool,
    has_bias: bool,
    variance_folded: bool,
) -> List[str]:
    batch_norm_template = get_template_env().get_template("batch_norm_kernel.c.j2")
    if len(input_shape) < 2:
        raise CodegenShapeError(
            f"codegen {op_name} expects at least 2D inputs, got {tuple(input_shape)}"
        )
    channels = input_shape[1]
    c_type = dtype.c_type
    scale_arg = f"const {c_type} scale[{channels}], " if has_scale else ""
    bias_arg = f"const {c_type} bias[{channels}], " if has_bias else ""
    signature = (
        f"void node{node_index}_{op_name}_{dtype.suffix}("
        f"const {c_type} X{_format_array_suffix(input_shape)}, "
        f"{scale_arg}"
        f"{bias_arg}"
        f"const {c_type} mean[{channels}], "
        f"const {c_type} var[{channels}], "
        f"{c_type} output{_format_array_suffix(output_shape)}) {{"
    )
    # Batch, channel, then one loop per spatial axis.
    loop_lines, body_indent = emit_loops(input_shape)
    close_lines, _ = _close_loops(len(input_shape), body_indent)
    if variance_folded:
        denominator = "var[i1]"
    else:
        denominator = f"{dtype.sqrt_fn}(var[i1] + epsilon)"
    rendered = batch_norm_template.render(
        signature=signature,
        c_type=c_type,
        eps_comment=f"{eps:g}",
        momentum_comment=f"{momentum:g}",
        eps=_format_scalar_literal(eps, dtype),
        variance_folded=variance_folded,
        loop_lines=loop_lines,
        close_lines=close_lines,
        body_indent=body_indent,
        input_access=format_indexed_access("X", len(input_shape)),
        output_access=format_indexed_access("output", len(output_shape)),
        denominator=denominator,
        has_scale=has_scale,
        has_bias=has_bias,
    )
    return rendered.strip().splitlines()


class BatchNormEmitter(KindEmitterBase):
    def emit(self, req: KernelEmitRequest) -> List[str]:
        if req.dtype is None or not req.input_shapes:
            raise CodegenBackendError("batch_norm requires a dtype and an input shape")
        return _write_batch_norm_kernel(
            req.node_index,
            req.op_name,
            req.input_shapes[0],
            req.output_shape,
            req.dtype,
            float(req.params.get("eps", 1e-5)),
            float(req.params.get("momentum", 0.9)),
            bool(req.params.get("has_scale", False)),
            bool(req.params.get("has_bias", False)),
            bool(req.params.get("variance_folded", False)),
        )
