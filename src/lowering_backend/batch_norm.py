"""BatchNormalization lowering (inference form).

Computes::

    y = scale * (x - mean) / sqrt(var + epsilon) + bias

with every per-channel operand indexed by the channel axis only. Updating
the running mean and variance (the optional training outputs) is not
implemented.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Sequence

from lowering_backend.attributes import (
    AttributeRecord,
    AttributeType,
    _AttributeHandler,
    apply_attributes,
)
from lowering_backend.c_types import codegen_dtype, is_plain_floating
from lowering_backend.emitters.batch_norm import BatchNormEmitter
from lowering_backend.errors import (
    ArityError,
    CodegenShapeError,
    CodegenTypeError,
    UnimplementedError,
)
from lowering_backend.folding import fold_stddev_copy, fold_stddev_inplace, is_splatted
from lowering_backend.graph import Graph
from lowering_backend.kinds import KernelEmitRequest, LoweringNode, OpKind
from lowering_backend.tensors import Tensor

logger = logging.getLogger(__name__)

_INPUT_ROLES = ("X", "scale", "bias", "mean", "var")


@dataclass
class BatchNormConfig:
    epsilon: float = 1e-5
    momentum: float = 0.9
    spatial: int = 1


def _set_epsilon(config: BatchNormConfig, value: float) -> None:
    config.epsilon = value


def _set_momentum(config: BatchNormConfig, value: float) -> None:
    config.momentum = value


def _set_spatial(config: BatchNormConfig, value: int) -> None:
    # spatial was removed in opset 9; only its default is supported.
    if value != 1:
        raise UnimplementedError(
            "non-default value for 'spatial' attribute not implemented"
        )
    config.spatial = value


_ATTRIBUTE_HANDLERS = {
    "epsilon": _AttributeHandler(AttributeType.FLOAT, _set_epsilon),
    "momentum": _AttributeHandler(AttributeType.FLOAT, _set_momentum),
    "spatial": _AttributeHandler(AttributeType.INT, _set_spatial),
}


@dataclass
class BatchNormPlan:
    input: Tensor
    scale: Tensor | None
    bias: Tensor | None
    mean: Tensor
    variance: Tensor
    variance_folded_to_stddev: bool = False
    output: Tensor | None = None


class BatchNormLowering:
    op_name = OpKind.BATCH_NORMALIZATION.value

    def parse_config(self, attributes: Sequence[AttributeRecord]) -> BatchNormConfig:
        config = BatchNormConfig()
        apply_attributes(self.op_name, attributes, _ATTRIBUTE_HANDLERS, config)
        return config

    def bind(
        self, node: LoweringNode, graph: Graph, inputs: Sequence[Tensor]
    ) -> BatchNormPlan:
        if len(inputs) != len(_INPUT_ROLES):
            raise ArityError(
                f"wrong number of inputs to {self.op_name} node {node.name}: "
                f"expected {len(_INPUT_ROLES)}, got {len(inputs)}"
            )
        if not node.output_names:
            raise ArityError(f"{self.op_name} node {node.name} has no output")
        # Checked up front so that a name clash cannot fail after folding.
        graph.ensure_undefined(node.output_names[0])
        for role, tensor in zip(_INPUT_ROLES, inputs):
            graph.register_input(node, tensor, role)
        for role, tensor in zip(_INPUT_ROLES, inputs):
            if not is_plain_floating(tensor.dtype):
                raise CodegenTypeError(
                    f"Incorrect input {role} ({tensor.name}, {tensor.dtype}) "
                    f"for node {node.name}"
                )
        input_tensor, scale, bias, mean, variance = inputs
        if input_tensor.rank < 2:
            raise CodegenShapeError(
                f"{self.op_name} node {node.name} expects at least 2D input, "
                f"got shape {input_tensor.shape}"
            )
        if 0 in input_tensor.shape:
            raise CodegenShapeError(
                f"{self.op_name} node {node.name} has a zero extent in input "
                f"shape {input_tensor.shape}"
            )
        channels = input_tensor.shape[1]
        for role, tensor in zip(_INPUT_ROLES[1:], inputs[1:]):
            if tensor.shape != (channels,):
                raise CodegenShapeError(
                    f"{self.op_name} node {node.name} expects {role} shape "
                    f"({channels},), got {tensor.shape}"
                )
        return BatchNormPlan(
            input=input_tensor,
            scale=scale,
            bias=bias,
            mean=mean,
            variance=variance,
        )

    def fold(
        self,
        node: LoweringNode,
        graph: Graph,
        plan: BatchNormPlan,
        config: BatchNormConfig,
    ) -> BatchNormPlan:
        # scale and bias are never optional in ONNX, but are often identities.
        if plan.scale is not None and is_splatted(plan.scale, 1.0):
            logger.debug("%s: scale is all ones, omitting it", node.name)
            plan.scale = None
        if plan.bias is not None and is_splatted(plan.bias, 0.0):
            logger.debug("%s: bias is all zeros, omitting it", node.name)
            plan.bias = None
        if plan.variance.is_const:
            if graph.is_sole_consumer(node, plan.variance):
                fold_stddev_inplace(plan.variance, config.epsilon)
            else:
                folded = fold_stddev_copy(
                    plan.variance,
                    config.epsilon,
                    f"{plan.variance.name}_{node.name}_stddev",
                )
                graph.add_tensor(folded)
                plan.variance = folded
            plan.variance_folded_to_stddev = True
        return plan

    def allocate_output(
        self, node: LoweringNode, graph: Graph, plan: BatchNormPlan
    ) -> Tensor:
        output = Tensor(
            name=node.output_names[0],
            shape=tuple(plan.input.shape),
            dtype=plan.input.dtype,
        )
        graph.register_output(node, output, "output")
        plan.output = output
        return output

    def emit(
        self, node_index: int, plan: BatchNormPlan, config: BatchNormConfig
    ) -> List[str]:
        input_shapes = [plan.input.shape]
        for operand in (plan.scale, plan.bias, plan.mean, plan.variance):
            if operand is not None:
                input_shapes.append(operand.shape)
        req = KernelEmitRequest(
            node_index=node_index,
            op_name="batch_normalization",
            dtype=codegen_dtype(plan.input.dtype),
            input_shapes=input_shapes,
            output_shape=plan.output.shape,
            params={
                "eps": config.epsilon,
                "momentum": config.momentum,
                "has_scale": plan.scale is not None,
                "has_bias": plan.bias is not None,
                "variance_folded": plan.variance_folded_to_stddev,
            },
        )
        return BatchNormEmitter().emit(req)
