"""Builds a :class:`Graph` from an ONNX model and lowers its nodes to C."""
from __future__ import annotations

import logging
from typing import List

import numpy as np
import onnx
import torch
from onnx import helper, numpy_helper

from lowering_backend.attributes import AttributeRecord, AttributeType
from lowering_backend.errors import CodegenBackendError, UnimplementedError
from lowering_backend.graph import Graph
from lowering_backend.kinds import LoweringNode, OpKind
from lowering_backend.tensors import Tensor

logger = logging.getLogger(__name__)

_C_PRELUDE = [
    "#include <math.h>",
    "#include <stdint.h>",
]


def _onnx_dtype_to_torch(elem_type: int) -> torch.dtype:
    mapping = {
        onnx.TensorProto.FLOAT: torch.float32,
        onnx.TensorProto.FLOAT16: torch.float16,
        onnx.TensorProto.DOUBLE: torch.float64,
        onnx.TensorProto.BFLOAT16: torch.bfloat16,
        onnx.TensorProto.INT8: torch.int8,
        onnx.TensorProto.UINT8: torch.uint8,
        onnx.TensorProto.INT16: torch.int16,
        onnx.TensorProto.INT32: torch.int32,
        onnx.TensorProto.INT64: torch.int64,
        onnx.TensorProto.BOOL: torch.bool,
    }
    if elem_type not in mapping:
        raise UnimplementedError(f"Unsupported ONNX tensor type: {elem_type}")
    return mapping[elem_type]


def _shape_from_type(value_info: onnx.ValueInfoProto, default_dim: int) -> List[int]:
    if not value_info.type.HasField("tensor_type"):
        raise UnimplementedError(f"Unsupported ONNX input kind: {value_info.type}")
    tensor_type = value_info.type.tensor_type
    if not tensor_type.HasField("shape"):
        return []
    dims: List[int] = []
    for dim in tensor_type.shape.dim:
        if dim.HasField("dim_value") and dim.dim_value > 0:
            dims.append(dim.dim_value)
        else:
            dims.append(default_dim)
    return dims


def attribute_from_onnx(proto: onnx.AttributeProto) -> AttributeRecord:
    try:
        attr_type = AttributeType(proto.type)
    except ValueError:
        attr_type = AttributeType.UNDEFINED
    value = None
    if attr_type == AttributeType.FLOAT and proto.HasField("f"):
        value = proto.f
    elif attr_type == AttributeType.INT and proto.HasField("i"):
        value = proto.i
    elif attr_type != AttributeType.UNDEFINED:
        value = helper.get_attribute_value(proto)
    return AttributeRecord(name=proto.name, type=attr_type, value=value)


def _tensor_from_initializer(initializer: onnx.TensorProto) -> Tensor:
    _onnx_dtype_to_torch(initializer.data_type)
    # Copy so that in-place folding never writes into the model's buffers.
    array = numpy_helper.to_array(initializer).copy()
    if initializer.data_type == onnx.TensorProto.BFLOAT16:
        # numpy has no native bfloat16; widen and narrow through float32.
        data = torch.from_numpy(array.astype(np.float32)).to(torch.bfloat16)
    else:
        data = torch.from_numpy(array)
    return Tensor.constant(initializer.name, data)


def graph_from_onnx(model: onnx.ModelProto, default_dim: int = 1) -> Graph:
    graph = Graph()
    for initializer in model.graph.initializer:
        graph.add_tensor(_tensor_from_initializer(initializer))
    for value_info in model.graph.input:
        if value_info.name in graph.tensors:
            continue
        graph.add_tensor(
            Tensor(
                name=value_info.name,
                shape=tuple(_shape_from_type(value_info, default_dim)),
                dtype=_onnx_dtype_to_torch(value_info.type.tensor_type.elem_type),
            )
        )
    for index, node in enumerate(model.graph.node):
        if node.op_type != OpKind.BATCH_NORMALIZATION.value:
            raise UnimplementedError(
                f"no lowering registered for op type {node.op_type}"
            )
        outputs = [name for name in node.output if name]
        if len(outputs) != 1:
            raise UnimplementedError(
                f"{node.op_type} running mean/variance outputs are not implemented"
            )
        graph.add_node(
            LoweringNode(
                name=node.name or f"node{index}",
                op_type=node.op_type,
                input_names=list(node.input),
                output_names=outputs,
                attributes=[attribute_from_onnx(attr) for attr in node.attribute],
            )
        )
    graph.graph_outputs = [value_info.name for value_info in model.graph.output]
    return graph


def lower_graph(graph: Graph) -> List[str]:
    """Resolve every node in declaration order, then emit their kernels."""
    for node in graph.nodes:
        logger.debug("resolving %s (%s)", node.name, node.op_type)
        node.resolve(graph)
    lines: List[str] = list(_C_PRELUDE)
    for index, node in enumerate(graph.nodes):
        lines.append("")
        lines.extend(node.emit(index))
    return lines


def lower_model(model: onnx.ModelProto, default_dim: int = 1) -> str:
    graph = graph_from_onnx(model, default_dim=default_dim)
    if not graph.nodes:
        raise CodegenBackendError("ONNX model contains no nodes to lower")
    return "\n".join(lower_graph(graph)) + "\n"
