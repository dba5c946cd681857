from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Protocol, Sequence

from lowering_backend.attributes import AttributeRecord
from lowering_backend.errors import CodegenStateError, UnimplementedError
from lowering_backend.graph import Graph
from lowering_backend.tensors import Tensor


class OpKind(str, Enum):
    BATCH_NORMALIZATION = "BatchNormalization"


class NodeState(str, Enum):
    UNRESOLVED = "unresolved"
    BINDING = "binding"
    FOLDING = "folding"
    EMITTED = "emitted"
    REJECTED = "rejected"


@dataclass
class KernelEmitRequest:
    node_index: int
    op_name: str
    dtype: object
    input_shapes: Sequence[Sequence[int]] = field(default_factory=tuple)
    output_shape: Sequence[int] = field(default_factory=tuple)
    params: Dict[str, object] = field(default_factory=dict)


class OperatorLowering(Protocol):
    op_name: str

    def parse_config(self, attributes: Sequence[AttributeRecord]) -> Any: ...

    def bind(
        self, node: "LoweringNode", graph: Graph, inputs: Sequence[Tensor]
    ) -> Any: ...

    def fold(self, node: "LoweringNode", graph: Graph, plan: Any, config: Any) -> Any: ...

    def allocate_output(
        self, node: "LoweringNode", graph: Graph, plan: Any
    ) -> Tensor: ...

    def emit(self, node_index: int, plan: Any, config: Any) -> List[str]: ...


def build_lowering_registry() -> Dict[OpKind, OperatorLowering]:
    from lowering_backend.batch_norm import BatchNormLowering

    return {
        OpKind.BATCH_NORMALIZATION: BatchNormLowering(),
    }


_LOWERING_REGISTRY: Dict[OpKind, OperatorLowering] | None = None


def get_lowering(op_type: str) -> OperatorLowering:
    global _LOWERING_REGISTRY
    try:
        kind = OpKind(op_type)
    except ValueError as exc:
        raise UnimplementedError(
            f"no lowering registered for op type {op_type}"
        ) from exc
    if _LOWERING_REGISTRY is None:
        _LOWERING_REGISTRY = build_lowering_registry()
    return _LOWERING_REGISTRY[kind]


@dataclass(eq=False)
class LoweringNode:
    """One graph node together with its resolve/emit protocol state.

    ``resolve`` runs exactly once and must succeed before ``emit``. A failed
    resolution leaves the node ``REJECTED``.
    """

    name: str
    op_type: str
    input_names: List[str]
    output_names: List[str]
    attributes: List[AttributeRecord] = field(default_factory=list)
    state: NodeState = NodeState.UNRESOLVED
    config: Any = None
    plan: Any = None

    def __post_init__(self) -> None:
        self.lowering = get_lowering(self.op_type)

    def resolve(self, graph: Graph) -> Any:
        if self.state is not NodeState.UNRESOLVED:
            raise CodegenStateError(
                f"node {self.name} cannot be resolved in state {self.state.value}"
            )
        try:
            config = self.lowering.parse_config(self.attributes)
            inputs = [graph.tensor(name) for name in self.input_names]
            self.state = NodeState.BINDING
            plan = self.lowering.bind(self, graph, inputs)
            self.state = NodeState.FOLDING
            plan = self.lowering.fold(self, graph, plan, config)
            self.lowering.allocate_output(self, graph, plan)
        except Exception:
            self.state = NodeState.REJECTED
            raise
        self.config = config
        self.plan = plan
        return plan

    def emit(self, node_index: int) -> List[str]:
        if self.state not in (NodeState.FOLDING, NodeState.EMITTED):
            raise CodegenStateError(
                f"node {self.name} must be resolved before emission "
                f"(state {self.state.value})"
            )
        lines = self.lowering.emit(node_index, self.plan, self.config)
        self.state = NodeState.EMITTED
        return lines


__all__ = [
    "KernelEmitRequest",
    "LoweringNode",
    "NodeState",
    "OpKind",
    "OperatorLowering",
    "build_lowering_registry",
    "get_lowering",
]
