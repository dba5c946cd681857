from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Tuple

from lowering_backend.errors import CodegenBackendError
from lowering_backend.tensors import Tensor

if TYPE_CHECKING:
    from lowering_backend.kinds import LoweringNode


@dataclass
class Graph:
    """Tensor table shared by every node of one compilation unit."""

    tensors: Dict[str, Tensor] = field(default_factory=dict)
    nodes: List["LoweringNode"] = field(default_factory=list)
    graph_outputs: List[str] = field(default_factory=list)
    # node name -> [(role, tensor)], filled while nodes resolve
    node_inputs: Dict[str, List[Tuple[str, Tensor]]] = field(
        default_factory=lambda: defaultdict(list)
    )
    node_outputs: Dict[str, List[Tuple[str, Tensor]]] = field(
        default_factory=lambda: defaultdict(list)
    )

    def add_tensor(self, tensor: Tensor) -> Tensor:
        if tensor.name in self.tensors:
            raise CodegenBackendError(f"tensor {tensor.name} is already defined")
        self.tensors[tensor.name] = tensor
        return tensor

    def tensor(self, name: str) -> Tensor:
        try:
            return self.tensors[name]
        except KeyError as exc:
            raise CodegenBackendError(f"unknown tensor {name}") from exc

    def add_node(self, node: "LoweringNode") -> "LoweringNode":
        if any(existing.name == node.name for existing in self.nodes):
            raise CodegenBackendError(f"node {node.name} is already defined")
        self.nodes.append(node)
        return node

    def consumer_count(self, tensor: Tensor) -> int:
        """Number of operand slots, across all declared nodes, that read ``tensor``."""
        return sum(node.input_names.count(tensor.name) for node in self.nodes)

    def is_sole_consumer(self, node: "LoweringNode", tensor: Tensor) -> bool:
        if tensor.name in self.graph_outputs:
            return False
        if self.tensors.get(tensor.name) is not tensor:
            return False
        return self.consumer_count(tensor) == 1 and tensor.name in node.input_names

    def ensure_undefined(self, name: str) -> None:
        if name in self.tensors:
            raise CodegenBackendError(f"tensor {name} is already defined")

    def register_input(self, node: "LoweringNode", tensor: Tensor, role: str) -> None:
        self.node_inputs[node.name].append((role, tensor))

    def register_output(self, node: "LoweringNode", tensor: Tensor, role: str) -> None:
        self.add_tensor(tensor)
        self.node_outputs[node.name].append((role, tensor))
