__all__ = ["Graph", "LoweringNode", "Tensor", "graph_from_onnx", "lower_graph"]


def __getattr__(name: str):
    if name == "Graph":
        from .graph import Graph

        return Graph
    if name == "LoweringNode":
        from .kinds import LoweringNode

        return LoweringNode
    if name == "Tensor":
        from .tensors import Tensor

        return Tensor
    if name == "graph_from_onnx":
        from .onnx_frontend import graph_from_onnx

        return graph_from_onnx
    if name == "lower_graph":
        from .onnx_frontend import lower_graph

        return lower_graph
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__() -> list[str]:
    return sorted(__all__)
