from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple

from lowering_backend.kinds import KernelEmitRequest


def _format_array_suffix(shape: Sequence[int]) -> str:
    return "".join(f"[{dim}]" for dim in shape) or "[1]"


def format_indexed_access(name: str, rank: int) -> str:
    indices = "".join(f"[i{dim}]" for dim in range(rank)) or "[0]"
    return f"{name}{indices}"


def emit_loops(shape: Sequence[int], indent: str = "    ") -> Tuple[List[str], str]:
    lines: List[str] = []
    for dim, size in enumerate(shape):
        lines.append(
            f"{indent}for (int64_t i{dim} = 0; i{dim} < {size}; ++i{dim}) {{"
        )
        indent += "    "
    return lines, indent


def _close_loops(loop_count: int, indent: str) -> Tuple[List[str], str]:
    lines: List[str] = []
    for _ in range(loop_count):
        indent = indent[:-4]
        lines.append(f"{indent}}}")
    return lines, indent


class KindEmitterBase(ABC):
    @abstractmethod
    def emit(self, req: KernelEmitRequest) -> List[str]:
        raise NotImplementedError
