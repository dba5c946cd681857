from lowering_backend.emitters.base import (
    KindEmitterBase,
    emit_loops,
    format_indexed_access,
)

__all__ = [
    "KindEmitterBase",
    "emit_loops",
    "format_indexed_access",
]
