from __future__ import annotations


class CodegenBackendError(RuntimeError):
    """Base class for every error raised while lowering a graph node."""


class CodegenAttributeError(CodegenBackendError):
    pass


class UnimplementedError(CodegenBackendError):
    pass


class ArityError(CodegenBackendError):
    pass


class CodegenTypeError(CodegenBackendError, TypeError):
    pass


class CodegenShapeError(CodegenBackendError):
    pass


class CodegenStateError(CodegenBackendError):
    pass


__all__ = [
    "ArityError",
    "CodegenAttributeError",
    "CodegenBackendError",
    "CodegenShapeError",
    "CodegenStateError",
    "CodegenTypeError",
    "UnimplementedError",
]
