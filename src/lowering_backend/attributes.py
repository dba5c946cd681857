from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Dict, Iterable, Mapping

from lowering_backend.errors import CodegenAttributeError


class AttributeType(IntEnum):
    # Values mirror onnx.AttributeProto.AttributeType.
    UNDEFINED = 0
    FLOAT = 1
    INT = 2
    STRING = 3
    TENSOR = 4
    GRAPH = 5
    FLOATS = 6
    INTS = 7
    STRINGS = 8


@dataclass(frozen=True)
class AttributeRecord:
    name: str
    type: AttributeType
    value: Any = None


@dataclass(frozen=True)
class _AttributeHandler:
    expected_type: AttributeType
    apply: Callable[[Any, Any], None]
    required: bool = False


def parse_attribute_float(record: AttributeRecord) -> float:
    if record.type != AttributeType.FLOAT or record.value is None:
        raise CodegenAttributeError(f"Bad attribute {record.name}")
    return float(record.value)


def parse_attribute_int(record: AttributeRecord) -> int:
    if record.type != AttributeType.INT or record.value is None:
        raise CodegenAttributeError(f"Bad attribute {record.name}")
    return int(record.value)


_PARSERS: Dict[AttributeType, Callable[[AttributeRecord], Any]] = {
    AttributeType.FLOAT: parse_attribute_float,
    AttributeType.INT: parse_attribute_int,
}


def apply_attributes(
    op_name: str,
    records: Iterable[AttributeRecord],
    handlers: Mapping[str, _AttributeHandler],
    config: Any,
) -> None:
    """Decode ``records`` into ``config`` using one handler per attribute name.

    Names missing from ``handlers`` are rejected, as are records whose type
    does not match the handler's declared type.
    """
    seen = set()
    for record in records:
        handler = handlers.get(record.name)
        if handler is None:
            raise CodegenAttributeError(
                f"Unknown attribute {record.name} for {op_name}"
            )
        value = _PARSERS[handler.expected_type](record)
        handler.apply(config, value)
        seen.add(record.name)
    missing = [
        name for name, handler in handlers.items() if handler.required and name not in seen
    ]
    if missing:
        raise CodegenAttributeError(
            f"{op_name} is missing required attributes: {', '.join(sorted(missing))}"
        )


__all__ = [
    "AttributeRecord",
    "AttributeType",
    "apply_attributes",
    "parse_attribute_float",
    "parse_attribute_int",
]
