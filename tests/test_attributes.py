from __future__ import annotations

import pytest

from lowering_backend.attributes import (
    AttributeRecord,
    AttributeType,
    parse_attribute_float,
    parse_attribute_int,
)
from lowering_backend.batch_norm import BatchNormConfig, BatchNormLowering
from lowering_backend.errors import CodegenAttributeError, UnimplementedError


def _parse(*records: AttributeRecord) -> BatchNormConfig:
    return BatchNormLowering().parse_config(list(records))


def test_defaults() -> None:
    config = _parse()
    assert config.epsilon == 1e-5
    assert config.momentum == 0.9
    assert config.spatial == 1


def test_epsilon_momentum_and_spatial() -> None:
    config = _parse(
        AttributeRecord("momentum", AttributeType.FLOAT, 0.99),
        AttributeRecord("epsilon", AttributeType.FLOAT, 1e-3),
        AttributeRecord("spatial", AttributeType.INT, 1),
    )
    assert config.epsilon == 1e-3
    assert config.momentum == 0.99


@pytest.mark.parametrize("name", ["epsilon", "momentum"])
def test_float_attribute_with_wrong_type_is_rejected(name: str) -> None:
    with pytest.raises(CodegenAttributeError, match="Bad attribute"):
        _parse(AttributeRecord(name, AttributeType.INT, 1))


@pytest.mark.parametrize("name", ["epsilon", "momentum"])
def test_float_attribute_without_value_is_rejected(name: str) -> None:
    with pytest.raises(CodegenAttributeError, match="Bad attribute"):
        _parse(AttributeRecord(name, AttributeType.FLOAT, None))


def test_spatial_with_wrong_type_is_rejected() -> None:
    with pytest.raises(CodegenAttributeError):
        _parse(AttributeRecord("spatial", AttributeType.FLOAT, 1.0))


@pytest.mark.parametrize("value", [0, 2, -1])
def test_non_default_spatial_is_unimplemented(value: int) -> None:
    with pytest.raises(UnimplementedError):
        _parse(AttributeRecord("spatial", AttributeType.INT, value))


@pytest.mark.parametrize("name", ["training_mode", "is_test", "consumed_inputs"])
def test_unknown_attribute_is_rejected(name: str) -> None:
    with pytest.raises(CodegenAttributeError, match="Unknown attribute"):
        _parse(AttributeRecord(name, AttributeType.INT, 0))


def test_parse_helpers() -> None:
    assert parse_attribute_float(AttributeRecord("f", AttributeType.FLOAT, 2)) == 2.0
    assert parse_attribute_int(AttributeRecord("i", AttributeType.INT, 3)) == 3
    with pytest.raises(CodegenAttributeError):
        parse_attribute_int(AttributeRecord("i", AttributeType.STRING, b"x"))
