from __future__ import annotations

import pytest
import torch

from lowering_backend.errors import UnimplementedError
from lowering_backend.folding import fold_stddev_copy, fold_stddev_inplace, is_splatted
from lowering_backend.graph import Graph
from lowering_backend.kinds import LoweringNode
from lowering_backend.tensors import Tensor


def test_is_splatted_constant_float32() -> None:
    ones = Tensor.constant("ones", torch.ones(2, 3))
    assert is_splatted(ones, 1.0)
    assert not is_splatted(ones, 0.0)


def test_is_splatted_requires_every_element_to_match() -> None:
    values = Tensor.constant("v", torch.tensor([1.0, 1.0, 1.0000001, 1.0]))
    assert not is_splatted(values, 1.0)


def test_is_splatted_false_for_non_constant() -> None:
    assert not is_splatted(Tensor("x", (3,), torch.float32), 1.0)
    assert not is_splatted(Tensor("y", (3,), torch.int32), 1.0)


@pytest.mark.parametrize(
    "data",
    [
        torch.ones(3, dtype=torch.float64),
        torch.ones(3, dtype=torch.float16),
        torch.ones(3, dtype=torch.int32),
    ],
)
def test_is_splatted_unimplemented_for_other_constant_dtypes(data: torch.Tensor) -> None:
    with pytest.raises(UnimplementedError):
        is_splatted(Tensor.constant("c", data), 1.0)


def test_is_splatted_does_not_mutate() -> None:
    data = torch.tensor([0.0, 0.0])
    tensor = Tensor.constant("z", data)
    assert is_splatted(tensor, 0.0)
    assert tensor.values() is data
    torch.testing.assert_close(data, torch.zeros(2))


def test_fold_stddev_inplace_updates_buffer() -> None:
    data = torch.tensor([0.0, 3.0])
    tensor = Tensor.constant("var", data)
    assert fold_stddev_inplace(tensor, 1.0) is tensor
    torch.testing.assert_close(data, torch.tensor([1.0, 2.0]))


def test_fold_stddev_copy_leaves_source_untouched() -> None:
    source = Tensor.constant("var", torch.tensor([0.0, 3.0]))
    folded = fold_stddev_copy(source, 1.0, "var_copy")
    assert folded.name == "var_copy"
    assert folded.is_const
    torch.testing.assert_close(folded.values(), torch.tensor([1.0, 2.0]))
    torch.testing.assert_close(source.values(), torch.tensor([0.0, 3.0]))


def test_sole_consumer_tracking() -> None:
    graph = Graph()
    var = graph.add_tensor(Tensor.constant("var", torch.ones(3)))
    first = graph.add_node(
        LoweringNode(
            name="bn0",
            op_type="BatchNormalization",
            input_names=["X", "s", "b", "m", "var"],
            output_names=["Y0"],
        )
    )
    assert graph.consumer_count(var) == 1
    assert graph.is_sole_consumer(first, var)

    second = graph.add_node(
        LoweringNode(
            name="bn1",
            op_type="BatchNormalization",
            input_names=["X", "s", "b", "m", "var"],
            output_names=["Y1"],
        )
    )
    assert graph.consumer_count(var) == 2
    assert not graph.is_sole_consumer(first, var)
    assert not graph.is_sole_consumer(second, var)


def test_tensor_outside_the_table_is_never_sole_consumed() -> None:
    graph = Graph()
    node = graph.add_node(
        LoweringNode(
            name="bn0",
            op_type="BatchNormalization",
            input_names=["var"],
            output_names=["Y"],
        )
    )
    stray = Tensor.constant("var", torch.ones(3))
    assert not graph.is_sole_consumer(node, stray)


def test_consumer_count_counts_every_operand_slot() -> None:
    graph = Graph()
    stat = graph.add_tensor(Tensor.constant("stat", torch.ones(3)))
    node = graph.add_node(
        LoweringNode(
            name="bn0",
            op_type="BatchNormalization",
            input_names=["X", "s", "b", "stat", "stat"],
            output_names=["Y"],
        )
    )
    assert graph.consumer_count(stat) == 2
    assert not graph.is_sole_consumer(node, stat)
