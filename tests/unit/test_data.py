import numpy as np
import pytest

from scratchnet.data import available_datasets, get_dataset, register_dataset
from scratchnet.data.registry import DataSpec, DatasetSpec
from scratchnet.data.synthetic import gaussian_bump_target, step_target
from scratchnet.data.utils import (
    deterministic_split,
    gaussian_distribution,
    pack_examples,
    sample_batch,
    split_examples,
)


def test_builtin_datasets_registered():
    assert {"blobs", "constant", "gaussian_bump", "step"} <= set(available_datasets())


def test_step_target_uses_truncated_modulo():
    x = np.array([-5.7, -0.2, 0.2, 0.7, 1.3, 1.6, 5.9])
    np.testing.assert_array_equal(step_target(x), [0, 0, 0, 1, 0, 1, 1])


def test_gaussian_bump_peak():
    assert gaussian_bump_target(np.array([0.5]))[0] == pytest.approx(0.2 / (0.1 * np.sqrt(2 * np.pi)))
    assert gaussian_distribution(np.array([1.0]), 1.0, 2.0)[0] == pytest.approx(0.19947114)


@pytest.mark.parametrize("name", ["step", "gaussian_bump", "constant", "blobs"])
def test_dataset_rows_have_example_width(name):
    spec = get_dataset(name, seed=3)
    width = spec.data_spec.example_size
    for split in ("train", "val", "test"):
        assert spec.rows(split).shape[1] == width
    assert spec.sizes["train"] > spec.sizes["test"] > 0
    assert spec.provenance["seed"] == 3


def test_step_dataset_matches_target():
    spec = get_dataset("step", n_points=200, seed=1)
    x, y = split_examples(spec.rows("train"), spec.data_spec.d_in)
    np.testing.assert_array_equal(y[:, 0], step_target(x[:, 0]))
    assert x.min() >= -6.0 and x.max() <= 6.0


def test_blobs_one_hot_targets():
    spec = get_dataset("blobs", n_points=90, num_classes=3, seed=0)
    _, y = split_examples(spec.rows("train"), 2)
    assert spec.data_spec.task_type == "multiclass"
    np.testing.assert_array_equal(y.sum(axis=1), np.ones(y.shape[0]))


def test_datasets_are_deterministic():
    a = get_dataset("gaussian_bump", seed=5).rows("train")
    b = get_dataset("gaussian_bump", seed=5).rows("train")
    np.testing.assert_array_equal(a, b)


def test_unknown_dataset():
    with pytest.raises(KeyError, match="Available datasets"):
        get_dataset("mnist")


def test_registry_validates_widths():
    @register_dataset("broken-width")
    def _broken(**_):
        return DatasetSpec(
            name="broken-width",
            data_spec=DataSpec(d_in=2, d_out=1, task_type="regression"),
            splits={"train": np.zeros((4, 2))},
        )

    with pytest.raises(ValueError, match="width"):
        get_dataset("broken-width")


def test_pack_and_split_examples():
    rows = pack_examples(np.array([1.0, 2.0]), np.array([[3.0, 4.0], [5.0, 6.0]]))
    np.testing.assert_array_equal(rows, [[1.0, 3.0, 4.0], [2.0, 5.0, 6.0]])
    x, y = split_examples(rows, 1)
    assert x.shape == (2, 1) and y.shape == (2, 2)
    with pytest.raises(ValueError):
        pack_examples(np.zeros(3), np.zeros(2))


def test_sample_batch_is_reproducible():
    rows = np.arange(30, dtype=float).reshape(10, 3)
    a = sample_batch(rows, 6, np.random.default_rng(0))
    b = sample_batch(rows, 6, np.random.default_rng(0))
    np.testing.assert_array_equal(a, b)
    assert a.shape == (6, 3)
    with pytest.raises(ValueError):
        sample_batch(rows, 0, np.random.default_rng(0))


def test_deterministic_split_sizes():
    split = deterministic_split(100, val_split=0.1, test_split=0.2, seed=0)
    assert split.sizes == {"train": 70, "val": 10, "test": 20}
    combined = np.concatenate([split.train, split.val, split.test])
    assert sorted(combined.tolist()) == list(range(100))
    with pytest.raises(ValueError):
        deterministic_split(10, val_split=0.6, test_split=0.5)
