from __future__ import annotations

import threading
import time
from typing import Mapping

import numpy as np
import pytest

from scratchnet.core import init
from scratchnet.core.errors import SizeMismatchError
from scratchnet.core.network import Network
from scratchnet.core.topology import Topology
from scratchnet.data import get_dataset, pack_examples
from scratchnet.data.synthetic import step_target
from scratchnet.training.metrics import accuracy, evaluate
from scratchnet.training.trainer import Trainer, TrainingWorker


class _Capture:
    def __init__(self) -> None:
        self.history: list[tuple[int, Mapping[str, float]]] = []

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        self.history.append((step, {k: float(v) for k, v in metrics.items()}))


def _constant_setup(seed: int = 0):
    rows = get_dataset("constant", n_points=128, value=0.5, seed=seed).rows("train")
    net = Network(Topology.uniform([1, 4, 1], hidden="tanh", output="identity"))
    init.randomize_xavier_normal(net, np.random.default_rng(seed))
    return net, rows


def test_cost_does_not_increase_on_constant_target() -> None:
    net, rows = _constant_setup()
    before = net.average_cost(rows)
    trainer = Trainer(net, rows, learning_rate=0.01, batch_size=8, rng=np.random.default_rng(0))
    result = trainer.run(1000)
    after = net.average_cost(rows)
    assert result.steps == 1000
    assert after <= before
    assert result.final_metrics["cost"] == pytest.approx(after)


def test_trainer_emits_metrics_and_counts_steps() -> None:
    net, rows = _constant_setup(seed=1)
    capture = _Capture()
    trainer = Trainer(
        net,
        rows,
        learning_rate=0.05,
        batch_size=4,
        rng=np.random.default_rng(1),
        eval_every=10,
        callbacks=[capture],
    )
    trainer.run(30)
    trainer.run(20)
    assert trainer.steps == 50
    assert [step for step, _ in capture.history] == [10, 20, 30, 40, 50]
    assert {"cost", "mae", "rmse"} <= set(capture.history[-1][1])
    assert capture.history[-1][1]["cost"] < capture.history[0][1]["cost"]


def test_trainer_is_reproducible_from_seed() -> None:
    results = []
    for _ in range(2):
        net, rows = _constant_setup(seed=2)
        Trainer(net, rows, learning_rate=0.05, batch_size=5, rng=np.random.default_rng(9)).run(25)
        results.append(net.store.values.copy())
    np.testing.assert_array_equal(results[0], results[1])


def test_trainer_validates_inputs() -> None:
    net, rows = _constant_setup()
    rng = np.random.default_rng(0)
    with pytest.raises(SizeMismatchError):
        Trainer(net, rows[:, :1], learning_rate=0.1, batch_size=4, rng=rng)
    with pytest.raises(ValueError):
        Trainer(net, rows, learning_rate=0.1, batch_size=0, rng=rng)
    with pytest.raises(ValueError):
        Trainer(net, rows, learning_rate=-1.0, batch_size=4, rng=rng)
    with pytest.warns(RuntimeWarning):
        Trainer(net, rows, learning_rate=0.0, batch_size=4, rng=rng)
    with pytest.raises(SizeMismatchError):
        Trainer(net, rows, learning_rate=0.1, batch_size=4, rng=rng, eval_examples=rows[:, :1])
    with pytest.raises(SizeMismatchError):
        Trainer(net, rows, learning_rate=0.1, batch_size=4, rng=rng, eval_examples=rows[:0])
    trainer = Trainer(net, rows, learning_rate=0.1, batch_size=4, rng=rng)
    with pytest.raises(ValueError):
        trainer.run(None)


def test_run_honours_stop_event_between_steps() -> None:
    net, rows = _constant_setup()
    stop = threading.Event()
    trainer = Trainer(net, rows, learning_rate=0.01, batch_size=2, rng=np.random.default_rng(0))

    def progress(step, _metrics):
        if step == 7:
            stop.set()

    result = trainer.run(None, stop_event=stop, progress=progress)
    assert result.stopped
    assert result.steps == 7


def test_worker_runs_in_background_and_stops() -> None:
    net, rows = _constant_setup()
    trainer = Trainer(
        net, rows, learning_rate=0.01, batch_size=4, rng=np.random.default_rng(0), eval_every=5
    )
    worker = TrainingWorker(trainer)
    worker.start()
    with pytest.raises(RuntimeError):
        worker.start()

    deadline = time.monotonic() + 30
    seen = []
    while time.monotonic() < deadline:
        snap = worker.snapshot()
        seen.append(snap.steps)
        if snap.steps >= 20 and "cost" in snap.metrics:
            break
        time.sleep(0.01)

    result = worker.stop(timeout=30)
    assert not worker.running
    assert result is not None and result.stopped
    assert seen == sorted(seen)
    final = worker.snapshot()
    assert final.steps == result.steps == trainer.steps >= 20
    assert not final.running

    # safe to reconfigure and restart after stop()
    worker.steps = 5
    worker.start()
    second = worker.join(timeout=30)
    assert second is not None and not second.stopped
    assert second.steps == result.steps + 5


def test_worker_reraises_training_errors() -> None:
    net, rows = _constant_setup()

    def explode(step, metrics):
        raise RuntimeError("sink failed")

    trainer = Trainer(
        net,
        rows,
        learning_rate=0.01,
        batch_size=2,
        rng=np.random.default_rng(0),
        eval_every=3,
        callbacks=[explode],
    )
    worker = TrainingWorker(trainer, steps=10)
    worker.start()
    with pytest.raises(RuntimeError, match="sink failed"):
        worker.join(timeout=30)
    assert trainer.steps == 3


def test_classifier_accuracy_improves() -> None:
    spec = get_dataset("blobs", n_points=300, num_classes=3, spread=0.3, seed=4)
    net = Network(Topology.uniform([2, 12, 3], hidden="leaky_relu", output="logistic"))
    init.randomize_xavier_normal(net, np.random.default_rng(4), per_layer=True)
    trainer = Trainer(
        net,
        spec.rows("train"),
        learning_rate=0.2,
        batch_size=16,
        rng=np.random.default_rng(4),
        eval_examples=spec.rows("test"),
        task_type="multiclass",
    )
    result = trainer.run(1500)
    assert result.final_metrics["accuracy"] > 0.8
    assert accuracy(net, spec.rows("test")) == pytest.approx(result.final_metrics["accuracy"])


def test_evaluate_cost_matches_average_cost() -> None:
    net, rows = _constant_setup()
    metrics = evaluate(net, rows[:20])
    assert metrics["cost"] == pytest.approx(net.average_cost(rows[:20]))


def test_step_function_fit_on_unit_interval() -> None:
    rng = np.random.default_rng(27)
    x_train = rng.uniform(0.0, 1.0, size=2000)
    x_test = rng.uniform(0.0, 1.0, size=500)
    train_rows = pack_examples(x_train, step_target(x_train))
    test_rows = pack_examples(x_test, step_target(x_test))

    net = Network(Topology.uniform([1, 8, 8, 1], hidden="tanh"))
    init.randomize_xavier_normal(net, np.random.default_rng(27), per_layer=True)
    trainer = Trainer(net, train_rows, learning_rate=0.05, batch_size=50, rng=rng)
    trainer.run(2000)
    # the best constant prediction scores 0.25
    assert net.average_cost(test_rows) < 0.2


@pytest.mark.slow
def test_step_scenario_with_network_wide_xavier() -> None:
    spec = get_dataset("step", n_points=2500, low=-6.0, high=6.0, seed=0, test_split=0.2)
    held_out = spec.rows("test")
    assert held_out.shape[0] == 500

    net = Network(Topology.uniform([1, 8, 8, 1], hidden="tanh", output="tanh"))
    init.randomize_xavier_normal(net, np.random.default_rng(2727272), (-0.01, 0.01))
    before = net.average_cost(held_out)
    Trainer(
        net,
        spec.rows("train"),
        learning_rate=0.01,
        batch_size=50,
        rng=np.random.default_rng(2727272),
    ).run(2000)
    # held-out cost plateaus around 0.11-0.13 across seeds here, so only the drop is checked
    assert net.average_cost(held_out) < before
