"""Mini-batch training loop and a cancellable background worker."""

from __future__ import annotations

import math
import threading
import warnings
from typing import Callable, Mapping, Optional, Sequence

import numpy as np

from ..core.errors import SizeMismatchError
from ..core.network import Network
from ..core.types import DTYPE, Array, RunResult, Snapshot
from ..data.utils import sample_batch
from .metrics import evaluate

ProgressFn = Callable[[int, Optional[Mapping[str, float]]], None]


class Trainer:
    """Drive :meth:`Network.train` over batches sampled from ``examples``.

    Batches are drawn with replacement from ``rng`` so a run is reproducible
    from the generator's seed. ``steps`` counts completed training steps and
    only ever grows.
    """

    def __init__(
        self,
        network: Network,
        examples: Array,
        *,
        learning_rate: float,
        batch_size: int,
        rng: np.random.Generator,
        eval_examples: Array | None = None,
        eval_every: int = 0,
        task_type: str = "regression",
        callbacks: Sequence[object] | None = None,
    ) -> None:
        rows = np.asarray(examples, dtype=DTYPE)
        width = network.topology.example_size
        if rows.ndim != 2 or rows.shape[1] != width or rows.shape[0] == 0:
            raise SizeMismatchError(f"Training examples must be a non-empty (n, {width}) array, got {rows.shape}")
        eval_rows = rows if eval_examples is None else np.asarray(eval_examples, dtype=DTYPE)
        if eval_rows.ndim != 2 or eval_rows.shape[1] != width or eval_rows.shape[0] == 0:
            raise SizeMismatchError(f"Evaluation examples must be a non-empty (n, {width}) array, got {eval_rows.shape}")
        if int(batch_size) < 1:
            raise ValueError("batch_size must be >= 1")
        rate = float(learning_rate)
        if not math.isfinite(rate) or rate < 0:
            raise ValueError(f"learning_rate must be a finite non-negative number, got {learning_rate!r}")
        if rate == 0:
            warnings.warn("learning_rate is 0; training steps will not change the network", RuntimeWarning)

        self.network = network
        self.examples = rows
        self.eval_examples = eval_rows
        self.learning_rate = rate
        self.batch_size = int(batch_size)
        self.rng = rng
        self.eval_every = max(0, int(eval_every))
        self.task_type = task_type
        self.callbacks = list(callbacks or [])
        self.steps = 0

    def step(self) -> None:
        """Sample one batch and apply one gradient-descent step."""

        batch = sample_batch(self.examples, self.batch_size, self.rng)
        self.network.train(batch, self.learning_rate)
        self.steps += 1

    def evaluate(self) -> Mapping[str, float]:
        return evaluate(self.network, self.eval_examples, task_type=self.task_type)

    def run(
        self,
        steps: int | None,
        *,
        stop_event: threading.Event | None = None,
        progress: ProgressFn | None = None,
    ) -> RunResult:
        """Train for ``steps`` steps, or until ``stop_event`` is set.

        The stop signal is only checked between steps, so a pass in progress
        always completes.
        """

        if steps is None and stop_event is None:
            raise ValueError("run() needs a step count or a stop_event")
        if steps is not None and int(steps) < 0:
            raise ValueError("steps must be >= 0")

        done = 0
        stopped = False
        while steps is None or done < steps:
            if stop_event is not None and stop_event.is_set():
                stopped = True
                break
            self.step()
            done += 1
            metrics = None
            if self.eval_every and self.steps % self.eval_every == 0:
                metrics = self.evaluate()
                self._emit(self.steps, metrics)
            if progress is not None:
                progress(self.steps, metrics)

        final = dict(self.evaluate())
        return RunResult(steps=self.steps, stopped=stopped, final_metrics=final)

    def _emit(self, step: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_step"):
                callback.on_step(step, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(step, metrics)


class TrainingWorker:
    """Run a :class:`Trainer` on a background thread until told to stop.

    Other threads read progress through :meth:`snapshot`, which returns an
    immutable copy; they must never touch the network while the worker runs.
    Call :meth:`stop` (which joins the thread) before reconfiguring.
    """

    def __init__(self, trainer: Trainer, *, steps: int | None = None) -> None:
        self.trainer = trainer
        self.steps = steps
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._snapshot = Snapshot(steps=trainer.steps)
        self._result: RunResult | None = None
        self._error: BaseException | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def result(self) -> RunResult | None:
        return self._result

    def start(self) -> None:
        if self.running:
            raise RuntimeError("Training worker is already running")
        self._stop.clear()
        self._result = None
        self._error = None
        self._publish(self.trainer.steps, None, running=True)
        self._thread = threading.Thread(target=self._run, name="scratchnet-trainer", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> RunResult | None:
        """Request a stop and wait for the current step to finish."""

        self._stop.set()
        return self.join(timeout)

    def join(self, timeout: float | None = None) -> RunResult | None:
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                raise TimeoutError("Training worker did not stop in time")
        if self._error is not None:
            raise self._error
        return self._result

    def snapshot(self) -> Snapshot:
        with self._lock:
            return self._snapshot

    def _publish(self, steps: int, metrics: Mapping[str, float] | None, *, running: bool) -> None:
        with self._lock:
            latest = dict(metrics) if metrics is not None else self._snapshot.metrics
            self._snapshot = Snapshot(steps=steps, metrics=latest, running=running)

    def _on_progress(self, steps: int, metrics: Mapping[str, float] | None) -> None:
        self._publish(steps, metrics, running=True)

    def _run(self) -> None:
        try:
            self._result = self.trainer.run(self.steps, stop_event=self._stop, progress=self._on_progress)
            self._publish(self._result.steps, self._result.final_metrics, running=False)
        except BaseException as exc:  # re-raised from join()
            self._error = exc
            self._publish(self.trainer.steps, None, running=False)


__all__ = ["Trainer", "TrainingWorker"]
