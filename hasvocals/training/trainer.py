"""Data-parallel backprop training with a per-epoch weight barrier."""

from __future__ import annotations

import logging
import os
import threading
import time
import warnings
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Sequence

import numpy as np

from ..core.errors import DataUnavailable, MalformedInput
from ..core.mlp import MultiLayerPerceptron
from ..core.types import FeatureFrame, TrainingState
from ..core.vector import add_to, scaled
from ..data.containers import DataContainer
from ..data.utils import partition, split_containers
from .backprop import average_delta_weights, train_example
from .metrics import ResidualTally, epoch_metrics, mean_squared_residual, squared_residual

logger = logging.getLogger(__name__)

POLL_INITIAL = 0.002
POLL_STEP = 0.010
POLL_CAP = 0.150


def learning_rate(epoch: int) -> float:
    return 1.0 / (0.01 * epoch + 1.0)


class TrainingCancelled(RuntimeError):
    """Raised inside workers when the trainer is shut down mid-epoch."""


class _Progress:
    """Thread-safe count of processed containers for progress reporting."""

    def __init__(self, total: int) -> None:
        self.total = max(int(total), 1)
        self._done = 0
        self._lock = threading.Lock()

    def tick(self) -> None:
        with self._lock:
            self._done += 1

    @property
    def fraction(self) -> float:
        with self._lock:
            return min(self._done / self.total, 1.0)


class TrainingWorker:
    """Owns a private network copy and a contiguous slice of containers."""

    def __init__(self, network: MultiLayerPerceptron, containers: Sequence[DataContainer], name: str) -> None:
        self.network = network
        self.containers = list(containers)
        self.name = name
        self.examples = 0

    def run(self, progress: _Progress, stop: threading.Event) -> int:
        self.examples = 0
        for container in self.containers:
            if stop.is_set():
                raise TrainingCancelled(self.name)
            try:
                container.open()
            except DataUnavailable as exc:
                logger.warning("%s: skipping %r: %s", self.name, container, exc)
                container.close()
                progress.tick()
                continue
            try:
                while container.has_next():
                    if stop.is_set():
                        raise TrainingCancelled(self.name)
                    train_example(self.network, container.next())
                    self.examples += 1
            except DataUnavailable as exc:
                logger.warning("%s: %r ended early: %s", self.name, container, exc)
            finally:
                container.close()
                progress.tick()
        average_delta_weights(self.network, self.examples)
        return self.examples


class TestingWorker:
    """Read-only evaluation of a container slice with a synced network copy."""

    def __init__(self, network: MultiLayerPerceptron, containers: Sequence[DataContainer], name: str) -> None:
        self.network = network
        self.containers = list(containers)
        self.name = name

    def run(self, progress: _Progress, stop: threading.Event) -> ResidualTally:
        squared = 0.0
        trials = 0
        width = 0
        for container in self.containers:
            if stop.is_set():
                raise TrainingCancelled(self.name)
            try:
                container.open()
            except DataUnavailable as exc:
                logger.warning("%s: skipping %r: %s", self.name, container, exc)
                container.close()
                progress.tick()
                continue
            try:
                while container.has_next():
                    frame = container.next()
                    outputs = self.network.evaluate(frame.features)
                    squared += squared_residual(outputs, frame.labels)
                    width = frame.labels.size
                    trials += 1
            except DataUnavailable as exc:
                logger.warning("%s: %r ended early: %s", self.name, container, exc)
            finally:
                container.close()
                progress.tick()
        return ResidualTally(squared, trials, width)


class BackpropTrainer:
    """Fit a network to labeled frame containers across worker threads.

    Each epoch runs ``Train -> Aggregate -> Evaluate``.  Workers accumulate
    averaged weight deltas on private network copies; the main thread then
    averages them across workers, applies them to the master network with
    a decaying learning rate and pushes the new weights back out.

    Callbacks may define ``on_progress(phase, fraction, state)`` and
    ``on_epoch(epoch, metrics)``.
    """

    def __init__(
        self,
        network: MultiLayerPerceptron,
        *,
        min_delta_error: float = 1e-5,
        max_epochs: int = 1000,
        max_threads: int | None = None,
        train_fraction: float = 0.75,
        callbacks: Sequence[object] | None = None,
        learning_rate_fn: Callable[[int], float] = learning_rate,
    ) -> None:
        if max_epochs <= 0:
            raise ValueError("max_epochs must be positive")
        if max_threads is not None and max_threads <= 0:
            raise ValueError("max_threads must be positive")
        self.network = network
        self.min_delta_error = float(min_delta_error)
        self.max_epochs = int(max_epochs)
        self.max_threads = max_threads
        self.train_fraction = float(train_fraction)
        self.callbacks = list(callbacks or [])
        self.learning_rate_fn = learning_rate_fn
        self.state = TrainingState()
        self._stop = threading.Event()
        self._workers: List[TrainingWorker] = []
        self._testers: List[TestingWorker] = []

    # ------------------------------------------------------------------
    # Setup

    def worker_count(self, num_containers: int) -> int:
        limits = [os.cpu_count() or 1, num_containers]
        if self.max_threads is not None:
            limits.append(self.max_threads)
        return max(1, min(limits))

    def prepare_network(self, containers: Sequence[DataContainer]) -> FeatureFrame:
        """Size the network from the first available training example."""

        for container in containers:
            try:
                container.open()
                if not container.has_next():
                    continue
                frame = container.next()
            except DataUnavailable as exc:
                logger.warning("Skipping %r while sizing network: %s", container, exc)
                continue
            finally:
                container.close()
            expected = self.network.input_dim
            if expected is not None and expected != frame.features.size:
                raise MalformedInput(
                    f"Examples have {frame.features.size} features, network expects {expected}"
                )
            if self.network.tail.num_nodes != frame.labels.size:
                raise MalformedInput(
                    f"Examples have {frame.labels.size} labels, network has "
                    f"{self.network.tail.num_nodes} outputs"
                )
            self.network.evaluate(frame.features, is_training=True)
            self.network.zero_delta_weights()
            logger.info("Network sized for %d input features", frame.features.size)
            return frame
        raise DataUnavailable("No training example available to size the network")

    def _spawn_workers(self, training: Sequence[DataContainer], testing: Sequence[DataContainer]) -> None:
        n_train = self.worker_count(len(training))
        self._workers = [
            TrainingWorker(self.network.copy(), chunk, f"trainer-{idx}")
            for idx, chunk in enumerate(partition(training, n_train))
        ]
        self._testers = []
        if testing:
            n_test = self.worker_count(len(testing))
            self._testers = [
                TestingWorker(self.network.copy(), chunk, f"tester-{idx}")
                for idx, chunk in enumerate(partition(testing, n_test))
            ]
        logger.info(
            "Using %d training and %d testing workers", len(self._workers), len(self._testers)
        )

    # ------------------------------------------------------------------
    # Public API

    def fit(self, containers: Sequence[DataContainer]) -> TrainingState:
        training, testing = split_containers(containers, self.train_fraction)
        logger.info("Training size: %d. Testing size: %d", len(training), len(testing))
        return self.train(training, testing)

    def train(
        self, training: Sequence[DataContainer], testing: Sequence[DataContainer]
    ) -> TrainingState:
        if not training:
            raise DataUnavailable("No training containers supplied")
        if not testing:
            logger.warning("No testing containers; measuring error on the training set")
            testing = training
        self._stop.clear()
        self.prepare_network(training)
        self._spawn_workers(training, testing)
        self.state = TrainingState(learning_rate=self.learning_rate_fn(0))
        state = self.state
        start = time.perf_counter()

        with ThreadPoolExecutor(max_workers=max(len(self._workers), len(self._testers))) as pool:
            while not state.converged and not state.exceeded_max_epochs:
                state.learning_rate = self.learning_rate_fn(state.epoch)
                state.examples_seen = self._train_epoch(pool)
                self._aggregate(state.learning_rate)
                error = self._evaluate(pool)

                state.previous_error = state.error
                state.error = error
                state.delta_error = abs(error - state.previous_error)
                state.epoch += 1
                metrics = epoch_metrics(
                    state.epoch, error, state.delta_error, state.learning_rate, state.examples_seen
                )
                state.record(metrics)
                self._emit_epoch(state.epoch, metrics)
                logger.info(
                    "Epoch %d: error %.6g (delta %.3g, lr %.4f)",
                    state.epoch,
                    error,
                    state.delta_error,
                    state.learning_rate,
                )

                if state.delta_error < self.min_delta_error:
                    state.converged = True
                elif state.epoch >= self.max_epochs:
                    state.exceeded_max_epochs = True
                    logger.warning(
                        "Reached max epochs (%d) before the error settled", self.max_epochs
                    )
                    warnings.warn(
                        f"Training stopped after {state.epoch} epochs without converging",
                        RuntimeWarning,
                        stacklevel=2,
                    )

        logger.info(
            "Training finished after %d epochs in %.1f s", state.epoch, time.perf_counter() - start
        )
        return state

    def shutdown(self) -> None:
        """Ask running workers to stop; the current epoch is discarded."""

        self._stop.set()

    # ------------------------------------------------------------------
    # Phases

    def _train_epoch(self, pool: ThreadPoolExecutor) -> int:
        total = sum(len(worker.containers) for worker in self._workers)
        progress = _Progress(total)
        futures = [pool.submit(worker.run, progress, self._stop) for worker in self._workers]
        results = self._wait("train", futures, progress)
        return int(sum(results))

    def _aggregate(self, eta: float) -> None:
        n_workers = len(self._workers)
        for idx, layer in enumerate(self.network):
            total = np.zeros_like(layer.weights)
            for worker in self._workers:
                add_to(scaled(worker.network[idx].delta_weights, 1.0 / n_workers), total)
            add_to(scaled(total, eta), layer.weights)
        for worker in self._workers:
            worker.network.load_weights_from(self.network)
            worker.network.zero_delta_weights()
        self.network.zero_delta_weights()

    def _evaluate(self, pool: ThreadPoolExecutor) -> float:
        for tester in self._testers:
            tester.network.load_weights_from(self.network)
        total = sum(len(tester.containers) for tester in self._testers)
        progress = _Progress(total)
        futures = [pool.submit(tester.run, progress, self._stop) for tester in self._testers]
        tallies = self._wait("test", futures, progress)
        error = mean_squared_residual(tallies)
        if np.isnan(error):
            logger.warning("No testing examples were evaluated")
        return error

    def _wait(self, phase: str, futures: Sequence[Future], progress: _Progress) -> list:
        delay = POLL_INITIAL
        try:
            while not all(f.done() for f in futures):
                self._emit_progress(phase, progress.fraction)
                for future in futures:
                    if future.done() and future.exception() is not None:
                        raise future.exception()
                time.sleep(delay)
                delay = min(delay + POLL_STEP, POLL_CAP)
            self._emit_progress(phase, 1.0)
            return [future.result() for future in futures]
        except BaseException:
            self._stop.set()
            for future in futures:
                future.cancel()
            raise

    # ------------------------------------------------------------------
    # Callbacks

    def _emit_progress(self, phase: str, fraction: float) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_progress"):
                callback.on_progress(phase, fraction, self.state)  # type: ignore[attr-defined]

    def _emit_epoch(self, epoch: int, metrics) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = [
    "BackpropTrainer",
    "TrainingWorker",
    "TestingWorker",
    "TrainingCancelled",
    "learning_rate",
    "POLL_INITIAL",
    "POLL_STEP",
    "POLL_CAP",
]
