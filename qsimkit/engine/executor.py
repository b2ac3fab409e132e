"""Execution engine: replay a circuit once, or many times for statistics.

A run owns a fresh :class:`AmplitudeStore`, an empty
:class:`ClassicalRegister` and one ``torch.Generator``; it walks the
circuit's steps in order. Repeated execution spreads independent runs over
a thread pool. Run ``i`` of a batch always gets the generator seeded from
child ``i`` of ``numpy.random.SeedSequence(seed)``, so a seeded batch
produces the same histogram whatever the number of workers.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np
import torch

from qsimkit.backend.statevector import AmplitudeStore
from qsimkit.circuit.core import (
    BarrierStep,
    GateStep,
    MeasureStep,
    PeekStep,
    QuantumCircuit,
    ResetStep,
    Step,
)
from qsimkit.circuit.register import ClassicalRegister
from qsimkit.config import SimulatorConfig, resolve_config
from qsimkit.core.device import Device, resolve_device
from qsimkit.gates.gate import Gate
from qsimkit.logging import get_logger
from qsimkit.measurement.histogram import Histogram
from qsimkit.measurement.sampling import make_generator, measure, peek, reset_qubits

logger = get_logger(__name__)


@dataclass
class ExecutionResult:
    """
    Outcome of a single run.

    Attributes
    ----------
    state:
        The amplitude store after the last step.
    register:
        The classical register as populated by the run.
    """

    state: AmplitudeStore
    register: ClassicalRegister

    @property
    def value(self) -> int:
        """Integer value of the classical register (slot 0 least significant)."""
        return self.register.value()

    def amplitudes(self) -> torch.Tensor:
        """Return a copy of the final amplitude vector."""
        return self.state.amplitudes()


@dataclass
class ShotsResult:
    """
    Outcome of repeated execution.

    Attributes
    ----------
    histogram:
        Counts of final classical register values over completed runs.
    shots_requested:
        Number of runs asked for.
    shots_completed:
        Number of runs that finished; smaller than ``shots_requested`` only
        after cancellation.
    cancelled:
        True if the batch stopped early because ``cancel`` was set.
    states:
        Per-run results ordered by run index when ``keep_states`` was
        requested, otherwise None.
    """

    histogram: Histogram
    shots_requested: int
    shots_completed: int
    cancelled: bool = False
    states: Optional[List[ExecutionResult]] = None


def _shot_seed(root: np.random.SeedSequence, index: int) -> int:
    child = np.random.SeedSequence(root.entropy, spawn_key=root.spawn_key + (index,))
    return int(child.generate_state(1, dtype=np.uint64)[0])


class Executor:
    """
    Runs circuits against statevector stores.

    Parameters
    ----------
    config:
        Simulator configuration. Defaults to the process-wide config.
    device:
        Device for amplitude stores and generators. Defaults to CPU.
    dtype:
        Complex dtype of the amplitudes. Defaults to ``config.complex_dtype``.
    """

    def __init__(
        self,
        config: Optional[SimulatorConfig] = None,
        device: Device | torch.device | str | None = None,
        dtype: torch.dtype | None = None,
    ) -> None:
        self._config = resolve_config(config)
        self._device = resolve_device(device)
        self._dtype = self._config.complex_dtype if dtype is None else dtype

    @property
    def config(self) -> SimulatorConfig:
        return self._config

    def run(
        self,
        circuit: QuantumCircuit,
        generator: Optional[torch.Generator] = None,
        seed: Optional[int] = None,
    ) -> ExecutionResult:
        """
        Execute ``circuit`` once from |0...0⟩.

        Args:
            circuit: Circuit to execute; it is not modified.
            generator: Randomness source for measurements.
            seed: Seed for a fresh generator. Mutually exclusive with
                ``generator``; if both are None the run is unseeded.

        Returns:
            The final store and classical register.
        """
        if generator is not None and seed is not None:
            raise ValueError("Pass either generator or seed, not both.")
        if generator is None:
            generator = make_generator(seed, self._device)

        steps = circuit.steps
        logger.debug(
            "Running circuit with %d qubit(s), %d step(s)",
            circuit.n_qubits,
            len(steps),
        )
        return self._execute(steps, circuit.n_qubits, circuit.n_cbits, generator)

    def _execute(
        self,
        steps: Sequence[Step],
        n_qubits: int,
        n_cbits: int,
        generator: torch.Generator,
    ) -> ExecutionResult:
        store = AmplitudeStore(
            n_qubits, device=self._device, dtype=self._dtype, config=self._config
        )
        register = ClassicalRegister(n_cbits)
        matrices: Dict[Gate, torch.Tensor] = {}

        for index, step in enumerate(steps):
            try:
                self._apply_step(store, register, step, generator, matrices)
            except Exception as exc:
                logger.error(
                    "Run failed at step %d (%s): %s",
                    index,
                    type(step).__name__,
                    exc,
                )
                raise

        store.check_normalized(context="at end of run")
        return ExecutionResult(state=store, register=register)

    def _apply_step(
        self,
        store: AmplitudeStore,
        register: ClassicalRegister,
        step: Step,
        generator: torch.Generator,
        matrices: Dict[Gate, torch.Tensor],
    ) -> None:
        if isinstance(step, GateStep):
            if step.condition is not None and not step.condition.is_satisfied(register):
                logger.debug(
                    "Skipping %s on %s: condition %s not met",
                    step.gate.description,
                    step.qubits,
                    step.condition,
                )
                return
            if step.gate.is_identity:
                return
            matrix = matrices.get(step.gate)
            if matrix is None:
                matrix = step.gate.matrix(dtype=store.dtype, device=store.device)
                matrices[step.gate] = matrix
            store.apply_local_transform(step.qubits, matrix)

        elif isinstance(step, MeasureStep):
            outcome = measure(store, step.qubits, generator, basis=step.basis)
            if step.cbits is not None:
                for slot, bit in zip(step.cbits, outcome.bits):
                    register.record(slot, bit)

        elif isinstance(step, PeekStep):
            outcome = peek(store, step.qubits, generator)
            for slot, bit in zip(step.cbits, outcome.bits):
                register.record(slot, bit)

        elif isinstance(step, ResetStep):
            if len(step.qubits) == store.n_qubits:
                store.reset_all()
            else:
                reset_qubits(store, step.qubits, generator)

        elif isinstance(step, BarrierStep):
            return

        else:
            raise TypeError(f"Unknown circuit step {step!r}")

    def run_shots(
        self,
        circuit: QuantumCircuit,
        shots: int,
        seed: Optional[int] = None,
        workers: int = 1,
        keep_states: bool = False,
        cancel: Optional[threading.Event] = None,
    ) -> ShotsResult:
        """
        Execute ``circuit`` ``shots`` times and histogram the classical register.

        Args:
            circuit: Circuit to execute; it is not modified.
            shots: Number of independent runs (>= 1).
            seed: Root seed. Run ``i`` draws from a generator seeded with
                child ``i`` of ``numpy.random.SeedSequence(seed)``.
            workers: Number of threads running shots.
            keep_states: Keep every run's final store and register.
            cancel: When set, workers stop starting new runs. Runs already
                in flight finish.

        Returns:
            A :class:`ShotsResult`; its histogram counts only completed runs.
        """
        if shots < 1:
            raise ValueError(f"shots must be >= 1, got {shots}")
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")

        steps = circuit.steps
        n_qubits, n_cbits = circuit.n_qubits, circuit.n_cbits
        root = np.random.SeedSequence(seed)
        histogram = Histogram(n_cbits)
        kept: Dict[int, ExecutionResult] = {}
        kept_lock = threading.Lock()
        stop = threading.Event()
        workers = min(workers, shots)

        def should_stop() -> bool:
            return stop.is_set() or (cancel is not None and cancel.is_set())

        def work(offset: int) -> int:
            partial = Histogram(n_cbits)
            completed = 0
            for index in range(offset, shots, workers):
                if should_stop():
                    break
                generator = make_generator(_shot_seed(root, index), self._device)
                try:
                    result = self._execute(steps, n_qubits, n_cbits, generator)
                except Exception:
                    # Other workers stop before their next run.
                    stop.set()
                    raise
                partial.record(result.value)
                if keep_states:
                    with kept_lock:
                        kept[index] = result
                completed += 1
            histogram.merge(partial)
            return completed

        logger.info(
            "Running %d shot(s) of a %d-qubit circuit on %d worker(s)",
            shots,
            n_qubits,
            workers,
        )

        try:
            if workers == 1:
                completed = work(0)
            else:
                with ThreadPoolExecutor(max_workers=workers) as pool:
                    futures = [pool.submit(work, offset) for offset in range(workers)]
                    completed = sum(f.result() for f in futures)
        except Exception:
            logger.error("Repeated execution aborted after a run failure")
            raise

        cancelled = completed < shots
        if cancelled:
            logger.warning(
                "Repeated execution cancelled after %d of %d shot(s)",
                completed,
                shots,
            )
        else:
            logger.info("Completed %d shot(s)", completed)

        states = [kept[i] for i in sorted(kept)] if keep_states else None
        return ShotsResult(
            histogram=histogram,
            shots_requested=shots,
            shots_completed=completed,
            cancelled=cancelled,
            states=states,
        )


def run(
    circuit: QuantumCircuit,
    seed: Optional[int] = None,
    generator: Optional[torch.Generator] = None,
    config: Optional[SimulatorConfig] = None,
    device: Device | torch.device | str | None = None,
) -> ExecutionResult:
    """Execute ``circuit`` once with a default :class:`Executor`."""
    return Executor(config=config, device=device).run(
        circuit, generator=generator, seed=seed
    )


def run_shots(
    circuit: QuantumCircuit,
    shots: int,
    seed: Optional[int] = None,
    workers: int = 1,
    keep_states: bool = False,
    cancel: Optional[threading.Event] = None,
    config: Optional[SimulatorConfig] = None,
    device: Device | torch.device | str | None = None,
) -> ShotsResult:
    """Execute ``circuit`` ``shots`` times with a default :class:`Executor`."""
    return Executor(config=config, device=device).run_shots(
        circuit,
        shots,
        seed=seed,
        workers=workers,
        keep_states=keep_states,
        cancel=cancel,
    )


__all__ = [
    "Executor",
    "ExecutionResult",
    "ShotsResult",
    "run",
    "run_shots",
]
