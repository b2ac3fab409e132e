"""Circuit execution: single runs and repeated runs for statistics."""

from .executor import ExecutionResult, Executor, ShotsResult, run, run_shots

__all__ = [
    "Executor",
    "ExecutionResult",
    "ShotsResult",
    "run",
    "run_shots",
]
