"""Planning and executing resource deletion."""

from sweeper.cleanup.batch_processor import BatchProcessor, BatchResult
from sweeper.cleanup.deletion import DeletionTask, TaskState
from sweeper.cleanup.engine import SweepEngine
from sweeper.cleanup.planner import plan

__all__ = [
    "BatchProcessor",
    "BatchResult",
    "DeletionTask",
    "SweepEngine",
    "TaskState",
    "plan",
]
