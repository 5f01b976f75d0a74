"""Run-scoped helpers: cancellation and progress tracking."""

from forgeflow.runtime.cancellation import CancellationToken
from forgeflow.runtime.tracker import ProgressCallback, ProgressTracker

__all__ = ["CancellationToken", "ProgressCallback", "ProgressTracker"]
