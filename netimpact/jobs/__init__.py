"""
Batch job helpers
"""

from netimpact.jobs.cancellation import (
    CancellationToken,
    ProgressReporter,
    ProgressCallback,
    is_cancelled,
    iter_batches,
)

__all__ = [
    "CancellationToken",
    "ProgressReporter",
    "ProgressCallback",
    "is_cancelled",
    "iter_batches",
]
