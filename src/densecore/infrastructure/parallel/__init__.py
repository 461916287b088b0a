"""
Parallel execution helpers.

Exports the chunk partitioning utilities and the scoped fork-join runner used
by layer kernels.
"""

from ._fork_join import (
    chunk_size,
    fork_join,
    partition,
    resolve_workers,
    row_block,
    row_slice,
)

__all__ = [
    "chunk_size",
    "fork_join",
    "partition",
    "resolve_workers",
    "row_block",
    "row_slice",
]
