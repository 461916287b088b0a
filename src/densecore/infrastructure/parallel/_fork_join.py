"""
Fork-join helpers for chunked, lock-free layer kernels.

Layer kernels split an index range into contiguous chunks, hand each chunk to
one worker task, and wait for all of them before returning. Safety comes from
the partitioning alone: every task writes only to views derived from its own
`(start, stop)` range, and the same range is used on every buffer that is
zipped together (outputs, weight rows, scratch rows), so no two tasks ever
write the same element and no lock is needed.

Execution model
---------------
- `fork_join` spawns one task per chunk on a `ThreadPoolExecutor` that lives
  only for the duration of the call; leaving the `with` block is the join.
- NumPy releases the GIL inside its ufunc loops, so tasks overlap only while
  they are inside such calls. Kernels therefore issue a few calls over a
  whole chunk block rather than one call per element or per column.
  Per-row Python loops (the backward reduction) hold the GIL between calls
  and overlap little for narrow rows.
- The worker count is an explicit argument. `None` means "query the machine
  now" (`os.cpu_count()`), which is resolved per call and never cached.

Failure model
-------------
A failing task means the partitioning contract was broken, not that the
caller passed bad data. `fork_join` therefore joins every task, then raises
`ParallelExecutionError` chained from the first failure.
"""

from __future__ import annotations

import numbers
import os
import warnings
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from ...domain._errors import ParallelExecutionError

Chunk = Tuple[int, int]


def resolve_workers(workers: Optional[int] = None) -> int:
    """
    Resolve the number of workers for one fork-join round.

    Parameters
    ----------
    workers : Optional[int]
        Requested worker count. If None, the hardware concurrency is queried.

    Returns
    -------
    int
        A positive worker count.

    Raises
    ------
    ValueError
        If `workers` is given and is not a positive integer.
    """
    if workers is None:
        count = os.cpu_count()
        if count is None:
            warnings.warn(
                "Could not determine the number of CPUs; "
                "falling back to a single worker.",
                RuntimeWarning,
                stacklevel=2,
            )
            return 1
        return count

    if isinstance(workers, bool) or not isinstance(workers, numbers.Integral):
        raise ValueError(f"workers must be a positive integer, got {workers!r}")
    if workers <= 0:
        raise ValueError(f"workers must be a positive integer, got {workers!r}")
    return int(workers)


def chunk_size(n: int, workers: int) -> int:
    """
    Return ceil(n / workers), never less than 1.

    Parameters
    ----------
    n : int
        Length of the index range to split.
    workers : int
        Number of workers.
    """
    if workers <= 0:
        raise ValueError(f"workers must be positive, got {workers}")
    return max(1, -(-n // workers))


def partition(n: int, workers: int) -> List[Chunk]:
    """
    Split `[0, n)` into contiguous chunks of `chunk_size(n, workers)`.

    The last chunk may be shorter. Empty chunks are never produced, so the
    number of chunks can be smaller than `workers` when `n` is small.

    Parameters
    ----------
    n : int
        Length of the index range.
    workers : int
        Number of workers.

    Returns
    -------
    list[tuple[int, int]]
        Half-open `(start, stop)` ranges covering `[0, n)` in order.
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    step = chunk_size(n, workers)
    return [(start, min(start + step, n)) for start in range(0, n, step)]


def row_slice(buffer: np.ndarray, row_length: int, row_index: int) -> np.ndarray:
    """
    Return a view of one row of a flat row-major buffer.

    Parameters
    ----------
    buffer : np.ndarray
        Flat buffer holding consecutive rows of `row_length` elements.
    row_length : int
        Number of elements per row.
    row_index : int
        Row to extract.

    Returns
    -------
    np.ndarray
        View `buffer[row_index * row_length : (row_index + 1) * row_length]`.

    Raises
    ------
    IndexError
        If the row does not lie entirely inside `buffer`.
    """
    return row_block(buffer, row_length, row_index, row_index + 1)


def row_block(
    buffer: np.ndarray, row_length: int, start: int, stop: int
) -> np.ndarray:
    """
    Return a view of rows `[start, stop)` of a flat row-major buffer.

    Returns
    -------
    np.ndarray
        Flat view of `(stop - start) * row_length` elements.

    Raises
    ------
    IndexError
        If the requested rows do not lie entirely inside `buffer`.
    """
    if row_length <= 0:
        raise IndexError(f"row_length must be positive, got {row_length}")
    n_rows = buffer.size // row_length
    if start < 0 or stop > n_rows or start > stop:
        raise IndexError(
            f"rows [{start}, {stop}) out of range for buffer with {n_rows} rows "
            f"of length {row_length}"
        )
    return buffer[start * row_length : stop * row_length]


def fork_join(
    task: Callable[[int, int], None],
    chunks: Sequence[Chunk],
    workers: int,
) -> None:
    """
    Run `task(start, stop)` for every chunk and wait for all of them.

    Parameters
    ----------
    task : Callable[[int, int], None]
        Work function. Must only write to memory derived from its own chunk.
    chunks : Sequence[tuple[int, int]]
        Disjoint index ranges, typically from `partition`.
    workers : int
        Maximum number of concurrently running tasks.

    Raises
    ------
    ParallelExecutionError
        If any task raised. Raised only after every task has finished.

    Notes
    -----
    With a single chunk or a single worker the tasks run inline on the
    calling thread; no pool is created.
    """
    if len(chunks) == 0:
        return

    if workers <= 1 or len(chunks) == 1:
        for start, stop in chunks:
            try:
                task(start, stop)
            except Exception as e:
                raise ParallelExecutionError(
                    f"worker task for chunk [{start}, {stop}) failed: {e}"
                ) from e
        return

    futures: List[Tuple[Chunk, Future]] = []
    with ThreadPoolExecutor(max_workers=min(workers, len(chunks))) as pool:
        for start, stop in chunks:
            futures.append(((start, stop), pool.submit(task, start, stop)))

    for (start, stop), fut in futures:
        err = fut.exception()
        if err is not None:
            raise ParallelExecutionError(
                f"worker task for chunk [{start}, {stop}) failed: {err}"
            ) from err
