# lazy Executor.map over chunks, with bounded in-flight work and per chunk timeouts
import concurrent.futures
import itertools
import time
from concurrent.futures import FIRST_COMPLETED, Executor

from .common import logger
from .errors import ChunkTimeoutError

_DONE = object()
# how often to look for queued futures that started running
_POLL_INTERVAL = 0.01


def chunk_every(iterable, chunk_size):
  """Split an iterable into lists of chunk_size items, the last one may be shorter."""
  it = iter(iterable)
  while 1:
    chunk = list(itertools.islice(it, chunk_size))
    if not chunk:
      return
    yield chunk


def _track_starts(jobs, started, now):
  for fut in jobs:
    if fut not in started and (fut.running() or fut.done()):
      started[fut] = now


def _overdue(jobs, started, now, limit):
  late = [
    jobs[fut] for fut, start in started.items()
    if not fut.done() and now - start >= limit
  ]
  return min(late, default=None)


def lazy_map(
  pool: Executor, fn, chunks, *args,
  max_pending, timeout=None, ordered=True, fail_fast=True
):
  """Submit fn(chunk, *args) for each chunk and yield (index, future) pairs as they finish.

  At most max_pending futures are in flight. With ordered=True pairs come out
  by index and results that finish early are held back. With fail_fast=True a
  future that raised is yielded as soon as it is seen so the caller can abort.
  timeout is in milliseconds and counts from when a chunk is seen running, a
  chunk still running past it raises ChunkTimeoutError and cancels everything
  still pending.
  """
  chunks = iter(chunks)
  jobs = {}
  started = {}
  buffered = {}
  next_index = 0
  next_out = 0
  exhausted = False
  limit = None if timeout is None else timeout / 1000

  try:
    while 1:
      # add more jobs if possible
      while not exhausted and len(jobs) < max_pending and len(buffered) < max_pending:
        chunk = next(chunks, _DONE)
        if chunk is _DONE:
          exhausted = True
          break
        jobs[pool.submit(fn, chunk, *args)] = next_index
        logger.debug(f'Submitted chunk {next_index} ({len(chunk)} items)')
        next_index += 1

      if not jobs:
        break

      wait_for = None
      if limit is not None:
        now = time.monotonic()
        _track_starts(jobs, started, now)
        waits = [start + limit - now for start in started.values()]
        if len(started) < len(jobs):
          waits.append(_POLL_INTERVAL)
        wait_for = max(0, min(waits))

      # wait on jobs, collecting completed
      done, _ = concurrent.futures.wait(jobs, timeout=wait_for, return_when=FIRST_COMPLETED)
      finished = []
      for fut in done:
        started.pop(fut, None)
        finished.append((jobs.pop(fut), fut))
      finished.sort()

      for index, fut in finished:
        logger.debug(f'Chunk {index} finished')
        if fail_fast and fut.exception() is not None:
          yield index, fut
          return
        if not ordered:
          yield index, fut
        else:
          buffered[index] = fut

      while next_out in buffered:
        yield next_out, buffered.pop(next_out)
        next_out += 1

      if limit is not None:
        now = time.monotonic()
        _track_starts(jobs, started, now)
        index = _overdue(jobs, started, now, limit)
        if index is not None:
          raise ChunkTimeoutError(index, timeout)
  finally:
    for fut in jobs:
      fut.cancel()
