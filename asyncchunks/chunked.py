"""Process iterables asynchronously in chunks.

Every function here splits its input into chunks of ``chunk_size`` items and
runs one unit of work per chunk on a bounded pool. Apart from reduce() they can
stand in for the builtin of the same name, keeping in mind that side effects
of the given function happen out of order and in other threads.

Options accepted by all functions:

  chunk_size       items per chunk (default 10)
  flatten          emit the items of each chunk result instead of the result itself
  timeout          milliseconds a chunk may take before the whole run is aborted
                   (default 5000, None for no limit)
  max_concurrency  chunks in flight at once (default os.cpu_count())
  ordered          keep results in input order (default True)
  on_error         'raise' aborts on the first failing chunk, 'collect' emits a
                   ChunkFailure in its place and keeps going
  pool             an Executor to run chunks on instead of a private thread pool
"""
import builtins
import contextlib
import dataclasses
import functools
import os
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from .common import logger
from .errors import ChunkFailure, ConfigurationError
from .pool_lazy_map import chunk_every, lazy_map

DEFAULT_CHUNK_SIZE = 10
DEFAULT_TIMEOUT = 5000

_ON_ERROR = ('raise', 'collect')
_NO_INITIAL = object()


def _is_positive_int(value):
  return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True)
class ChunkOptions:
  chunk_size: int = DEFAULT_CHUNK_SIZE
  flatten: bool = False
  timeout: Optional[float] = DEFAULT_TIMEOUT
  max_concurrency: Optional[int] = None
  ordered: bool = True
  on_error: str = 'raise'
  pool: Optional[Executor] = None

  def __post_init__(self):
    if self.max_concurrency is None:
      object.__setattr__(self, 'max_concurrency', os.cpu_count() or 1)
    if not _is_positive_int(self.chunk_size):
      raise ConfigurationError(f'chunk_size must be a positive integer, got {self.chunk_size!r}')
    if not _is_positive_int(self.max_concurrency):
      raise ConfigurationError(
        f'max_concurrency must be a positive integer, got {self.max_concurrency!r}'
      )
    if self.timeout is not None and (
      isinstance(self.timeout, bool)
      or not isinstance(self.timeout, (int, float))
      or self.timeout <= 0
    ):
      raise ConfigurationError(f'timeout must be a positive number or None, got {self.timeout!r}')
    if self.on_error not in _ON_ERROR:
      raise ConfigurationError(f'on_error must be one of {_ON_ERROR}, got {self.on_error!r}')
    if self.pool is not None and not isinstance(self.pool, Executor):
      raise ConfigurationError(f'pool must be a concurrent.futures.Executor, got {self.pool!r}')

  @classmethod
  def resolve(cls, **opts):
    known = {f.name for f in dataclasses.fields(cls)}
    unknown = sorted(set(opts) - known)
    if unknown:
      raise ConfigurationError(f'unknown option(s): {", ".join(unknown)}')
    return cls(**opts)


def process(iterable, fn, *args, **opts):
  """Apply fn(chunk, *args) to every chunk of iterable on a worker pool.

  Returns a lazy iterator with one result per chunk, or the items of each
  result when flatten=True. Invalid options raise ConfigurationError right
  away; nothing is read from iterable until the result is iterated.

    >>> list(process(range(1, 21), len))
    [10, 10]
    >>> list(process(range(1, 21), sum, chunk_size=5))
    [15, 40, 65, 90]
  """
  options = ChunkOptions.resolve(**opts)
  return _process(iterable, fn, args, options)


def _process(iterable, fn, args, options):
  pool = options.pool
  owned = pool is None
  if owned:
    pool = ThreadPoolExecutor(
      max_workers=options.max_concurrency,
      thread_name_prefix='asyncchunks'
    )

  results = lazy_map(
    pool, fn, chunk_every(iterable, options.chunk_size), *args,
    max_pending=options.max_concurrency,
    timeout=options.timeout,
    ordered=options.ordered,
    fail_fast=options.on_error == 'raise'
  )
  try:
    for index, fut in results:
      try:
        res = fut.result()
      except Exception as exc:
        if options.on_error == 'raise':
          raise
        logger.warning(f'Chunk {index} failed: {exc!r}')
        yield ChunkFailure(index, exc)
        continue
      if options.flatten:
        yield from res
      else:
        yield res
  finally:
    results.close()
    if owned:
      pool.shutdown(wait=False, cancel_futures=True)


def _map_chunk(chunk, fn):
  return [fn(v) for v in chunk]


def _flat_map_chunk(chunk, fn):
  return [r for v in chunk for r in fn(v)]


def _filter_chunk(chunk, fn):
  return [v for v in chunk if fn(v)]


def _reject_chunk(chunk, fn):
  return [v for v in chunk if not fn(v)]


def _reduce_chunk(chunk, fn, *initial):
  return functools.reduce(fn, chunk, *initial)


def _map_join_chunk(chunk, fn, joiner):
  return joiner.join(str(fn(v)) for v in chunk)


def _all_chunk(chunk, fn):
  if fn is None:
    return builtins.all(chunk)
  return builtins.all(fn(v) for v in chunk)


def _any_chunk(chunk, fn):
  if fn is None:
    return builtins.any(chunk)
  return builtins.any(fn(v) for v in chunk)


def map(iterable, fn, **opts):
  """Map fn over iterable.

    >>> list(map([1, 2, 3], lambda x: x * 2))
    [2, 4, 6]
  """
  opts.setdefault('flatten', True)
  return process(iterable, _map_chunk, fn, **opts)


def flat_map(iterable, fn, **opts):
  """Map fn over iterable and concatenate the returned iterables.

    >>> list(flat_map([1, 2, 3], lambda x: [x, x * 2]))
    [1, 2, 2, 4, 3, 6]
  """
  opts.setdefault('flatten', True)
  return process(iterable, _flat_map_chunk, fn, **opts)


def filter(iterable, fn, **opts):
  opts.setdefault('flatten', True)
  return process(iterable, _filter_chunk, fn, **opts)


def reject(iterable, fn, **opts):
  opts.setdefault('flatten', True)
  return process(iterable, _reject_chunk, fn, **opts)


def reduce(iterable, fn, initial=_NO_INITIAL, **opts):
  """Reduce every chunk separately with fn(acc, item).

  The partial results are not combined, one accumulator is emitted per chunk
  and initial (when given) seeds each of them. Combine them yourself if a
  single value is needed:

    >>> list(reduce(range(1, 11), operator.add, chunk_size=2))
    [3, 7, 11, 15, 19]
    >>> list(reduce(range(1, 11), operator.add, 1, chunk_size=2))
    [4, 8, 12, 16, 20]
    >>> functools.reduce(operator.add, reduce(range(1, 11), operator.add, 1, chunk_size=2))
    60
  """
  initial = () if initial is _NO_INITIAL else (initial,)
  return process(iterable, _reduce_chunk, fn, *initial, **opts)


def map_join(iterable, fn, joiner='', **opts):
  """Map fn over iterable and join the results as strings.

  Returns a single string, or with flatten=False an iterator with the joined
  string of every chunk.

    >>> map_join('abcdefghijklmnopqrstuvwxyz', str.upper)
    'ABCDEFGHIJKLMNOPQRSTUVWXYZ'
    >>> list(map_join('abcdefghijklmnopqrstuvwxyz', str.upper, flatten=False))
    ['ABCDEFGHIJ', 'KLMNOPQRST', 'UVWXYZ']
  """
  flatten = opts.pop('flatten', True)
  results = process(iterable, _map_join_chunk, fn, joiner, **opts)
  if not flatten:
    return results
  with contextlib.closing(results):
    return joiner.join(results)


def all(iterable, fn=None, **opts):
  """Check that fn (or truthiness) holds for every item.

  Returns a bool, or with flatten=False an iterator with one bool per chunk.
  """
  flatten = opts.pop('flatten', True)
  results = process(iterable, _all_chunk, fn, **opts)
  if not flatten:
    return results
  with contextlib.closing(results):
    return builtins.all(results)


def any(iterable, fn=None, **opts):
  """Check that fn (or truthiness) holds for at least one item.

  Returns a bool, or with flatten=False an iterator with one bool per chunk.
  """
  flatten = opts.pop('flatten', True)
  results = process(iterable, _any_chunk, fn, **opts)
  if not flatten:
    return results
  with contextlib.closing(results):
    return builtins.any(results)
