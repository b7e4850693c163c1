import itertools
import time

import pytest

from asyncchunks.errors import ChunkTimeoutError
from asyncchunks.pool_lazy_map import chunk_every, lazy_map


def _sleep_chunk(chunk):
  for ms in chunk:
    time.sleep(ms / 1000)
  return chunk


@pytest.mark.parametrize('n,size', [(0, 3), (1, 3), (9, 3), (10, 3), (25, 10), (7, 1)])
def test_chunk_every_sizes(n, size):
  chunks = list(chunk_every(range(n), size))

  assert len(chunks) == -(-n // size)
  assert all(len(c) == size for c in chunks[:-1])
  assert [v for c in chunks for v in c] == list(range(n))


def test_chunk_every_pulls_one_chunk_at_a_time():
  source = iter(range(100))
  chunks = chunk_every(source, 10)

  assert next(chunks) == list(range(10))
  assert next(source) == 10


def test_chunk_every_infinite_source():
  chunks = chunk_every(itertools.count(), 4)
  assert list(itertools.islice(chunks, 2)) == [[0, 1, 2, 3], [4, 5, 6, 7]]


def test_lazy_map_ordered_indices(pool):
  chunks = [[30], [10], [20], [0]]
  res = [(i, fut.result()) for i, fut in lazy_map(pool, _sleep_chunk, chunks, max_pending=4)]
  assert res == [(0, [30]), (1, [10]), (2, [20]), (3, [0])]


def test_lazy_map_unordered_yields_completion_order(pool):
  chunks = [[90], [10], [50]]
  res = [i for i, _ in lazy_map(pool, _sleep_chunk, chunks, max_pending=3, ordered=False)]
  assert res == [1, 2, 0]


def test_lazy_map_passes_extra_args(pool):
  def scale(chunk, factor):
    return [v * factor for v in chunk]

  res = [fut.result() for _, fut in lazy_map(pool, scale, [[1, 2], [3]], 3, max_pending=2)]
  assert res == [[3, 6], [9]]


def test_lazy_map_bounds_in_flight(pool, tracker):
  chunks = chunk_every(range(40), 2)
  res = [fut.result() for _, fut in lazy_map(pool, tracker, chunks, max_pending=3)]

  assert res == [2] * 20
  assert tracker.peak <= 3


def test_lazy_map_timeout(pool):
  with pytest.raises(ChunkTimeoutError) as excinfo:
    list(lazy_map(pool, _sleep_chunk, [[10], [200]], max_pending=2, timeout=50, ordered=False))

  assert excinfo.value.index == 1
  assert excinfo.value.timeout == 50


def test_lazy_map_fail_fast_yields_failure_first(pool):
  def fn(chunk):
    if chunk == ['boom']:
      raise RuntimeError('boom')
    return _sleep_chunk(chunk)

  results = lazy_map(pool, fn, [[200], ['boom']], max_pending=2)
  index, fut = next(results)

  assert index == 1
  assert isinstance(fut.exception(), RuntimeError)
  with pytest.raises(StopIteration):
    next(results)
