"""Helpers to observe an iterable while it is being consumed.

Items always pass through unchanged, so these can be chained freely with the
functions in asyncchunks.chunked:

  stream_count(chunked.map(items, fetch), lambda n: logger.info(f'Fetched {n} items'))
"""
from .common import dynamic_tqdm


def stream_tap(iterable, acc, reducer, after):
  """Fold reducer(item, acc) over the items and call after(acc) once at the end.

  acc may be a zero argument callable returning the start value. after is
  called when the iterable is exhausted, when the consumer stops early and
  when iterating raises.
  """
  if callable(acc):
    acc = acc()
  try:
    for item in iterable:
      acc = reducer(item, acc)
      yield item
  finally:
    after(acc)


def stream_count(iterable, fn):
  """Call fn with the number of items seen once the stream ends."""
  return stream_tap(iterable, 0, lambda _, count: count + 1, fn)


def stream_progress(iterable, total=None, **tqdm_kwargs):
  """Show a progress bar on stderr while the items are consumed.

  The bar is only drawn on a tty, total defaults to len(iterable) if it has one.
  """
  if total is None and hasattr(iterable, '__len__'):
    total = len(iterable)
  tqdm_kwargs.setdefault('dynamic_ncols', True)
  with dynamic_tqdm(total=total, **tqdm_kwargs) as progress:
    for item in iterable:
      yield item
      if progress is not None:
        progress.update(1)
