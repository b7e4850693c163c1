import contextlib
import logging
import sys

from tqdm.contrib import DummyTqdmFile
from tqdm.contrib.logging import tqdm_logging_redirect


logger = logging.getLogger('asyncchunks')


@contextlib.contextmanager
def dynamic_tqdm(*tqdm_args, **tqdm_kwargs):
  """Yield a tqdm bar when stderr is a terminal and INFO is logged, otherwise None.

  While the bar is shown, log records and terminal stdout are written
  through tqdm so they don't tear the bar.
  """
  if not (sys.stderr.isatty() and logger.isEnabledFor(logging.INFO)):
    yield None
    return

  orig_out = sys.stdout
  if orig_out.isatty():
    sys.stdout = DummyTqdmFile(sys.stderr)
  try:
    with tqdm_logging_redirect(*tqdm_args, **tqdm_kwargs) as progress:
      yield progress
  finally:
    sys.stdout = orig_out
