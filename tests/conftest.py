import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest


class ConcurrencyTracker:
  """Chunk function that records how many calls run at the same time."""

  def __init__(self, delay=0.01):
    self.delay = delay
    self.lock = threading.Lock()
    self.active = 0
    self.peak = 0

  def __call__(self, chunk):
    with self.lock:
      self.active += 1
      self.peak = max(self.peak, self.active)
    time.sleep(self.delay)
    with self.lock:
      self.active -= 1
    return len(chunk)


@pytest.fixture
def pool():
  with ThreadPoolExecutor(max_workers=8) as executor:
    yield executor


@pytest.fixture
def tracker():
  return ConcurrencyTracker()
