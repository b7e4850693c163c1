from dataclasses import dataclass


class AsyncChunksError(Exception):
  """Base class for errors raised by asyncchunks."""


class ConfigurationError(AsyncChunksError, ValueError):
  """An option passed to process() or one of its facades is invalid."""


class ChunkTimeoutError(AsyncChunksError, TimeoutError):
  """A chunk did not finish within the configured timeout.

  The whole operation is aborted when this is raised, results of chunks that
  already finished are discarded.
  """

  def __init__(self, index, timeout):
    self.index = index
    self.timeout = timeout
    super().__init__(f'chunk {index} did not finish within {timeout}ms')


@dataclass
class ChunkFailure:
  """Placeholder emitted for a failed chunk when errors are collected."""
  index: int
  error: BaseException
