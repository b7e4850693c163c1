__version__ = '0.1.0'

from .chunked import (
  ChunkOptions,
  process,
  map,
  flat_map,
  filter,
  reject,
  reduce,
  map_join,
  all,
  any,
)
from .errors import AsyncChunksError, ChunkFailure, ChunkTimeoutError, ConfigurationError
from .stream import stream_count, stream_progress, stream_tap
from .cli import main
