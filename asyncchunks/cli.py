import argparse
import logging
import os
import subprocess
import sys

from . import __version__
from .chunked import process
from .common import logger
from .errors import ChunkFailure, ChunkTimeoutError, ConfigurationError
from .stream import stream_progress


def _read_args(stream, null_separated):
  if null_separated:
    items = stream.read().split('\0')
  else:
    items = (line.rstrip('\n') for line in stream)
  return (item for item in items if item)


def run_command(chunk, command):
  """Run command once with the chunk appended as arguments and return its stdout."""
  logger.debug(f'Running {command[0]} with {len(chunk)} argument(s)')
  res = subprocess.run(
    [*command, *chunk],
    stdout=subprocess.PIPE,
    stderr=subprocess.PIPE,
    text=True,
    check=True
  )
  return res.stdout


def _describe(exc):
  if isinstance(exc, subprocess.CalledProcessError):
    msg = f'exit status {exc.returncode}'
    if exc.stderr:
      msg += f': {exc.stderr.strip()}'
    return msg
  return str(exc)


def main(argv=None):
  prog = os.path.basename(sys.argv[0])
  parser = argparse.ArgumentParser(
    description=(
      'Runs COMMAND on chunks of the lines read from standard input, several chunks at a time.\n'
      'Each line becomes one trailing argument of COMMAND, the output of every run is written\n'
      'to standard output in input order.'
    ),
    epilog=(
      'examples:\n'
      f'  find . -name "*.log" | {prog} gzip -9\n'
      '    Compress log files, 10 files per gzip process\n'
      '\n'
      f'  {prog} -n 1 -P 4 --unordered curl -sI < urls.txt\n'
      '    Fetch headers of 4 urls at a time, printing responses as they arrive\n'
      '\n'
      f'  {prog} --timeout 30000 --keep-going ./check.sh < hosts.txt\n'
      '    Run checks in chunks of 10 hosts, abort if a chunk takes longer than 30s\n'
      '    (Note that failing chunks are reported and skipped, the exit status is 1 if any failed)\n'
    ),
    formatter_class=argparse.RawTextHelpFormatter
  )
  parser.add_argument(
    '-n', '--chunk-size',
    default=10,
    type=int,
    help='The number of input lines passed to each run of COMMAND'
  )
  parser.add_argument(
    '-P', '--max-concurrency',
    default=None,
    type=int,
    help='The maximum number of runs of COMMAND at the same time (default: number of CPUs)'
  )
  parser.add_argument(
    '--timeout',
    default=0,
    type=int,
    help=(
      'Abort everything if a single run of COMMAND takes longer than TIMEOUT milliseconds.\n'
      '0 disables the timeout.'
    )
  )
  parser.add_argument(
    '--unordered',
    help='Write output as soon as a run finishes instead of in input order',
    action='store_true'
  )
  parser.add_argument(
    '--keep-going',
    help='Report failed runs and continue instead of aborting on the first failure',
    action='store_true'
  )
  parser.add_argument(
    '-0', '--null',
    help="Input items are separated by null characters ('\\0') instead of newlines",
    action='store_true'
  )
  parser.add_argument(
    '-v', '--verbose',
    help='Log every chunk as it is dispatched and finished',
    action='store_true'
  )
  parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
  parser.add_argument('command', nargs=argparse.REMAINDER, metavar='COMMAND')

  args = parser.parse_args(argv)
  if not args.command:
    parser.error('COMMAND is required')

  logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

  try:
    results = process(
      _read_args(sys.stdin, args.null),
      run_command,
      args.command,
      chunk_size=args.chunk_size,
      max_concurrency=args.max_concurrency,
      timeout=args.timeout or None,
      ordered=not args.unordered,
      on_error='collect' if args.keep_going else 'raise'
    )
  except ConfigurationError as exc:
    parser.error(str(exc))

  failed = 0
  try:
    for res in stream_progress(results, unit=' chunks'):
      if isinstance(res, ChunkFailure):
        logger.error(f'Chunk {res.index} failed: {_describe(res.error)}')
        failed += 1
        continue
      sys.stdout.write(res)
  except ChunkTimeoutError as exc:
    logger.error(f'Aborted: {exc}')
    return 1
  except (subprocess.CalledProcessError, OSError) as exc:
    logger.error(f'Aborted, {args.command[0]} failed: {_describe(exc)}')
    return 1

  if failed:
    logger.error(f'{failed} chunk(s) failed')
    return 1
  return 0
