import logging
import sys


def setup_logging(level: str = "INFO", stream=None):
    # report lines go to stdout; keep log records on stderr
    levelno = getattr(logging, level.upper(), logging.INFO)
    fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    logging.basicConfig(level=levelno, format=fmt, stream=stream or sys.stderr)
