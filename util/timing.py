# util/timing.py
import asyncio
import time
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Iterator
import logging


def _suffix(kv: dict[str, Any]) -> str:
    return "".join(f" {k}={v}" for k, v in kv.items())


@contextmanager
def timed(logger: logging.Logger, name: str, **kv: Any) -> Iterator[None]:
    """
    Usage:
      with timed(logger, "media.release", job=job_id):
          ...
    Emits one INFO on exit: "<name>.done ms=<int> key=val ..."
    """
    t0 = time.perf_counter()
    try:
        yield
    finally:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        logger.info("%s.done ms=%d%s", name, dt_ms, _suffix(kv))


@asynccontextmanager
async def timed_stage(
    logger: logging.Logger, name: str, **kv: Any
) -> AsyncIterator[None]:
    """
    Like `timed`, but distinguishes how the block ended:
    "<name>.done", "<name>.failed" or "<name>.cancelled".
    """
    t0 = time.perf_counter()
    outcome = "failed"
    try:
        yield
        outcome = "done"
    except asyncio.CancelledError:
        outcome = "cancelled"
        raise
    finally:
        dt_ms = int((time.perf_counter() - t0) * 1000)
        logger.info("%s.%s ms=%d%s", name, outcome, dt_ms, _suffix(kv))
