# util/timing.py
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, Dict, Any
import logging


@dataclass
class Stopwatch:
    started: float = field(default_factory=time.perf_counter)

    @property
    def elapsed(self) -> float:
        """Seconds since the stopwatch started."""
        return time.perf_counter() - self.started


@contextmanager
def timed(logger: logging.Logger, name: str, **kv: Dict[str, Any]) -> Iterator[Stopwatch]:
    """
    Usage:
      with timed(logger, "engine.call", engine="openai") as sw:
          ...
          if sw.elapsed > 5: ...
    Emits one INFO on exit: "<name>.done ms=<int> key=val ..."
    """
    sw = Stopwatch()
    try:
        yield sw
    finally:
        dt_ms = int(sw.elapsed * 1000)
        suffix = "".join(f" {k}={v}" for k, v in kv.items())
        logger.info("%s.done ms=%d%s", name, dt_ms, suffix)
