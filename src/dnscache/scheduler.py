"""Deferred job scheduling on the service event loop.

Brief:
  JobScheduler queues callables onto the same asyncio loop that runs lookups
  and transport callbacks, so jobs are serialized with everything else that
  touches the RecordStore.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class JobScheduler:
    """Run callables later on an asyncio event loop.

    Inputs:
      - loop: Optional event loop. When omitted the running loop at the time of
        create_job() is used.

    Outputs:
      - JobScheduler instance
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self.jobs_created: int = 0
        self.jobs_failed: int = 0

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is not None:
            return self._loop
        return asyncio.get_running_loop()

    def create_job(
        self, fn: Callable[..., Any], *args: Any, delay_s: float = 0.0
    ) -> asyncio.Handle:
        """Brief: Schedule fn(*args) to run on the loop after the current callback.

        Inputs:
          - fn: Callable to run.
          - *args: Positional arguments for fn.
          - delay_s: Optional delay in seconds (0 runs on the next loop iteration).

        Outputs:
          - asyncio.Handle that can be cancelled.

        Raises:
          - RuntimeError: when no loop was given and none is running.
        """

        loop = self._get_loop()
        self.jobs_created += 1
        if delay_s > 0:
            return loop.call_later(delay_s, self._run_job, fn, args)
        return loop.call_soon(self._run_job, fn, args)

    def _run_job(self, fn: Callable[..., Any], args: tuple) -> None:
        try:
            fn(*args)
        except Exception:
            self.jobs_failed += 1
            logger.exception("Deferred job %r failed", getattr(fn, "__name__", fn))
