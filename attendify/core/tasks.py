# attendify/core/tasks.py
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

from attendify.core.config import settings

logger = logging.getLogger(__name__)


class BackgroundDispatcher:
    """Pool limitado para efeitos colaterais "fire-and-forget".

    submit() retorna imediatamente; exceções da tarefa são logadas e nunca
    chegam ao chamador. Sem garantia de ordem entre tarefas.
    """

    def __init__(self, max_workers: Optional[int] = None, name: str = "attendify-bg"):
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.BACKGROUND_WORKERS,
            thread_name_prefix=name,
        )

    def submit(self, fn: Callable[..., Any], *args, **kwargs) -> Optional[Future]:
        label = getattr(fn, "__qualname__", repr(fn))
        try:
            return self._executor.submit(self._run, label, fn, *args, **kwargs)
        except RuntimeError:
            # executor já encerrado (shutdown)
            logger.warning("background task %s dropped: dispatcher is shut down", label)
            return None

    @staticmethod
    def _run(label: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception:
            logger.exception("background task %s failed", label)
            return None

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
