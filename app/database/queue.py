"""
Database Queue - single-writer lane for every store operation
SQLite is safest with one writer, so all reads/writes in the process are
funneled through one FIFO lane: operations run one at a time, in the order
they were submitted.
"""
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Optional, Tuple
import asyncio
import logging

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Any]]


class DatabaseQueue:
    """Strict FIFO serializer over async store operations"""

    def __init__(self):
        self._pending: Deque[Tuple[Operation, asyncio.Future]] = deque()
        self._worker: Optional[asyncio.Task] = None

    @property
    def size(self) -> int:
        return len(self._pending)

    @property
    def processing(self) -> bool:
        return self._worker is not None and not self._worker.done()

    async def execute(self, operation: Operation) -> Any:
        """
        Enqueue an operation and wait for its result.
        A failing operation raises here, in its caller, and never in the lane.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending.append((operation, future))
        if not self.processing:
            self._worker = loop.create_task(self._drain())
        return await future

    async def _drain(self) -> None:
        while self._pending:
            operation, future = self._pending.popleft()
            if future.cancelled():
                continue
            try:
                result = await operation()
            except Exception as e:
                logger.error(f"❌ Database operation failed: {e}")
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)


db_queue = DatabaseQueue()
