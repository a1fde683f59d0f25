"""
Outbound fragment channel shared by the dispatcher and the HTTP response.
"""

import asyncio
import logging
from contextlib import aclosing
from typing import AsyncIterator, Optional

from .fragments import Fragment

logger = logging.getLogger(__name__)

_CLOSED = object()


class StreamWriter:
    """
    Single-consumer fragment queue.

    ``write`` and ``merge`` feed it, iterating drains it. Once a terminal
    fragment (finish or error) has been written, later writes are dropped so
    the consumer never sees two terminals or text after the end.
    """

    def __init__(self):
        self._queue: "asyncio.Queue[object]" = asyncio.Queue()
        self._terminal: Optional[Fragment] = None
        self._closed = False

    @property
    def terminated(self) -> bool:
        return self._terminal is not None

    @property
    def terminal(self) -> Optional[Fragment]:
        return self._terminal

    def write(self, fragment: Fragment) -> None:
        if self._closed or self._terminal is not None:
            logger.debug(f"Dropping fragment after stream end: type={fragment.type}")
            return
        self._queue.put_nowait(fragment)
        if fragment.is_terminal:
            self._terminal = fragment

    async def merge(self, fragments: AsyncIterator[Fragment]) -> None:
        """Forward every fragment of an adapter stream, stopping at its terminal."""
        async with aclosing(fragments) as stream:
            async for fragment in stream:
                self.write(fragment)
                if self.terminated:
                    break

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[Fragment]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item  # type: ignore[misc]
