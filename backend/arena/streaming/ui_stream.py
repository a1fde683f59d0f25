"""
UI message stream runner.

Runs a producer against a fresh StreamWriter in a background task and yields
the fragments it writes, keeping track of the assistant text so the caller
can persist it once the stream is complete.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from .fragments import ERROR, FINISH, START, TEXT_DELTA, Fragment
from .writer import StreamWriter

logger = logging.getLogger(__name__)


@dataclass
class StreamResult:
    """What a finished stream produced."""
    message_id: Optional[str] = None
    deltas: List[str] = field(default_factory=list)
    finish_reason: Optional[str] = None
    error_text: Optional[str] = None

    @property
    def text(self) -> str:
        return "".join(self.deltas)

    @property
    def errored(self) -> bool:
        return self.error_text is not None

    def observe(self, fragment: Fragment) -> None:
        if fragment.type == START and fragment.message_id:
            self.message_id = fragment.message_id
        elif fragment.type == TEXT_DELTA and fragment.delta:
            self.deltas.append(fragment.delta)
        elif fragment.type == FINISH:
            self.finish_reason = fragment.finish_reason or "stop"
        elif fragment.type == ERROR:
            self.error_text = fragment.error_text or ""


Execute = Callable[[StreamWriter], Awaitable[None]]
OnFinish = Callable[[StreamResult], Awaitable[None]]


async def run_ui_message_stream(
    execute: Execute,
    on_finish: Optional[OnFinish] = None,
) -> AsyncIterator[Fragment]:
    """
    Drive ``execute(writer)`` and yield what it writes.

    An exception escaping ``execute`` becomes an error fragment, so the
    channel always ends cleanly. ``on_finish`` runs after the last fragment
    has been yielded; it does not run when the consumer goes away early.
    """
    writer = StreamWriter()

    async def _produce() -> None:
        try:
            await execute(writer)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Stream producer failed: {e}", exc_info=True)
            writer.write(Fragment.error(str(e) or e.__class__.__name__))
        finally:
            writer.close()

    task = asyncio.create_task(_produce())
    result = StreamResult()
    try:
        async for fragment in writer:
            result.observe(fragment)
            yield fragment
    finally:
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.info("Stream cancelled before completion")

    if on_finish is not None:
        await on_finish(result)
