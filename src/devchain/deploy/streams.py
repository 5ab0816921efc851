"""Stream draining for child-process output.

A ``StreamDrainer`` owns exactly one output pipe. It reads the pipe line by
line until end-of-input and pushes each line onto a shared, unbounded
``asyncio.Queue`` as a ``StreamEvent``. ``put_nowait`` never blocks the
drainer, so a child writing heavily to stderr cannot stall while the
runner is still busy with stdout.

Every drainer finishes with exactly one ``closed`` event, preceded by an
``error`` event if the read failed for any reason other than end-of-input.

Tags:
    subprocess, asyncio, streams, pipes
"""

from __future__ import annotations

import asyncio
import codecs
from collections.abc import AsyncIterator
from dataclasses import dataclass
from enum import Enum


class StreamSource(str, Enum):
    """Which output stream a line came from."""

    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class StreamEvent:
    """One message from a drainer: a line, a read error, or end-of-input."""

    source: StreamSource
    line: str | None = None
    error: BaseException | None = None
    closed: bool = False


class StreamDrainer:
    """Reads one output stream to completion.

    Parameters
    ----------
    stream
        The reader attached to the child's pipe.
    source
        Label recorded on every emitted event.
    encoding
        Text encoding of the child's output; undecodable bytes are replaced.
    """

    def __init__(
        self,
        stream: asyncio.StreamReader,
        source: StreamSource,
        encoding: str = "utf-8",
    ) -> None:
        self._stream = stream
        self.source = source
        self._encoding = encoding

    async def lines(self) -> AsyncIterator[str]:
        """Yield decoded lines (newline included) until end-of-input.

        A line longer than the reader's limit is yielded in several
        chunks; concatenating the chunks restores the line.
        """
        decoder = codecs.getincrementaldecoder(self._encoding)(errors="replace")
        while True:
            try:
                raw = await self._stream.readuntil(b"\n")
            except asyncio.IncompleteReadError as exc:
                text = decoder.decode(exc.partial, final=True)
                if text:
                    yield text
                return
            except asyncio.LimitOverrunError as exc:
                raw = await self._stream.read(max(exc.consumed, 1))
            text = decoder.decode(raw)
            if text:
                yield text

    async def drain(self, sink: asyncio.Queue[StreamEvent]) -> None:
        """Push every line onto ``sink``, then an error (if any) and ``closed``."""
        try:
            async for line in self.lines():
                sink.put_nowait(StreamEvent(self.source, line=line))
        except Exception as exc:  # forwarded to the runner as a StreamReadError
            sink.put_nowait(StreamEvent(self.source, error=exc))
        finally:
            sink.put_nowait(StreamEvent(self.source, closed=True))


__all__ = ["StreamDrainer", "StreamEvent", "StreamSource"]
