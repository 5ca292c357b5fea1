"""Decoding of the handler's streaming response.

Wire format (consumed, never produced here):

    data: {"choices": [{"delta": {"content": "Hel"}}]}\\n
    data: {"choices": [{"delta": {"content": "lo"}}]}\\n
    data: [DONE]\\n

Bytes arrive in arbitrary chunk boundaries. The decoder keeps the trailing
partial line (and any partial UTF-8 sequence) until the next chunk, ignores
lines without the ``data: `` prefix, stops at ``[DONE]`` and drops data lines
whose JSON cannot be read. A dropped line never aborts the stream.
"""

from __future__ import annotations

import codecs
import json
import logging
import math
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Iterable, Iterator

logger = logging.getLogger(__name__)

FRAME_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
MAX_LINE_LENGTH = 1 << 20


@dataclass(frozen=True)
class Frame:
    """One protocol unit: a content delta or the terminal sentinel."""

    delta: str | None = None
    done: bool = False


class CancelToken:
    """Cooperative cancellation flag checked by the read loops between chunks."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def extract_delta(payload: object) -> str | None:
    """Return ``choices[0].delta.content`` from a decoded chunk, or None."""
    try:
        content = payload["choices"][0]["delta"]["content"]  # type: ignore[index]
    except (KeyError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) and content else None


def parse_line(line: str) -> Frame | None:
    """Decode one line of the stream. Returns None for lines that carry nothing."""
    line = line.rstrip("\r")
    if not line.startswith(FRAME_PREFIX):
        return None
    body = line[len(FRAME_PREFIX) :].strip()
    if body == DONE_SENTINEL:
        return Frame(done=True)
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        logger.debug("Dropping malformed stream line: %.80s", body)
        return None
    delta = extract_delta(payload)
    if delta is None:
        return None
    return Frame(delta=delta)


class FrameDecoder:
    """Incremental bytes -> frames decoder.

    Not restartable: once the sentinel has been seen every later feed()
    returns an empty list. A partial line longer than `max_line_length`
    characters is dropped, along with the rest of it up to the next newline.
    """

    def __init__(self, max_line_length: int = MAX_LINE_LENGTH) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._skipping = False
        self.max_line_length = max_line_length
        self.done = False

    def feed(self, chunk: bytes) -> list[Frame]:
        if self.done:
            return []
        text = self._decoder.decode(chunk)
        if self._skipping:
            newline = text.find("\n")
            if newline < 0:
                return []
            text = text[newline + 1 :]
            self._skipping = False
        self._buffer += text
        *lines, self._buffer = self._buffer.split("\n")
        if len(self._buffer) > self.max_line_length:
            logger.debug("Dropping partial line over %d characters", self.max_line_length)
            self._buffer = ""
            self._skipping = True
        return self._parse_lines(lines)

    def flush(self) -> list[Frame]:
        """Decode whatever is left once the byte source is exhausted."""
        if self.done or self._skipping:
            return []
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return self._parse_lines(tail.split("\n"))

    def _parse_lines(self, lines: list[str]) -> list[Frame]:
        frames: list[Frame] = []
        for line in lines:
            frame = parse_line(line)
            if frame is None:
                continue
            frames.append(frame)
            if frame.done:
                self.done = True
                break
        return frames


def _deltas(frames: list[Frame]) -> Iterator[str]:
    for frame in frames:
        if frame.done:
            return
        if frame.delta is not None:
            yield frame.delta


def iter_deltas(chunks: Iterable[bytes], cancel: CancelToken | None = None) -> Iterator[str]:
    """Yield content deltas from a synchronous byte-chunk source."""
    decoder = FrameDecoder()
    for chunk in chunks:
        if cancel is not None and cancel.cancelled:
            logger.debug("Stream read cancelled")
            return
        yield from _deltas(decoder.feed(chunk))
        if decoder.done:
            return
    yield from _deltas(decoder.flush())


async def aiter_deltas(chunks: AsyncIterable[bytes], cancel: CancelToken | None = None) -> AsyncIterator[str]:
    """Yield content deltas from an asynchronous byte-chunk source.

    Each ``async for`` step over ``chunks`` is the only suspension point.
    """
    decoder = FrameDecoder()
    async for chunk in chunks:
        if cancel is not None and cancel.cancelled:
            logger.debug("Stream read cancelled")
            return
        for delta in _deltas(decoder.feed(chunk)):
            yield delta
        if decoder.done:
            return
    for delta in _deltas(decoder.flush()):
        yield delta


class TokenAccumulator:
    """Concatenates deltas, in arrival order, into one growing buffer."""

    def __init__(self) -> None:
        self._parts: list[str] = []
        self.finished = False

    def append(self, delta: str) -> None:
        if self.finished:
            raise RuntimeError("Cannot append to a finished accumulator")
        self._parts.append(delta)

    def finish(self) -> str:
        self.finished = True
        return self.text

    @property
    def text(self) -> str:
        return "".join(self._parts)

    @property
    def token_estimate(self) -> int:
        # Roughly four characters per token.
        return math.ceil(len(self.text) / 4)

    def consume(self, deltas: Iterable[str]) -> str:
        for delta in deltas:
            self.append(delta)
        return self.finish()
