from __future__ import annotations

from pathlib import Path

from ideflow_core.handlers.base import BaseHandlerClient, StreamResponse

_DEFAULT_CHUNK_SIZE = 64


class ReplayHandlerClient(BaseHandlerClient):
    """Replays a recorded stream body instead of calling a live handler.

    The recording is cut into fixed-size chunks so the decoder sees the same
    arbitrary boundaries a network read would produce. Every request made is
    kept in ``requests`` for inspection.
    """

    def __init__(self, body: bytes, status_code: int = 200, chunk_size: int = _DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.body = body
        self.status_code = status_code
        self.chunk_size = chunk_size
        self.requests: list[dict] = []

    @classmethod
    def from_file(cls, path: str | Path, chunk_size: int = _DEFAULT_CHUNK_SIZE) -> ReplayHandlerClient:
        return cls(Path(path).read_bytes(), chunk_size=chunk_size)

    def _open_stream(self, request: dict) -> StreamResponse:
        self.requests.append(request)
        chunks = (self.body[i : i + self.chunk_size] for i in range(0, len(self.body), self.chunk_size))
        return StreamResponse(status_code=self.status_code, chunks=chunks)
