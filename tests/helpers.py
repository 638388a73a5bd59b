import asyncio
from typing import Dict

import numpy as np

from flagle.domain.errors import LoadError
from flagle.domain.reveal import PixelBuffer

SMALL_HEIGHT = 4
SMALL_WIDTH = 4

RED = (200, 16, 46)
BLUE = (0, 56, 168)
WHITE = (255, 255, 255)
GREEN = (0, 122, 61)


def solid_buffer(color, height=SMALL_HEIGHT, width=SMALL_WIDTH, alpha=255) -> PixelBuffer:
    data = np.empty((height, width, 4), dtype=np.uint8)
    data[:, :, :3] = color
    data[:, :, 3] = alpha
    return PixelBuffer(data)


def split_buffer(left, right, height=SMALL_HEIGHT, width=SMALL_WIDTH) -> PixelBuffer:
    """Left half in one colour, right half in another."""
    data = np.empty((height, width, 4), dtype=np.uint8)
    data[:, : width // 2, :3] = left
    data[:, width // 2 :, :3] = right
    data[:, :, 3] = 255
    return PixelBuffer(data)


class FakeLoader:
    """In-memory PixelLoader; an optional gate holds loads until released."""

    def __init__(self, buffers: Dict[str, PixelBuffer]):
        self.buffers = dict(buffers)
        self.calls = []
        self.gate: asyncio.Event | None = None

    async def load_async(self, identifier: str) -> PixelBuffer:
        self.calls.append(identifier)
        if self.gate is not None:
            await self.gate.wait()
        if identifier not in self.buffers:
            raise LoadError(identifier, "image not found")
        return self.buffers[identifier]
