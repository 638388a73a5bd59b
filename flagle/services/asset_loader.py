"""Loading of the pool, the palette and decoded flag images from disk."""

import asyncio
import json
import logging
import pathlib
from typing import List

import numpy as np
from PIL import Image, UnidentifiedImageError

from flagle.domain.errors import LoadError
from flagle.domain.pool import FlagPool, PoolEntry
from flagle.domain.reveal import FLAG_HEIGHT, FLAG_WIDTH, PixelBuffer


def load_pool(path: pathlib.Path) -> FlagPool:
    """Read countries.json (a list of {"code", "name"}) keeping file order

    Args:
        path (pathlib.Path): Path to countries.json

    Raises:
        LoadError: The file is missing or malformed

    Returns:
        FlagPool: Ordered pool of flags
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        entries = [PoolEntry(identifier=item["code"], display_name=item["name"]) for item in raw]
        pool = FlagPool(entries)
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise LoadError(str(path), str(e)) from e
    if len(pool) == 0:
        raise LoadError(str(path), "pool is empty")
    logging.info(f"Loaded pool of {len(pool)} flags from {path}")
    return pool


def load_palette(path: pathlib.Path) -> List[List[int]]:
    """Read palette.json, the list of [r, g, b] colours the flags are quantized to"""
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        palette = [[int(channel) for channel in color[:3]] for color in raw]
    except (OSError, ValueError, TypeError) as e:
        raise LoadError(str(path), str(e)) from e
    return palette


class FlagImageLoader:
    """Decodes <flags_dir>/<identifier>.png into 640x480 RGBA pixel buffers."""

    def __init__(self, flags_dir: pathlib.Path, width: int = FLAG_WIDTH, height: int = FLAG_HEIGHT):
        self.flags_dir = pathlib.Path(flags_dir)
        self.width = width
        self.height = height

    def image_path(self, identifier: str) -> pathlib.Path:
        path = self.flags_dir / f"{identifier}.png"
        # identifiers come from the client; keep them inside flags_dir
        if path.resolve().parent != self.flags_dir.resolve():
            raise LoadError(identifier, "invalid identifier")
        return path

    def load(self, identifier: str) -> PixelBuffer:
        path = self.image_path(identifier)
        try:
            with Image.open(path) as image:
                image = image.convert("RGBA")
                if image.size != (self.width, self.height):
                    logging.debug(f"Resizing {path.name} from {image.size} to {self.width}x{self.height}")
                    # nearest keeps the quantized colours intact
                    image = image.resize((self.width, self.height), Image.Resampling.NEAREST)
                data = np.asarray(image, dtype=np.uint8)
        except FileNotFoundError as e:
            raise LoadError(identifier, "image not found") from e
        except (OSError, UnidentifiedImageError, ValueError) as e:
            raise LoadError(identifier, f"cannot decode image: {e}") from e
        return PixelBuffer(data)

    async def load_async(self, identifier: str) -> PixelBuffer:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.load, identifier)
