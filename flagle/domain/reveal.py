"""Pixel buffers and the reveal engine.

A guess reveals every pixel whose red, green and blue values equal the
target's at the same position (alpha is ignored). Revealed pixels accumulate
over the game and never go back to hidden.
"""

import numpy as np

from flagle.domain.errors import ShapeMismatchError

FLAG_WIDTH = 640
FLAG_HEIGHT = 480
HIDDEN_COLOR = (31, 41, 55)  # matches the #1f2937 page background


class PixelBuffer:
    """Read-only RGBA view over a decoded image of shape (height, width, 4)."""

    def __init__(self, data: np.ndarray):
        array = np.asarray(data)
        if array.ndim != 3 or array.shape[2] != 4:
            raise ValueError(f"Pixel buffer must have shape (H, W, 4), got {array.shape}")
        if array.dtype != np.uint8:
            if array.size and (array.min() < 0 or array.max() > 255):
                raise ValueError("Pixel channel values must be in [0, 255]")
            array = array.astype(np.uint8)
        else:
            array = array.copy()
        array.setflags(write=False)
        self._data = array

    @classmethod
    def from_bytes(cls, width: int, height: int, data: bytes) -> "PixelBuffer":
        """Build a buffer from flat row-major RGBA bytes."""
        if len(data) != width * height * 4:
            raise ValueError(
                f"Expected {width * height * 4} bytes for {width}x{height} RGBA, got {len(data)}"
            )
        return cls(np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4))

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def width(self) -> int:
        return self._data.shape[1]

    @property
    def height(self) -> int:
        return self._data.shape[0]

    @property
    def shape(self) -> tuple[int, int]:
        """Return (height, width)."""
        return (self.height, self.width)

    @property
    def size(self) -> int:
        """Number of pixels."""
        return self.width * self.height

    @property
    def rgb(self) -> np.ndarray:
        return self._data[:, :, :3]

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        r, g, b, a = self._data[y, x]
        return (int(r), int(g), int(b), int(a))


def apply_guess(guess: PixelBuffer, target: PixelBuffer, bitmap: np.ndarray) -> float:
    """Reveal every pixel where guess matches target and return the reveal percentage.

    Args:
        guess (PixelBuffer): Decoded image of the guessed flag
        target (PixelBuffer): Decoded image of today's flag
        bitmap (np.ndarray): Bool array (H, W) of revealed pixels, updated in place

    Raises:
        ShapeMismatchError: The buffers or the bitmap disagree on dimensions

    Returns:
        float: 100 * revealed pixels / total pixels
    """
    if guess.shape != target.shape:
        raise ShapeMismatchError(f"Guess is {guess.shape}, target is {target.shape}")
    if bitmap.shape != target.shape:
        raise ShapeMismatchError(f"Bitmap is {bitmap.shape}, target is {target.shape}")

    matches = np.all(guess.rgb == target.rgb, axis=2)
    bitmap |= matches
    return reveal_percentage(bitmap)


def reveal_percentage(bitmap: np.ndarray) -> float:
    return 100.0 * int(np.count_nonzero(bitmap)) / bitmap.size


class RevealEngine:
    """Owns the reveal bitmap for one target."""

    def __init__(self, target: PixelBuffer):
        self.target = target
        self._bitmap = np.zeros(target.shape, dtype=bool)

    def apply_guess(self, guess: PixelBuffer) -> float:
        return apply_guess(guess, self.target, self._bitmap)

    def reveal_all(self) -> None:
        self._bitmap.fill(True)

    @property
    def bitmap(self) -> np.ndarray:
        """Copy of the bitmap, safe to hand to the rendering layer."""
        snapshot = self._bitmap.copy()
        snapshot.setflags(write=False)
        return snapshot

    @property
    def revealed_count(self) -> int:
        return int(np.count_nonzero(self._bitmap))

    @property
    def reveal_percentage(self) -> float:
        return reveal_percentage(self._bitmap)

    def composite(self, hidden_color: tuple[int, int, int] = HIDDEN_COLOR) -> np.ndarray:
        """Target colours where revealed, hidden_color elsewhere, fully opaque.

        Returns:
            np.ndarray: uint8 array (H, W, 4)
        """
        image = np.empty(self.target.data.shape, dtype=np.uint8)
        image[:, :, :3] = np.where(
            self._bitmap[:, :, np.newaxis],
            self.target.rgb,
            np.array(hidden_color, dtype=np.uint8),
        )
        image[:, :, 3] = 255
        return image
