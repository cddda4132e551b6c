"""
Frame logic of the decorative matrix rain animation. Drawing is left to
whatever front-end consumes the glyphs.
"""
import random
from config import Config


class MatrixRain:
    """Columns of falling characters on a canvas of the given size."""

    def __init__(self, width, height, rng=None):
        self.width = width
        self.height = height
        self.rng = rng or random.Random()
        cols = width // Config.MATRIX_COLUMN_WIDTH + 1
        self.ypos = [0] * cols

    def warm_up(self, frames=Config.MATRIX_WARM_UP_FRAMES):
        """Advances the columns so the first visible frame starts out filled."""
        for _ in range(frames):
            self.frame()

    def frame(self):
        """Returns the (char, x, y) glyphs of the next frame and moves the columns down."""
        glyphs = []
        for ind, y in enumerate(self.ypos):
            text = chr(int(self.rng.random() * (126 - 33) + 33))
            x = ind * Config.MATRIX_COLUMN_WIDTH
            glyphs.append((text, x, y))

            if y > 100 + self.rng.random() * 10000:
                # randomly restart columns that are at least 100px long
                self.ypos[ind] = 0
            else:
                self.ypos[ind] = y + Config.MATRIX_COLUMN_WIDTH
        return glyphs
