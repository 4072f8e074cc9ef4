"""
Renderer module - turns a world and a camera into an image.

Implements:
- Multi-threaded tile-based rendering
- LDR conversion with optional gamma
- PPM output and every format Pillow can write
"""

from __future__ import annotations
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import numpy as np
from PIL import Image

from .camera import Camera
from .world import World, DEFAULT_MAX_DEPTH

logger = logging.getLogger(__name__)

# Plain PPM lines must not exceed this many characters.
PPM_LINE_LIMIT = 70

Tile = Tuple[int, int, int, int]


@dataclass
class RenderSettings:
    """Configuration for the renderer."""
    max_depth: int = DEFAULT_MAX_DEPTH
    tile_size: int = 16
    num_threads: int = 0  # 0 = auto-detect
    gamma: float = 1.0

    def __post_init__(self):
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")
        if self.tile_size <= 0:
            raise ValueError(f"tile_size must be positive, got {self.tile_size}")
        if self.gamma <= 0:
            raise ValueError(f"gamma must be positive, got {self.gamma}")
        if self.num_threads == 0:
            self.num_threads = os.cpu_count() or 4


class Renderer:
    """Tile-parallel renderer.

    Scene data is only read while rendering, so tiles need no locking; each
    pixel of the output array is written by exactly one tile.
    """

    def __init__(self, settings: Optional[RenderSettings] = None):
        self.settings = settings if settings else RenderSettings()
        self._progress_callback: Optional[Callable[[float], None]] = None

    def set_progress_callback(self, callback: Callable[[float], None]) -> None:
        """Set a callback receiving progress as a float from 0.0 to 1.0."""
        self._progress_callback = callback

    def render(self, world: World, camera: Camera) -> np.ndarray:
        """Render the world and return the image as a numpy array.

        Returns:
            Linear color image of shape (vsize, hsize, 3), float64, unclamped
        """
        width, height = camera.hsize, camera.vsize
        depth = self.settings.max_depth
        image = np.zeros((height, width, 3), dtype=np.float64)

        tiles = self._generate_tiles(width, height)
        total_tiles = len(tiles)
        completed_tiles = [0]

        def render_tile(tile: Tile) -> None:
            x0, y0, x1, y1 = tile
            for y in range(y0, y1):
                for x in range(x0, x1):
                    ray = camera.ray_for_pixel(x, y)
                    image[y, x] = world.color_at(ray, depth).to_array()

            completed_tiles[0] += 1
            if self._progress_callback:
                self._progress_callback(completed_tiles[0] / total_tiles)

        logger.info("Rendering %dx%d in %d tiles on %d threads (depth %d)",
                    width, height, total_tiles, self.settings.num_threads, depth)
        start = time.perf_counter()

        if self.settings.num_threads > 1:
            with ThreadPoolExecutor(max_workers=self.settings.num_threads) as executor:
                # list() surfaces exceptions raised inside workers
                list(executor.map(render_tile, tiles))
        else:
            for tile in tiles:
                render_tile(tile)

        logger.info("Rendered in %.2fs", time.perf_counter() - start)
        return image

    def _generate_tiles(self, width: int, height: int) -> List[Tile]:
        """Split the image into (x0, y0, x1, y1) tiles."""
        tile_size = self.settings.tile_size
        tiles = []

        for y in range(0, height, tile_size):
            for x in range(0, width, tile_size):
                tiles.append((x, y, min(x + tile_size, width), min(y + tile_size, height)))

        return tiles

    def to_ldr(self, image: np.ndarray) -> np.ndarray:
        """Clamp to [0, 1], apply gamma and convert to 8-bit."""
        corrected = np.clip(image, 0.0, 1.0)
        if self.settings.gamma != 1.0:
            corrected = np.power(corrected, 1.0 / self.settings.gamma)
        return np.round(corrected * 255).astype(np.uint8)

    def to_ppm(self, image: np.ndarray) -> str:
        """Encode an image as plain (P3) PPM text.

        Lines are wrapped so none exceeds 70 characters, and the text ends
        with a newline.
        """
        if image.dtype != np.uint8:
            image = self.to_ldr(image)

        height, width = image.shape[:2]
        lines = ["P3", f"{width} {height}", "255"]

        for row in image:
            current = ""
            for value in row.reshape(-1):
                token = str(int(value))
                if not current:
                    current = token
                elif len(current) + 1 + len(token) > PPM_LINE_LIMIT:
                    lines.append(current)
                    current = token
                else:
                    current += " " + token
            lines.append(current)

        return "\n".join(lines) + "\n"

    def save_image(self, image: np.ndarray, filename: str) -> None:
        """Save an image; `.ppm` is written as plain text, anything else via Pillow."""
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix.lower() == '.ppm':
            path.write_text(self.to_ppm(image))
        else:
            if image.dtype != np.uint8:
                image = self.to_ldr(image)
            Image.fromarray(image).save(path)

        logger.info("Saved %s", path)
