"""
Hull Display
============
Renders a sparse panel grid (``{(x, y): color}``) as text or as a PNG.

Rows run from the highest y at the top to the lowest at the bottom, x
increasing left to right, so "up" for the robot is up on the page.  The
output depends only on the grid contents, never on insertion order.

Usage:
  from display import render_text, render_image
  print(render_text(robot.panels))
  render_image(robot.panels, "hull.png", scale=8)
"""

from __future__ import annotations

import numpy as np

Panels = dict[tuple[int, int], int]

WHITE_PIXEL = 255
BLACK_PIXEL = 0


def bounds(panels: Panels) -> tuple[int, int, int, int]:
    """(min_x, min_y, max_x, max_y) over every known panel."""
    if not panels:
        return (0, 0, 0, 0)
    xs = [x for x, _ in panels]
    ys = [y for _, y in panels]
    return min(xs), min(ys), max(xs), max(ys)


def to_array(panels: Panels) -> np.ndarray:
    """Grid as a uint8 array, row 0 = highest y.  Nonzero panels are white."""
    min_x, min_y, max_x, max_y = bounds(panels)
    w = max_x - min_x + 1
    h = max_y - min_y + 1
    pixels = np.full((h, w), BLACK_PIXEL, dtype=np.uint8)
    for (x, y), color in panels.items():
        if color:
            pixels[max_y - y, x - min_x] = WHITE_PIXEL
    return pixels


def render_text(panels: Panels, on: str = "#", off: str = " ") -> str:
    pixels = to_array(panels)
    rows = ["".join(on if p else off for p in row) for row in pixels]
    return "\n".join(rows)


def render_image(panels: Panels, path: str, scale: int = 8):
    """Write the grid to *path* as a grayscale PNG, *scale* pixels per panel."""
    from PIL import Image

    pixels = to_array(panels)
    h, w = pixels.shape
    img = Image.fromarray(pixels)
    scale = max(1, scale)
    if scale > 1:
        img = img.resize((w * scale, h * scale), Image.Resampling.NEAREST)
    img.save(path)
    return img
