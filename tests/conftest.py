"""Shared test helpers for writing and reading small flat textures."""

import os

import numpy as np
from PIL import Image


def write_gray(path, value, width=8, height=8):
    """Write a flat single-channel (mode L) PNG."""
    arr = np.full((height, width), value, dtype=np.uint8)
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    Image.fromarray(arr).save(path)
    return arr


def write_rgba(path, rgba, width=8, height=8):
    """Write a flat RGBA PNG filled with one pixel value."""
    arr = np.empty((height, width, 4), dtype=np.uint8)
    arr[:, :] = rgba
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    Image.fromarray(arr).save(path)
    return arr


def write_rgb(path, rgb, width=8, height=8):
    """Write a flat RGB PNG filled with one pixel value."""
    arr = np.empty((height, width, 3), dtype=np.uint8)
    arr[:, :] = rgb
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    Image.fromarray(arr).save(path)
    return arr


def read_pixels(path):
    """Return the stored pixels of an image without any mode conversion."""
    with Image.open(path) as img:
        return np.array(img)
