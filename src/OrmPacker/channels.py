"""Channel packing and unpacking between individual maps and ORM textures.

All functions are pure and operate on whole ``uint8`` arrays at once. Each
output pixel depends only on the input pixels at the same coordinate, so the
vectorized form is equivalent to applying the per-pixel rule everywhere.

Layouts:
  packed ORM      (H, W, 3)  R = AO, G = Roughness|Smoothness, B = Metallic
  full texture    (H, W, 4)  RGBA, grayscale maps carry R = G = B
  single channel  (H, W)
"""

from typing import NamedTuple

import numpy as np

from .config import ChannelRole, ORMConvention

MAX_VALUE = 255


class TextureSizeMismatchError(ValueError):
    """Raised when textures combined pixel-by-pixel differ in size."""


class UnpackedORM(NamedTuple):
    ao: np.ndarray
    roughness: np.ndarray
    smoothness: np.ndarray
    metallic: np.ndarray


def _as_bytes(values) -> np.ndarray:
    """Return ``values`` as uint8, rejecting anything outside [0, 255]."""
    arr = np.asarray(values)
    if arr.dtype == np.uint8:
        return arr
    if not np.issubdtype(arr.dtype, np.integer):
        raise TypeError(f"Channel values must be integers, got dtype {arr.dtype}")
    if arr.size and (arr.min() < 0 or arr.max() > MAX_VALUE):
        raise ValueError(
            f"Channel values must lie in [0, {MAX_VALUE}], "
            f"got range [{arr.min()}, {arr.max()}]"
        )
    return arr.astype(np.uint8)


def invert_roughness(values) -> np.ndarray:
    """Return ``255 - v``; turns roughness into smoothness and back."""
    arr = _as_bytes(values)
    return (MAX_VALUE - arr).astype(np.uint8)


def ensure_same_size(**textures: np.ndarray) -> tuple:
    """Check that all named textures share width and height; return (H, W)."""
    sizes = {name: tuple(np.shape(tex)[:2]) for name, tex in textures.items()}
    distinct = set(sizes.values())
    if len(distinct) > 1:
        detail = ", ".join(f"{name}={w}x{h}" for name, (h, w) in sizes.items())
        raise TextureSizeMismatchError(f"Texture dimensions differ: {detail}")
    return next(iter(distinct)) if distinct else (0, 0)


def channel(texture: np.ndarray, index: int = 0) -> np.ndarray:
    """Return one channel of an (H, W, C) texture, or the texture itself if 2-D."""
    arr = _as_bytes(texture)
    if arr.ndim == 2:
        return arr
    return arr[:, :, index]


def pack_orm(
    ao,
    green,
    metallic,
    convention: ORMConvention,
    supplied: ChannelRole = ChannelRole.ROUGHNESS,
) -> np.ndarray:
    """Pack three grayscale channels into an (H, W, 3) ORM texture.

    ``green`` holds the map named by ``supplied`` (roughness or smoothness).
    It is inverted when ``convention`` stores the other one in G.
    """
    if supplied not in (ChannelRole.ROUGHNESS, ChannelRole.SMOOTHNESS):
        raise ValueError(f"G channel must be roughness or smoothness, got {supplied.value}")
    ao = _as_bytes(ao)
    green = _as_bytes(green)
    metallic = _as_bytes(metallic)
    ensure_same_size(ao=ao, green=green, metallic=metallic)
    if convention.green_role is supplied.inverse:
        green = invert_roughness(green)
    return np.stack([ao, green, metallic], axis=-1)


def convert_orm_convention(packed: np.ndarray, from_convention: ORMConvention) -> np.ndarray:
    """Convert a packed ORM to ``from_convention.other``: R and B kept, G inverted."""
    arr = _as_bytes(packed)
    if arr.ndim != 3 or arr.shape[-1] < 3:
        raise ValueError(f"Packed ORM must be HxWx3, got shape {arr.shape}")
    return pack_orm(
        arr[:, :, 0], arr[:, :, 1], arr[:, :, 2],
        from_convention.other, supplied=from_convention.green_role,
    )


def unpack_orm(packed: np.ndarray, convention: ORMConvention) -> UnpackedORM:
    """Split a packed ORM into AO, roughness, smoothness and metallic channels."""
    arr = _as_bytes(packed)
    if arr.ndim != 3 or arr.shape[-1] < 3:
        raise ValueError(f"Packed ORM must be HxWx3, got shape {arr.shape}")
    ao = arr[:, :, 0].copy()
    green = arr[:, :, 1].copy()
    metallic = arr[:, :, 2].copy()
    inverted = invert_roughness(green)
    maps = {convention.green_role: green, convention.green_role.inverse: inverted}
    roughness, smoothness = maps[ChannelRole.ROUGHNESS], maps[ChannelRole.SMOOTHNESS]
    return UnpackedORM(ao=ao, roughness=roughness, smoothness=smoothness, metallic=metallic)


def grayscale_texture(values: np.ndarray, alpha=None) -> np.ndarray:
    """Build an (H, W, 4) grayscale texture; alpha is opaque unless given."""
    gray = _as_bytes(values)
    if alpha is None:
        alpha = np.full_like(gray, MAX_VALUE)
    else:
        alpha = _as_bytes(alpha)
        ensure_same_size(values=gray, alpha=alpha)
    return np.stack([gray, gray, gray, alpha], axis=-1)


def metallic_with_smoothness(metallic: np.ndarray, smoothness: np.ndarray) -> np.ndarray:
    """Return a copy of an RGBA metallic texture with smoothness in its alpha."""
    metallic = _as_bytes(metallic)
    smoothness = _as_bytes(smoothness)
    if metallic.ndim != 3 or metallic.shape[-1] not in (3, 4):
        raise ValueError(f"Metallic texture must be HxWx3 or HxWx4, got {metallic.shape}")
    ensure_same_size(metallic=metallic, smoothness=smoothness)
    out = np.empty(metallic.shape[:2] + (4,), dtype=np.uint8)
    out[:, :, :3] = metallic[:, :, :3]
    out[:, :, 3] = smoothness
    return out
