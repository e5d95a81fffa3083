"""Image I/O utilities -- load/save 8-bit numpy arrays with explicit channel layout."""

import logging
import os
import threading
from pathlib import Path

import numpy as np
from PIL import Image

logger = logging.getLogger("orm_packer")

_EXR_EXTENSIONS = (".exr",)


def _import_cv2():
    """Import OpenCV with its OpenEXR codec enabled."""
    # OpenCV only honours this flag if it is set before the module loads.
    os.environ.setdefault("OPENCV_IO_ENABLE_OPENEXR", "1")
    import cv2
    return cv2


def _float_to_uint8(arr: np.ndarray) -> np.ndarray:
    return np.round(np.clip(arr, 0.0, 1.0) * 255.0).astype(np.uint8)


def _load_exr(path: str) -> np.ndarray:
    """Decode an EXR file to RGBA uint8 via OpenCV."""
    cv2 = _import_cv2()
    data = cv2.imread(path, cv2.IMREAD_UNCHANGED)
    if data is None:
        raise IOError(f"cv2.imread could not decode EXR: {path}")
    if data.ndim == 2:
        rgba = np.dstack([data, data, data, np.ones_like(data)])
    elif data.shape[-1] == 3:
        rgb = data[:, :, ::-1]  # BGR -> RGB
        rgba = np.dstack([rgb, np.ones(rgb.shape[:2], dtype=rgb.dtype)])
    elif data.shape[-1] == 4:
        rgba = data[:, :, [2, 1, 0, 3]]  # BGRA -> RGBA
    else:
        raise ValueError(f"Unsupported EXR channel layout {data.shape} in {path}")
    if np.issubdtype(rgba.dtype, np.integer):
        return rgba.astype(np.uint8)
    logger.debug("Quantizing float EXR '%s' to 8-bit", path)
    return _float_to_uint8(rgba.astype(np.float32))


def load_texture(path: str, alpha: bool = True) -> np.ndarray:
    """Load an image as a uint8 array.

    Returns shape (H, W, 4) when ``alpha`` is True and (H, W, 3) otherwise.
    Grayscale and palette images are expanded so R = G = B; a missing alpha
    channel reads as fully opaque.
    """
    ext = Path(path).suffix.lower()
    if ext in _EXR_EXTENSIONS:
        try:
            rgba = _load_exr(path)
        except (ValueError, ImportError):
            raise
        except Exception as e:
            logger.error("Failed to open EXR '%s': %s", path, e)
            raise IOError(f"Failed to open image: {path}\n  Format: {ext}, Error: {e}") from e
        return np.ascontiguousarray(rgba if alpha else rgba[:, :, :3])

    target_mode = "RGBA" if alpha else "RGB"
    try:
        with Image.open(path) as img:
            if img.mode in ("I;16", "I;16B", "I;16L", "I;16N", "I"):
                # Scale wide integer data down instead of letting Pillow clip it.
                logger.debug("Reducing %s image '%s' to 8-bit", img.mode, path)
                raw = np.asarray(img, dtype=np.float32)
                gray = _float_to_uint8(raw / 65535.0)
                channels = [gray] * 3 + ([np.full_like(gray, 255)] if alpha else [])
                return np.dstack(channels)
            if img.mode == target_mode:
                return np.array(img, dtype=np.uint8)
            logger.debug("Converting image '%s' from %s->%s", path, img.mode, target_mode)
            with img.convert(target_mode) as converted:
                return np.array(converted, dtype=np.uint8)
    except Exception as e:
        logger.error("Failed to open image '%s' (ext=%s): %s", path, ext, e)
        raise IOError(
            f"Failed to open image: {path}\n"
            f"  Format: {ext}, Error: {e}"
        ) from e


def save_texture(arr: np.ndarray, path: str, quality: int = 95):
    """Save a uint8 (H, W, 3|4) array as an image.

    The format follows the file extension. Uses atomic write (temp file +
    ``os.replace``) so an existing file is never left truncated, which also
    makes overwriting a source texture in place safe.
    """
    arr = np.asarray(arr)
    if arr.size == 0 or arr.ndim != 3 or arr.shape[-1] not in (3, 4):
        raise ValueError(
            f"Cannot save array with shape {arr.shape} to {path}; expected HxWx3 or HxWx4"
        )
    if arr.dtype != np.uint8:
        raise ValueError(f"Expected uint8 texture data for {path}, got {arr.dtype}")

    ext = Path(path).suffix.lower()
    parent_dir = os.path.dirname(path) or "."
    os.makedirs(parent_dir, exist_ok=True)

    # Keep original extension so Pillow/cv2 can infer the format.
    tmp_path = f"{path}.tmp.{os.getpid()}.{threading.get_ident()}{ext}"
    try:
        if ext in _EXR_EXTENSIONS:
            cv2 = _import_cv2()
            if arr.shape[-1] == 4:
                data = arr[:, :, [2, 1, 0, 3]]  # RGBA -> BGRA
            else:
                data = arr[:, :, ::-1]  # RGB -> BGR
            data = np.ascontiguousarray(data.astype(np.float32) / 255.0)
            if not cv2.imwrite(tmp_path, data):
                raise IOError(f"cv2.imwrite failed for EXR: {path}")
        else:
            with Image.fromarray(np.ascontiguousarray(arr)) as img:
                if ext in (".jpg", ".jpeg"):
                    if img.mode == "RGBA":
                        logger.warning(
                            "JPEG has no alpha channel; dropping alpha for %s", path
                        )
                        with img.convert("RGB") as converted:
                            converted.save(tmp_path, quality=quality)
                    else:
                        img.save(tmp_path, quality=quality)
                elif ext == ".png":
                    img.save(tmp_path, optimize=True)
                else:
                    img.save(tmp_path)
        os.replace(tmp_path, path)
        logger.debug(f"Saved: {path} ({arr.shape}, 8bit)")
    finally:
        # Clean up temp file on any error
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
