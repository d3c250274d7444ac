"""Filesystem helpers for rendered images, animation frames and YAML files.

Provides:
    - atomic_write_bytes / atomic_save_image: write to a sibling tmp file,
      then rename over the target
    - atomic_yaml_dump / load_yaml: PyYAML safe_dump / safe_load
    - read_text_lines: script files, newlines kept
    - frame_path: zero-padded frame names for image sequences
    - ensure_dir

Invariants:
    - A target path either holds its previous content or the complete new
      content; a failed write leaves no tmp file behind.

Usage:
    from scanline3d.utils import fs
    fs.atomic_write_bytes("out/scene.ppm", img.to_ppm_bytes())
    fs.atomic_save_image(img.to_array(), fs.frame_path("frames", 7))
    cfg = fs.load_yaml("configs/render_v1.yaml")
"""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import yaml
from PIL import Image

PathLike = Union[str, Path]


def ensure_dir(p: PathLike) -> Path:
    """Create ``p`` (and parents) if missing and return it as a Path."""
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


def frame_path(directory: PathLike, index: int, ext: str = ".png", prefix: str = "frame_") -> Path:
    """Path of frame ``index`` in an image sequence (``frame_007.png``)."""
    if index < 0:
        raise ValueError(f"Frame index must be non-negative, got {index}")
    return Path(directory) / f"{prefix}{index:03d}{ext}"


@contextmanager
def _staged(path: Path, what: str):
    """Yield a tmp path next to ``path``; rename it into place on success.

    The real suffix is kept last so Pillow still infers the format.
    """
    ensure_dir(path.parent)
    tmp_path = path.with_name(f".{path.stem}.tmp{path.suffix}")
    try:
        yield tmp_path
        tmp_path.replace(path)
    except (OSError, ValueError) as e:
        if tmp_path.exists():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {what} {path} atomically: {e}") from e


def atomic_write_bytes(path: PathLike, data: bytes) -> None:
    """Write ``data`` to ``path`` with fsync before the rename.

    Raises
    ------
    RuntimeError
        If the write or rename fails (chained to the OS error)
    """
    path = Path(path)
    with _staged(path, "file") as tmp_path:
        with open(tmp_path, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())


def atomic_save_image(
    img: np.ndarray,
    path: PathLike,
    pil_kwargs: Optional[Dict[str, Any]] = None
) -> None:
    """Encode an image array with Pillow and write it atomically.

    Parameters
    ----------
    img : np.ndarray
        (H, W, 3) or (H, W) array, first row at the top of the picture.
        Non-uint8 input is clipped to [0, 255].
    path : PathLike
        Target path; the extension selects the format
    pil_kwargs : Optional[Dict[str, Any]]
        Extra arguments for ``PIL.Image.Image.save`` (e.g. ``optimize=True``)

    Raises
    ------
    RuntimeError
        If Pillow cannot encode the format or the file cannot be written
    """
    path = Path(path)
    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)
    if img.ndim == 3 and img.shape[2] == 1:
        img = img[:, :, 0]

    with _staged(path, "image") as tmp_path:
        Image.fromarray(img).save(tmp_path, **(pil_kwargs or {}))


def atomic_yaml_dump(obj: Any, path: PathLike) -> None:
    """Dump plain data (dicts, lists, scalars) as block-style YAML, key order kept."""
    text = yaml.safe_dump(obj, default_flow_style=False, sort_keys=False, allow_unicode=True)
    atomic_write_bytes(path, text.encode('utf-8'))


def load_yaml(path: PathLike) -> Dict[str, Any]:
    """Parse a YAML file; an empty file gives ``{}``.

    Raises
    ------
    FileNotFoundError
        If the file doesn't exist
    yaml.YAMLError
        If the content isn't valid YAML (message names the file)
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"YAML file not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e


def read_text_lines(path: PathLike) -> List[str]:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    with open(path, 'r', encoding='utf-8') as f:
        return f.readlines()
