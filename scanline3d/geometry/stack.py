"""Coordinate-system stack for nested transforms.

The stack is a caller-owned value: every renderer that needs the current
frame receives the stack explicitly, there is no module-level instance.

Composition order:
    transform_top(t) makes t act in the *local* frame. A sphere drawn after
    ``rotate z 30`` then ``move 150 0 0`` is first moved 150 along x and
    then rotated about the parent origin, so it orbits. With column points
    that is ``top = top @ t``.
"""

from __future__ import annotations

import logging
from typing import List

import numpy as np

from .matrix import identity

logger = logging.getLogger(__name__)


class StackUnderflowError(IndexError):
    """Raised when popping would remove the base identity frame."""


class TransformStack:
    """Non-empty stack of 4x4 transforms, bottom frame is identity."""

    def __init__(self):
        self._frames: List[np.ndarray] = [identity()]

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def depth(self) -> int:
        return len(self._frames)

    def get_top(self) -> np.ndarray:
        """Current composed transform (read-only view)."""
        view = self._frames[-1].view()
        view.flags.writeable = False
        return view

    def push_matrix(self) -> None:
        """Push a value copy of the top frame."""
        self._frames.append(self._frames[-1].copy())

    def pop_matrix(self) -> np.ndarray:
        """Remove and return the top frame.

        Raises
        ------
        StackUnderflowError
            If only the base frame is left; the stack is unchanged
        """
        if len(self._frames) == 1:
            raise StackUnderflowError("Cannot pop the base coordinate frame")
        return self._frames.pop()

    def transform_top(self, t: np.ndarray) -> None:
        """Compose t into the top frame so t applies first to local points."""
        t = np.asarray(t, dtype=np.float64)
        if t.shape != (4, 4):
            raise ValueError(f"Transform must be 4x4, got {t.shape}")
        self._frames[-1] = self._frames[-1] @ t

    def reset(self) -> None:
        """Drop every frame and start again from identity."""
        if len(self._frames) > 1:
            logger.debug(f"Resetting transform stack with {len(self._frames)} frames")
        self._frames = [identity()]
