"""Hand rendered frames to external programs over stdin.

Provides:
    - FramePipe: long-lived converter process fed one PPM frame per render
      pass (animations). Default converter is ImageMagick:
      ``magick ppm:- <output>``
    - display_image(): one-shot viewer process fed a single frame

Both spawn the program with subprocess, write binary P6 frames and wait
for it to exit. A missing executable, a broken pipe or a non-zero exit
status raise ExportError; there is no retry.

Usage:
    from scanline3d.raster import export, RasterImage

    img = RasterImage(500, 500)
    with export.FramePipe(["orbit.gif"]) as pipe:
        for step in range(60):
            img.clear()
            ...  # render
            pipe.write_frame(img)
"""

import logging
import shutil
import subprocess
import tempfile
from typing import IO, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CONVERT_COMMAND = ("magick",)
DEFAULT_DISPLAY_COMMAND = ("display",)


class ExportError(RuntimeError):
    """Raised when an external converter or viewer fails."""


def _spawn(argv: List[str]) -> Tuple[subprocess.Popen, IO[bytes]]:
    """Start ``argv`` with a stdin pipe; stderr is spooled to a temp file.

    Returns the process and the open stderr file; a program writing
    heavily to stderr never blocks on it.
    """
    if shutil.which(argv[0]) is None:
        raise ExportError(f"Executable not found: {argv[0]}")
    logger.debug(f"Spawning {' '.join(argv)}")
    err_log = tempfile.TemporaryFile()
    try:
        proc = subprocess.Popen(argv, stdin=subprocess.PIPE,
                                stdout=subprocess.DEVNULL, stderr=err_log)
    except OSError as e:
        err_log.close()
        raise ExportError(f"Failed to start {argv[0]}: {e}") from e
    return proc, err_log


def _read_tail(err_log: IO[bytes], limit: int = 500) -> str:
    err_log.seek(0)
    text = err_log.read().decode(errors='replace').strip()
    err_log.close()
    return text[-limit:]


def _finish(proc: subprocess.Popen, err_log: IO[bytes], argv: List[str]) -> None:
    """Close stdin, wait and raise on a non-zero exit status."""
    try:
        if proc.stdin is not None and not proc.stdin.closed:
            proc.stdin.close()
    except BrokenPipeError:
        # Reader already exited; its status is checked below
        pass
    returncode = proc.wait()
    tail = _read_tail(err_log)
    if returncode != 0:
        raise ExportError(f"{argv[0]} exited with status {returncode}: {tail}")


def _abort(proc: subprocess.Popen, err_log: IO[bytes]) -> None:
    """Kill and reap a process whose output is no longer wanted."""
    proc.kill()
    proc.wait()
    if proc.stdin is not None:
        try:
            proc.stdin.close()
        except BrokenPipeError:
            pass
    err_log.close()


class FramePipe:
    """Converter process accepting a stream of PPM frames.

    Parameters
    ----------
    args : Sequence[str]
        Converter arguments after the input spec, typically the output path
    command : Sequence[str]
        Converter executable plus leading options, default ``("magick",)``
    input_spec : str
        Input descriptor passed before ``args``, default ``"ppm:-"``

    Attributes
    ----------
    frames_written : int
        Number of frames sent so far
    """

    def __init__(
        self,
        args: Sequence[str],
        command: Sequence[str] = DEFAULT_CONVERT_COMMAND,
        input_spec: Optional[str] = "ppm:-"
    ):
        if not command:
            raise ValueError("Converter command must not be empty")
        self.argv = list(command) + ([input_spec] if input_spec else []) + list(args)
        self.frames_written = 0
        self._proc: Optional[subprocess.Popen] = None
        self._err_log: Optional[IO[bytes]] = None

    def open(self) -> "FramePipe":
        if self._proc is not None:
            raise ExportError("FramePipe is already open")
        self._proc, self._err_log = _spawn(self.argv)
        return self

    def write_frame(self, img) -> None:
        """Write one frame (anything with ``write_bin_to_buf``).

        Raises
        ------
        ExportError
            If the pipe is not open or the converter closed its input
        """
        if self._proc is None:
            raise ExportError("FramePipe is not open")
        try:
            img.write_bin_to_buf(self._proc.stdin)
            self._proc.stdin.flush()
        except BrokenPipeError as e:
            raise ExportError(f"{self.argv[0]} closed its input after "
                              f"{self.frames_written} frames") from e
        self.frames_written += 1

    def close(self) -> None:
        """Finish the stream and wait for the converter."""
        if self._proc is None:
            return
        proc, err_log = self._proc, self._err_log
        self._proc = self._err_log = None
        _finish(proc, err_log, self.argv)
        logger.info(f"Converter finished after {self.frames_written} frames")

    def __enter__(self) -> "FramePipe":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return
        # Already failing: reap the process without masking the original error
        if self._proc is not None:
            proc, err_log = self._proc, self._err_log
            self._proc = self._err_log = None
            _abort(proc, err_log)


def display_image(img, command: Sequence[str] = DEFAULT_DISPLAY_COMMAND) -> None:
    """Show one image in an external viewer reading PPM from stdin.

    Blocks until the viewer exits.

    Raises
    ------
    ExportError
        If the viewer cannot be started, closes its input early or exits
        with a non-zero status
    """
    argv = list(command)
    if not argv:
        raise ValueError("Display command must not be empty")
    proc, err_log = _spawn(argv)
    try:
        img.write_bin_to_buf(proc.stdin)
    except BrokenPipeError as e:
        _abort(proc, err_log)
        raise ExportError(f"{argv[0]} closed its input before the frame was written") from e
    _finish(proc, err_log, argv)
