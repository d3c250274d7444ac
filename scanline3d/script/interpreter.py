"""Line-oriented drawing script interpreter.

Provides:
    - ScriptInterpreter: executes a drawing script against a Canvas
    - run_script(): one-call convenience wrapper

Script format:
    A keyword line, then (for most keywords) one data line of
    whitespace-separated fields. Blank lines and lines starting with
    ``\\`` or ``#`` are comments, including where a data line is expected.

        # orbiting sphere
        push
        rotate
        z 30
        move
        150 0 0
        sphere
        0 0 0 50
        pop
        save
        out.png

Keywords:
    line (6) circle (4) hermite (8) bezier (8)   → edge render
    box (6) sphere (4) torus (5)                 → polygon render
    scale (3) move (3) rotate (axis degrees)     → compose into stack top
    push pop                                     → coordinate frame save/restore
    save (filename) display clear                → canvas output

Execution is strictly sequential. The first error aborts the run; pixels
already drawn are kept. Parse problems raise ScriptParseError, runtime
problems (stack underflow) raise ScriptError; both carry the 1-based
line number.

Usage:
    from scanline3d.script import ScriptInterpreter

    interp = ScriptInterpreter(config=cfg)
    interp.load_file("assets/scripts/robot.dw")
    summary = interp.run()
    print(summary['shapes_rendered'], summary['saved'])
"""

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from ..geometry import matrix as gm
from ..geometry import shapes
from ..geometry.matrix import GeometryMatrix
from ..geometry.stack import StackUnderflowError, TransformStack
from ..raster import export
from ..raster.canvas import Canvas
from ..raster.image import RasterImage
from ..utils import fs, validators
from ..utils.logging_config import log_context
from ..utils.profiler import TimingTable

logger = logging.getLogger(__name__)


# ============================================================================
# ERRORS
# ============================================================================

class ScriptError(Exception):
    """Fatal error while executing a script.

    Attributes
    ----------
    line_no : Optional[int]
        1-based line number of the offending line, None when unknown
    """

    def __init__(self, message: str, line_no: Optional[int] = None):
        self.line_no = line_no
        prefix = f"line {line_no}: " if line_no is not None else ""
        super().__init__(f"{prefix}{message}")


class ScriptParseError(ScriptError):
    """Unknown keyword, missing data line, bad field count or number."""


def _is_comment(text: str) -> bool:
    return not text or text.startswith('\\') or text.startswith('#')


@contextmanager
def _output_errors(keyword: str, line_no: int):
    """Re-raise canvas output failures as ScriptError carrying the line number."""
    try:
        yield
    except RuntimeError as e:
        raise ScriptError(f"'{keyword}' failed: {e}", line_no) from e


# ============================================================================
# INTERPRETER
# ============================================================================

class ScriptInterpreter:
    """Executes drawing scripts against a canvas.

    Parameters
    ----------
    canvas : Canvas, optional
        Pixel sink; a RasterImage sized from ``config.canvas`` when None
    config : validators.RenderConfigV1, optional
        Render settings; built-in defaults when None
    base_dir : Path, optional
        Directory relative ``save`` paths resolve against. Defaults to the
        script's directory for load_file() and the CWD for load_string()

    Attributes
    ----------
    stack : TransformStack
        Coordinate frames; reset at the start of every run
    edges, polygons : GeometryMatrix
        Reusable scratch matrices, cleared after each render
    lines : List[str]
        Loaded script lines
    timers : TimingTable
        Per-keyword execution time
    """

    def __init__(
        self,
        canvas: Optional[Canvas] = None,
        config: Optional[validators.RenderConfigV1] = None,
        base_dir: Optional[Union[str, Path]] = None
    ):
        self.config = config if config is not None else validators.default_render_config()
        self.canvas = canvas if canvas is not None else RasterImage.from_config(self.config.canvas)
        self.base_dir = Path(base_dir) if base_dir is not None else None

        self.stack = TransformStack()
        self.edges = GeometryMatrix.edges()
        self.polygons = GeometryMatrix.polygons()
        self.rng = np.random.default_rng(self.config.fill.seed)

        self.lines: List[str] = []
        self.source: str = "<string>"
        self.timers = TimingTable()

        # keyword → (field count or None for no data line, handler)
        self._commands: Dict[str, Tuple[Optional[int], Callable]] = {
            'line': (6, self._cmd_line),
            'circle': (4, self._cmd_circle),
            'hermite': (8, self._cmd_hermite),
            'bezier': (8, self._cmd_bezier),
            'box': (6, self._cmd_box),
            'sphere': (4, self._cmd_sphere),
            'torus': (5, self._cmd_torus),
            'scale': (3, self._cmd_scale),
            'move': (3, self._cmd_move),
            'rotate': (2, self._cmd_rotate),
            'push': (None, self._cmd_push),
            'pop': (None, self._cmd_pop),
            'save': (1, self._cmd_save),
            'display': (None, self._cmd_display),
            'clear': (None, self._cmd_clear),
        }
        self.reset()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_file(self, path: Union[str, Path]) -> None:
        """Load a script file.

        Raises
        ------
        FileNotFoundError
            If the file doesn't exist
        """
        path = Path(path)
        self.lines = fs.read_text_lines(path)
        self.source = path.name
        if self.base_dir is None:
            self.base_dir = path.parent
        logger.info(f"Loaded {len(self.lines)} script lines from {path}")

    def load_string(self, script: str, source: str = "<string>") -> None:
        """Load a script from a string."""
        self.lines = script.splitlines(keepends=True)
        self.source = source
        logger.info(f"Loaded {len(self.lines)} script lines from {source}")

    def reset(self) -> None:
        """Reset stack, scratch matrices and counters (canvas untouched)."""
        self.stack.reset()
        self.edges.clear()
        self.polygons.clear()
        self.command_count = 0
        self.shapes_rendered = 0
        self.triangles_drawn = 0
        self.saved: List[Path] = []
        self.timers.clear()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run(self) -> Dict[str, Any]:
        """Execute the loaded script.

        Returns
        -------
        Dict[str, Any]
            Summary with keys:
                - commands: int (keywords executed)
                - shapes_rendered: int (edge and polygon renders)
                - triangles_drawn: int (front-facing triangles)
                - saved: List[Path] (files written by ``save``)
                - stack_depth: int (frames left at the end)
                - elapsed_s: float (wall-clock time)

        Raises
        ------
        ScriptParseError
            On malformed input, with the offending line number
        ScriptError
            On runtime failures such as popping the base frame or a failed save
        """
        self.reset()
        start = time.perf_counter()
        with log_context(script=self.source):
            logger.info(f"Running script {self.source} ({len(self.lines)} lines)")
            try:
                self._execute()
            except ScriptError as e:
                logger.error(f"Script {self.source} aborted: {e}")
                raise

            elapsed = time.perf_counter() - start
            if self.stack.depth > 1:
                logger.warning(f"Script ended with {self.stack.depth - 1} unbalanced push(es)")
            logger.info(
                f"Script complete: {self.command_count} commands, "
                f"{self.shapes_rendered} shapes, {self.triangles_drawn} triangles, {elapsed:.3f}s"
            )
        return {
            'commands': self.command_count,
            'shapes_rendered': self.shapes_rendered,
            'triangles_drawn': self.triangles_drawn,
            'saved': list(self.saved),
            'stack_depth': self.stack.depth,
            'elapsed_s': elapsed,
        }

    def _execute(self) -> None:
        """Dispatch every keyword/data pair in order."""
        i = 0
        while i < len(self.lines):
            text = self.lines[i].strip()
            line_no = i + 1
            i += 1
            if _is_comment(text):
                continue

            keyword = text.split()[0]
            if keyword not in self._commands or len(text.split()) != 1:
                raise ScriptParseError(f"Unrecognized command '{text}'", line_no)
            n_fields, handler = self._commands[keyword]

            data = None
            data_no = line_no
            if n_fields is not None:
                data, data_no, i = self._next_data_line(i, keyword, line_no)

            with self.timers.measure(keyword):
                self._dispatch(handler, keyword, data, n_fields, data_no)
            self.command_count += 1

    def _next_data_line(self, i: int, keyword: str, line_no: int) -> Tuple[str, int, int]:
        """Find the data line for a keyword, skipping comments."""
        while i < len(self.lines):
            text = self.lines[i].strip()
            i += 1
            if not _is_comment(text):
                return text, i, i
        raise ScriptParseError(f"'{keyword}' expects a data line", line_no)

    def _dispatch(self, handler: Callable, keyword: str, data: Optional[str],
                  n_fields: Optional[int], line_no: int) -> None:
        logger.debug(f"line {line_no}: {keyword} {data or ''}".rstrip())
        if data is None:
            handler(line_no)
        elif keyword == 'save':
            handler(data, line_no)
        elif keyword == 'rotate':
            handler(self._split(data, n_fields, keyword, line_no), line_no)
        else:
            handler(self._floats(data, n_fields, keyword, line_no), line_no)

    @staticmethod
    def _split(data: str, n_fields: int, keyword: str, line_no: int) -> List[str]:
        fields = data.split()
        if len(fields) != n_fields:
            raise ScriptParseError(
                f"'{keyword}' expects {n_fields} fields, got {len(fields)}", line_no
            )
        return fields

    def _floats(self, data: str, n_fields: int, keyword: str, line_no: int) -> List[float]:
        fields = self._split(data, n_fields, keyword, line_no)
        try:
            return [float(f) for f in fields]
        except ValueError as e:
            raise ScriptParseError(f"'{keyword}' has a non-numeric field: {e}", line_no) from e

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------

    def _render_edges(self) -> None:
        try:
            self.canvas.render_edges_with_stack(self.stack, self.edges)
        finally:
            self.edges.clear()
        self.shapes_rendered += 1

    def _render_polygons(self) -> None:
        try:
            drawn = self.canvas.render_polygons_with_stack(
                self.stack, self.polygons, fill=self.config.fill.enabled, rng=self.rng
            )
        finally:
            self.polygons.clear()
        self.triangles_drawn += drawn
        self.shapes_rendered += 1

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------

    def _cmd_line(self, v: List[float], line_no: int) -> None:
        self.edges.append_edge(*v)
        self._render_edges()

    def _cmd_circle(self, v: List[float], line_no: int) -> None:
        shapes.add_circle(self.edges, v[:3], v[3], steps=self.config.curves.steps)
        self._render_edges()

    def _cmd_hermite(self, v: List[float], line_no: int) -> None:
        shapes.add_hermite(self.edges, v[0:2], v[2:4], v[4:6], v[6:8],
                           steps=self.config.curves.steps)
        self._render_edges()

    def _cmd_bezier(self, v: List[float], line_no: int) -> None:
        shapes.add_bezier(self.edges, v[0:2], v[2:4], v[4:6], v[6:8],
                          steps=self.config.curves.steps)
        self._render_edges()

    def _cmd_box(self, v: List[float], line_no: int) -> None:
        shapes.add_box(self.polygons, v[:3], v[3], v[4], v[5])
        self._render_polygons()

    def _cmd_sphere(self, v: List[float], line_no: int) -> None:
        shapes.add_sphere(self.polygons, v[:3], v[3], steps=self.config.polygons.sphere_steps)
        self._render_polygons()

    def _cmd_torus(self, v: List[float], line_no: int) -> None:
        shapes.add_torus(self.polygons, v[:3], v[3], v[4],
                         steps=self.config.polygons.torus_steps)
        self._render_polygons()

    def _cmd_scale(self, v: List[float], line_no: int) -> None:
        self.stack.transform_top(gm.scale(*v))

    def _cmd_move(self, v: List[float], line_no: int) -> None:
        self.stack.transform_top(gm.move(*v))

    def _cmd_rotate(self, fields: List[str], line_no: int) -> None:
        axis, degrees = fields
        try:
            t = gm.rotate(axis, float(degrees))
        except ValueError as e:
            raise ScriptParseError(str(e), line_no) from e
        self.stack.transform_top(t)

    def _cmd_push(self, line_no: int) -> None:
        self.stack.push_matrix()

    def _cmd_pop(self, line_no: int) -> None:
        try:
            self.stack.pop_matrix()
        except StackUnderflowError as e:
            raise ScriptError(str(e), line_no) from e

    def _cmd_save(self, filename: str, line_no: int) -> None:
        path = Path(filename)
        if not path.is_absolute() and self.base_dir is not None:
            path = self.base_dir / path
        with _output_errors('save', line_no):
            self.canvas.save(path)
        self.saved.append(path)

    def _cmd_display(self, line_no: int) -> None:
        with _output_errors('display', line_no):
            export.display_image(self.canvas, self.config.export.display_command)

    def _cmd_clear(self, line_no: int) -> None:
        with _output_errors('clear', line_no):
            self.canvas.clear()


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

def run_script(
    path: Union[str, Path],
    config: Optional[validators.RenderConfigV1] = None,
    canvas: Optional[Canvas] = None
) -> Dict[str, Any]:
    """Load and run a script file; returns the run() summary."""
    interp = ScriptInterpreter(canvas=canvas, config=config)
    interp.load_file(path)
    return interp.run()
