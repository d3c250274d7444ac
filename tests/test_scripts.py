"""Test the command-line entry points.

Validates that scripts/render_script.py and scripts/orbit_animation.py:
    - Return exit codes instead of raising on script errors
    - Apply command-line overrides to the config
    - Write the files they announce (images, summary YAML, frames)

Run:
    pytest tests/test_scripts.py -v
"""

import numpy as np
import pytest

from scanline3d.raster.image import RasterImage
from scanline3d.utils import fs, logging_config
from scripts import orbit_animation, render_script


@pytest.fixture(autouse=True)
def keep_logging_open(monkeypatch):
    """Entry points shut logging down on exit; keep pytest's handlers alive."""
    monkeypatch.setattr(logging_config, "shutdown", lambda: None)
    yield
    logging_config.pop_context()


@pytest.fixture
def coarse_config(tmp_path):
    """Small canvas and coarse meshes so full renders stay quick."""
    path = tmp_path / "render.yaml"
    fs.atomic_yaml_dump({
        'schema': 'render.v1',
        'canvas': {'width': 60, 'height': 40},
        'polygons': {'sphere_steps': 6, 'torus_steps': 6},
        'fill': {'seed': 1},
    }, path)
    return path


class TestRenderScript:
    def test_renders_and_writes_summary(self, tmp_path, coarse_config) -> None:
        script = tmp_path / "scene.dw"
        script.write_text("box\n5 35 0 20 20 20\nsave\nscene.ppm\n")
        out = tmp_path / "final.png"
        summary_path = tmp_path / "summary.yaml"

        code = render_script.main([str(script), '--config', str(coarse_config),
                                   '--output', str(out), '--summary', str(summary_path)])
        assert code == 0
        assert (tmp_path / "scene.ppm").read_bytes().startswith(b"P6\n60 40\n255\n")
        assert out.exists()

        summary = fs.load_yaml(summary_path)
        assert summary['shapes_rendered'] == 1
        assert summary['triangles_drawn'] == 2
        assert summary['saved'] == [str(tmp_path / "scene.ppm"), str(out)]
        assert set(summary['timings_s']) == {'box', 'save'}

    def test_size_and_fill_overrides(self, tmp_path) -> None:
        script = tmp_path / "scene.dw"
        script.write_text("line\n0 0 0 5 5 0\n")
        out = tmp_path / "out.ppm"
        code = render_script.main([str(script), '--size', '12,8', '--no-fill', '--seed', '4',
                                   '--output', str(out)])
        assert code == 0
        assert out.read_bytes().startswith(b"P6\n12 8\n255\n")

    def test_script_error_exit_code(self, tmp_path) -> None:
        script = tmp_path / "bad.dw"
        script.write_text("pop\n")
        assert render_script.main([str(script)]) == 1

    def test_missing_script_exit_code(self, tmp_path) -> None:
        assert render_script.main([str(tmp_path / "missing.dw")]) == 2

    @pytest.mark.parametrize("size", ["abc", "10", "10,0", "1,2,3"])
    def test_bad_size_is_usage_error(self, size, capsys) -> None:
        with pytest.raises(SystemExit) as excinfo:
            render_script.parse_args(["scene.dw", "--size", size])
        assert excinfo.value.code == 2
        assert "--size" in capsys.readouterr().err

    def test_size_parser(self) -> None:
        assert render_script.canvas_size("800,600") == (800, 600)


class TestOrbitAnimation:
    def test_frame_is_deterministic(self) -> None:
        a, b = RasterImage(120, 120), RasterImage(120, 120)
        orbit_animation.render_orbit_frame(a, 30.0, np.random.default_rng(2), 6, 6)
        orbit_animation.render_orbit_frame(b, 30.0, np.random.default_rng(2), 6, 6)
        assert a == b
        assert a.painted_mask().any()

    def test_frames_written_without_pipe(self, tmp_path, coarse_config) -> None:
        frames = tmp_path / "frames"
        code = orbit_animation.main(['--config', str(coarse_config), '--step', '180',
                                     '--frames-dir', str(frames), '--no-pipe'])
        assert code == 0
        assert sorted(p.name for p in frames.iterdir()) == ["frame_000.png", "frame_001.png"]

    def test_no_pipe_needs_frames_dir(self) -> None:
        assert orbit_animation.main(['--no-pipe']) == 2
