"""Test render config schema and loading.

Tests for scanline3d.utils.validators:
    - Built-in defaults
    - Bundled configs/render_v1.yaml loads and matches defaults
    - Schema tag, ranges and colors are validated
    - config_to_dict round-trips through YAML

Run:
    pytest tests/test_validators.py -v
"""

import pytest

from scanline3d.utils import fs, validators
from scanline3d.utils.color import RGB


def test_defaults():
    """Defaults: 500×500, max 255, white on black, fill on."""
    cfg = validators.default_render_config()
    assert cfg.schema_version == "render.v1"
    assert (cfg.canvas.width, cfg.canvas.height, cfg.canvas.max_color) == (500, 500, 255)
    assert cfg.canvas.fg_color == RGB(255, 255, 255)
    assert cfg.canvas.bg_color == RGB(0, 0, 0)
    assert cfg.fill.enabled is True
    assert cfg.export.convert_command == ["magick"]


def test_bundled_config_matches_defaults(project_root):
    """configs/render_v1.yaml validates and equals the built-in defaults."""
    cfg = validators.load_render_config(project_root / "configs" / "render_v1.yaml")
    assert cfg == validators.default_render_config()


def test_missing_file(tmp_path):
    """Missing config raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        validators.load_render_config(tmp_path / "nope.yaml")


def test_wrong_schema(tmp_path):
    """Schema tag must be render.v1."""
    path = tmp_path / "cfg.yaml"
    fs.atomic_yaml_dump({'schema': 'render.v2'}, path)
    with pytest.raises(ValueError, match="render.v1"):
        validators.load_render_config(path)


@pytest.mark.parametrize("canvas", [
    {'width': 0},
    {'height': -5},
    {'max_color': 300},
    {'fg_color': '#12345'},
    {'bg_color': [0, 0, 256]},
])
def test_invalid_canvas(tmp_path, canvas):
    """Out-of-range sizes and malformed colors fail with the file path."""
    path = tmp_path / "cfg.yaml"
    fs.atomic_yaml_dump({'schema': 'render.v1', 'canvas': canvas}, path)
    with pytest.raises(ValueError, match="cfg.yaml"):
        validators.load_render_config(path)


def test_partial_config_uses_defaults(tmp_path):
    """Sections left out fall back to defaults."""
    path = tmp_path / "cfg.yaml"
    fs.atomic_yaml_dump({'schema': 'render.v1', 'canvas': {'width': 64, 'bg_color': '10,20,30'},
                         'fill': {'seed': 9}}, path)
    cfg = validators.load_render_config(path)
    assert cfg.canvas.width == 64
    assert cfg.canvas.height == 500
    assert cfg.canvas.bg_color == RGB(10, 20, 30)
    assert cfg.fill.seed == 9


def test_logging_level_normalized():
    """Log level is upper-cased and checked."""
    assert validators.LoggingSettings(level="debug").level == "DEBUG"
    with pytest.raises(ValueError):
        validators.LoggingSettings(level="chatty")


def test_empty_command_rejected():
    """Export commands must name an executable."""
    with pytest.raises(ValueError):
        validators.ExportSettings(convert_command=[])


def test_config_to_dict_roundtrip(tmp_path):
    """Dumped configs use aliases and hex colors and load back unchanged."""
    cfg = validators.default_render_config()
    data = validators.config_to_dict(cfg)
    assert data['schema'] == "render.v1"
    assert data['canvas']['fg_color'] == "#ffffff"
    assert 'json' in data['logging']

    path = tmp_path / "dump.yaml"
    fs.atomic_yaml_dump(data, path)
    assert validators.load_render_config(path) == cfg


def test_log_rotation_section(tmp_path):
    """logging.rotate is validated; unknown modes fail with the file path."""
    path = tmp_path / "cfg.yaml"
    fs.atomic_yaml_dump({'schema': 'render.v1',
                         'logging': {'file': 'out/render.log',
                                     'rotate': {'mode': 'time', 'when': 'H', 'backup_count': 2}}},
                        path)
    rotate = validators.load_render_config(path).logging.rotate
    assert (rotate.mode, rotate.when, rotate.backup_count) == ("time", "H", 2)
    assert validators.default_render_config().logging.rotate is None

    fs.atomic_yaml_dump({'schema': 'render.v1', 'logging': {'rotate': {'mode': 'weekly'}}}, path)
    with pytest.raises(ValueError, match="cfg.yaml"):
        validators.load_render_config(path)
