"""YAML schema validation and config loading.

Centralized validation for renderer configuration files using pydantic:
    - Render schema (render.v1.yaml): canvas size/colors, export commands,
      tessellation steps, polygon fill behaviour, logging

All entrypoints load configs through these validators for fail-fast error
detection with actionable messages (offending key, expected range).

Units:
    - Canvas: pixels
    - Colors: "#rrggbb" strings or [r, g, b] lists in [0, 255]

Usage:
    from scanline3d.utils import validators

    cfg = validators.load_render_config("configs/render_v1.yaml")
    cfg = validators.default_render_config()
"""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .color import RGB, parse_color


# ============================================================================
# RENDER SCHEMA V1
# ============================================================================

class CanvasSettings(BaseModel):
    """Raster canvas dimensions and colors."""
    width: int = Field(500, gt=0, le=16384, description="Canvas width (px)")
    height: int = Field(500, gt=0, le=16384, description="Canvas height (px)")
    max_color: int = Field(255, ge=1, le=255, description="PPM max channel value")
    fg_color: RGB = Field(RGB(255, 255, 255), description="Foreground (line) color")
    bg_color: RGB = Field(RGB(0, 0, 0), description="Background color")

    @field_validator('fg_color', 'bg_color', mode='before')
    @classmethod
    def validate_color(cls, v: Any) -> RGB:
        return parse_color(v)


class ExportSettings(BaseModel):
    """External processes used for conversion and display."""
    convert_command: List[str] = Field(
        default_factory=lambda: ["magick"],
        description="Converter argv prefix; input/output args are appended"
    )
    display_command: List[str] = Field(
        default_factory=lambda: ["display"],
        description="Viewer argv; a PPM frame is written to its stdin"
    )

    @field_validator('convert_command', 'display_command')
    @classmethod
    def validate_nonempty(cls, v: List[str]) -> List[str]:
        if not v or not v[0]:
            raise ValueError("Command must name an executable")
        return v


class CurveSettings(BaseModel):
    """Tessellation of edge-producing generators."""
    steps: int = Field(100, ge=3, le=10000, description="Segments per circle/curve")


class PolygonSettings(BaseModel):
    """Tessellation of polygon-producing generators."""
    sphere_steps: int = Field(20, ge=3, le=1000, description="Sphere subdivisions per axis")
    torus_steps: int = Field(20, ge=3, le=1000, description="Torus subdivisions per axis")


class FillSettings(BaseModel):
    """Scanline fill behaviour."""
    enabled: bool = Field(True, description="Fill surviving triangles")
    seed: Optional[int] = Field(None, ge=0, description="Seed for per-face debug colors")


class LogRotation(BaseModel):
    """Log file rotation, by size or by time (logging.handlers semantics)."""
    mode: Literal["size", "time"] = Field("size", description="Rotate on size or on a clock")
    max_bytes: int = Field(5_000_000, gt=0, description="Size mode: bytes before rollover")
    when: str = Field("D", description="Time mode: TimedRotatingFileHandler 'when'")
    interval: int = Field(1, ge=1, description="Time mode: units of 'when' per file")
    backup_count: int = Field(3, ge=0, description="Rotated files kept")


class LoggingSettings(BaseModel):
    """Logging setup passed to logging_config.setup_logging()."""
    level: str = Field("INFO", description="Root log level")
    file: Optional[str] = Field(None, description="Optional log file path")
    json_format: bool = Field(False, alias="json", description="JSON lines in the log file")
    rotate: Optional[LogRotation] = Field(None, description="Rotate the log file; None keeps one file")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('level')
    @classmethod
    def validate_level(cls, v: str) -> str:
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of {allowed}, got '{v}'")
        return v.upper()


class RenderConfigV1(BaseModel):
    """Render schema v1 (complete config file)."""
    schema_version: str = Field("render.v1", alias="schema", description="Schema version")
    canvas: CanvasSettings = Field(default_factory=CanvasSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    curves: CurveSettings = Field(default_factory=CurveSettings)
    polygons: PolygonSettings = Field(default_factory=PolygonSettings)
    fill: FillSettings = Field(default_factory=FillSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "render.v1":
            raise ValueError(f"Expected schema 'render.v1', got '{v}'")
        return v


# ============================================================================
# PUBLIC API
# ============================================================================

def default_render_config() -> RenderConfigV1:
    """Built-in defaults: 500×500 canvas, white on black, 8-bit channels."""
    return RenderConfigV1()


def load_render_config(path: Union[str, Path]) -> RenderConfigV1:
    """Load and validate render config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to a render.v1 YAML file

    Returns
    -------
    RenderConfigV1
        Validated render configuration

    Raises
    ------
    FileNotFoundError
        If path doesn't exist
    ValueError
        If validation fails (with actionable error message)
    """
    from . import fs

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Render config not found: {path}")

    data = fs.load_yaml(path)
    try:
        return RenderConfigV1(**data)
    except Exception as e:
        raise ValueError(f"Render config validation failed at {path}: {e}") from e


def config_to_dict(cfg: RenderConfigV1) -> Dict[str, Any]:
    """Dump a config to plain YAML-serializable types (colors as hex)."""
    data = cfg.model_dump(by_alias=True)
    data['canvas']['fg_color'] = cfg.canvas.fg_color.to_hex()
    data['canvas']['bg_color'] = cfg.canvas.bg_color.to_hex()
    return data
