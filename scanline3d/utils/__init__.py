"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation (validators)
    - Colors and random face colors (color)
    - Atomic I/O and YAML (fs)
    - Profiling (profiler)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (geometry, raster, script).

Convenience imports:
    from scanline3d.utils import fs, color, validators
    from scanline3d.utils.logging_config import setup_logging, get_logger
"""

# Re-export commonly used modules for convenience
from . import color
from . import fs
from . import logging_config
from . import profiler
from . import validators

# Common functions for direct import
from .logging_config import get_logger, log_context, push_context, setup_logging

__all__ = [
    # Modules
    'color',
    'fs',
    'logging_config',
    'profiler',
    'validators',
    # Direct exports
    'setup_logging',
    'get_logger',
    'push_context',
    'log_context',
]
