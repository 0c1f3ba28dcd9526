"""
ContigWeaver v0.1.0

Configuration management for ContigWeaver.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from .schema import (
    AssemblyConfig,
    ConfigValidationError,
    DEFAULT_CONFIG,
    load_config,
    save_config_template,
    validate_config,
)

__all__ = [
    "AssemblyConfig",
    "ConfigValidationError",
    "DEFAULT_CONFIG",
    "load_config",
    "save_config_template",
    "validate_config",
]
