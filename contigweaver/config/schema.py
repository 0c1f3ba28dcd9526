"""
ContigWeaver v0.1.0

Configuration schema for ContigWeaver.

Defines all available configuration parameters with defaults and validation.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from copy import deepcopy
from dataclasses import dataclass
from typing import Dict, Any, Optional, List
from pathlib import Path
import logging

import yaml

from ..assembly_core.context import AUTO, AssemblyParameters

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("Invalid configuration: " + "; ".join(self.errors))


# Default configuration values
DEFAULT_CONFIG = {
    # ========================================================================
    # K-mer range
    # ========================================================================
    'assembly': {
        'kmer_size': 25,  # k for a single-k run
        'single_kmer_size': None,  # Restrict the run to this single k
        'k_min': None,  # Multi-k range (defaults to kmer_size)
        'k_max': None,
        'k_step': 2,
        'pin_parameters': False,  # Keep user thresholds for every k instead of k-dependent defaults
    },

    # ========================================================================
    # Graph simplification (-1 = choose from the coverage histogram)
    # ========================================================================
    'simplification': {
        'erode': AUTO,  # Erode tips with coverage below this (0 = off)
        'erode_strand': AUTO,  # Erode tips with per-strand coverage below this (0 = off)
        'trim_len': None,  # Max dead-end branch length in k-mers (default: k, 0 = off)
        'coverage': AUTO,  # Remove contigs with mean k-mer coverage below this (0 = off)
        'bubble_len': None,  # Max bubble length in bases (default: 3k, 0 = off)
        'max_pass_rounds': 1000,  # Hard cap on iterated pass rounds
    },

    # ========================================================================
    # Output
    # ========================================================================
    'output': {
        'contigs_path': 'contigs.fa',
        'graph_path': None,  # Graphviz dot dump of the simplified graph
        'bubble_path': None,  # FASTA of popped bubbles
        'stats_path': 'assembly_stats.json',
        'line_width': 80,  # FASTA line width (0 = no wrapping)
    },

    # ========================================================================
    # Read-pair merging
    # ========================================================================
    'merge_pairs': {
        'prefix': 'out',
        'identity': 0.9,  # Minimum overlap identity
        'min_matches': 10,  # Minimum matches in overlap
        'trim_quality': 0,  # Trim end bases with quality below this (0 = off)
        'quality_offset': 33,  # ASCII value of quality zero (33 standard, 64 Illumina)
        'max_length': 0,  # Truncate reads to this many bases (0 = off)
    },

    'logging': {
        'level': 'INFO',
    },
}

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from file, merging with defaults.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Complete configuration dictionary
    """
    config = deepcopy(DEFAULT_CONFIG)

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        with open(config_path, 'r') as f:
            user_config = yaml.safe_load(f)

        if user_config:
            # Deep merge user config into defaults
            config = _deep_merge(config, user_config)

    return config


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def save_config_template(output_path: Path, template: str = 'default'):
    """
    Save a configuration template to file.

    Args:
        output_path: Output file path
        template: Template type ('default', 'multi_k', 'conservative', 'raw')
    """
    config = deepcopy(DEFAULT_CONFIG)

    # Customize for specific templates
    if template == 'multi_k':
        config['assembly']['k_min'] = 21
        config['assembly']['k_max'] = 31
        config['assembly']['k_step'] = 2

    elif template == 'conservative':
        config['simplification']['coverage'] = 0
        config['simplification']['bubble_len'] = 0

    elif template == 'raw':
        config['simplification']['erode'] = 0
        config['simplification']['erode_strand'] = 0
        config['simplification']['trim_len'] = 0
        config['simplification']['coverage'] = 0
        config['simplification']['bubble_len'] = 0

    with open(output_path, 'w') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration dictionary.

    Args:
        config: Configuration to validate

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []

    assembly = config.get('assembly', {})
    kmer_size = assembly.get('kmer_size')
    if not _is_int(kmer_size) or kmer_size < 2:
        errors.append(f"Invalid kmer_size: {kmer_size!r} (must be an integer >= 2)")

    single_k = assembly.get('single_kmer_size')
    if single_k is not None and (not _is_int(single_k) or single_k < 2):
        errors.append(f"Invalid single_kmer_size: {single_k!r} (must be an integer >= 2)")

    # Validate k-mer range
    k_min, k_max = assembly.get('k_min'), assembly.get('k_max')
    if (k_min is None) != (k_max is None):
        errors.append("k_min and k_max must be given together")
    elif k_min is not None:
        if not _is_int(k_min) or not _is_int(k_max) or k_min < 2:
            errors.append(f"Invalid k range: [{k_min!r}, {k_max!r}] (integers >= 2 required)")
        elif k_min > k_max:
            errors.append(f"Invalid k range: k_min ({k_min}) > k_max ({k_max})")

    k_step = assembly.get('k_step')
    if not _is_int(k_step) or k_step < 1:
        errors.append(f"Invalid k_step: {k_step!r} (must be an integer >= 1)")

    # Validate simplification thresholds
    simplification = config.get('simplification', {})
    for name in ('erode', 'erode_strand'):
        value = simplification.get(name)
        if not _is_int(value) or value < AUTO:
            errors.append(f"Invalid {name}: {value!r} (must be an integer >= -1)")

    coverage = simplification.get('coverage')
    if not isinstance(coverage, (int, float)) or isinstance(coverage, bool) or coverage < AUTO:
        errors.append(f"Invalid coverage: {coverage!r} (must be a number >= -1)")

    for name in ('trim_len', 'bubble_len'):
        value = simplification.get(name)
        if value is not None and (not _is_int(value) or value < 0):
            errors.append(f"Invalid {name}: {value!r} (must be an integer >= 0)")

    rounds = simplification.get('max_pass_rounds')
    if not _is_int(rounds) or rounds < 1:
        errors.append(f"Invalid max_pass_rounds: {rounds!r} (must be an integer >= 1)")

    # Validate output
    output = config.get('output', {})
    if not output.get('contigs_path'):
        errors.append("output.contigs_path must be set")
    line_width = output.get('line_width')
    if not _is_int(line_width) or line_width < 0:
        errors.append(f"Invalid line_width: {line_width!r} (must be an integer >= 0)")

    # Validate read merging
    merge = config.get('merge_pairs', {})
    identity = merge.get('identity')
    if not isinstance(identity, (int, float)) or not 0.0 <= identity <= 1.0:
        errors.append(f"Invalid merge_pairs.identity: {identity!r} (must be within [0, 1])")
    min_matches = merge.get('min_matches')
    if not _is_int(min_matches) or min_matches < 0:
        errors.append(f"Invalid merge_pairs.min_matches: {min_matches!r} (must be an integer >= 0)")
    for key in ('trim_quality', 'max_length'):
        value = merge.get(key)
        if not _is_int(value) or value < 0:
            errors.append(f"Invalid merge_pairs.{key}: {value!r} (must be an integer >= 0)")
    if merge.get('quality_offset') not in (33, 64):
        errors.append(f"Invalid merge_pairs.quality_offset: {merge.get('quality_offset')!r} (must be 33 or 64)")

    level = str(config.get('logging', {}).get('level', 'INFO')).upper()
    if level not in VALID_LOG_LEVELS:
        errors.append(f"Invalid logging level: {level}")

    return errors


@dataclass
class AssemblyConfig:
    """Typed view of the assembly-related configuration."""
    kmer_size: int = 25
    single_kmer_size: Optional[int] = None
    k_min: Optional[int] = None
    k_max: Optional[int] = None
    k_step: int = 2
    pin_parameters: bool = False
    erode: int = AUTO
    erode_strand: int = AUTO
    trim_len: Optional[int] = None
    coverage: float = AUTO
    bubble_len: Optional[int] = None
    max_pass_rounds: int = 1000
    contigs_path: str = 'contigs.fa'
    graph_path: Optional[str] = None
    bubble_path: Optional[str] = None
    stats_path: Optional[str] = 'assembly_stats.json'
    line_width: int = 80

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'AssemblyConfig':
        """
        Build from a configuration dictionary.

        Raises:
            ConfigValidationError: if validate_config() reports any error
        """
        errors = validate_config(config)
        if errors:
            raise ConfigValidationError(errors)

        assembly = config['assembly']
        simplification = config['simplification']
        output = config['output']
        return cls(
            kmer_size=assembly['kmer_size'],
            single_kmer_size=assembly.get('single_kmer_size'),
            k_min=assembly.get('k_min'),
            k_max=assembly.get('k_max'),
            k_step=assembly['k_step'],
            pin_parameters=bool(assembly.get('pin_parameters', False)),
            erode=simplification['erode'],
            erode_strand=simplification['erode_strand'],
            trim_len=simplification.get('trim_len'),
            coverage=float(simplification['coverage']),
            bubble_len=simplification.get('bubble_len'),
            max_pass_rounds=simplification['max_pass_rounds'],
            contigs_path=output['contigs_path'],
            graph_path=output.get('graph_path'),
            bubble_path=output.get('bubble_path'),
            stats_path=output.get('stats_path'),
            line_width=output['line_width'],
        )

    def k_values(self) -> List[int]:
        """The k values to assemble, in order."""
        if self.single_kmer_size is not None:
            return [self.single_kmer_size]
        if self.k_min is None:
            return [self.kmer_size]
        return list(range(self.k_min, self.k_max + 1, self.k_step))

    def parameters_for_k(self, k: int, first: bool = True) -> AssemblyParameters:
        """
        Thresholds for one k.

        The first k uses the configured values. Later k values reset to
        k-dependent defaults unless ``pin_parameters`` is set.
        """
        if not first and not self.pin_parameters:
            return AssemblyParameters.defaults(k, max_pass_rounds=self.max_pass_rounds)
        return AssemblyParameters(
            k=k,
            erode=self.erode,
            erode_strand=self.erode_strand,
            trim_len=self.trim_len,
            coverage=self.coverage,
            bubble_len=self.bubble_len,
            max_pass_rounds=self.max_pass_rounds,
        )
