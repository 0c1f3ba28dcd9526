#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContigWeaver v0.1.0

Tests for configuration loading and validation.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from copy import deepcopy

import pytest
import yaml

from contigweaver.config import (
    DEFAULT_CONFIG,
    AssemblyConfig,
    ConfigValidationError,
    load_config,
    save_config_template,
    validate_config,
)


class TestLoadConfig:
    """Test YAML loading and merging with defaults."""

    def test_defaults(self):
        config = load_config()
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG
        assert validate_config(config) == []

    def test_partial_override(self, temp_output_dir):
        path = temp_output_dir / "config.yaml"
        path.write_text(yaml.dump({'assembly': {'kmer_size': 31},
                                   'simplification': {'erode': 2}}))
        config = load_config(path)
        assert config['assembly']['kmer_size'] == 31
        assert config['assembly']['k_step'] == 2
        assert config['simplification']['erode'] == 2
        assert config['simplification']['coverage'] == -1

    def test_defaults_not_mutated(self, temp_output_dir):
        path = temp_output_dir / "config.yaml"
        path.write_text(yaml.dump({'output': {'contigs_path': 'x.fa'}}))
        load_config(path)
        assert DEFAULT_CONFIG['output']['contigs_path'] == 'contigs.fa'

    def test_empty_file(self, temp_output_dir):
        path = temp_output_dir / "empty.yaml"
        path.write_text("")
        assert load_config(path) == DEFAULT_CONFIG

    def test_missing_file(self, temp_output_dir):
        with pytest.raises(FileNotFoundError):
            load_config(temp_output_dir / "missing.yaml")


class TestTemplates:
    @pytest.mark.parametrize("template", ['default', 'multi_k', 'conservative', 'raw'])
    def test_templates_are_valid(self, temp_output_dir, template):
        path = temp_output_dir / f"{template}.yaml"
        save_config_template(path, template=template)
        assert validate_config(load_config(path)) == []

    def test_multi_k_template(self, temp_output_dir):
        path = temp_output_dir / "multi.yaml"
        save_config_template(path, template='multi_k')
        config = AssemblyConfig.from_config(load_config(path))
        assert config.k_values() == [21, 23, 25, 27, 29, 31]

    def test_raw_template_disables_passes(self, temp_output_dir):
        path = temp_output_dir / "raw.yaml"
        save_config_template(path, template='raw')
        params = AssemblyConfig.from_config(load_config(path)).parameters_for_k(25)
        assert (params.erode, params.erode_strand, params.trim_len,
                params.coverage, params.bubble_len) == (0, 0, 0, 0, 0)


class TestValidation:
    """Test configuration validation."""

    @pytest.mark.parametrize("section,key,value", [
        ('assembly', 'kmer_size', 1),
        ('assembly', 'kmer_size', 'big'),
        ('assembly', 'k_step', 0),
        ('simplification', 'erode', -2),
        ('simplification', 'coverage', 'auto'),
        ('simplification', 'trim_len', -1),
        ('simplification', 'max_pass_rounds', 0),
        ('output', 'contigs_path', ''),
        ('output', 'line_width', -1),
        ('merge_pairs', 'identity', 1.5),
        ('merge_pairs', 'min_matches', -1),
        ('merge_pairs', 'trim_quality', -1),
        ('merge_pairs', 'quality_offset', 50),
        ('merge_pairs', 'max_length', 'long'),
        ('logging', 'level', 'LOUD'),
    ])
    def test_invalid_values(self, section, key, value):
        config = deepcopy(DEFAULT_CONFIG)
        config[section][key] = value
        assert len(validate_config(config)) == 1

    def test_k_range(self):
        config = deepcopy(DEFAULT_CONFIG)
        config['assembly']['k_min'] = 21
        assert validate_config(config) == ["k_min and k_max must be given together"]
        config['assembly']['k_max'] = 19
        assert "k_min (21) > k_max (19)" in validate_config(config)[0]

    def test_from_config_raises(self):
        config = deepcopy(DEFAULT_CONFIG)
        config['assembly']['kmer_size'] = 0
        config['simplification']['erode'] = 'x'
        with pytest.raises(ConfigValidationError) as exc_info:
            AssemblyConfig.from_config(config)
        assert len(exc_info.value.errors) == 2


class TestAssemblyConfig:
    """Test the typed configuration view."""

    def test_k_values(self):
        assert AssemblyConfig().k_values() == [25]
        assert AssemblyConfig(k_min=21, k_max=25).k_values() == [21, 23, 25]
        assert AssemblyConfig(k_min=21, k_max=25, single_kmer_size=31).k_values() == [31]
        assert AssemblyConfig(k_min=20, k_max=25, k_step=3).k_values() == [20, 23]

    def test_parameters_for_k(self):
        config = AssemblyConfig(trim_len=5, bubble_len=None, max_pass_rounds=10)
        params = config.parameters_for_k(31)
        assert params.k == 31
        assert params.trim_len == 5
        assert params.bubble_len == 93
        assert params.max_pass_rounds == 10

    def test_from_config(self):
        config = deepcopy(DEFAULT_CONFIG)
        config['simplification']['coverage'] = 3
        config['output']['graph_path'] = 'graph.dot'
        assembly_config = AssemblyConfig.from_config(config)
        assert assembly_config.coverage == 3.0
        assert assembly_config.graph_path == 'graph.dot'
        assert assembly_config.stats_path == 'assembly_stats.json'
