#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContigWeaver v0.1.0

Tests for CLI command interface.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import pytest
from click.testing import CliRunner
from contigweaver.cli import main
from contigweaver.utils.sequence_utils import reverse_complement


@pytest.fixture
def runner():
    return CliRunner()


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self, runner):
        """Test that --help runs without error."""
        result = runner.invoke(main, ['--help'])

        assert result.exit_code == 0
        assert 'ContigWeaver' in result.output

    def test_cli_version(self, runner):
        """Test that --version displays version."""
        result = runner.invoke(main, ['--version'])

        assert result.exit_code == 0
        assert '0.1.0' in result.output

    def test_version_command(self, runner):
        result = runner.invoke(main, ['version'])

        assert result.exit_code == 0
        assert 'ContigWeaver v0.1.0' in result.output
        assert 'BioPython' in result.output

    def test_invalid_command(self, runner):
        """Test that invalid commands are handled gracefully."""
        result = runner.invoke(main, ['nonexistent_command'])

        # Should fail but not crash
        assert result.exit_code != 0


class TestConfigCLI:
    """Test configuration management commands."""

    def test_config_init_and_validate(self, runner):
        """Test config init followed by validate."""
        with runner.isolated_filesystem():
            result = runner.invoke(main, ['config', 'init', '--output', 'test_config.yaml',
                                          '--template', 'multi_k'])
            assert result.exit_code == 0
            assert '✓ Configuration file created' in result.output

            result = runner.invoke(main, ['config', 'validate', 'test_config.yaml'])
            assert result.exit_code == 0
            assert '✓ Configuration is valid' in result.output
            assert '21, 23, 25, 27, 29, 31' in result.output

    def test_config_validate_rejects_bad_values(self, runner):
        with runner.isolated_filesystem():
            with open('bad.yaml', 'w') as f:
                f.write("assembly:\n  kmer_size: 1\n")
            result = runner.invoke(main, ['config', 'validate', 'bad.yaml'])

            assert result.exit_code == 1
            assert 'Invalid kmer_size' in result.output

    def test_config_show(self, runner):
        with runner.isolated_filesystem():
            runner.invoke(main, ['config', 'init', '-o', 'c.yaml', '-t', 'raw'])

            result = runner.invoke(main, ['config', 'show', 'c.yaml'])
            assert result.exit_code == 0
            assert 'Erode (e): 0' in result.output
            assert 'Graph: off' in result.output

            result = runner.invoke(main, ['config', 'show', 'c.yaml', '--format', 'yaml'])
            assert result.exit_code == 0
            assert 'kmer_size: 25' in result.output


class TestAssembleCLI:
    """Test the assemble command."""

    def test_assemble_help(self, runner):
        result = runner.invoke(main, ['assemble', '--help'])

        assert result.exit_code == 0
        assert '--k-min' in result.output

    def test_assemble_missing_input(self, runner):
        """Test assemble fails without input reads."""
        result = runner.invoke(main, ['assemble', '--output', 'test_out'])

        assert result.exit_code != 0

    def test_assemble_nonexistent_file(self, runner, temp_output_dir):
        result = runner.invoke(main, ['assemble', '-r', str(temp_output_dir / 'none.fa'),
                                      '-o', str(temp_output_dir)])

        assert result.exit_code == 1
        assert '✗ Error' in result.output

    def test_assemble_single_k(self, runner, reads_fasta, temp_output_dir):
        out = temp_output_dir / 'out'
        result = runner.invoke(main, ['assemble', '-r', str(reads_fasta), '-k', '21',
                                      '-o', str(out), '--graph', 'graph.dot'])

        assert result.exit_code == 0, result.output
        assert '✓ Assembled 1 contigs' in result.output
        assert (out / 'contigs.fa').exists()
        assert (out / 'graph.dot').exists()
        assert (out / 'assembly_stats.json').exists()

    def test_assemble_multi_k(self, runner, reads_fasta, temp_output_dir):
        result = runner.invoke(main, ['assemble', '-r', str(reads_fasta),
                                      '--k-min', '19', '--k-max', '21', '--k-step', '2',
                                      '-o', str(temp_output_dir), '--contigs', 'final.fa'])

        assert result.exit_code == 0, result.output
        assert (temp_output_dir / 'contigs-k19.fa').exists()
        assert (temp_output_dir / 'contigs-k21.fa').exists()
        assert (temp_output_dir / 'final.fa').exists()

    def test_assemble_empty_graph(self, runner, temp_output_dir, genome):
        reads = temp_output_dir / 'one.fa'
        reads.write_text(f">r\n{genome}\n")
        result = runner.invoke(main, ['assemble', '-r', str(reads), '-k', '21', '-e', '2',
                                      '-o', str(temp_output_dir)])

        assert result.exit_code == 1
        assert '✗ Error' in result.output

    def test_assemble_invalid_k(self, runner, reads_fasta, temp_output_dir):
        result = runner.invoke(main, ['assemble', '-r', str(reads_fasta), '-k', '1',
                                      '-o', str(temp_output_dir)])

        assert result.exit_code == 1
        assert 'invalid configuration' in result.output

    def test_assemble_with_config_file(self, runner, reads_fasta, temp_output_dir):
        config = temp_output_dir / 'c.yaml'
        config.write_text("assembly:\n  kmer_size: 21\noutput:\n  stats_path: null\n")
        result = runner.invoke(main, ['assemble', '-r', str(reads_fasta), '-c', str(config),
                                      '-o', str(temp_output_dir)])

        assert result.exit_code == 0, result.output
        assert (temp_output_dir / 'contigs-k21.fa').exists()
        assert not (temp_output_dir / 'assembly_stats.json').exists()


class TestMergePairsCLI:
    """Test the merge-pairs command."""

    def test_merge_pairs(self, runner, temp_output_dir, genome):
        reads1 = temp_output_dir / 'r1.fa'
        reads2 = temp_output_dir / 'r2.fa'
        reads1.write_text(f">p1\n{genome[:70]}\n")
        reads2.write_text(f">p1\n{reverse_complement(genome[50:])}\n")
        prefix = temp_output_dir / 'merged'

        result = runner.invoke(main, ['merge-pairs', str(reads1), str(reads2),
                                      '--prefix', str(prefix)])

        assert result.exit_code == 0, result.output
        assert '✓ Merged 1 of 1 read pairs' in result.output
        assert (temp_output_dir / 'merged_merged.fastq').exists()

    def test_merge_pairs_trimming_options(self, runner, temp_output_dir, genome):
        reads1 = temp_output_dir / 'r1.fa'
        reads2 = temp_output_dir / 'r2.fa'
        reads1.write_text(f">p1\n{genome[:70]}\n")
        reads2.write_text(f">p1\n{reverse_complement(genome[50:])}\n")

        result = runner.invoke(main, ['merge-pairs', str(reads1), str(reads2),
                                      '-o', str(temp_output_dir / 'trimmed'),
                                      '-q', '20', '--illumina-quality', '-l', '55'])

        assert result.exit_code == 0, result.output
        assert '✓ Merged 0 of 1 read pairs' in result.output

    def test_merge_pairs_bad_identity(self, runner, temp_output_dir):
        reads = temp_output_dir / 'r.fa'
        reads.write_text(">p\nACGT\n")
        result = runner.invoke(main, ['merge-pairs', str(reads), str(reads), '-p', '2.0',
                                      '-o', str(temp_output_dir / 'x')])

        assert result.exit_code == 1
        assert '✗ Error' in result.output

    def test_merge_pairs_missing_file(self, runner, temp_output_dir):
        result = runner.invoke(main, ['merge-pairs', str(temp_output_dir / 'a.fa'),
                                      str(temp_output_dir / 'b.fa'),
                                      '-o', str(temp_output_dir / 'x')])

        assert result.exit_code == 1
