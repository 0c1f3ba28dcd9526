#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Command-line interface for ContigWeaver.

This module provides the main CLI entry point and all subcommands:
- assemble: multi-k de Bruijn graph assembly
- merge-pairs: overlap-based merging of read pairs
- config: configuration file management
"""

import logging
import sys
import click
from pathlib import Path
import yaml

from .version import __version__
from .assembly_core.errors import AssemblyError
from .config.schema import (
    AssemblyConfig,
    ConfigValidationError,
    load_config,
    save_config_template,
    validate_config,
)

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--quiet', '-q', is_flag=True, help='Suppress non-error output')
@click.pass_context
def main(ctx, verbose, quiet):
    """
    ContigWeaver: de Bruijn Graph Short-Read Assembler

    Assembles short reads into contigs over one or more k-mer sizes, with
    tip erosion, branch trimming, coverage pruning and bubble popping.
    """
    # Ensure context object exists
    ctx.ensure_object(dict)
    ctx.obj['VERBOSE'] = verbose
    ctx.obj['QUIET'] = quiet

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format='%(asctime)s [%(levelname)s] %(message)s',
                        datefmt='%H:%M:%S')
    logging.getLogger().setLevel(level)


# ============================================================================
# Configuration Management Commands
# ============================================================================

@main.group()
def config():
    """Configuration management commands."""
    pass


@config.command('init')
@click.option('--output', '-o', type=click.Path(), default='contigweaver_config.yaml',
              help='Output configuration file path')
@click.option('--template', '-t',
              type=click.Choice(['default', 'multi_k', 'conservative', 'raw']),
              default='default', help='Configuration template type')
def config_init(output, template):
    """Generate a template configuration file with all available parameters."""
    click.echo(f"Generating {template} configuration template: {output}")

    try:
        save_config_template(Path(output), template=template)
        click.echo(f"✓ Configuration file created: {output}")
        click.echo("\nThe configuration file includes:")
        click.echo("  • K-mer range (single k or k_min..k_max)")
        click.echo("  • Simplification thresholds (-1 = chosen from coverage)")
        click.echo("  • Output paths")
        click.echo("\nEdit this file to customize your assembly.")
    except OSError as e:
        click.echo(f"✗ Error creating configuration: {e}", err=True)
        sys.exit(1)


@config.command('validate')
@click.argument('config_file', type=click.Path(exists=True))
def config_validate(config_file):
    """Validate a configuration file."""
    click.echo(f"Validating configuration file: {config_file}")

    try:
        config = load_config(Path(config_file))
    except (OSError, yaml.YAMLError) as e:
        click.echo(f"✗ Error validating configuration: {e}", err=True)
        sys.exit(1)

    errors = validate_config(config)
    if errors:
        click.echo("\n✗ Configuration validation failed:")
        for error in errors:
            click.echo(f"  • {error}", err=True)
        sys.exit(1)

    click.echo("✓ Configuration is valid")
    assembly_config = AssemblyConfig.from_config(config)
    click.echo("\nKey Settings:")
    click.echo(f"  k values: {', '.join(str(k) for k in assembly_config.k_values())}")
    click.echo(f"  Contigs: {assembly_config.contigs_path}")


@config.command('show')
@click.argument('config_file', type=click.Path(exists=True))
@click.option('--format', '-f', type=click.Choice(['yaml', 'summary']), default='summary',
              help='Output format')
def config_show(config_file, format):
    """Display configuration settings."""
    try:
        config = load_config(Path(config_file))
    except (OSError, yaml.YAMLError) as e:
        click.echo(f"✗ Error reading configuration: {e}", err=True)
        sys.exit(1)

    if format == 'yaml':
        click.echo(yaml.dump(config, default_flow_style=False, sort_keys=False))
        return

    def auto(value):
        return 'auto' if value == -1 else ('default' if value is None else value)

    click.echo(f"Configuration from: {config_file}")
    click.echo("=" * 60)

    assembly = config['assembly']
    click.echo("\nK-mer range:")
    if assembly['single_kmer_size'] is not None:
        click.echo(f"  Single k: {assembly['single_kmer_size']}")
    elif assembly['k_min'] is not None:
        click.echo(f"  k: {assembly['k_min']}..{assembly['k_max']} step {assembly['k_step']}")
    else:
        click.echo(f"  k: {assembly['kmer_size']}")
    click.echo(f"  Pin parameters: {assembly['pin_parameters']}")

    simplification = config['simplification']
    click.echo("\nSimplification:")
    click.echo(f"  Erode (e): {auto(simplification['erode'])}")
    click.echo(f"  Erode strand (E): {auto(simplification['erode_strand'])}")
    click.echo(f"  Trim length (t): {auto(simplification['trim_len'])}")
    click.echo(f"  Coverage (c): {auto(simplification['coverage'])}")
    click.echo(f"  Bubble length (b): {auto(simplification['bubble_len'])}")

    output = config['output']
    click.echo("\nOutput:")
    click.echo(f"  Contigs: {output['contigs_path']}")
    click.echo(f"  Graph: {output['graph_path'] or 'off'}")
    click.echo(f"  Bubbles: {output['bubble_path'] or 'off'}")
    click.echo(f"  Stats: {output['stats_path'] or 'off'}")


# ============================================================================
# Assembly
# ============================================================================

def _apply_overrides(config: dict, section: str, **overrides) -> None:
    for key, value in overrides.items():
        if value is not None:
            config[section][key] = value


@main.command()
@click.option('--reads', '-r', 'reads_files', multiple=True, required=True, type=click.Path(),
              help='Read file (FASTA, FASTQ, qseq or export; can be gzipped). Repeatable.')
@click.option('--output', '-o', type=click.Path(), default='.',
              help='Output directory')
@click.option('--config', '-c', 'config_file', type=click.Path(),
              help='Configuration file (YAML)')
@click.option('--kmer', '-k', type=int, default=None, help='K-mer size')
@click.option('--single-k', type=int, default=None, help='Assemble only this k')
@click.option('--k-min', type=int, default=None, help='Smallest k of a multi-k run')
@click.option('--k-max', type=int, default=None, help='Largest k of a multi-k run')
@click.option('--k-step', type=int, default=None, help='k increment of a multi-k run')
@click.option('--erode', '-e', type=int, default=None,
              help='Erode tips with coverage below this (0 = off, -1 = auto)')
@click.option('--erode-strand', '-E', type=int, default=None,
              help='Erode tips with per-strand coverage below this; needs --erode > 0 (-1 = auto)')
@click.option('--trim-len', '-t', type=int, default=None,
              help='Trim dead-end branches up to this many k-mers (0 = off)')
@click.option('--coverage', '-C', type=float, default=None,
              help='Remove contigs with mean k-mer coverage below this (0 = off, -1 = auto)')
@click.option('--bubbles', '-b', type=int, default=None,
              help='Pop bubbles up to this many bases (0 = off)')
@click.option('--contigs', type=str, default=None, help='Final contig file name')
@click.option('--graph', '-g', type=str, default=None, help='Write the graph (dot) to this file')
@click.option('--bubble-file', type=str, default=None, help='Write popped bubbles to this file')
@click.option('--pin/--no-pin', default=None,
              help='Keep these thresholds for every k instead of k-dependent defaults')
@click.pass_context
def assemble(ctx, reads_files, output, config_file, kmer, single_k, k_min, k_max, k_step,
             erode, erode_strand, trim_len, coverage, bubbles, contigs, graph, bubble_file, pin):
    """
    Assemble reads into contigs.

    Examples:
        # Single k
        contigweaver assemble -r reads.fq -k 25 -o out/

        # Multi-k, seeding each k with the previous contigs
        contigweaver assemble -r reads_1.fq -r reads_2.fq --k-min 21 --k-max 31 -o out/
    """
    from .assembly_core.dbg_engine_module import DeBruijnAssembler

    try:
        config = load_config(Path(config_file) if config_file else None)
        _apply_overrides(config, 'assembly', kmer_size=kmer, single_kmer_size=single_k,
                         k_min=k_min, k_max=k_max, k_step=k_step, pin_parameters=pin)
        if k_min is not None and k_max is None:
            config['assembly']['k_max'] = k_min
        _apply_overrides(config, 'simplification', erode=erode, erode_strand=erode_strand,
                         trim_len=trim_len, coverage=coverage, bubble_len=bubbles)
        _apply_overrides(config, 'output', contigs_path=contigs, graph_path=graph,
                         bubble_path=bubble_file)
        assembly_config = AssemblyConfig.from_config(config)

        if not (ctx.obj.get('VERBOSE') or ctx.obj.get('QUIET')):
            logging.getLogger().setLevel(str(config['logging']['level']).upper())

        result = DeBruijnAssembler(assembly_config).run(reads_files, output)
    except ConfigValidationError as e:
        click.echo("✗ Error: invalid configuration", err=True)
        for error in e.errors:
            click.echo(f"  • {error}", err=True)
        sys.exit(1)
    except (AssemblyError, FileNotFoundError, ValueError) as e:
        click.echo(f"✗ Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ Assembled {result.num_contigs} contigs ({result.total_bases:,} bp)")
    click.echo(f"  Contigs: {result.contigs_path}")


# ============================================================================
# Read merging
# ============================================================================

@main.command('merge-pairs')
@click.argument('reads1', type=click.Path())
@click.argument('reads2', type=click.Path())
@click.option('--prefix', '-o', default=None, help='Prefix of all output files [out]')
@click.option('--identity', '-p', type=float, default=None,
              help='Minimum overlap identity [0.9]')
@click.option('--matches', '-m', type=int, default=None,
              help='Minimum number of matches in overlap [10]')
@click.option('--trim-quality', '-q', type=int, default=None,
              help='Trim bases from the ends of reads whose quality is less than this [0]')
@click.option('--illumina-quality/--standard-quality', 'illumina', default=None,
              help="Zero quality is '@' (64) or '!' (33) [standard]")
@click.option('--length', '-l', 'max_length', type=int, default=None,
              help="Trim bases from the 3' end of reads until they are at most this long [0]")
@click.option('--config', '-c', 'config_file', type=click.Path(),
              help='Configuration file (YAML)')
def merge_pairs(reads1, reads2, prefix, identity, matches, trim_quality, illumina,
                max_length, config_file):
    """Merge reads in READS1 with their mates in READS2."""
    from .preprocessing.merge_pairs import merge_read_files

    try:
        config = load_config(Path(config_file) if config_file else None)
        _apply_overrides(config, 'merge_pairs', prefix=prefix, identity=identity,
                         min_matches=matches, trim_quality=trim_quality,
                         quality_offset=None if illumina is None else (64 if illumina else 33),
                         max_length=max_length)
        errors = validate_config(config)
        if errors:
            raise ConfigValidationError(errors)
        settings = config['merge_pairs']
        stats = merge_read_files(reads1, reads2, prefix=settings['prefix'],
                                 identity=settings['identity'],
                                 min_matches=settings['min_matches'],
                                 trim_quality=settings['trim_quality'],
                                 quality_offset=settings['quality_offset'],
                                 max_length=settings['max_length'])
    except (ConfigValidationError, FileNotFoundError, ValueError) as e:
        click.echo(f"✗ Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"✓ Merged {stats.merged_reads} of {stats.total_reads} read pairs")


@main.command()
def version():
    """Show version information."""
    import Bio
    import numpy

    click.echo(f"ContigWeaver v{__version__}")
    click.echo("\nDependencies:")
    click.echo(f"  BioPython: {Bio.__version__}")
    click.echo(f"  NumPy: {numpy.__version__}")
    click.echo(f"  PyYAML: {yaml.__version__}")


if __name__ == '__main__':
    sys.exit(main())
