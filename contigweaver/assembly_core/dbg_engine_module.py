#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
ContigWeaver v0.1.0

De Bruijn Graph (DBG) Engine for ContigWeaver.
- Loads reads into the canonical k-mer store
- Derives adjacency and auto-selects coverage thresholds
- Runs the per-k simplification stages (erode, trim, coverage, bubbles)
- Contracts non-branching chains into contigs
- Iterates the whole pipeline over a widening k, seeding each k with the
  previous contigs
"""

from dataclasses import dataclass, field
from enum import Enum
from math import log10
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Union, Any
import logging
import shutil

from .adjacency import generate_adjacency
from .context import AssemblyContext, AssemblyParameters
from .contig_extractor import Contig, extract_contigs
from .errors import FatalEmptyGraph, FatalNoContigs, PipelineInvariantError
from .graph_store import SequenceCollection, TRANSIENT_FLAGS
from .simplification import (
    erode_to_fixed_point,
    mark_ambiguous,
    perform_trim,
    pop_bubbles,
    remove_low_coverage_contigs,
    set_coverage_parameters,
)
from ..config.schema import AssemblyConfig
from ..io.io_core_module import iter_sequences
from ..io_utils.assembly_export import (
    FastaContigWriter,
    export_assembly_stats,
    write_bubbles_fasta,
    write_graph_dot,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Pipeline stages
# ============================================================================

class PipelineStage(Enum):
    """Per-k simplification stages, in the order they normally run."""
    ERODE = "erode"
    TRIM = "trim"
    COVERAGE = "coverage"
    BUBBLES = "bubbles"
    EXTRACT = "extract"


@dataclass
class AssemblyResult:
    """
    Outcome of a (multi-k) assembly run.

    Attributes:
        k_values: The k values assembled, in order
        stats: Per-k pass counters (AssemblyStats.to_dict())
        contigs: Contigs of the final k
        contigs_path: Final contig FASTA
        contig_files: Per-k contig FASTA files
    """
    k_values: List[int] = field(default_factory=list)
    stats: List[Dict[str, Any]] = field(default_factory=list)
    contigs: List[Contig] = field(default_factory=list)
    contigs_path: Optional[Path] = None
    contig_files: Dict[int, Path] = field(default_factory=dict)

    @property
    def num_contigs(self) -> int:
        return len(self.contigs)

    @property
    def total_bases(self) -> int:
        return sum(c.length for c in self.contigs)


# ============================================================================
# Loading
# ============================================================================

def load_sequences(store: SequenceCollection, sequences: Iterable[str],
                   ctx: AssemblyContext) -> int:
    """
    Count every valid k-mer of every sequence into the store.

    Windows with a base outside ``ACGT`` are skipped. Reads shorter than k
    and reads that yield no k-mer at all are tallied in ``ctx.stats``.

    Returns:
        Number of k-mer occurrences counted
    """
    codec = store.codec
    k = codec.k
    stats = ctx.stats
    num_kmers = 0
    for seq in sequences:
        stats.reads_loaded += 1
        if len(seq) < k:
            stats.reads_too_short += 1
            continue
        found = 0
        for _, key in codec.iter_kmers(seq):
            canon = codec.canonical(key)
            store.insert_or_increment(canon, antisense=canon != key)
            found += 1
        stats.kmers_skipped += len(seq) - k + 1 - found
        if found == 0:
            stats.reads_non_acgt += 1
        num_kmers += found

    if stats.reads_too_short:
        logger.warning(f"{stats.reads_too_short} reads shorter than k={k} were skipped")
    if stats.reads_non_acgt:
        logger.warning(f"{stats.reads_non_acgt} reads contained no k-mer of ACGT only")
    return num_kmers


def _cleanup(store: SequenceCollection, ctx: AssemblyContext, stage: PipelineStage) -> None:
    store.compact()
    if store.empty():
        raise FatalEmptyGraph(f"no k-mers left after {stage.value}", k=ctx.k)


# ============================================================================
# Single-k assembly
# ============================================================================

def assemble_graph(
    ctx: AssemblyContext,
    sequences: Iterable[str],
    sink: Optional[Callable[[Contig], None]] = None,
    graph_path: Optional[Union[str, Path]] = None,
    bubble_path: Optional[Union[str, Path]] = None,
) -> List[Contig]:
    """
    Assemble one k: load, simplify, and extract contigs.

    Args:
        ctx: Context for this k (parameters are filled in where auto)
        sequences: Read sequences
        sink: Receives every emitted contig
        graph_path: Optional dot file written after bubble popping
        bubble_path: Optional FASTA of popped bubbles

    Returns:
        Emitted contigs

    Raises:
        FatalEmptyGraph: if no k-mers are loaded or a stage removes them all
        FatalNoContigs: if extraction produces nothing
    """
    params = ctx.params
    stats = ctx.stats
    store = SequenceCollection(ctx.codec)

    # Step 1: Load k-mers
    load_sequences(store, sequences, ctx)
    store.compact()
    stats.loaded = store.size()
    logger.info(f"Loaded {stats.loaded} k-mer")
    if store.empty():
        raise FatalEmptyGraph(k=ctx.k)

    # Step 2: Coverage thresholds and adjacency
    values, counts = store.coverage_histogram()
    set_coverage_parameters(ctx, values, counts)
    generate_adjacency(store)

    # Step 3: Simplify
    bubbles = []
    stage = PipelineStage.ERODE
    rounds = 0
    while stage != PipelineStage.EXTRACT:
        rounds += 1
        if rounds > params.max_pass_rounds:
            raise PipelineInvariantError(
                f"simplification did not finish within {params.max_pass_rounds} stages", k=ctx.k)
        store.clear_all_flags(TRANSIENT_FLAGS)
        logger.debug(f"Stage {stage.value}")

        if stage == PipelineStage.ERODE:
            erode_to_fixed_point(store, ctx)
            _cleanup(store, ctx, stage)
            stage = PipelineStage.TRIM

        elif stage == PipelineStage.TRIM:
            perform_trim(store, ctx)
            _cleanup(store, ctx, stage)
            stage = PipelineStage.COVERAGE

        elif stage == PipelineStage.COVERAGE:
            if params.coverage > 0:
                remove_low_coverage_contigs(store, ctx)
                store.clear_all_flags(TRANSIENT_FLAGS)
                _cleanup(store, ctx, stage)
                stats.pipeline_restarts += 1
                stage = PipelineStage.ERODE
            else:
                stage = PipelineStage.BUBBLES

        elif stage == PipelineStage.BUBBLES:
            _, bubbles = pop_bubbles(store, ctx)
            _cleanup(store, ctx, stage)
            stage = PipelineStage.EXTRACT

    store.clear_all_flags(TRANSIENT_FLAGS)
    if graph_path:
        write_graph_dot(store, graph_path)
    if bubble_path:
        write_bubbles_fasta(bubbles, ctx.codec, bubble_path)

    # Step 4: Extract contigs
    mark_ambiguous(store, ctx)
    result = extract_contigs(store, sink=sink)
    if result.num_contigs == 0:
        raise FatalNoContigs(k=ctx.k)

    stats.contigs = result.num_contigs
    stats.total_bases = result.total_bases
    stats.assembled = sum(c.kmer_count for c in result.contigs)
    stats.removed = stats.loaded - stats.assembled
    logger.info(f"Assembled {stats.assembled} k-mer in {stats.contigs} contigs")
    logger.info(f"Removed {stats.removed} k-mer")
    if stats.removed > 0 and stats.assembled > 0:
        stats.snr_db = 10 * log10(stats.assembled / stats.removed)
        logger.info(f"The signal-to-noise ratio (SNR) is {stats.snr_db:.3g} dB")
    return result.contigs


# ============================================================================
# Multi-k driver
# ============================================================================

class DeBruijnAssembler:
    """
    Multi-k de Bruijn graph assembler.

    Each k rebuilds the store from scratch. From the second k on, the
    previous k's contigs are loaded ahead of the raw reads.
    """

    def __init__(self, config: Optional[AssemblyConfig] = None):
        """
        Initialize the assembler.

        Args:
            config: Assembly configuration (defaults if None)
        """
        self.config = config or AssemblyConfig()

    def run(self, read_paths: Sequence[Union[str, Path]],
            output_dir: Union[str, Path] = '.') -> AssemblyResult:
        """
        Assemble the reads at every configured k.

        Args:
            read_paths: Read files (FASTA, FASTQ, qseq or export; may be gzipped)
            output_dir: Directory for contig, graph, bubble and stats files

        Returns:
            AssemblyResult for the whole run

        Raises:
            FileNotFoundError: if a read file is missing
            FatalEmptyGraph, FatalNoContigs, PipelineInvariantError
        """
        config = self.config
        read_paths = [Path(p) for p in read_paths]
        missing = [str(p) for p in read_paths if not p.exists()]
        if missing:
            raise FileNotFoundError(f"Read file not found: {', '.join(missing)}")

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        k_values = config.k_values()
        result = AssemblyResult(k_values=k_values)

        previous: Optional[Path] = None
        for i, k in enumerate(k_values):
            last = i == len(k_values) - 1
            params = config.parameters_for_k(k, first=i == 0)
            logger.info(f"Assembling k={k} ({i + 1}/{len(k_values)})")

            seeds = ([previous] if previous is not None else []) + read_paths
            contig_file = output_dir / f"contigs-k{k}.fa"
            contigs = self.assemble_k(
                params,
                iter_sequences(seeds),
                contig_file,
                graph_path=output_dir / config.graph_path if last and config.graph_path else None,
                bubble_path=output_dir / config.bubble_path if last and config.bubble_path else None,
                stats=result.stats,
            )
            result.contig_files[k] = contig_file
            previous = contig_file
            if last:
                result.contigs = contigs

        result.contigs_path = output_dir / config.contigs_path
        if result.contigs_path != previous:
            shutil.copyfile(previous, result.contigs_path)
        logger.info(f"Wrote {result.num_contigs} contigs ({result.total_bases:,} bp) "
                    f"to {result.contigs_path}")

        if config.stats_path:
            export_assembly_stats(output_dir / config.stats_path, result.contigs, per_k=result.stats)
        return result

    def assemble_k(self, params: AssemblyParameters, sequences: Iterable[str],
                   contig_file: Path,
                   graph_path: Optional[Path] = None,
                   bubble_path: Optional[Path] = None,
                   stats: Optional[List[Dict[str, Any]]] = None) -> List[Contig]:
        """Assemble one k, writing its contigs to ``contig_file``."""
        ctx = AssemblyContext(params)
        try:
            with FastaContigWriter(contig_file, self.config.line_width) as writer:
                contigs = assemble_graph(ctx, sequences, sink=writer,
                                         graph_path=graph_path, bubble_path=bubble_path)
        finally:
            if stats is not None:
                stats.append(ctx.stats.to_dict())
        return contigs


def assemble_sequences(
    sequences: Iterable[str],
    k: int,
    erode: int = -1,
    erode_strand: int = -1,
    trim_len: Optional[int] = None,
    coverage: float = -1,
    bubble_len: Optional[int] = None,
) -> List[Contig]:
    """
    Convenience function to assemble in-memory sequences at a single k.

    Args:
        sequences: Read sequences
        k: K-mer size
        erode, erode_strand, coverage: Thresholds (-1 = from the histogram)
        trim_len: Maximum trimmed branch length (default k)
        bubble_len: Maximum bubble length in bases (default 3k)

    Returns:
        Assembled contigs
    """
    params = AssemblyParameters(k=k, erode=erode, erode_strand=erode_strand,
                                trim_len=trim_len, coverage=coverage, bubble_len=bubble_len)
    return assemble_graph(AssemblyContext(params), sequences)


__all__ = [
    'PipelineStage',
    'AssemblyResult',
    'load_sequences',
    'assemble_graph',
    'DeBruijnAssembler',
    'assemble_sequences',
]
