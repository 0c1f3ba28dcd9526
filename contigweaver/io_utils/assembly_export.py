#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContigWeaver v0.1.0

Assembly Export: contig FASTA sink, Graphviz dot graph, popped-bubble
FASTA, and assembly statistics JSON.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Iterable, TextIO

import numpy as np

from ..assembly_core.contig_extractor import Contig, spell
from ..assembly_core.graph_store import SequenceCollection
from ..assembly_core.kmer_codec import Direction, KmerCodec
from ..assembly_core.simplification import Bubble
from ..assembly_core.adjacency import neighbours
from ..utils.sequence_utils import calculate_gc_content

logger = logging.getLogger(__name__)


def _write_wrapped(handle: TextIO, sequence: str, line_width: int) -> None:
    if line_width > 0:
        for i in range(0, len(sequence), line_width):
            handle.write(sequence[i:i+line_width] + "\n")
    else:
        handle.write(sequence + "\n")


# ============================================================================
#                           CONTIG FASTA
# ============================================================================

class FastaContigWriter:
    """
    Contig sink writing ``>id length coverage_sum`` FASTA records.

    Use as a context manager; the instance itself is the sink callable.
    If the block raises, the partially written file is deleted.

    Example:
        >>> with FastaContigWriter('contigs.fa') as writer:
        ...     extract_contigs(store, sink=writer)
    """

    def __init__(self, output_path: str | Path, line_width: int = 80):
        self.output_path = Path(output_path)
        self.line_width = line_width
        self.num_written = 0
        self.total_bases = 0
        self._handle: TextIO | None = None

    def __enter__(self) -> 'FastaContigWriter':
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = open(self.output_path, 'w')
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        if exc_type is not None:
            self.output_path.unlink(missing_ok=True)
            logger.debug(f"Removed incomplete {self.output_path}")
        return False

    def __call__(self, contig: Contig) -> None:
        if self._handle is None:
            raise RuntimeError(f"{self.output_path} is not open for writing")
        self._handle.write(f">{contig.contig_id} {contig.length} {contig.coverage_sum}\n")
        _write_wrapped(self._handle, contig.sequence, self.line_width)
        self.num_written += 1
        self.total_bases += contig.length

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None


def write_contigs_fasta(
    contigs: Iterable[Contig],
    output_path: str | Path,
    line_width: int = 80
) -> int:
    """
    Export assembled contigs to FASTA format.

    Args:
        contigs: Contig records
        output_path: Path to output FASTA file
        line_width: Number of bases per line (0 = no wrapping)

    Returns:
        Number of contigs written
    """
    with FastaContigWriter(output_path, line_width) as writer:
        for contig in contigs:
            writer(contig)

    logger.info(f"Exported {writer.num_written} contigs ({writer.total_bases:,} bp) to {output_path}")
    return writer.num_written


# ============================================================================
#                           GRAPH AND BUBBLES
# ============================================================================

def write_graph_dot(store: SequenceCollection, output_path: str | Path) -> int:
    """
    Write the k-mer graph in Graphviz dot format.

    Both orientations of every live k-mer are written as vertices labelled
    with their sequence and coverage; each SENSE extension becomes an edge.
    The store is not modified.

    Returns:
        Number of edges written
    """
    output_path = Path(output_path)
    codec = store.codec
    num_edges = 0

    with open(output_path, 'w') as f:
        f.write("digraph adj {\n")
        f.write(f"graph [k={codec.k}]\n")
        f.write(f"edge [d=-{codec.k - 1}]\n")
        for key, node in store.items():
            for oriented in (key, codec.reverse_complement(key)):
                seq = codec.decode(oriented)
                f.write(f'"{seq}" [c={node.coverage}]\n')
                for neighbour in neighbours(store, oriented, Direction.SENSE):
                    f.write(f'"{seq}" -> "{codec.decode(neighbour)}"\n')
                    num_edges += 1
                if codec.is_palindrome(key):
                    break
        f.write("}\n")

    logger.info(f"Wrote graph with {num_edges} edges to {output_path}")
    return num_edges


def write_bubbles_fasta(
    bubbles: list[Bubble],
    codec: KmerCodec,
    output_path: str | Path,
    line_width: int = 80
) -> int:
    """
    Write every branch of every popped bubble to FASTA.

    Records are named ``<bubble_id><letter>``, the kept branch first,
    followed by the branch coverage sum. Each sequence runs from the
    branch k-mer to the merge k-mer.

    Returns:
        Number of records written
    """
    output_path = Path(output_path)
    count = 0
    with open(output_path, 'w') as f:
        for bubble in bubbles:
            order = [bubble.kept] + [i for i in range(len(bubble.branches)) if i != bubble.kept]
            for letter, index in zip('abcdefgh', order):
                sequence = spell(codec, bubble.branch_kmers(index))
                f.write(f">{bubble.bubble_id}{letter} {len(sequence)} {bubble.coverages[index]}\n")
                _write_wrapped(f, sequence, line_width)
                count += 1

    logger.info(f"Wrote {len(bubbles)} bubbles to {output_path}")
    return count


# ============================================================================
#                           STATISTICS
# ============================================================================

def _nx(lengths_desc: np.ndarray, fraction: float) -> tuple[int, int]:
    """(Nx, Lx) for lengths sorted longest first."""
    cumsum = np.cumsum(lengths_desc)
    idx = int(np.searchsorted(cumsum, cumsum[-1] * fraction))
    return int(lengths_desc[idx]), idx + 1


def calculate_assembly_stats(contigs: Iterable[Contig]) -> dict[str, Any]:
    """
    Compute standard assembly metrics.

    - Number of contigs, total length
    - N50, L50, N90, L90
    - Longest/shortest/mean contig
    - GC content (%)
    """
    contigs = list(contigs)
    stats: dict[str, Any] = {'num_contigs': len(contigs)}
    if not contigs:
        stats['total_length'] = 0
        return stats

    lengths = np.sort(np.array([c.length for c in contigs], dtype=np.int64))[::-1]
    stats['total_length'] = int(lengths.sum())
    stats['max_contig_length'] = int(lengths[0])
    stats['min_contig_length'] = int(lengths[-1])
    stats['mean_contig_length'] = float(lengths.mean())
    stats['n50'], stats['l50'] = _nx(lengths, 0.5)
    stats['n90'], stats['l90'] = _nx(lengths, 0.9)

    stats['gc_content'] = calculate_gc_content(''.join(c.sequence for c in contigs)) * 100
    return stats


def export_assembly_stats(
    output_path: str | Path,
    contigs: Iterable[Contig],
    per_k: list[dict[str, Any]] | None = None
) -> dict[str, Any]:
    """
    Calculate assembly statistics and export them to JSON.

    Args:
        output_path: Path to output JSON file
        contigs: Final contigs
        per_k: Optional per-k pass counters to include

    Returns:
        Dictionary of statistics
    """
    output_path = Path(output_path)
    stats = calculate_assembly_stats(contigs)
    if per_k is not None:
        stats['per_k'] = per_k

    with open(output_path, 'w') as f:
        json.dump(stats, f, indent=2)

    logger.info(f"Assembly statistics exported to {output_path}")
    logger.info(f"  Total length: {stats['total_length']:,} bp")
    logger.info(f"  N50: {stats.get('n50', 0):,} bp")
    return stats


__all__ = [
    'FastaContigWriter',
    'write_contigs_fasta',
    'write_graph_dot',
    'write_bubbles_fasta',
    'calculate_assembly_stats',
    'export_assembly_stats',
]

# ContigWeaver v0.1.0
# Any usage is subject to this software's license.
