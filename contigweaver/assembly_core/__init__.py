"""
Assembly Core module for ContigWeaver.

This module provides the de Bruijn graph store and its simplification
pipeline:
- 2-bit k-mer codec and canonical k-mer store
- Adjacency derivation
- Tip erosion, branch trimming, coverage pruning, bubble popping
- Ambiguity marking and contig extraction

The multi-k driver lives in ``dbg_engine_module`` and is imported from
there directly.
"""

from .kmer_codec import BASES, Direction, InvalidKmerError, KmerCodec
from .graph_store import KmerNode, SeqFlag, SequenceCollection, MAX_MULTIPLICITY
from .context import AUTO, AssemblyContext, AssemblyParameters, AssemblyStats
from .errors import AssemblyError, FatalEmptyGraph, FatalNoContigs, PipelineInvariantError
from .adjacency import generate_adjacency, remove_sequence_and_extensions
from .contig_extractor import Contig, ExtractionResult, extract_contigs
from .simplification import (
    Bubble,
    erode_ends,
    mark_ambiguous,
    perform_trim,
    pop_bubbles,
    remove_low_coverage_contigs,
    set_coverage_parameters,
    split_ambiguous,
)

__all__ = [
    'BASES',
    'Direction',
    'InvalidKmerError',
    'KmerCodec',
    'KmerNode',
    'SeqFlag',
    'SequenceCollection',
    'MAX_MULTIPLICITY',
    'AUTO',
    'AssemblyContext',
    'AssemblyParameters',
    'AssemblyStats',
    'AssemblyError',
    'FatalEmptyGraph',
    'FatalNoContigs',
    'PipelineInvariantError',
    'generate_adjacency',
    'remove_sequence_and_extensions',
    'Contig',
    'ExtractionResult',
    'extract_contigs',
    'Bubble',
    'erode_ends',
    'mark_ambiguous',
    'perform_trim',
    'pop_bubbles',
    'remove_low_coverage_contigs',
    'set_coverage_parameters',
    'split_ambiguous',
]
