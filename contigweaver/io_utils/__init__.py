"""
ContigWeaver v0.1.0

Export module for ContigWeaver.

- assembly_export.py - Contig FASTA, dot graph, bubble FASTA, statistics JSON
"""

from .assembly_export import (
    FastaContigWriter,
    calculate_assembly_stats,
    export_assembly_stats,
    write_bubbles_fasta,
    write_contigs_fasta,
    write_graph_dot,
)

__all__ = [
    'FastaContigWriter',
    'calculate_assembly_stats',
    'export_assembly_stats',
    'write_bubbles_fasta',
    'write_contigs_fasta',
    'write_graph_dot',
]
