"""
Read I/O module for ContigWeaver.

Reads FASTA, FASTQ, Illumina qseq and export files (optionally gzipped)
through a single record iterator.
"""

from .io_core_module import (
    ReadFormat,
    SeqRead,
    detect_format,
    is_gzipped,
    iter_sequences,
    open_file,
    open_reads,
    write_fastq,
)

__all__ = [
    'ReadFormat',
    'SeqRead',
    'detect_format',
    'is_gzipped',
    'iter_sequences',
    'open_file',
    'open_reads',
    'write_fastq',
]
