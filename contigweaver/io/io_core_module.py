#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Core I/O module for ContigWeaver.

Consolidated module containing:
- Core read data structure (SeqRead)
- Read format detection (FASTA, FASTQ, Illumina qseq, Illumina export)
- A single lazy record iterator over any supported format
- FASTQ writing for the read-pair merger

The format is detected once per file; every record is then produced by
the same iterator, so the assembler never needs to know which format a
file was in.
"""

# =============================================================================
# SECTION 1: IMPORTS AND DEPENDENCIES
# =============================================================================

import gzip
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, Iterator, Optional, TextIO, Union, Dict, Any

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

logger = logging.getLogger(__name__)


# =============================================================================
# SECTION 2: CORE READ DATA STRUCTURES
# =============================================================================

class ReadFormat(Enum):
    """Supported read file formats."""
    FASTA = "fasta"
    FASTQ = "fastq"
    QSEQ = "qseq"
    EXPORT = "export"


@dataclass
class SeqRead:
    """
    Sequencing read with metadata.

    Attributes:
        id: Read identifier
        sequence: DNA sequence, exactly as stored in the file
        quality: Quality string (None for FASTA)
        metadata: Additional metadata
    """
    id: str
    sequence: str
    quality: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def length(self) -> int:
        """Get read length."""
        return len(self.sequence)

    def __len__(self) -> int:
        return len(self.sequence)

    def __repr__(self) -> str:
        return f"SeqRead(id={self.id!r}, length={self.length})"


# =============================================================================
# SECTION 3: FILE HANDLING AND FORMAT DETECTION
# =============================================================================

_EXTENSION_FORMATS = {
    '.fa': ReadFormat.FASTA,
    '.fasta': ReadFormat.FASTA,
    '.fna': ReadFormat.FASTA,
    '.fq': ReadFormat.FASTQ,
    '.fastq': ReadFormat.FASTQ,
    '.qseq': ReadFormat.QSEQ,
    '.export': ReadFormat.EXPORT,
}

# Illumina pipeline columns (1-based 9 and 10)
_SEQ_COLUMN = 8
_QUAL_COLUMN = 9


def is_gzipped(filepath: Union[str, Path]) -> bool:
    """
    Check if file is gzip compressed.

    Args:
        filepath: Path to file

    Returns:
        True if file is gzipped
    """
    filepath = Path(filepath)
    return filepath.suffix in ('.gz', '.gzip')


def open_file(filepath: Union[str, Path], mode: str = 'r') -> TextIO:
    """
    Open file with automatic gzip detection.

    Args:
        filepath: Path to file
        mode: File mode ('r' or 'w')

    Returns:
        File handle
    """
    filepath = Path(filepath)

    if is_gzipped(filepath):
        if 'r' in mode:
            return gzip.open(filepath, 'rt')
        else:
            return gzip.open(filepath, 'wt')
    else:
        return open(filepath, mode)


def _sniff_format(filepath: Path) -> Optional[ReadFormat]:
    """Guess the format from the first non-empty line."""
    with open_file(filepath, 'r') as handle:
        for line in handle:
            line = line.rstrip('\n')
            if not line:
                continue
            if line.startswith('>'):
                return ReadFormat.FASTA
            if line.startswith('@'):
                return ReadFormat.FASTQ
            columns = line.split('\t')
            if len(columns) == 11:
                return ReadFormat.QSEQ
            if len(columns) > 11:
                return ReadFormat.EXPORT
            return None
    return None


def detect_format(filepath: Union[str, Path]) -> ReadFormat:
    """
    Detect the read format of a file.

    The extension is used first (``.gz`` is looked through). Illumina
    ``*_qseq.txt`` and ``*_export.txt`` names are recognised; anything else
    falls back to inspecting the first record.

    Raises:
        FileNotFoundError: if the file does not exist
        ValueError: if the format cannot be determined
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Read file not found: {filepath}")

    name = filepath.name.lower()
    if is_gzipped(filepath):
        name = name.rsplit('.', 1)[0]

    if name.endswith('_qseq.txt'):
        return ReadFormat.QSEQ
    if name.endswith('_export.txt'):
        return ReadFormat.EXPORT

    suffix = Path(name).suffix
    if suffix in _EXTENSION_FORMATS:
        return _EXTENSION_FORMATS[suffix]

    fmt = _sniff_format(filepath)
    if fmt is None:
        raise ValueError(f"Unknown read file format: {filepath}")
    return fmt


# =============================================================================
# SECTION 4: RECORD ITERATORS
# =============================================================================

def _iter_seqio(handle: TextIO, fmt: ReadFormat) -> Iterator[SeqRead]:
    for record in SeqIO.parse(handle, fmt.value):
        quality = None
        if fmt == ReadFormat.FASTQ:
            quality = "".join(chr(q + 33) for q in record.letter_annotations.get("phred_quality", []))
        yield SeqRead(
            id=record.id,
            sequence=str(record.seq),
            quality=quality,
            metadata={'description': record.description},
        )


def _iter_illumina(handle: TextIO, filepath: Path) -> Iterator[SeqRead]:
    for line_number, line in enumerate(handle, start=1):
        line = line.rstrip('\n')
        if not line:
            continue
        columns = line.split('\t')
        if len(columns) <= _QUAL_COLUMN:
            raise ValueError(f"{filepath}:{line_number}: expected at least "
                             f"{_QUAL_COLUMN + 1} tab-separated columns, found {len(columns)}")
        read_id = f"{columns[0]}_{columns[1]}:{':'.join(columns[2:6])}/{columns[7]}"
        yield SeqRead(
            id=read_id,
            sequence=columns[_SEQ_COLUMN].replace('.', 'N'),
            quality=columns[_QUAL_COLUMN],
        )


def open_reads(filepath: Union[str, Path], fmt: Optional[ReadFormat] = None) -> Iterator[SeqRead]:
    """
    Lazily read every record of a read file.

    Args:
        filepath: Path to FASTA, FASTQ, qseq or export file (can be gzipped)
        fmt: Force a format instead of detecting it

    Yields:
        SeqRead objects

    Raises:
        FileNotFoundError: if the file does not exist
        ValueError: if the format is unknown
    """
    filepath = Path(filepath)
    if fmt is None:
        fmt = detect_format(filepath)
    elif not filepath.exists():
        raise FileNotFoundError(f"Read file not found: {filepath}")
    logger.debug(f"Reading {filepath} as {fmt.value}")
    return _open_reads(filepath, fmt)


def _open_reads(filepath: Path, fmt: ReadFormat) -> Iterator[SeqRead]:
    with open_file(filepath, 'r') as handle:
        if fmt in (ReadFormat.FASTA, ReadFormat.FASTQ):
            yield from _iter_seqio(handle, fmt)
        else:
            yield from _iter_illumina(handle, filepath)


def iter_sequences(filepaths: Iterable[Union[str, Path]]) -> Iterator[str]:
    """Yield the sequence of every record of every file, in order."""
    for filepath in filepaths:
        for read in open_reads(filepath):
            yield read.sequence


# =============================================================================
# SECTION 5: FASTQ WRITING
# =============================================================================

def write_fastq(handle: TextIO, read: SeqRead) -> None:
    """
    Write one SeqRead as a FASTQ record.

    Reads without quality get a flat Phred 30.
    """
    if read.quality:
        quality_scores = [ord(c) - 33 for c in read.quality]
    else:
        quality_scores = [30] * read.length
    record = SeqRecord(
        seq=Seq(read.sequence),
        id=read.id,
        description="",
        letter_annotations={"phred_quality": quality_scores},
    )
    SeqIO.write(record, handle, "fastq")


__all__ = [
    'ReadFormat',
    'SeqRead',
    'is_gzipped',
    'open_file',
    'detect_format',
    'open_reads',
    'iter_sequences',
    'write_fastq',
]
