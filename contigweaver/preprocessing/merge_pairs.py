"""
ContigWeaver v0.1.0

Read-pair merging for ContigWeaver.

Merges each read of READS1 with its mate in READS2 when the 3' end of the
first read overlaps the reverse complement of the second. Overlaps are
found with a gapped suffix/prefix aligner (match +1, mismatch -2, gap open
-4, gap extend -2); a pair is merged only when exactly one alignment
survives filtering, and alignments with indels never survive.

Reads can be quality-trimmed and truncated before they are aligned.

Output files:
    <prefix>_merged.fastq    merged reads
    <prefix>_reads_1.fastq   unmerged first reads
    <prefix>_reads_2.fastq   unmerged second reads

Usage:
    from contigweaver.preprocessing import merge_read_files

    stats = merge_read_files("r1.fq", "r2.fq", prefix="out", trim_quality=20)
    print(stats.merged_reads)
"""

from __future__ import annotations
from dataclasses import dataclass, asdict, replace
from itertools import islice
from pathlib import Path
from typing import List, Optional, Tuple, Union
import logging

from Bio.Align import PairwiseAligner

from ..io.io_core_module import SeqRead, open_reads, write_fastq
from ..utils.sequence_utils import reverse_complement

logger = logging.getLogger(__name__)

MATCH_SCORE = 1
MISMATCH_SCORE = -2
GAP_OPEN_SCORE = -4
GAP_EXTEND_SCORE = -2

# Optimal alignments examined per pair
MAX_ALIGNMENTS = 16

# Quality assigned to reads read without one (Phred 30)
DEFAULT_QUALITY_CHAR = chr(30 + 33)

STANDARD_QUALITY_OFFSET = 33
ILLUMINA_QUALITY_OFFSET = 64


# ============================================================================
# Section 1: Read preparation
# ============================================================================

def trim_read(read: SeqRead, trim_quality: int = 0,
              quality_offset: int = STANDARD_QUALITY_OFFSET,
              max_length: int = 0) -> SeqRead:
    """
    Trim a read before alignment.

    Bases whose quality is below ``trim_quality`` are removed from both
    ends; reads without qualities are left alone. A positive ``max_length``
    then removes bases from the 3' end until the read is at most that long.
    """
    sequence, quality = read.sequence, read.quality
    if trim_quality > 0 and quality:
        start, end = 0, len(quality)
        while start < end and ord(quality[start]) - quality_offset < trim_quality:
            start += 1
        while end > start and ord(quality[end - 1]) - quality_offset < trim_quality:
            end -= 1
        sequence, quality = sequence[start:end], quality[start:end]
    if max_length > 0 and len(sequence) > max_length:
        sequence = sequence[:max_length]
        quality = quality[:max_length] if quality else quality
    if sequence == read.sequence:
        return read
    return replace(read, sequence=sequence, quality=quality)


# ============================================================================
# Section 2: Overlap alignment
# ============================================================================

@dataclass
class OverlapAlignment:
    """
    Overlap of the end of one read with the start of another.

    Attributes:
        overlap_t_pos: Start of the overlap on the first read
        overlap_h_pos: Last overlap position on the second read
        overlap_match: Number of matching bases
        length: Alignment length, gap columns included
    """
    overlap_t_pos: int
    overlap_h_pos: int
    overlap_match: int
    length: int

    def pid(self) -> float:
        """Percent identity as a fraction."""
        if self.length == 0:
            return 0.0
        return self.overlap_match / self.length


def _overlap_aligner() -> PairwiseAligner:
    aligner = PairwiseAligner()
    aligner.mode = 'global'
    aligner.match_score = MATCH_SCORE
    aligner.mismatch_score = MISMATCH_SCORE
    aligner.open_gap_score = GAP_OPEN_SCORE
    aligner.extend_gap_score = GAP_EXTEND_SCORE
    # The first read may start before the overlap and the second may run past it
    aligner.query_left_open_gap_score = 0
    aligner.query_left_extend_gap_score = 0
    aligner.target_right_open_gap_score = 0
    aligner.target_right_extend_gap_score = 0
    return aligner


_ALIGNER = _overlap_aligner()


def _to_overlap(alignment, seq1: str, seq2: str) -> OverlapAlignment:
    target_blocks, query_blocks = alignment.aligned
    t_start, t_end = int(target_blocks[0][0]), int(target_blocks[-1][1])
    q_start, q_end = int(query_blocks[0][0]), int(query_blocks[-1][1])
    pairs = 0
    matches = 0
    for (ts, te), (qs, qe) in zip(target_blocks, query_blocks):
        pairs += int(te - ts)
        matches += sum(1 for a, b in zip(seq1[ts:te], seq2[qs:qe]) if a == b)
    return OverlapAlignment(
        overlap_t_pos=t_start,
        overlap_h_pos=q_end - 1,
        overlap_match=matches,
        length=(t_end - t_start) + (q_end - q_start) - pairs,
    )


def align_overlap(seq1: str, seq2: str) -> List[OverlapAlignment]:
    """
    Find the best-scoring overlaps of the end of ``seq1`` with the start
    of ``seq2``.

    Returns every optimal alignment (at most ``MAX_ALIGNMENTS``) when the
    best score is positive, otherwise an empty list.
    """
    if not seq1 or not seq2:
        return []
    alignments = _ALIGNER.align(seq1, seq2)
    if alignments.score <= 0:
        return []
    return [_to_overlap(a, seq1, seq2) for a in islice(alignments, MAX_ALIGNMENTS)]


def is_gapless(alignment: OverlapAlignment, seq1: str) -> bool:
    """True if the alignment runs to the end of seq1 without indels."""
    return (alignment.length == len(seq1) - alignment.overlap_t_pos
            and alignment.length == alignment.overlap_h_pos + 1)


# ============================================================================
# Section 3: Filtering and merging
# ============================================================================

@dataclass
class MergeStats:
    """Read-merging counters."""
    total_reads: int = 0
    merged_reads: int = 0
    unmerged_reads: int = 0
    no_alignment: int = 0
    too_many_aligns: int = 0
    low_matches: int = 0
    has_indel: int = 0
    pid_low: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def filter_alignments(
    alignments: List[OverlapAlignment],
    seq1: str,
    min_matches: int = 10,
    identity: float = 0.9,
    stats: Optional[MergeStats] = None,
) -> List[OverlapAlignment]:
    """
    Drop alignments with too few matches, low identity, or indels.

    The filters run in that order; the first one that empties the list is
    counted in ``stats``.
    """
    if stats is None:
        stats = MergeStats()
    if not alignments:
        stats.no_alignment += 1
        return []

    alignments = [a for a in alignments if a.overlap_match >= min_matches]
    if not alignments:
        stats.low_matches += 1
        return []

    alignments = [a for a in alignments if a.pid() >= identity]
    if not alignments:
        stats.pid_low += 1
        return []

    alignments = [a for a in alignments if is_gapless(a, seq1)]
    if not alignments:
        stats.has_indel += 1
    return alignments


def _quality(read: SeqRead) -> str:
    return read.quality if read.quality else DEFAULT_QUALITY_CHAR * read.length


def merge_reads(alignment: OverlapAlignment, read1: SeqRead, read2: SeqRead) -> SeqRead:
    """
    Merge a read with its mate along an overlap.

    Inside the overlap, agreeing bases keep the higher quality; on a
    disagreement the higher-quality base wins and the lower quality is
    reported.
    """
    seq1, qual1 = read1.sequence, _quality(read1)
    rc_seq2 = reverse_complement(read2.sequence)
    rc_qual2 = _quality(read2)[::-1]
    t_pos = alignment.overlap_t_pos
    ol = alignment.length

    seq = list(seq1[:t_pos])
    qual = list(qual1[:t_pos])
    for i in range(ol):
        a, b = seq1[t_pos + i], rc_seq2[i]
        qa, qb = qual1[t_pos + i], rc_qual2[i]
        if a == b:
            seq.append(a)
            qual.append(max(qa, qb))
        else:
            seq.append(a if qa > qb else b)
            qual.append(min(qa, qb))
    seq.append(rc_seq2[alignment.overlap_h_pos + 1:])
    qual.append(rc_qual2[ol:])

    return SeqRead(
        id=read1.id,
        sequence=''.join(seq),
        quality=''.join(qual),
        metadata=dict(read1.metadata),
    )


def merge_pair(
    read1: SeqRead,
    read2: SeqRead,
    min_matches: int = 10,
    identity: float = 0.9,
    stats: Optional[MergeStats] = None,
) -> Optional[SeqRead]:
    """Merge one pair, or return None if it has no single good overlap."""
    if stats is None:
        stats = MergeStats()
    stats.total_reads += 1
    alignments = align_overlap(read1.sequence, reverse_complement(read2.sequence))
    alignments = filter_alignments(alignments, read1.sequence, min_matches, identity, stats)
    if len(alignments) == 1:
        stats.merged_reads += 1
        return merge_reads(alignments[0], read1, read2)
    if len(alignments) > 1:
        stats.too_many_aligns += 1
    stats.unmerged_reads += 1
    return None


# ============================================================================
# Section 4: File-level merging
# ============================================================================

def output_paths(prefix: Union[str, Path]) -> Tuple[Path, Path, Path]:
    """(merged, unmerged first reads, unmerged second reads) for a prefix."""
    prefix = str(prefix)
    return (Path(f"{prefix}_merged.fastq"),
            Path(f"{prefix}_reads_1.fastq"),
            Path(f"{prefix}_reads_2.fastq"))


def merge_read_files(
    reads1: Union[str, Path],
    reads2: Union[str, Path],
    prefix: Union[str, Path] = "out",
    identity: float = 0.9,
    min_matches: int = 10,
    trim_quality: int = 0,
    quality_offset: int = STANDARD_QUALITY_OFFSET,
    max_length: int = 0,
) -> MergeStats:
    """
    Merge the pairs of two read files.

    Args:
        reads1: First reads (any supported read format)
        reads2: Second reads, in the same order
        prefix: Output file prefix
        identity: Minimum overlap identity
        min_matches: Minimum number of matches in the overlap
        trim_quality: Trim end bases with quality below this (0 = off)
        quality_offset: ASCII value of quality zero (33 or 64)
        max_length: Truncate reads to this many bases (0 = off)

    Returns:
        MergeStats for the run

    Raises:
        ValueError: if the files hold different numbers of reads
    """
    logger.info(f"Merging {reads1} with {reads2}")
    merged_path, unmerged1_path, unmerged2_path = output_paths(prefix)
    merged_path.parent.mkdir(parents=True, exist_ok=True)
    stats = MergeStats()

    iter1 = open_reads(reads1)
    iter2 = open_reads(reads2)
    with open(merged_path, 'w') as merged, \
            open(unmerged1_path, 'w') as unmerged1, \
            open(unmerged2_path, 'w') as unmerged2:
        for read1 in iter1:
            read2 = next(iter2, None)
            if read2 is None:
                raise ValueError(f"{reads2} has fewer reads than {reads1}")
            read1 = trim_read(read1, trim_quality, quality_offset, max_length)
            read2 = trim_read(read2, trim_quality, quality_offset, max_length)
            out = merge_pair(read1, read2, min_matches, identity, stats)
            if out is not None:
                write_fastq(merged, out)
            else:
                write_fastq(unmerged1, read1)
                write_fastq(unmerged2, read2)
            if stats.total_reads % 10000 == 0:
                logger.debug(f"Aligned {stats.total_reads} reads")
        if next(iter2, None) is not None:
            raise ValueError(f"{reads2} has more reads than {reads1}")

    logger.info(f"Read merging stats: total={stats.total_reads} "
                f"merged={stats.merged_reads} unmerged={stats.unmerged_reads}")
    logger.info(f"no_alignment={stats.no_alignment} too_many_aligns={stats.too_many_aligns} "
                f"too_few_matches={stats.low_matches} has_indel={stats.has_indel} "
                f"low_pid={stats.pid_low}")
    return stats


__all__ = [
    'trim_read',
    'OverlapAlignment',
    'align_overlap',
    'is_gapless',
    'MergeStats',
    'filter_alignments',
    'merge_reads',
    'merge_pair',
    'output_paths',
    'merge_read_files',
]
