#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContigWeaver v0.1.0

Assembly run context: per-k parameters and statistics.

One AssemblyContext is created by the driver for each k value and passed
to every pass. Passes read their thresholds from ``ctx.params`` and
record what they did in ``ctx.stats``.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Optional

from .kmer_codec import KmerCodec

# Parameter value meaning "choose from the coverage histogram".
AUTO = -1


@dataclass
class AssemblyParameters:
    """
    Thresholds for one k.

    Attributes:
        k: K-mer size
        erode: Erode tips with coverage below this (0 = off, -1 = auto)
        erode_strand: Erode tips with per-strand coverage below this (0 = off, -1 = auto)
        trim_len: Maximum dead-end branch length to trim, in k-mers (0 = off)
        coverage: Remove contigs with mean k-mer coverage below this (0 = off, -1 = auto)
        bubble_len: Maximum bubble length in bases (0 = off)
        max_pass_rounds: Hard cap on rounds of an iterated pass
    """
    k: int
    erode: int = AUTO
    erode_strand: int = AUTO
    trim_len: Optional[int] = None
    coverage: float = AUTO
    bubble_len: Optional[int] = None
    max_pass_rounds: int = 1000

    def __post_init__(self):
        if self.trim_len is None:
            self.trim_len = self.k
        if self.bubble_len is None:
            self.bubble_len = 3 * self.k

    @classmethod
    def defaults(cls, k: int, max_pass_rounds: int = 1000) -> 'AssemblyParameters':
        """K-dependent defaults used when moving to a new k."""
        return cls(k=k, max_pass_rounds=max_pass_rounds)

    @property
    def max_bubble_kmers(self) -> int:
        """Longest bubble branch, in k-mers."""
        return self.bubble_len - self.k + 1


@dataclass
class AssemblyStats:
    """Counters collected while assembling one k."""
    k: int
    reads_loaded: int = 0
    reads_too_short: int = 0
    reads_non_acgt: int = 0
    kmers_skipped: int = 0
    loaded: int = 0
    min_coverage: int = 0
    median_coverage: float = 0.0
    eroded: int = 0
    trimmed: int = 0
    low_coverage_contigs: int = 0
    low_coverage_kmers: int = 0
    ambiguous_marked: int = 0
    bubbles_popped: int = 0
    pipeline_restarts: int = 0
    contigs: int = 0
    total_bases: int = 0
    assembled: int = 0
    removed: int = 0
    snr_db: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AssemblyContext:
    """State threaded through every component call for one k."""
    params: AssemblyParameters
    stats: AssemblyStats = None
    codec: KmerCodec = field(default=None, repr=False)

    def __post_init__(self):
        if self.stats is None:
            self.stats = AssemblyStats(k=self.params.k)
        if self.codec is None:
            self.codec = KmerCodec(self.params.k)

    @property
    def k(self) -> int:
        return self.params.k


__all__ = [
    'AUTO',
    'AssemblyParameters',
    'AssemblyStats',
    'AssemblyContext',
]

# ContigWeaver v0.1.0
# Any usage is subject to this software's license.
