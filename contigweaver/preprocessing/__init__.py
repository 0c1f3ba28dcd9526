#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
Preprocessing Module for ContigWeaver.

Consolidated modules:
- merge_pairs.py: Overlap-based merging of paired reads

Main Components:
    - OverlapAlignment: Suffix/prefix overlap record
    - trim_read: Quality trimming and truncation before alignment
    - align_overlap: Gapped overlap aligner (Biopython PairwiseAligner)
    - filter_alignments / merge_reads: Alignment filtering and quality-aware merging
    - merge_read_files: File-level pair merging with statistics
"""

from .merge_pairs import (
    MergeStats,
    OverlapAlignment,
    align_overlap,
    filter_alignments,
    merge_pair,
    merge_read_files,
    merge_reads,
    trim_read,
)

__all__ = [
    'MergeStats',
    'OverlapAlignment',
    'align_overlap',
    'filter_alignments',
    'merge_pair',
    'merge_read_files',
    'merge_reads',
    'trim_read',
]
