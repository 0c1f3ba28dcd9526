"""
Utilities module for ContigWeaver.

- sequence_utils.py - String reverse complement and GC content
"""

from .sequence_utils import calculate_gc_content, reverse_complement

__all__ = [
    'calculate_gc_content',
    'reverse_complement',
]
