"""
ContigWeaver v0.1.0

Sequence utility functions for ContigWeaver.

Plain-string counterparts of the packed k-mer operations, used by the
read merger, statistics and tests.
"""

_COMPLEMENT = str.maketrans('ACGTNacgtn', 'TGCANtgcan')


def calculate_gc_content(sequence: str) -> float:
    """
    Calculate GC content of a DNA sequence.

    Args:
        sequence: DNA sequence string

    Returns:
        GC content as fraction (0.0 to 1.0)

    Example:
        >>> calculate_gc_content("ATGC")
        0.5
    """
    if not sequence:
        return 0.0

    sequence = sequence.upper()
    gc_count = sequence.count('G') + sequence.count('C')

    return gc_count / len(sequence)


def reverse_complement(sequence: str) -> str:
    """
    Generate reverse complement of DNA sequence.

    Case is preserved; characters other than ACGTN are kept as they are.

    Example:
        >>> reverse_complement("ATCG")
        'CGAT'
    """
    return sequence.translate(_COMPLEMENT)[::-1]


__all__ = [
    'calculate_gc_content',
    'reverse_complement',
]
