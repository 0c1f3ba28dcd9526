#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContigWeaver v0.1.0

K-mer codec: 2-bit packing of fixed-length DNA words.

Bases are packed most-significant first (A=0, C=1, G=2, T=3), so the
numeric order of two keys equals the lexicographic order of their
sequences. The canonical form of a k-mer is the smaller of the key and
its reverse complement.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from enum import IntEnum
from typing import Iterator, Tuple


BASES = "ACGT"
BASE_TO_CODE = {'A': 0, 'C': 1, 'G': 2, 'T': 3}


class Direction(IntEnum):
    """Extension direction relative to a k-mer's orientation."""
    SENSE = 0       # 3' side (append a base)
    ANTISENSE = 1   # 5' side (prepend a base)

    @property
    def opposite(self) -> 'Direction':
        return Direction(1 - self.value)


class InvalidKmerError(ValueError):
    """Raised when a string cannot be encoded as a k-mer."""
    pass


def _build_rc_byte_table():
    """Reverse complement of every 4-base (8-bit) chunk."""
    table = []
    for v in range(256):
        p, q, r, s = (v >> 6) & 3, (v >> 4) & 3, (v >> 2) & 3, v & 3
        table.append(((3 - s) << 6) | ((3 - r) << 4) | ((3 - q) << 2) | (3 - p))
    return tuple(table)


_RC_BYTE = _build_rc_byte_table()


class KmerCodec:
    """
    Encode, decode and transform k-mers of a fixed length.

    A codec instance is bound to one k. Changing k means building a new
    codec (and a new graph store).
    """

    def __init__(self, k: int):
        if k < 1:
            raise ValueError(f"k must be >= 1, got {k}")
        self.k = k
        self.mask = (1 << (2 * k)) - 1
        self._high_shift = 2 * (k - 1)
        pad = (-k) % 4
        self._pad_bits = 2 * pad
        self._nbytes = (k + pad) // 4

    def __repr__(self) -> str:
        return f"KmerCodec(k={self.k})"

    # ------------------------------------------------------------------
    # Packing
    # ------------------------------------------------------------------

    def encode(self, seq: str) -> int:
        """
        Pack a k-length string into an integer key.

        Raises:
            InvalidKmerError: if the length is not k or a character is not
                one of the uppercase bases A, C, G, T.
        """
        if len(seq) != self.k:
            raise InvalidKmerError(f"Expected {self.k} bases, got {len(seq)}: {seq!r}")
        key = 0
        for ch in seq:
            code = BASE_TO_CODE.get(ch)
            if code is None:
                raise InvalidKmerError(f"Invalid base {ch!r} in k-mer {seq!r}")
            key = (key << 2) | code
        return key

    def decode(self, key: int) -> str:
        """Unpack an integer key into its k-length string."""
        chars = []
        for _ in range(self.k):
            chars.append(BASES[key & 3])
            key >>= 2
        return ''.join(reversed(chars))

    def iter_kmers(self, seq: str) -> Iterator[Tuple[int, int]]:
        """
        Yield ``(offset, key)`` for every valid k-length window of ``seq``.

        Windows that contain a disqualifying character (N, lowercase masked
        bases, IUPAC codes) are skipped.
        """
        k = self.k
        mask = self.mask
        key = 0
        valid = 0
        for i, ch in enumerate(seq):
            code = BASE_TO_CODE.get(ch)
            if code is None:
                valid = 0
                key = 0
                continue
            key = ((key << 2) | code) & mask
            valid += 1
            if valid >= k:
                yield i - k + 1, key

    # ------------------------------------------------------------------
    # Strand operations
    # ------------------------------------------------------------------

    def reverse_complement(self, key: int) -> int:
        """Reverse complement of a key."""
        x = key << self._pad_bits
        rc = 0
        for _ in range(self._nbytes):
            rc = (rc << 8) | _RC_BYTE[x & 0xFF]
            x >>= 8
        return rc & self.mask

    def canonical(self, key: int) -> int:
        """The numerically smaller of ``key`` and its reverse complement."""
        rc = self.reverse_complement(key)
        return rc if rc < key else key

    def is_palindrome(self, key: int) -> bool:
        """Whether the k-mer equals its own reverse complement."""
        return self.reverse_complement(key) == key

    def is_palindrome_end(self, key: int, direction: Direction) -> bool:
        """
        Whether the (k-1)-base overlap on the given side is a palindrome.

        When it is, the k-mer's neighbours on that side include its own
        reverse complement (a hairpin).
        """
        length = self.k - 1
        if length == 0 or length % 2:
            return False
        if direction == Direction.SENSE:
            sub = key & ((1 << (2 * length)) - 1)
        else:
            sub = key >> 2
        rc = 0
        x = sub
        for _ in range(length):
            rc = (rc << 2) | (3 - (x & 3))
            x >>= 2
        return rc == sub

    # ------------------------------------------------------------------
    # Neighbours
    # ------------------------------------------------------------------

    def first_base(self, key: int) -> int:
        return key >> self._high_shift

    def last_base(self, key: int) -> int:
        return key & 3

    def shift_append(self, key: int, base: int) -> int:
        """Drop the first base and append ``base`` (SENSE step)."""
        return ((key << 2) & self.mask) | base

    def shift_prepend(self, key: int, base: int) -> int:
        """Drop the last base and prepend ``base`` (ANTISENSE step)."""
        return (key >> 2) | (base << self._high_shift)

    def step(self, key: int, direction: Direction, base: int) -> int:
        if direction == Direction.SENSE:
            return self.shift_append(key, base)
        return self.shift_prepend(key, base)

    def back_base(self, key: int, direction: Direction) -> int:
        """
        The base a neighbour reached through ``direction`` needs on its
        opposite side to point back at ``key``.
        """
        if direction == Direction.SENSE:
            return self.first_base(key)
        return self.last_base(key)


__all__ = [
    'BASES',
    'BASE_TO_CODE',
    'Direction',
    'InvalidKmerError',
    'KmerCodec',
]

# ContigWeaver v0.1.0
# Any usage is subject to this software's license.
