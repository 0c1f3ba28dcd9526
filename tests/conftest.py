#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ContigWeaver v0.1.0

Pytest configuration and shared fixtures.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from contigweaver.assembly_core.context import AssemblyContext, AssemblyParameters
from contigweaver.assembly_core.graph_store import SequenceCollection
from contigweaver.assembly_core.dbg_engine_module import load_sequences
from contigweaver.assembly_core.adjacency import generate_adjacency

# 120 bp with no repeated or palindromic 18..21-mers (either strand)
GENOME = (
    "ATGGCTAGCTTACGGATCCAGTTGACCTAGGCATTCGAGCTAACGTTGCAGGATCCTAG"
    "CCATGTTAGCAGCTTGACGTACCGGAATTCTGACTGGATAGCTCAGTTCAACGGTACATCG"
)
# 60 bp sharing no 18-mer with GENOME
OTHER = "TTGACCGATGCAAGTCCTGAATGCGTTACCAGTAGGCTTACAGCATGGTCAAGCTTGACA"


@pytest.fixture
def temp_output_dir():
    """Create temporary output directory for tests."""
    temp_dir = tempfile.mkdtemp(prefix="contigweaver_test_")
    yield Path(temp_dir)
    # Cleanup after test
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def genome():
    """Reference fragment used to build test read sets."""
    return GENOME


@pytest.fixture
def other_sequence():
    """Fragment unrelated to the reference."""
    return OTHER


@pytest.fixture
def snp_variant():
    """Reference with a single substitution at position 60 (C -> A)."""
    return GENOME[:60] + "A" + GENOME[61:]


@pytest.fixture
def tip_read():
    """Read following the reference for 30 bp, then diverging for 10 bp."""
    return GENOME[40:70] + "TTTAAACCCA"


@pytest.fixture
def simple_fasta():
    """Generate simple FASTA sequence for testing."""
    return ">test_sequence\nATCGATCGATCGATCGATCGATCGATCGATCG\n"


@pytest.fixture
def simple_fastq():
    """Generate simple FASTQ reads for testing."""
    return """@read1
ATCGATCGATCG
+
IIIIIIIIIIII
@read2
GCTAGCTAGCTA
+
IIIIIIIIIIII
"""


@pytest.fixture
def reads_fasta(temp_output_dir):
    """FASTA file holding ten copies of the reference fragment."""
    path = temp_output_dir / "reads.fa"
    with open(path, 'w') as f:
        for i in range(10):
            f.write(f">read{i}\n{GENOME}\n")
    return path


@pytest.fixture
def make_store():
    """
    Factory building a loaded store with adjacency.

    Returns (store, ctx); thresholds default to off so each test enables
    only the pass it exercises.
    """
    def _make(reads, k=21, adjacency=True, **params):
        settings = dict(erode=0, erode_strand=0, trim_len=0, coverage=0, bubble_len=0)
        settings.update(params)
        ctx = AssemblyContext(AssemblyParameters(k=k, **settings))
        store = SequenceCollection(ctx.codec)
        load_sequences(store, reads, ctx)
        if adjacency:
            generate_adjacency(store)
        return store, ctx
    return _make

# ContigWeaver v0.1.0
# Any usage is subject to this software's license.
