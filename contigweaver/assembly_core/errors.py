"""
ContigWeaver v0.1.0

Error taxonomy for the assembly core.

Author: ContigWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

from typing import Optional


class AssemblyError(Exception):
    """Base class for assembly failures."""

    def __init__(self, message: str, k: Optional[int] = None):
        self.k = k
        if k is not None:
            message = f"{message} (k={k})"
        super().__init__(message)


class FatalEmptyGraph(AssemblyError):
    """No usable k-mers remain in the graph."""

    def __init__(self, message: str = "no usable sequence", k: Optional[int] = None):
        super().__init__(message, k)


class FatalNoContigs(AssemblyError):
    """Contig extraction produced nothing."""

    def __init__(self, message: str = "no contigs assembled", k: Optional[int] = None):
        super().__init__(message, k)


class PipelineInvariantError(AssemblyError, AssertionError):
    """A rewrite pass violated its fixed-point contract."""
    pass
