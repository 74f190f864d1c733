"""Attribute findings to logical code chunks (functions, classes, blocks).

A chunk id gives a finding an identity that survives line drift, so inputs
that arrive without one can borrow it from the smallest chunk enclosing
their start line.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional

from .normalizer import normalize_file_path
from .models import FindingInput


@dataclass(frozen=True)
class CodeChunk:
    """A named line range within one file."""

    chunk_id: str
    file_path: str
    start_line: int
    end_line: int
    name: Optional[str] = None
    kind: Optional[str] = None

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    @property
    def span(self) -> int:
        return self.end_line - self.start_line


class ChunkAttributor:
    """Maps (file, line) locations to the most specific registered chunk."""

    def __init__(self) -> None:
        self._chunks_by_file: dict[str, list[CodeChunk]] = {}

    def add_chunks(self, file_path: str, chunks: Iterable[CodeChunk]) -> None:
        """Register (replace) the chunks of one file."""
        self._chunks_by_file[normalize_file_path(file_path)] = sorted(
            chunks, key=lambda c: (c.start_line, c.end_line, c.chunk_id)
        )

    def find_chunk(self, file_path: str, line: int) -> Optional[CodeChunk]:
        """Return the smallest chunk containing ``line``, earliest start on ties."""
        best: Optional[CodeChunk] = None
        for chunk in self._chunks_by_file.get(normalize_file_path(file_path), ()):
            if chunk.contains(line) and (best is None or chunk.span < best.span):
                best = chunk
        return best

    def attribute(self, finding: FindingInput) -> FindingInput:
        """Return ``finding`` with ``chunk_id`` filled in when one applies.

        Inputs that already carry a chunk id, lack a path or a start line,
        or fall outside every registered chunk are returned unchanged.
        """
        if finding.chunk_id or finding.start_line is None:
            return finding
        if not isinstance(finding.file_path, str) or not finding.file_path.strip():
            return finding
        if isinstance(finding.start_line, bool) or not isinstance(finding.start_line, int):
            return finding
        chunk = self.find_chunk(finding.file_path, finding.start_line)
        if chunk is None:
            return finding
        return finding.with_chunk(chunk.chunk_id)

    def attribute_all(self, findings: Iterable[FindingInput]) -> list[FindingInput]:
        return [self.attribute(f) for f in findings]

    def clear(self) -> None:
        self._chunks_by_file.clear()
