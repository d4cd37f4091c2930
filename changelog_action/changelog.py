"""
CHANGES.md document model: duplicate detection, Unreleased appends and release promotion.

The changelog is handled as a list of lines. Sections are never materialized;
they are located on demand by scanning for heading lines, so hand-edited text
outside the touched region survives byte for byte.

Layout produced and understood here:

    # Changelog

    ## Unreleased
    - fix: crash by Bob (#12)

    ## [v1.0.0] - 2024-01-01
    - Initial release by Alice
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple

from . import io_utils

DEFAULT_CHANGELOG = "./CHANGES.md"
DEFAULT_UNRELEASED_HEADER = "## Unreleased"
DEFAULT_TITLE = "# Changelog"
VERSION_HEADER_FORMAT = "{marker} [{version}] - {date}"

HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:\s|$)")
FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
LINE_RE = re.compile(r"[^\n]*\n|[^\n]+\Z")
NEWLINE_RE = re.compile(r"\s*[\r\n]+\s*")

# ---------- Errors ----------

class ChangelogError(RuntimeError):
    """Base class for failures of a changelog operation."""

    def __init__(self, operation: str, path: str | Path, reason: str):
        self.operation = operation
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{operation} failed for {self.path}: {reason}")

class DocumentReadError(ChangelogError):
    pass

class DocumentWriteError(ChangelogError):
    pass

class PromotionError(ChangelogError):
    pass

# ---------- Records ----------

@dataclass(frozen=True)
class CommitEntry:
    message: str
    author: str
    pr_number: Optional[int] = None

def format_entry(entry: CommitEntry) -> str:
    """Render ``- <message> by <author>`` plus `` (#<pr>)`` when a PR number is known."""
    message = NEWLINE_RE.sub(" ", entry.message).strip()
    author = NEWLINE_RE.sub(" ", entry.author).strip()
    line = f"- {message} by {author}"
    if entry.pr_number is not None:
        line += f" (#{entry.pr_number})"
    return line

# ---------- Parsing ----------

def heading_level(line: str) -> int:
    """Markdown heading level of ``line``, 0 when it is not a heading.

    Up to three leading spaces are allowed; deeper indentation is a code block.
    """
    m = HEADING_RE.match(line)
    return len(m.group(1)) if m else 0

def headings(lines: List[str], start: int = 0) -> Iterator[Tuple[int, int]]:
    """``(index, level)`` of the headings in ``lines[start:]``, skipping fenced code blocks."""
    fence = None
    for i in range(start, len(lines)):
        m = FENCE_RE.match(lines[i])
        if fence is None:
            if m:
                fence = m.group(1)
                continue
            level = heading_level(lines[i])
            if level:
                yield i, level
        elif m and m.group(1)[0] == fence[0] and len(m.group(1)) >= len(fence):
            fence = None

def find_header(lines: List[str], header: str) -> Optional[int]:
    """Index of the first line equal to ``header`` once both are trimmed."""
    wanted = header.strip()
    for i, line in enumerate(lines):
        if line.strip() == wanted:
            return i
    return None

def section_end(lines: List[str], start: int) -> int:
    """Index one past the section opened at ``start``.

    The section runs until the next heading of equal or higher precedence;
    a header that is not a markdown heading is closed by any heading.
    """
    level = heading_level(lines[start].strip()) or 6
    for i, lv in headings(lines, start + 1):
        if lv <= level:
            return i
    return len(lines)

def title_index(lines: List[str]) -> Optional[int]:
    for i, line in enumerate(lines):
        if not line.strip():
            continue
        return i if heading_level(line) == 1 else None
    return None

def _last_content_line(lines: List[str], start: int, end: int) -> int:
    """Index of the last non-blank line in ``lines[start:end]``, or ``start - 1``."""
    for i in range(end - 1, start - 1, -1):
        if lines[i].strip():
            return i
    return start - 1

def _terminator(line: str) -> str:
    return line[len(line.rstrip("\r\n")):]

# ---------- Document ----------

@dataclass
class ChangelogDocument:
    """A changelog as a list of lines, each carrying its own line terminator.

    Lines that are never touched are written back exactly as read, so files
    with mixed endings survive. Lines added by the bot use ``newline``, the
    separator most of the file already uses.
    """
    lines: List[str] = field(default_factory=list)
    newline: str = "\n"

    @classmethod
    def from_text(cls, text: str) -> "ChangelogDocument":
        lines = LINE_RE.findall(text)
        crlf = text.count("\r\n")
        newline = "\r\n" if crlf and crlf * 2 >= text.count("\n") else "\n"
        return cls(lines, newline)

    def to_text(self) -> str:
        return "".join(self.lines)

    @property
    def trailing_newline(self) -> bool:
        return not self.lines or self.lines[-1].endswith("\n")

    def insert(self, pos: int, texts: Iterable[str]) -> int:
        """Insert ``texts`` (without terminators) before ``pos``; returns how many were added.

        At the end of a file without a final newline, the old last line gets
        one and the new last line goes without, so the file still ends bare.
        """
        new = [t + self.newline for t in texts]
        if not new:
            return 0
        if pos == len(self.lines) and not self.trailing_newline:
            self.lines[-1] += self.newline
            new[-1] = new[-1][:-len(self.newline)]
        self.lines[pos:pos] = new
        return len(new)

    @classmethod
    def load(cls, path: str | Path, operation: str, seed: Optional[str] = None) -> Optional["ChangelogDocument"]:
        """Read ``path``; a missing file yields ``seed`` as a document, or None without a seed."""
        p = Path(path)
        if not p.exists():
            return cls.from_text(seed) if seed is not None else None
        try:
            return cls.from_text(io_utils.read_text(p))
        except (OSError, UnicodeDecodeError) as exc:
            raise DocumentReadError(operation, p, f"{type(exc).__name__}: {exc}") from exc

    def save(self, path: str | Path, operation: str):
        try:
            io_utils.atomic_write_text(path, self.to_text())
        except OSError as exc:
            raise DocumentWriteError(operation, path, f"{type(exc).__name__}: {exc}") from exc

    def unreleased_range(self, header: str) -> Optional[Tuple[int, int]]:
        """``(header_index, end_index)`` of the Unreleased section, or None."""
        start = find_header(self.lines, header)
        if start is None:
            return None
        return start, section_end(self.lines, start)

    def insert_header(self, header: str) -> int:
        """Create the Unreleased header after the title block (top without a title)."""
        lines = self.lines
        title = title_index(lines)
        if title is None:
            pos = 0
        else:
            pos = next((i for i, _ in headings(lines, title + 1)), len(lines))
        block = []
        if pos > 0 and lines[pos - 1].strip():
            block.append("")
        index = pos + len(block)
        block.append(header.strip())
        if pos < len(lines):
            block.append("")
        self.insert(pos, block)
        return index

    def append_entries(self, header: str, lines_to_add: Iterable[str]) -> bool:
        """Insert rendered entry lines at the end of the Unreleased section.

        Returns True when the document changed (header created or lines added).
        """
        created = False
        rng = self.unreleased_range(header)
        if rng is None:
            self.insert_header(header)
            rng = self.unreleased_range(header)
            created = True
        start, end = rng
        pos = _last_content_line(self.lines, start + 1, end) + 1
        return self.insert(pos, lines_to_add) > 0 or created

    def unreleased_body(self, header: str) -> Optional[List[str]]:
        """Lines of the Unreleased section below its header, terminators removed."""
        rng = self.unreleased_range(header)
        if rng is None:
            return None
        start, end = rng
        return [line.rstrip("\r\n") for line in self.lines[start + 1:end]]

    def promote(self, header: str, version: str, date: str) -> Optional[int]:
        """Turn the Unreleased header into a version header and reseed an empty one above it.

        Returns the index of the new version header, None when there is no Unreleased header.
        """
        start = find_header(self.lines, header)
        if start is None:
            return None
        m = HEADING_RE.match(header.strip())
        marker = m.group(1) if m else "##"
        version_header = VERSION_HEADER_FORMAT.format(marker=marker, version=version, date=date)
        self.lines[start] = version_header + _terminator(self.lines[start])
        self.insert(start, [header.strip(), ""])
        return start + 2

# ---------- Operations ----------

def is_entry_in_changelog(path: str | Path, message: str) -> bool:
    """True if ``message`` occurs verbatim anywhere in the changelog.

    This is a plain substring test over the whole file, so a message that is
    part of an unrelated longer line also counts as present.
    """
    doc = ChangelogDocument.load(path, "duplicate check")
    if doc is None:
        return False
    return message in doc.to_text()

def add_to_unreleased(path: str | Path, entries: Iterable[CommitEntry],
                      unreleased_header: str = DEFAULT_UNRELEASED_HEADER):
    """Append ``entries`` to the Unreleased section, creating it when absent."""
    doc = ChangelogDocument.load(path, "add to unreleased", seed=DEFAULT_TITLE + "\n")
    if doc.append_entries(unreleased_header, (format_entry(e) for e in entries)):
        doc.save(path, "add to unreleased")

def get_unreleased_content(path: str | Path,
                           unreleased_header: str = DEFAULT_UNRELEASED_HEADER) -> Optional[str]:
    """Trimmed body of the Unreleased section; None when missing or blank."""
    doc = ChangelogDocument.load(path, "read unreleased")
    if doc is None:
        return None
    body = doc.unreleased_body(unreleased_header)
    if body is None:
        return None
    return "\n".join(body).strip() or None

def promote_unreleased_to_version(path: str | Path, version: str, date: str,
                                  unreleased_header: str = DEFAULT_UNRELEASED_HEADER):
    """Seal the Unreleased section as ``[version] - date``."""
    op = "promote unreleased"
    doc = ChangelogDocument.load(path, op)
    if doc is None:
        raise PromotionError(op, path, "changelog file does not exist")
    if doc.promote(unreleased_header, version, date) is None:
        raise PromotionError(op, path, f"header {unreleased_header.strip()!r} not found")
    doc.save(path, op)
