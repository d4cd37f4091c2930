"""
Shared text I/O helpers for the changelog file.
"""
from __future__ import annotations
import os, tempfile
from pathlib import Path

# ---------- Read / Write ----------

def read_text(path: str | Path, encoding: str = "utf-8") -> str:
    """File content with line endings exactly as stored."""
    with open(path, "r", encoding=encoding, newline="") as f:
        return f.read()

def atomic_write_text(path: str | Path, text: str, encoding: str = "utf-8"):
    """Replace ``path`` with ``text`` as a whole; a partially written file is never left behind."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
        os.chmod(tmp, (path.stat().st_mode & 0o777) if path.exists() else 0o644)
        os.replace(tmp, path)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise

def safe_relpath(p: str | Path) -> str:
    try:
        return os.path.relpath(p, os.path.abspath(".")).replace("\\", "/")
    except ValueError:
        return str(p).replace("\\", "/")
