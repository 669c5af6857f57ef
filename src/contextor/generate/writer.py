"""Output writer: path confinement + atomic markdown writes.

  1. Validate output path: relative paths stay inside the allowed base
     (default CWD). Path traversal (../../etc) → hard fail.
  2. Write the document atomically (temp file in the same dir → rename).
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from contextor.errors import OutputPathError


def validate_output_path(output: str | Path, allowed_base: Path | None = None) -> Path:
    """Normalize and validate a user-supplied output directory or file.

    Security model:
    - Absolute paths are accepted as-is (user explicitly chose the location).
    - Relative paths are confined to *allowed_base* (default: CWD).

    Raises:
        OutputPathError: If a relative path escapes the allowed base directory.
    """
    path = Path(output)

    if path.is_absolute():
        return path.resolve()

    if allowed_base is None:
        allowed_base = Path.cwd()

    allowed_base = allowed_base.resolve()
    resolved = (allowed_base / path).resolve()

    try:
        resolved.relative_to(allowed_base)
    except ValueError:
        raise OutputPathError(
            str(output),
            f"Output path '{output}' resolves outside the allowed directory "
            f"('{allowed_base}'). Path traversal is not permitted."
        ) from None

    return resolved


def write_output(path: Path, content: str) -> None:
    """Write *content* to *path* atomically (temp → rename).

    Creates parent directories if needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
