"""Filesystem staging primitives shared by the publish flows.

Every operation here is idempotent: it tolerates whatever a previous,
possibly interrupted run left behind and converges on the same end state.
Failures surface as :class:`StagingError` carrying the offending path; they
are never retried.

Examples
--------
>>> from pathlib import Path
>>> from bakery.staging import ensure_clean_directory, write_marker_file
>>> staging = ensure_clean_directory(Path("build/maquette"))  # doctest: +SKIP
>>> write_marker_file(Path("build/bake"), "CNAME", "example.com")  # doctest: +SKIP
PosixPath('build/bake/CNAME')
"""

from __future__ import annotations

import logging
import shutil
import typing as typ
from pathlib import Path

from .errors import BakeryError

log = logging.getLogger(__name__)


class StagingError(BakeryError):
    """Raised when a staging directory cannot be prepared or populated."""

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"{message}: {path}")


def _remove(path: Path) -> bool:
    """Delete ``path`` whatever it is; return ``True`` if something was removed."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
        return True
    if path.exists() or path.is_symlink():
        path.unlink()
        return True
    return False


def ensure_clean_directory(path: Path, *, logger: logging.Logger | None = None) -> Path:
    """Make ``path`` an empty directory, replacing any file or tree found there."""
    logger = logger or log
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
            logger.info("%s existed as a directory and was deleted.", path)
        elif _remove(path):
            logger.info("%s existed as a file and was deleted.", path)
        path.mkdir(parents=True)
    except OSError as exc:
        msg = f"Cannot prepare clean directory ({exc.strerror or exc})"
        raise StagingError(path, msg) from exc
    logger.debug("%s created as an empty directory.", path)
    return path


def clear_directory(
    path: Path,
    *,
    keep: typ.Collection[str] = (".git",),
    logger: logging.Logger | None = None,
) -> Path:
    """Delete every entry of ``path`` except the names listed in ``keep``."""
    logger = logger or log
    try:
        for child in path.iterdir():
            if child.name in keep:
                continue
            _remove(child)
    except OSError as exc:
        msg = f"Cannot clear directory ({exc.strerror or exc})"
        raise StagingError(path, msg) from exc
    logger.debug("Cleared %s (kept %s)", path, ", ".join(sorted(keep)) or "nothing")
    return path


def copy_tree(
    source: Path,
    destination: Path,
    *,
    overwrite: bool = True,
    logger: logging.Logger | None = None,
) -> Path:
    """Recursively copy ``source`` into ``destination``.

    Intermediate directories are created. Existing files are replaced when
    ``overwrite`` is set and kept otherwise.

    Raises
    ------
    StagingError
        If ``source`` is missing, is not a directory, contains
        ``destination``, or a file cannot be copied.
    """
    logger = logger or log
    if not source.exists():
        raise StagingError(source, "Source directory does not exist")
    if not source.is_dir():
        raise StagingError(source, "Source must be a directory")
    ensure_disjoint(source, destination)

    def _copy(src: str, dst: str) -> str:
        target = Path(dst)
        if target.exists() or target.is_symlink():
            if not overwrite:
                return dst
            _remove(target)
        return shutil.copy2(src, dst)

    try:
        shutil.copytree(source, destination, copy_function=_copy, dirs_exist_ok=True)
    except OSError as exc:
        msg = f"Cannot copy {source} ({exc.strerror or exc})"
        raise StagingError(destination, msg) from exc
    logger.info("Copied %s to %s", source, destination)
    return destination


def write_marker_file(
    destination_dir: Path,
    filename: str,
    content: str | None,
    *,
    logger: logging.Logger | None = None,
) -> Path | None:
    """Write a single-value marker file such as ``CNAME``.

    Blank ``content`` removes any existing marker and writes nothing. Otherwise
    any file or directory already at the marker path is deleted and ``content``
    is written verbatim, without a trailing newline.

    Returns
    -------
    Path or None
        The marker path when written, ``None`` when content was blank.
    """
    logger = logger or log
    marker = destination_dir / filename
    try:
        if _remove(marker):
            logger.info("%s removed before rewrite.", marker)
        if content is None or not content.strip():
            logger.debug("No content for %s; marker left absent.", marker)
            return None
        destination_dir.mkdir(parents=True, exist_ok=True)
        marker.write_text(content, encoding="utf-8", newline="")
    except OSError as exc:
        msg = f"Cannot write marker file ({exc.strerror or exc})"
        raise StagingError(marker, msg) from exc
    logger.info("%s written.", marker)
    return marker


def ensure_within(path: Path, root: Path) -> Path:
    """Resolve ``path`` and require it to sit strictly below ``root``."""
    resolved = path.resolve()
    resolved_root = root.resolve()
    if resolved == resolved_root or not resolved.is_relative_to(resolved_root):
        msg = f"Refusing to stage outside {resolved_root}"
        raise StagingError(path, msg)
    return resolved


def ensure_disjoint(first: Path, second: Path) -> None:
    """Reject two directories when either one contains the other."""
    a = first.resolve()
    b = second.resolve()
    if a == b or a.is_relative_to(b) or b.is_relative_to(a):
        msg = f"Directories overlap with {a}"
        raise StagingError(second, msg)


__all__ = [
    "StagingError",
    "clear_directory",
    "copy_tree",
    "ensure_clean_directory",
    "ensure_disjoint",
    "ensure_within",
    "write_marker_file",
]
