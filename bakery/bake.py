"""Thin wrappers around the JBake command line.

The bake engine is an external program: bakery only decides where it reads
from and writes to, and which AsciiDoctor options it receives. Those options
travel in a temporary properties file layered on top of the site's own
``jbake.properties`` so the source tree is never modified.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path

from .errors import BakeryError

log = logging.getLogger(__name__)

JBAKE_ENV_VAR = "BAKERY_JBAKE"
SITE_PROPERTIES_FILE = "jbake.properties"

# Temporary files should be created with restrictive permissions
_TEMP_FILE_MODE = 0o600


class BakeError(BakeryError):
    """Raised when the bake engine is missing or exits unsuccessfully."""


def asciidoctor_options(source_dir: Path) -> dict[str, str]:
    """Return the AsciiDoctor properties handed to JBake for ``source_dir``."""
    return {
        "asciidoctor.option.requires": "asciidoctor-diagram",
        "asciidoctor.attributes": f"sourceDir={source_dir.resolve()},imagesDir=diagrams",
    }


def resolve_jbake(executable: str | None = None) -> str:
    """Locate the JBake executable from an option, the environment, or ``PATH``."""
    candidate = executable or os.getenv(JBAKE_ENV_VAR) or "jbake"
    found = shutil.which(candidate)
    if not found:
        msg = (
            f"JBake executable {candidate!r} not found; install JBake or set "
            f"{JBAKE_ENV_VAR} to its path"
        )
        raise BakeError(msg)
    return found


def _materialize_properties(source_dir: Path) -> Path:
    """Return a temp properties file merging the site's own with bakery options."""
    lines: list[str] = []
    site_properties = source_dir / SITE_PROPERTIES_FILE
    if site_properties.is_file():
        lines.extend(site_properties.read_text(encoding="utf-8").splitlines())
    lines.extend(f"{key}={value}" for key, value in asciidoctor_options(source_dir).items())

    fd, tmp_path = tempfile.mkstemp(prefix="bakery-", suffix=".properties", text=True)
    tmp = Path(tmp_path)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write("\n".join(lines) + "\n")
    os.chmod(tmp, _TEMP_FILE_MODE)
    return tmp


def run_jbake(args: list[str], *, executable: str | None = None) -> subprocess.CompletedProcess[str]:
    """Invoke JBake with the provided arguments."""
    return subprocess.run(  # noqa: S603
        [resolve_jbake(executable), *args],
        check=True,
        text=True,
    )


def _invoke(
    flags: list[str],
    source_dir: Path,
    destination_dir: Path,
    *,
    executable: str | None,
    logger: logging.Logger,
) -> None:
    if not source_dir.is_dir():
        msg = f"Bake source directory does not exist: {source_dir}"
        raise BakeError(msg)
    destination_dir.mkdir(parents=True, exist_ok=True)
    properties = _materialize_properties(source_dir)
    try:
        logger.info("Running jbake %s %s -> %s", " ".join(flags), source_dir, destination_dir)
        run_jbake(
            [*flags, "-c", str(properties), str(source_dir), str(destination_dir)],
            executable=executable,
        )
    except subprocess.CalledProcessError as exc:
        msg = f"jbake exited with status {exc.returncode} while baking {source_dir}"
        raise BakeError(msg) from exc
    except OSError as exc:
        msg = f"Unable to run jbake: {exc}"
        raise BakeError(msg) from exc
    finally:
        properties.unlink(missing_ok=True)


def bake_site(
    source_dir: Path,
    destination_dir: Path,
    *,
    executable: str | None = None,
    logger: logging.Logger | None = None,
) -> Path:
    """Render ``source_dir`` into ``destination_dir`` with ``jbake -b``."""
    _invoke(["-b"], source_dir, destination_dir, executable=executable, logger=logger or log)
    return destination_dir


def serve_site(
    source_dir: Path,
    destination_dir: Path,
    *,
    executable: str | None = None,
    logger: logging.Logger | None = None,
) -> None:
    """Bake and serve the site locally with ``jbake -b -s``; blocks until stopped."""
    _invoke(["-b", "-s"], source_dir, destination_dir, executable=executable, logger=logger or log)


__all__ = [
    "BakeError",
    "asciidoctor_options",
    "bake_site",
    "resolve_jbake",
    "run_jbake",
    "serve_site",
]
