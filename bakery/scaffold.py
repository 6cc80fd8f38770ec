"""First-run scaffolding for a bakery project.

``SiteScaffolder`` copies the bundled ``site`` and ``maquette`` trees from
``bakery/templates`` into a project. Files ending in ``.jinja`` are rendered
with Jinja2 (the suffix is dropped); everything else, including the FreeMarker
templates JBake consumes, is copied byte for byte. Files already present in
the project are never overwritten, so re-running ``init-site`` only fills in
what is missing.

>>> from pathlib import Path
>>> scaffolder = SiteScaffolder(title="My site")  # doctest: +SKIP
>>> scaffolder.scaffold("site", Path("site"))  # doctest: +SKIP
[PosixPath('site/jbake.properties'), ...]
"""

from __future__ import annotations

import datetime as dt
import logging
import shutil
import typing as typ
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from ._constants import GIT_ATTRIBUTES_CONTENT, GITIGNORE_CONTENT
from .staging import StagingError

log = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".jinja"
SCAFFOLD_KINDS = ("site", "maquette")


class SiteScaffolder:
    """Render the bundled project skeletons into a working directory."""

    def __init__(
        self,
        *,
        title: str,
        host: str | None = None,
        templates_dir: Path | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the scaffolder and its Jinja environment.

        Parameters
        ----------
        title : str
            Human readable site title injected into the rendered templates.
        host : str, optional
            Custom domain (the ``cname`` value). Used to build ``site.host``
            in ``jbake.properties``; a local preview URL is used otherwise.
        templates_dir : Path, optional
            Directory holding one sub-directory per scaffold kind. Defaults to
            ``bakery/templates``.
        logger : logging.Logger, optional
            Logger for progress messages.
        """
        self.title = title
        self.host = host
        self.templates_dir = templates_dir or Path(__file__).parent / "templates"
        self.logger = logger or log
        self.env = Environment(
            loader=FileSystemLoader(self.templates_dir),
            autoescape=select_autoescape(enabled_extensions=("html.jinja",)),
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )

    def context(self) -> dict[str, typ.Any]:
        return {
            "title": self.title,
            "site_url": f"https://{self.host}" if self.host else "http://localhost:8820",
            "today": dt.date.today().isoformat(),
        }

    def scaffold(self, kind: str, destination: Path) -> list[Path]:
        """Populate ``destination`` with the ``kind`` skeleton.

        Returns
        -------
        list[Path]
            Files written during this call; existing files are skipped.

        Raises
        ------
        ValueError
            If ``kind`` has no bundled skeleton.
        StagingError
            If a file cannot be written.
        """
        root = self.templates_dir / kind
        if kind not in SCAFFOLD_KINDS or not root.is_dir():
            msg = f"Unknown scaffold kind: {kind!r}"
            raise ValueError(msg)

        written: list[Path] = []
        context = self.context()
        for source in sorted(p for p in root.rglob("*") if p.is_file()):
            relative = source.relative_to(root)
            rendered = source.name.endswith(TEMPLATE_SUFFIX)
            if rendered:
                relative = relative.with_name(relative.name.removesuffix(TEMPLATE_SUFFIX))
            target = destination / relative
            if target.exists():
                self.logger.debug("%s already exists; keeping it.", target)
                continue
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                if rendered:
                    template = self.env.get_template(source.relative_to(self.templates_dir).as_posix())
                    target.write_text(template.render(**context), encoding="utf-8")
                else:
                    shutil.copy2(source, target)
            except OSError as exc:
                msg = f"Cannot write scaffold file ({exc.strerror or exc})"
                raise StagingError(target, msg) from exc
            written.append(target)
        self.logger.info("Scaffolded %s into %s (%d files)", kind, destination, len(written))
        return written


def ensure_gitignore(project_dir: Path, config_name: str, *, logger: logging.Logger | None = None) -> Path:
    """Create ``.gitignore`` or make sure it ignores ``config_name``.

    The site configuration holds credentials, so it must never be committed.
    """
    logger = logger or log
    path = project_dir / ".gitignore"
    if not path.exists():
        content = GITIGNORE_CONTENT
        if config_name not in content.splitlines():
            content += f"{config_name}\n"
        path.write_text(content, encoding="utf-8")
        logger.info("Wrote %s", path)
        return path
    existing = path.read_text(encoding="utf-8")
    entries = {line.strip().strip("/") for line in existing.splitlines()}
    if config_name not in entries:
        separator = "" if not existing or existing.endswith("\n") else "\n"
        path.write_text(f"{existing}{separator}{config_name}\n", encoding="utf-8")
        logger.info("Added %s to %s", config_name, path)
    return path


def ensure_gitattributes(project_dir: Path, *, logger: logging.Logger | None = None) -> Path:
    """Write the default ``.gitattributes`` when the project has none."""
    logger = logger or log
    path = project_dir / ".gitattributes"
    if not path.exists():
        path.write_text(GIT_ATTRIBUTES_CONTENT, encoding="utf-8")
        logger.info("Wrote %s", path)
    return path


__all__ = [
    "SCAFFOLD_KINDS",
    "SiteScaffolder",
    "ensure_gitattributes",
    "ensure_gitignore",
]
