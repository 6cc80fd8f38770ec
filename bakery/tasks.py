"""Workflows behind the bakery commands.

Each flow receives a :class:`ProjectLayout`, the loaded
:class:`~bakery.config.SiteConfiguration`, and an optional logger; nothing is
read from global state. Flows fail fast: the first error aborts the flow and
propagates to the caller, leaving other flows' staging directories and working
clones untouched.

Examples
--------
>>> from pathlib import Path
>>> from bakery.config import load_site_config
>>> layout = ProjectLayout.for_project(Path("."))
>>> config = load_site_config(layout.project_dir / "site.yml")  # doctest: +SKIP
>>> publish_site(layout, config)  # doctest: +SKIP
PublishResult(repository='site', branch='main', ...)
"""

from __future__ import annotations

import dataclasses as dc
import logging
import typing as typ
from pathlib import Path

from . import bake as bake_engine
from ._constants import CNAME, DEFAULT_BUILD_DIR, DEFAULT_CONFIG_FILE
from .config import ConfigurationError, SiteConfiguration, initialize_site_config, load_site_config
from .errors import BakeryError
from .publish import GitPublisher, PublishResult
from .scaffold import SiteScaffolder, ensure_gitattributes, ensure_gitignore
from .staging import (
    StagingError,
    copy_tree,
    ensure_clean_directory,
    ensure_disjoint,
    ensure_within,
    write_marker_file,
)

if typ.TYPE_CHECKING:
    from .config import GitPushConfiguration

log = logging.getLogger(__name__)

INIT_TASK = "initSite"
SITE_TASKS = (
    "bake",
    "serve",
    "publishSite",
    "publishMaquette",
    "configureSite",
    "createPagesRepository",
)


class PreconditionError(BakeryError):
    """Raised when a flow's inputs are missing, before any destructive step."""


@dc.dataclass(frozen=True, slots=True)
class ProjectLayout:
    """Resolved locations of the project and its build area."""

    project_dir: Path
    build_dir: Path

    @classmethod
    def for_project(cls, project_dir: Path, build_dir: Path | None = None) -> ProjectLayout:
        project = project_dir.resolve()
        build = (build_dir if build_dir is not None else project / DEFAULT_BUILD_DIR).resolve()
        return cls(project_dir=project, build_dir=build)

    def project_path(self, relative: str) -> Path:
        """Return ``relative`` resolved against the project directory."""
        return (self.project_dir / relative).resolve()

    def build_path(self, relative: str, *, field: str) -> Path:
        """Return ``relative`` under the build area, rejecting escapes.

        Raises
        ------
        PreconditionError
            If the value is blank or resolves outside the build area.
        """
        if not relative.strip():
            msg = f"'{field}' is not set in the site configuration"
            raise PreconditionError(msg)
        try:
            return ensure_within(self.build_dir / relative, self.build_dir)
        except StagingError as exc:
            msg = f"'{field}' must stay inside {self.build_dir}: {relative!r}"
            raise PreconditionError(msg) from exc


def available_tasks(config: SiteConfiguration) -> list[str]:
    """Return the task names usable with ``config``.

    Only site initialisation makes sense until a configuration exists.
    """
    if config.is_empty:
        return [INIT_TASK]
    return [INIT_TASK, *SITE_TASKS]


def require_configuration(config: SiteConfiguration, flow: str) -> None:
    if config.is_empty:
        msg = f"{flow} needs a site configuration; run `bakery init-site` first."
        raise ConfigurationError(msg)


def _check_workspace(
    publisher: GitPublisher, staged: Path, target: GitPushConfiguration, section: str
) -> None:
    try:
        ensure_disjoint(staged, publisher.workspace_for(target))
    except StagingError as exc:
        msg = (
            f"'{section}.to' ({target.to!r}) places the working clone over the "
            f"staged directory {staged}"
        )
        raise PreconditionError(msg) from exc


def publish_site(
    layout: ProjectLayout,
    config: SiteConfiguration,
    *,
    publisher: GitPublisher | None = None,
    logger: logging.Logger | None = None,
) -> PublishResult:
    """Publish the baked site, writing ``CNAME`` first when a domain is set.

    Raises
    ------
    ConfigurationError
        If ``config`` is the empty default.
    PreconditionError
        If the bake output is missing or the target paths are unusable.
    StagingError, PublishError
        If writing the marker or pushing fails.
    """
    logger = logger or log
    require_configuration(config, "publishSite")
    publisher = publisher or GitPublisher(layout.build_dir, logger=logger)
    staged = layout.build_path(config.bake.dest_dir_path, field="bake.destDirPath")
    if not staged.is_dir():
        msg = f"Baked site not found at {staged}; run `bakery bake` first."
        raise PreconditionError(msg)
    _check_workspace(publisher, staged, config.push_page, "pushPage")

    write_marker_file(staged, CNAME, config.bake.cname, logger=logger)
    return publisher.publish(staged, config.push_page)


def publish_maquette(
    layout: ProjectLayout,
    config: SiteConfiguration,
    *,
    publisher: GitPublisher | None = None,
    logger: logging.Logger | None = None,
) -> PublishResult:
    """Stage the project's UI mock-up directory and publish it.

    The UI directory is checked before anything is deleted or contacted.
    """
    logger = logger or log
    require_configuration(config, "publishMaquette")
    target = config.push_maquette
    if not target.from_.strip():
        msg = "'pushMaquette.from' is not set in the site configuration"
        raise PreconditionError(msg)
    ui_dir = layout.project_path(target.from_)
    if not ui_dir.exists():
        msg = f"Maquette directory does not exist: {ui_dir}"
        raise PreconditionError(msg)
    if not ui_dir.is_dir():
        msg = f"Maquette path is not a directory: {ui_dir}"
        raise PreconditionError(msg)

    publisher = publisher or GitPublisher(layout.build_dir, logger=logger)
    staged = layout.build_path(target.from_, field="pushMaquette.from")
    try:
        ensure_disjoint(ui_dir, staged)
    except StagingError as exc:
        msg = (
            f"'pushMaquette.from' stages {ui_dir} into {staged}, which overlaps "
            "the maquette sources"
        )
        raise PreconditionError(msg) from exc
    _check_workspace(publisher, staged, target, "pushMaquette")

    ensure_clean_directory(staged, logger=logger)
    copy_tree(ui_dir, staged, logger=logger)
    return publisher.publish(staged, target)


@dc.dataclass(slots=True)
class InitResult:
    """Files touched by :func:`init_site`."""

    config_path: Path
    config_written: bool
    files: list[Path] = dc.field(default_factory=list)


def init_site(
    layout: ProjectLayout,
    *,
    config_path: Path | None = None,
    title: str | None = None,
    logger: logging.Logger | None = None,
) -> InitResult:
    """Create ``site.yml`` and the site and maquette skeletons.

    An existing non-empty configuration is kept and its directories are used
    for scaffolding; existing files are never overwritten.
    """
    logger = logger or log
    config_path = config_path or layout.project_dir / DEFAULT_CONFIG_FILE
    written = initialize_site_config(config_path, logger=logger)
    config = load_site_config(config_path, logger=logger)
    if config.is_empty:
        logger.warning("%s could not be read; scaffolding with defaults.", config_path)
        config = SiteConfiguration.default()

    result = InitResult(config_path=config_path, config_written=written)
    scaffolder = SiteScaffolder(
        title=title or layout.project_dir.name,
        host=config.bake.cname,
        logger=logger,
    )
    result.files.extend(scaffolder.scaffold("site", layout.project_path(config.bake.src_path)))
    maquette_dir = config.push_maquette.from_.strip() or "maquette"
    result.files.extend(scaffolder.scaffold("maquette", layout.project_path(maquette_dir)))

    try:
        ignored = config_path.resolve().relative_to(layout.project_dir).as_posix()
    except ValueError:
        ignored = None
    if ignored:
        result.files.append(ensure_gitignore(layout.project_dir, ignored, logger=logger))
    result.files.append(ensure_gitattributes(layout.project_dir, logger=logger))
    return result


def bake_site(
    layout: ProjectLayout,
    config: SiteConfiguration,
    *,
    executable: str | None = None,
    logger: logging.Logger | None = None,
) -> Path:
    """Render ``bake.srcPath`` into ``build/<bake.destDirPath>`` with JBake."""
    logger = logger or log
    require_configuration(config, "bake")
    source = layout.project_path(config.bake.src_path)
    if not source.is_dir():
        msg = f"Site sources not found at {source}"
        raise PreconditionError(msg)
    destination = layout.build_path(config.bake.dest_dir_path, field="bake.destDirPath")
    ensure_clean_directory(destination, logger=logger)
    return bake_engine.bake_site(source, destination, executable=executable, logger=logger)


def serve_site(
    layout: ProjectLayout,
    config: SiteConfiguration,
    *,
    executable: str | None = None,
    logger: logging.Logger | None = None,
) -> None:
    """Bake the site and serve it locally until interrupted."""
    logger = logger or log
    require_configuration(config, "serve")
    source = layout.project_path(config.bake.src_path)
    if not source.is_dir():
        msg = f"Site sources not found at {source}"
        raise PreconditionError(msg)
    destination = layout.build_path(config.bake.dest_dir_path, field="bake.destDirPath")
    bake_engine.serve_site(source, destination, executable=executable, logger=logger)


__all__ = [
    "InitResult",
    "PreconditionError",
    "ProjectLayout",
    "available_tasks",
    "bake_site",
    "init_site",
    "publish_maquette",
    "publish_site",
    "require_configuration",
    "serve_site",
]
