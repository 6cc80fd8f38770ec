"""Cyclopts CLI entrypoint for baking and publishing bakery sites.

The ``bakery`` console script scaffolds a project (``init-site``), renders it
with JBake (``bake``/``serve``), and pushes the baked site or the UI mock-up to
their pages repositories (``publish-site``/``publish-maquette``). Options can
also be supplied through ``BAKERY_*`` environment variables, which is how CI
jobs pass credentials.

Examples
--------
Publish the baked site from the current directory:

>>> from bakery.cli import app
>>> app(["publish-site"])  # doctest: +SKIP

Scaffold a new project somewhere else:

>>> app(["init-site", "--project-dir", "my-site"])  # doctest: +SKIP
"""

from __future__ import annotations

import collections.abc as cabc
import contextlib
import dataclasses as dc
import logging
import os
import sys
import typing as typ
from pathlib import Path

import cyclopts
import questionary
from cyclopts import App, Parameter

from . import tasks
from ._constants import CONFIG_PATH_KEY, PROJECT_SETTINGS_FILE, REPOSITORY_KEY
from .config import RepositoryCredentials, SiteConfiguration, load_site_config
from .errors import BakeryError
from .repository import ensure_pages_repository
from .settings import (
    DEFAULT_CREDENTIALS_PATH,
    is_git_ignored,
    read_project_setting,
    resolve_config_path,
    resolve_credentials,
    save_credentials,
    with_resolved_credentials,
    write_project_setting,
)

if typ.TYPE_CHECKING:
    from .publish import PublishResult

log = logging.getLogger("bakery")

app = App(name="bakery", config=cyclopts.config.Env("BAKERY_", command=False))  # type: ignore[unknown-argument]

ProjectDir = typ.Annotated[Path, Parameter(help="Project directory")]
ConfigOption = typ.Annotated[
    Path | None,
    Parameter(help="Site configuration file (defaults to bakery.configPath or site.yml)"),
]
BuildDirOption = typ.Annotated[
    Path | None, Parameter(help="Build area (defaults to <project>/build)")
]
UsernameOption = typ.Annotated[
    str | None, Parameter(help="Git username", env_var="BAKERY_GIT_USERNAME")
]
PasswordOption = typ.Annotated[
    str | None,
    Parameter(help="Git password or token", env_var="BAKERY_GIT_PASSWORD"),
]
CredentialsOption = typ.Annotated[
    Path,
    Parameter(help="Stored credentials (TOML)", env_var="BAKERY_CREDENTIALS_FILE"),
]
JBakeOption = typ.Annotated[
    str | None, Parameter(help="JBake executable", env_var="BAKERY_JBAKE")
]


def _format_path(path: Path) -> str:
    """Return a cwd-relative path when possible, otherwise the absolute path."""
    if path.is_absolute():
        try:
            return str(path.relative_to(Path.cwd()))
        except ValueError:
            return str(path)
    return str(path)


@contextlib.contextmanager
def _reporting(flow: str) -> cabc.Iterator[None]:
    """Turn a failed flow into a one-line message and exit status 1."""
    try:
        yield
    except BakeryError as exc:
        print(f"{flow} failed: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc


def _load(
    project_dir: Path, config: Path | None, build_dir: Path | None
) -> tuple[tasks.ProjectLayout, SiteConfiguration]:
    layout = tasks.ProjectLayout.for_project(project_dir, build_dir)
    config_path = resolve_config_path(layout.project_dir, config)
    site = load_site_config(config_path)
    fallback = read_project_setting(layout.project_dir / PROJECT_SETTINGS_FILE, REPOSITORY_KEY)
    if fallback and not site.is_empty and not site.push_page.repo.repository.strip():
        site = dc.replace(
            site,
            push_page=dc.replace(
                site.push_page,
                repo=dc.replace(site.push_page.repo, repository=fallback),
            ),
        )
    return layout, site


def _report_publish(result: PublishResult) -> None:
    if result.committed:
        print(f"published {result.repository} ({result.branch}) at {result.commit}")
    else:
        print(f"{result.repository} ({result.branch}) already up to date")


@app.command(help="Write site.yml and scaffold the site and maquette directories.")
def init_site(
    *,
    project_dir: ProjectDir = Path("."),
    config: ConfigOption = None,
    title: typ.Annotated[str | None, Parameter(help="Site title")] = None,
) -> None:
    """Initialise a bakery project.

    Writes the default ``site.yml`` unless a non-empty one exists, renders the
    bundled site and maquette skeletons without overwriting existing files, and
    makes sure the configuration file is git-ignored.
    """
    with _reporting("initSite"):
        layout = tasks.ProjectLayout.for_project(project_dir)
        config_path = resolve_config_path(layout.project_dir, config)
        result = tasks.init_site(layout, config_path=config_path, title=title)
    if result.config_written:
        print(f"wrote {_format_path(result.config_path)}")
    else:
        print(f"kept {_format_path(result.config_path)}")
    for path in result.files:
        print(f"wrote {_format_path(path)}")


@app.command(help="Render the site sources into the build area with JBake.")
def bake(
    *,
    project_dir: ProjectDir = Path("."),
    config: ConfigOption = None,
    build_dir: BuildDirOption = None,
    jbake: JBakeOption = None,
) -> None:
    with _reporting("bake"):
        layout, site = _load(project_dir, config, build_dir)
        output = tasks.bake_site(layout, site, executable=jbake)
    print(f"wrote {_format_path(output)}")


@app.command(help="Bake the site and serve it locally.")
def serve(
    *,
    project_dir: ProjectDir = Path("."),
    config: ConfigOption = None,
    build_dir: BuildDirOption = None,
    jbake: JBakeOption = None,
) -> None:
    with _reporting("serve"):
        layout, site = _load(project_dir, config, build_dir)
        tasks.serve_site(layout, site, executable=jbake)


@app.command(help="Push the baked site to the pushPage repository.")
def publish_site(
    *,
    project_dir: ProjectDir = Path("."),
    config: ConfigOption = None,
    build_dir: BuildDirOption = None,
    git_username: UsernameOption = None,
    git_password: PasswordOption = None,
    credentials_path: CredentialsOption = DEFAULT_CREDENTIALS_PATH,
) -> None:
    """Publish ``build/<bake.destDirPath>`` to the ``pushPage`` target.

    Credentials are taken from the options, then ``BAKERY_GIT_*`` /
    ``GITHUB_TOKEN``, then the stored credentials file, then ``site.yml``.
    """
    with _reporting("publishSite"):
        layout, site = _load(project_dir, config, build_dir)
        tasks.require_configuration(site, "publishSite")
        site = dc.replace(
            site,
            push_page=with_resolved_credentials(
                site.push_page,
                username=git_username,
                password=git_password,
                credentials_path=credentials_path,
            ),
        )
        result = tasks.publish_site(layout, site)
    _report_publish(result)


@app.command(help="Push the UI mock-up directory to the pushMaquette repository.")
def publish_maquette(
    *,
    project_dir: ProjectDir = Path("."),
    config: ConfigOption = None,
    build_dir: BuildDirOption = None,
    git_username: UsernameOption = None,
    git_password: PasswordOption = None,
    credentials_path: CredentialsOption = DEFAULT_CREDENTIALS_PATH,
) -> None:
    with _reporting("publishMaquette"):
        layout, site = _load(project_dir, config, build_dir)
        tasks.require_configuration(site, "publishMaquette")
        site = dc.replace(
            site,
            push_maquette=with_resolved_credentials(
                site.push_maquette,
                username=git_username,
                password=git_password,
                credentials_path=credentials_path,
            ),
        )
        result = tasks.publish_maquette(layout, site)
    _report_publish(result)


def _ask(question: questionary.Question) -> str:
    answer = question.ask()
    if answer is None:
        print("configureSite aborted", file=sys.stderr)
        raise SystemExit(1)
    return answer.strip()


@app.command(help="Store Git credentials and the site configuration path.")
def configure_site(
    *,
    project_dir: ProjectDir = Path("."),
    git_username: UsernameOption = None,
    git_password: PasswordOption = None,
    repository: typ.Annotated[
        str | None, Parameter(help="Pages repository URL")
    ] = None,
    config: typ.Annotated[
        str | None, Parameter(help="Site configuration path to record")
    ] = None,
    credentials_path: CredentialsOption = DEFAULT_CREDENTIALS_PATH,
) -> None:
    """Collect and persist the values the publish commands need.

    Missing values are prompted for. The token is written to the credentials
    file (mode 0600); the repository URL and configuration path go to
    ``bakery.toml`` in the project.
    """
    username = git_username or _ask(questionary.text("GitHub username:"))
    token = git_password or _ask(questionary.password("GitHub token:"))
    repo_url = repository or _ask(questionary.text("Pages repository URL:"))
    config_value = config or _ask(
        questionary.text("Site configuration path:", default="site.yml")
    )

    with _reporting("configureSite"):
        creds = RepositoryCredentials(username=username, password=token)
        save_credentials(creds, path=credentials_path)
        print(f"saved credentials to {_format_path(credentials_path)} (token {creds.describe()})")

        settings_path = project_dir / PROJECT_SETTINGS_FILE
        if config_value:
            write_project_setting(settings_path, CONFIG_PATH_KEY, config_value)
        if repo_url:
            write_project_setting(settings_path, REPOSITORY_KEY, repo_url)
        print(f"wrote {_format_path(settings_path)}")

    if not is_git_ignored(project_dir, credentials_path):
        log.warning(
            "%s is inside the project and not listed in .gitignore; add it before committing.",
            credentials_path,
        )


@app.command(help="Create the pushPage repository on GitHub when it is missing.")
def create_pages_repository(
    *,
    project_dir: ProjectDir = Path("."),
    config: ConfigOption = None,
    github_token: typ.Annotated[
        str | None,
        Parameter(help="GitHub token (falls back to stored credentials)", env_var="GITHUB_TOKEN"),
    ] = None,
    credentials_path: CredentialsOption = DEFAULT_CREDENTIALS_PATH,
) -> None:
    with _reporting("createPagesRepository"):
        _layout, site = _load(project_dir, config, None)
        tasks.require_configuration(site, "createPagesRepository")
        creds = resolve_credentials(
            site.push_page.repo.credentials,
            password=github_token,
            credentials_path=credentials_path,
        )
        result = ensure_pages_repository(site.push_page.repo, token=creds.password or None)
    verb = "created" if result.created else "found"
    print(f"{verb} {result.slug}")


def tasks_(
    *,
    project_dir: ProjectDir = Path("."),
    config: ConfigOption = None,
) -> None:
    _layout, site = _load(project_dir, config, None)
    for name in tasks.available_tasks(site):
        print(name)


app.command(tasks_, name="tasks", help="List the tasks available for the current configuration.")


def main() -> None:
    """Invoke the Cyclopts application that powers the ``bakery`` command.

    Logging goes to stderr at the level named by ``BAKERY_LOG_LEVEL``
    (default ``INFO``).

    Examples
    --------
    >>> main()  # doctest: +SKIP
    """
    logging.basicConfig(
        level=os.getenv("BAKERY_LOG_LEVEL", "INFO").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )
    app()


if __name__ == "__main__":  # pragma: no cover - manual invocation helper
    main()
