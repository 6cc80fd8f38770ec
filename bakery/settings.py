"""Project settings and credential handling for the publish flows.

This module powers the configuration side of ``bakery`` by:

* Resolving which ``site.yml`` to load from an explicit option or the
  ``bakery.configPath`` key of the project's ``bakery.toml``.
* Loading / persisting Git credentials in ``~/.config/bakery/credentials.toml``
  so they never have to live in the committed site configuration.
* Merging CLI options, environment variables, stored credentials, and the
  values in ``site.yml`` into the credentials used for a push.
"""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import logging
import os
import typing as typ
from pathlib import Path

import tomlkit
from tomlkit.exceptions import TOMLKitError

from ._constants import CONFIG_PATH_KEY, DEFAULT_CONFIG_FILE, PROJECT_SETTINGS_FILE
from .config import GitPushConfiguration, RepositoryCredentials
from .errors import BakeryError

log = logging.getLogger(__name__)

DEFAULT_CREDENTIALS_PATH = Path(
    os.getenv(
        "BAKERY_CREDENTIALS_FILE",
        Path.home() / ".config" / "bakery" / "credentials.toml",
    )
)

# Credential files should be created with restrictive permissions
_SECRET_FILE_MODE = 0o600
_YAML_SUFFIXES = (".yml", ".yaml")


class CredentialError(BakeryError):
    """Raised when required credentials are missing or unreadable."""


def _read_toml(path: Path) -> tomlkit.TOMLDocument:
    try:
        return tomlkit.parse(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return tomlkit.document()


def read_project_setting(path: Path, key: str) -> str | None:
    """Return the value of a dotted ``key`` in the TOML file at ``path``."""
    try:
        node: typ.Any = _read_toml(path)
    except TOMLKitError as exc:
        log.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return None
    for part in key.split("."):
        if not isinstance(node, cabc.Mapping) or part not in node:
            return None
        node = node[part]
    if node is None or isinstance(node, cabc.Mapping):
        return None
    text = str(node).strip()
    return text or None


def write_project_setting(path: Path, key: str, value: str) -> None:
    """Set a dotted ``key`` in the TOML file at ``path`` preserving formatting."""
    try:
        doc = _read_toml(path)
    except TOMLKitError as exc:
        msg = f"Unable to parse settings TOML at {path}"
        raise ValueError(msg) from exc
    *tables, leaf = key.split(".")
    container: typ.Any = doc
    for name in tables:
        child = container.get(name)
        if not isinstance(child, cabc.MutableMapping):
            child = tomlkit.table()
            container[name] = child
        container = child
    container[leaf] = value
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomlkit.dumps(doc), encoding="utf-8")


def resolve_config_path(
    project_dir: Path,
    explicit: Path | str | None = None,
    *,
    logger: logging.Logger | None = None,
) -> Path:
    """Return the ``site.yml`` path for ``project_dir``.

    An explicit path wins; then the ``bakery.configPath`` key of
    ``bakery.toml`` (only when it names a YAML file); then ``site.yml`` in the
    project directory.
    """
    logger = logger or log
    if explicit:
        candidate = Path(explicit)
        return candidate if candidate.is_absolute() else project_dir / candidate
    configured = read_project_setting(project_dir / PROJECT_SETTINGS_FILE, CONFIG_PATH_KEY)
    if configured:
        if configured.lower().endswith(_YAML_SUFFIXES):
            candidate = Path(configured)
            return candidate if candidate.is_absolute() else project_dir / candidate
        logger.warning(
            "Ignoring %s=%r in %s: not a YAML file.",
            CONFIG_PATH_KEY,
            configured,
            PROJECT_SETTINGS_FILE,
        )
    return project_dir / DEFAULT_CONFIG_FILE


def load_stored_credentials(path: Path = DEFAULT_CREDENTIALS_PATH) -> RepositoryCredentials:
    """Read credentials saved by ``configure-site``; blank when absent."""
    try:
        doc = _read_toml(path)
    except TOMLKitError as exc:
        msg = f"Unable to parse credentials TOML at {path}"
        raise CredentialError(msg) from exc
    auth = doc.get("auth")
    if not isinstance(auth, cabc.Mapping):
        return RepositoryCredentials()
    return RepositoryCredentials(
        username=str(auth.get("username") or ""),
        password=str(auth.get("password") or ""),
    )


def save_credentials(
    creds: RepositoryCredentials, *, path: Path = DEFAULT_CREDENTIALS_PATH
) -> None:
    """Persist credentials into ``credentials.toml`` preserving formatting."""
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        doc = _read_toml(path)
    except TOMLKitError as exc:
        msg = f"Unable to parse credentials TOML at {path}"
        raise CredentialError(msg) from exc

    auth_table = doc.get("auth")
    if not isinstance(auth_table, tomlkit.items.Table):
        auth_table = tomlkit.table()

    def _set(key: str, value: str) -> None:
        if value:
            auth_table[key] = value
        else:
            auth_table.pop(key, None)

    _set("username", creds.username)
    _set("password", creds.password)
    doc["auth"] = auth_table

    path.write_text(tomlkit.dumps(doc), encoding="utf-8")
    os.chmod(path, _SECRET_FILE_MODE)


def resolve_credentials(
    configured: RepositoryCredentials,
    *,
    username: str | None = None,
    password: str | None = None,
    credentials_path: Path = DEFAULT_CREDENTIALS_PATH,
) -> RepositoryCredentials:
    """Merge CLI, environment, stored credentials, and ``site.yml`` content."""
    stored = load_stored_credentials(credentials_path)
    return RepositoryCredentials(
        username=username
        or os.getenv("BAKERY_GIT_USERNAME")
        or stored.username
        or configured.username,
        password=password
        or os.getenv("BAKERY_GIT_PASSWORD")
        or os.getenv("GITHUB_TOKEN")
        or os.getenv("GH_TOKEN")
        or stored.password
        or configured.password,
    )


def with_resolved_credentials(
    target: GitPushConfiguration,
    *,
    username: str | None = None,
    password: str | None = None,
    credentials_path: Path = DEFAULT_CREDENTIALS_PATH,
) -> GitPushConfiguration:
    """Return ``target`` with its repository credentials resolved."""
    creds = resolve_credentials(
        target.repo.credentials,
        username=username,
        password=password,
        credentials_path=credentials_path,
    )
    return dc.replace(target, repo=dc.replace(target.repo, credentials=creds))


def is_git_ignored(project_dir: Path, path: Path) -> bool:
    """Return ``True`` when ``path`` is outside the project or in ``.gitignore``."""
    try:
        relative = path.resolve().relative_to(project_dir.resolve())
    except ValueError:
        return True
    gitignore = project_dir / ".gitignore"
    if not gitignore.is_file():
        return False
    entries = {
        line.strip().strip("/")
        for line in gitignore.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    }
    parts = relative.parts
    candidates = {"/".join(parts[: i + 1]) for i in range(len(parts))}
    candidates.add(relative.name)
    return not candidates.isdisjoint(entries)


__all__ = [
    "DEFAULT_CREDENTIALS_PATH",
    "CredentialError",
    "is_git_ignored",
    "load_stored_credentials",
    "read_project_setting",
    "resolve_config_path",
    "resolve_credentials",
    "save_credentials",
    "with_resolved_credentials",
    "write_project_setting",
]
