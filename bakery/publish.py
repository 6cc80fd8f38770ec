"""Push a staged directory to a Git-hosted pages repository.

This module powers the ``publish-site`` and ``publish-maquette`` commands by:

* Keeping one working clone per target repository under the build area,
  reused (fetched and reset) across runs and re-cloned when it is corrupted.
* Replacing the clone's working tree with the staged directory so files
  deleted from the staged tree disappear from the repository too.
* Committing only when something changed and pushing the branch without ever
  forcing it; a rejected push is reported, not resolved.
* Handing credentials to Git through ``GIT_CONFIG_*`` environment entries so
  they never appear in argv, remote URLs, ``.git/config``, or logs.
"""

from __future__ import annotations

import base64
import collections.abc as cabc
import dataclasses as dc
import logging
import os
import re
import shutil
import subprocess
import typing as typ
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

from .errors import BakeryError
from .staging import clear_directory, copy_tree, ensure_disjoint, ensure_within

if typ.TYPE_CHECKING:
    from .config import GitPushConfiguration, RepositoryCredentials

log = logging.getLogger(__name__)

GIT_EXECUTABLE = os.getenv("BAKERY_GIT", "git")
_REDACTED = "***"
_SLUG_PATTERN = re.compile(r"[^A-Za-z0-9._-]+")


class PublishError(BakeryError):
    """Raised when a Git operation fails while publishing a target."""

    def __init__(self, repository: str, branch: str, cause: str) -> None:
        self.repository = repository
        self.branch = branch
        self.cause = cause
        super().__init__(f"Publishing to {repository} ({branch or 'no branch'}) failed: {cause}")


@dc.dataclass(frozen=True, slots=True)
class PublishResult:
    """Outcome of a single publish call."""

    repository: str
    branch: str
    workspace: Path
    committed: bool
    commit: str | None = None


def run_git(
    args: list[str],
    *,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Invoke Git with the provided arguments and environment."""
    return subprocess.run(  # noqa: S603
        [GIT_EXECUTABLE, *args],
        cwd=cwd,
        env=env,
        check=check,
        text=True,
        capture_output=True,
    )


def build_git_env(
    creds: RepositoryCredentials, *, base: cabc.Mapping[str, str] | None = None
) -> dict[str, str]:
    """Construct an environment dict for Git commands.

    Credentials become an ``http.extraHeader`` entry passed through
    ``GIT_CONFIG_COUNT``/``GIT_CONFIG_KEY_n``/``GIT_CONFIG_VALUE_n``, appended
    after any entries already present in ``base``. The commit identity defaults
    to the credential username unless the environment already sets one.
    """
    env = dict(os.environ if base is None else base)
    env["GIT_TERMINAL_PROMPT"] = "0"
    if creds.password:
        try:
            count = int(env.get("GIT_CONFIG_COUNT", "0") or 0)
        except ValueError:
            count = 0
        env[f"GIT_CONFIG_KEY_{count}"] = "http.extraHeader"
        env[f"GIT_CONFIG_VALUE_{count}"] = f"Authorization: Basic {_basic_token(creds)}"
        env["GIT_CONFIG_COUNT"] = str(count + 1)
    name = creds.username or "bakery"
    env.setdefault("GIT_AUTHOR_NAME", name)
    env.setdefault("GIT_COMMITTER_NAME", name)
    env.setdefault("GIT_AUTHOR_EMAIL", f"{name}@users.noreply.github.com")
    env.setdefault("GIT_COMMITTER_EMAIL", f"{name}@users.noreply.github.com")
    return env


def _basic_token(creds: RepositoryCredentials) -> str:
    user = creds.username or "x-access-token"
    return base64.b64encode(f"{user}:{creds.password}".encode()).decode("ascii")


def redact(text: str, creds: RepositoryCredentials) -> str:
    """Mask the password, its Basic auth encoding, and URL user info."""
    if creds.password:
        text = text.replace(_basic_token(creds), _REDACTED)
        text = text.replace(creds.password, _REDACTED)
    return re.sub(r"(\w+://)[^/@\s]+@", rf"\1{_REDACTED}@", text)


def redact_url(url: str) -> str:
    """Strip any user info embedded in a remote URL."""
    parts = urlsplit(url)
    if not parts.scheme or "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=f"{_REDACTED}@{host}"))


def repository_slug(name: str) -> str:
    """Return a filesystem-safe directory name for a repository."""
    slug = _SLUG_PATTERN.sub("-", name).strip(".-")
    return slug or "repository"


class _GitSession:
    """Run Git commands for one target, converting failures to PublishError."""

    def __init__(
        self,
        target: GitPushConfiguration,
        runner: typ.Callable[..., subprocess.CompletedProcess[str]],
        env: dict[str, str],
        logger: logging.Logger,
    ) -> None:
        self.target = target
        self.runner = runner
        self.env = env
        self.logger = logger

    def __call__(
        self, *args: str, cwd: Path | None = None, check: bool = True
    ) -> subprocess.CompletedProcess[str]:
        creds = self.target.repo.credentials
        self.logger.debug("git %s", redact(" ".join(args), creds))
        try:
            return self.runner(list(args), cwd=cwd, env=self.env, check=check)
        except FileNotFoundError as exc:
            raise self.error(f"git executable not found ({GIT_EXECUTABLE})") from exc
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or exc.stdout or "").strip()
            cause = f"git {args[0]} exited with status {exc.returncode}"
            if detail:
                cause = f"{cause}: {redact(detail, creds)}"
            raise self.error(cause) from exc

    def error(self, cause: str) -> PublishError:
        return PublishError(self.target.repo.name or self.target.repo.repository, self.target.branch, cause)


class GitPublisher:
    """Publish staged directories to remote repositories.

    Parameters
    ----------
    workspace_root : Path
        Build area under which working clones live. Each target's clone sits
        at ``<workspace_root>/<target.to>/<repository slug>``.
    logger : logging.Logger, optional
        Logger for progress messages; defaults to the module logger.
    runner : callable, optional
        Replacement for :func:`run_git`, mainly for tests.
    base_env : Mapping[str, str], optional
        Environment used instead of ``os.environ`` for Git processes.
    """

    def __init__(
        self,
        workspace_root: Path,
        *,
        logger: logging.Logger | None = None,
        runner: typ.Callable[..., subprocess.CompletedProcess[str]] | None = None,
        base_env: cabc.Mapping[str, str] | None = None,
    ) -> None:
        self.workspace_root = workspace_root
        self.logger = logger or log
        self.runner = runner or run_git
        self.base_env = base_env

    def workspace_for(self, target: GitPushConfiguration) -> Path:
        """Return the deterministic clone location for ``target``."""
        name = target.repo.name or target.repo.repository
        return ensure_within(
            self.workspace_root / target.to / repository_slug(name), self.workspace_root
        )

    def publish(self, staged_dir: Path, target: GitPushConfiguration) -> PublishResult:
        """Mirror ``staged_dir`` onto ``target.branch`` and push it.

        Raises
        ------
        PublishError
            If the target is incomplete or any Git command fails.
        StagingError
            If the working tree cannot be replaced with the staged content.
        """
        git = _GitSession(
            target,
            self.runner,
            build_git_env(target.repo.credentials, base=self.base_env),
            self.logger,
        )
        if not target.repo.repository.strip():
            raise git.error("no remote repository configured")
        if not target.branch.strip():
            raise git.error("no branch configured")
        if not staged_dir.is_dir():
            raise git.error(f"staged directory {staged_dir} does not exist")
        workspace = self.workspace_for(target)
        ensure_disjoint(staged_dir, workspace)

        self.logger.info(
            "Publishing %s to %s (%s), credentials %s",
            staged_dir,
            redact_url(target.repo.repository),
            target.branch,
            target.repo.credentials.describe(),
        )
        self._prepare_workspace(workspace, target, git)
        clear_directory(workspace, logger=self.logger)
        copy_tree(staged_dir, workspace, logger=self.logger)

        git("add", "--all", cwd=workspace)
        if not git("status", "--porcelain", cwd=workspace).stdout.strip():
            self.logger.info("Nothing to commit for %s; skipping push.", target.repo.name)
            return PublishResult(
                repository=target.repo.name,
                branch=target.branch,
                workspace=workspace,
                committed=False,
                commit=self._head(workspace, git),
            )

        message = target.message.strip() or f"Publish {target.repo.name or 'site'}"
        git("commit", "--quiet", "--message", message, cwd=workspace)
        commit = self._head(workspace, git)
        git("push", "--porcelain", "origin", f"HEAD:refs/heads/{target.branch}", cwd=workspace)
        self.logger.info("Pushed %s to %s (%s)", commit, target.repo.name, target.branch)
        return PublishResult(
            repository=target.repo.name,
            branch=target.branch,
            workspace=workspace,
            committed=True,
            commit=commit,
        )

    def _prepare_workspace(
        self, workspace: Path, target: GitPushConfiguration, git: _GitSession
    ) -> None:
        url = target.repo.repository
        if self._is_clone(workspace, git):
            git("remote", "set-url", "origin", url, cwd=workspace)
            git("fetch", "--prune", "origin", cwd=workspace)
        else:
            if workspace.exists() or workspace.is_symlink():
                self.logger.warning("Discarding unusable working copy %s", workspace)
            self._reset_path(workspace)
            self.logger.info("Cloning %s into %s", redact_url(url), workspace)
            git("clone", "--no-checkout", url, str(workspace), cwd=workspace.parent)

        branch = target.branch
        upstream = f"refs/remotes/origin/{branch}"
        if git("rev-parse", "--verify", "--quiet", upstream, cwd=workspace, check=False).returncode == 0:
            git("checkout", "--force", "-B", branch, f"origin/{branch}", cwd=workspace)
        else:
            self.logger.info("Branch %s absent upstream; starting it from scratch.", branch)
            git("update-ref", "-d", f"refs/heads/{branch}", cwd=workspace, check=False)
            git("symbolic-ref", "HEAD", f"refs/heads/{branch}", cwd=workspace)
            git("read-tree", "--empty", cwd=workspace)

    def _is_clone(self, workspace: Path, git: _GitSession) -> bool:
        if not (workspace / ".git").is_dir():
            return False
        result = git("rev-parse", "--absolute-git-dir", cwd=workspace, check=False)
        if result.returncode != 0:
            return False
        return Path(result.stdout.strip()).resolve() == (workspace / ".git").resolve()

    def _head(self, workspace: Path, git: _GitSession) -> str | None:
        result = git("rev-parse", "--verify", "--quiet", "HEAD", cwd=workspace, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def _reset_path(self, workspace: Path) -> None:
        if workspace.is_dir() and not workspace.is_symlink():
            shutil.rmtree(workspace)
        elif workspace.exists() or workspace.is_symlink():
            workspace.unlink()
        workspace.parent.mkdir(parents=True, exist_ok=True)


__all__ = [
    "GitPublisher",
    "PublishError",
    "PublishResult",
    "build_git_env",
    "redact",
    "redact_url",
    "repository_slug",
    "run_git",
]
