"""Shared fixtures: sample site configurations and throwaway Git remotes."""

from __future__ import annotations

import os
import shutil
import subprocess
import typing as typ
from pathlib import Path
from textwrap import dedent

import pytest

GIT = shutil.which("git")

SAMPLE_SITE_YML = dedent(
    """
    bake:
      srcPath: site
      destDirPath: bake
      cname: pages.example.com
    pushPage:
      from: bake
      to: cvs
      repo:
        name: site
        repository: {page_remote}
        credentials:
          username: octocat
          password: s3cr3t-token
      branch: main
      message: Publish site
    pushMaquette:
      from: maquette
      to: cvs
      repo:
        name: maquette
        repository: {maquette_remote}
        credentials:
          username: octocat
          password: s3cr3t-token
      branch: main
      message: Publish maquette
    supabase:
      project:
        url: https://xyz.supabase.co
        publicKey: anon-key
      schema:
        contacts:
          name: public.contacts
          columns:
            - name: id
              type: uuid
            - name: email
              type: text
          rlsEnabled: true
      rpc:
        name: public.handle_contact_form
        params:
          - name: p_email
            type: text
    """
).lstrip()


def _git(*args: str, cwd: Path | None = None) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        text=True,
        capture_output=True,
    )
    return result.stdout


def _remote_files(remote: Path, branch: str = "main") -> dict[str, str]:
    names = _git("--git-dir", str(remote), "ls-tree", "-r", "--name-only", branch).split()
    return {
        name: _git("--git-dir", str(remote), "show", f"{branch}:{name}") for name in names
    }


def _commit_count(remote: Path, branch: str = "main") -> int:
    return int(_git("--git-dir", str(remote), "rev-list", "--count", branch).strip())


@pytest.fixture(autouse=True)
def isolated_git_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's Git configuration and tokens out of the tests."""
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", os.devnull)
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for name in (
        "GIT_CONFIG_COUNT",
        "BAKERY_GIT_USERNAME",
        "BAKERY_GIT_PASSWORD",
        "GITHUB_TOKEN",
        "GH_TOKEN",
        "BAKERY_JBAKE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def bare_remote(tmp_path: Path) -> typ.Callable[[str], Path]:
    """Return a factory creating empty bare repositories under ``tmp_path``."""
    if GIT is None:
        pytest.skip("git executable not available")

    def _make(name: str = "remote") -> Path:
        path = tmp_path / "remotes" / f"{name}.git"
        path.parent.mkdir(parents=True, exist_ok=True)
        _git("init", "--bare", "--quiet", str(path))
        return path

    return _make


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    path = tmp_path / "project"
    path.mkdir()
    return path


@pytest.fixture
def write_site_yml(project_dir: Path) -> typ.Callable[..., Path]:
    """Write the sample ``site.yml`` with the given remotes."""

    def _write(
        page_remote: str = "https://github.com/octocat/site.git",
        maquette_remote: str = "https://github.com/octocat/maquette.git",
    ) -> Path:
        path = project_dir / "site.yml"
        path.write_text(
            SAMPLE_SITE_YML.format(page_remote=page_remote, maquette_remote=maquette_remote),
            encoding="utf-8",
        )
        return path

    return _write


class RemoteInspector:
    """Read the published state of a bare repository."""

    files = staticmethod(_remote_files)
    commits = staticmethod(_commit_count)


@pytest.fixture
def remote_state() -> RemoteInspector:
    return RemoteInspector()
