"""Provision the GitHub repositories that receive published pages."""

from __future__ import annotations

import dataclasses as dc
import logging
import os
import re
import typing as typ

from github3 import GitHub
from github3 import exceptions as gh_exc

from .publish import PublishError, redact_url
from .settings import CredentialError

if typ.TYPE_CHECKING:
    from .config import RepositoryConfiguration

log = logging.getLogger(__name__)

_SLUG_PATTERN = re.compile(
    r"""
    ^(?:https?://[^/]+/|ssh://git@[^/]+/|git@[^:]+:)
    (?P<owner>[^/\s]+)/(?P<name>[^/\s]+?)
    (?:\.git)?/?$
    """,
    re.VERBOSE,
)


@dc.dataclass(frozen=True, slots=True)
class RepositorySlug:
    """``owner/name`` pair identifying a GitHub repository."""

    owner: str
    name: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.name}"


@dc.dataclass(frozen=True, slots=True)
class ProvisionResult:
    slug: RepositorySlug
    created: bool
    html_url: str | None = None


def parse_repository_slug(url: str) -> RepositorySlug:
    """Extract the owner and repository name from an HTTPS or SSH remote URL.

    Examples
    --------
    >>> str(parse_repository_slug("https://github.com/cheroliv/site.git"))
    'cheroliv/site'
    >>> str(parse_repository_slug("git@github.com:cheroliv/site.git"))
    'cheroliv/site'
    """
    match = _SLUG_PATTERN.match(url.strip())
    if match is None:
        msg = f"Cannot derive owner/name from repository URL {redact_url(url)!r}"
        raise ValueError(msg)
    return RepositorySlug(owner=match.group("owner"), name=match.group("name"))


def ensure_pages_repository(
    repo: RepositoryConfiguration,
    *,
    token: str | None = None,
    github: GitHub | None = None,
    logger: logging.Logger | None = None,
) -> ProvisionResult:
    """Create the public repository behind ``repo`` when it does not exist.

    The repository is created under the authenticated user when the URL owner
    matches the token's login, and under the organisation of that name
    otherwise.

    Raises
    ------
    CredentialError
        If no token is available.
    PublishError
        If the URL is unusable or GitHub rejects a request.
    """
    logger = logger or log
    try:
        slug = parse_repository_slug(repo.repository)
    except ValueError as exc:
        raise PublishError(repo.name, "", str(exc)) from exc

    if github is None:
        token = token or os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN")
        if not token:
            msg = "A GitHub token is required; set GITHUB_TOKEN or run `bakery configure-site`."
            raise CredentialError(msg)
        github = GitHub(token=token)

    try:
        existing = github.repository(slug.owner, slug.name)
    except gh_exc.NotFoundError:
        existing = None
    except gh_exc.GitHubException as exc:
        raise PublishError(str(slug), "", f"GitHub lookup failed: {exc}") from exc
    if existing is not None:
        logger.info("Repository %s already exists.", slug)
        return ProvisionResult(slug=slug, created=False, html_url=existing.html_url)

    try:
        me = github.me()
        if me is not None and me.login == slug.owner:
            created = github.create_repository(slug.name, private=False)
        else:
            created = github.organization(slug.owner).create_repository(slug.name, private=False)
    except gh_exc.GitHubException as exc:
        raise PublishError(str(slug), "", f"GitHub repository creation failed: {exc}") from exc
    if created is None:
        raise PublishError(str(slug), "", "GitHub did not return the created repository")
    logger.info("Created repository %s", slug)
    return ProvisionResult(slug=slug, created=True, html_url=created.html_url)


__all__ = [
    "ProvisionResult",
    "RepositorySlug",
    "ensure_pages_repository",
    "parse_repository_slug",
]
