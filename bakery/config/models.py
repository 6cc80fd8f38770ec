"""Typed dataclasses describing the bakery site configuration."""

from __future__ import annotations

import collections.abc as cabc
import dataclasses as dc
import typing as typ

from ..errors import BakeryError


class ConfigurationError(BakeryError, ValueError):
    """Raised when the site configuration is invalid, absent, or unreadable."""


@dc.dataclass(frozen=True, slots=True, repr=False)
class RepositoryCredentials:
    """Username and password (or token) used to authenticate against a remote."""

    username: str = ""
    password: str = ""

    @property
    def is_configured(self) -> bool:
        """Return ``True`` when a password or token is available."""
        return bool(self.password)

    def describe(self) -> str:
        """Return a redacted indicator that is safe to log."""
        return "configured" if self.is_configured else "not set"

    def __repr__(self) -> str:
        return f"RepositoryCredentials(username=..., password={self.describe()})"

    @classmethod
    def from_mapping(cls, data: object) -> RepositoryCredentials:
        payload = _as_mapping(data, "credentials")
        return cls(
            username=_as_text(payload.get("username"), "credentials.username"),
            password=_as_text(payload.get("password"), "credentials.password"),
        )

    def to_mapping(self) -> dict[str, str]:
        return {"username": self.username, "password": self.password}


@dc.dataclass(frozen=True, slots=True)
class RepositoryConfiguration:
    """A remote repository receiving published content."""

    name: str = ""
    repository: str = ""
    credentials: RepositoryCredentials = dc.field(default_factory=RepositoryCredentials)

    @classmethod
    def from_mapping(cls, data: object) -> RepositoryConfiguration:
        payload = _as_mapping(data, "repo")
        return cls(
            name=_as_text(payload.get("name"), "repo.name"),
            repository=_as_text(payload.get("repository"), "repo.repository"),
            credentials=RepositoryCredentials.from_mapping(payload.get("credentials")),
        )

    def to_mapping(self) -> dict[str, typ.Any]:
        return {
            "name": self.name,
            "repository": self.repository,
            "credentials": self.credentials.to_mapping(),
        }


@dc.dataclass(frozen=True, slots=True)
class GitPushConfiguration:
    """Describe how a local directory is pushed to a pages repository.

    Attributes
    ----------
    from_ : str
        Source directory. Relative to the build area for the site flow and to
        the project directory for the maquette flow. Stored as ``from`` in YAML.
    to : str
        Directory under the build area holding the working clones.
    repo : RepositoryConfiguration
        Remote repository descriptor including credentials.
    branch : str
        Branch receiving the published commit.
    message : str
        Commit message.
    """

    from_: str = ""
    to: str = ""
    repo: RepositoryConfiguration = dc.field(default_factory=RepositoryConfiguration)
    branch: str = ""
    message: str = ""

    @classmethod
    def from_mapping(cls, data: object, *, section: str) -> GitPushConfiguration:
        payload = _as_mapping(data, section)
        return cls(
            from_=_as_text(payload.get("from"), f"{section}.from"),
            to=_as_text(payload.get("to"), f"{section}.to"),
            repo=RepositoryConfiguration.from_mapping(payload.get("repo")),
            branch=_as_text(payload.get("branch"), f"{section}.branch"),
            message=_as_text(payload.get("message"), f"{section}.message"),
        )

    def to_mapping(self) -> dict[str, typ.Any]:
        return {
            "from": self.from_,
            "to": self.to,
            "repo": self.repo.to_mapping(),
            "branch": self.branch,
            "message": self.message,
        }


@dc.dataclass(frozen=True, slots=True)
class BakeConfiguration:
    """Source and destination directories handed to the bake engine."""

    src_path: str = "site"
    dest_dir_path: str = "bake"
    cname: str | None = None

    def __post_init__(self) -> None:
        # A blank domain means no CNAME marker.
        if self.cname is not None and not self.cname.strip():
            object.__setattr__(self, "cname", None)

    @classmethod
    def from_mapping(cls, data: object) -> BakeConfiguration:
        payload = _as_mapping(data, "bake")
        base = cls()
        return cls(
            src_path=_as_text(payload.get("srcPath"), "bake.srcPath", base.src_path),
            dest_dir_path=_as_text(
                payload.get("destDirPath"), "bake.destDirPath", base.dest_dir_path
            ),
            cname=_optional_str(payload.get("cname")),
        )

    def to_mapping(self) -> dict[str, typ.Any]:
        data: dict[str, typ.Any] = {
            "srcPath": self.src_path,
            "destDirPath": self.dest_dir_path,
        }
        if self.cname:
            data["cname"] = self.cname
        return data


@dc.dataclass(frozen=True, slots=True)
class SiteConfiguration:
    """Root of the ``site.yml`` document.

    ``supabase`` is carried through untouched; nothing in bakery reads it.
    """

    bake: BakeConfiguration = dc.field(default_factory=BakeConfiguration)
    push_page: GitPushConfiguration = dc.field(default_factory=GitPushConfiguration)
    push_maquette: GitPushConfiguration = dc.field(default_factory=GitPushConfiguration)
    supabase: dict[str, typ.Any] | None = None

    @classmethod
    def empty(cls) -> SiteConfiguration:
        """Return the blank configuration signalling that none was found."""
        return cls(bake=BakeConfiguration(src_path="", dest_dir_path="", cname=None))

    @classmethod
    def default(cls) -> SiteConfiguration:
        """Return the configuration written when a site is first initialised."""
        return cls(
            bake=BakeConfiguration(src_path="site", dest_dir_path="bake"),
            push_page=GitPushConfiguration(
                from_="bake",
                to="cvs",
                repo=RepositoryConfiguration(name="site"),
                branch="main",
                message="Publish site",
            ),
            push_maquette=GitPushConfiguration(
                from_="maquette",
                to="cvs",
                repo=RepositoryConfiguration(name="maquette"),
                branch="main",
                message="Publish maquette",
            ),
        )

    @property
    def is_empty(self) -> bool:
        """Return ``True`` for the blank configuration produced on load failure."""
        return not self.bake.src_path.strip() or not self.bake.dest_dir_path.strip()

    @classmethod
    def from_mapping(cls, data: object) -> SiteConfiguration:
        if not isinstance(data, cabc.Mapping):
            msg = "Top-level YAML structure must be a mapping."
            raise ConfigurationError(msg)
        if data.get("bake") is None:
            msg = "Site configuration is missing the 'bake' section."
            raise ConfigurationError(msg)
        supabase = data.get("supabase")
        if supabase is not None and not isinstance(supabase, cabc.Mapping):
            msg = "'supabase' must be a mapping when present."
            raise ConfigurationError(msg)
        return cls(
            bake=BakeConfiguration.from_mapping(data.get("bake")),
            push_page=GitPushConfiguration.from_mapping(
                data.get("pushPage"), section="pushPage"
            ),
            push_maquette=GitPushConfiguration.from_mapping(
                data.get("pushMaquette"), section="pushMaquette"
            ),
            supabase=_plain(supabase) if supabase is not None else None,
        )

    def to_mapping(self) -> dict[str, typ.Any]:
        data: dict[str, typ.Any] = {
            "bake": self.bake.to_mapping(),
            "pushPage": self.push_page.to_mapping(),
            "pushMaquette": self.push_maquette.to_mapping(),
        }
        if self.supabase is not None:
            data["supabase"] = _plain(self.supabase)
        return data


def _as_mapping(value: object, section: str) -> cabc.Mapping[str, typ.Any]:
    """Return ``value`` as a mapping; ``None`` yields an empty mapping."""
    if value is None:
        return {}
    if not isinstance(value, cabc.Mapping):
        msg = f"'{section}' must be a mapping, got {type(value).__name__}."
        raise ConfigurationError(msg)
    return value


def _as_text(value: object, field: str, default: str = "") -> str:
    """Coerce a YAML scalar into a string, rejecting nested structures."""
    if value is None:
        return default
    if isinstance(value, (cabc.Mapping, list, tuple)):
        msg = f"'{field}' must be a scalar value."
        raise ConfigurationError(msg)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _optional_str(value: object | None) -> str | None:
    """Return ``value`` as a string, or None when it is missing or blank."""
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _plain(value: typ.Any) -> typ.Any:
    """Recursively copy YAML containers into builtin dicts and lists."""
    match value:
        case cabc.Mapping():
            return {str(key): _plain(item) for key, item in value.items()}
        case list() | tuple():
            return [_plain(item) for item in value]
        case _:
            return value


__all__ = [
    "BakeConfiguration",
    "ConfigurationError",
    "GitPushConfiguration",
    "RepositoryConfiguration",
    "RepositoryCredentials",
    "SiteConfiguration",
]
