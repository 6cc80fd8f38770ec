"""Load, parse, and initialise the ``site.yml`` configuration."""

from __future__ import annotations

import logging
from pathlib import Path

from ruamel.yaml.error import YAMLError

from .helpers import _build_safe_yaml, _describe_error, _dump_yaml
from .models import ConfigurationError, SiteConfiguration

log = logging.getLogger(__name__)


def parse_site_configuration(text: str) -> SiteConfiguration:
    """Decode a YAML document into a :class:`SiteConfiguration`.

    Unknown keys are ignored and missing optional values fall back to their
    defaults, so newer configuration files still load.

    Raises
    ------
    ConfigurationError
        If the document is empty, is not a mapping, or a section has the wrong
        shape.
    YAMLError
        If the text is not valid YAML.
    """
    loaded = _build_safe_yaml().load(text)
    if loaded is None:
        msg = "Configuration document is empty."
        raise ConfigurationError(msg)
    return SiteConfiguration.from_mapping(loaded)


def serialize_site_configuration(config: SiteConfiguration) -> str:
    """Encode ``config`` as YAML using the ``site.yml`` key names."""
    return _dump_yaml(config.to_mapping())


def load_site_config(
    path: Path, *, logger: logging.Logger | None = None
) -> SiteConfiguration:
    """Load the site configuration, degrading to the empty default.

    Parameters
    ----------
    path : Path
        Location of ``site.yml``.
    logger : logging.Logger, optional
        Logger receiving the reason a default was returned; defaults to the
        module logger.

    Returns
    -------
    SiteConfiguration
        The parsed configuration, or :meth:`SiteConfiguration.empty` when the
        file is missing or cannot be decoded. Callers check
        :attr:`SiteConfiguration.is_empty` before running publish flows.

    Examples
    --------
    >>> from pathlib import Path
    >>> load_site_config(Path("/nonexistent/site.yml")).bake.src_path
    ''
    """
    logger = logger or log
    if not path.exists():
        logger.info("Site configuration %s not found; only init-site is available.", path)
        return SiteConfiguration.empty()
    try:
        text = path.read_text(encoding="utf-8")
        config = parse_site_configuration(text)
    except (OSError, UnicodeDecodeError, YAMLError, ConfigurationError) as exc:
        logger.error(
            "Failed to read site configuration from %s: %s",
            path.absolute(),
            _describe_error(exc),
        )
        return SiteConfiguration.empty()
    logger.debug("Loaded site configuration from %s", path)
    return config


def _has_content(path: Path) -> bool:
    """Return True unless ``path`` is blank; undecodable bytes count as content."""
    try:
        return bool(path.read_text(encoding="utf-8").strip())
    except UnicodeDecodeError:
        return True


def initialize_site_config(
    path: Path,
    *,
    config: SiteConfiguration | None = None,
    logger: logging.Logger | None = None,
) -> bool:
    """Write a fresh configuration to ``path`` unless one already exists.

    Returns ``True`` when the file was written. An existing file with any
    non-whitespace content is left untouched.
    """
    logger = logger or log
    if path.is_file() and _has_content(path):
        logger.info("Site configuration %s already exists; leaving it untouched.", path)
        return False
    config = config or SiteConfiguration.default()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(serialize_site_configuration(config), encoding="utf-8")
    logger.info("Wrote site configuration %s", path)
    return True


__all__ = [
    "initialize_site_config",
    "load_site_config",
    "parse_site_configuration",
    "serialize_site_configuration",
]
