"""Load and validate the ``site.yml`` configuration for bakery.

This subpackage parses the project's ``site.yml`` file into immutable
dataclasses (:class:`SiteConfiguration`, :class:`GitPushConfiguration`, etc.)
that the bake and publish flows consume. The primary entry point is
:func:`load_site_config`, which never raises: a missing or malformed file
yields :meth:`SiteConfiguration.empty`, the signal that only site
initialisation is available.

Examples
--------
>>> from pathlib import Path
>>> from bakery.config import load_site_config
>>> site = load_site_config(Path("site.yml"))  # doctest: +SKIP
>>> site.push_page.repo.name  # doctest: +SKIP
'thymeleaf.cheroliv.com'
"""

from .loader import (
    initialize_site_config,
    load_site_config,
    parse_site_configuration,
    serialize_site_configuration,
)
from .models import (
    BakeConfiguration,
    ConfigurationError,
    GitPushConfiguration,
    RepositoryConfiguration,
    RepositoryCredentials,
    SiteConfiguration,
)

__all__ = [
    "BakeConfiguration",
    "ConfigurationError",
    "GitPushConfiguration",
    "RepositoryConfiguration",
    "RepositoryCredentials",
    "SiteConfiguration",
    "initialize_site_config",
    "load_site_config",
    "parse_site_configuration",
    "serialize_site_configuration",
]
