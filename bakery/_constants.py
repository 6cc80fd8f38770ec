"""Common literal values used across bakery.

These constants keep filenames and settings keys centralized so the loader,
scaffolder, orchestrator, and tests can import the same values without
drifting. Intended for internal use within the bakery package.

Examples
--------
>>> from bakery import _constants
>>> _constants.CNAME
'CNAME'
>>> _constants.CONFIG_PATH_KEY.split(".")
['bakery', 'configPath']
"""

DEFAULT_CONFIG_FILE = "site.yml"
PROJECT_SETTINGS_FILE = "bakery.toml"
CONFIG_PATH_KEY = "bakery.configPath"
REPOSITORY_KEY = "bakery.repository"
DEFAULT_BUILD_DIR = "build"
CNAME = "CNAME"

GITIGNORE_CONTENT = """\
build
.bakery
site.yml
.idea
*.iml
.venv
__pycache__/
"""

GIT_ATTRIBUTES_CONTENT = """\
* text=auto eol=lf
*.bat text eol=crlf
*.png binary
*.jpg binary
*.jpeg binary
*.gif binary
*.ico binary
*.svg text
*.woff binary
*.woff2 binary
"""
