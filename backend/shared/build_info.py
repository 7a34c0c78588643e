"""Build metadata exposed at runtime.

APP_VERSION and GIT_COMMIT come from environment variables in CI. Locally,
APP_VERSION falls back to the installed distribution version and GIT_COMMIT
to the current git checkout.
"""

import os
import subprocess
from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION_NAME = "podoal-trainer"


def _installed_version() -> str:
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "dev"


def _git_short_sha() -> str:
    """Read short SHA from git for local development."""
    try:
        return subprocess.check_output(
            ["git", "rev-parse", "--short", "HEAD"],  # noqa: S607
            text=True,
            stderr=subprocess.DEVNULL,
        ).strip()
    except (FileNotFoundError, subprocess.CalledProcessError):
        return "dev"


APP_VERSION: str = os.environ.get("APP_VERSION") or _installed_version()
GIT_COMMIT: str = os.environ.get("GIT_COMMIT") or _git_short_sha()
