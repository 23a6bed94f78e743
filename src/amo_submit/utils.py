import importlib.metadata
from typing import Optional

from amo_submit.constants import APP_NAME

_USER_AGENT_CACHE: Optional[str] = None


def get_package_version() -> str:
    """
    Return the installed amo-submit version, or "unknown" when not installed.
    """
    try:
        return importlib.metadata.version(APP_NAME)
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def get_user_agent() -> str:
    """
    Get the User-Agent string used for HTTP requests.

    Returns:
        The string `amo-submit/{version}`.
    """
    global _USER_AGENT_CACHE

    if _USER_AGENT_CACHE is None:
        _USER_AGENT_CACHE = f"{APP_NAME}/{get_package_version()}"

    return _USER_AGENT_CACHE


def api_url(prefix: str, *parts: object) -> str:
    """
    Join an API prefix and path segments into a URL ending with a slash.

    Example:
        api_url("https://host/api/v5/", "addons/addon/", "my-slug")
        -> "https://host/api/v5/addons/addon/my-slug/"
    """
    url = prefix if prefix.endswith("/") else f"{prefix}/"
    for part in parts:
        segment = str(part).strip("/")
        if segment:
            url += f"{segment}/"
    return url
