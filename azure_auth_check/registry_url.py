"""
registry_url.py - Azure DevOps registry URL handling

Provides:
- Feed identity parsing for both Azure Artifacts host topologies
- Credential-file key derivation for a feed
"""

from typing import List, Optional
from urllib.parse import urlparse

from .types import FeedConfig, FeedIdentity, RegistryKeys

PACKAGING_MARKER = "_packaging"
LEGACY_HOST_SUFFIX = ".pkgs.visualstudio.com"
DEV_AZURE_HOST = "pkgs.dev.azure.com"

# =============================================================================
# Feed Identity
# =============================================================================


def _path_segments(path: str) -> List[str]:
    return [segment for segment in path.split("/") if segment]


def _feed_after_marker(segments: List[str]) -> Optional[int]:
    """Index of the _packaging marker, or None if no feed name follows it."""
    if PACKAGING_MARKER not in segments:
        return None
    index = segments.index(PACKAGING_MARKER)
    if index + 1 >= len(segments):
        return None
    return index


def is_http_url(url: Optional[str]) -> bool:
    """True for an absolute http(s) URL with a hostname."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url.strip())
        # Accessing port validates it
        parsed.port
        return parsed.scheme in ("http", "https") and bool(parsed.hostname)
    except ValueError:
        return False


def parse_registry_url(registry_url: Optional[str]) -> Optional[FeedIdentity]:
    """
    Recover (organization, project, feed) from an Azure Artifacts registry URL.

    Supported topologies:
        https://{org}.pkgs.visualstudio.com/[{project}/]_packaging/{feed}/npm/registry/
        https://pkgs.dev.azure.com/{org}/[{project}/]_packaging/{feed}/npm/registry/

    Returns None for anything else. Never raises.
    """
    if not is_http_url(registry_url):
        return None

    try:
        parsed = urlparse(registry_url.strip())
        hostname = parsed.hostname or ""
    except ValueError:
        return None

    segments = _path_segments(parsed.path)
    marker_index = _feed_after_marker(segments)
    if marker_index is None:
        return None

    project = None

    if hostname.endswith(LEGACY_HOST_SUFFIX):
        organization = hostname.split(".")[0]
        if marker_index > 0:
            project = segments[0]
    elif hostname == DEV_AZURE_HOST:
        # Organization must precede the marker
        if marker_index == 0:
            return None
        organization = segments[0]
        if marker_index > 1:
            project = segments[1]
    else:
        return None

    feed = segments[marker_index + 1]
    if not organization or not feed:
        return None

    return FeedIdentity(organization=organization, project=project, feed=feed)


# =============================================================================
# Registry Keys
# =============================================================================


def get_registry_keys(feed: FeedConfig) -> RegistryKeys:
    """
    Compute the .npmrc key forms for a feed.

    Example:
        https://pkgs.dev.azure.com/org/_packaging/feed/npm/registry
        → registry_key: //pkgs.dev.azure.com/org/_packaging/feed/npm/registry/
        → feed_key:     //pkgs.dev.azure.com/org/_packaging/feed/npm/
    """
    parsed = urlparse(feed.registry_url.strip())

    # Never carry userinfo into a key
    host = parsed.hostname or ""
    if parsed.port:
        host = f"{host}:{parsed.port}"

    registry_path = parsed.path if parsed.path.endswith("/") else f"{parsed.path}/"
    registry_key = f"//{host}{registry_path}"

    feed_path = registry_path
    if registry_path.endswith("/registry/"):
        feed_path = registry_path[: -len("/registry/")]
        if not feed_path.endswith("/"):
            feed_path += "/"

    return RegistryKeys(
        registry_key=registry_key,
        feed_key=f"//{host}{feed_path}",
        registry_url_normalized=f"{parsed.scheme}://{host}{registry_path}",
    )
