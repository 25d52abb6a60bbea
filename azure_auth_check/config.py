"""
Configuration for npm feed authentication checks.

Holds the run configuration (paths, verbosity) and loads/normalizes the
feed list from azure-feed.config.json.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import InvalidConfigError
from .npmrc import normalize_scope
from .probe import PROBE_TIMEOUT_S
from .registry_url import is_http_url, parse_registry_url
from .types import FeedConfig

CONFIG_FILENAME = "azure-feed.config.json"

# Fallback next to the package, for working on the tool itself
PACKAGE_DIR = Path(__file__).parent.resolve()
PACKAGE_CONFIG_PATH = PACKAGE_DIR.parent / CONFIG_FILENAME

FEED_STRING_FIELDS = ("registryUrl", "organization", "project", "feed", "scope", "testPackage")


@dataclass
class AuthCheckConfig:
    """
    Configuration for an auth-check run.

    Process-wide state (working directory, home directory) is resolved here
    so the orchestrator never looks it up itself.

    Attributes:
        cwd: Project directory
        config_path: Explicit path to azure-feed.config.json (relative to cwd)
        global_npmrc_path: Machine-wide credential file (default: ~/.npmrc)
        local_npmrc_path: Project credential file (default: <cwd>/.npmrc)
        silent: Suppress output unless action is required
        verbose: Enable debug output
        probe_timeout_s: Seconds before a feed probe is abandoned
    """

    cwd: Path = field(default_factory=Path.cwd)
    config_path: Optional[Path] = None
    global_npmrc_path: Optional[Path] = None
    local_npmrc_path: Optional[Path] = None
    silent: bool = False
    verbose: bool = False
    probe_timeout_s: float = PROBE_TIMEOUT_S

    def __post_init__(self):
        """Normalize paths and fill in defaults."""
        self.cwd = Path(self.cwd).expanduser()
        if self.config_path is not None:
            self.config_path = Path(self.config_path).expanduser()
        if self.global_npmrc_path is None:
            self.global_npmrc_path = Path.home() / ".npmrc"
        self.global_npmrc_path = Path(self.global_npmrc_path).expanduser()
        if self.local_npmrc_path is None:
            self.local_npmrc_path = self.cwd / ".npmrc"
        self.local_npmrc_path = Path(self.local_npmrc_path).expanduser()

    @classmethod
    def from_args(cls, args) -> "AuthCheckConfig":
        """
        Create an AuthCheckConfig from parsed command-line arguments.

        Args:
            args: Namespace from argparse.parse_args()

        Returns:
            AuthCheckConfig instance
        """
        return cls(
            cwd=Path(args.cwd) if getattr(args, "cwd", None) else Path.cwd(),
            config_path=getattr(args, "config", None),
            global_npmrc_path=getattr(args, "global_npmrc", None),
            local_npmrc_path=getattr(args, "local_npmrc", None),
            silent=getattr(args, "silent", False),
            verbose=getattr(args, "verbose", False),
        )

    def config_candidates(self) -> List[Path]:
        """Config file locations in priority order."""
        candidates = []
        if self.config_path is not None:
            path = self.config_path
            candidates.append(path if path.is_absolute() else self.cwd / path)
        candidates.append(self.cwd / CONFIG_FILENAME)
        candidates.append(PACKAGE_CONFIG_PATH)
        return candidates


def resolve_config_path(cfg: AuthCheckConfig) -> Optional[Path]:
    """Return the first existing config file, or None."""
    for candidate in cfg.config_candidates():
        if candidate.is_file():
            return candidate
    return None


def normalize_feed_config(raw: Any, index: int) -> FeedConfig:
    """
    Build a FeedConfig from one raw feed object.

    Explicit organization/project/feed values win over values derived from
    registryUrl. An URL outside the two Azure Artifacts topologies is only
    accepted when organization and feed are both given explicitly.

    Raises:
        InvalidConfigError: If the entry is malformed or its identity cannot
            be determined
    """
    if not isinstance(raw, dict):
        raise InvalidConfigError(f"Feed at index {index} must be an object.")

    for key in FEED_STRING_FIELDS:
        value = raw.get(key)
        if value is not None and not isinstance(value, str):
            raise InvalidConfigError(f"Feed at index {index}: '{key}' must be a string.")

    registry_url = (raw.get("registryUrl") or "").strip()
    if not registry_url:
        raise InvalidConfigError(f"Invalid registryUrl for feed at index {index}.")

    derived = parse_registry_url(registry_url)
    organization = raw.get("organization") or (derived.organization if derived else None)
    feed = raw.get("feed") or (derived.feed if derived else None)

    if derived is None and not (raw.get("organization") and raw.get("feed") and is_http_url(registry_url)):
        raise InvalidConfigError(f"Invalid registryUrl for feed at index {index}.")

    project = raw.get("project") if raw.get("project") is not None else (derived.project if derived else None)

    return FeedConfig(
        organization=organization,
        project=project or None,
        feed=feed,
        registry_url=registry_url,
        scope=normalize_scope(raw.get("scope")),
        test_package=(raw.get("testPackage") or "").strip() or None,
    )


def load_feed_configs(config_path: Path) -> List[FeedConfig]:
    """
    Load and normalize all feeds from a config file.

    Accepts either a single feed object or {"feeds": [...]}.

    Raises:
        InvalidConfigError: If the file cannot be read or parsed
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config: Dict[str, Any] = json.load(f)
    except OSError as e:
        raise InvalidConfigError(f"Failed to read {config_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise InvalidConfigError(f"Invalid JSON in {config_path}: {e}") from e

    if not isinstance(raw_config, dict):
        raise InvalidConfigError(f"{config_path} must contain a JSON object.")

    feeds_input = raw_config["feeds"] if isinstance(raw_config.get("feeds"), list) else [raw_config]
    return [normalize_feed_config(feed, index) for index, feed in enumerate(feeds_input)]
