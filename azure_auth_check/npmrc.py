"""
npmrc.py - Credential file model for Azure Artifacts feeds

Provides:
  - reading/writing .npmrc files (absence is a valid state: no credentials yet)
  - credential presence checks across registry/feed key forms
  - block-scoped replacement of a feed's credentials
  - additive package-scope → registry mappings

Writes go straight to the real path. There is no temp-file replace and no
lock: the previous file version is the only crash-recovery fallback, and
concurrent runs against the same file may race.
"""

from __future__ import annotations

import base64
import os
import re
from pathlib import Path
from typing import List, Optional, Pattern, Union

from .errors import CredentialFileError
from .logging_utils import get_logger
from .registry_url import DEV_AZURE_HOST, LEGACY_HOST_SUFFIX, PACKAGING_MARKER, get_registry_keys
from .types import FeedConfig

logger = get_logger(__name__)

ALWAYS_AUTH_LINE = "always-auth=true"
COMMENT_PREFIXES = (";", "#")

# Per-registry settings are keyed "//host/path:"; scope mappings and global
# settings never belong to a credential block
KEY_LINE_PREFIX = "//"

PathLike = Union[str, Path]


# =============================================================================
# File access
# =============================================================================


def read_npmrc(path: PathLike) -> str:
    """Return the file content, or "" if the file does not exist."""
    path = Path(path)
    if not path.exists():
        return ""

    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as e:
        raise CredentialFileError(f"Failed to read {path}: {e}") from e


def write_npmrc(path: PathLike, content: str, *, private: bool = False) -> None:
    """
    Overwrite `path` with `content`.

    With private=True a newly created file is restricted to the owner,
    since it holds credentials.
    """
    path = Path(path)
    existed = path.exists()

    try:
        os.makedirs(path.parent, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
    except OSError as e:
        raise CredentialFileError(f"Failed to write {path}: {e}") from e

    if private and not existed and os.name != "nt":
        try:
            os.chmod(path, 0o600)
        except OSError:
            logger.debug(f"Could not restrict permissions on {path}")


# =============================================================================
# Credential presence
# =============================================================================


def has_registry_credentials(npmrc_content: str, feed: FeedConfig) -> bool:
    """
    True if a password entry exists for the feed under any key form.

    Checks the registry and feed keys with and without their trailing slash,
    since different npm versions write either.
    """
    keys = get_registry_keys(feed)
    return any(key and f"{key}:_password=" in npmrc_content for key in keys.all_forms())


# =============================================================================
# Credential block rewrite
# =============================================================================


def annotation_line(feed: FeedConfig) -> str:
    return f"; Azure DevOps authentication for {feed.organization}/{feed.feed}"


def _identifier_pattern(feed: FeedConfig) -> Pattern[str]:
    """
    Match the feed's path on either Azure Artifacts host, as whole segments.

    The project segment is part of the identity, so "org/_packaging/feed" and
    "org/project/_packaging/feed" never match each other.
    """
    feed_path = f"{PACKAGING_MARKER}/{feed.feed}"
    if feed.project:
        feed_path = f"{feed.project}/{feed_path}"

    identifiers = [
        f"{DEV_AZURE_HOST}/{feed.organization}/{feed_path}",
        f"{feed.organization}{LEGACY_HOST_SUFFIX}/{feed_path}",
    ]
    alternation = "|".join(re.escape(identifier) for identifier in identifiers)
    # Azure DevOps names are case-insensitive; hosts are written lowercase
    return re.compile(rf"(?<![\w.@-])(?:{alternation})(?![\w.@-])", re.IGNORECASE)


def _is_feed_annotation(line: str, feed: FeedConfig, identifier: Pattern[str]) -> bool:
    if not line.startswith(COMMENT_PREFIXES):
        return False
    return line == annotation_line(feed) or bool(identifier.search(line))


def _is_feed_line(line: str, key_prefixes: List[str], identifier: Pattern[str]) -> bool:
    if not line.startswith(KEY_LINE_PREFIX):
        return False
    return line.startswith(tuple(key_prefixes)) or bool(identifier.search(line))


def _collapse_blank_lines(lines: List[str]) -> List[str]:
    """Drop leading blanks, collapse blank runs to one, trim trailing blanks."""
    collapsed: List[str] = []
    for raw in lines:
        if raw.strip() or (collapsed and collapsed[-1].strip()):
            collapsed.append(raw)

    while collapsed and not collapsed[-1].strip():
        collapsed.pop()

    return collapsed


def remove_feed_block(npmrc_content: str, feed: FeedConfig) -> List[str]:
    """
    Return the file's lines with the feed's previous credential block removed.

    A block is the feed's credential lines, the annotation comment directly
    above them, and the blank or always-auth=true line right after them.
    Lines of other feeds (including their annotations, which can read the
    same for an organization feed and a project feed of the same name) and
    scope mappings are kept untouched.
    """
    identifier = _identifier_pattern(feed)
    key_prefixes = [f"{key}:" for key in get_registry_keys(feed).all_forms()]

    kept: List[str] = []
    in_block = False

    for raw in npmrc_content.split("\n"):
        line = raw.strip()

        if _is_feed_line(line, key_prefixes, identifier):
            if not in_block and kept and _is_feed_annotation(kept[-1].strip(), feed, identifier):
                kept.pop()
            in_block = True
            continue

        if in_block and line in ("", ALWAYS_AUTH_LINE):
            in_block = False
            continue

        in_block = False
        kept.append(raw)

    return _collapse_blank_lines(kept)


def build_credential_block(feed: FeedConfig, token: str) -> List[str]:
    """Annotation plus username/_password/email under both registry and feed keys."""
    encoded = base64.b64encode(token.encode("utf-8")).decode("ascii")
    keys = get_registry_keys(feed)
    email = f"npm@{feed.organization}.com"

    lines = [annotation_line(feed)]
    for key in (keys.registry_key, keys.feed_key):
        lines.extend(
            [
                f"{key}:username={feed.organization}",
                f"{key}:_password={encoded}",
                f"{key}:email={email}",
            ]
        )
    return lines


def render_npmrc(npmrc_content: str, feed: FeedConfig, token: str) -> str:
    """
    Compute the new file content with the feed's block replaced.

    The result ends with exactly one always-auth=true line, so rendering the
    same feed and token twice yields identical content.
    """
    lines = [line for line in remove_feed_block(npmrc_content, feed) if line.strip() != ALWAYS_AUTH_LINE]
    lines = _collapse_blank_lines(lines)

    if lines:
        lines.append("")
    lines.extend(build_credential_block(feed, token))
    lines.extend(["", ALWAYS_AUTH_LINE])

    return "\n".join(lines) + "\n"


def update_npmrc(feed: FeedConfig, token: str, npmrc_path: PathLike) -> None:
    """Replace the feed's credential block in the file at `npmrc_path`."""
    content = read_npmrc(npmrc_path)
    write_npmrc(npmrc_path, render_npmrc(content, feed, token), private=True)
    logger.debug(f"Wrote credentials for {feed.organization}/{feed.feed} to {npmrc_path}")


# =============================================================================
# Scope mappings
# =============================================================================


def normalize_scope(scope: Optional[str]) -> Optional[str]:
    if not scope or not scope.strip():
        return None
    scope = scope.strip()
    return scope if scope.startswith("@") else f"@{scope}"


def scope_mapping_line(feed: FeedConfig) -> Optional[str]:
    scope = normalize_scope(feed.scope)
    if not scope:
        return None
    return f"{scope}:registry={get_registry_keys(feed).registry_url_normalized}"


def has_scope_mapping(npmrc_content: str, feed: FeedConfig) -> bool:
    """True if the feed has no scope, or its scope already points at the feed."""
    scope = normalize_scope(feed.scope)
    if not scope:
        return True

    registry_url = get_registry_keys(feed).registry_url_normalized
    for line in npmrc_content.split("\n"):
        trimmed = line.strip()
        if trimmed.startswith(f"{scope}:registry=") and registry_url in trimmed:
            return True
    return False


def ensure_scope_mapping(feed: FeedConfig, local_npmrc_path: PathLike) -> bool:
    """
    Append the feed's scope mapping to the local .npmrc if it is missing.

    Additive only: existing lines, including other mappings for the same
    scope, are never edited or removed.

    Returns:
        True if a line was written
    """
    line = scope_mapping_line(feed)
    if line is None:
        return False

    content = read_npmrc(local_npmrc_path)
    if has_scope_mapping(content, feed):
        return False

    if content and not content.endswith("\n"):
        content += "\n"
    content += f"{line}\n"

    write_npmrc(local_npmrc_path, content)
    logger.debug(f"Added scope mapping to {local_npmrc_path}: {line}")
    return True
