"""
Type definitions for npm feed authentication checks.

Provides structured types for feed identity, registry keys, probe results
and the overall run result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional

# Probe failure reasons
REASON_UNAUTHORIZED = "unauthorized"
REASON_UNKNOWN = "unknown"

# Organization remediation outcomes
ORG_SUCCESS = "success"
ORG_FAILED = "failed"
ORG_SKIPPED = "skipped"


class FeedIdentity(NamedTuple):
    """Organization/project/feed triple recovered from a registry URL."""

    organization: str
    project: Optional[str]
    feed: str


@dataclass(frozen=True)
class FeedConfig:
    """
    A normalized feed entry from azure-feed.config.json.

    Identity (equality and hashing) is (organization, project, feed).

    Attributes:
        organization: Azure DevOps organization that owns the feed
        project: Project the feed is scoped to, if any
        feed: Feed name
        registry_url: npm registry URL of the feed
        scope: Package scope mapped to the feed (always starts with "@")
        test_package: Package used to probe the feed instead of a synthetic name
    """

    organization: str
    project: Optional[str]
    feed: str
    registry_url: str = field(compare=False)
    scope: Optional[str] = field(default=None, compare=False)
    test_package: Optional[str] = field(default=None, compare=False)

    @property
    def label(self) -> str:
        return f"{self.feed} ({self.organization}/{self.project or self.organization})"


@dataclass(frozen=True)
class RegistryKeys:
    """
    Credential-file key forms for a feed.

    Attributes:
        registry_key: "//host/.../npm/registry/" form
        feed_key: Same path without the trailing "registry/" segment
        registry_url_normalized: Absolute registry URL ending with "/"
    """

    registry_key: str
    feed_key: str
    registry_url_normalized: str

    @property
    def legacy_registry_key(self) -> str:
        return self.registry_key[:-1] if self.registry_key.endswith("/") else self.registry_key

    @property
    def legacy_feed_key(self) -> str:
        return self.feed_key[:-1] if self.feed_key.endswith("/") else self.feed_key

    def all_forms(self) -> List[str]:
        return [self.registry_key, self.feed_key, self.legacy_registry_key, self.legacy_feed_key]


@dataclass(frozen=True)
class ProbePackage:
    """Package name queried to exercise a feed's auth path."""

    name: str
    expected_missing: bool


@dataclass(frozen=True)
class ProbeOutput:
    """Raw outcome of one registry query."""

    ok: bool
    stdout: str = ""
    stderr: str = ""
    message: str = ""

    def combined_text(self) -> str:
        return "\n".join(part for part in (self.stdout, self.stderr, self.message) if part)


@dataclass(frozen=True)
class AuthProbeResult:
    """
    Classified auth state of a feed.

    Attributes:
        ok: True when the feed answered as an authenticated client would expect
        probe: Package name that was queried
        reason: "unauthorized" or "unknown" when ok is False
        note: Informational remark for the operator
        detail: Full diagnostic text for unclassified failures
    """

    ok: bool
    probe: str
    reason: Optional[str] = None
    note: Optional[str] = None
    detail: Optional[str] = None


@dataclass
class FeedCheck:
    """Initial check of one feed."""

    feed: FeedConfig
    auth_result: AuthProbeResult
    needs_credentials: bool = False

    @property
    def needs_remediation(self) -> bool:
        # An unclassified failure alone never replaces stored credentials
        return self.needs_credentials or self.auth_result.reason == REASON_UNAUTHORIZED

    @property
    def unverified(self) -> bool:
        return not self.auth_result.ok and not self.needs_remediation


@dataclass
class FeedVerification:
    """Re-verification of one feed after new credentials were written."""

    feed: FeedConfig
    auth_result: AuthProbeResult
    has_credentials: bool

    @property
    def ok(self) -> bool:
        return self.auth_result.ok and self.has_credentials


@dataclass
class OrgOutcome:
    """Remediation outcome for one organization."""

    organization: str
    feeds: List[FeedConfig]
    status: str
    verifications: List[FeedVerification] = field(default_factory=list)


@dataclass
class AuthCheckResult:
    """
    Result of an auth-check run.

    Attributes:
        ok: True if every feed ended up authenticated
        exit_code: Process exit code (0 for success)
        feeds: Initial per-feed checks in configuration order
        organizations: Remediation outcomes in first-seen order
        scope_mappings_added: Scopes written to the local .npmrc
        errors: Error messages
        warnings: Warning messages
    """

    ok: bool
    exit_code: int
    feeds: List[FeedCheck] = field(default_factory=list)
    organizations: List[OrgOutcome] = field(default_factory=list)
    scope_mappings_added: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Set ok based on exit_code if not explicitly set."""
        if self.exit_code != 0:
            self.ok = False

    @property
    def failed_feeds(self) -> List[FeedConfig]:
        return [check.feed for check in self.feeds if check.needs_remediation]


# Exit codes (stable + testable)
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
