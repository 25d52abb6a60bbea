"""
probe.py - Live authentication probe for Azure Artifacts npm feeds

Queries a feed read-only ("npm view <pkg> version") and classifies the outcome.
npm exposes no structured error codes, so classification searches the
combined output for E404/E401/E403. classify_probe_output() is the only
place that needs changing if npm's error format changes.
"""

from __future__ import annotations

import shutil
import subprocess
from typing import Optional, Protocol, Sequence

from .logging_utils import get_logger
from .npmrc import normalize_scope
from .redaction import redact_secrets
from .types import (
    REASON_UNAUTHORIZED,
    REASON_UNKNOWN,
    AuthProbeResult,
    FeedConfig,
    ProbeOutput,
    ProbePackage,
)

logger = get_logger(__name__)

PROBE_TIMEOUT_S = 10.0
FALLBACK_PROBE_PACKAGE = "azure-auth-check-probe"
SCOPED_PROBE_SUFFIX = "__auth-check"

NOT_FOUND_SIGNALS = ("E404",)
UNAUTHORIZED_SIGNALS = ("E401", "E403")


class RegistryProbe(Protocol):
    """Port for querying a package version from a registry."""

    def query(self, package_name: str, registry_url: str, timeout: float) -> ProbeOutput:
        """
        Fetch the version of `package_name` from `registry_url`.

        Args:
            package_name: Package to query
            registry_url: Registry to query against
            timeout: Seconds before the query is abandoned

        Returns:
            ProbeOutput with ok=False for any failure (never raises for
            query failures)
        """
        ...


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class NpmViewProbe:
    """RegistryProbe backed by the npm CLI."""

    def __init__(self, npm_executable: Optional[str] = None):
        # npm is npm.cmd on Windows; which() resolves either
        self.npm_executable = npm_executable or shutil.which("npm") or "npm"

    def build_command(self, package_name: str, registry_url: str) -> Sequence[str]:
        return [self.npm_executable, "view", package_name, "version", f"--registry={registry_url}"]

    def query(self, package_name: str, registry_url: str, timeout: float = PROBE_TIMEOUT_S) -> ProbeOutput:
        cmd = self.build_command(package_name, registry_url)
        logger.debug(f"Running: {redact_secrets(' '.join(cmd))}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",  # npm output is not guaranteed to decode cleanly
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            return ProbeOutput(
                ok=False,
                stdout=_as_text(e.stdout),
                stderr=_as_text(e.stderr),
                message=f"Command timed out after {timeout:g}s: npm view {package_name} version",
            )
        except OSError as e:
            return ProbeOutput(ok=False, message=f"Failed to run npm: {e}")

        if result.returncode != 0:
            return ProbeOutput(
                ok=False,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
                message=f"Command failed with exit code {result.returncode}: npm view {package_name} version",
            )

        return ProbeOutput(ok=True, stdout=result.stdout or "", stderr=result.stderr or "")


def resolve_probe_package(feed: FeedConfig) -> ProbePackage:
    """
    Pick the package used to probe a feed.

    Priority:
        1. configured test package (expected to exist)
        2. "{scope}/__auth-check" (expected to be missing)
        3. "azure-auth-check-probe" (expected to be missing)
    """
    configured = (feed.test_package or "").strip()
    if configured:
        return ProbePackage(name=configured, expected_missing=False)

    scope = normalize_scope(feed.scope)
    if scope:
        return ProbePackage(name=f"{scope}/{SCOPED_PROBE_SUFFIX}", expected_missing=True)

    return ProbePackage(name=FALLBACK_PROBE_PACKAGE, expected_missing=True)


def classify_probe_output(package: ProbePackage, output: ProbeOutput) -> AuthProbeResult:
    """
    Classify a probe outcome.

    A 404 counts as authenticated: the registry let us far enough in to say
    the package is absent. This also holds for a configured test package,
    which may hide a typo in testPackage.
    """
    if output.ok:
        note = "Probe package responded successfully (unexpected)." if package.expected_missing else None
        return AuthProbeResult(ok=True, probe=package.name, note=note)

    text = output.combined_text()

    if any(signal in text for signal in NOT_FOUND_SIGNALS):
        if package.expected_missing:
            note = "Probe package not found (expected)."
        else:
            note = f"Package {package.name} was not found in the feed."
        return AuthProbeResult(ok=True, probe=package.name, note=note)

    if any(signal in text for signal in UNAUTHORIZED_SIGNALS):
        return AuthProbeResult(ok=False, probe=package.name, reason=REASON_UNAUTHORIZED)

    return AuthProbeResult(ok=False, probe=package.name, reason=REASON_UNKNOWN, detail=text.strip())


def check_feed_auth(
    feed: FeedConfig,
    probe: RegistryProbe,
    timeout: float = PROBE_TIMEOUT_S,
) -> AuthProbeResult:
    """Probe a feed live and classify its auth state."""
    package = resolve_probe_package(feed)
    output = probe.query(package.name, feed.registry_url, timeout)
    result = classify_probe_output(package, output)
    logger.debug(f"Probe {package.name} on {feed.feed}: ok={result.ok} reason={result.reason}")
    return result
