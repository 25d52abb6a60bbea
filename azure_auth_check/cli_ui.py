"""
CLI UI formatting and printing functions for azure-auth-check.

Provides testable formatting functions that return strings,
and print functions that output to configurable streams.
"""

import sys
from typing import List, Optional, Sequence, TextIO

from .redaction import redact_secrets, redact_url_credentials
from .types import (
    REASON_UNAUTHORIZED,
    AuthCheckResult,
    AuthProbeResult,
    FeedCheck,
    FeedConfig,
    FeedVerification,
)

DETAIL_INDENT = "        "


def format_pat_instructions(organization: str) -> str:
    """Steps for creating an Azure DevOps PAT with packaging read access."""
    lines = [
        "",
        "To create a Personal Access Token (PAT):",
        f"   1. Visit: https://dev.azure.com/{organization}/_usersSettings/tokens",
        '   2. Click "New Token"',
        '   3. Set a name (e.g., "npm-feed-access")',
        '   4. Under "Scopes", select "Packaging" -> "Read"',
        "   5. Set expiration (recommend 1 year or longer)",
        '   6. Click "Create" and copy the token',
        "",
    ]
    return "\n".join(lines)


def format_feed_header(feed: FeedConfig) -> str:
    return f"   • {feed.label}\n     Registry: {redact_url_credentials(feed.registry_url)}"


def format_detail(detail: Optional[str], indent: str = DETAIL_INDENT, secrets: Sequence[str] = ()) -> str:
    """Indent and redact multi-line diagnostic output; `secrets` are scrubbed verbatim."""
    if not detail:
        return ""
    lines = [line.strip() for line in redact_secrets(detail, *secrets).split("\n")]
    return "\n".join(f"{indent}{line}" for line in lines)


def format_check_status(check: FeedCheck) -> str:
    """
    Format the initial probe outcome of a feed.

    Args:
        check: FeedCheck from the first phase

    Returns:
        One status line (plus indented detail for unclassified failures)
    """
    result = check.auth_result

    if result.ok:
        notes: List[str] = []
        if result.note:
            notes.append(result.note)
        if check.needs_credentials:
            notes.append("Credentials not stored in ~/.npmrc yet")
        suffix = f" ({'; '.join(notes)})" if notes else ""
        marker = "!" if check.needs_credentials else "✓"
        return f"     {marker} Authenticated{suffix}"

    if result.reason == REASON_UNAUTHORIZED:
        return "     ✗ Authentication failed"

    lines = [f"     ✗ Request failed (probe: {result.probe})"]
    detail = format_detail(result.detail)
    if detail:
        lines.append(detail)
    return "\n".join(lines)


def format_verification(verification: FeedVerification, secrets: Sequence[str] = ()) -> str:
    """
    Format the re-verification outcome of a feed after credentials were written.

    Args:
        verification: FeedVerification from the remediation phase
        secrets: Values (the token just entered) to scrub from probe detail
    """
    feed = verification.feed
    result: AuthProbeResult = verification.auth_result

    if verification.ok:
        suffix = f" ({result.note})" if result.note else ""
        return f"   ✓ {feed.feed} - authenticated{suffix}"

    if not verification.has_credentials:
        return f"   ✗ {feed.feed} - credentials not written to ~/.npmrc"

    if result.reason == REASON_UNAUTHORIZED:
        return f"   ✗ {feed.feed} - authentication failed"

    lines = [f"   ✗ {feed.feed} - request failed (probe: {result.probe})"]
    detail = format_detail(result.detail, secrets=secrets)
    if detail:
        lines.append(detail)
    return "\n".join(lines)


def format_silent_summary(feeds: Sequence[FeedConfig]) -> str:
    """Condensed list of feeds needing attention, shown in --silent mode."""
    lines = ["Some feeds require authentication:"]
    lines.extend(f" - {feed.label}" for feed in feeds)
    lines.append("Run without --silent for more details.")
    return "\n".join(lines)


def format_result(result: AuthCheckResult) -> str:
    """
    Format the errors of a finished run.

    Args:
        result: AuthCheckResult from run_auth_check()

    Returns:
        Formatted string for display (empty for a clean run)
    """
    return "\n".join(f"Error: {error}" for error in result.errors)


def print_result(result: AuthCheckResult, stream: Optional[TextIO] = None) -> None:
    """Print run errors to stream (stderr by default)."""
    output = format_result(result)
    if output:
        print(output, file=stream or sys.stderr)


def print_silent_summary(feeds: Sequence[FeedConfig], stream: Optional[TextIO] = None) -> None:
    print(format_silent_summary(feeds), file=stream or sys.stdout)
