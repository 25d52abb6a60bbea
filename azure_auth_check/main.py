"""
Main orchestration entrypoint for npm feed authentication checks.

Provides run_auth_check() which reconciles the configured feeds with the
global and local .npmrc files and returns structured results for easy
testing and CLI usage.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Set

from .cli_ui import (
    format_check_status,
    format_detail,
    format_feed_header,
    format_verification,
    print_silent_summary,
)
from .config import AuthCheckConfig, CONFIG_FILENAME, load_feed_configs, resolve_config_path
from .errors import AuthCheckError, CredentialFileError, InvalidConfigError
from .logging_utils import get_logger
from .npmrc import (
    ensure_scope_mapping,
    has_registry_credentials,
    has_scope_mapping,
    read_npmrc,
    update_npmrc,
)
from .probe import NpmViewProbe, RegistryProbe, check_feed_auth
from .prompt import ConsoleTokenSource, TokenSource
from .redaction import redact_url_credentials
from .types import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    ORG_FAILED,
    ORG_SKIPPED,
    ORG_SUCCESS,
    REASON_UNKNOWN,
    AuthCheckResult,
    FeedCheck,
    FeedConfig,
    FeedVerification,
    OrgOutcome,
)

logger = get_logger(__name__)


def run_auth_check(
    cfg: AuthCheckConfig,
    probe: Optional[RegistryProbe] = None,
    token_source: Optional[TokenSource] = None,
) -> AuthCheckResult:
    """
    Orchestrate the auth check end-to-end.

    This function:
    1. Loads and normalizes the feed configuration
    2. Flags feeds without stored credentials in the global .npmrc
    3. Adds missing scope mappings to the local .npmrc (before any probing)
    4. Probes every feed in configuration order
    5. Prompts for a token per organization with failing feeds, writes the
       credentials and re-verifies
    6. Returns structured results

    A feed needs remediation if the registry rejected it (E401/E403) or if
    it had no stored password when the run started, even when the probe
    succeeded through some other auth path. Unclassified probe failures are
    reported as warnings and leave stored credentials alone.

    Args:
        cfg: Run configuration
        probe: Registry probe (default: npm CLI)
        token_source: Token prompt (default: terminal)

    Returns:
        AuthCheckResult with per-feed checks, per-organization outcomes and
        any errors/warnings
    """
    probe = probe or NpmViewProbe()
    token_source = token_source or ConsoleTokenSource()
    warnings: List[str] = []

    # Step 1: Load configuration
    try:
        feeds = _load_feeds(cfg)
    except InvalidConfigError as e:
        return AuthCheckResult(ok=False, exit_code=EXIT_FAILURE, errors=[str(e)])

    if not feeds:
        return AuthCheckResult(
            ok=False,
            exit_code=EXIT_FAILURE,
            errors=[f"No feeds configured in {CONFIG_FILENAME}"],
        )

    # Step 2 + 3: Credential presence and scope mappings
    try:
        missing_credentials = _find_missing_credentials(cfg, feeds, warnings)
        scope_mappings_added = _ensure_scope_mappings(cfg, feeds, warnings)
    except CredentialFileError as e:
        return AuthCheckResult(ok=False, exit_code=EXIT_FAILURE, errors=[str(e)], warnings=warnings)

    # Step 4: Probe feeds
    logger.info("Azure DevOps npm Authentication Check\n")
    logger.info(f"Found {len(feeds)} feed(s) to check:\n")

    checks: List[FeedCheck] = []
    for feed in feeds:
        logger.info(format_feed_header(feed))
        auth_result = check_feed_auth(feed, probe, timeout=cfg.probe_timeout_s)
        check = FeedCheck(feed=feed, auth_result=auth_result, needs_credentials=feed in missing_credentials)
        logger.info(format_check_status(check) + "\n")
        if cfg.silent and auth_result.reason == REASON_UNKNOWN:
            logger.error(f"{feed.label}: request failed (probe: {auth_result.probe})\n{format_detail(auth_result.detail)}")
        checks.append(check)

    result = AuthCheckResult(
        ok=True,
        exit_code=EXIT_SUCCESS,
        feeds=checks,
        scope_mappings_added=scope_mappings_added,
        warnings=warnings,
    )

    unverified = [check.feed for check in checks if check.unverified]
    for feed in unverified:
        warnings.append(f"Could not verify {feed.label}; stored credentials were left unchanged.")

    failed_feeds = result.failed_feeds
    if not failed_feeds:
        if unverified:
            logger.warning(f"{len(unverified)} feed(s) could not be checked; see the details above.\n")
        else:
            logger.info("All feeds authenticated successfully! You're ready to go.\n")
        return result

    if cfg.silent:
        print_silent_summary(failed_feeds)
    else:
        logger.warning(f"{len(failed_feeds)} feed(s) need authentication.\n")

    # Step 5: Remediate per organization, in first-seen order
    feeds_by_org: Dict[str, List[FeedConfig]] = {}
    for feed in failed_feeds:
        feeds_by_org.setdefault(feed.organization, []).append(feed)

    for organization, org_feeds in feeds_by_org.items():
        try:
            outcome = _remediate_organization(cfg, organization, org_feeds, probe, token_source)
        except AuthCheckError as e:
            result.errors.append(str(e))
            result.exit_code = EXIT_FAILURE
            result.ok = False
            return result
        result.organizations.append(outcome)

    # Step 6: Overall outcome
    if all(outcome.status == ORG_SUCCESS for outcome in result.organizations):
        if not unverified:
            logger.info("\nAll feeds are now authenticated!\n")
        return result

    if not cfg.silent:
        logger.warning("\nSome feeds still need attention. Please check the errors above.\n")
    result.ok = False
    result.exit_code = EXIT_FAILURE
    return result


def _load_feeds(cfg: AuthCheckConfig) -> List[FeedConfig]:
    """
    Locate and load the feed configuration.

    Raises:
        InvalidConfigError: If no config file exists or it is invalid
    """
    config_path = resolve_config_path(cfg)
    if config_path is None:
        raise InvalidConfigError(
            f"Failed to locate {CONFIG_FILENAME}. Place it in your project root or pass --config <path>."
        )
    logger.debug(f"Using config {config_path}")
    return load_feed_configs(config_path)


def _find_missing_credentials(cfg: AuthCheckConfig, feeds: List[FeedConfig], warnings: List[str]) -> Set[FeedConfig]:
    """Feeds without a stored password in the global .npmrc at the start of the run."""
    snapshot = read_npmrc(cfg.global_npmrc_path)

    if not snapshot:
        message = (
            f"No {cfg.global_npmrc_path} file found. "
            "Global credentials will be written after successful authentication."
        )
        warnings.append(message)
        logger.warning(message + "\n")
        return set(feeds)

    missing = [feed for feed in feeds if not has_registry_credentials(snapshot, feed)]
    if missing:
        urls = [redact_url_credentials(feed.registry_url) for feed in missing]
        warnings.extend(f"No credentials for {url}" for url in urls)
        logger.warning(
            f"Detected feeds without credentials in {cfg.global_npmrc_path}:\n"
            + "\n".join(f"   • {url}" for url in urls)
            + "\n"
        )
    return set(missing)


def _ensure_scope_mappings(cfg: AuthCheckConfig, feeds: List[FeedConfig], warnings: List[str]) -> List[str]:
    """Add missing scope → registry lines to the local .npmrc. Returns the scopes added."""
    snapshot = read_npmrc(cfg.local_npmrc_path)
    missing = [feed for feed in feeds if not has_scope_mapping(snapshot, feed)]
    if not missing:
        return []

    added: List[str] = []
    entries: List[str] = []
    for feed in missing:
        if ensure_scope_mapping(feed, cfg.local_npmrc_path):
            entry = f"{feed.scope} -> {redact_url_credentials(feed.registry_url)}"
            added.append(feed.scope)
            entries.append(entry)
            warnings.append(f"Added scope mapping {entry}")

    if entries:
        logger.warning(
            f"Missing scope registry mappings detected in {cfg.local_npmrc_path}. Added entries:\n"
            + "\n".join(f"   • {entry}" for entry in entries)
            + "\n"
        )
    return added


def _remediate_organization(
    cfg: AuthCheckConfig,
    organization: str,
    feeds: List[FeedConfig],
    probe: RegistryProbe,
    token_source: TokenSource,
) -> OrgOutcome:
    """
    Obtain a token for one organization, write it for each failing feed and
    re-verify.

    Raises:
        CredentialFileError: If the global .npmrc cannot be written
    """
    logger.info(f"\n--- {organization} ---")
    logger.info(f"Feeds needing authentication: {', '.join(feed.feed for feed in feeds)}\n")

    token = token_source.request_token(organization)
    if not token or not token.strip():
        logger.info(f"Skipped {organization}\n")
        return OrgOutcome(organization=organization, feeds=feeds, status=ORG_SKIPPED)
    token = token.strip()

    logger.info(f"\nUpdating credentials for {len(feeds)} feed(s)...")
    for feed in feeds:
        update_npmrc(feed, token, cfg.global_npmrc_path)
        logger.info(f"   ✓ {feed.feed}")

    logger.info("\nVerifying credentials...")
    verifications: List[FeedVerification] = []
    for feed in feeds:
        auth_result = check_feed_auth(feed, probe, timeout=cfg.probe_timeout_s)
        has_credentials = has_registry_credentials(read_npmrc(cfg.global_npmrc_path), feed)
        verification = FeedVerification(feed=feed, auth_result=auth_result, has_credentials=has_credentials)
        logger.info(format_verification(verification, secrets=(token,)))
        verifications.append(verification)

    if all(verification.ok for verification in verifications):
        logger.info(f"\nAll {organization} feeds authenticated successfully!\n")
        status = ORG_SUCCESS
    else:
        logger.error(
            f"Some feeds in {organization} are still failing.\n"
            "   Please verify your PAT has the correct permissions.\n"
            "   Required scope: Packaging (Read)\n"
        )
        status = ORG_FAILED

    return OrgOutcome(organization=organization, feeds=feeds, status=status, verifications=verifications)
