"""
azure_auth_check - Verify and repair npm credentials for Azure Artifacts feeds.

This package checks the global and project .npmrc files against the feeds
declared in azure-feed.config.json, probes each feed live and walks the
operator through installing a new Personal Access Token when needed.
"""

from .cli_ui import (
    format_check_status,
    format_pat_instructions,
    format_result,
    format_silent_summary,
    format_verification,
    print_result,
)
from .config import CONFIG_FILENAME, AuthCheckConfig, load_feed_configs, normalize_feed_config, resolve_config_path
from .errors import AuthCheckError, CredentialFileError, InvalidConfigError
from .main import run_auth_check
from .npmrc import (
    build_credential_block,
    ensure_scope_mapping,
    has_registry_credentials,
    has_scope_mapping,
    normalize_scope,
    read_npmrc,
    remove_feed_block,
    render_npmrc,
    update_npmrc,
    write_npmrc,
)
from .probe import (
    PROBE_TIMEOUT_S,
    NpmViewProbe,
    RegistryProbe,
    check_feed_auth,
    classify_probe_output,
    resolve_probe_package,
)
from .prompt import ConsoleTokenSource, TokenSource
from .registry_url import get_registry_keys, parse_registry_url
from .types import (
    EXIT_FAILURE,
    EXIT_SUCCESS,
    AuthCheckResult,
    AuthProbeResult,
    FeedCheck,
    FeedConfig,
    FeedIdentity,
    FeedVerification,
    OrgOutcome,
    ProbeOutput,
    ProbePackage,
    RegistryKeys,
)

__version__ = "1.0.0"

__all__ = [
    # Config
    "AuthCheckConfig",
    "CONFIG_FILENAME",
    "load_feed_configs",
    "normalize_feed_config",
    "resolve_config_path",
    # Errors
    "AuthCheckError",
    "CredentialFileError",
    "InvalidConfigError",
    # Main orchestration
    "run_auth_check",
    # Registry URLs
    "parse_registry_url",
    "get_registry_keys",
    # Credential files
    "read_npmrc",
    "write_npmrc",
    "has_registry_credentials",
    "remove_feed_block",
    "build_credential_block",
    "render_npmrc",
    "update_npmrc",
    "normalize_scope",
    "has_scope_mapping",
    "ensure_scope_mapping",
    # Probing
    "PROBE_TIMEOUT_S",
    "RegistryProbe",
    "NpmViewProbe",
    "resolve_probe_package",
    "classify_probe_output",
    "check_feed_auth",
    # Token prompt
    "TokenSource",
    "ConsoleTokenSource",
    # CLI UI
    "format_check_status",
    "format_pat_instructions",
    "format_result",
    "format_silent_summary",
    "format_verification",
    "print_result",
    # Types
    "FeedConfig",
    "FeedIdentity",
    "RegistryKeys",
    "ProbePackage",
    "ProbeOutput",
    "AuthProbeResult",
    "FeedCheck",
    "FeedVerification",
    "OrgOutcome",
    "AuthCheckResult",
    "EXIT_SUCCESS",
    "EXIT_FAILURE",
]
