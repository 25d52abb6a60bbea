"""
conftest.py - Pytest configuration for azure-auth-check tests

Sets up the import path and provides fakes for the probe and token ports.
"""

import json
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest

REPO_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(REPO_ROOT))

from azure_auth_check.config import AuthCheckConfig  # noqa: E402
from azure_auth_check.types import FeedConfig, ProbeOutput  # noqa: E402

DEV_AZURE_URL = "https://pkgs.dev.azure.com/myorg/_packaging/myfeed/npm/registry/"

E404_OUTPUT = ProbeOutput(
    ok=False,
    stderr="npm ERR! code E404\nnpm ERR! 404 Not Found - GET https://pkgs.dev.azure.com/... - not found",
    message="Command failed with exit code 1",
)
E401_OUTPUT = ProbeOutput(
    ok=False,
    stderr="npm ERR! code E401\nnpm ERR! Unable to authenticate, your authentication token seems to be invalid.",
    message="Command failed with exit code 1",
)


class FakeProbe:
    """RegistryProbe returning canned outputs; records every query."""

    def __init__(self, respond: Callable[[str, str], ProbeOutput]):
        self.respond = respond
        self.calls: List[Tuple[str, str, float]] = []

    def query(self, package_name: str, registry_url: str, timeout: float) -> ProbeOutput:
        self.calls.append((package_name, registry_url, timeout))
        return self.respond(package_name, registry_url)


class TokenAwareProbe:
    """Answers E404 once the global .npmrc holds the expected password, E401 before."""

    def __init__(self, npmrc_path: Path, encoded_token: str):
        self.npmrc_path = npmrc_path
        self.encoded_token = encoded_token
        self.calls: List[str] = []

    def query(self, package_name: str, registry_url: str, timeout: float) -> ProbeOutput:
        self.calls.append(package_name)
        content = self.npmrc_path.read_text() if self.npmrc_path.exists() else ""
        if f":_password={self.encoded_token}" in content:
            return E404_OUTPUT
        return E401_OUTPUT


class FakeTokenSource:
    """TokenSource returning queued answers; records every organization asked."""

    def __init__(self, answers: Optional[Dict[str, Optional[str]]] = None, default: Optional[str] = None):
        self.answers = answers or {}
        self.default = default
        self.requested: List[str] = []

    def request_token(self, organization: str) -> Optional[str]:
        self.requested.append(organization)
        return self.answers.get(organization, self.default)


@pytest.fixture
def make_feed() -> Callable[..., FeedConfig]:
    def _make(
        organization: str = "myorg",
        feed: str = "myfeed",
        project: Optional[str] = None,
        registry_url: Optional[str] = None,
        scope: Optional[str] = None,
        test_package: Optional[str] = None,
    ) -> FeedConfig:
        if registry_url is None:
            middle = f"{organization}/{project}" if project else organization
            registry_url = f"https://pkgs.dev.azure.com/{middle}/_packaging/{feed}/npm/registry/"
        return FeedConfig(
            organization=organization,
            project=project,
            feed=feed,
            registry_url=registry_url,
            scope=scope,
            test_package=test_package,
        )

    return _make


@pytest.fixture
def project_dir(tmp_path) -> Path:
    project = tmp_path / "project"
    project.mkdir()
    return project


@pytest.fixture
def write_config(project_dir) -> Callable[[object], Path]:
    def _write(data: object) -> Path:
        path = project_dir / "azure-feed.config.json"
        path.write_text(json.dumps(data))
        return path

    return _write


@pytest.fixture
def auth_config(project_dir, tmp_path) -> AuthCheckConfig:
    return AuthCheckConfig(
        cwd=project_dir,
        global_npmrc_path=tmp_path / "home" / ".npmrc",
        local_npmrc_path=project_dir / ".npmrc",
    )
