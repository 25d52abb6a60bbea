"""
test_npmrc.py - Tests for credential file reading, checking and rewriting

Covers key-form detection, block-scoped replacement, idempotent rewrites
and the permissions of newly created credential files.
"""

import base64
import os
import stat

import pytest

from azure_auth_check.errors import CredentialFileError
from azure_auth_check.npmrc import (
    ALWAYS_AUTH_LINE,
    annotation_line,
    build_credential_block,
    has_registry_credentials,
    read_npmrc,
    remove_feed_block,
    render_npmrc,
    update_npmrc,
    write_npmrc,
)

REGISTRY_KEY = "//pkgs.dev.azure.com/myorg/_packaging/myfeed/npm/registry/"
FEED_KEY = "//pkgs.dev.azure.com/myorg/_packaging/myfeed/npm/"


def encode(token: str) -> str:
    return base64.b64encode(token.encode("utf-8")).decode("ascii")


class TestReadWrite:
    """Tests for file access."""

    def test_missing_file_reads_empty(self, tmp_path):
        """An absent file is a valid state, not an error."""
        assert read_npmrc(tmp_path / "nope" / ".npmrc") == ""

    def test_unreadable_path_raises(self, tmp_path):
        directory = tmp_path / "dir.npmrc"
        directory.mkdir()
        with pytest.raises(CredentialFileError):
            read_npmrc(directory)

    def test_write_creates_parent_directories(self, tmp_path):
        path = tmp_path / "a" / "b" / ".npmrc"
        write_npmrc(path, "registry=https://registry.npmjs.org/\n")
        assert path.read_text() == "registry=https://registry.npmjs.org/\n"

    def test_write_failure_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(CredentialFileError):
            write_npmrc(blocker / ".npmrc", "x\n")

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_new_private_file_is_owner_only(self, tmp_path):
        path = tmp_path / ".npmrc"
        write_npmrc(path, "x\n", private=True)
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_existing_file_permissions_untouched(self, tmp_path):
        path = tmp_path / ".npmrc"
        path.write_text("x\n")
        os.chmod(path, 0o644)
        write_npmrc(path, "y\n", private=True)
        assert stat.S_IMODE(path.stat().st_mode) == 0o644


class TestHasRegistryCredentials:
    """Tests for password presence across the four key forms."""

    @pytest.mark.parametrize(
        "key",
        [
            REGISTRY_KEY,
            FEED_KEY,
            REGISTRY_KEY.rstrip("/"),
            FEED_KEY.rstrip("/"),
        ],
    )
    def test_any_key_form_counts(self, make_feed, key):
        content = f"{key}:_password=c2VjcmV0\n"
        assert has_registry_credentials(content, make_feed())

    def test_username_alone_is_not_enough(self, make_feed):
        content = f"{REGISTRY_KEY}:username=myorg\n{REGISTRY_KEY}:email=npm@myorg.com\n"
        assert not has_registry_credentials(content, make_feed())

    def test_other_feed_does_not_count(self, make_feed):
        content = "//pkgs.dev.azure.com/myorg/_packaging/otherfeed/npm/registry/:_password=c2VjcmV0\n"
        assert not has_registry_credentials(content, make_feed())

    def test_empty_content(self, make_feed):
        assert not has_registry_credentials("", make_feed())


class TestBuildCredentialBlock:
    def test_block_layout(self, make_feed):
        block = build_credential_block(make_feed(), "abc123")
        assert block == [
            "; Azure DevOps authentication for myorg/myfeed",
            f"{REGISTRY_KEY}:username=myorg",
            f"{REGISTRY_KEY}:_password=YWJjMTIz",
            f"{REGISTRY_KEY}:email=npm@myorg.com",
            f"{FEED_KEY}:username=myorg",
            f"{FEED_KEY}:_password=YWJjMTIz",
            f"{FEED_KEY}:email=npm@myorg.com",
        ]

    def test_token_never_written_in_clear(self, make_feed):
        block = "\n".join(build_credential_block(make_feed(), "plain-token-value"))
        assert "plain-token-value" not in block
        assert encode("plain-token-value") in block


class TestRemoveFeedBlock:
    """Tests for block-scoped removal."""

    def test_removes_annotation_lines_and_trailing_blank(self, make_feed):
        content = "\n".join(
            [
                "registry=https://registry.npmjs.org/",
                "",
                annotation_line(make_feed()),
                f"{REGISTRY_KEY}:username=myorg",
                f"{REGISTRY_KEY}:_password=T0xE",
                f"{FEED_KEY}:_password=T0xE",
                "",
                "save-exact=true",
            ]
        )
        assert remove_feed_block(content, make_feed()) == [
            "registry=https://registry.npmjs.org/",
            "",
            "save-exact=true",
        ]

    def test_keeps_feed_with_shared_prefix(self, make_feed):
        """Rewriting "myfeed" never touches "myfeed2"."""
        other = "//pkgs.dev.azure.com/myorg/_packaging/myfeed2/npm/registry/"
        content = "\n".join(
            [
                "; Azure DevOps authentication for myorg/myfeed2",
                f"{other}:username=myorg",
                f"{other}:_password=T1RIRVI=",
                "",
                "; Azure DevOps authentication for myorg/myfeed",
                f"{REGISTRY_KEY}:_password=T0xE",
            ]
        )
        lines = remove_feed_block(content, make_feed())
        assert lines == [
            "; Azure DevOps authentication for myorg/myfeed2",
            f"{other}:username=myorg",
            f"{other}:_password=T1RIRVI=",
        ]

    def test_keeps_organization_with_shared_suffix(self, make_feed):
        other = "//pkgs.dev.azure.com/bigmyorg/_packaging/myfeed/npm/registry/"
        content = f"{other}:_password=T1RIRVI=\n"
        assert remove_feed_block(content, make_feed()) == [f"{other}:_password=T1RIRVI="]

    def test_removes_legacy_key_forms(self, make_feed):
        content = "\n".join(
            [
                f"{REGISTRY_KEY.rstrip('/')}:_password=T0xE",
                f"{FEED_KEY.rstrip('/')}:username=myorg",
                "init-author-name=someone",
            ]
        )
        assert remove_feed_block(content, make_feed()) == ["init-author-name=someone"]

    def test_removes_project_scoped_lines(self, make_feed):
        feed = make_feed(project="myproj")
        key = "//pkgs.dev.azure.com/myorg/myproj/_packaging/myfeed/npm/registry/"
        content = f"{key}:_password=T0xE\nfund=false\n"
        assert remove_feed_block(content, feed) == ["fund=false"]

    def test_visualstudio_host_without_project(self, make_feed):
        feed = make_feed(
            organization="contoso",
            feed="shared",
            registry_url="https://contoso.pkgs.visualstudio.com/_packaging/shared/npm/registry/",
        )
        content = "//contoso.pkgs.visualstudio.com/_packaging/shared/npm/registry/:_password=T0xE\nfund=false\n"
        assert remove_feed_block(content, feed) == ["fund=false"]

    def test_scope_mapping_lines_survive(self, make_feed):
        """Only //-keyed lines belong to a credential block."""
        mapping = "@acme:registry=https://pkgs.dev.azure.com/myorg/_packaging/myfeed/npm/registry/"
        content = f"{mapping}\n{REGISTRY_KEY}:_password=T0xE\n"
        assert remove_feed_block(content, make_feed()) == [mapping]

    def test_project_feed_leaves_organization_feed(self, make_feed):
        """A project feed and an organization feed with the same name are separate blocks."""
        org_key = "//pkgs.dev.azure.com/o/_packaging/f/npm/registry/"
        project_key = "//pkgs.dev.azure.com/o/p/_packaging/f/npm/registry/"
        content = "\n".join(
            [
                "; Azure DevOps authentication for o/f",
                f"{org_key}:_password=T1JH",
                "",
                "; Azure DevOps authentication for o/f",
                f"{project_key}:_password=UFJPSg==",
            ]
        )
        lines = remove_feed_block(content, make_feed(organization="o", project="p", feed="f"))
        assert lines == ["; Azure DevOps authentication for o/f", f"{org_key}:_password=T1JH"]

    def test_organization_feed_leaves_project_feed(self, make_feed):
        project_key = "//o.pkgs.visualstudio.com/p/_packaging/f/npm/registry/"
        content = f"{project_key}:_password=UFJPSg==\n//o.pkgs.visualstudio.com/_packaging/f/npm/registry/:_password=T1JH\n"
        lines = remove_feed_block(content, make_feed(organization="o", feed="f"))
        assert lines == [f"{project_key}:_password=UFJPSg=="]

    def test_other_host_form_of_same_feed_removed(self, make_feed):
        """Lines written for the legacy host still belong to the feed."""
        content = "//myorg.pkgs.visualstudio.com/_packaging/myfeed/npm/registry/:_password=T0xE\nfund=false\n"
        assert remove_feed_block(content, make_feed()) == ["fund=false"]

    def test_annotation_without_credentials_kept(self, make_feed):
        content = f"{annotation_line(make_feed())}\nfund=false\n"
        assert remove_feed_block(content, make_feed()) == [annotation_line(make_feed()), "fund=false"]

    def test_collapses_blank_runs(self, make_feed):
        content = "\n\nfund=false\n\n\n\nsave-exact=true\n\n"
        assert remove_feed_block(content, make_feed()) == ["fund=false", "", "save-exact=true"]


class TestRenderNpmrc:
    """Tests for full credential-file rendering."""

    def test_empty_file(self, make_feed):
        rendered = render_npmrc("", make_feed(), "abc123")
        lines = rendered.split("\n")
        assert lines[0] == "; Azure DevOps authentication for myorg/myfeed"
        assert lines[-2:] == [ALWAYS_AUTH_LINE, ""]
        assert rendered.endswith("\n")

    def test_idempotent(self, make_feed):
        """Rendering the same feed and token twice yields identical content."""
        original = "registry=https://registry.npmjs.org/\nalways-auth=true\n"
        once = render_npmrc(original, make_feed(), "abc123")
        twice = render_npmrc(once, make_feed(), "abc123")
        assert once == twice

    def test_exactly_one_always_auth(self, make_feed):
        content = "always-auth=true\nfund=false\nalways-auth=true\n"
        rendered = render_npmrc(content, make_feed(), "abc123")
        rendered = render_npmrc(rendered, make_feed(feed="second"), "abc123")
        lines = rendered.split("\n")
        assert lines.count(ALWAYS_AUTH_LINE) == 1
        assert lines[-2] == ALWAYS_AUTH_LINE

    def test_replaces_old_password(self, make_feed):
        content = f"{REGISTRY_KEY}:_password={encode('old')}\n{FEED_KEY}:_password={encode('old')}\n"
        rendered = render_npmrc(content, make_feed(), "new")
        assert encode("old") not in rendered
        assert rendered.count(f":_password={encode('new')}") == 2

    def test_preserves_unrelated_lines_in_order(self, make_feed):
        content = "\n".join(
            [
                "registry=https://registry.npmjs.org/",
                "//registry.npmjs.org/:_authToken=npm-token",
                "@other:registry=https://npm.example.com/",
            ]
        )
        rendered = render_npmrc(content, make_feed(), "abc123")
        assert rendered.startswith(content + "\n\n; Azure DevOps authentication for myorg/myfeed\n")

    def test_annotation_not_duplicated(self, make_feed):
        rendered = render_npmrc("", make_feed(), "one")
        rendered = render_npmrc(rendered, make_feed(), "two")
        assert rendered.count(annotation_line(make_feed())) == 1

    def test_two_feeds_coexist(self, make_feed):
        first = make_feed()
        second = make_feed(feed="myfeed2")
        rendered = render_npmrc("", first, "tok-1")
        rendered = render_npmrc(rendered, second, "tok-2")
        rendered = render_npmrc(rendered, first, "tok-3")
        assert has_registry_credentials(rendered, first)
        assert has_registry_credentials(rendered, second)
        assert encode("tok-2") in rendered
        assert encode("tok-1") not in rendered

    @pytest.mark.parametrize("order", ["organization-first", "project-first"])
    def test_organization_and_project_feed_coexist(self, make_feed, order):
        org_feed = make_feed(organization="o", feed="f")
        project_feed = make_feed(organization="o", project="p", feed="f")
        feeds = [(org_feed, "tokA"), (project_feed, "tokB")]
        if order == "project-first":
            feeds.reverse()

        rendered = ""
        for feed, token in feeds + feeds:
            rendered = render_npmrc(rendered, feed, token)

        assert has_registry_credentials(rendered, org_feed)
        assert has_registry_credentials(rendered, project_feed)
        assert rendered.count(f":_password={encode('tokA')}") == 2
        assert rendered.count(f":_password={encode('tokB')}") == 2
        assert rendered.count("; Azure DevOps authentication for o/f") == 2


class TestUpdateNpmrc:
    def test_credentials_detected_after_update(self, tmp_path, make_feed):
        path = tmp_path / "home" / ".npmrc"
        update_npmrc(make_feed(), "abc123", path)
        content = path.read_text()
        assert has_registry_credentials(content, make_feed())
        assert f"{REGISTRY_KEY}:_password=YWJjMTIz" in content

    def test_repeated_update_is_stable(self, tmp_path, make_feed):
        path = tmp_path / ".npmrc"
        path.write_text("fund=false\n")
        update_npmrc(make_feed(), "abc123", path)
        first = path.read_text()
        update_npmrc(make_feed(), "abc123", path)
        assert path.read_text() == first
