"""
Unit tests for path resolution and traversal safety.
"""

import asyncio
import os

import pytest

from staticmount.static.mounts import MountTable
from staticmount.static.resolver import (
    PathResolver,
    has_hidden_segment,
    is_within,
    safe_join,
)


def resolve(resolver: PathResolver, pathname: str):
    return asyncio.run(resolver.resolve(pathname))


@pytest.fixture
def table(public_dir, build_dir) -> MountTable:
    table = MountTable()
    table.mount(str(public_dir))
    table.mount("/assets", str(build_dir))
    return table


class TestSafeJoin:
    """safe_join never leaves the directory."""

    def test_plain_join(self):
        assert safe_join("/srv/public", "css/site.css") == "/srv/public/css/site.css"

    def test_normalizes_inner_dots(self):
        assert safe_join("/srv/public", "a/../b.txt") == "/srv/public/b.txt"

    @pytest.mark.parametrize("suffix", [
        "../secret.txt",
        "../../etc/passwd",
        "a/../../etc/passwd",
        "/etc/passwd",
        "index.html\x00.png",
    ])
    def test_rejects_escapes(self, suffix):
        assert safe_join("/srv/public", suffix) is None

    def test_sibling_with_common_prefix_is_outside(self):
        """/srv/public-old is not inside /srv/public."""
        assert safe_join("/srv/public", "../public-old/x") is None
        assert not is_within("/srv/public", "/srv/public-old/x")


class TestHiddenSegments:
    """Tests for dot-segment detection."""

    @pytest.mark.parametrize("path", ["/.env", "/.git/config", "/a/.hidden/b", "/..", "/a/../b"])
    def test_hidden(self, path):
        assert has_hidden_segment(path)

    @pytest.mark.parametrize("path", ["/", "/index.html", "/app..min.js", "/a/b.c/d"])
    def test_visible(self, path):
        assert not has_hidden_segment(path)


class TestPathResolver:
    """Tests for PathResolver.resolve."""

    def test_resolves_file_at_root(self, table, public_dir, fixed_mtime):
        resolved = resolve(PathResolver(table), "/hello.txt")

        assert resolved.filename == str(public_dir / "hello.txt")
        assert resolved.pathname == "/hello.txt"
        assert resolved.size == len(b"hello world")
        assert resolved.mtime == fixed_mtime
        assert resolved.is_file is True
        assert resolved.content_type == "text/plain; charset=utf-8"
        assert resolved.etag is None

    def test_root_serves_index(self, table, public_dir):
        resolved = resolve(PathResolver(table), "/")

        assert resolved.filename == str(public_dir / "index.html")

    def test_trailing_slash_serves_index(self, table, public_dir):
        resolved = resolve(PathResolver(table), "/docs/")

        assert resolved.filename == str(public_dir / "docs" / "index.html")

    def test_directory_without_slash_is_not_found(self, table):
        """"/docs" is a directory, not a file; no redirect, no index."""
        assert resolve(PathResolver(table), "/docs") is None

    def test_directory_without_index_is_not_found(self, table):
        assert resolve(PathResolver(table), "/empty/") is None

    def test_prefix_is_stripped(self, table, build_dir):
        resolved = resolve(PathResolver(table), "/assets/app.js")

        assert resolved.filename == str(build_dir / "app.js")
        assert resolved.mount.prefix == "/assets/"

    def test_first_mount_wins(self, public_dir, build_dir):
        """Two directories at "/": the first one that has the file answers."""
        table = MountTable()
        table.mount(str(public_dir))
        table.mount(str(build_dir))
        resolver = PathResolver(table)

        assert resolve(resolver, "/shared.css").filename == str(public_dir / "shared.css")
        assert resolve(resolver, "/app.js").filename == str(build_dir / "app.js")

    def test_falls_through_to_later_mount(self, table, build_dir):
        """public/assets/app.js does not exist, build/app.js does."""
        resolved = resolve(PathResolver(table), "/assets/app.js")

        assert resolved.filename == str(build_dir / "app.js")

    def test_earlier_overlapping_mount_takes_precedence(self, public_dir, build_dir):
        table = MountTable()
        table.mount("/assets", str(build_dir))
        table.mount(str(public_dir))
        os.makedirs(public_dir / "assets")
        (public_dir / "assets" / "shared.css").write_bytes(b"from public")

        resolved = resolve(PathResolver(table), "/assets/shared.css")

        assert resolved.filename == str(build_dir / "shared.css")

    def test_missing_file(self, table):
        assert resolve(PathResolver(table), "/nope.txt") is None

    def test_file_used_as_directory(self, table):
        """hello.txt/more raises NotADirectoryError, treated as not found."""
        assert resolve(PathResolver(table), "/hello.txt/more") is None

    def test_no_matching_mount(self, build_dir):
        table = MountTable()
        table.mount("/assets", str(build_dir))

        assert resolve(PathResolver(table), "/app.js") is None

    def test_hidden_files_blocked_by_default(self, table):
        resolver = PathResolver(table)

        assert resolve(resolver, "/.env") is None
        assert resolve(resolver, "/.well-known/security.txt") is None

    def test_hidden_files_allowed(self, table, public_dir):
        resolver = PathResolver(table, hidden=True)

        assert resolve(resolver, "/.env").filename == str(public_dir / ".env")
        assert resolve(resolver, "/.well-known/security.txt") is not None

    def test_traversal_never_escapes(self, table, tmp_path):
        """Even with hidden files on, ".." cannot climb out of a mount."""
        (tmp_path / "secret.txt").write_bytes(b"top secret")
        resolver = PathResolver(table, hidden=True)

        assert resolve(resolver, "/../secret.txt") is None
        assert resolve(resolver, "/assets/../../secret.txt") is None

    def test_custom_index_file(self, table, public_dir):
        (public_dir / "docs" / "default.htm").write_bytes(b"<p>default</p>")
        resolver = PathResolver(table, index_file="default.htm")

        assert resolve(resolver, "/docs/").filename == str(public_dir / "docs" / "default.htm")

    def test_unknown_extension_has_no_type(self, table):
        resolved = resolve(PathResolver(table), "/assets/blob.unknownext")

        assert resolved.content_type is None

    @pytest.mark.skipif(os.geteuid() == 0 if hasattr(os, "geteuid") else True,
                        reason="needs a non-root POSIX user for permission errors")
    def test_permission_error_propagates(self, table, public_dir):
        locked = public_dir / "locked"
        locked.mkdir()
        (locked / "file.txt").write_bytes(b"x")
        locked.chmod(0)
        try:
            with pytest.raises(PermissionError):
                resolve(PathResolver(table), "/locked/file.txt")
        finally:
            locked.chmod(0o755)
