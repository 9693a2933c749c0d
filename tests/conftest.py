"""
pytest configuration and fixtures.
"""

import os
from pathlib import Path
import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticmount import ServerConfig, StaticEngine


# Fixed mtime so ETags and Last-Modified values are predictable.
FIXED_MTIME = 1768471200  # 2026-01-15 10:00:00 UTC


def write_file(path: Path, content: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    os.utime(path, (FIXED_MTIME, FIXED_MTIME))
    return path


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample conditional GET request."""
    return (
        b"GET /assets/app.js?v=3 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"If-None-Match: W/\"2a-19bc1f2a6c0\"\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def public_dir(tmp_path: Path) -> Path:
    """
    public/
    ├── index.html
    ├── hello.txt
    ├── shared.css       (also exists in build/, public wins at "/")
    ├── .env
    ├── .well-known/security.txt
    ├── docs/index.html
    └── empty/           (directory without an index)
    """
    root = tmp_path / "public"
    write_file(root / "index.html", b"<h1>home</h1>")
    write_file(root / "hello.txt", b"hello world")
    write_file(root / "shared.css", b"body { color: red }")
    write_file(root / ".env", b"SECRET=1")
    write_file(root / ".well-known" / "security.txt", b"Contact: security@example.com")
    write_file(root / "docs" / "index.html", b"<h1>docs</h1>")
    (root / "empty").mkdir()
    return root


@pytest.fixture
def build_dir(tmp_path: Path) -> Path:
    """
    build/
    ├── app.js
    ├── shared.css
    └── blob.unknownext
    """
    root = tmp_path / "build"
    write_file(root / "app.js", b"console.log('app');")
    write_file(root / "shared.css", b"body { color: blue }")
    write_file(root / "blob.unknownext", b"\x00\x01\x02")
    return root


@pytest.fixture
def engine(public_dir: Path, build_dir: Path) -> StaticEngine:
    """Engine with public/ at "/" and build/ at "/assets"."""
    return StaticEngine().mount(str(public_dir)).mount("/assets", str(build_dir))


@pytest.fixture
def config(public_dir: Path) -> ServerConfig:
    """Test server configuration on an ephemeral port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let the OS pick a free port
        timeout=5.0,
        keep_alive_timeout=2.0,
        log_level="WARNING",
        mounts=[("/", str(public_dir))],
        max_age="1d",
    )


@pytest.fixture
def fixed_mtime() -> int:
    """The mtime every fixture file carries."""
    return FIXED_MTIME
