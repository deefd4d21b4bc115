import sys
from pathlib import Path
import importlib
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture()
def m():
    """Lazily import the main module for tests to avoid module-level import."""
    return importlib.import_module("main")


@pytest.fixture()
def no_progress(monkeypatch, m):
    """Capture progress lines from the main module instead of printing."""
    calls = []

    def _stub(line: str):
        calls.append(line)

    monkeypatch.setattr(m, "_print_progress", _stub)
    return calls


@pytest.fixture()
def progress_recorder():
    """Provide a reusable progress callback and its call log."""
    calls = []

    def cb(done, total):
        calls.append((done, total))

    return cb, calls


@pytest.fixture()
def sample_hist():
    """Histogram with counts a:1, b:4, c:2, d:2, e:4, f:1."""
    hist = [0] * 256
    for ch, count in zip("abcdef", (1, 4, 2, 2, 4, 1)):
        hist[ord(ch)] = count
    return hist


@pytest.fixture()
def sample_file(tmp_path: Path):
    """Write a small text file with mode 0o640 and return its path."""
    path = tmp_path / "plain.txt"
    path.write_bytes(b"Hello World! " * 50 + bytes(range(256)))
    path.chmod(0o640)
    return path
