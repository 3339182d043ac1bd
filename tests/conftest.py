import sys
from pathlib import Path

root = Path(__file__).resolve().parents[1]
src = root / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

import pytest


@pytest.fixture()
def temp_workspace(tmp_path, monkeypatch):
    workspace = tmp_path / "workspace"
    (workspace / "configs").mkdir(parents=True, exist_ok=True)
    monkeypatch.chdir(workspace)
    monkeypatch.delenv("SETTINGS_FILE", raising=False)
    return workspace


@pytest.fixture()
def source_tree(tmp_path):
    source = tmp_path / "assets"
    (source / "b").mkdir(parents=True, exist_ok=True)
    (source / "a.json").write_bytes(b'{"key": "v"}')
    (source / "b" / "c.txt").write_bytes(b"hello")
    return source


@pytest.fixture()
def nested_tree(tmp_path):
    source = tmp_path / "nested"
    files = {
        "index.html": b"<html><body>hi</body></html>\n",
        "css/site.css": b"body { color: red; }\n",
        "img/logo.png": b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 3,
        "img/icons/empty.svg": b"",
        "data/deep/er/still/notes.md": "café ☃\n".encode("utf-8"),
        "noext": b"\x00\x01\x02",
    }
    for relative, content in files.items():
        target = source / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
    return source, files


@pytest.fixture()
def archive_paths(tmp_path):
    out = tmp_path / "out"
    out.mkdir(parents=True, exist_ok=True)
    return out / "assets.blob", out / "assets.blob.idx"
