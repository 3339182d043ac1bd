# pyright: reportPrivateUsage=false

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from filelock import FileLock

from asset_archiver.application import cli as cli_module


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch):
    calls: list[tuple[str, Path | None]] = []
    monkeypatch.setattr(
        cli_module,
        "configure_logging",
        lambda level, path=None: calls.append((level, path)),
    )
    return calls


def _build(source: Path, blob: Path, index: Path, *extra: str) -> int:
    return cli_module.main(["build", str(source), str(blob), str(index), *extra])


def test_cli_build_given_source_when_run_then_writes_archive_and_summary(
    temp_workspace: Path,
    source_tree: Path,
    archive_paths: tuple[Path, Path],
    capsys: pytest.CaptureFixture[str],
):
    blob, index = archive_paths

    code = _build(source_tree, blob, index)

    assert code == cli_module.EXIT_OK
    assert blob.stat().st_size == 17
    assert len(index.read_text("utf-8").splitlines()) == 2
    assert "Packed 2 assets (17 bytes)" in capsys.readouterr().out


def test_cli_build_given_existing_outputs_when_run_without_overwrite_then_exit_archive_error(
    temp_workspace: Path,
    source_tree: Path,
    archive_paths: tuple[Path, Path],
    caplog: pytest.LogCaptureFixture,
):
    blob, index = archive_paths
    _ = blob.write_bytes(b"old")
    _ = index.write_text("old//0//3//\n", encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="asset_archiver.cli"):
        code = _build(source_tree, blob, index)

    assert code == cli_module.EXIT_ARCHIVE_ERROR
    assert blob.read_bytes() == b"old"
    assert any("AlreadyExists" in record.getMessage() for record in caplog.records)


def test_cli_build_given_overwrite_flag_when_run_then_replaces_outputs(
    temp_workspace: Path, source_tree: Path, archive_paths: tuple[Path, Path]
):
    blob, index = archive_paths
    _ = blob.write_bytes(b"old")
    _ = index.write_text("old//0//3//\n", encoding="utf-8")

    code = _build(source_tree, blob, index, "--overwrite", "--sorted", "--chunk-size", "3")

    assert code == cli_module.EXIT_OK
    assert index.read_text("utf-8").splitlines()[0] == "a.json//0//12//application/json"


def test_cli_build_given_settings_overwrite_when_run_then_replaces_outputs(
    temp_workspace: Path, source_tree: Path, archive_paths: tuple[Path, Path]
):
    blob, index = archive_paths
    _ = blob.write_bytes(b"old")
    _ = (temp_workspace / "configs" / "settings.ini").write_text(
        "OVERWRITE_EXISTING=true\nSORTED_TRAVERSAL=true\nEXTRA_MIME_TYPES=.txt=text/x-custom\n",
        encoding="utf-8",
    )

    code = _build(source_tree, blob, index)

    assert code == cli_module.EXIT_OK
    assert index.read_text("utf-8").splitlines()[1] == "b/c.txt//12//5//text/x-custom"


def test_cli_build_given_lock_held_when_run_then_exit_locked(
    temp_workspace: Path, source_tree: Path, archive_paths: tuple[Path, Path]
):
    blob, index = archive_paths
    held = FileLock(f"{index}.lock")

    with held:
        code = _build(source_tree, blob, index)

    assert code == cli_module.EXIT_LOCKED
    assert not blob.exists()


def test_cli_main_given_log_level_flag_when_run_then_overrides_settings(
    temp_workspace: Path,
    source_tree: Path,
    archive_paths: tuple[Path, Path],
    quiet_logging: list[tuple[str, Path | None]],
):
    blob, index = archive_paths
    _ = (temp_workspace / "configs" / "settings.ini").write_text("LOG_LEVEL=error\n", encoding="utf-8")

    _ = cli_module.main(["--log-level", "debug", "build", str(source_tree), str(blob), str(index)])

    level, path = quiet_logging[-1]
    assert level == "debug"
    assert path == temp_workspace / "data" / "logs" / "archiver_errors.log"


def test_cli_main_given_invalid_settings_when_run_then_exit_archive_error(
    temp_workspace: Path,
    source_tree: Path,
    archive_paths: tuple[Path, Path],
    capsys: pytest.CaptureFixture[str],
):
    blob, index = archive_paths
    _ = (temp_workspace / "configs" / "settings.ini").write_text("LOG_LEVEL=loud\n", encoding="utf-8")

    code = _build(source_tree, blob, index)

    assert code == cli_module.EXIT_ARCHIVE_ERROR
    assert "Invalid settings" in capsys.readouterr().err
    assert not blob.exists()


def test_cli_main_given_settings_file_env_when_run_then_uses_it(
    temp_workspace: Path,
    source_tree: Path,
    archive_paths: tuple[Path, Path],
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
):
    blob, index = archive_paths
    custom = tmp_path / "custom.ini"
    _ = custom.write_text("SORTED_TRAVERSAL=true\n", encoding="utf-8")
    monkeypatch.setenv("SETTINGS_FILE", str(custom))

    code = _build(source_tree, blob, index)

    assert code == cli_module.EXIT_OK
    assert index.read_text("utf-8").startswith("a.json//0//12//")


def test_cli_locate_given_present_and_missing_paths_when_run_then_prints_or_fails(
    temp_workspace: Path,
    source_tree: Path,
    archive_paths: tuple[Path, Path],
    capsys: pytest.CaptureFixture[str],
):
    blob, index = archive_paths
    _ = _build(source_tree, blob, index, "--sorted")
    _ = capsys.readouterr()

    found = cli_module.main(["locate", str(index), "b/c.txt"])
    out = capsys.readouterr().out
    missing = cli_module.main(["locate", str(index), "nonexistent/path"])

    assert found == cli_module.EXIT_OK
    assert out.strip() == "12 5 text/plain"
    assert missing == cli_module.EXIT_NOT_FOUND


def test_cli_locate_given_malformed_index_when_run_then_exit_archive_error(
    temp_workspace: Path, tmp_path: Path
):
    index = tmp_path / "bad.idx"
    _ = index.write_text("a.json//zero//12//\n", encoding="utf-8")

    assert cli_module.main(["locate", str(index), "a.json"]) == cli_module.EXIT_ARCHIVE_ERROR


def test_cli_list_given_index_when_run_then_prints_table_in_offset_order(
    temp_workspace: Path,
    tmp_path: Path,
    capsys: pytest.CaptureFixture[str],
):
    index = tmp_path / "assets.idx"
    _ = index.write_text("b/c.txt//12//5//text/plain\na.json//0//12//application/json\n", encoding="utf-8")

    code = cli_module.main(["list", str(index)])

    out = capsys.readouterr().out
    assert code == cli_module.EXIT_OK
    assert "PATH" in out and "MIME" in out
    assert out.index("a.json") < out.index("b/c.txt")


def test_cli_verify_given_consistent_archive_when_run_then_ok(
    temp_workspace: Path,
    source_tree: Path,
    archive_paths: tuple[Path, Path],
    capsys: pytest.CaptureFixture[str],
):
    blob, index = archive_paths
    _ = _build(source_tree, blob, index)
    _ = capsys.readouterr()

    code = cli_module.main(["verify", str(index), str(blob)])

    assert code == cli_module.EXIT_OK
    assert "OK: 2 assets cover 17 bytes" in capsys.readouterr().out


def test_cli_verify_given_truncated_blob_when_run_then_invalid(
    temp_workspace: Path,
    source_tree: Path,
    archive_paths: tuple[Path, Path],
    capsys: pytest.CaptureFixture[str],
):
    blob, index = archive_paths
    _ = _build(source_tree, blob, index)
    _ = blob.write_bytes(blob.read_bytes()[:10])
    _ = capsys.readouterr()

    code = cli_module.main(["verify", str(index), str(blob)])

    out = capsys.readouterr().out
    assert code == cli_module.EXIT_INVALID
    assert "out of bounds" in out
    assert "INVALID" in out


def test_cli_extract_given_asset_when_run_then_writes_output(
    temp_workspace: Path,
    source_tree: Path,
    archive_paths: tuple[Path, Path],
    tmp_path: Path,
):
    blob, index = archive_paths
    _ = _build(source_tree, blob, index)
    output = tmp_path / "extracted" / "c.txt"

    code = cli_module.main(["extract", str(index), str(blob), "b/c.txt", str(output)])

    assert code == cli_module.EXIT_OK
    assert output.read_bytes() == b"hello"


def test_cli_extract_given_missing_asset_when_run_then_not_found(
    temp_workspace: Path,
    source_tree: Path,
    archive_paths: tuple[Path, Path],
    tmp_path: Path,
):
    blob, index = archive_paths
    _ = _build(source_tree, blob, index)

    code = cli_module.main(["extract", str(index), str(blob), "nope", str(tmp_path / "nope")])

    assert code == cli_module.EXIT_NOT_FOUND
    assert not (tmp_path / "nope").exists()


def test_cli_parser_given_no_command_when_parsed_then_exits_with_usage():
    with pytest.raises(SystemExit) as excinfo:
        _ = cli_module.build_parser().parse_args([])

    assert excinfo.value.code == 2


def test_cli_parser_given_zero_chunk_size_when_parsed_then_rejected():
    with pytest.raises(SystemExit):
        _ = cli_module.build_parser().parse_args(["build", "s", "b", "i", "--chunk-size", "0"])


def test_cli_build_given_outputs_inside_source_when_run_then_lock_and_outputs_not_packed(
    temp_workspace: Path, source_tree: Path, capsys: pytest.CaptureFixture[str]
):
    blob = source_tree / "a.blob"
    index = source_tree / "a.idx"

    code = _build(source_tree, blob, index, "--sorted")

    assert code == cli_module.EXIT_OK
    assert index.read_text("utf-8").splitlines() == [
        "a.json//0//12//application/json",
        "b/c.txt//12//5//text/plain",
    ]
    assert blob.stat().st_size == 17
    assert "Packed 2 assets (17 bytes)" in capsys.readouterr().out


def test_cli_build_given_unwritable_lock_when_run_then_exit_archive_error(
    temp_workspace: Path,
    source_tree: Path,
    archive_paths: tuple[Path, Path],
    monkeypatch: pytest.MonkeyPatch,
    caplog: pytest.LogCaptureFixture,
):
    blob, index = archive_paths

    class _UnwritableLock:
        def __init__(self, lock_file: str) -> None:
            self.lock_file = lock_file

        def acquire(self, timeout: float | None = None) -> None:
            raise PermissionError(13, "Permission denied", self.lock_file)

        def release(self) -> None:
            raise AssertionError("lock was never acquired")

    monkeypatch.setattr(cli_module, "FileLock", _UnwritableLock)

    with caplog.at_level(logging.ERROR, logger="asset_archiver.cli"):
        code = _build(source_tree, blob, index)

    assert code == cli_module.EXIT_ARCHIVE_ERROR
    assert not blob.exists()
    assert any("IoError" in record.getMessage() for record in caplog.records)
