from __future__ import annotations

from pathlib import Path

from chainboot.usecases.merge_config import MergeConfig


def _write(path: Path, lines) -> Path:
    path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
    return path


def _lines(path: Path):
    return path.read_text(encoding="utf-8").splitlines()


def test_merge_lines_drops_excluded_directive_then_appends_staged() -> None:
    merged = MergeConfig.merge_lines(["addnode=1.2.3.4", "listen=1"], ["addnode=5.6.7.8"], "addnode")
    assert merged == ["listen=1", "addnode=5.6.7.8"]


def test_no_staged_config_is_noop(tmp_path: Path) -> None:
    live = _write(tmp_path / "node.conf", ["listen=1"])
    assert MergeConfig()(live, tmp_path / "missing.conf") is False
    assert _lines(live) == ["listen=1"]
    assert not (tmp_path / "node.conf.bak").exists()


def test_staged_only_is_copied_verbatim(tmp_path: Path) -> None:
    staged = _write(tmp_path / "staged.conf", ["addnode=5.6.7.8", "txindex=1"])
    live = tmp_path / "node.conf"
    assert MergeConfig()(live, staged) is True
    assert live.read_bytes() == staged.read_bytes()


def test_merge_backs_up_live_and_rewrites(tmp_path: Path) -> None:
    live = _write(tmp_path / "node.conf", ["addnode=1.2.3.4", "listen=1"])
    staged = _write(tmp_path / "staged.conf", ["addnode=5.6.7.8"])
    _write(tmp_path / "node.conf.bak", ["stale=1"])

    assert MergeConfig()(live, staged) is True
    assert _lines(live) == ["listen=1", "addnode=5.6.7.8"]
    assert _lines(tmp_path / "node.conf.bak") == ["addnode=1.2.3.4", "listen=1"]


def test_merge_keeps_duplicate_keys(tmp_path: Path) -> None:
    live = _write(tmp_path / "node.conf", ["maxconnections=8"])
    staged = _write(tmp_path / "staged.conf", ["maxconnections=64"])
    MergeConfig()(live, staged)
    assert _lines(live) == ["maxconnections=8", "maxconnections=64"]


def test_staged_lines_are_copied_byte_for_byte(tmp_path: Path) -> None:
    live = tmp_path / "node.conf"
    live.write_bytes(b"listen=1\r\naddnode=1.2.3.4\r\n")
    staged = tmp_path / "staged.conf"
    staged.write_bytes(b"rpcpassword=a\x0cb\r\naddnode=5.6.7.8\r\n")

    assert MergeConfig()(live, staged) is True
    assert live.read_bytes() == b"listen=1\r\nrpcpassword=a\x0cb\r\naddnode=5.6.7.8\r\n"


def test_last_line_without_newline_is_kept(tmp_path: Path) -> None:
    live = tmp_path / "node.conf"
    live.write_bytes(b"listen=1")
    staged = tmp_path / "staged.conf"
    staged.write_bytes(b"txindex=1")

    MergeConfig()(live, staged)
    assert live.read_bytes() == b"listen=1\ntxindex=1\n"
