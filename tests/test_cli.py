from __future__ import annotations

import json
from pathlib import Path

import pytest

from taskos import cli
from taskos.crypto.envelope import KeyMaterial, encrypt_and_store
from taskos.testing.memory_ledger import MemoryBlobStore, MemoryLedger

PKG = "0xPKG"


@pytest.fixture
def env(monkeypatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("TASKOS_CONFIG_PATH", raising=False)
    monkeypatch.setenv("TASKOS_PACKAGE_ID", PKG)
    monkeypatch.setenv("TASKOS_REGISTRY_ID", "0xREG")

    led = MemoryLedger()
    led.put_object("0xREG", {"tasks_by_status": {"fields": {"id": {"id": "0xBUCKETS"}}}})
    led.add_table_entry("0xBUCKETS", 0, ["0xT1"])
    led.put_object("0xT1", {"title": "Draft", "status": 0, "creator": "0xC", "assignee": "0xBOB"})
    store = MemoryBlobStore()

    monkeypatch.setattr(cli, "build_client", lambda cfg: led)
    monkeypatch.setattr(cli, "build_storage", lambda cfg: store)
    monkeypatch.setattr(cli, "configure_structured_logging", lambda level_name=None: None)
    return led, store


def test_tasks_command(env, capsys) -> None:
    assert cli.main(["tasks"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert [t["id"] for t in out["tasks"]] == ["0xT1"]


def test_assigned_command(env, capsys) -> None:
    assert cli.main(["assigned", "0xbob"]) == 0
    out = json.loads(capsys.readouterr().out)
    assert [t["id"] for t in out["assigned"]] == ["0xT1"]


def test_failed_registry_exits_1(env, capsys) -> None:
    led, _ = env
    led.put_error_object("0xREG", "deleted")
    assert cli.main(["tasks"]) == 1
    out = json.loads(capsys.readouterr().out)
    assert out["error"]["code"] == "registry_not_found"


def test_listings_without_package_exits_2(env, monkeypatch, capsys) -> None:
    monkeypatch.delenv("TASKOS_PACKAGE_ID", raising=False)
    assert cli.main(["listings", "--limit", "3"]) == 2
    assert "package_id_missing" in capsys.readouterr().err


def test_bad_config_exits_2(env, monkeypatch) -> None:
    monkeypatch.setenv("TASKOS_MODE", "staging")
    assert cli.main(["tasks"]) == 2


def test_decrypt_to_file(env, tmp_path: Path, capsys) -> None:
    _, store = env
    blob_id = encrypt_and_store(store, b"secret notes", KeyMaterial("0xT1", "0xC"))
    out_path = tmp_path / "plain.txt"

    rc = cli.main(["decrypt", blob_id, "--task-id", "0xT1", "--creator", "0xC", "--out", str(out_path)])

    assert rc == 0
    assert out_path.read_bytes() == b"secret notes"
    assert json.loads(capsys.readouterr().out)["size"] == len(b"secret notes")


def test_decrypt_wrong_key_exits_1(env, capsys) -> None:
    _, store = env
    blob_id = encrypt_and_store(store, b"secret notes", KeyMaterial("0xT1", "0xC"))
    assert cli.main(["decrypt", blob_id, "--task-id", "0xT1", "--creator", "0xD"]) == 1
    assert json.loads(capsys.readouterr().out)["reason"] == "authentication_failed"
