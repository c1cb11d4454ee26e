import importlib.util
import json
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
EXAMPLE = ROOT / "tools" / "examples" / "two_stakers.json"


def _load_replay_module():
    spec = importlib.util.spec_from_file_location("farm_replay", ROOT / "tools" / "farm_replay.py")
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_example_replays_cleanly(capsys: pytest.CaptureFixture[str]) -> None:
    replay = _load_replay_module()
    assert replay.main([str(EXAMPLE)]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[-1].startswith("[farm-replay] commitment=0x")
    assert lines[-1].endswith("rejected=0")
    harvested = [json.loads(line.split(": ", 1)[1]) for line in lines if '"harvest"' in line]
    assert [e["harvested"] for e in harvested] == [100, 50]


def test_rejections_are_counted(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    replay = _load_replay_module()
    path = tmp_path / "bad.json"
    path.write_text(
        json.dumps({"transactions": [{"sender": "alice", "now": 0, "ops": [{"action": "harvest", "pool_id": "nope"}]}]}),
        encoding="utf-8",
    )
    assert replay.main([str(path), "--snapshot"]) == 0
    out = capsys.readouterr().out
    assert "REJECTED (rejected) unknown pool: nope" in out
    assert out.rstrip().endswith("rejected=1")
