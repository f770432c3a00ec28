import json
import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
FIXTURES = ROOT / "tests" / "fixtures"


def _run_cli(stdin: str, *args: str) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(ROOT / "src"), env.get("PYTHONPATH")]))
    return subprocess.run(
        [sys.executable, "-m", "soustack_mcp", *args],
        input=stdin,
        capture_output=True,
        text=True,
        encoding="utf-8",
        env=env,
        cwd=ROOT,
        timeout=30,
        check=False,
    )


def test_cli_answers_ping_and_exits_cleanly() -> None:
    result = _run_cli('{"id":"1","tool":"ping","input":{}}\n')

    assert result.returncode == 0
    assert [json.loads(line) for line in result.stdout.splitlines()] == [
        {"id": "1", "ok": True, "output": {"pong": True}}
    ]


def test_cli_uses_provider_flags_and_keeps_logs_off_stdout() -> None:
    request = {"id": "v", "tool": "ingest.validate", "input": {"recipe": {}}}

    result = _run_cli(
        json.dumps(request) + "\n",
        "--ingest-module",
        str(FIXTURES / "soustack_ingest_fixture.py"),
        "--log-level",
        "debug",
    )

    assert result.returncode == 0
    [response] = [json.loads(line) for line in result.stdout.splitlines()]
    assert response["output"] == {"ok": False, "errors": ["Recipe name is required."]}
    assert "tool=ingest.validate" in result.stderr


def test_cli_survives_undecodable_bytes() -> None:
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(ROOT / "src"), env.get("PYTHONPATH")]))
    stdin = b'{"id":"1","tool":"ping","input":{}}\n\xff\xfe bad\n{"id":"2","tool":"ping","input":{}}\n'

    result = subprocess.run(
        [sys.executable, "-m", "soustack_mcp"],
        input=stdin,
        capture_output=True,
        env=env,
        cwd=ROOT,
        timeout=30,
        check=False,
    )

    assert result.returncode == 0
    responses = [json.loads(line) for line in result.stdout.decode("utf-8").splitlines()]
    assert sorted(str(response["id"]) for response in responses) == ["1", "2", "None"]
    [bad] = [response for response in responses if response["id"] is None]
    assert bad["error"]["code"] == "invalid_json"
