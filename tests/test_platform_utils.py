"""Tests for the async subprocess helper, using the running interpreter."""

import asyncio
import os
import sys

import pytest

from SimAction.platform_utils import CommandResult, run_cmd_silently


def test_captures_output_and_status():
    result = asyncio.run(
        run_cmd_silently([sys.executable, "-c", "import sys; print('out'); sys.stderr.write('err'); sys.exit(3)"])
    )

    assert result.returncode == 3
    assert not result.ok
    assert result.stdout_text().strip() == "out"
    assert result.error_text() == "err"


def test_writes_stdin():
    result = asyncio.run(
        run_cmd_silently(
            [sys.executable, "-c", "import sys; sys.stdout.write(sys.stdin.read().upper())"],
            input=b"hi there",
        )
    )

    assert result.ok
    assert result.stdout == b"HI THERE"


def test_timeout_raises():
    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(run_cmd_silently([sys.executable, "-c", "import time; time.sleep(30)"], timeout=0.5))


def test_cancel_kills_child(tmp_path):
    pidfile = tmp_path / "child.pid"
    script = (
        "import os, time\n"
        f"with open({str(pidfile)!r}, 'w') as f: f.write(str(os.getpid()))\n"
        "time.sleep(30)"
    )

    async def scenario():
        task = asyncio.create_task(run_cmd_silently([sys.executable, "-c", script]))
        for _ in range(200):
            if pidfile.exists() and pidfile.read_text():
                break
            await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        return int(pidfile.read_text())

    pid = asyncio.run(scenario())

    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)


def test_missing_executable_raises_oserror():
    with pytest.raises(OSError):
        asyncio.run(run_cmd_silently(["/nonexistent/simaction-tool"]))


def test_error_text_falls_back():
    assert CommandResult(returncode=1, stdout=b"from stdout\n").error_text() == "from stdout"
    assert CommandResult(returncode=4).error_text() == "exit status 4"
