import shutil
import subprocess
import sys
import time
from pathlib import Path

import pytest

from bootstrap.models import SupervisedProcess
from bootstrap.supervisor import ProcessSupervisor, find_processes, is_alive


def test_silent_launch_discards_output_and_detaches(tmp_path, fake_popen):
    supervisor = ProcessSupervisor(popen=fake_popen)

    handle = supervisor.launch_silent("sing-box", tmp_path / "sing-box", ["run", "-c", "config.json"])

    command, kwargs = fake_popen.calls[0]
    assert command == [str(tmp_path / "sing-box"), "run", "-c", "config.json"]
    assert kwargs["stdin"] is subprocess.DEVNULL
    assert kwargs["stdout"] is subprocess.DEVNULL
    assert kwargs["stderr"] is subprocess.DEVNULL
    assert kwargs["start_new_session"] is True
    assert handle.pid == 40001
    assert supervisor.launched == [handle]


def test_logged_launch_appends_to_log_file(tmp_path, fake_popen):
    log = tmp_path / "logs" / "argo.log"
    supervisor = ProcessSupervisor(popen=fake_popen)

    supervisor.launch_logged("cloudflared", tmp_path / "cloudflared", ["tunnel"], log)

    _, kwargs = fake_popen.calls[0]
    assert kwargs["stdout_name"] == str(log)
    assert kwargs["stdout_mode"] == "ab"
    assert kwargs["stderr"] is kwargs["stdout"]
    assert kwargs["start_new_session"] is True
    assert log.exists()


def test_logged_launch_keeps_previous_log_content(tmp_path, fake_popen):
    log = tmp_path / "argo.log"
    log.write_text("previous run\n")

    ProcessSupervisor(popen=fake_popen).launch_logged("cloudflared", tmp_path / "cloudflared", [], log)

    assert log.read_text() == "previous run\n"


def test_launch_error_propagates(tmp_path):
    spec = SupervisedProcess(name="sing-box", binary=tmp_path / "missing")

    with pytest.raises(FileNotFoundError):
        ProcessSupervisor().launch(spec)


def test_launched_process_survives_and_can_be_terminated(tmp_path):
    supervisor = ProcessSupervisor()
    handle = supervisor.launch(SupervisedProcess(
        name="sleeper",
        binary=Path(sys.executable),
        args=("-c", "import time; time.sleep(30)"),
    ))
    assert is_alive(handle.pid)

    assert supervisor.terminate_launched() == [handle.pid]

    for _ in range(50):
        if not is_alive(handle.pid):
            break
        time.sleep(0.1)
    assert not is_alive(handle.pid)
    assert supervisor.launched == []


def test_find_processes_matches_binaries_in_work_dir(tmp_path):
    sleep = shutil.which("sleep")
    if sleep is None or Path(sleep).resolve().name != "sleep":
        pytest.skip("needs a standalone sleep binary")
    binary = tmp_path / "cloudflared"
    shutil.copy(Path(sleep).resolve(), binary)
    supervisor = ProcessSupervisor()
    handle = supervisor.launch_silent("cloudflared", binary, ["30"])
    try:
        # the child shows its own command line only once exec has happened
        for _ in range(50):
            found = find_processes(tmp_path)
            if found["cloudflared"]:
                break
            time.sleep(0.05)
        assert found["cloudflared"] == [handle.pid]
        assert found["sing-box"] == []
        assert find_processes(tmp_path / "elsewhere") == {"sing-box": [], "cloudflared": []}
    finally:
        supervisor.terminate_launched()


def test_is_alive_for_unknown_pid():
    assert not is_alive(2**22 + 12345)
