import pytest

from neteye import cli
from neteye.models import Protocol


def test_build_job_defaults():
    args = cli.build_parser().parse_args([])
    job = cli.build_job(args)
    assert job.target == "127.0.0.1"
    assert (job.start_port, job.end_port) == (1, 65535)
    assert job.protocols == frozenset({Protocol.TCP})
    assert job.timeout_ms == 3000


def test_build_job_flags():
    args = cli.build_parser().parse_args(
        ["-a", "10.0.0.1", "--ports", "20-25", "-U", "-j", "8", "-t", "250", "-i", "--deadline", "5"]
    )
    job = cli.build_job(args)
    assert (job.start_port, job.end_port) == (20, 25)
    assert job.protocols == frozenset({Protocol.UDP})
    assert job.concurrency == 8
    assert job.timeout_s == 0.25
    assert job.inspect
    assert job.deadline_s == 5


@pytest.mark.parametrize("argv", [
    ["-s", "100", "-e", "10"],
    ["-t", "0"],
    ["-j", "0"],
    ["--ports", "abc"],
])
def test_configuration_errors_exit_2(argv, capsys):
    assert cli.main(argv) == 2
    assert capsys.readouterr().err.startswith("error: ")


def test_resolution_error_exits_1(capsys):
    assert cli.main(["-a", "host.invalid", "-s", "1", "-e", "2"]) == 1
    captured = capsys.readouterr()
    assert "Could not resolve" in captured.err
    assert captured.out == ""


def test_unwritable_output_exits_1(tmp_path, capsys):
    out = tmp_path / "nope" / "scan.txt"
    assert cli.main(["-s", "1", "-e", "2", "-o", str(out)]) == 1
    assert "Cannot open output file" in capsys.readouterr().err


def test_end_to_end_scan(banner_server, tmp_path, capsys):
    port = banner_server(b"SSH-2.0-OpenSSH_8.9\r\n")
    out = tmp_path / "scan.txt"
    code = cli.main(["-a", "127.0.0.1", "-s", str(port), "-e", str(port), "-T", "-t", "1000",
                     "-o", str(out), "--enumerate"])
    assert code == 0

    stdout = capsys.readouterr().out
    line = f"{port}/tcp   open   ssh   SSH-2.0-OpenSSH_8.9"
    assert line in stdout
    assert "Time Elapsed:" in stdout

    saved = out.read_text(encoding="utf-8").splitlines()
    assert saved[0] == line
    assert "Found 1 open tcp ports" in saved
    assert f"{port}: ssh -> ssh enumeration" in saved


def test_verbose_header(closed_port, capsys):
    assert cli.main(["-v", "-s", str(closed_port), "-e", str(closed_port), "-t", "200"]) == 0
    out = capsys.readouterr().out
    assert "Scanning IP    : 127.0.0.1" in out
    assert "Protocol       : TCP" in out
    assert f"{closed_port}/tcp   closed" in out


def test_ping_check_reported(monkeypatch, closed_port, capsys):
    monkeypatch.setattr(cli, "ping_check", lambda host: False)
    assert cli.main(["-p", "-s", str(closed_port), "-e", str(closed_port), "-t", "200"]) == 0
    assert "Ping to 127.0.0.1 failed!" in capsys.readouterr().out


def test_deadline_cut_scan_exits_incomplete(capsys):
    code = cli.main(["-s", "1", "-e", "65535", "-j", "1", "-t", "200", "--deadline", "0.05"])
    assert code == cli.EXIT_INCOMPLETE
    out = capsys.readouterr().out
    assert "Scan incomplete:" in out
    assert "Time Elapsed:" in out
