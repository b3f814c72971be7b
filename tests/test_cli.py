import os
import sys
import subprocess

from signcert import cli


def _script_path():
    return os.path.normpath(os.path.join(os.path.dirname(__file__), "..", "scripts", "gen_cert.py"))


def _run(args, cwd, stdin=""):
    return subprocess.run([sys.executable, _script_path(), *args], cwd=cwd, input=stdin,
                          capture_output=True, text=True, timeout=60)


def test_help_exits_cleanly_without_side_effects(tmp_path):
    proc = _run(["--help"], cwd=tmp_path)
    assert proc.returncode == 0
    assert "usage:" in proc.stdout
    assert "--ca-serial" in proc.stdout
    assert os.listdir(tmp_path) == []


def test_unknown_flag_fails_with_usage(tmp_path):
    proc = _run(["--bogus", "x", "--output-dir", "made"], cwd=tmp_path)
    assert proc.returncode != 0
    assert "usage:" in proc.stderr
    assert "--bogus" in proc.stderr
    assert os.listdir(tmp_path) == []


def test_abbreviated_flag_is_unknown(tmp_path):
    proc = _run(["--c", "test"], cwd=tmp_path)
    assert proc.returncode != 0


def test_issue_from_flags(ca_files, tmp_path):
    ca_cert, ca_key, ca_serial = ca_files
    out = tmp_path / "deep" / "out"
    proc = _run(["--cn", "test", "--duration", "365", "--san", "DNS:test.example.com",
                 "--ca-cert", ca_cert, "--ca-key", ca_key, "--ca-serial", ca_serial,
                 "--output-dir", str(out)], cwd=tmp_path)
    assert proc.returncode == 0, proc.stdout + proc.stderr
    assert f"Directory {out} does not exist. Creating it..." in proc.stdout
    assert (out / "test_key.pem").exists()
    assert (out / "test.crt").exists()
    assert not (out / "test.csr").exists()


def test_issue_from_prompts(ca_files, tmp_path):
    ca_cert, ca_key, ca_serial = ca_files
    stdin = "\n".join(["web", "bad", "30", ca_cert, ca_key, ca_serial,
                       "yes", "y", "dns", "web.example", "n"]) + "\n"
    proc = _run(["--duration", "0"], cwd=tmp_path, stdin=stdin)
    assert proc.returncode == 0, proc.stdout + proc.stderr
    assert "Invalid input. Please try again." in proc.stderr
    assert (tmp_path / "web.crt").exists()
    assert (tmp_path / "web_key.pem").exists()


def test_closed_stdin_aborts(tmp_path):
    proc = _run([], cwd=tmp_path, stdin="")
    assert proc.returncode == 1
    assert "Aborted." in proc.stderr


def test_main_reads_environment_and_dotenv(ca_files, tmp_path, monkeypatch, capsys):
    ca_cert, ca_key, ca_serial = ca_files
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text(f"CA_KEY={ca_key}\nCA_SERIAL={ca_serial}\n")
    monkeypatch.setenv("CA_CERT", ca_cert)
    monkeypatch.setenv("OUTPUT_DIR", str(tmp_path / "certs"))

    assert cli.main(["--cn", "api", "--san", "IP:10.0.0.7"]) == 0
    assert (tmp_path / "certs" / "api.crt").exists()
    assert "Certificate signed successfully:" in capsys.readouterr().out


def test_main_reports_issuance_error(ca_files, tmp_path, capsys):
    ca_cert, ca_key, _ = ca_files
    code = cli.main(["--cn", "api", "--san", "DNS:api", "--ca-cert", ca_cert, "--ca-key", ca_key,
                     "--ca-serial", str(tmp_path / "missing.srl"), "--output-dir", str(tmp_path)])
    assert code == 1
    assert "Error: cannot read CA serial file" in capsys.readouterr().err


def _flags(ca_files, out, *extra):
    ca_cert, ca_key, ca_serial = ca_files
    return ["--ca-cert", ca_cert, "--ca-key", ca_key, "--ca-serial", ca_serial,
            "--output-dir", str(out), *extra]


def test_main_reports_duration_overflow(ca_files, tmp_path, capsys):
    code = cli.main(_flags(ca_files, tmp_path, "--cn", "api", "--san", "DNS:api",
                           "--duration", "3000000"))
    assert code == 1
    assert "Error: duration of 3000000 days" in capsys.readouterr().err
    assert not (tmp_path / "api_key.pem").exists()


def test_main_reports_overlong_common_name(ca_files, tmp_path, capsys):
    code = cli.main(_flags(ca_files, tmp_path, "--cn", "a" * 65, "--san", "DNS:api"))
    assert code == 1
    assert "Error: invalid common name" in capsys.readouterr().err


def test_main_reports_output_dir_that_is_a_file(ca_files, tmp_path, capsys):
    target = tmp_path / "taken"
    target.write_text("")
    code = cli.main(_flags(ca_files, target, "--cn", "api", "--san", "DNS:api"))
    assert code == 1
    assert f"Error: cannot create output directory {target}" in capsys.readouterr().err


def test_main_accepts_zero_padded_ip_san(ca_files, tmp_path):
    code = cli.main(_flags(ca_files, tmp_path, "--cn", "api", "--san", "IP:192.168.001.010"))
    assert code == 0
    assert (tmp_path / "api.crt").exists()
