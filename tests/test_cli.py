import json

from hostprobe import cli


def test_cli_prints_document(monkeypatch, capsys, sample_snapshot):
    monkeypatch.setattr(cli, "take_snapshot", lambda settings: sample_snapshot)

    exit_code = cli.main([])

    assert exit_code == 0
    document = json.loads(capsys.readouterr().out)
    assert document["cpu_usage"]["cores"] == 2
    assert document["hardware"]["virtualization"]["type"] == "kvm"


def test_cli_passes_overrides_to_settings(monkeypatch, tmp_path, sample_snapshot):
    seen = {}

    def fake_take_snapshot(settings):
        seen["settings"] = settings
        return sample_snapshot

    monkeypatch.setattr(cli, "take_snapshot", fake_take_snapshot)

    cli.main(["--root", str(tmp_path), "--interval", "0.2", "--compact"])

    assert seen["settings"].root_path == str(tmp_path)
    assert seen["settings"].sample_interval_seconds == 0.2


def test_cli_writes_output_file(monkeypatch, capsys, tmp_path, sample_snapshot):
    monkeypatch.setattr(cli, "take_snapshot", lambda settings: sample_snapshot)
    output = tmp_path / "snapshot.json"

    cli.main(["--output", str(output), "--compact"])

    assert capsys.readouterr().out == ""
    document = json.loads(output.read_text(encoding="utf-8"))
    assert document["memory"]["available"] == 3 * 1024**3
