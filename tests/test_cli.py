from click.testing import CliRunner

import nexusnode.cli as cli_module


class FakeInstaller:
    captured = {}

    def __init__(self, config, launch=True):
        FakeInstaller.captured = {"config": config, "launch": launch}

    def run(self):
        return 0


def test_install_uses_config_and_allows_cli_override(tmp_path, monkeypatch):
    config_file = tmp_path / "custom.yml"
    config_file.write_text(
        "image_name: custom-node\n"
        "volume_name: custom-data\n"
        "persist: true\n"
        f"log_file: {tmp_path / 'config.log'}\n",
        encoding="utf-8",
    )
    monkeypatch.setattr(cli_module, "NodeInstaller", FakeInstaller)

    runner = CliRunner()
    result = runner.invoke(
        cli_module.main,
        [
            "install",
            "--config",
            str(config_file),
            "--ephemeral",
            "--no-launch",
            "--log-file",
            str(tmp_path / "cli.log"),
        ],
    )

    assert result.exit_code == 0, result.output
    config = FakeInstaller.captured["config"]
    assert config.image_name == "custom-node"
    assert config.volume_name == "custom-data"
    assert config.persist is False
    assert config.log_file == str(tmp_path / "cli.log")
    assert FakeInstaller.captured["launch"] is False


def test_main_without_subcommand_runs_install_with_default_config(tmp_path, monkeypatch):
    (tmp_path / ".nexusnode.yml").write_text(
        f"container_name: from-default\nlog_file: {tmp_path / 'install.log'}\n",
        encoding="utf-8",
    )
    monkeypatch.setattr(cli_module, "NodeInstaller", FakeInstaller)
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, [])

    assert result.exit_code == 0, result.output
    assert FakeInstaller.captured["config"].container_name == "from-default"
    assert FakeInstaller.captured["launch"] is True


def test_install_rejects_unknown_config_keys(tmp_path, monkeypatch):
    config_file = tmp_path / "bad.yml"
    config_file.write_text("not_a_setting: 1\n", encoding="utf-8")
    monkeypatch.setattr(cli_module, "NodeInstaller", FakeInstaller)

    result = CliRunner().invoke(cli_module.main, ["install", "--config", str(config_file)])

    assert result.exit_code != 0
    assert "Unknown configuration keys" in result.output


def test_entrypoint_reads_environment(tmp_path, monkeypatch):
    captured = {}

    class FakeController:
        def __init__(self, **kwargs):
            captured.update(kwargs)

        def run(self):
            return 0

    monkeypatch.setattr(cli_module, "EntrypointController", FakeController)

    result = CliRunner().invoke(
        cli_module.main,
        ["entrypoint"],
        env={
            "NEXUS_NODE_ID_FILE": str(tmp_path / "node-id"),
            "NEXUS_BINARY": "nexus-cli",
            "NEXUS_PERSIST": "0",
        },
    )

    assert result.exit_code == 0, result.output
    assert captured["store"].path == str(tmp_path / "node-id")
    assert captured["binary"] == "nexus-cli"
    assert captured["persist"] is False
    assert captured["max_attempts"] == 20
