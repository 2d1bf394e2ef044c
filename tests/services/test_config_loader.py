import pytest

from nexusnode.errors import InstallerError
from nexusnode.services.config_loader import ConfigLoader


def test_config_loader_loads_yaml_mapping(tmp_path):
    config_file = tmp_path / ".nexusnode.yml"
    config_file.write_text(
        "image_name: custom-node\nfetch_attempts: 5\nprobe_hosts:\n  - https://a.example\n",
        encoding="utf-8",
    )

    loader = ConfigLoader()
    loaded = loader.load(str(config_file))

    assert loaded["image_name"] == "custom-node"
    assert loaded["fetch_attempts"] == 5
    assert loaded["probe_hosts"] == ("https://a.example",)


def test_config_loader_rejects_unknown_keys(tmp_path):
    config_file = tmp_path / ".nexusnode.yml"
    config_file.write_text("unknown_key: true\n", encoding="utf-8")

    loader = ConfigLoader()

    with pytest.raises(InstallerError, match="Unknown configuration keys"):
        loader.load(str(config_file))


def test_config_loader_rejects_non_mapping(tmp_path):
    config_file = tmp_path / ".nexusnode.yml"
    config_file.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(InstallerError, match="YAML mapping"):
        ConfigLoader().load(str(config_file))


def test_build_config_applies_overrides_over_file_values():
    loader = ConfigLoader()

    config = loader.build_config(
        {"volume_name": "from-file", "persist": True, "verbose": True},
        persist=False,
        log_file=None,
    )

    assert config.volume_name == "from-file"
    assert config.persist is False
    assert config.log_file == "/tmp/nexus-node-install.log"


def test_node_id_file_follows_mount_path(tmp_path):
    config_file = tmp_path / ".nexusnode.yml"
    config_file.write_text("mount_path: /data\n", encoding="utf-8")
    loader = ConfigLoader()

    config = loader.build_config(loader.load(str(config_file)))

    assert config.mount_path == "/data"
    assert config.node_id_file == "/data/node-id"


def test_node_id_file_is_not_configurable_outside_the_volume():
    with pytest.raises(InstallerError, match="Invalid configuration"):
        ConfigLoader().build_config({"node_id_file": "/root/.nexus/node-id"})


@pytest.mark.parametrize(
    "key, value",
    [
        ("fetch_attempts", 0),
        ("lock_max_polls", 0),
        ("max_prompt_attempts", -1),
        ("fetch_attempts", "3"),
        ("lock_max_polls", True),
        ("fetch_backoff_seconds", -1),
    ],
)
def test_build_config_rejects_out_of_range_limits(key, value):
    with pytest.raises(InstallerError, match=key):
        ConfigLoader().build_config({key: value})
