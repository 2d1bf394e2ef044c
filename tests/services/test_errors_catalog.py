import pytest

from nexusnode.errors_catalog import actionable_error


def test_actionable_error_formats_message_with_suggested_action():
    message = actionable_error("build_failed", image="nexus-node", log_file="/tmp/x.log")

    assert "Docker image 'nexus-node' failed to build." in message
    assert "Suggested action:" in message


def test_actionable_error_rejects_unknown_code():
    with pytest.raises(KeyError):
        actionable_error("does_not_exist")
