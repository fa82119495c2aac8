"""Unit tests for cloud_init module."""

import base64

import pytest
import yaml

from ociprobe.cloud_init import encode_user_data, render_cloud_config


class TestRenderCloudConfig:
    def test_header_and_document(self):
        content = render_cloud_config("hunter2")

        assert content.startswith("#cloud-config\n")
        document = yaml.safe_load(content)
        assert document["ssh_pwauth"] is True
        assert document["chpasswd"] == {"list": "root:hunter2\n", "expire": False}

    def test_enables_root_password_login(self):
        document = yaml.safe_load(render_cloud_config("hunter2"))
        commands = "\n".join(document["runcmd"])

        assert "PasswordAuthentication yes" in commands
        assert "PermitRootLogin yes" in commands
        assert document["runcmd"][-1] == "systemctl restart sshd"

    def test_password_with_yaml_special_characters(self):
        """Passwords are quoted by the YAML dumper, not interpolated."""
        password = "p@ss: #word'\""
        document = yaml.safe_load(render_cloud_config(password))

        assert document["chpasswd"]["list"] == f"root:{password}\n"

    def test_empty_password_rejected(self):
        with pytest.raises(ValueError):
            render_cloud_config("")


class TestEncodeUserData:
    def test_base64(self):
        encoded = encode_user_data("#cloud-config\n")
        assert base64.b64decode(encoded) == b"#cloud-config\n"
