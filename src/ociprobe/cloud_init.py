"""Cloud-init user-data for probe instances.

The probe instance accepts password-based root login over SSH so an operator
can inspect it while the probe runs. The document is rendered with PyYAML and
passed to the instance base64-encoded in the `user_data` metadata key.
"""

import base64

import yaml

SSHD_CONFIG = "/etc/ssh/sshd_config"


def render_cloud_config(root_password: str) -> str:
    """Render the #cloud-config document enabling root password login.

    Args:
        root_password: Password set for the root account

    Returns:
        Cloud-init YAML content
    """
    if not root_password:
        raise ValueError("root_password must not be empty")

    document = {
        "ssh_pwauth": True,
        "chpasswd": {
            "list": f"root:{root_password}\n",
            "expire": False,
        },
        "runcmd": [
            f"sed -i 's/PasswordAuthentication no/PasswordAuthentication yes/' {SSHD_CONFIG}",
            f"sed -i 's/#PermitRootLogin prohibit-password/PermitRootLogin yes/' {SSHD_CONFIG}",
            "systemctl restart sshd",
        ],
    }
    return "#cloud-config\n" + yaml.safe_dump(document, default_flow_style=False, sort_keys=False)


def encode_user_data(cloud_config: str) -> str:
    """Base64-encode user-data for instance metadata."""
    return base64.b64encode(cloud_config.encode("utf-8")).decode("ascii")


__all__ = ["encode_user_data", "render_cloud_config"]
