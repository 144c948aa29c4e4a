"""SSH Infrastructure Module

paramiko 기반 SSH transport / 채널과 알고리즘 협상 정책.

Usage:
    from sshbridge.infrastructures.ssh import ParamikoTransport, TransportOptions

    transport = ParamikoTransport()
    await transport.connect(TransportOptions(host="10.0.0.1", username="admin", password="..."))
    channel = await transport.open_shell(SSHShellTerminalConfig(width=120, height=40))
"""

from sshbridge.infrastructures.ssh.algorithms import (
    DEFAULT_ALGORITHMS,
    LEGACY_ALGORITHMS,
    answer_all_with_password,
    build_legacy_config,
    select_algorithms,
)
from sshbridge.infrastructures.ssh.implements.ssh_channel import ParamikoChannel
from sshbridge.infrastructures.ssh.implements.ssh_transport import ParamikoTransport
from sshbridge.infrastructures.ssh.models.connection import (
    AlgorithmSet,
    ConnectionConfig,
    SSHShellTerminalConfig,
    TransportOptions,
)

__all__ = [
    "DEFAULT_ALGORITHMS",
    "LEGACY_ALGORITHMS",
    "answer_all_with_password",
    "build_legacy_config",
    "select_algorithms",
    "ParamikoChannel",
    "ParamikoTransport",
    "AlgorithmSet",
    "ConnectionConfig",
    "SSHShellTerminalConfig",
    "TransportOptions",
]
