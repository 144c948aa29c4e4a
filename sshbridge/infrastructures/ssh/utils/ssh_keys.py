import io
import os
from typing import Iterable, List, Optional

import paramiko

from sshbridge.core.logger import logger


# 키 종류를 알 수 없으므로 순서대로 파싱을 시도
KEY_CLASSES = (paramiko.RSAKey, paramiko.Ed25519Key, paramiko.ECDSAKey)


def load_private_key(
    pem: Optional[str] = None,
    path: Optional[str] = None,
    passphrase: Optional[str] = None
) -> paramiko.PKey:
    """PEM 본문 또는 파일 경로에서 개인키 로드

    Raises:
        paramiko.SSHException: 지원하는 키 형식으로 파싱할 수 없거나 passphrase 가 틀림
        OSError: 키 파일을 읽을 수 없음
    """
    if pem is None and path is None:
        raise ValueError("pem or path is required")

    last_error: Optional[Exception] = None
    for key_class in KEY_CLASSES:
        try:
            if pem is not None:
                return key_class.from_private_key(io.StringIO(pem), password=passphrase)
            return key_class.from_private_key_file(path, password=passphrase)
        except (paramiko.SSHException, ValueError) as e:
            last_error = e

    raise paramiko.SSHException(f"Unsupported or encrypted private key: {last_error}")


def discover_default_keys(paths: Iterable[str], passphrase: Optional[str] = None) -> List[paramiko.PKey]:
    """기본 위치의 키 파일 중 로드 가능한 것만 반환"""
    keys = []
    for path in paths:
        path = os.path.expanduser(path)
        if not os.path.isfile(path):
            continue
        try:
            keys.append(load_private_key(path=path, passphrase=passphrase))
            logger.info(f"[SSH] Using key from {path}")
        except (paramiko.SSHException, OSError) as e:
            logger.warning(f"[SSH] Failed to read key from {path}: {e}")

    if not keys:
        logger.warning("[SSH] No SSH keys found in default locations")
    return keys
