"""SSH algorithm negotiation policy

연결 시 사용할 알고리즘 선호 순서와 레거시 장비 재시도 설정, 인증 정책을 관리한다.

- 기본 세트: 오래된 네트워크 장비 펌웨어와 최신 서버 모두에서 협상 가능한 보수적 순서.
  chacha20-poly1305 / AES-GCM 같은 최신 AEAD 암호는 제외한다.
- 사용자 지정: 카테고리 단위로 기본 세트를 대체한다 (카테고리끼리는 독립).
- 레거시 세트: 가장 오래된 알고리즘을 앞에 두고 최신 알고리즘을 폴백으로 붙인다.
  보안 수준을 낮추는 결정이므로 retry-with-legacy 요청으로만 사용한다.
"""

from typing import Callable, Iterable, List, Optional, Sequence

from sshbridge.infrastructures.ssh.models.connection import AlgorithmSet, ConnectionConfig


ALGORITHM_CATEGORIES = ("kex", "server_host_key", "cipher", "hmac", "compress")

DEFAULT_ALGORITHMS = AlgorithmSet(
    kex=[
        "diffie-hellman-group14-sha256",
        "diffie-hellman-group-exchange-sha256",
        "ecdh-sha2-nistp256",
        "diffie-hellman-group14-sha1",
        "diffie-hellman-group-exchange-sha1",
        "diffie-hellman-group1-sha1",
    ],
    server_host_key=[
        "rsa-sha2-256",
        "rsa-sha2-512",
        "ssh-rsa",
        "ecdsa-sha2-nistp256",
        "ssh-dss",
    ],
    cipher=[
        "aes128-ctr",
        "aes192-ctr",
        "aes256-ctr",
        "aes128-cbc",
        "aes192-cbc",
        "aes256-cbc",
        "3des-cbc",
    ],
    hmac=[
        "hmac-sha2-256",
        "hmac-sha2-512",
        "hmac-sha1",
        "hmac-md5",
    ],
    compress=[
        "none",
        "zlib@openssh.com",
        "zlib",
    ],
)

LEGACY_ALGORITHMS = AlgorithmSet(
    kex=[
        "diffie-hellman-group1-sha1",
        "diffie-hellman-group14-sha1",
        "diffie-hellman-group-exchange-sha1",
        "diffie-hellman-group-exchange-sha256",
        "diffie-hellman-group14-sha256",
        "ecdh-sha2-nistp256",
    ],
    server_host_key=[
        "ssh-rsa",
        "ssh-dss",
        "ecdsa-sha2-nistp256",
        "rsa-sha2-256",
    ],
    cipher=[
        "3des-cbc",
        "aes128-cbc",
        "aes192-cbc",
        "aes256-cbc",
        "aes128-ctr",
        "aes192-ctr",
        "aes256-ctr",
    ],
    hmac=[
        "hmac-sha1",
        "hmac-md5",
        "hmac-sha1-96",
        "hmac-md5-96",
        "hmac-sha2-256",
        "hmac-sha2-512",
    ],
    compress=[
        "none",
        "zlib@openssh.com",
        "zlib",
    ],
)

LEGACY_AUTH_METHODS = ["keyboard-interactive", "password"]

AUTH_ERROR_MARKERS = ("authentication", "auth")


def select_algorithms(override: Optional[AlgorithmSet] = None) -> AlgorithmSet:
    """기본 세트에 사용자 지정 카테고리를 덮어쓴 최종 알고리즘 세트를 반환"""
    if override is None:
        return DEFAULT_ALGORITHMS

    selected = {}
    for category in ALGORITHM_CATEGORIES:
        custom = getattr(override, category)
        selected[category] = list(custom) if custom else list(getattr(DEFAULT_ALGORITHMS, category))
    return AlgorithmSet(**selected)


def build_legacy_config(config: ConnectionConfig) -> ConnectionConfig:
    """이전 연결 설정에서 레거시 알고리즘 순서를 사용하는 파생 설정을 만든다"""
    return config.model_copy(update={
        "algorithms": LEGACY_ALGORITHMS,
        "auth_methods": list(LEGACY_AUTH_METHODS),
        "try_keyboard": True,
    })


def resolve_auth_methods(config: ConnectionConfig, default: Sequence[str]) -> List[str]:
    """Explicit per-connection order wins over the configured default."""
    if config.auth_methods:
        return list(config.auth_methods)
    return list(default)


def is_shell_unsupported(error: BaseException, signatures: Iterable[str]) -> bool:
    """셸 요청 거부(인터랙티브 셸 미지원 장비) 에러 시그니처인지 확인"""
    text = str(error)
    return any(signature in text for signature in signatures)


def is_auth_error(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in AUTH_ERROR_MARKERS)


def answer_all_with_password(password: Optional[str]) -> Callable[[str, str, list], List[str]]:
    """keyboard-interactive 프롬프트 응답 정책

    네트워크 장비 펌웨어는 표준이 아닌 프롬프트를 보내는 경우가 많아서
    프롬프트 문구와 관계없이 모든 질문에 설정된 비밀번호로 응답한다.
    paramiko auth_interactive 핸들러 시그니처 (title, instructions, prompt_list) 를 따른다.
    """
    answer = password or ""

    def handler(title: str, instructions: str, prompt_list: list) -> List[str]:
        return [answer for _ in prompt_list]

    return handler
