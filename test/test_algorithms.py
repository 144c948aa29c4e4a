from pydantic import SecretStr

from sshbridge.infrastructures.ssh.algorithms import (
    DEFAULT_ALGORITHMS,
    LEGACY_ALGORITHMS,
    answer_all_with_password,
    build_legacy_config,
    is_auth_error,
    is_shell_unsupported,
    resolve_auth_methods,
    select_algorithms,
)
from sshbridge.infrastructures.ssh.models.connection import AlgorithmSet, ConnectionConfig


def _config(**kwargs) -> ConnectionConfig:
    return ConnectionConfig(host="10.0.0.1", username="admin", password=SecretStr("x"), **kwargs)


def test_default_set_excludes_aead_ciphers():
    assert not any("gcm" in name or "chacha20" in name for name in DEFAULT_ALGORITHMS.cipher)
    assert DEFAULT_ALGORITHMS.kex[0] == "diffie-hellman-group14-sha256"


def test_legacy_set_prefers_oldest_algorithms():
    assert LEGACY_ALGORITHMS.kex[0] == "diffie-hellman-group1-sha1"
    assert LEGACY_ALGORITHMS.cipher[0] == "3des-cbc"
    assert LEGACY_ALGORITHMS.hmac[0] == "hmac-sha1"
    # 최신 알고리즘은 폴백으로 남아 있음
    assert "aes256-ctr" in LEGACY_ALGORITHMS.cipher


def test_select_without_override_returns_defaults():
    assert select_algorithms(None) == DEFAULT_ALGORITHMS


def test_select_replaces_only_given_categories():
    selected = select_algorithms(AlgorithmSet(cipher=["aes256-ctr"], hmac=[]))

    assert selected.cipher == ["aes256-ctr"]
    assert selected.hmac == DEFAULT_ALGORITHMS.hmac
    assert selected.kex == DEFAULT_ALGORITHMS.kex


def test_algorithm_set_accepts_camel_case_host_key():
    algorithms = AlgorithmSet.model_validate({"serverHostKey": ["ssh-rsa"]})

    assert algorithms.server_host_key == ["ssh-rsa"]


def test_build_legacy_config_keeps_credentials():
    original = _config(port=2222, authMethods=["password"], tryKeyboard=False)

    legacy = build_legacy_config(original)

    assert legacy.host == original.host
    assert legacy.port == 2222
    assert legacy.password_value == "x"
    assert legacy.algorithms == LEGACY_ALGORITHMS
    assert legacy.auth_methods == ["keyboard-interactive", "password"]
    assert legacy.try_keyboard is True
    # 원본은 변경하지 않음
    assert original.algorithms is None
    assert original.auth_methods == ["password"]


def test_resolve_auth_methods_prefers_explicit_order():
    assert resolve_auth_methods(_config(authMethods=["password"]), ["keyboard-interactive"]) == ["password"]
    assert resolve_auth_methods(_config(), ["keyboard-interactive", "password"]) == [
        "keyboard-interactive", "password"
    ]


def test_shell_unsupported_signatures():
    signatures = ["expected packet type 5, got 90", "Protocol error"]

    assert is_shell_unsupported(Exception("Protocol error: expected packet type 5, got 90"), signatures)
    assert is_shell_unsupported(RuntimeError("Protocol error"), signatures)
    assert not is_shell_unsupported(RuntimeError("pty request denied"), signatures)


def test_auth_error_detection():
    assert is_auth_error("SSH authentication failed: All authentication methods failed")
    assert is_auth_error("Auth rejected")
    assert not is_auth_error("Connection refused")


def test_keyboard_interactive_answers_every_prompt_with_password():
    handler = answer_all_with_password("s3cret")

    answers = handler("", "", [("Password: ", False), ("Verification code: ", False), ("PIN", True)])

    assert answers == ["s3cret", "s3cret", "s3cret"]
    assert answer_all_with_password(None)("", "", [("Password: ", False)]) == [""]
