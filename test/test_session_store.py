import textwrap

import pytest

from sshbridge.core.exceptions import ResourceNotFoundException, ValidationException
from sshbridge.domains.terminal.services.session_store import SessionStore


SESSIONS_YAML = textwrap.dedent(
    """
    folders:
      - folder_name: Core
        sessions:
          - display_name: edge-router-1
            host: 10.0.0.1
            port: 22
            DeviceType: cisco_ios
            Vendor: Cisco
            Model: ISR4331
            SoftwareVersion: 16.9
            credsid: 7
            username: should-not-be-read
            password: should-not-be-read
          - name: core-switch
            hostname: 10.0.0.2
          - id: spine-1
            display_name: spine-1
            host: 10.0.1.1
            port: 2222
      - folder_name: Broken
        sessions:
          - display_name: no-host
    """
)


@pytest.fixture
def store(tmp_path) -> SessionStore:
    path = tmp_path / "sessions.yaml"
    path.write_text(SESSIONS_YAML, encoding="utf-8")
    store = SessionStore(path)
    store.load()
    return store


def test_load_reads_folders_and_sessions(store):
    folders = store.list_folders()

    assert [folder.folder_name for folder in folders] == ["Core", "Broken"]
    assert len(folders[0].sessions) == 3
    # host 없는 세션은 건너뜀
    assert folders[1].sessions == []
    assert len(store.list_sessions()) == 3


def test_session_fields_and_defaults(store):
    router = store.get_session("session-0-0")
    switch = store.get_session("session-0-1")
    spine = store.get_session("spine-1")

    assert router.display_name == "edge-router-1"
    assert router.device_type == "cisco_ios"
    assert router.device_model == "ISR4331"
    assert router.software_version == "16.9"
    assert router.credsid == "7"
    assert switch.display_name == "core-switch"
    assert switch.host == "10.0.0.2"
    assert switch.port == 22
    assert spine.port == 2222
    assert spine.folder_name == "Core"


def test_credentials_are_not_stored(store):
    dumped = store.get_session("session-0-0").model_dump()

    assert "password" not in dumped
    assert "username" not in dumped


def test_serialized_session_uses_camel_case(store):
    dumped = store.get_session("session-0-0").model_dump(by_alias=True)

    assert dumped["displayName"] == "edge-router-1"
    assert dumped["folderName"] == "Core"
    assert dumped["deviceType"] == "cisco_ios"
    assert dumped["model"] == "ISR4331"


def test_unknown_session(store):
    with pytest.raises(ResourceNotFoundException):
        store.get_session("nope")


def test_missing_file_is_empty(tmp_path):
    store = SessionStore(tmp_path / "absent.yaml")

    assert store.load() == 0
    assert store.list_folders() == []


def test_bare_folder_list(tmp_path):
    path = tmp_path / "sessions.yaml"
    path.write_text("- folder_name: Lab\n  sessions:\n    - host: 192.168.0.1\n", encoding="utf-8")

    store = SessionStore(path)

    assert store.load() == 1
    assert store.get_session("session-0-0").display_name == "session-0-0"


def test_invalid_yaml_raises_validation_error(tmp_path):
    path = tmp_path / "sessions.yaml"
    path.write_text("folders: [unclosed\n", encoding="utf-8")

    with pytest.raises(ValidationException):
        SessionStore(path).load()


def test_to_connection_config(store):
    config = store.to_connection_config("spine-1", "admin", "pw", authMethods=["password"])

    assert config.host == "10.0.1.1"
    assert config.port == 2222
    assert config.username == "admin"
    assert config.password_value == "pw"
    assert config.auth_methods == ["password"]


def test_to_connection_config_requires_username(store):
    with pytest.raises(ValidationException):
        store.to_connection_config("spine-1", "")
