"""Saved session store

sessions.yaml 에서 세션 목록을 읽어 connection config 를 만들 수 있는 형태로 제공한다.
읽기 전용이며 자격 증명은 저장하지 않는다 (username / password 는 호출 측에서 받는다).

파일 형식::

    folders:                      # 또는 최상위가 폴더 리스트
      - folder_name: Core
        sessions:
          - display_name: edge-router-1
            host: 10.0.0.1
            port: 22
            DeviceType: cisco_ios
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import SecretStr, ValidationError

from sshbridge.core.exceptions import ResourceNotFoundException, ValidationException
from sshbridge.core.logger import logger
from sshbridge.domains.terminal.schemas.session import SavedSession, SessionFolder
from sshbridge.infrastructures.ssh.models.connection import ConnectionConfig


class SessionStore:
    """YAML 세션 파일 로더"""

    def __init__(self, path: Path):
        self._path = Path(path)
        self._folders: List[SessionFolder] = []
        self._sessions: Dict[str, SavedSession] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> int:
        """파일을 (다시) 읽는다. 파일이 없으면 빈 목록"""
        self._folders = []
        self._sessions = {}
        self._loaded = True

        if not self._path.exists():
            logger.warning(f"[SessionStore] Sessions file not found: {self._path}")
            return 0

        try:
            with self._path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"[SessionStore] Failed to parse {self._path}: {e}")
            raise ValidationException(detail=f"Invalid sessions file: {e}", original_exception=e)

        for folder_index, raw_folder in enumerate(self._raw_folders(data)):
            folder = self._parse_folder(folder_index, raw_folder)
            self._folders.append(folder)
            for session in folder.sessions:
                self._sessions[session.id] = session

        logger.info(f"[SessionStore] Loaded {len(self._folders)} folders with {len(self._sessions)} sessions")
        return len(self._sessions)

    @staticmethod
    def _raw_folders(data: Any) -> List[Dict[str, Any]]:
        if data is None:
            return []
        if isinstance(data, dict):
            data = data.get("folders") or []
        if not isinstance(data, list):
            raise ValidationException(detail="Sessions file must contain a list of folders")
        return [folder for folder in data if isinstance(folder, dict)]

    @staticmethod
    def _parse_folder(folder_index: int, raw_folder: Dict[str, Any]) -> SessionFolder:
        folder_name = raw_folder.get("folder_name") or f"Unnamed Folder {folder_index}"
        sessions = []

        for session_index, raw in enumerate(raw_folder.get("sessions") or []):
            if not isinstance(raw, dict):
                continue
            entry = dict(raw)
            entry.setdefault("id", f"session-{folder_index}-{session_index}")
            entry["id"] = str(entry["id"])
            entry["folder_name"] = folder_name
            entry["display_name"] = raw.get("display_name") or raw.get("name") or entry["id"]
            entry["host"] = raw.get("host") or raw.get("hostname")
            # 자격 증명 필드는 읽지 않는다
            entry.pop("password", None)
            entry.pop("username", None)

            try:
                sessions.append(SavedSession.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"[SessionStore] Skipping invalid session '{entry['display_name']}' in {folder_name}: {e.error_count()} errors")

        return SessionFolder(folder_name=folder_name, sessions=sessions)

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def list_folders(self) -> List[SessionFolder]:
        self._ensure_loaded()
        return list(self._folders)

    def list_sessions(self) -> List[SavedSession]:
        self._ensure_loaded()
        return list(self._sessions.values())

    def get_session(self, session_id: str) -> SavedSession:
        self._ensure_loaded()
        session = self._sessions.get(session_id)
        if session is None:
            raise ResourceNotFoundException(resource_type="Session", resource_id=session_id)
        return session

    def to_connection_config(
        self,
        session_id: str,
        username: str,
        password: Optional[str] = None,
        **overrides: Any
    ) -> ConnectionConfig:
        """저장된 세션 + 호출 측 자격 증명으로 ConnectionConfig 생성"""
        session = self.get_session(session_id)
        try:
            return ConnectionConfig(
                host=session.host,
                port=session.port,
                username=username,
                password=SecretStr(password) if password else None,
                **overrides
            )
        except ValidationError as e:
            raise ValidationException(
                detail=f"Cannot build connection config for '{session_id}': {e.error_count()} errors",
                original_exception=e
            )

    def __repr__(self) -> str:
        return f"SessionStore(path={self._path}, sessions={len(self._sessions)})"
