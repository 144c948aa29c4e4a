from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from typing import List, Optional
from pydantic import Field


class Settings(BaseSettings):
    # 프로젝트 루트 디렉토리 설정
    BASE_DIR: Path = Path(__file__).parent.parent.parent

    # 환경 설정
    ENV: str = Field("development", pattern="^(development|staging|production)$")

    # 기본 애플리케이션 설정
    APP_NAME: str = "SSH Terminal Bridge"
    APP_DESC: str = "Websocket bridge between browser terminal emulators and SSH sessions"
    APP_VERSION: str = "0.1.0"
    DOCS_URL: Optional[str] = "/docs"
    DEBUG: bool = True

    # 로깅 설정
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(funcName)s() - %(message)s"
    LOG_DIR: str = "logs"
    LOG_FILE_NAME: str = "terminal-telemetry.log"
    LOG_MAX_BYTES: int = 1024 * 1024
    LOG_BACKUP_COUNT: int = 5

    # 브라우저 터미널이 붙는 오리진
    CORS_ORIGINS: List[str] = ["*"]

    # 저장된 세션 목록 (YAML)
    SESSIONS_FILE: str = "sessions.yaml"

    # SSH 연결 설정
    SSH_READY_TIMEOUT: float = 30.0
    SSH_KEEPALIVE_INTERVAL: int = 30
    SSH_TERM_TYPE: str = "vt100"
    SSH_DEFAULT_AUTH_METHODS: List[str] = ["keyboard-interactive", "password"]
    SSH_EXEC_PAGER_COMMAND: str = "terminal length 0"
    # publickey 인증에 키가 지정되지 않았을 때 찾아볼 기본 키
    SSH_KEY_DIR: str = "~/.ssh"
    SSH_DEFAULT_KEY_FILES: List[str] = ["id_rsa", "id_ed25519", "id_ecdsa"]
    SSH_SHELL_UNSUPPORTED_SIGNATURES: List[str] = [
        "expected packet type 5, got 90",
        "Protocol error",
        "Channel closed",
    ]

    # 터미널 기본 크기
    TERMINAL_DEFAULT_COLS: int = 80
    TERMINAL_DEFAULT_ROWS: int = 24

    # 대용량 출력 전송 지연 (UI 메시지 큐 포화 방지)
    OUTPUT_THROTTLE_BYTES: int = 5000
    OUTPUT_THROTTLE_WINDOW: float = 0.1
    OUTPUT_THROTTLE_DELAY: float = 0.01

    @property
    def LOG_PATH(self) -> Path:
        """로그 파일 전체 경로"""
        log_dir = Path(self.LOG_DIR)
        if not log_dir.is_absolute():
            log_dir = self.BASE_DIR / log_dir
        return log_dir / self.LOG_FILE_NAME

    @property
    def SESSIONS_PATH(self) -> Path:
        """세션 YAML 파일 전체 경로"""
        path = Path(self.SESSIONS_FILE)
        if not path.is_absolute():
            path = self.BASE_DIR / path
        return path

    # 환경별 설정값 조정
    def configure_for_environment(self):
        if self.ENV == "production":
            self.DEBUG = False
            self.DOCS_URL = None
        elif self.ENV == "development":
            self.DEBUG = True
            self.LOG_LEVEL = "DEBUG"

    # 환경변수 파일 설정
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        env_nested_delimiter='__',
        extra='ignore'
    )


settings = Settings()
settings.configure_for_environment()
