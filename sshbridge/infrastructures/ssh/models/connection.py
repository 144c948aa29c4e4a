from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, SecretStr


class AlgorithmSet(BaseModel):
    """카테고리별 SSH 알고리즘 선호 순서 (None 이면 기본값 사용)"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kex: Optional[List[str]] = None
    server_host_key: Optional[List[str]] = Field(None, alias="serverHostKey")
    cipher: Optional[List[str]] = None
    hmac: Optional[List[str]] = None
    compress: Optional[List[str]] = None


class SSHCredential(BaseModel):
    """SSH 연결에 필요한 자격 증명 정보를 담는 모델

    publickey 인증은 private_key (PEM 본문) 가 private_key_path 보다 우선한다.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    host: str = Field(..., min_length=1)
    port: int = Field(22, gt=0, le=65535)
    username: str = Field(..., min_length=1)
    password: Optional[SecretStr] = None
    private_key: Optional[SecretStr] = Field(None, alias="privateKey")
    private_key_path: Optional[str] = Field(None, alias="privateKeyPath")
    passphrase: Optional[SecretStr] = None

    @property
    def password_value(self) -> Optional[str]:
        return self.password.get_secret_value() if self.password else None

    @property
    def private_key_value(self) -> Optional[str]:
        return self.private_key.get_secret_value() if self.private_key else None

    @property
    def passphrase_value(self) -> Optional[str]:
        return self.passphrase.get_secret_value() if self.passphrase else None


class ConnectionConfig(SSHCredential):
    """display surface 가 connect 메시지로 전달하는 연결 설정

    연결 시도가 시작되면 변경하지 않으며, 레거시 재시도는 model_copy 로 파생본을 만든다.
    """
    algorithms: Optional[AlgorithmSet] = None
    auth_methods: Optional[List[str]] = Field(None, alias="authMethods")
    try_keyboard: bool = Field(True, alias="tryKeyboard")


class TransportOptions(SSHCredential):
    """SSH transport 에 실제로 전달되는 연결 옵션"""
    ready_timeout: float = 30.0
    keepalive_interval: int = 30
    try_keyboard: bool = True
    auth_methods: List[str] = ["keyboard-interactive", "password"]
    algorithms: AlgorithmSet = AlgorithmSet()
    # 명시적인 키가 없을 때 publickey 인증에 사용할 기본 키 파일 (존재하는 것만)
    default_key_paths: List[str] = []


class SSHShellTerminalConfig(BaseModel):
    """SSH Shell 터미널 설정 정보 모델"""
    term: str = 'vt100'
    width: int = 80
    height: int = 24
    width_pixels: int = 0
    height_pixels: int = 0
