from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class SavedSession(BaseModel):
    """sessions.yaml 의 세션 항목 (자격 증명은 저장하지 않음)

    YAML 의 PascalCase 키 (DeviceType, Vendor ...) 와 API 응답의 camelCase 키를 모두 읽는다.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    folder_name: str = Field(
        ..., validation_alias=AliasChoices("folder_name", "folderName"), serialization_alias="folderName"
    )
    display_name: str = Field(
        ..., validation_alias=AliasChoices("display_name", "displayName"), serialization_alias="displayName"
    )
    host: str
    port: int = 22
    device_type: Optional[str] = Field(
        None, validation_alias=AliasChoices("DeviceType", "deviceType"), serialization_alias="deviceType"
    )
    vendor: Optional[str] = Field(
        None, validation_alias=AliasChoices("Vendor", "vendor"), serialization_alias="vendor"
    )
    device_model: Optional[str] = Field(
        None, validation_alias=AliasChoices("Model", "model"), serialization_alias="model"
    )
    software_version: Optional[str] = Field(
        None, validation_alias=AliasChoices("SoftwareVersion", "softwareVersion"), serialization_alias="softwareVersion"
    )
    credsid: Optional[str] = None

    @field_validator("port", mode="before")
    @classmethod
    def _default_port(cls, value: Any) -> Any:
        return 22 if value in (None, "") else value

    @field_validator("credsid", "software_version", mode="before")
    @classmethod
    def _as_text(cls, value: Any) -> Any:
        return None if value is None else str(value)


class SessionFolder(BaseModel):
    folder_name: str = Field(
        ..., validation_alias=AliasChoices("folder_name", "folderName"), serialization_alias="folderName"
    )
    sessions: List[SavedSession] = Field(default_factory=list)


class SessionListResponse(BaseModel):
    folders: List[SessionFolder]
    total: int


class TerminalSummary(BaseModel):
    """활성 터미널 연결 요약"""
    model_config = ConfigDict(populate_by_name=True)

    connection_id: str = Field(..., alias="connectionId")
    session_id: str = Field(..., alias="sessionId")
    status: str
    transport_mode: str = Field(..., alias="transportMode")
    dimensions: Dict[str, int]
    host: Optional[str] = None
