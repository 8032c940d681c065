"""
models.py — Pydantic models for the config migration API.
"""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime


class SectionType(str, Enum):
    SYSTEM     = "SYSTEM"
    USERS      = "USERS"
    AAA        = "AAA"
    TACACS     = "TACACS"
    RADIUS     = "RADIUS"
    VLANS      = "VLANS"
    INTERFACES = "INTERFACES"
    VTY        = "VTY"
    CONSOLE    = "CONSOLE"
    ROUTING    = "ROUTING"
    ACLS       = "ACLS"
    STP        = "STP"
    QOS        = "QOS"
    SNMP       = "SNMP"
    LOGGING    = "LOGGING"
    NTP        = "NTP"
    OTHER      = "OTHER"


SectionStatus = Literal["pending", "converting", "success", "warning", "error"]
LogType = Literal["SUCCESS", "WARNING", "INFO", "ERROR"]


class Section(BaseModel):
    """
    One classified run of configuration lines.
    name/priority always come from SECTION_METADATA for the identifier.
    """
    identifier: SectionType
    name: str
    priority: int
    raw_lines: list[str] = []
    translated_lines: Optional[list[str]] = None
    # Indices into translated_lines patched by an applied advisory
    modified_line_indices: set[int] = Field(default_factory=set)
    status: SectionStatus = "pending"


class TargetSpec(BaseModel):
    source_model: str = Field(default="", description="Legacy hardware model, e.g. 'Catalyst 3750'")
    source_ios: str = Field(default="", description="Legacy software version")
    model: str = Field(default="Catalyst 9300", description="Target hardware model")
    target_ios: str = Field(default="IOS-XE 17.9.1", description="Target software version")


class ConversionWarning(BaseModel):
    severity: str = "medium"
    message: str
    action: Optional[str] = None
    instructions: Optional[str] = None
    suggested_config: Optional[str] = Field(default=None, alias="suggestedConfig")

    model_config = {"populate_by_name": True}


class Advisory(ConversionWarning):
    """A ConversionWarning pinned to the section that raised it."""
    section_id: SectionType
    section_name: str


class DeploymentStep(BaseModel):
    order: int = 0
    phase: str = ""
    task: str = ""
    verification_cmd: str = Field(default="", alias="verificationCmd")
    expected_result: str = Field(default="", alias="expectedResult")

    model_config = {"populate_by_name": True}


class ConversionResult(BaseModel):
    """Translator response for one section (camelCase keys accepted as sent by the model)."""
    section_id: str = Field(default="", alias="sectionId")
    status: str = "success"
    converted_commands: list[str] = Field(default_factory=list, alias="convertedCommands")
    warnings: list[ConversionWarning] = []
    notes: list[str] = []
    confidence: str = "medium"
    deployment_steps: list[DeploymentStep] = Field(default_factory=list, alias="deploymentSteps")

    model_config = {"populate_by_name": True}


class HardwareInfo(BaseModel):
    model: Optional[str] = None
    ios: Optional[str] = None


class LogEntry(BaseModel):
    time: str
    type: LogType = "INFO"
    msg: str


class DeviceRequest(BaseModel):
    host: str = Field(..., description="Switch IP address or hostname")
    username: str = Field(..., description="SSH username")
    password: str = Field(..., description="SSH password")
    port: int = Field(default=22, description="SSH port")
    secret: Optional[str] = Field(default=None, description="Enable secret (if required)")

    model_config = {"json_schema_extra": {"example": {"host": "192.168.1.10", "username": "admin", "password": "Cisco123!", "port": 22}}}


class MigrationRequest(BaseModel):
    """
    Migration request — sectionize config_text, translate each section in
    priority order, reassemble the result.
    """
    config_text: str = Field(..., description="Raw legacy configuration text")
    target: TargetSpec = Field(default_factory=TargetSpec)
    provider: Optional[Literal["google", "mistral", "ollama"]] = Field(
        default=None,
        description="Overrides the configured provider for this run"
    )
    model: Optional[str] = Field(default=None, description="Overrides the configured model for this run")
    detect_hardware: bool = Field(default=True, description="Fill empty source model/IOS from the config before translating")
    final_review: bool = Field(default=True, description="Run a syntax review over the reassembled output")

    model_config = {"json_schema_extra": {"example": {
                "config_text": "hostname SW1\n!\nvlan 10\n name DATA\n!\n",
                "target": {"model": "Catalyst 9300", "target_ios": "IOS-XE 17.9.1"},
                "provider": "google",
}}}


class MigrationJobStatus(BaseModel):
    job_id: str
    status: Literal["queued", "running", "done", "cancelled", "failed"]
    provider: str = ""
    model: str = ""
    target: TargetSpec = Field(default_factory=TargetSpec)
    sections: list[Section] = []
    advisories: list[Advisory] = []
    deployment_plan: list[DeploymentStep] = []
    logs: list[LogEntry] = []
    target_config: str = ""
    error: Optional[str] = None
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
