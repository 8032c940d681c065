# conftest.py — shared pytest fixtures for the config migrator test suite

import sys
import os

# Ensure the project directory is on the path so backend modules
# (models, config_sectioner, llm_api, etc.) can be imported from tests.
sys.path.insert(0, os.path.dirname(__file__))

import pytest
from unittest.mock import AsyncMock, MagicMock
from models import ConversionResult, HardwareInfo, LogEntry, MigrationRequest, TargetSpec
from settings import AppSettings


# ------------------------------------------------------------------ #
#  Sample configs                                                      #
# ------------------------------------------------------------------ #

LEGACY_CONFIG = """\
version 12.2
!
hostname CORE-SW1
!
username admin privilege 15 secret 5 $1$abcd$xyz
!
aaa new-model
aaa authentication login default group tacacs+ local
!
tacacs-server host 10.1.1.5
tacacs-server key s3cr3t
!
vlan 10
 name DATA
vlan 20
 name VOICE
!
interface GigabitEthernet1/0/1
 description Uplink
 switchport mode trunk
!
interface Vlan10
 ip address 10.10.10.1 255.255.255.0
!
ip route 0.0.0.0 0.0.0.0 10.10.10.254
!
ip access-list extended MGMT
 permit ip 10.0.0.0 0.255.255.255 any
!
spanning-tree mode rapid-pvst
!
mls qos
!
snmp-server community public RO
!
logging host 10.1.1.9
!
ntp server 10.1.1.1
!
line con 0
 logging synchronous
line vty 0 4
 transport input ssh
!
end
"""


@pytest.fixture
def legacy_config():
    return LEGACY_CONFIG


@pytest.fixture
def settings():
    """Settings with no inter-section delay and fixed provider credentials."""
    return AppSettings(
        active_provider="google",
        active_model="gemini-test",
        gemini_api_key="test-gemini-key",
        gemini_base_url="https://gemini.test/v1beta",
        mistral_api_key="test-mistral-key",
        mistral_endpoint="https://mistral.test/v1",
        ollama_endpoint="http://ollama.test:11434",
        section_delay=0,
    )


@pytest.fixture
def migration_request(legacy_config):
    return MigrationRequest(
        config_text=legacy_config,
        target=TargetSpec(model="Catalyst 9300", target_ios="IOS-XE 17.9.1"),
        detect_hardware=False,
        final_review=False,
    )


# ------------------------------------------------------------------ #
#  Converter mock factory                                              #
# ------------------------------------------------------------------ #

def make_conversion_result(section, warnings=None, steps=None, confidence="high"):
    """Echo a section's raw lines back upper-cased as its 'translation'."""
    return ConversionResult(
        section_id=section.identifier.value,
        status="warning" if warnings else "success",
        converted_commands=[line.upper() for line in section.raw_lines],
        warnings=warnings or [],
        deployment_steps=steps or [],
        confidence=confidence,
    )


def make_converter_mock(
    warnings_for=None,
    steps_for=None,
    fail_on=None,
    fail_with=None,
    hardware=None,
    review=None,
):
    """
    Returns an AsyncMock shaped like a BaseConverter.

    warnings_for / steps_for: {SectionType: [...]} attached to that section's result
    fail_on: SectionType whose conversion raises fail_with
    """
    warnings_for = warnings_for or {}
    steps_for = steps_for or {}
    mock = AsyncMock()
    mock.provider = "google"

    async def convert_section(section, target, model):
        if fail_on is not None and section.identifier == fail_on:
            raise fail_with or RuntimeError("translator exploded")
        return make_conversion_result(
            section,
            warnings=warnings_for.get(section.identifier),
            steps=steps_for.get(section.identifier),
        )

    mock.convert_section.side_effect = convert_section
    mock.identify_hardware.return_value = hardware
    mock.run_final_review.return_value = review or [
        LogEntry(time="12:00:00", type="SUCCESS", msg="No hierarchy breaks found"),
    ]
    return mock


@pytest.fixture
def converter_mock():
    return make_converter_mock(hardware=HardwareInfo(model="Catalyst 3750", ios="12.2(55)SE"))


def make_http_response(status_code: int, json_body):
    """Create a fake httpx.Response."""
    import json
    import httpx
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.json.return_value = json_body
    response.text = json.dumps(json_body)
    return response
