# tests/test_integration.py
# Integration tests — talk to REAL LLM providers and a REAL legacy switch.
#
# SETUP:
#   Copy .env.example to .env and fill in your values, then run:
#     pytest test_integration.py -v -s -m integration
#
# Each test sends real prompts and counts against your provider quota.

import pytest
import os
from dotenv import load_dotenv

from models import MigrationRequest, SectionType, TargetSpec
from config_sectioner import make_section

load_dotenv()

# Read from environment — skip tests whose credentials are missing
GEMINI_API_KEY      = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
GEMINI_MODEL        = os.getenv("TEST_GEMINI_MODEL", "gemini-3-flash-preview")
MISTRAL_API_KEY     = os.getenv("MISTRAL_API_KEY")
MISTRAL_MODEL       = os.getenv("TEST_MISTRAL_MODEL", "mistral-large-latest")
OLLAMA_ENDPOINT     = os.getenv("TEST_OLLAMA_ENDPOINT")
OLLAMA_MODEL        = os.getenv("TEST_OLLAMA_MODEL", "llama3.1")
SWITCH_HOST         = os.getenv("TEST_SWITCH_HOST")
SWITCH_USERNAME     = os.getenv("TEST_SWITCH_USERNAME")
SWITCH_PASSWORD     = os.getenv("TEST_SWITCH_PASSWORD")
SWITCH_SECRET       = os.getenv("TEST_SWITCH_SECRET", "")

skip_no_gemini  = pytest.mark.skipif(not GEMINI_API_KEY,  reason="No GEMINI_API_KEY in .env")
skip_no_mistral = pytest.mark.skipif(not MISTRAL_API_KEY, reason="No MISTRAL_API_KEY in .env")
skip_no_ollama  = pytest.mark.skipif(not OLLAMA_ENDPOINT, reason="No TEST_OLLAMA_ENDPOINT in .env")
skip_no_switch  = pytest.mark.skipif(
    not (SWITCH_HOST and SWITCH_USERNAME and SWITCH_PASSWORD), reason="No real switch configured in .env"
)

TARGET = TargetSpec(source_model="Catalyst 3750", source_ios="12.2(55)SE")


# ------------------------------------------------------------------ #
#  Gemini                                                              #
# ------------------------------------------------------------------ #

class TestRealGemini:

    @skip_no_gemini
    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_connection(self):
        from llm_api import GeminiConverter
        assert await GeminiConverter(GEMINI_API_KEY).test_connection(GEMINI_MODEL) is True

    @skip_no_gemini
    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_identify_hardware(self, legacy_config):
        from llm_api import GeminiConverter

        info = await GeminiConverter(GEMINI_API_KEY).identify_hardware(legacy_config, GEMINI_MODEL)

        print(f"\n  Detected: {info}")
        assert info is not None

    @skip_no_gemini
    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_convert_section(self):
        from llm_api import GeminiConverter

        section = make_section(SectionType.INTERFACES, [
            "interface FastEthernet0/1",
            " switchport mode access",
            " switchport access vlan 10",
            " spanning-tree portfast",
        ])
        result = await GeminiConverter(GEMINI_API_KEY).convert_section(section, TARGET, GEMINI_MODEL)

        print("\n  " + "\n  ".join(result.converted_commands))
        assert result.section_id == "INTERFACES"
        assert len(result.converted_commands) > 0

    @skip_no_gemini
    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_full_migration(self, legacy_config, settings):
        from migration_runner import MigrationRunner

        settings.gemini_api_key = GEMINI_API_KEY
        settings.gemini_base_url = "https://generativelanguage.googleapis.com/v1beta"
        settings.section_delay = 1.0
        req = MigrationRequest(config_text=legacy_config, target=TARGET, provider="google", model=GEMINI_MODEL)

        result = await MigrationRunner(req, settings=settings).run()

        print(f"\n  Status:     {result.status}")
        print(f"  Advisories: {len(result.advisories)}")
        print(f"  Plan steps: {len(result.deployment_plan)}")
        assert result.status == "done", result.error
        assert "! --- System & Hostname ---" in result.target_config


# ------------------------------------------------------------------ #
#  Mistral / Ollama                                                    #
# ------------------------------------------------------------------ #

class TestRealMistral:

    @skip_no_mistral
    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_fetch_models(self):
        from llm_api import MistralConverter

        models = await MistralConverter(MISTRAL_API_KEY).fetch_models()

        print(f"\n  {len(models)} model(s): {', '.join(models[:5])}…")
        assert len(models) > 0

    @skip_no_mistral
    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_convert_section(self):
        from llm_api import MistralConverter

        section = make_section(SectionType.VLANS, ["vlan 10", " name DATA", "vlan 20", " name VOICE"])
        result = await MistralConverter(MISTRAL_API_KEY).convert_section(section, TARGET, MISTRAL_MODEL)

        assert result.section_id == "VLANS"
        assert any("vlan" in c.lower() for c in result.converted_commands)


class TestRealOllama:

    @skip_no_ollama
    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_connection(self):
        from llm_api import OllamaConverter
        assert await OllamaConverter(OLLAMA_ENDPOINT).test_connection(OLLAMA_MODEL) is True


# ------------------------------------------------------------------ #
#  SSH config pull                                                     #
# ------------------------------------------------------------------ #

class TestRealSwitch:

    @skip_no_switch
    @pytest.mark.asyncio
    @pytest.mark.integration
    async def test_fetch_and_section(self):
        """Pull the running config over SSH and section it. Read-only on the switch."""
        from models import DeviceRequest
        from config_source import ConfigFetcher
        from config_sectioner import parse_config

        req = DeviceRequest(
            host=SWITCH_HOST,
            username=SWITCH_USERNAME,
            password=SWITCH_PASSWORD,
            secret=SWITCH_SECRET or None,
        )
        cfg = await ConfigFetcher(req).fetch()
        sections = parse_config(cfg)

        print(f"\n  {len(cfg.splitlines())} line(s), {len(sections)} section(s)")
        for s in sections:
            print(f"    {s.priority:>2}  {s.name:<28} {len(s.raw_lines)} line(s)")

        assert "hostname" in cfg
        assert len(sections) > 0
