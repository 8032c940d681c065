"""
llm_api.py — LLM translation clients for the config migrator.

Covers:
  - Google Gemini   POST /models/{model}:generateContent   (responseSchema-constrained JSON)
  - Mistral         POST /chat/completions                 (response_format json_object)
                    GET  /models                           list available models
  - Ollama          OpenAI-compatible /v1 endpoints of a local Ollama server

Every converter exposes the same operations:
  identify_hardware(config, model)        → HardwareInfo | None
  convert_section(section, target, model) → ConversionResult
  run_final_review(config, target, model) → list[LogEntry]

Rate limits: 429 / RESOURCE_EXHAUSTED responses are retried with exponential
backoff (2s, 4s, ...) by call_with_retry. Anything else propagates.
"""

import asyncio
import json
import logging
import httpx
from datetime import datetime
from typing import Optional

from models import ConversionResult, HardwareInfo, LogEntry, Section, TargetSpec

logger = logging.getLogger(__name__)

DEFAULT_MODEL        = "gemini-3-flash-preview"
DETECTION_CHAR_LIMIT = 5000
REQUEST_TIMEOUT      = 120.0
MAX_RETRIES          = 3
INITIAL_RETRY_DELAY  = 2.0  # seconds, doubled on every retry


class LLMAPIError(Exception):
    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"HTTP {status_code}: {message}")


def is_rate_limit(exc: Exception) -> bool:
    if isinstance(exc, LLMAPIError) and exc.status_code == 429:
        return True
    text = str(exc)
    return "429" in text or "RESOURCE_EXHAUSTED" in text


async def call_with_retry(fn, max_retries: int = MAX_RETRIES, initial_delay: float = INITIAL_RETRY_DELAY):
    """Await fn(), retrying only rate-limit failures with exponential backoff."""
    last_error: Optional[Exception] = None
    for attempt in range(max_retries):
        try:
            return await fn()
        except Exception as e:
            last_error = e
            if is_rate_limit(e) and attempt < max_retries - 1:
                delay = initial_delay * (2 ** attempt)
                logger.warning(
                    "Rate limit hit, retrying in %.1fs (attempt %d/%d)",
                    delay, attempt + 1, max_retries
                )
                await asyncio.sleep(delay)
                continue
            raise
    raise last_error


def now() -> str:
    return datetime.now().strftime("%H:%M:%S")


# ------------------------------------------------------------------ #
#  Prompts                                                             #
# ------------------------------------------------------------------ #

CONVERSION_JSON_SHAPE = """{
  "sectionId": string,
  "status": "success" | "warning",
  "convertedCommands": string[],
  "warnings": [{ "severity": "high" | "medium", "message": string, "instructions": string, "suggestedConfig": string }],
  "deploymentSteps": [{ "order": number, "phase": string, "task": string, "verificationCmd": string, "expectedResult": string }],
  "notes": string[],
  "confidence": "high" | "medium"
}"""


def build_conversion_prompt(section: Section, target: TargetSpec) -> str:
    commands = "\n".join(section.raw_lines)
    return f"""
You are a Cisco configuration migration engineer.
Convert the configuration section below to the target platform.
Output ONLY a valid JSON object matching the schema at the end.

PLATFORMS:
- Source: {target.source_model or 'Unknown Model'} ({target.source_ios or 'Unknown IOS'})
- Target: {target.model or 'Catalyst 9300'} ({target.target_ios or 'IOS-XE 17.x'})

If the source platform is 'Unknown', infer it from the command syntax.
If the target is empty, assume a Catalyst 9300 running IOS-XE 17.x.

SOURCE CONFIG SECTION: [{section.name}]
Commands:
{commands}

RULES:
1. Output must paste cleanly at 'configure terminal'.
2. Order commands so dependencies are met (VLANs before interface assignment, NTP before logging).
3. Separate major blocks with '!'. Sub-mode blocks end with '!' or 'exit'.
4. Every warning carries 'instructions' (plain English) and 'suggestedConfig' (CLI fix).
5. For AAA, interface and routing sections, include 'deploymentSteps' with verification commands.

JSON schema:
{CONVERSION_JSON_SHAPE}
"""


def build_detection_prompt(config: str) -> str:
    snippet = config[:DETECTION_CHAR_LIMIT]
    return f"""
Identify the hardware model and IOS version of the Cisco configuration snippet below.
Look for 'version', '! Last configuration change', boot statements, or model-specific syntax.
Return exactly this JSON: {{ "model": string, "ios": string }}
Snippet:
{snippet}
"""


def build_review_prompt(config: str, target: TargetSpec) -> str:
    return f"""
Review this final Cisco configuration for {target.model or 'the target platform'}.
Check for syntax errors, hierarchy breaks (missing '!' or 'exit'), and logical ordering.

Config:
{config}

Return a JSON array of entries: [{{ "type": "SUCCESS" | "WARNING" | "ERROR", "message": string }}]
"""


# ------------------------------------------------------------------ #
#  Response helpers                                                    #
# ------------------------------------------------------------------ #

def to_conversion_result(section: Section, payload: dict) -> ConversionResult:
    result = ConversionResult.model_validate(payload)
    # The model's own sectionId is not trusted
    result.section_id = section.identifier.value
    return result


def parse_review_entries(payload) -> list[LogEntry]:
    """Accepts a bare list or a {"logs": [...]} wrapper."""
    if isinstance(payload, dict):
        payload = payload.get("logs", [])
    if not isinstance(payload, list):
        return []

    entries = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        entry_type = str(item.get("type") or "INFO").upper()
        if entry_type not in ("SUCCESS", "WARNING", "INFO", "ERROR"):
            entry_type = "INFO"
        entries.append(LogEntry(
            time=now(),
            type=entry_type,
            msg=item.get("message") or "Review complete.",
        ))
    return entries


# ------------------------------------------------------------------ #
#  Base converter                                                      #
# ------------------------------------------------------------------ #

class BaseConverter:
    """Shared HTTP plumbing; subclasses implement _complete_json()."""

    provider = ""

    def __init__(self, base_url: str, headers: Optional[dict] = None):
        self.base_url = base_url.rstrip("/")
        self.headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            **(headers or {}),
        }

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(headers=self.headers, timeout=REQUEST_TIMEOUT)

    async def _get(self, path: str, params: dict = None) -> dict | list:
        async with self._client() as client:
            resp = await client.get(f"{self.base_url}{path}", params=params)
            self._raise_for_status(resp)
            return resp.json()

    async def _post(self, path: str, body: dict) -> dict | list:
        async with self._client() as client:
            resp = await client.post(f"{self.base_url}{path}", json=body)
            self._raise_for_status(resp)
            return resp.json()

    def _raise_for_status(self, resp: httpx.Response):
        if resp.status_code >= 400:
            try:
                msg = _error_message(resp.json())
            except ValueError:
                msg = resp.text or f"HTTP {resp.status_code}"
            raise LLMAPIError(resp.status_code, msg)

    async def _complete_json(self, model: str, prompt: str, schema: Optional[dict] = None) -> str:
        raise NotImplementedError

    # ------------------------------------------------------------------ #
    #  Operations                                                          #
    # ------------------------------------------------------------------ #

    async def test_connection(self, model: str = DEFAULT_MODEL) -> bool:
        """Returns True when the provider answers a trivial prompt."""
        try:
            text = await call_with_retry(lambda: self._complete_json(model, 'Reply with {"ok": true}'))
            return bool(text)
        except Exception as e:
            logger.error("%s connection test failed: %s", self.provider, e)
            return False

    async def identify_hardware(self, config: str, model: str = DEFAULT_MODEL) -> Optional[HardwareInfo]:
        """Guess the source model/IOS from the first 5000 chars. None when the answer is unusable."""
        prompt = build_detection_prompt(config)

        async def attempt():
            text = await self._complete_json(model, prompt, DETECTION_SCHEMA)
            try:
                return HardwareInfo.model_validate(json.loads(text or "{}"))
            except ValueError as e:
                logger.warning("Hardware identification failed: %s", e)
                return None

        return await call_with_retry(attempt)

    async def convert_section(self, section: Section, target: TargetSpec, model: str = DEFAULT_MODEL) -> ConversionResult:
        prompt = build_conversion_prompt(section, target)

        async def attempt():
            text = await self._complete_json(model, prompt, CONVERSION_SCHEMA)
            return to_conversion_result(section, json.loads(text or "{}"))

        logger.info("[%s] Converting section %s (%d line(s))", self.provider, section.name, len(section.raw_lines))
        return await call_with_retry(attempt)

    async def run_final_review(self, config: str, target: TargetSpec, model: str = DEFAULT_MODEL) -> list[LogEntry]:
        prompt = build_review_prompt(config, target)

        async def attempt():
            text = await self._complete_json(model, prompt, REVIEW_SCHEMA)
            return parse_review_entries(json.loads(text or "[]"))

        return await call_with_retry(attempt)


def _error_message(detail) -> str:
    if isinstance(detail, dict):
        err = detail.get("error")
        if isinstance(err, dict):
            status = err.get("status")
            message = err.get("message", str(err))
            return f"{status}: {message}" if status else message
        if err:
            return str(err)
        return str(detail.get("message") or detail.get("detail") or detail)
    return str(detail)


# ------------------------------------------------------------------ #
#  Gemini                                                              #
# ------------------------------------------------------------------ #

CONVERSION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "sectionId": {"type": "STRING"},
        "status": {"type": "STRING"},
        "convertedCommands": {"type": "ARRAY", "items": {"type": "STRING"}},
        "warnings": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "severity": {"type": "STRING"},
                    "message": {"type": "STRING"},
                    "instructions": {"type": "STRING"},
                    "suggestedConfig": {"type": "STRING"},
                },
                "required": ["severity", "message", "instructions"],
            },
        },
        "deploymentSteps": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "order": {"type": "NUMBER"},
                    "phase": {"type": "STRING"},
                    "task": {"type": "STRING"},
                    "verificationCmd": {"type": "STRING"},
                    "expectedResult": {"type": "STRING"},
                },
            },
        },
        "notes": {"type": "ARRAY", "items": {"type": "STRING"}},
        "confidence": {"type": "STRING"},
    },
    "required": ["sectionId", "status", "convertedCommands", "confidence"],
}

DETECTION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "model": {"type": "STRING"},
        "ios": {"type": "STRING"},
    },
}

REVIEW_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "type": {"type": "STRING"},
            "message": {"type": "STRING"},
        },
    },
}


class GeminiConverter(BaseConverter):
    provider = "google"

    def __init__(self, api_key: str, base_url: str = "https://generativelanguage.googleapis.com/v1beta"):
        self.api_key = api_key
        super().__init__(base_url, {"x-goog-api-key": api_key})

    async def _complete_json(self, model: str, prompt: str, schema: Optional[dict] = None) -> str:
        body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if schema is not None:
            body["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            }
        data = await self._post(f"/models/{model}:generateContent", body)
        return _candidate_text(data)


def _candidate_text(data: dict) -> str:
    candidates = data.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(p.get("text", "") for p in parts)


# ------------------------------------------------------------------ #
#  Mistral / Ollama (OpenAI-style chat completions)                    #
# ------------------------------------------------------------------ #

class MistralConverter(BaseConverter):
    provider = "mistral"

    def __init__(self, api_key: str, endpoint: str = "https://api.mistral.ai/v1"):
        self.api_key = api_key
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        super().__init__(endpoint, headers)

    async def _complete_json(self, model: str, prompt: str, schema: Optional[dict] = None) -> str:
        body = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {"type": "json_object"},
        }
        data = await self._post("/chat/completions", body)
        choices = data.get("choices") or []
        if not choices:
            return ""
        return choices[0]["message"]["content"] or ""

    async def fetch_models(self) -> list[str]:
        """GET /models — ids of the models this key can use."""
        data = await call_with_retry(lambda: self._get("/models"))
        return [m["id"] for m in data.get("data", [])]

    async def run_final_review(self, config: str, target: TargetSpec, model: str = DEFAULT_MODEL) -> list[LogEntry]:
        """Review failures are not fatal here: an HTTP error yields no entries."""
        try:
            return await super().run_final_review(config, target, model)
        except LLMAPIError as e:
            logger.warning("[%s] Final review unavailable: %s", self.provider, e.message)
            return []


class OllamaConverter(MistralConverter):
    provider = "ollama"

    def __init__(self, endpoint: str = "http://localhost:11434"):
        super().__init__(api_key="", endpoint=f"{endpoint.rstrip('/')}/v1")


def get_converter(provider: str, settings) -> BaseConverter:
    """Build the converter for `provider` from AppSettings."""
    if provider == "mistral":
        return MistralConverter(settings.mistral_api_key, settings.mistral_endpoint)
    if provider == "ollama":
        return OllamaConverter(settings.ollama_endpoint)
    return GeminiConverter(settings.gemini_api_key or "", settings.gemini_base_url)
