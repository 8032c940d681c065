"""
migration_runner.py — Drives one migration run over a sectioned config.

Flow:
  1. Sectionize the raw config (fresh sections on every run)
  2. Optionally auto-detect the source hardware / IOS from the config text
  3. Translate sections one at a time in priority order, pausing
     section_delay seconds between calls to stay under provider rate limits
  4. Reassemble the target config after every section
  5. Sort the collected deployment steps and run the final syntax review

Only one translator call is ever in flight. cancel() is cooperative: it is
checked between sections and never interrupts a call already running.
"""

import asyncio
import logging
import uuid
from datetime import datetime

from models import Advisory, LogEntry, MigrationJobStatus, MigrationRequest, Section
from config_sectioner import ConfigSectioner
from reassembler import apply_advisory, reassemble
from llm_api import BaseConverter, get_converter, is_rate_limit
from settings import AppSettings, get_settings

logger = logging.getLogger(__name__)

QUOTA_MESSAGE = "Quota exceeded. Engine paused to prevent lockout."

LOG_LEVELS = {
    "INFO":    logging.INFO,
    "SUCCESS": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR":   logging.ERROR,
}


def now() -> str:
    return datetime.now().strftime("%H:%M:%S")


class MigrationRunner:
    def __init__(self, req: MigrationRequest, settings: AppSettings = None, ws=None):
        self.req       = req
        self.settings  = settings or get_settings()
        self.ws        = ws
        self.provider  = req.provider or self.settings.active_provider
        self.model     = req.model or self.settings.active_model
        self.sectioner = ConfigSectioner()
        self.status    = MigrationJobStatus(
            job_id=str(uuid.uuid4()),
            status="queued",
            provider=self.provider,
            model=self.model,
            target=req.target.model_copy(),
        )
        self._cancelled = False
        self.task       = None  # background asyncio.Task when started by the API

    async def send(self, event: dict):
        """Stream an event. A client that went away stops the stream, not the run."""
        if not self.ws:
            return
        try:
            await self.ws.send_json(event)
        except Exception as e:
            logger.warning("[MIGRATE %s] Stream closed, continuing without it: %s", self.status.job_id[:8], e)
            self.ws = None

    async def log(self, msg: str, log_type: str = "INFO"):
        entry = LogEntry(time=now(), type=log_type, msg=msg)
        self.status.logs.append(entry)
        logger.log(LOG_LEVELS.get(log_type, logging.INFO), "[MIGRATE %s] %s", self.status.job_id[:8], msg)
        await self.send({"type": "log", "time": entry.time, "level": log_type, "msg": msg})

    async def send_section(self, section: Section):
        await self.send({"type": "section", "section": section.model_dump(mode="json")})

    async def send_status(self):
        await self.send({"type": "job_status", "status": self.status.model_dump(mode="json")})

    # ------------------------------------------------------------------ #
    #  State                                                               #
    # ------------------------------------------------------------------ #

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self):
        """Stop before the next section. A translation already in flight still completes."""
        self._cancelled = True

    def parse(self) -> list[Section]:
        self.status.sections = self.sectioner.parse(self.req.config_text)
        return self.status.sections

    def rebuild(self) -> str:
        self.status.target_config = reassemble(self.status.sections)
        return self.status.target_config

    async def apply_advisory(self, index: int) -> bool:
        """
        Apply a pending advisory's suggested fix, drop it from the pending list
        and rebuild the target config. Advisories without a fix stay pending.
        """
        if not 0 <= index < len(self.status.advisories):
            raise IndexError(f"No pending advisory at index {index}")

        adv = self.status.advisories[index]
        if not apply_advisory(self.status.sections, adv):
            return False

        self.rebuild()
        del self.status.advisories[index]
        await self.log(f"Manual patch applied to {adv.section_name}.", "SUCCESS")
        return True

    # ------------------------------------------------------------------ #
    #  Phases                                                              #
    # ------------------------------------------------------------------ #

    async def detect_hardware(self, converter: BaseConverter):
        """Fill empty source model / IOS fields. Never fails the run."""
        target = self.status.target
        if target.source_model and target.source_ios:
            return

        try:
            info = await converter.identify_hardware(self.req.config_text, self.model)
        except Exception as e:
            logger.warning("Hardware detection failed: %s", e)
            await self.log("Platform auto-detection unavailable — continuing with supplied metadata", "WARNING")
            return

        if info is None:
            return
        target.source_model = target.source_model or info.model or ""
        target.source_ios   = target.source_ios or info.ios or ""
        if info.model or info.ios:
            await self.log(f"Auto-detected platform: {info.model or 'Unknown'} / {info.ios or 'Unknown'}", "SUCCESS")

    async def convert_sections(self, converter: BaseConverter) -> list:
        """Translate every section in order. Returns the collected deployment steps."""
        steps = []
        for i, section in enumerate(self.status.sections):
            if self.cancelled:
                break
            if i > 0:
                await asyncio.sleep(self.settings.section_delay)
                if self.cancelled:
                    break

            section.status = "converting"
            await self.send_section(section)

            try:
                result = await converter.convert_section(section, self.status.target, self.model)
            except Exception:
                section.status = "error"
                await self.send_section(section)
                raise

            section.translated_lines = result.converted_commands
            section.modified_line_indices = set()

            advisories = [
                Advisory(**w.model_dump(), section_id=section.identifier, section_name=section.name)
                for w in result.warnings
            ]
            self.status.advisories.extend(advisories)
            steps.extend(result.deployment_steps)

            section.status = "warning" if advisories else "success"
            self.rebuild()
            await self.log(
                f"{section.name}: {len(result.converted_commands)} command(s), "
                f"{len(advisories)} advisory(ies), confidence {result.confidence}",
                "WARNING" if advisories else "SUCCESS"
            )
            await self.send_section(section)
        return steps

    async def final_review(self, converter: BaseConverter):
        await self.log("Running post-synthesis syntax review…")
        try:
            entries = await converter.run_final_review(self.status.target_config, self.status.target, self.model)
        except Exception as e:
            logger.warning("Final review failed: %s", e)
            await self.log("Syntax review unavailable — output not reviewed", "WARNING")
            return
        for entry in entries:
            await self.log(entry.msg, entry.type)

    # ------------------------------------------------------------------ #
    #  Main run                                                            #
    # ------------------------------------------------------------------ #

    async def run(self) -> MigrationJobStatus:
        self.status.status = "running"
        self.status.target_config = ""
        self.status.advisories = []
        self.status.deployment_plan = []
        self.status.error = None
        await self.send_status()

        sections = self.parse()
        await self.log(f"Parsed {len(sections)} context domains.")
        if not sections:
            self.status.status = "done"
            await self.log("Nothing to migrate — configuration is empty", "WARNING")
            await self.send_status()
            return self.status

        # Built here (not in __init__) so unit test mocks intercept correctly
        converter = get_converter(self.provider, self.settings)

        if self.req.detect_hardware:
            await self.detect_hardware(converter)

        await self.log(f"Initializing migration [{self.provider.upper()} / {self.model}]…")

        try:
            steps = await self.convert_sections(converter)
        except Exception as e:
            logger.error("Migration %s failed: %s", self.status.job_id, e)
            self.status.error = str(e)
            self.status.status = "failed"
            await self.log(QUOTA_MESSAGE if is_rate_limit(e) else f"Synthesis fault in {self.provider} engine.", "ERROR")
            await self.send_status()
            return self.status

        if self.cancelled:
            self.status.status = "cancelled"
            await self.log("Migration core sequence terminated.", "ERROR")
            await self.send_status()
            return self.status

        self.status.deployment_plan = sorted(steps, key=lambda s: s.order)

        if self.req.final_review:
            await self.final_review(converter)

        self.status.status = "done"
        await self.log("Core synthesis finalized.", "SUCCESS")
        await self.send_status()
        return self.status
