#!/usr/bin/env python3
"""
cli.py — Command-line runner for config sectioning and migration.

Usage:
  Show how a config is sectioned (no LLM calls):
    python cli.py --file legacy.cfg --sections

  Migrate a config file with the configured provider:
    python cli.py --file legacy.cfg --target-model "Catalyst 9300" --target-ios "IOS-XE 17.9.1"

  Pull the running config from a live switch and migrate it with Mistral:
    python cli.py --host 192.168.1.10 --user admin --password Cisco123! --provider mistral

Provider keys come from the environment or .env (GEMINI_API_KEY, MISTRAL_API_KEY, ...).
"""

import asyncio
import argparse
import json

from config_sectioner import parse_config
from config_source import ConfigFetcher, ConfigFetchError
from migration_runner import MigrationRunner
from reassembler import output_filename
from models import DeviceRequest, MigrationRequest, TargetSpec
from settings import get_settings

ANSI = {
    "SUCCESS": "\033[92m",
    "WARNING": "\033[93m",
    "ERROR":   "\033[91m",
    "INFO":    "\033[97m",
    "accent":  "\033[96m",
    "muted":   "\033[90m",
    "reset":   "\033[0m",
}

def c(msg, color):
    return f"{ANSI.get(color,'')}{msg}{ANSI['reset']}"

def hr(char="═", n=62):
    print(char * n)


class CLIWebSocket:
    """Stub WebSocket that prints to terminal."""
    async def send_json(self, data: dict):
        t = data.get("type")
        if t == "log":
            print(c(f"  [{data['time']}] {data['msg']}", data.get("level", "INFO")))
        elif t == "section" and data["section"]["status"] == "converting":
            print(c(f"  → {data['section']['name']}", "accent"))


def print_sections(config_text: str):
    sections = parse_config(config_text)
    hr()
    print(c(f"  {len(sections)} SECTION(S)", "accent"))
    hr()
    for s in sections:
        print(c(f"  [{s.priority:>2}] {s.name}  ({len(s.raw_lines)} line(s))", "INFO"))
        for line in s.raw_lines:
            print(c(f"        {line}", "muted"))
    hr()


async def run_migration(req: MigrationRequest, output=None, json_output=None):
    settings = get_settings()
    runner = MigrationRunner(req, settings=settings, ws=CLIWebSocket())

    hr()
    print(c(f"  ENGINE : {runner.provider.upper()} / {runner.model}", "accent"))
    print(f"  SOURCE : {req.target.source_model or 'auto-detect'} ({req.target.source_ios or 'auto-detect'})")
    print(f"  TARGET : {req.target.model} ({req.target.target_ios})")
    hr()

    status = await runner.run()
    print()
    hr("─")
    status_color = "SUCCESS" if status.status == "done" else "ERROR"
    print(c(f"  STATUS     : {status.status.upper()}", status_color))
    print(f"  SECTIONS   : {len(status.sections)}")
    print(f"  ADVISORIES : {len(status.advisories)}")
    if status.error:
        print(c(f"  ERROR      : {status.error}", "ERROR"))
    hr("─")

    for adv in status.advisories:
        print(c(f"  ⚠ [{adv.severity}] {adv.section_name}: {adv.message}", "WARNING"))
        if adv.instructions:
            print(c(f"      {adv.instructions}", "muted"))

    if status.deployment_plan:
        print()
        print(c("  DEPLOYMENT PLAN", "accent"))
        for step in status.deployment_plan:
            print(f"  {step.order:>3}. [{step.phase}] {step.task}")
            if step.verification_cmd:
                print(c(f"       verify: {step.verification_cmd} → {step.expected_result}", "muted"))

    if status.target_config:
        path = output or output_filename()
        with open(path, "w") as f:
            f.write(status.target_config)
        print(c(f"\n  Target config saved to {path}", "muted"))

    if json_output:
        with open(json_output, "w") as f:
            json.dump(status.model_dump(mode="json"), f, indent=2)
        print(c(f"  Full results saved to {json_output}", "muted"))

    return status


def main():
    parser = argparse.ArgumentParser(description="Legacy Cisco → modern platform config migrator")

    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("--file", help="Legacy config file")
    src.add_argument("--host", help="Pull running-config from this switch over SSH")

    # SSH credentials (for --host)
    parser.add_argument("--user",     help="SSH username")
    parser.add_argument("--password", help="SSH password")
    parser.add_argument("--port",     type=int, default=22)
    parser.add_argument("--secret",   help="Enable/secret password")

    parser.add_argument("--sections", action="store_true",
                        help="Only print how the config is sectioned")

    # Platforms
    parser.add_argument("--source-model", dest="source_model", default="")
    parser.add_argument("--source-ios",   dest="source_ios",   default="")
    parser.add_argument("--target-model", dest="target_model", default="Catalyst 9300")
    parser.add_argument("--target-ios",   dest="target_ios",   default="IOS-XE 17.9.1")

    # Engine
    parser.add_argument("--provider", choices=["google", "mistral", "ollama"])
    parser.add_argument("--model",    help="Model name (defaults to MIGRATOR_MODEL)")
    parser.add_argument("--no-detect", dest="detect", action="store_false",
                        help="Skip source hardware auto-detection")
    parser.add_argument("--no-review", dest="review", action="store_false",
                        help="Skip the final syntax review")

    # Output
    parser.add_argument("--output", help="Target config file (default: timestamped .cfg)")
    parser.add_argument("--json",   dest="json_output", help="Save full job status to JSON file")

    args = parser.parse_args()

    if args.host and (not args.user or not args.password):
        parser.error("--user and --password required with --host")

    if args.file:
        with open(args.file) as f:
            config_text = f.read()
    else:
        req = DeviceRequest(
            host=args.host, username=args.user, password=args.password,
            port=args.port, secret=args.secret,
        )
        try:
            config_text = asyncio.run(ConfigFetcher(req).fetch())
        except ConfigFetchError as e:
            parser.exit(1, c(f"  ✗ {e}\n", "ERROR"))

    if args.sections:
        print_sections(config_text)
        return

    req = MigrationRequest(
        config_text=config_text,
        target=TargetSpec(
            source_model=args.source_model, source_ios=args.source_ios,
            model=args.target_model, target_ios=args.target_ios,
        ),
        provider=args.provider,
        model=args.model,
        detect_hardware=args.detect,
        final_review=args.review,
    )
    asyncio.run(run_migration(req, args.output, args.json_output))


if __name__ == "__main__":
    main()
