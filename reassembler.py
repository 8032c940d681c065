"""
reassembler.py — Stitches translated sections back into one config.

Output layout per translated section:

  ! --- <section name> ---
  <translated line>
  ...
  !

Sections are emitted in ascending priority; sections without translated lines
contribute nothing.
"""

import logging
from datetime import datetime
from typing import Optional

from models import Advisory, Section

logger = logging.getLogger(__name__)

OUTPUT_PREFIX    = "bridged_config"
OUTPUT_EXTENSION = ".cfg"
ADVISORY_MARKER  = "! ADVISORY FIX:"


def render_section(section: Section) -> str:
    if not section.translated_lines:
        return ""
    body = "\n".join(section.translated_lines)
    return f"! --- {section.name} ---\n{body}\n!\n"


def reassemble(sections: list[Section]) -> str:
    """Pure: same sections in, byte-identical text out. The input list is not reordered."""
    ordered = sorted(sections, key=lambda s: s.priority)
    return "".join(render_section(s) for s in ordered)


def apply_advisory(sections: list[Section], advisory: Advisory) -> bool:
    """
    Append an advisory's fix to its section's translated lines and mark the
    new indices as modified. Returns False (nothing changed) when the
    advisory has no suggested config or its section is not in the list.

    Not idempotent: applying the same advisory twice appends the fix twice.
    """
    if not advisory.suggested_config:
        return False

    target: Optional[Section] = next(
        (s for s in sections if s.identifier == advisory.section_id), None
    )
    if target is None:
        logger.warning("Advisory targets unknown section %s", advisory.section_id.value)
        return False

    current = target.translated_lines or []
    start = len(current)
    fix_lines = [f"{ADVISORY_MARKER} {advisory.message}", advisory.suggested_config]
    target.translated_lines = current + fix_lines
    target.modified_line_indices.update(range(start, start + len(fix_lines)))
    return True


def output_filename(now: Optional[datetime] = None) -> str:
    """Timestamped download name, e.g. bridged_config_1760659200000.cfg."""
    now = now or datetime.now()
    return f"{OUTPUT_PREFIX}_{round(now.timestamp() * 1000)}{OUTPUT_EXTENSION}"
