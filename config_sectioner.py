"""
config_sectioner.py — Legacy Cisco config sectioner.

Splits a raw running-config into classified sections (system, AAA, VLANs,
interfaces, routing, ...) by testing each line's command prefix against a
fixed rule table. Each section is later translated on its own and the results
stitched back together by the reassembler.

Scan rules:
  - A blank line, or a line that is just '!', ends the current block. The
    buffered block is filed under the current category, which then resets
    to OTHER. Separator lines are dropped.
  - Every other line re-evaluates the current category against PREFIX_RULES
    (raw line, first match wins) and is buffered verbatim. Lines matching no
    rule keep whatever category is current.
  - A block is filed as a whole under the category current when it ends, so a
    stanza that mixes prefixes without a separator follows its last match.

Section metadata:
  name      str   — display name shown in section headers
  priority  int   — output ordering (ascending)
"""

import logging
from typing import Optional

from models import Section, SectionType

logger = logging.getLogger(__name__)


SEPARATOR = "!"


# ── Section metadata ──────────────────────────────────────────────────────────

SECTION_METADATA = {
    SectionType.SYSTEM:     {"name": "System & Hostname",        "priority": 1},
    SectionType.USERS:      {"name": "Local Users",              "priority": 2},
    SectionType.AAA:        {"name": "AAA Configuration",        "priority": 3},
    SectionType.TACACS:     {"name": "TACACS+ Settings",         "priority": 4},
    SectionType.RADIUS:     {"name": "RADIUS Settings",          "priority": 5},
    SectionType.VLANS:      {"name": "VLAN Database",            "priority": 6},
    SectionType.INTERFACES: {"name": "Interface Config",         "priority": 7},
    SectionType.VTY:        {"name": "VTY / Remote Access",      "priority": 8},
    SectionType.CONSOLE:    {"name": "Console / Line Access",    "priority": 9},
    SectionType.ROUTING:    {"name": "Static & Dynamic Routing", "priority": 10},
    SectionType.ACLS:       {"name": "Access Control Lists",     "priority": 11},
    SectionType.STP:        {"name": "Spanning Tree",            "priority": 12},
    SectionType.QOS:        {"name": "Quality of Service",       "priority": 13},
    SectionType.SNMP:       {"name": "SNMP Management",          "priority": 14},
    SectionType.LOGGING:    {"name": "Syslog & Monitoring",      "priority": 15},
    SectionType.NTP:        {"name": "NTP Time Sync",            "priority": 16},
    SectionType.OTHER:      {"name": "Miscellaneous Global",     "priority": 99},
}


# ── Prefix rules ──────────────────────────────────────────────────────────────
# Evaluated top to bottom against the raw (untrimmed) line. Order matters:
# the first matching prefix decides the category.

PREFIX_RULES = [
    ("hostname ",       SectionType.SYSTEM),
    ("username ",       SectionType.USERS),
    ("aaa ",            SectionType.AAA),
    ("tacacs-server ",  SectionType.TACACS),
    ("tacacs server ",  SectionType.TACACS),
    ("radius-server ",  SectionType.RADIUS),
    ("radius server ",  SectionType.RADIUS),
    ("vlan ",           SectionType.VLANS),
    ("interface ",      SectionType.INTERFACES),
    ("line vty ",       SectionType.VTY),
    ("line con ",       SectionType.CONSOLE),
    ("line aux ",       SectionType.CONSOLE),
    ("ip route ",       SectionType.ROUTING),
    ("router ",         SectionType.ROUTING),
    ("access-list ",    SectionType.ACLS),
    ("ip access-list ", SectionType.ACLS),
    ("spanning-tree ",  SectionType.STP),
    ("class-map ",      SectionType.QOS),
    ("policy-map ",     SectionType.QOS),
    ("mls qos",         SectionType.QOS),
    ("snmp-server ",    SectionType.SNMP),
    ("logging ",        SectionType.LOGGING),
    ("ntp ",            SectionType.NTP),
]


def split_lines(config_text: str) -> list[str]:
    """Split on '\\n' only; a trailing '\\r' is dropped so CRLF input reads like LF."""
    return [line[:-1] if line.endswith("\r") else line for line in config_text.split("\n")]


def is_separator(line: str) -> bool:
    """True for whitespace-only lines and '!' block separators."""
    stripped = line.strip()
    return not stripped or stripped == SEPARATOR


def match_prefix(line: str) -> Optional[SectionType]:
    """Return the category of the first rule whose prefix starts the raw line, or None."""
    for prefix, section_type in PREFIX_RULES:
        if line.startswith(prefix):
            return section_type
    return None


def classify_line(line: str, current: SectionType) -> SectionType:
    """Category in effect after reading `line`; unmatched lines keep `current`."""
    return match_prefix(line) or current


def make_section(section_type: SectionType, raw_lines: list[str]) -> Section:
    meta = SECTION_METADATA[section_type]
    return Section(
        identifier = section_type,
        name       = meta["name"],
        priority   = meta["priority"],
        raw_lines  = raw_lines,
    )


# ── Sectioner ─────────────────────────────────────────────────────────────────

class ConfigSectioner:
    def parse(self, config_text: str) -> list[Section]:
        """
        Split config_text into sections, one per non-empty category,
        sorted ascending by priority. Never raises; empty input gives [].
        """
        collected: dict[SectionType, list[str]] = {t: [] for t in SectionType}
        current = SectionType.OTHER
        block: list[str] = []

        for line in split_lines(config_text):
            if is_separator(line):
                if block:
                    collected[current].extend(block)
                    block = []
                current = SectionType.OTHER
                continue

            current = classify_line(line, current)
            block.append(line)

        # Trailing block with no closing separator
        if block:
            collected[current].extend(block)

        sections = [
            make_section(section_type, lines)
            for section_type, lines in collected.items()
            if lines
        ]
        sections.sort(key=lambda s: s.priority)
        logger.debug("Parsed %d section(s) from %d char(s)", len(sections), len(config_text))
        return sections


def parse_config(config_text: str) -> list[Section]:
    return ConfigSectioner().parse(config_text)


def sections_to_dict(sections: list[Section]) -> list[dict]:
    """Serialise parsed sections to plain dicts for JSON responses and CLI output."""
    return [
        {
            "id":        s.identifier.value,
            "name":      s.name,
            "priority":  s.priority,
            "n_lines":   len(s.raw_lines),
            "raw_lines": s.raw_lines,
            "status":    s.status,
        }
        for s in sections
    ]
