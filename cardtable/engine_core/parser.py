"""
Command Parser - Extracts bracketed commands from AI text.

Grammar:
    [Category:Type, key:value, ..., data:{...JSON...}]

Commands may be wrapped in a <command>...</command> block, in which
case only the block is scanned. Brackets and braces are matched by
depth counting, so JSON payloads may contain nested [...] and {...}.

A malformed command is dropped with a log record; parsing continues
with the next bracketed span. Nothing here raises.
"""

from __future__ import annotations
import json
import logging
import re

from .command import Command

logger = logging.getLogger(__name__)

COMMAND_BLOCK_RE = re.compile(r"<command>([\s\S]*?)</command>")
HEADER_RE = re.compile(r"^([^:]+):([\s\S]+)$")
DATA_MARKER = "data:{"


def parse_commands(text: str | None) -> list[Command]:
    """
    Extract all valid commands from a block of text, in textual order.
    """
    if not text or not isinstance(text, str):
        return []

    match = COMMAND_BLOCK_RE.search(text)
    content = match.group(1).strip() if match and match.group(1) else text
    if not content:
        return []

    commands: list[Command] = []
    search_index = 0

    while search_index < len(content):
        start = content.find("[", search_index)
        if start == -1:
            break

        end = _find_matching(content, start, "[", "]")
        if end == -1:
            logger.warning(
                "Unmatched '[' in command text, skipping: %r",
                content[start:start + 60],
            )
            search_index = start + 1
            continue

        parsed = parse_single_command(content[start + 1:end])
        if parsed:
            commands.append(parsed)
        search_index = end + 1

    return commands


def parse_single_command(command_str: str) -> Command | None:
    """
    Parse the inside of one [...] span, e.g. "Game:Start, data:{...}".

    Returns None when the header is missing or the JSON is invalid.
    """
    working = command_str.strip()
    json_data: dict = {}

    marker = working.find(DATA_MARKER)
    if marker != -1:
        json_start = marker + len("data:")
        json_end = _find_matching(working, json_start, "{", "}")
        if json_end != -1:
            json_text = working[json_start:json_end + 1]
            try:
                loaded = json.loads(json_text)
            except json.JSONDecodeError as e:
                logger.error("Invalid JSON payload in command (%s): %r", e, json_text)
                return None
            if not isinstance(loaded, dict):
                logger.error("JSON payload is not an object: %r", json_text)
                return None
            json_data = loaded

            # Drop the consumed block, and the comma that introduced it
            removal_start = marker
            prefix = working[:marker].rstrip()
            if marker > 0 and prefix.endswith(","):
                removal_start = working.rfind(",", 0, marker)
            working = working[:removal_start].strip()
        else:
            logger.warning("No closing '}' for data block in command: %r", command_str)

    parts = [p.strip() for p in working.split(",")]
    parts = [p for p in parts if p]
    if not parts:
        logger.warning("Command has no category/type header: %r", command_str)
        return None

    header = HEADER_RE.match(parts[0])
    if not header:
        logger.warning("Invalid command header: %r", parts[0])
        return None

    command = Command(
        category=header.group(1).strip(),
        type=header.group(2).strip(),
    )

    for part in parts[1:]:
        sep = part.find(":")
        if sep > 0:
            command.data[part[:sep].strip()] = part[sep + 1:].strip()

    # JSON payload wins over inline pairs
    command.data.update(json_data)

    logger.info("Parsed command %s", command.key)
    return command


def _find_matching(text: str, start: int, opener: str, closer: str) -> int:
    """
    Index of the closer matching the first opener at or after start.

    Returns -1 when the opener is never closed.
    """
    depth = 0
    seen_opener = False
    for i in range(start, len(text)):
        ch = text[i]
        if ch == opener:
            depth += 1
            seen_opener = True
        elif ch == closer and seen_opener:
            depth -= 1
        if seen_opener and depth == 0:
            return i
    return -1
