"""
Entity Mutation Handler - Event:Modify.

    [Event:Modify, data:{"target": "{{user}}", "modifications": [
        {"field": "health", "operation": "add", "value": -1}]}]

Targets the player, a named enemy, or "global" (meta progression).
Operations:
    add     numbers are incremented, lists get the value appended
    set     the field is replaced
    remove  drops the first list element whose name or id equals value

Health is clamped to [0, max_health] (99 without a max) after every
modification, including changes to max_health itself. If any
modification leaves the record invalid, the whole command is dropped.
"""

from __future__ import annotations
import logging
from typing import Any

from pydantic import BaseModel, ValidationError

from ..engine_core.command import Command, CommandKind, CommandResult, ErrorCode
from ..engine_core.state import EnemyData, PlayerData
from ..session.context import NoticeLevel, SessionContext
from ..session.run_manager import RunManager
from .base import CommandHandler, HandlerFn, parse_amount
from .meta import MetaProgression

logger = logging.getLogger(__name__)

DEFAULT_MAX_HEALTH = 99


def apply_modification(record: BaseModel, field_name: str, operation: str, value: Any) -> None:
    """Apply one add/set/remove to a record field in place."""
    current = getattr(record, field_name, None)

    if operation == "add":
        if isinstance(current, list):
            current.append(value)
        elif isinstance(current, (int, float)) and not isinstance(current, bool):
            amount = parse_amount(value)
            if amount is None:
                raise ValueError(f"{field_name}: cannot add non-numeric {value!r}")
            setattr(record, field_name, current + amount)
        else:
            logger.warning("Cannot add to field %s of type %s", field_name, type(current).__name__)
    elif operation == "set":
        setattr(record, field_name, value)
    elif operation == "remove":
        if isinstance(current, list):
            for index, item in enumerate(current):
                if isinstance(item, dict) and value in (item.get("name"), item.get("id")):
                    del current[index]
                    break
        else:
            logger.warning("Cannot remove from non-list field %s", field_name)
    else:
        logger.warning("Unknown modification operation: %r", operation)

    clamp_health(record)


def clamp_health(record: BaseModel) -> None:
    health = getattr(record, "health", None)
    if health is None:
        return
    health = parse_amount(health)
    if health is None:
        raise ValueError(f"health is not numeric: {getattr(record, 'health')!r}")
    ceiling = getattr(record, "max_health", None) or DEFAULT_MAX_HEALTH
    record.health = max(0, min(health, ceiling))


def describe(subject: str, field_name: str, operation: str, value: Any) -> tuple[NoticeLevel, str] | None:
    """User-facing line for a modification, or None when it is not worth a notice."""
    if field_name in ("health", "chips") and operation == "add":
        amount = parse_amount(value)
        if not amount:
            return None
        if field_name == "health":
            verb = "recovered" if amount > 0 else "lost"
            text = f"{subject} {verb} {abs(amount)} health!"
        else:
            verb = "gained" if amount > 0 else "lost"
            text = f"{subject} {verb} {abs(amount)} chips!"
        return (NoticeLevel.SUCCESS if amount > 0 else NoticeLevel.WARNING), text
    if field_name == "inventory" and operation == "add" and isinstance(value, dict):
        return NoticeLevel.SUCCESS, f"{subject} obtained item [{value.get('name')}]!"
    if field_name == "status_effects":
        if operation == "add" and isinstance(value, dict):
            return NoticeLevel.INFO, f"{subject} gained status [{value.get('name')}]!"
        if operation == "remove":
            return NoticeLevel.INFO, f"Status [{value}] was removed from {subject}."
    return None


class EntityMutationHandler(CommandHandler):

    def __init__(self, ctx: SessionContext, runs: RunManager, meta: MetaProgression):
        super().__init__(ctx)
        self.runs = runs
        self.meta = meta

    def handlers(self) -> dict[CommandKind, HandlerFn]:
        return {CommandKind.EVENT_MODIFY: self.modify}

    async def modify(self, command: Command) -> CommandResult:
        target = command.data.get("target")
        modifications = command.data.get("modifications")
        if not target or not isinstance(modifications, list):
            logger.error("Invalid Event:Modify: missing target or modifications list: %r", command.data)
            return CommandResult.failure("Event:Modify needs target and modifications")

        mods = [m for m in modifications if isinstance(m, dict) and m.get("field")]

        if target == "global":
            return await self._modify_meta(mods)

        is_player = self.ctx.is_user(target)
        if not is_player:
            enemies = await self.ctx.repo.get(EnemyData)
            if enemies.find(target) is None:
                logger.warning("Event:Modify could not find enemy target %r", target)
                return CommandResult.failure(f"Unknown target: {target}")

        def mutate(record: BaseModel) -> None:
            for mod in mods:
                apply_modification(record, mod["field"], mod.get("operation"), mod.get("value"))

        try:
            if is_player:
                await self.ctx.repo.update(PlayerData, mutate)
            else:
                def mutate_enemy(data: EnemyData) -> None:
                    mutate(data.find(target))

                await self.ctx.repo.update(EnemyData, mutate_enemy)
        except (ValidationError, ValueError, TypeError) as e:
            logger.error("Event:Modify on %r dropped, record would be invalid: %s", target, e)
            return CommandResult.failure(f"invalid modification: {e}")

        subject = "Player" if is_player else target
        changes = []
        for mod in mods:
            line = describe(subject, mod["field"], mod.get("operation"), mod.get("value"))
            if line is not None:
                level, text = line
                self.ctx.notify(level, text)
                self.ctx.history.add_event(text)
                changes.append(text)

        await self.ctx.refresh()

        if is_player and any(m["field"] == "chips" for m in mods):
            await self.runs.check_player_vitals()

        logger.info("Event:Modify applied to %r", target)
        return CommandResult.ok(*changes)

    async def _modify_meta(self, mods: list[dict[str, Any]]) -> CommandResult:
        changes = []
        for mod in mods:
            if mod["field"] != "legacy_shards":
                logger.warning("Global modification of unsupported field %r", mod["field"])
                continue
            amount = parse_amount(mod.get("value")) or 0
            operation = mod.get("operation")
            if operation == "add":
                await self.meta.add_shards(amount)
                self.ctx.notify(NoticeLevel.SUCCESS, f"You earned {amount} legacy shards!")
                changes.append(f"legacy_shards +{amount}")
            elif operation == "set":
                await self.meta.set_shards(amount)
                changes.append(f"legacy_shards = {amount}")
            else:
                logger.warning("Unsupported legacy_shards operation %r", operation)
        if not changes:
            return CommandResult.failure("No applicable global modification", ErrorCode.VALIDATION_FAILURE)
        await self.ctx.refresh()
        return CommandResult.ok(*changes)

