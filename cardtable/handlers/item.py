"""
Item Handler - inventory item use.

Items are granted by the AI through Event:Modify (inventory add). The
Item command category is kept only so old prompts do not fall through
as unknown: it logs and shows a notice.
"""

from __future__ import annotations
import logging

from ..engine_core.command import Command, CommandKind, CommandResult, ErrorCode
from ..engine_core.state import PlayerData
from ..session.context import NoticeLevel
from .base import CommandHandler, HandlerFn

logger = logging.getLogger(__name__)


class ItemHandler(CommandHandler):

    def handlers(self) -> dict[CommandKind, HandlerFn]:
        return {CommandKind.ITEM: self.deprecated_command}

    async def deprecated_command(self, command: Command) -> CommandResult:
        logger.warning("Item command received, but this path is deprecated: %s", command.key)
        self.ctx.notify(
            NoticeLevel.WARNING,
            f"[{command.key}] is no longer supported; items are granted with Event:Modify.",
        )
        return CommandResult.failure("Item commands are deprecated", ErrorCode.UNKNOWN_COMMAND)

    async def use_item(self, index: int) -> CommandResult:
        """
        Use the inventory item at index.

        Passive items only remind the AI that their effect is active.
        Active items prompt the AI to resolve the effect and are consumed.
        """
        player = await self.ctx.repo.get(PlayerData)
        if not 0 <= index < len(player.inventory):
            logger.error("Attempted to use an invalid item at index %d", index)
            return CommandResult.failure(f"No item at index {index}")

        item = player.inventory[index]
        name = item.get("name")
        description = item.get("description", "")

        if item.get("type") == "passive":
            await self.ctx.submit_prompt(
                f"(System: {{{{user}}}} clicked the passive item [name: {name}, description: "
                f"{description}]; remind the AI that its effect is active.)"
            )
            self.ctx.notify(NoticeLevel.INFO, f"Reminded the AI of [{name}]'s passive effect.")
            logger.info("Reminded AI of passive item %r", name)
            return CommandResult.ok(f"reminded {name}")

        if item.get("function"):
            effect = item["function"].get("effect") if isinstance(item["function"], dict) else item["function"]
            logger.warning("Item effect %r is not implemented", effect)
            self.ctx.notify(NoticeLevel.INFO, f"Item effect \"{effect}\" is not implemented yet.")
        else:
            await self.ctx.submit_prompt(
                f"(System: {{{{user}}}} used the item [name: {name}, description: {description}])"
            )
            self.ctx.notify(NoticeLevel.INFO, f"You used [{name}]... the AI is resolving its effect.")

        if item.get("type") == "active":
            def remove(p: PlayerData) -> None:
                if index < len(p.inventory):
                    del p.inventory[index]

            await self.ctx.repo.update(PlayerData, remove)

        await self.ctx.refresh()
        logger.info("Player used item %r", name)
        return CommandResult.ok(f"used {name}")
