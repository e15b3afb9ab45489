"""
Tests for the command parser.

Tests:
- Header, inline fields and JSON payloads
- Nested brackets inside JSON
- <command> blocks
- Resilience to malformed input
"""

from ..engine_core.command import CommandKind
from ..engine_core.parser import parse_commands, parse_single_command


class TestParseSingleCommand:
    """Tests for one bracketed span."""

    def test_header_and_inline_fields(self):
        """Inline key:value pairs become string data."""
        command = parse_single_command("Action:Bet, player_name:Bandit, amount:100")

        assert command.category == "Action"
        assert command.type == "Bet"
        assert command.data == {"player_name": "Bandit", "amount": "100"}
        assert command.kind is CommandKind.ACTION_BET

    def test_json_payload_wins_over_inline(self):
        """A JSON field overwrites the inline field of the same name."""
        command = parse_single_command('Action:Bet, amount:5, data:{"amount": 10, "things": "a ring"}')

        assert command.data["amount"] == 10
        assert command.data["things"] == "a ring"

    def test_type_may_contain_colons(self):
        command = parse_single_command("Game:Function:Extra")

        assert command.category == "Game"
        assert command.type == "Function:Extra"
        assert command.kind is None

    def test_invalid_json_drops_command(self):
        assert parse_single_command("Game:Start, data:{players: [bad]}") is None

    def test_json_without_header_is_dropped(self):
        assert parse_single_command('data:{"players": []}') is None

    def test_missing_header_is_dropped(self):
        assert parse_single_command("just some words") is None

    def test_unclosed_data_block_keeps_inline_fields(self):
        """An unclosed data:{ is logged; the inline fields still parse."""
        command = parse_single_command('Action:Bet, player_name:Bandit, data:{"amount": 1')

        assert command is not None
        assert command.key == "Action:Bet"
        assert command.data["player_name"] == "Bandit"

    def test_item_category_resolves_to_item_kind(self):
        command = parse_single_command("Item:Grant, name:Lucky Coin")

        assert command.kind is CommandKind.ITEM


class TestParseCommands:
    """Tests for scanning whole AI messages."""

    def test_empty_input(self):
        assert parse_commands("") == []
        assert parse_commands(None) == []

    def test_nested_brackets_in_json(self):
        """Brackets inside the payload do not end the command."""
        text = (
            'The dealer smiles. [Game:Function, data:{"type": "Modify", "targets": '
            '[{"location": "board", "card_filter": {"index": "all"}, "modifications": '
            '[{"field": "rank", "operation": "add", "value": 1}]}]}] Done.'
        )

        commands = parse_commands(text)

        assert len(commands) == 1
        targets = commands[0].data["targets"]
        assert targets[0]["location"] == "board"
        assert targets[0]["modifications"][0]["value"] == 1

    def test_commands_in_textual_order(self):
        text = "[Action:Check, player_name:Bandit] then [Action:Fold, player_name:{{user}}]"

        commands = parse_commands(text)

        assert [c.key for c in commands] == ["Action:Check", "Action:Fold"]
        assert commands[1].data["player_name"] == "{{user}}"

    def test_command_block_limits_scan(self):
        """Only the <command> block is scanned when present."""
        text = "[Game:Hint, text:outside] <command>[Game:Hint, text:inside]</command>"

        commands = parse_commands(text)

        assert len(commands) == 1
        assert commands[0].data["text"] == "inside"

    def test_unmatched_bracket_is_skipped(self):
        """An unclosed [ does not swallow the commands after it."""
        commands = parse_commands("[oops [Game:Hint, text:keep going]")

        assert len(commands) == 1
        assert commands[0].data["text"] == "keep going"

    def test_bad_command_does_not_stop_others(self):
        text = '[Game:Start, data:{oops}] [no header here] [Action:Check, player_name:Bandit]'

        commands = parse_commands(text)

        assert [c.key for c in commands] == ["Action:Check"]

    def test_plain_prose_yields_nothing(self):
        assert parse_commands("The bandit leans back and grins.") == []
