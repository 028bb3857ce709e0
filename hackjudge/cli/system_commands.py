"""
System CLI Commands

System operations: config
"""
from hackjudge.cli.base import Command
from hackjudge.config.settings import Settings


class SystemCommand(Command):
    """System CLI command handler."""

    def execute(self, args) -> int:
        if args.system_action == "config":
            return self._config(args)
        print("Error: Unknown system action")
        return 1

    def _config(self, args) -> int:
        """Show effective configuration."""
        print("=== Configuration ===")
        for key, value in sorted(Settings.get_all_settings().items()):
            print(f"{key}: {value}")
        return 0
