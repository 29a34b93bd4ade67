#!/usr/bin/env python3
"""
Discord Word Game Bot - Main Entry Point

This script runs the word game bot. Configure your bot token in config.json
or set the DISCORD_BOT_TOKEN environment variable.

Usage:
    python main.py [config.json]

Configuration:
    1. Copy config.example.json to config.json and set your Discord bot token
    2. Or set DISCORD_BOT_TOKEN environment variable
    3. Customize game settings in config.json as needed

Environment Variables:
    DISCORD_BOT_TOKEN: Your Discord bot token (overrides config.json)
"""

import asyncio
import sys

from wordgame.bot import run_bot, setup_logging
from wordgame.config_manager import ConfigError, ConfigManager


def load_config(path: str) -> ConfigManager:
    """Load configuration from a JSON file, exiting on failure."""
    config_manager = ConfigManager()

    try:
        result = config_manager.load_config(path)
    except ConfigError as e:
        print(f"❌ Error: {e}")
        print("Please copy config.example.json to config.json and configure your Discord bot token.")
        sys.exit(1)

    for issue in result['issues']:
        print(f"⚠️ Config issue: {issue}")

    return config_manager


def main():
    config_path = sys.argv[1] if len(sys.argv) > 1 else "config.json"
    config_manager = load_config(config_path)

    setup_logging(config_manager.get_log_level(), config_manager.get_log_directory())

    if not config_manager.get_bot_token():
        print("❌ Error: Discord bot token not configured!")
        print("Either:")
        print(f"  1. Set {ConfigManager.TOKEN_ENV_VAR} environment variable")
        print("  2. Update the 'token' field in config.json")
        sys.exit(1)

    validation = config_manager.validate_settings()
    for issue in validation['issues']:
        print(f"⚠️ {issue}")

    asyncio.run(run_bot(config_manager))


if __name__ == "__main__":
    try:
        print("🤖 Starting Discord Word Game Bot...")
        main()
    except KeyboardInterrupt:
        print("\n👋 Bot stopped by user")
