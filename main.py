#!/usr/bin/env python3
"""
Parts Quiz Bot - Main Entry Point

Runs the Discord front end of the parts quiz. Configure your bot token and
question source in config.json, or set the DISCORD_BOT_TOKEN environment
variable.

Usage:
    python main.py                  # run the bot
    python main.py --check 1 2 3    # load parts and print a loading summary

Configuration:
    1. Copy config.example.json to config.json and set your Discord bot token
    2. Or set DISCORD_BOT_TOKEN environment variable
    3. Point quiz.resource_base at a URL or directory holding test<N>.js /
       test<N>.json / part<N>.json files

Environment Variables:
    DISCORD_BOT_TOKEN: Your Discord bot token (overrides config.json)
"""

import argparse
import asyncio
import sys
import os
import json
import logging
from pathlib import Path

def load_config(path="config.json", required=True):
    """Load configuration from a JSON file."""
    config_path = Path(path)

    if not config_path.exists():
        if not required:
            return {}
        print(f"❌ Error: {path} not found!")
        print("Please copy config.example.json to config.json and configure your Discord bot token.")
        sys.exit(1)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        print(f"❌ Error: Invalid JSON in {path}: {e}")
        sys.exit(1)
    except OSError as e:
        print(f"❌ Error loading {path}: {e}")
        sys.exit(1)

def get_bot_token(config):
    """Get bot token from environment variable or config file."""
    token = os.getenv('DISCORD_BOT_TOKEN')
    if token:
        return token

    token = config.get('bot', {}).get('token')
    if not token or token == "YOUR_DISCORD_BOT_TOKEN_HERE":
        print("❌ Error: Discord bot token not configured!")
        print("Either:")
        print("  1. Set DISCORD_BOT_TOKEN environment variable")
        print("  2. Update the 'token' field in config.json")
        sys.exit(1)

    return token

def setup_logging_from_config(config):
    """Set up logging based on configuration."""
    log_config = config.get('logging', {})
    log_level = getattr(logging, log_config.get('level', 'INFO').upper(), logging.INFO)
    log_directory = Path(log_config.get('log_directory', './logs/'))

    log_directory.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_directory / "bot.log", encoding='utf-8')
        ]
    )
    logging.getLogger('discord').setLevel(logging.WARNING)

async def check_parts(config, parts):
    """Load the given parts once and print what came back."""
    from src.config_manager import ConfigManager
    from src.data_manager import DataManager

    config_manager = ConfigManager()
    config_manager.apply_config(config)
    data_manager = DataManager(config_manager.create_loader())

    result = await data_manager.load_pool(parts or config_manager.get_available_parts())
    summary = data_manager.get_loading_summary(result)

    print(config_manager.get_settings_summary())
    print(f"\nLoaded {len(result.questions)} questions")
    for part, count in summary['part_counts'].items():
        print(f"  ✓ part {part}: {count} questions")
    for part, error in summary['errors'].items():
        print(f"  ✗ part {part}: {error}")
    return 0 if not summary['has_errors'] else 1

async def run_bot_with_config(config):
    """Run the bot with configuration."""
    token = get_bot_token(config)

    from src.bot import run_bot
    await run_bot(token, config)

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Parts quiz Discord bot")
    parser.add_argument('--config', default='config.json', help="Path to the JSON configuration file")
    parser.add_argument('--check', nargs='*', metavar='PART',
                        help="Load the given parts (all when none given), print a summary and exit")
    return parser.parse_args(argv)

def main(argv=None):
    args = parse_args(argv)
    checking = args.check is not None
    config = load_config(args.config, required=not checking)
    setup_logging_from_config(config)

    try:
        if checking:
            return asyncio.run(check_parts(config, args.check))
        print("🤖 Starting Parts Quiz Bot...")
        asyncio.run(run_bot_with_config(config))
    except KeyboardInterrupt:
        print("\n👋 Bot stopped by user")
    return 0

if __name__ == "__main__":
    sys.exit(main())
