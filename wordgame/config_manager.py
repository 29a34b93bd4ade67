"""
Configuration manager for word game settings and parameters.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .models import SessionSettings


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or parsed."""
    pass


class ConfigManager:
    """Manages bot configuration settings and game parameters."""

    # Default configuration values
    DEFAULT_QUESTION_COUNT = 5
    DEFAULT_TIME_BUDGET_MS = 2000
    DEFAULT_WORDS_FILE = "./words/words.json"
    DEFAULT_LOADING_DELAY_MS = 0
    DEFAULT_TICK_INTERVAL_MS = 1000
    DEFAULT_LOG_LEVEL = "INFO"
    DEFAULT_LOG_DIRECTORY = "./logs/"
    DEFAULT_COMMAND_PREFIX = "!"

    # Choices offered to players
    QUESTION_COUNT_CHOICES = (5, 10, 15)
    TIME_BUDGET_CHOICES_MS = (2000, 4000, 6000)

    # Validation limits
    MIN_QUESTION_COUNT = 1
    MAX_QUESTION_COUNT = 100
    MIN_TIME_BUDGET_MS = 500
    MAX_TIME_BUDGET_MS = 60000
    MIN_TICK_INTERVAL_MS = 50
    MAX_TICK_INTERVAL_MS = 60000
    MIN_LOADING_DELAY_MS = 0
    MAX_LOADING_DELAY_MS = 10000

    TOKEN_ENV_VAR = "DISCORD_BOT_TOKEN"
    TOKEN_PLACEHOLDER = "YOUR_DISCORD_BOT_TOKEN_HERE"

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self.reset_to_defaults()

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._question_count = self.DEFAULT_QUESTION_COUNT
        self._time_budget_ms = self.DEFAULT_TIME_BUDGET_MS
        self._words_file = self.DEFAULT_WORDS_FILE
        self._loading_delay_ms = self.DEFAULT_LOADING_DELAY_MS
        self._tick_interval_ms = self.DEFAULT_TICK_INTERVAL_MS
        self._log_level = self.DEFAULT_LOG_LEVEL
        self._log_directory = self.DEFAULT_LOG_DIRECTORY
        self._command_prefix = self.DEFAULT_COMMAND_PREFIX
        self._bot_token: Optional[str] = None

    def get_session_settings(self) -> SessionSettings:
        """
        Get default session settings.

        Returns:
            SessionSettings with the configured question count and time budget
        """
        return SessionSettings(
            question_count=self._question_count,
            time_budget_ms=self._time_budget_ms
        )

    def _set_int_setting(
        self,
        name: str,
        attribute: str,
        value: Any,
        limits: Tuple[int, int],
        unit: str = ""
    ) -> Dict[str, Any]:
        """
        Validate and store an integer setting.

        Args:
            name: Human-readable setting name
            attribute: Instance attribute to store the value in
            value: Proposed value
            limits: Inclusive (minimum, maximum)
            unit: Unit suffix used in messages

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        minimum, maximum = limits
        suffix = f" {unit}" if unit else ""

        # bool is an int subclass but never a valid setting
        if isinstance(value, bool) or not isinstance(value, int):
            error_msg = f"{name} must be an integer, got {type(value).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(value).__name__}"
            }

        if value < minimum:
            error_msg = f"{name} must be at least {minimum}{suffix}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ {name} too small: Minimum is {minimum}{suffix}"
            }

        if value > maximum:
            error_msg = f"{name} cannot exceed {maximum}{suffix}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ {name} too large: Maximum is {maximum}{suffix}"
            }

        setattr(self, attribute, value)
        self.logger.info(f"{name} set to {value}{suffix}")
        return {
            'success': True,
            'message': f"{name} set to {value}{suffix}",
            'user_message': f"✅ {name} set to {value}{suffix}"
        }

    def set_question_count(self, count: int) -> Dict[str, Any]:
        """Set the default number of questions per session."""
        return self._set_int_setting(
            "Question count", "_question_count", count,
            (self.MIN_QUESTION_COUNT, self.MAX_QUESTION_COUNT)
        )

    def get_question_count(self) -> int:
        return self._question_count

    def set_time_budget(self, time_budget_ms: int) -> Dict[str, Any]:
        """Set the default time per question in milliseconds."""
        return self._set_int_setting(
            "Time budget", "_time_budget_ms", time_budget_ms,
            (self.MIN_TIME_BUDGET_MS, self.MAX_TIME_BUDGET_MS), "ms"
        )

    def get_time_budget(self) -> int:
        return self._time_budget_ms

    def set_loading_delay(self, delay_ms: int) -> Dict[str, Any]:
        """Set an artificial delay applied before questions are created."""
        return self._set_int_setting(
            "Loading delay", "_loading_delay_ms", delay_ms,
            (self.MIN_LOADING_DELAY_MS, self.MAX_LOADING_DELAY_MS), "ms"
        )

    def get_loading_delay(self) -> int:
        return self._loading_delay_ms

    def set_tick_interval(self, interval_ms: int) -> Dict[str, Any]:
        """Set how often the elapsed-time readout is refreshed."""
        return self._set_int_setting(
            "Tick interval", "_tick_interval_ms", interval_ms,
            (self.MIN_TICK_INTERVAL_MS, self.MAX_TICK_INTERVAL_MS), "ms"
        )

    def get_tick_interval(self) -> int:
        return self._tick_interval_ms

    def set_words_file(self, path: str) -> Dict[str, Any]:
        """
        Set the path of the words file.

        Args:
            path: Path to a JSON words file

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(path, str) or not path.strip():
            error_msg = "Words file path must be a non-empty string"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Words file path cannot be empty"
            }

        try:
            normalized_path = str(Path(path).expanduser().resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid words file path: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid path format: {path}"
            }

        self._words_file = normalized_path
        self.logger.info(f"Words file set to {normalized_path}")
        return {
            'success': True,
            'message': f"Words file set to {normalized_path}",
            'user_message': f"✅ Words file set to {normalized_path}"
        }

    def get_words_file(self) -> str:
        return self._words_file

    def get_log_level(self) -> int:
        """Get the configured log level as a logging constant."""
        return getattr(logging, str(self._log_level).upper(), logging.INFO)

    def get_log_directory(self) -> str:
        return self._log_directory

    def get_command_prefix(self) -> str:
        return self._command_prefix

    def get_bot_token(self) -> Optional[str]:
        """
        Get the bot token.

        The DISCORD_BOT_TOKEN environment variable takes precedence over the
        configuration file. The placeholder token counts as missing.
        """
        token = os.getenv(self.TOKEN_ENV_VAR)
        if token:
            return token

        if not self._bot_token or self._bot_token == self.TOKEN_PLACEHOLDER:
            return None
        return self._bot_token

    def load_config(self, path: str = "config.json") -> Dict[str, Any]:
        """
        Load configuration from a JSON file and apply it.

        Args:
            path: Path to the configuration file

        Returns:
            Result of apply_config

        Raises:
            ConfigError: If the file is missing or is not valid JSON
        """
        config_path = Path(path)

        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Failed to read {config_path}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigError(f"Configuration in {config_path} must be a JSON object")

        return self.apply_config(config)

    def apply_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply settings from a configuration dictionary.

        Expected structure (every key optional):
        {
            "bot": {"token": str, "command_prefix": str},
            "game": {
                "words_file": str,
                "default_question_count": int,
                "default_time_budget_ms": int,
                "loading_delay_ms": int,
                "tick_interval_ms": int
            },
            "logging": {"level": str, "log_directory": str}
        }

        Invalid values are reported and the previous value is kept.

        Returns:
            Dictionary with success status and a list of issues
        """
        issues = []

        bot_config = config.get('bot', {})
        if bot_config.get('token'):
            self._bot_token = bot_config['token']
        if bot_config.get('command_prefix'):
            self._command_prefix = bot_config['command_prefix']

        game_config = config.get('game', {})
        setters = (
            ('words_file', self.set_words_file),
            ('default_question_count', self.set_question_count),
            ('default_time_budget_ms', self.set_time_budget),
            ('loading_delay_ms', self.set_loading_delay),
            ('tick_interval_ms', self.set_tick_interval),
        )
        for key, setter in setters:
            if key in game_config:
                result = setter(game_config[key])
                if not result['success']:
                    issues.append(f"{key}: {result['error']}")

        log_config = config.get('logging', {})
        if 'level' in log_config:
            level = str(log_config['level']).upper()
            if isinstance(getattr(logging, level, None), int):
                self._log_level = level
            else:
                issues.append(f"level: Unknown log level {log_config['level']}")
        if log_config.get('log_directory'):
            self._log_directory = log_config['log_directory']

        if issues:
            self.logger.warning(f"Configuration applied with {len(issues)} issue(s): {'; '.join(issues)}")
        else:
            self.logger.info("Configuration applied successfully")

        return {'success': not issues, 'issues': issues}

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        if not self.MIN_QUESTION_COUNT <= self._question_count <= self.MAX_QUESTION_COUNT:
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid question count: {self._question_count}")

        if not self.MIN_TIME_BUDGET_MS <= self._time_budget_ms <= self.MAX_TIME_BUDGET_MS:
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid time budget: {self._time_budget_ms}")

        if not Path(self._words_file).is_file():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Words file not found: {self._words_file}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        return (
            f"Game Settings:\n"
            f"• Questions: {self._question_count}\n"
            f"• Time per question: {self._time_budget_ms / 1000:g} seconds\n"
            f"• Words file: {self._words_file}"
        )
