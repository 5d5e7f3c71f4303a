"""
Configuration manager for quiz sources, parts and limit presets.
"""
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .models import QuizSettings
from .quiz_engine import LimitSelector, PartSelection
from .source_loader import DirectoryFetcher, HttpFetcher, ResourceFetcher, SourceLoader


class ConfigManager:
    """Manages question source and selection settings."""

    # Default configuration values
    DEFAULT_RESOURCE_BASE = "./quizzes/"
    DEFAULT_REQUEST_TIMEOUT = 10.0

    # Validation limits
    MIN_REQUEST_TIMEOUT = 0.5
    MAX_REQUEST_TIMEOUT = 120.0
    MIN_LIMIT_FLOOR = 1
    MAX_LIMIT_STEP = 1000

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self._settings = QuizSettings()
        self._part_question_counts: Dict[str, int] = {}

    def _ok(self, message: str, user_message: str) -> Dict[str, Any]:
        self.logger.info(message)
        return {'success': True, 'message': message, 'user_message': user_message}

    def _fail(self, error: str, user_message: str) -> Dict[str, Any]:
        self.logger.error(error)
        return {'success': False, 'error': error, 'user_message': user_message}

    def get_quiz_settings(self) -> QuizSettings:
        """
        Get a copy of the current settings.

        Returns:
            QuizSettings object with current configuration
        """
        return replace(self._settings, limit_presets=dict(self._settings.limit_presets))

    def set_resource_base(self, base: str) -> Dict[str, Any]:
        """
        Set where part files are fetched from: an http(s) URL or a directory.

        Args:
            base: Base URL or directory path

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(base, str):
            return self._fail(
                f"Resource base must be a string, got {type(base).__name__}",
                f"❌ Invalid input: Expected a URL or path, got {type(base).__name__}"
            )

        if not base.strip():
            return self._fail("Resource base cannot be empty", "❌ Resource location cannot be empty")

        base = base.strip()
        if not self._is_url(base):
            try:
                Path(base).resolve()
            except (OSError, ValueError) as e:
                return self._fail(f"Invalid directory path format: {e}", f"❌ Invalid path format: {base}")

        self._settings.resource_base = base
        return self._ok(f"Resource base set to {base}", f"✅ Questions will be loaded from {base}")

    def get_resource_base(self) -> str:
        return self._settings.resource_base

    @staticmethod
    def _is_url(base: str) -> bool:
        return base.lower().startswith(("http://", "https://"))

    def is_remote_source(self) -> bool:
        return self._is_url(self._settings.resource_base)

    def set_request_timeout(self, seconds: Optional[float]) -> Dict[str, Any]:
        """
        Set the total timeout for one resource request, or None for no timeout.
        """
        if seconds is None:
            self._settings.request_timeout = None
            return self._ok("Request timeout disabled", "✅ Requests will wait without a timeout")

        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
            return self._fail(
                f"Request timeout must be a number, got {type(seconds).__name__}",
                f"❌ Invalid input: Expected a number, got {type(seconds).__name__}"
            )

        if seconds < self.MIN_REQUEST_TIMEOUT or seconds > self.MAX_REQUEST_TIMEOUT:
            return self._fail(
                f"Request timeout must be between {self.MIN_REQUEST_TIMEOUT} and {self.MAX_REQUEST_TIMEOUT} seconds",
                f"❌ Timeout must be between {self.MIN_REQUEST_TIMEOUT} and {self.MAX_REQUEST_TIMEOUT} seconds"
            )

        self._settings.request_timeout = float(seconds)
        return self._ok(f"Request timeout set to {seconds}s", f"✅ Request timeout set to {seconds} seconds")

    def get_request_timeout(self) -> Optional[float]:
        return self._settings.request_timeout

    def set_resource_templates(self, templates: Sequence[str]) -> Dict[str, Any]:
        """
        Set the candidate file name templates, tried in order.

        Each template must contain a ``{part}`` placeholder.
        """
        if isinstance(templates, str) or not isinstance(templates, (list, tuple)) or not templates:
            return self._fail(
                "Resource templates must be a non-empty list of strings",
                "❌ Provide at least one file name template"
            )

        for template in templates:
            if not isinstance(template, str) or "{part}" not in template:
                return self._fail(
                    f"Invalid resource template: {template!r}",
                    f"❌ Template {template!r} must contain a {{part}} placeholder"
                )

        self._settings.resource_templates = tuple(templates)
        return self._ok(
            f"Resource templates set to {', '.join(templates)}",
            f"✅ Part files will be looked up as {', '.join(templates)}"
        )

    def get_resource_templates(self) -> List[str]:
        return list(self._settings.resource_templates)

    def set_available_parts(self, parts: Sequence[Any]) -> Dict[str, Any]:
        """Set the parts users may choose from; ids are kept as strings."""
        if isinstance(parts, str) or not isinstance(parts, (list, tuple)) or not parts:
            return self._fail(
                "Available parts must be a non-empty list",
                "❌ Provide at least one part"
            )

        normalized = list(dict.fromkeys(str(part).strip() for part in parts))
        if any(not part for part in normalized):
            return self._fail("Part identifiers cannot be empty", "❌ Part names cannot be empty")

        self._settings.available_parts = tuple(normalized)
        return self._ok(
            f"Available parts set to {', '.join(normalized)}",
            f"✅ {len(normalized)} parts available"
        )

    def get_available_parts(self) -> List[str]:
        return list(self._settings.available_parts)

    def set_limit_presets(self, presets: Mapping[str, int]) -> Dict[str, Any]:
        """
        Set the limit presets as a mapping of preset name to base value.
        """
        if not isinstance(presets, Mapping) or not presets:
            return self._fail(
                "Limit presets must be a non-empty mapping of name to question count",
                "❌ Provide at least one limit preset"
            )

        for name, value in presets.items():
            if isinstance(value, bool) or not isinstance(value, int) or value < self._settings.limit_floor:
                return self._fail(
                    f"Limit preset '{name}' must be an integer of at least {self._settings.limit_floor}, got {value!r}",
                    f"❌ Preset '{name}' must be at least {self._settings.limit_floor} questions"
                )

        self._settings.limit_presets = {str(name): value for name, value in presets.items()}
        return self._ok(
            f"Limit presets set to {self._settings.limit_presets}",
            f"✅ {len(presets)} limit presets configured"
        )

    def get_limit_presets(self) -> Dict[str, int]:
        return dict(self._settings.limit_presets)

    def set_limit_step(self, step: int) -> Dict[str, Any]:
        if isinstance(step, bool) or not isinstance(step, int):
            return self._fail(
                f"Limit step must be an integer, got {type(step).__name__}",
                f"❌ Invalid input: Expected a number, got {type(step).__name__}"
            )

        if step < 1 or step > self.MAX_LIMIT_STEP:
            return self._fail(
                f"Limit step must be between 1 and {self.MAX_LIMIT_STEP}",
                f"❌ Step must be between 1 and {self.MAX_LIMIT_STEP}"
            )

        self._settings.limit_step = step
        return self._ok(f"Limit step set to {step}", f"✅ Limit adjusts by {step} questions")

    def get_limit_step(self) -> int:
        return self._settings.limit_step

    def set_limit_floor(self, floor: int) -> Dict[str, Any]:
        if isinstance(floor, bool) or not isinstance(floor, int):
            return self._fail(
                f"Limit floor must be an integer, got {type(floor).__name__}",
                f"❌ Invalid input: Expected a number, got {type(floor).__name__}"
            )

        if floor < self.MIN_LIMIT_FLOOR:
            return self._fail(
                f"Limit floor must be at least {self.MIN_LIMIT_FLOOR}",
                f"❌ Minimum limit must be at least {self.MIN_LIMIT_FLOOR}"
            )

        self._settings.limit_floor = floor
        return self._ok(f"Limit floor set to {floor}", f"✅ Limits never drop below {floor} questions")

    def get_limit_floor(self) -> int:
        return self._settings.limit_floor

    def set_part_question_counts(self, counts: Mapping[str, int]) -> Dict[str, Any]:
        """
        Set the known question count per part, used for session size estimates.
        """
        if not isinstance(counts, Mapping):
            return self._fail(
                f"Part question counts must be a mapping, got {type(counts).__name__}",
                "❌ Part question counts must map part names to numbers"
            )

        for part, count in counts.items():
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                return self._fail(
                    f"Question count for part {part} must be a non-negative integer, got {count!r}",
                    f"❌ Invalid question count for part {part}"
                )

        self._part_question_counts = {str(part): count for part, count in counts.items()}
        return self._ok(
            f"Question counts known for {len(counts)} parts",
            f"✅ Question counts set for {len(counts)} parts"
        )

    def get_part_question_counts(self) -> Dict[str, int]:
        return dict(self._part_question_counts)

    def apply_config(self, config: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """
        Apply the 'quiz' section of a loaded config.json.

        Settings that fail validation keep their previous values.

        Returns:
            List of failed setter results, empty when everything applied
        """
        quiz_config = config.get('quiz', {}) if config else {}
        setters = [
            ('resource_base', self.set_resource_base),
            ('request_timeout', self.set_request_timeout),
            ('resource_templates', self.set_resource_templates),
            ('available_parts', self.set_available_parts),
            ('limit_floor', self.set_limit_floor),
            ('limit_step', self.set_limit_step),
            ('limit_presets', self.set_limit_presets),
            ('part_question_counts', self.set_part_question_counts),
        ]

        failures = []
        for key, setter in setters:
            if key not in quiz_config:
                continue
            result = setter(quiz_config[key])
            if not result['success']:
                failures.append(result)

        if failures:
            self.logger.warning(f"{len(failures)} configuration values were rejected, using defaults for them")
        else:
            self.logger.info("Configuration applied successfully")
        return failures

    def create_fetcher(self) -> ResourceFetcher:
        """Build a fetcher matching the configured resource base."""
        if self.is_remote_source():
            return HttpFetcher(self._settings.resource_base, timeout=self._settings.request_timeout)
        return DirectoryFetcher(self._settings.resource_base)

    def create_loader(self) -> SourceLoader:
        return SourceLoader(self.create_fetcher(), self._settings.resource_templates)

    def create_part_selection(self) -> PartSelection:
        limit_selector = LimitSelector(
            self._settings.limit_presets,
            step=self._settings.limit_step,
            floor=self._settings.limit_floor,
        )
        return PartSelection(self._settings.available_parts, limit_selector)

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._settings = QuizSettings()
        self._part_question_counts = {}
        self.logger.info("All settings reset to default values")

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

        def issue(message: str) -> None:
            validation_result["valid"] = False
            validation_result["issues"].append(message)

        if not isinstance(self._settings.resource_base, str) or not self._settings.resource_base.strip():
            issue(f"Invalid resource base: {self._settings.resource_base}")

        if not self._settings.resource_templates:
            issue("No resource templates configured")

        if not self._settings.available_parts:
            issue("No parts available")

        for name, value in self._settings.limit_presets.items():
            if value < self._settings.limit_floor:
                issue(f"Limit preset '{name}' ({value}) is below the limit floor ({self._settings.limit_floor})")

        unknown_counts = set(self._part_question_counts) - set(self._settings.available_parts)
        if unknown_counts:
            issue(f"Question counts given for unknown parts: {', '.join(sorted(unknown_counts))}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        timeout = self._settings.request_timeout
        timeout_str = f"{timeout:g} seconds" if timeout is not None else "none"
        presets_str = ", ".join(f"{name} ({value})" for name, value in self._settings.limit_presets.items())

        return (
            f"Quiz Settings:\n"
            f"• Source: {self._settings.resource_base}\n"
            f"• Parts: {', '.join(self._settings.available_parts)}\n"
            f"• Limit presets: {presets_str}\n"
            f"• Limit step: {self._settings.limit_step} (minimum {self._settings.limit_floor})\n"
            f"• Request timeout: {timeout_str}"
        )
