"""
Cache key derivation.

    base key   = join(flatten(template(subject)))
    qualified  = join(flatten(template(subject)) + qualifiers)

Qualified keys (e.g. ``project:1:alive``) are always built from the base key,
never spelled out elsewhere.
"""

from typing import Any

from reactive_cache.caching.subject import KeyTemplate
from reactive_cache.core.config.constants import KEY_SEPARATOR
from reactive_cache.core.exceptions import ConfigurationError


def _flatten(parts: Any) -> list[str]:
    if isinstance(parts, list | tuple):
        flat = []
        for part in parts:
            flat.extend(_flatten(part))
        return flat
    if parts is None:
        return [""]
    return [str(parts)]


class KeyResolver:
    """Resolves subjects to cache keys for one key template."""

    def __init__(self, key_template: KeyTemplate, separator: str = KEY_SEPARATOR):
        self._template = key_template
        self._separator = separator

    def resolve(self, subject: Any, *qualifiers: Any) -> str:
        """
        Build the key for ``subject`` with optional qualifier suffixes.

        Raises:
            ConfigurationError: If the template resolves to nothing
        """
        template = self._template(subject) if callable(self._template) else self._template
        parts = _flatten([template, *qualifiers])

        if not parts or not any(parts):
            raise ConfigurationError(
                "Key template resolved to an empty key", details={"subject": repr(subject)}
            )

        return self._separator.join(parts)
