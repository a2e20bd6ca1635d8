"""Generate obfuscated source code from decrypted secrets.

Pipeline:
    1. Keep secrets named ``<prefix>_<rest>`` for one of the configured
       prefixes, and strip the prefix.
    2. Turn ``<rest>`` into a camelCase identifier, upper-casing known
       acronyms after the first component (``shopify_api_key`` ->
       ``shopifyAPIKey``).
    3. Obfuscate each value with a fresh random mask.
    4. Render one self-contained module exposing a property per secret.

Generation is a pure function of its inputs apart from the random masks,
and entries are emitted sorted by identifier so diffs stay readable.
"""

import keyword
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

import structlog

from buildvault.exceptions import EncryptionError
from buildvault.rendering import SecureTemplateEngine

from .obfuscation import obfuscate

log = structlog.get_logger(__name__)

SEPARATOR = "_"
ACRONYMS = frozenset({"api", "url", "uri"})
TEMPLATE = "app_keys.py.j2"


class OutputTarget(Protocol):
    """Where one generated unit goes and which prefixes feed it."""

    @property
    def path(self) -> str: ...

    @property
    def prefixes(self) -> Sequence[str]: ...


@dataclass(frozen=True)
class GeneratedSourceUnit:
    """A generated file: output path plus source text."""

    path: str
    text: str


@dataclass(frozen=True)
class ObfuscatedEntry:
    identifier: str
    literal: bytes


def filter_by_prefixes(secrets: Mapping[str, str], prefixes: Sequence[str]) -> dict[str, str]:
    """Select secrets by prefix and strip it.

    When several prefixes produce the same stripped name, the prefix listed
    first wins.

    Example:
        >>> filter_by_prefixes({"all_api_key": "a", "tvos_key": "b"}, ["all", "ios"])
        {'api_key': 'a'}
    """
    selected: dict[str, str] = {}
    for prefix in prefixes:
        marker = f"{prefix}{SEPARATOR}"
        for name in sorted(secrets):
            if not name.startswith(marker):
                continue
            stripped = name[len(marker) :]
            if stripped and stripped not in selected:
                selected[stripped] = secrets[name]
    return selected


def to_identifier(name: str) -> str:
    """Convert a snake_case secret name to a camelCase identifier.

    Example:
        >>> to_identifier("database_connection_url")
        'databaseConnectionURL'
        >>> to_identifier("api_url")
        'apiURL'
    """
    components = [re.sub(r"\W", "", part) for part in name.split(SEPARATOR)]
    components = [part for part in components if part]
    if not components:
        return "value"

    first, rest = components[0], components[1:]
    words = [first.lower()]
    for part in rest:
        lowered = part.lower()
        words.append(lowered.upper() if lowered in ACRONYMS else part[0].upper() + part[1:])

    identifier = "".join(words)
    if not identifier.isidentifier():
        # Leading digit
        identifier = f"key{identifier[0].upper()}{identifier[1:]}"
    if keyword.iskeyword(identifier) or keyword.issoftkeyword(identifier):
        identifier = f"{identifier}_"
    return identifier


class ObfuscatedCodeGenerator:
    """Render decrypted secrets as an obfuscated Python module.

    Example:
        >>> generator = ObfuscatedCodeGenerator()
        >>> source = generator.generate({"all_api_key": "sk_123"}, ["all"], "dev")
        >>> "def apiKey" in source
        True
    """

    def __init__(
        self,
        engine: SecureTemplateEngine | None = None,
        class_name: str = "AppKeys",
        instance_name: str = "app_keys",
        values_per_row: int = 12,
    ) -> None:
        self.engine = engine or SecureTemplateEngine()
        self.class_name = class_name
        self.instance_name = instance_name
        self.values_per_row = values_per_row

    def build_entries(self, secrets: Mapping[str, str], prefixes: Sequence[str]) -> list[ObfuscatedEntry]:
        """Filter, name and obfuscate secrets, sorted by identifier.

        Raises:
            EncryptionError: If a value is not valid Unicode text
        """
        by_identifier: dict[str, ObfuscatedEntry] = {}
        for name, value in sorted(filter_by_prefixes(secrets, prefixes).items()):
            identifier = to_identifier(name)
            if identifier in by_identifier:
                log.warning("duplicate_identifier_skipped", identifier=identifier, name=name)
                continue
            try:
                literal = obfuscate(value)
            except UnicodeEncodeError as e:
                raise EncryptionError("Value is not valid Unicode text (lone surrogate)", reference=name) from e
            by_identifier[identifier] = ObfuscatedEntry(identifier=identifier, literal=literal)
        return [by_identifier[identifier] for identifier in sorted(by_identifier)]

    def generate(self, secrets: Mapping[str, str], prefixes: Sequence[str], scope_label: str) -> str:
        """Generate module source for one output.

        Never raises for valid string input; no matching secrets yields a
        valid module with an empty class.
        """
        entries = self.build_entries(secrets, prefixes)
        source = self.engine.render(
            TEMPLATE,
            {
                "scope": scope_label,
                "class_name": self.class_name,
                "instance_name": self.instance_name,
                "values_per_row": self.values_per_row,
                "entries": entries,
            },
        )
        log.debug("source_generated", scope=scope_label, entries=len(entries))
        return source

    def generate_units(
        self,
        secrets: Mapping[str, str],
        outputs: Iterable[OutputTarget],
        scope_label: str,
    ) -> list[GeneratedSourceUnit]:
        """Generate one unit per configured output, fresh every run."""
        return [
            GeneratedSourceUnit(path=output.path, text=self.generate(secrets, output.prefixes, scope_label))
            for output in outputs
        ]
