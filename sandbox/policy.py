"""
Capability policy: the lexical denylist applied to snippets before execution.

The policy is a best-effort mitigation, not a security boundary. Matching is
purely textual, so a string literal such as ``"window.open"`` or an identifier
that ends in a denylisted name (``myFunction(``) is neutralized too, while
aliased access (``globalThis["fe" + "tch"]``) slips through.
``IDENTIFIER_AWARE_POLICY`` is the opt-in variant that leaves such
identifiers alone.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

PLACEHOLDER_COMMENT = "/* blocked */"

# Name of the inert no-op the harness defines for neutralized call targets.
BLOCKED_NAME = "__blocked__"

_CALL_PLACEHOLDER = f"{PLACEHOLDER_COMMENT}{BLOCKED_NAME}("
_MEMBER_PLACEHOLDER = f"{PLACEHOLDER_COMMENT}{BLOCKED_NAME}."
_NAME_PLACEHOLDER = f"{PLACEHOLDER_COMMENT}{BLOCKED_NAME}"
_KEYWORD_PLACEHOLDER = f"{PLACEHOLDER_COMMENT} "

# Opt-in: never start a match in the middle of an identifier (`myFunction(`).
_IDENTIFIER_BOUNDARY = r"(?<![\w$])"


@dataclass(frozen=True)
class DenyRule:
    name: str
    pattern: re.Pattern[str]
    replacement: str

    @classmethod
    def compile(
        cls, name: str, pattern: str, replacement: str, *, identifier_boundary: bool = False
    ) -> "DenyRule":
        prefix = _IDENTIFIER_BOUNDARY if identifier_boundary else ""
        return cls(name=name, pattern=re.compile(prefix + pattern), replacement=replacement)

    def apply(self, source: str) -> str:
        # Callable replacement keeps the placeholder literal (no backslash expansion).
        return self.pattern.sub(lambda _match: self.replacement, source)


_DENYLIST: tuple[tuple[str, str, str], ...] = (
    ("fetch", r"fetch\s*\(", _CALL_PLACEHOLDER),
    ("xhr", r"XMLHttpRequest", _NAME_PLACEHOLDER),
    ("eval", r"eval\s*\(", _CALL_PLACEHOLDER),
    ("function-constructor", r"Function\s*\(", _CALL_PLACEHOLDER),
    ("set-timeout", r"setTimeout\s*\(", _CALL_PLACEHOLDER),
    ("set-interval", r"setInterval\s*\(", _CALL_PLACEHOLDER),
    ("document", r"document\.", _MEMBER_PLACEHOLDER),
    ("window", r"window\.", _MEMBER_PLACEHOLDER),
    ("global", r"global\.", _MEMBER_PLACEHOLDER),
    ("process", r"process\.", _MEMBER_PLACEHOLDER),
    ("require", r"require\s*\(", _CALL_PLACEHOLDER),
    ("import", r"import\s+", _KEYWORD_PLACEHOLDER),
    ("export", r"export\s+", _KEYWORD_PLACEHOLDER),
)

# Every textual occurrence, identifier suffixes included (`myFunction(`).
DEFAULT_RULES: tuple[DenyRule, ...] = tuple(
    DenyRule.compile(name, pattern, replacement) for name, pattern, replacement in _DENYLIST
)

IDENTIFIER_RULES: tuple[DenyRule, ...] = tuple(
    DenyRule.compile(name, pattern, replacement, identifier_boundary=True)
    for name, pattern, replacement in _DENYLIST
)


class CapabilityPolicy:
    """
    Ordered set of deny rules applied left to right over the whole source.

    Rules run in declaration order, so text matched by several rules
    (``window.fetch(``) is neutralized once per rule.
    """

    def __init__(self, rules: Iterable[DenyRule] = DEFAULT_RULES) -> None:
        self.rules: tuple[DenyRule, ...] = tuple(rules)

    def sanitize(self, source: str) -> str:
        """Replace every denylisted occurrence with its inert placeholder."""
        safe_source = source
        for rule in self.rules:
            safe_source = rule.apply(safe_source)
        return safe_source

    def violations(self, source: str) -> list[str]:
        """Names of the rules that would neutralize something in ``source``."""
        found: list[str] = []
        current = source
        for rule in self.rules:
            if rule.pattern.search(current):
                found.append(rule.name)
                current = rule.apply(current)
        return found

    def with_rules(self, *extra: DenyRule) -> "CapabilityPolicy":
        return CapabilityPolicy(self.rules + tuple(extra))

    def rule_names(self) -> list[str]:
        return [rule.name for rule in self.rules]


DEFAULT_POLICY = CapabilityPolicy()

# Leaves identifiers that merely end in a denylisted name alone.
IDENTIFIER_AWARE_POLICY = CapabilityPolicy(IDENTIFIER_RULES)


def sanitize(source: str, policy: CapabilityPolicy | None = None) -> str:
    """Neutralize denylisted API usage in ``source`` (never fails)."""
    return (policy or DEFAULT_POLICY).sanitize(source)
