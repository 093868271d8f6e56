"""
Replacement template expansion and validation.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import regex

from ..search.models import SearchOptions

# One alternative per token, tried left to right in a single pass so text
# produced by one token is never expanded again
TOKEN_PATTERN = regex.compile(r"\$\{(\d+)\}|\$(\d+)|\$\$|\$&|\$`|\$'|\\n|\\t")
CAPTURE_GROUP_PATTERN = regex.compile(r"\$\{(\d+)\}|\$(\d+)")
LITERAL_DOLLAR_PATTERN = regex.compile(r"\$(?![&'`$]|\d|\{\d+\})")


@dataclass(frozen=True)
class CapturedMatch:
    """The parts of a pattern match that template expansion needs.

    ``groups[0]`` is the whole match; unmatched groups are ``None``.
    """
    groups: Tuple[Optional[str], ...]
    start: int

    @property
    def text(self) -> str:
        return self.groups[0] or ""

    @property
    def end(self) -> int:
        return self.start + len(self.text)

    @classmethod
    def from_match(cls, match) -> "CapturedMatch":
        return cls(groups=(match.group(0),) + tuple(match.groups()), start=match.start())


def expand_replacement(match: CapturedMatch, template: str, text: str, options: SearchOptions) -> str:
    """
    Expand ``template`` for one match.

    In literal mode the template is returned unchanged. In regex mode ``$N``
    and ``${N}`` insert capture group N (empty when missing), ``$$`` a dollar
    sign, ``$&`` the whole match, ``$``` the text of ``text`` before the match
    and ``$'`` the text after it; ``\\n`` and ``\\t`` become newline and tab.
    """
    if not options.use_regex:
        return template

    def substitute(token) -> str:
        number = token.group(1) or token.group(2)
        if number is not None:
            index = int(number)
            if index < len(match.groups):
                return match.groups[index] or ""
            return ""

        value = token.group(0)
        if value == "$$":
            return "$"
        if value == "$&":
            return match.text
        if value == "$`":
            return text[:match.start]
        if value == "$'":
            return text[match.end:]
        if value == "\\n":
            return "\n"
        return "\t"

    return TOKEN_PATTERN.sub(substitute, template)


def has_expansion_tokens(template: str) -> bool:
    return TOKEN_PATTERN.search(template) is not None


@dataclass
class ReplacementValidation:
    is_valid: bool = True
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


def validate_replacement_text(template: str, options: SearchOptions) -> ReplacementValidation:
    """Check a template for references that are likely mistakes."""
    result = ReplacementValidation()

    if not options.use_regex:
        return result

    references = [int(a or b) for a, b in CAPTURE_GROUP_PATTERN.findall(template)]
    if references and max(references) > 9:
        highest = max(references)
        result.warnings.append(
            f"High capture group reference (${highest}) - ensure your regex has enough groups"
        )

    if LITERAL_DOLLAR_PATTERN.search(template):
        result.warnings.append("Unescaped $ characters found - use $$ for literal dollar signs")

    return result
