"""Known-PII message rules.

Each rule recognises one message shape that is known to carry sensitive
payload data after a fixed prefix: a ``destination ... > ERROR`` line whose
message starts with the rule's message prefix. A match keeps the destination
prefix and the message prefix, adds the mask and drops the rest of the line.
Rules run in order, each one over the output of the previous rule.

Lines are matched one at a time without nested wildcards: the destination
prefix is located with a linear scan and the message prefix expression is
only tried at anchor positions, rightmost first, which selects the same span
as a greedy ``^(.*destination.*\\s+>\\s+ERROR.+)(prefix)(.+)$``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Pattern, Sequence

from .constants import DEFAULT_MAX_LINE_LENGTH
from .metrics import record_known_pii_hit


DESTINATION_MARKER = "destination"

# Whitespace, ``>``, whitespace, ``ERROR``; each ``>`` is tried once.
_ERROR_MARKER = re.compile(r"(?<=\s)>\s+ERROR")

DEFAULT_TEMPLATE = "{destination_prefix}{message_prefix}{mask}"


def destination_error_end(line: str) -> Optional[int]:
    """Return where the shortest ``destination ... > ERROR`` prefix of ``line`` ends."""

    at = line.find(DESTINATION_MARKER)
    if at < 0:
        return None

    found = _ERROR_MARKER.search(line, at + len(DESTINATION_MARKER) + 1)
    return found.end() if found else None


@dataclass(frozen=True)
class KnownPiiRule:
    """A message-prefix matcher plus its prefix-preserving replacement template."""

    name: str
    message_prefix: Pattern[str]
    anchor: str = ""
    markers: tuple[str, ...] = ()
    template: str = DEFAULT_TEMPLATE

    def applies_to(self, message: str) -> bool:
        """Cheap literal pre-check performed before any expression runs."""

        return all(marker in message for marker in self.markers)

    def apply(
        self, message: str, mask: str, max_line_length: int = DEFAULT_MAX_LINE_LENGTH
    ) -> tuple[str, int]:
        """Return the rewritten message and the number of rewritten lines."""

        if not self.applies_to(message):
            return message, 0

        lines = message.split("\n")
        count = 0
        for index, line in enumerate(lines):
            rewritten = self._rewrite_line(line, mask, max_line_length)
            if rewritten is not None:
                lines[index] = rewritten
                count += 1

        if not count:
            return message, 0
        return "\n".join(lines), count

    # --------------------- internal helpers ---------------------
    def _rewrite_line(self, line: str, mask: str, max_line_length: int) -> Optional[str]:
        prefix_end = destination_error_end(line)
        if prefix_end is None:
            return None

        # The destination prefix keeps at least one character after ERROR.
        lower = prefix_end + 1
        oversize = bool(max_line_length) and len(line) > max_line_length

        for start in self._candidates(line, lower, leftmost=oversize):
            found = self.message_prefix.match(line, start)
            if found:
                return self._render(line[:start], found.group(0), mask)
            if oversize:
                # Not worth a full scan: mask everything from the candidate on.
                return line[:start] + mask

        return None

    def _candidates(self, line: str, lower: int, *, leftmost: bool) -> Iterator[int]:
        if lower >= len(line):
            return

        if not self.anchor:
            if leftmost:
                yield lower
            else:
                yield from range(len(line) - 1, lower - 1, -1)
            return

        if leftmost:
            start = line.find(self.anchor, lower)
            if start >= 0:
                yield start
            return

        end = len(line)
        while True:
            start = line.rfind(self.anchor, lower, end)
            if start < 0:
                return
            yield start
            end = start + len(self.anchor) - 1

    def _render(self, destination_prefix: str, message_prefix: str, mask: str) -> str:
        return self.template.format(
            destination_prefix=destination_prefix,
            message_prefix=message_prefix,
            mask=mask,
        )


def build_rule(
    name: str,
    message_prefix: str,
    *,
    anchor: str = "",
    markers: Iterable[str] = (),
    template: str = DEFAULT_TEMPLATE,
) -> KnownPiiRule:
    """Build a rule for destination errors whose message starts with ``message_prefix``.

    ``anchor`` is a literal every match of ``message_prefix`` starts with; it
    limits the positions the expression is tried at. Raises ``ValueError``
    for an invalid expression or template.
    """

    try:
        # A match must leave at least one character of payload on the line.
        compiled = re.compile(f"(?:{message_prefix})(?=.)")
    except re.error as exc:
        raise ValueError(f"Rule {name!r} has an invalid message prefix: {exc}") from exc

    try:
        template.format(destination_prefix="", message_prefix="", mask="")
    except (KeyError, IndexError, ValueError) as exc:
        raise ValueError(f"Rule {name!r} has an invalid template: {exc}") from exc

    required = ("destination", "ERROR", *((anchor,) if anchor else ()), *markers)
    return KnownPiiRule(
        name=name,
        message_prefix=compiled,
        anchor=anchor,
        markers=tuple(dict.fromkeys(required)),
        template=template,
    )


DEFAULT_KNOWN_PII_RULES: tuple[KnownPiiRule, ...] = (
    build_rule(
        "invalid_message",
        r"Received\s+invalid\s+message:",
        anchor="Received",
        markers=("invalid",),
    ),
    build_rule(
        "sql_values",
        r"org\.jooq\.exception\.DataAccessException: SQL.+values\s+\(",
        anchor="org.jooq.exception.DataAccessException: SQL",
    ),
)


def scrub_known_pii(
    message: str,
    rules: Sequence[KnownPiiRule],
    mask: str,
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH,
) -> str:
    """Apply every rule in order, feeding each the previous rule's output."""

    for rule in rules:
        message, count = rule.apply(message, mask, max_line_length)
        if count:
            record_known_pii_hit(rule.name, count)

    return message
