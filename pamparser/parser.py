"""Parsing of PAM configuration text into Config objects."""

from __future__ import annotations

import io
import re
from collections.abc import Iterable, Iterator
from typing import TextIO

from pamparser.model import (
    ActionType,
    Config,
    Control,
    ControlType,
    Rule,
    is_valid_control_type,
    is_valid_module_type,
)

_COMMENT_RE = re.compile(r"[ \t\n\f\r]*#(.*)")
_COMPLEX_CONTROL_RE = re.compile(r"\[([^\]]+)\]")
_JUMP_RE = re.compile(r"[+-]?[0-9]+")
_ACTIONS = frozenset(action.value for action in ActionType)


class ParseError(ValueError):
    """Raised when PAM configuration text cannot be parsed."""


def tokenize_line(line: str) -> list[str]:
    """Split a line into tokens, keeping bracketed groups and a trailing comment whole."""
    tokens: list[str] = []
    current: list[str] = []
    in_brackets = False

    def flush() -> None:
        if current:
            tokens.append("".join(current))
            current.clear()

    for index, ch in enumerate(line):
        if ch == "[":
            if not in_brackets:
                flush()
                in_brackets = True
            current.append(ch)
        elif ch == "]":
            current.append(ch)
            if in_brackets:
                flush()
                in_brackets = False
        elif ch in " \t":
            if in_brackets:
                current.append(ch)
            else:
                flush()
        elif ch == "#" and not in_brackets:
            flush()
            tokens.append(line[index:])
            return tokens
        else:
            current.append(ch)

    flush()
    return tokens


def _lines(reader: TextIO | Iterable[str] | str) -> Iterator[str]:
    if isinstance(reader, str):
        reader = io.StringIO(reader)
    for raw in reader:
        line = raw[:-1] if raw.endswith("\n") else raw
        if line.endswith("\r"):
            line = line[:-1]
        yield line


def _collect(config: Config, rule: Rule | None, comment: str) -> None:
    if rule is not None:
        config.rules.append(rule)
    elif comment:
        config.comments.append(comment)


class Parser:
    """Parser for /etc/pam.conf and /etc/pam.d/* style configuration text."""

    def parse(self, reader: TextIO | Iterable[str] | str, is_pam_d: bool) -> Config:
        """Parse a whole configuration without a service name."""
        return self.parse_with_service(reader, is_pam_d, "")

    def parse_with_service(
        self,
        reader: TextIO | Iterable[str] | str,
        is_pam_d: bool,
        service_name: str,
    ) -> Config:
        """Parse a whole configuration; in pam.d mode every rule gets *service_name* if given."""
        config = Config(is_pam_d=is_pam_d)
        continued_from: int | None = None
        pending = ""

        for line_num, line in enumerate(_lines(reader), start=1):
            if continued_from is not None:
                # Once a continued rule has been seen, later lines are joined
                # the same way and carry that rule's line number.
                stripped = line.strip()
                pending += " " + stripped
                if not stripped.endswith("\\"):
                    rule, comment = self.parse_line(
                        pending, continued_from, is_pam_d, service_name
                    )
                    _collect(config, rule, comment)
                    pending = ""
                continue

            rule, comment = self.parse_line(line, line_num, is_pam_d, service_name)
            if rule is not None and rule.continuation:
                continued_from = rule.line_number
                pending = line[:-1]
            else:
                _collect(config, rule, comment)

        return config

    def parse_line(
        self, line: str, line_num: int, is_pam_d: bool, service_name: str
    ) -> tuple[Rule | None, str]:
        """Parse one line, returning (rule, "") for a rule or (None, comment) otherwise."""
        original = line
        line = line.rstrip(" \t\n\r")
        continuation = line.endswith("\\")
        if continuation:
            line = line[:-1]

        comment_match = _COMMENT_RE.fullmatch(original)
        if comment_match is not None:
            return None, comment_match.group(1).strip()

        if not line.strip():
            return None, ""

        rule = Rule(line_number=line_num, continuation=continuation)
        if is_pam_d and service_name:
            rule.service = service_name

        tokens = tokenize_line(line)
        if not tokens:
            raise ParseError(f"empty rule at line {line_num}")

        for index, token in enumerate(tokens):
            if token.startswith("#"):
                rule.comment = token[1:].strip()
                tokens = tokens[:index]
                break

        if not tokens:
            raise ParseError(f"empty rule at line {line_num}")

        if tokens[0].startswith("@"):
            return self.parse_directive(tokens, rule, line_num), ""

        fields = iter(tokens)

        if not is_pam_d:
            rule.service = next(fields)

        module_type = next(fields, None)
        if module_type is None:
            raise ParseError(f"missing type field at line {line_num}")
        if not is_valid_module_type(module_type):
            raise ParseError(f"invalid module type '{module_type}' at line {line_num}")
        rule.type = module_type.lower()

        control_str = next(fields, None)
        if control_str is None:
            raise ParseError(f"missing control field at line {line_num}")
        try:
            rule.control = self.parse_control(control_str)
        except ParseError as err:
            raise ParseError(f"error parsing control at line {line_num}: {err}") from err

        module_path = next(fields, None)
        if module_path is None:
            raise ParseError(f"missing module path at line {line_num}")
        rule.module_path = module_path

        rest = list(fields)
        if rest:
            rule.arguments = self.parse_arguments(" ".join(rest))

        return rule, ""

    def parse_control(self, control_str: str) -> Control:
        """Parse a control field, either a keyword or the bracketed form, with optional '-'."""
        optional = control_str.startswith("-")
        if optional:
            control_str = control_str[1:]

        if _COMPLEX_CONTROL_RE.fullmatch(control_str):
            return self.parse_complex_control(control_str, optional)

        if not is_valid_control_type(control_str):
            raise ParseError(f"invalid control type: {control_str}")
        return Control(simple=ControlType(control_str.lower()), optional=optional)

    def parse_complex_control(self, control_str: str, optional: bool) -> Control:
        """Parse bracketed control syntax such as '[success=ok default=bad]'."""
        inner = control_str.removesuffix("]").removeprefix("[")
        actions: dict[str, str | int] = {}

        for pair in inner.split():
            key, sep, value = pair.partition("=")
            if not sep:
                raise ParseError(f"invalid control pair: {pair}")
            jump = _JUMP_RE.match(value)
            if jump is not None:
                actions[key] = int(jump.group(0))
            elif value in _ACTIONS:
                actions[key] = ActionType(value)
            else:
                actions[key] = value

        return Control(complex=actions, optional=optional)

    def parse_arguments(self, arg_str: str) -> list[str]:
        """Split module arguments, honouring '[...]' groups and '\\]' escapes inside them."""
        text = arg_str.strip()
        args: list[str] = []
        i, n = 0, len(text)

        while i < n:
            while i < n and text[i] in " \t":
                i += 1
            if i >= n:
                break

            if text[i] == "[":
                start = i + 1
                i += 1
                depth = 1
                while i < n and depth > 0:
                    ch = text[i]
                    if ch == "\\" and i + 1 < n:
                        i += 2
                    elif ch == "[":
                        depth += 1
                        i += 1
                    elif ch == "]":
                        depth -= 1
                        i += 1
                    else:
                        i += 1
                if depth == 0:
                    content = text[start : i - 1]
                    args.append(content.replace("\\]", "]").replace("\\[", "["))
            else:
                start = i
                while i < n and text[i] not in " \t[":
                    i += 1
                if i > start:
                    args.append(text[start:i])

        return args

    def parse_directive(self, tokens: list[str], rule: Rule, line_num: int) -> Rule:
        """Fill *rule* from a directive such as '@include target' and return it."""
        if not tokens:
            raise ParseError(f"empty directive at line {line_num}")

        head = tokens[0]
        if not head.startswith("@"):
            raise ParseError(f"expected directive to start with @ at line {line_num}")

        directive_type = head[1:]
        rule.is_directive = True
        rule.directive_type = directive_type

        if directive_type != "include":
            raise ParseError(f"unknown directive type '@{directive_type}' at line {line_num}")
        if len(tokens) < 2:
            raise ParseError(f"@include directive missing target at line {line_num}")

        rule.directive_target = tokens[1]
        if len(tokens) > 2:
            rule.arguments = list(tokens[2:])
        return rule