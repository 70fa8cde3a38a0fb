"""Rendering of Config objects back into PAM configuration text."""

from __future__ import annotations

import dataclasses
import io
from dataclasses import dataclass
from typing import TextIO

from pamparser.model import (
    Config,
    Control,
    ModuleType,
    Rule,
    get_normalized_module_type,
)

_SECTION_ORDER: tuple[str, ...] = (
    ModuleType.ACCOUNT,
    ModuleType.AUTH,
    ModuleType.PASSWORD,
    ModuleType.SESSION,
)
_BRACKET_TRIGGERS = frozenset(" \t\n[]")


@dataclass
class Writer:
    """Formats PAM configurations, optionally with aligned columns and line continuation."""

    max_line_length: int = 100
    continuation_indent: int = 4
    pretty_format: bool = False
    type_column_width: int = 8
    control_column_width: int = 12
    module_column_width: int = 20

    def set_pretty_format(self, enabled: bool) -> Writer:
        """Enable or disable column-aligned output; returns self for chaining."""
        self.pretty_format = enabled
        return self

    def set_column_widths(
        self, type_width: int, control_width: int, module_width: int
    ) -> Writer:
        """Set the column widths used by pretty output; returns self for chaining."""
        self.type_column_width = type_width
        self.control_column_width = control_width
        self.module_column_width = module_width
        return self

    def format_control(self, control: Control) -> str:
        """Render a control field, with bracketed pairs sorted by return value."""
        prefix = "-" if control.optional else ""

        if control.simple is not None:
            return prefix + str(control.simple)

        if control.complex is not None:
            pairs = sorted((str(key), value) for key, value in control.complex.items())
            body = " ".join(f"{key}={value}" for key, value in pairs)
            return f"{prefix}[{body}]"

        return prefix

    def format_arguments(self, args: list[str]) -> str:
        """Render module arguments, bracketing those that contain spaces or brackets."""
        formatted = []
        for arg in args:
            if _BRACKET_TRIGGERS.intersection(arg):
                escaped = arg.replace("]", "\\]")
                formatted.append(f"[{escaped}]")
            else:
                formatted.append(arg)
        return " ".join(formatted)

    def format_rule(self, rule: Rule) -> str:
        """Render one rule or directive as a single line, without continuation."""
        if rule.is_directive:
            line = f"@{rule.directive_type} {rule.directive_target}"
            if rule.arguments:
                line += " " + self.format_arguments(rule.arguments)
            if rule.comment:
                line += " # " + rule.comment
            return line

        type_str = str(rule.type)
        control_str = self.format_control(rule.control)

        if self.pretty_format and not rule.service:
            line = self._format_pretty_rule(
                type_str, control_str, rule.module_path, rule.arguments
            )
        else:
            parts = [rule.service] if rule.service else []
            parts += [type_str, control_str, rule.module_path]
            if rule.arguments:
                parts.append(self.format_arguments(rule.arguments))
            line = " ".join(parts)

        if rule.comment:
            line += " # " + rule.comment
        return line

    def _format_pretty_rule(
        self, type_str: str, control_str: str, module_path: str, arguments: list[str]
    ) -> str:
        type_pad = max(1, self.type_column_width - len(type_str))
        control_pad = max(1, self.control_column_width - len(control_str))
        module_pad = max(1, self.module_column_width - len(module_path))

        line = type_str + " " * type_pad + control_str + " " * control_pad + module_path
        if arguments:
            line += " " * module_pad + self.format_arguments(arguments)
        return line

    def handle_line_continuation(self, line: str) -> list[str]:
        """Split a long line into backslash-continued lines, preferring breaks at spaces."""
        limit = self.max_line_length
        if limit <= 0 or len(line) <= limit:
            return [line]

        lines: list[str] = []
        remaining = line
        indent = " " * self.continuation_indent

        while len(remaining) > limit:
            break_point = limit
            for i in range(limit - 1, limit // 2, -1):
                if remaining[i] == " ":
                    break_point = i
                    break

            lines.append(remaining[:break_point].strip() + " \\")
            remaining = remaining[break_point:].strip()
            if remaining:
                remaining = indent + remaining

        if remaining:
            lines.append(remaining)
        return lines

    def sort_rules_by_type(self, config: Config) -> None:
        """Group rules by module type in standard order, keeping directives last."""
        directives = [rule for rule in config.rules if rule.is_directive]
        groups: dict[str, list[Rule]] = {}
        for rule in config.rules:
            if not rule.is_directive:
                key = str(get_normalized_module_type(rule.type))
                groups.setdefault(key, []).append(rule)

        ordered: list[Rule] = []
        for module_type in _SECTION_ORDER:
            ordered.extend(groups.get(str(module_type), []))
        known = {str(module_type) for module_type in _SECTION_ORDER}
        for key, rules in groups.items():
            if key not in known:
                ordered.extend(rules)
        ordered.extend(directives)

        config.rules = ordered

    def _render_lines(self, config: Config) -> list[str]:
        working = dataclasses.replace(config, rules=list(config.rules))
        self.sort_rules_by_type(working)

        lines = [f"# {comment}" for comment in working.comments]
        current_type = ""
        for rule in working.rules:
            if not rule.is_directive:
                normalized = str(get_normalized_module_type(rule.type))
                if normalized != current_type:
                    if lines and not lines[-1].startswith("#"):
                        lines.append("")
                    current_type = normalized
            lines.extend(self.handle_line_continuation(self.format_rule(rule)))
        return lines

    def write(self, config: Config | None, stream: TextIO) -> None:
        """Write *config* to a text stream; the config itself is left unchanged."""
        if config is None:
            raise ValueError("config cannot be None")
        for line in self._render_lines(config):
            stream.write(line)
            stream.write("\n")

    def write_string(self, config: Config | None) -> str:
        """Return *config* rendered as text."""
        buffer = io.StringIO()
        self.write(config, buffer)
        return buffer.getvalue()

    def analyze_and_set_column_widths(self, config: Config) -> Writer:
        """Size the pretty columns from the pam.d-style rules in *config*; returns self."""
        max_type = max_control = max_module = 0
        for rule in config.rules:
            if rule.is_directive or rule.service:
                continue
            max_type = max(max_type, len(str(rule.type)))
            max_control = max(max_control, len(self.format_control(rule.control)))
            max_module = max(max_module, len(rule.module_path))

        self.type_column_width = max_type + 2
        self.control_column_width = max_control + 2
        self.module_column_width = max_module + 2
        return self

    def write_pretty(self, config: Config, stream: TextIO) -> None:
        """Write *config* with column alignment sized to its content."""
        self.set_pretty_format(True).analyze_and_set_column_widths(config)
        self.write(config, stream)

    def write_pretty_string(self, config: Config) -> str:
        """Return *config* rendered with column alignment sized to its content."""
        buffer = io.StringIO()
        self.write_pretty(config, buffer)
        return buffer.getvalue()