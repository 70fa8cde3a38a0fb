"""In-place editing and validation of parsed PAM configurations."""

from __future__ import annotations

import os.path
from collections.abc import Callable

from pamparser.model import (
    Config,
    Control,
    ModuleType,
    Rule,
    get_module_type_order,
    get_normalized_module_type,
    is_valid_control_type,
    is_valid_module_type,
)

RuleFilter = Callable[[Rule], bool]

_SORT_ORDER: tuple[str, ...] = (
    ModuleType.ACCOUNT,
    ModuleType.AUTH,
    ModuleType.PASSWORD,
    ModuleType.SESSION,
    ModuleType.SESSION_NONINTERACTIVE,
)


def filter_by_service(service: str) -> RuleFilter:
    """Match rules whose service equals *service*, ignoring case."""
    wanted = service.casefold()
    return lambda rule: rule.service.casefold() == wanted


def filter_by_type(module_type: str) -> RuleFilter:
    """Match rules of exactly *module_type*."""
    return lambda rule: rule.type == module_type


def filter_by_module_path(module_path: str) -> RuleFilter:
    """Match rules whose module path contains *module_path*."""
    return lambda rule: module_path in rule.module_path


def filter_by_control(control: str) -> RuleFilter:
    """Match rules with the simple control keyword *control*."""
    return lambda rule: rule.control.simple is not None and rule.control.simple == control


def combine_filters(*args: RuleFilter) -> RuleFilter:
    """Match rules accepted by every given filter."""
    return lambda rule: all(rule_filter(rule) for rule_filter in args)


class Editor:
    """Modifies the rules and comments of a Config in place."""

    def __init__(self, config: Config) -> None:
        self.config = config

    def _check_index(self, index: int, label: str = "rule") -> None:
        count = len(self.config.rules)
        if not 0 <= index < count:
            raise IndexError(f"{label} index {index} out of range [0, {count})")

    def find_rules(self, rule_filter: RuleFilter) -> list[int]:
        """Return the indices of all rules accepted by *rule_filter*."""
        return [i for i, rule in enumerate(self.config.rules) if rule_filter(rule)]

    def get_rule(self, index: int) -> Rule:
        """Return a copy of the rule at *index*."""
        self._check_index(index)
        return self.config.rules[index].copy()

    def add_rule(self, rule: Rule) -> None:
        """Add a rule after the last rule of its type group; directives go at the end."""
        if rule.is_directive:
            self.config.rules.append(rule)
            return
        self.config.rules.insert(self._find_insert_position(rule.type), rule)

    def _find_insert_position(self, module_type: str) -> int:
        target = get_module_type_order(module_type)
        for i in range(len(self.config.rules) - 1, -1, -1):
            if get_module_type_order(self.config.rules[i].type) <= target:
                return i + 1
        return 0

    def insert_rule(self, index: int, rule: Rule) -> None:
        """Insert *rule* at *index*, which may equal the number of rules."""
        count = len(self.config.rules)
        if not 0 <= index <= count:
            raise IndexError(f"insert index {index} out of range [0, {count}]")
        self.config.rules.insert(index, rule)

    def insert_rule_before(self, rule: Rule, rule_filter: RuleFilter) -> None:
        """Insert *rule* before the first rule accepted by *rule_filter*."""
        matches = self.find_rules(rule_filter)
        if not matches:
            raise LookupError("no rule found matching the pattern for before insertion")
        self.insert_rule(matches[0], rule)

    def insert_rule_after(self, rule: Rule, rule_filter: RuleFilter) -> None:
        """Insert *rule* after the last rule accepted by *rule_filter*."""
        matches = self.find_rules(rule_filter)
        if not matches:
            raise LookupError("no rule found matching the pattern for after insertion")
        self.insert_rule(matches[-1] + 1, rule)

    def update_rule(self, index: int, rule: Rule) -> None:
        """Replace the rule at *index*."""
        self._check_index(index)
        self.config.rules[index] = rule

    def remove_rule(self, index: int) -> None:
        """Remove the rule at *index*."""
        self._check_index(index)
        del self.config.rules[index]

    def remove_rules(self, rule_filter: RuleFilter) -> int:
        """Remove every rule accepted by *rule_filter* and return how many went."""
        kept = [rule for rule in self.config.rules if not rule_filter(rule)]
        removed = len(self.config.rules) - len(kept)
        self.config.rules = kept
        return removed

    def update_argument(self, rule_index: int, arg_name: str, arg_value: str) -> None:
        """Set argument *arg_name* to *arg_value*, replacing it or appending it."""
        self._check_index(rule_index)
        rule = self.config.rules[rule_index]
        new_arg = f"{arg_name}={arg_value}"
        for i, arg in enumerate(rule.arguments):
            if arg.startswith(arg_name + "=") or arg == arg_name:
                rule.arguments[i] = new_arg
                return
        rule.arguments.append(new_arg)

    def remove_argument(self, rule_index: int, arg_name: str) -> None:
        """Remove argument *arg_name*, bare or in name=value form."""
        self._check_index(rule_index)
        rule = self.config.rules[rule_index]
        rule.arguments = [
            arg
            for arg in rule.arguments
            if not arg.startswith(arg_name + "=") and arg != arg_name
        ]

    def set_control(self, rule_index: int, control: Control) -> None:
        """Replace the control field of the rule at *rule_index*."""
        self._check_index(rule_index)
        self.config.rules[rule_index].control = control

    def move_rule(self, from_index: int, to_index: int) -> None:
        """Move a rule; the target index is adjusted for the removal when moving forward."""
        self._check_index(from_index, "from")
        self._check_index(to_index, "to")
        if from_index == to_index:
            return
        rule = self.config.rules.pop(from_index)
        if to_index > from_index:
            to_index -= 1
        self.config.rules.insert(to_index, rule)

    def add_comment(self, comment: str) -> None:
        """Append a standalone comment."""
        self.config.comments.append(comment)

    def get_config(self) -> Config:
        """Return a deep copy of the configuration being edited."""
        return self.config.copy()

    def validate(self) -> list[str]:
        """Return warnings describing common problems in the configuration."""
        warnings: list[str] = []
        config = self.config

        for i, rule in enumerate(config.rules):
            if rule.is_directive:
                if not rule.directive_type:
                    warnings.append(f"Rule {i}: directive missing type")
                if rule.directive_type == "include" and not rule.directive_target:
                    warnings.append(f"Rule {i}: @include directive missing target")
                continue

            if not rule.type:
                warnings.append(f"Rule {i}: missing module type")
            if not rule.module_path:
                warnings.append(f"Rule {i}: missing module path")
            if not is_valid_module_type(str(rule.type)):
                warnings.append(f"Rule {i}: invalid module type '{rule.type}'")

            control = rule.control
            if control.simple is None and control.complex is None:
                warnings.append(f"Rule {i}: missing control field")
            if control.simple is not None and not is_valid_control_type(str(control.simple)):
                warnings.append(f"Rule {i}: invalid control type '{control.simple}'")

            if config.is_pam_d:
                expected = ""
                if config.file_path and "/pam.d/" in config.file_path:
                    expected = os.path.basename(config.file_path)
                if rule.service and expected and rule.service != expected:
                    warnings.append(
                        f"Rule {i}: service field '{rule.service}' doesn't match "
                        f"expected service '{expected}' for pam.d format"
                    )
            elif not rule.service:
                warnings.append(f"Rule {i}: missing service field in pam.conf format")

        return warnings

    def sort_rules_by_type(self) -> None:
        """Group rules by module type in standard order, stable within each type."""
        groups: dict[str, list[Rule]] = {}
        for rule in self.config.rules:
            key = str(get_normalized_module_type(rule.type))
            groups.setdefault(key, []).append(rule)

        ordered: list[Rule] = []
        for module_type in _SORT_ORDER:
            ordered.extend(groups.get(str(module_type), []))
        known = {str(module_type) for module_type in _SORT_ORDER}
        for key, rules in groups.items():
            if key not in known:
                ordered.extend(rules)

        self.config.rules = ordered