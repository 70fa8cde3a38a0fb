"""Data model for PAM configuration files: rules, controls and configs."""

from __future__ import annotations

import copy as _copy
from dataclasses import dataclass, field
from enum import StrEnum


class ModuleType(StrEnum):
    """PAM module types (management groups)."""

    ACCOUNT = "account"
    AUTH = "auth"
    PASSWORD = "password"
    SESSION = "session"
    SESSION_NONINTERACTIVE = "session-noninteractive"


class ControlType(StrEnum):
    """Simple control keywords."""

    REQUIRED = "required"
    REQUISITE = "requisite"
    SUFFICIENT = "sufficient"
    OPTIONAL = "optional"
    INCLUDE = "include"
    SUBSTACK = "substack"


class ActionType(StrEnum):
    """Actions used in the bracketed control syntax."""

    IGNORE = "ignore"
    BAD = "bad"
    DIE = "die"
    OK = "ok"
    DONE = "done"
    RESET = "reset"


class ReturnValue(StrEnum):
    """PAM return codes used as keys in the bracketed control syntax."""

    SUCCESS = "success"
    OPEN_ERR = "open_err"
    SYMBOL_ERR = "symbol_err"
    SERVICE_ERR = "service_err"
    SYSTEM_ERR = "system_err"
    BUF_ERR = "buf_err"
    PERM_DENIED = "perm_denied"
    AUTH_ERR = "auth_err"
    CRED_INSUFFICIENT = "cred_insufficient"
    AUTHINFO_UNAVAIL = "authinfo_unavail"
    USER_UNKNOWN = "user_unknown"
    MAXTRIES = "maxtries"
    NEW_AUTHTOK_REQD = "new_authtok_reqd"
    ACCT_EXPIRED = "acct_expired"
    SESSION_ERR = "session_err"
    CRED_UNAVAIL = "cred_unavail"
    CRED_EXPIRED = "cred_expired"
    CRED_ERR = "cred_err"
    NO_MODULE_DATA = "no_module_data"
    CONV_ERR = "conv_err"
    AUTHTOK_ERR = "authtok_err"
    AUTHTOK_RECOVER_ERR = "authtok_recover_err"
    AUTHTOK_LOCK_BUSY = "authtok_lock_busy"
    AUTHTOK_DISABLE_AGING = "authtok_disable_aging"
    TRY_AGAIN = "try_again"
    IGNORE = "ignore"
    ABORT = "abort"
    AUTHTOK_EXPIRED = "authtok_expired"
    MODULE_UNKNOWN = "module_unknown"
    BAD_ITEM = "bad_item"
    CONV_AGAIN = "conv_again"
    INCOMPLETE = "incomplete"
    DEFAULT = "default"


_MODULE_TYPE_ORDER: dict[str, int] = {
    ModuleType.ACCOUNT: 0,
    ModuleType.AUTH: 1,
    ModuleType.PASSWORD: 2,
    ModuleType.SESSION: 3,
    ModuleType.SESSION_NONINTERACTIVE: 4,
}
_UNKNOWN_ORDER = 5

_VALID_MODULE_TYPES = frozenset(m.value for m in ModuleType)
_VALID_CONTROL_TYPES = frozenset(c.value for c in ControlType)


def _strip_negative(value: str) -> str:
    return value[1:] if value.startswith("-") else value


def is_valid_module_type(t: str) -> bool:
    """Return True if *t* names a module type, case-insensitively, with an optional '-' prefix."""
    return _strip_negative(t.lower()) in _VALID_MODULE_TYPES


def is_valid_control_type(c: str) -> bool:
    """Return True if *c* is a simple control keyword, case-insensitively."""
    return c.lower() in _VALID_CONTROL_TYPES


def get_module_type_order(module_type: str) -> int:
    """Return the standard ordering index of a module type; unknown types sort last."""
    return _MODULE_TYPE_ORDER.get(_strip_negative(module_type), _UNKNOWN_ORDER)


def get_normalized_module_type(module_type: str) -> str:
    """Return the module type without its negative '-' prefix."""
    return _strip_negative(module_type)


@dataclass
class Control:
    """A control field: either a simple keyword or a map of return value to action or jump."""

    simple: str | None = None
    complex: dict[str, str | int] | None = None
    optional: bool = False

    def copy(self) -> Control:
        """Return an independent copy of this control."""
        return Control(
            simple=self.simple,
            complex=dict(self.complex) if self.complex is not None else None,
            optional=self.optional,
        )


@dataclass
class Rule:
    """A single PAM rule or directive line."""

    control: Control = field(default_factory=Control)
    service: str = ""
    type: str = ""
    module_path: str = ""
    comment: str = ""
    directive_type: str = ""
    directive_target: str = ""
    arguments: list[str] = field(default_factory=list)
    line_number: int = 0
    continuation: bool = False
    is_directive: bool = False

    def copy(self) -> Rule:
        """Return an independent copy of this rule."""
        clone = _copy.copy(self)
        clone.control = self.control.copy()
        clone.arguments = list(self.arguments)
        return clone


@dataclass
class Config:
    """A parsed PAM configuration file."""

    file_path: str = ""
    rules: list[Rule] = field(default_factory=list)
    comments: list[str] = field(default_factory=list)
    is_pam_d: bool = False

    def copy(self) -> Config:
        """Return a deep copy of this configuration."""
        return Config(
            file_path=self.file_path,
            rules=[rule.copy() for rule in self.rules],
            comments=list(self.comments),
            is_pam_d=self.is_pam_d,
        )