# pamparser

A library for reading, editing and writing Linux PAM configuration text.
It understands both layouts:

- `/etc/pam.conf`, where every line starts with a service name
- `/etc/pam.d/<service>`, where the service is the file name

It handles simple and bracketed control fields (`required`, `-optional`,
`[success=ok default=bad]`, jumps such as `default=2`), negative module types
(`-session`), `session-noninteractive`, bracketed module arguments with escaped
`]`, line continuations, inline comments and `@include` directives.

The package has no dependencies outside the standard library.

## Modules

- `pamparser.model`: the data classes `Rule`, `Control` and `Config`, the
  string enums `ModuleType`, `ControlType`, `ActionType` and `ReturnValue`, and
  the helpers `is_valid_module_type`, `is_valid_control_type`,
  `get_module_type_order` and `get_normalized_module_type`.
- `pamparser.parser`: `Parser`, `ParseError` and `tokenize_line`.
- `pamparser.editor`: `Editor` and the rule filters `filter_by_service`,
  `filter_by_type`, `filter_by_module_path`, `filter_by_control` and
  `combine_filters`.
- `pamparser.writer`: `Writer`.

## Parsing

```python
import io
from pamparser.parser import Parser

text = """# PAM configuration for SSH
auth     required    pam_unix.so nullok
auth     [success=1 default=ignore] pam_ldap.so
-session optional    pam_systemd.so
@include common-account
"""

config = Parser().parse_with_service(io.StringIO(text), True, "sshd")
for rule in config.rules:
    if rule.is_directive:
        print("@" + rule.directive_type, rule.directive_target)
    else:
        print(rule.service, rule.type, rule.module_path, rule.arguments)
```

The reader may be a text stream, any iterable of lines, or a plain string.
`Parser.parse(reader, is_pam_d)` does the same without setting a service
name; in pam.conf mode (`is_pam_d=False`) the service is read from the first
field of each line. Comment-only lines are collected in `config.comments`.

Malformed input (an unknown module type, a missing control field or module
path, an invalid control keyword, a bracketed control pair without `=`, an
unknown directive) raises `ParseError`, a subclass of `ValueError`, whose
message names the line.

## Editing

```python
from pamparser.editor import Editor, combine_filters, filter_by_module_path, filter_by_type
from pamparser.model import Control, ControlType, ModuleType, Rule

editor = Editor(config)

editor.add_rule(Rule(
    type=ModuleType.AUTH,
    control=Control(simple=ControlType.OPTIONAL),
    module_path="pam_google_authenticator.so",
    comment="Two-factor authentication",
))

unix_auth = editor.find_rules(combine_filters(
    filter_by_type(ModuleType.AUTH),
    filter_by_module_path("pam_unix"),
))
editor.update_argument(unix_auth[0], "use_first_pass", "")

for warning in editor.validate():
    print(warning)
```

The editor changes the `Config` it was given in place. `add_rule` places a
rule after the last rule whose type sorts at or before its own, in the order
account, auth, password, session, session-noninteractive; directives go at
the end. `insert_rule_before` and `insert_rule_after` place a rule next to the
first or last match of a filter. `sort_rules_by_type` regroups all rules in
that order, keeping their relative order within each type. `get_rule` and
`get_config` return copies.

Calls given an index that is out of range raise `IndexError`, and
`insert_rule_before` / `insert_rule_after` raise `LookupError` when no rule
matches. `validate` does not raise; it returns a list of warning strings.

## Writing

```python
from pamparser.writer import Writer

writer = Writer()
print(writer.write_string(editor.get_config()))

# Column-aligned output for pam.d-style rules
print(Writer().write_pretty_string(config))
```

The writer puts standalone comments first, then the rules grouped by type
(account, auth, password, session, then any other types such as
session-noninteractive) with a blank line between groups, and writes
directives last. The config passed in is not reordered. Lines longer than
`max_line_length` (100 by default; 0 turns splitting off) are split with a
trailing backslash and continued with `continuation_indent` spaces.
Arguments that contain spaces or brackets are written in `[...]` with `]`
escaped. Passing `None` to `write` or `write_string` raises `ValueError`.

Pretty output aligns only rules without a service field. `write_pretty` and
`write_pretty_string` switch the writer to pretty mode and size its columns
from the config; `set_pretty_format` and `set_column_widths` set these by hand.

## What the package does not do

It works on text and in-memory objects only. It has no helpers for loading
or saving files by path, detecting a file's layout, listing a `pam.d`
directory, or making backups, and it has no command-line tool; open and write
files yourself and pass the stream or string to `Parser` and `Writer`.
`@include` directives are parsed and written but not followed.