import io

import pytest

from pamparser.model import (
    ActionType,
    Config,
    Control,
    ControlType,
    ModuleType,
    ReturnValue,
    Rule,
)
from pamparser.parser import Parser
from pamparser.writer import Writer


def simple(control_type, optional=False):
    return Control(simple=control_type, optional=optional)


def pretty_config():
    return Config(
        rules=[
            Rule(
                type=ModuleType.ACCOUNT,
                control=simple(ControlType.REQUIRED),
                module_path="pam_unix.so",
                arguments=["debug"],
            ),
            Rule(
                type=ModuleType.AUTH,
                control=simple(ControlType.SUFFICIENT),
                module_path="pam_ldap.so",
                arguments=["try_first_pass", "use_authtok"],
            ),
            Rule(
                type=ModuleType.PASSWORD,
                control=Control(
                    complex={
                        ReturnValue.SUCCESS: ActionType.OK,
                        ReturnValue.DEFAULT: ActionType.IGNORE,
                    }
                ),
                module_path="pam_cracklib.so",
                arguments=["retry=3", "minlen=8"],
            ),
            Rule(
                type=ModuleType.SESSION,
                control=simple(ControlType.OPTIONAL),
                module_path="pam_systemd.so",
            ),
        ]
    )


@pytest.mark.parametrize(
    "rule, expected",
    [
        (
            Rule(is_directive=True, directive_type="include", directive_target="common-auth", line_number=1),
            "@include common-auth",
        ),
        (
            Rule(
                is_directive=True,
                directive_type="include",
                directive_target="common-auth",
                comment="Include common authentication",
                line_number=1,
            ),
            "@include common-auth # Include common authentication",
        ),
        (
            Rule(
                is_directive=True,
                directive_type="include",
                directive_target="common-auth",
                arguments=["arg1", "arg2"],
                line_number=1,
            ),
            "@include common-auth arg1 arg2",
        ),
    ],
)
def test_format_include_directive(rule, expected):
    assert Writer().format_rule(rule) == expected


def test_round_trip_include_directive():
    text = "@include common-auth\n@include common-account # Account management\nsession required pam_unix.so"
    parser = Parser()
    config = parser.parse(text, True)
    output = Writer().write_string(config)
    config2 = parser.parse(output, True)
    assert len(config2.rules) == len(config.rules)
    includes = [r for r in config2.rules if r.is_directive and r.directive_type == "include"]
    assert len(includes) == 2
    assert includes[1].comment == "Account management"


def test_pretty_formatting_aligns_columns():
    config = pretty_config()
    writer = Writer()
    regular = writer.write_string(config)
    assert "account required pam_unix.so debug" in regular

    pretty = writer.write_pretty_string(config)
    assert writer.pretty_format is True
    assert writer.type_column_width == 10
    assert writer.control_column_width == 29
    assert writer.module_column_width == 17

    rule_lines = [line for line in pretty.splitlines() if line.strip()]
    assert [line.split()[0] for line in rule_lines] == ["account", "auth", "password", "session"]
    controls = ["required", "sufficient", "[default=ignore success=ok]", "optional"]
    modules = ["pam_unix.so", "pam_ldap.so", "pam_cracklib.so", "pam_systemd.so"]
    for line, control, module in zip(rule_lines, controls, modules):
        assert line[10:].startswith(control)
        assert line[39:].startswith(module)


def test_pretty_output_parses_back():
    config = pretty_config()
    output = Writer().write_pretty_string(config)
    parsed = Parser().parse(output, True)
    assert [r.module_path for r in parsed.rules] == [r.module_path for r in config.rules]
    assert parsed.rules[2].arguments == ["retry=3", "minlen=8"]


def test_column_width_customization():
    config = Config(
        rules=[
            Rule(
                type=ModuleType.AUTH,
                control=simple(ControlType.REQUIRED),
                module_path="pam_unix.so",
                arguments=["nullok"],
            )
        ]
    )
    writer = Writer().set_pretty_format(True).set_column_widths(10, 15, 25)
    output = writer.write_string(config)
    expected = "auth" + " " * 6 + "required" + " " * 7 + "pam_unix.so" + " " * 14 + "nullok\n"
    assert output == expected


def test_analyze_skips_service_rules_and_directives():
    config = Config(
        rules=[
            Rule(type="auth", control=simple(ControlType.REQUIRED), module_path="pam_unix.so"),
            Rule(
                service="averyveryverylongservice",
                type="session-noninteractive",
                control=simple(ControlType.REQUIRED),
                module_path="pam_very_long_module_name.so",
            ),
            Rule(is_directive=True, directive_type="include", directive_target="common-password"),
        ]
    )
    writer = Writer().analyze_and_set_column_widths(config)
    assert (writer.type_column_width, writer.control_column_width, writer.module_column_width) == (6, 10, 13)


@pytest.mark.parametrize(
    "rule, expected",
    [
        (
            Rule(
                service="login",
                type=ModuleType.AUTH,
                control=simple(ControlType.REQUIRED),
                module_path="pam_unix.so",
                arguments=["nullok"],
            ),
            "login auth required pam_unix.so nullok",
        ),
        (
            Rule(
                type=ModuleType.AUTH,
                control=simple(ControlType.REQUIRED),
                module_path="pam_unix.so",
                comment="Unix authentication",
            ),
            "auth required pam_unix.so # Unix authentication",
        ),
        (
            Rule(
                type=ModuleType.AUTH,
                control=simple(ControlType.OPTIONAL, optional=True),
                module_path="pam_ldap.so",
            ),
            "auth -optional pam_ldap.so",
        ),
        (
            Rule(
                type=ModuleType.AUTH,
                control=Control(
                    complex={ReturnValue.SUCCESS: ActionType.OK, ReturnValue.DEFAULT: ActionType.BAD}
                ),
                module_path="pam_unix.so",
            ),
            "auth [default=bad success=ok] pam_unix.so",
        ),
    ],
)
def test_format_rule(rule, expected):
    assert Writer().format_rule(rule) == expected


@pytest.mark.parametrize(
    "args, expected",
    [
        (["nullok", "try_first_pass"], "nullok try_first_pass"),
        (["query=select * from users"], "[query=select * from users]"),
        (["message=Hello ] World"], "[message=Hello \\] World]"),
        ([], ""),
    ],
)
def test_format_arguments(args, expected):
    assert Writer().format_arguments(args) == expected


def test_write_config_orders_and_separates_sections():
    config = Config(
        comments=["PAM configuration", "Generated by test"],
        rules=[
            Rule(
                service="login",
                type=ModuleType.AUTH,
                control=simple(ControlType.REQUIRED),
                module_path="pam_unix.so",
                arguments=["nullok"],
            ),
            Rule(
                service="login",
                type=ModuleType.ACCOUNT,
                control=simple(ControlType.REQUIRED),
                module_path="pam_unix.so",
            ),
        ],
    )
    stream = io.StringIO()
    Writer().write(config, stream)
    assert stream.getvalue() == (
        "# PAM configuration\n"
        "# Generated by test\n"
        "login account required pam_unix.so\n"
        "\n"
        "login auth required pam_unix.so nullok\n"
    )
    assert config.rules[0].type == ModuleType.AUTH


def test_line_continuation_not_applied_to_short_or_unlimited():
    long_line = "x " * 80
    assert Writer().handle_line_continuation("auth required pam_unix.so") == ["auth required pam_unix.so"]
    assert Writer(max_line_length=0).handle_line_continuation(long_line) == [long_line]


def test_format_control_with_jump():
    control = Control(complex={ReturnValue.SUCCESS: 2, ReturnValue.DEFAULT: ActionType.BAD})
    assert Writer().format_control(control) == "[default=bad success=2]"


def test_format_optional_complex_control():
    control = Control(complex={ReturnValue.SUCCESS: ActionType.OK}, optional=True)
    assert Writer().format_control(control) == "-[success=ok]"


def test_write_none_config_raises():
    with pytest.raises(ValueError):
        Writer().write(None, io.StringIO())
    with pytest.raises(ValueError):
        Writer().write_string(None)


def test_negative_module_type_sorting():
    config = Config(
        rules=[
            Rule(type="session", module_path="pam_unix.so"),
            Rule(type="-session", module_path="pam_systemd.so"),
            Rule(type="auth", module_path="pam_unix.so"),
            Rule(type="-auth", module_path="pam_ldap.so"),
            Rule(type="account", module_path="pam_unix.so"),
            Rule(type="-account", module_path="pam_ldap.so"),
        ]
    )
    Writer().sort_rules_by_type(config)
    assert [r.type for r in config.rules] == ["account", "-account", "auth", "-auth", "session", "-session"]


def test_sort_rules_empty_config():
    config = Config(rules=[])
    Writer().sort_rules_by_type(config)
    assert config.rules == []


def test_sort_rules_puts_directives_last():
    config = Config(
        rules=[
            Rule(type=ModuleType.SESSION, module_path="pam_unix.so"),
            Rule(is_directive=True, directive_type="include", directive_target="common-auth"),
            Rule(type=ModuleType.AUTH, module_path="pam_ldap.so"),
        ]
    )
    Writer().sort_rules_by_type(config)
    assert config.rules[-1].is_directive
    assert [r.type for r in config.rules[:2]] == [ModuleType.AUTH, ModuleType.SESSION]


def test_sort_rules_session_noninteractive_after_session():
    config = Config(
        rules=[
            Rule(type="session-noninteractive", module_path="pam_a.so"),
            Rule(type="session", module_path="pam_b.so"),
            Rule(type="account", module_path="pam_c.so"),
        ]
    )
    Writer().sort_rules_by_type(config)
    assert [r.module_path for r in config.rules] == ["pam_c.so", "pam_b.so", "pam_a.so"]


def test_write_directives_after_rules():
    config = Parser().parse("@include common-auth\nsession required pam_unix.so\n", True)
    assert Writer().write_string(config) == "session required pam_unix.so\n@include common-auth\n"