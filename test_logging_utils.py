"""
Test logging helpers
"""

import inspect

from src.services.logging_utils import log_fields, log_section, print_with_prefix


def test_print_with_prefix_writes_each_line_to_stdout(capsys):
    print_with_prefix("[SkillMatcher]", "first\n\nsecond")
    assert capsys.readouterr().out == "[SkillMatcher] first\n[SkillMatcher]\n[SkillMatcher] second\n"


def test_print_with_prefix_disabled(capsys):
    print_with_prefix("[SkillMatcher]", "hidden", enabled=False)
    assert capsys.readouterr().out == ""


def test_print_with_prefix_signature():
    assert list(inspect.signature(print_with_prefix).parameters) == ["prefix", "message", "enabled"]


def test_log_section_and_fields():
    lines = []
    log_section(lines.append, "MATCH", width=5, char="-")
    log_fields(lines.append, {"Score": 74, "Can join": True})

    assert lines == [
        "-----",
        "MATCH",
        "-----",
        "   Score:    74",
        "   Can join: True",
    ]
