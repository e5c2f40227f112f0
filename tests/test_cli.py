"""
CLI Tests
=========
"""

import pytest

from ghrules import cli


@pytest.fixture(autouse=True)
def wired(monkeypatch, container):
    """Run the CLI against the fake-backed container without touching logging."""
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)
    monkeypatch.setattr(cli.RuleConfigContainer, "build", classmethod(lambda cls, config=None, **kw: container))
    return container


def test_greenhouses(capsys):
    assert cli.main(["greenhouses"]) == 0

    out = capsys.readouterr().out.splitlines()
    assert out[0].startswith("*")
    assert "A" in out[0]
    assert "B" in out[1]


def test_rules_lists_with_component_names(capsys):
    assert cli.main(["rules"]) == 0

    out = capsys.readouterr().out
    assert "Vent: Air temperature > 28 -> Fan" in out
    assert "Morning heat: at 06:30 -> Heater" in out


def test_rules_of_other_greenhouse(capsys):
    assert cli.main(["rules", "--greenhouse", "2"]) == 0

    out = capsys.readouterr().out
    assert "Water" in out
    assert "Vent" not in out


def test_unknown_greenhouse(capsys):
    assert cli.main(["rules", "-g", "9"]) == 2


def test_toggle(capsys, authority):
    assert cli.main(["toggle", "2", "--on"]) == 0

    assert "enabled" in capsys.readouterr().out
    assert authority.calls_to("toggle_rule") == [(2, True)]


def test_toggle_overruled_by_server(capsys, authority):
    authority.toggle_forced = False

    assert cli.main(["toggle", "2", "--on"]) == 1
    assert "disabled" in capsys.readouterr().out


def test_delete_asks_for_confirmation(monkeypatch, authority):
    monkeypatch.setattr("builtins.input", lambda prompt: "n")

    assert cli.main(["delete", "1"]) == 1
    assert authority.calls_to("delete_rule") == []


def test_delete_confirmed(monkeypatch, authority, capsys):
    monkeypatch.setattr("builtins.input", lambda prompt: "y")

    assert cli.main(["delete", "1"]) == 0
    assert authority.calls_to("delete_rule") == [(1,)]


def test_delete_yes_flag(authority):
    assert cli.main(["delete", "2", "--yes"]) == 0
    assert authority.calls_to("delete_rule") == [(2,)]


def test_delete_failure_reports_notice(authority, capsys):
    from ghrules.domain.exceptions import ExternalServiceError

    authority.failures["delete_rule"] = ExternalServiceError("500")

    assert cli.main(["delete", "1", "-y"]) == 1
    assert "Failed to delete rule" in capsys.readouterr().out
