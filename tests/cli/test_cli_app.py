"""Tests for the regguard CLI."""

import json

from typer.testing import CliRunner

from regguard.cli.app import app

runner = CliRunner()


def test_version_command():
    """Test 'version' prints the regguard version string."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "regguard version" in result.output


def test_no_args_shows_help():
    result = runner.invoke(app, [])
    assert result.exit_code in (0, 2)
    assert "Usage" in result.output


def test_scan_redacts_email():
    result = runner.invoke(app, ["scan", "Contact john@example.com about the filing"])

    assert result.exit_code == 0
    assert "Contact [EMAIL] about the filing" in result.output
    assert "john@example.com" not in result.output


def test_scan_calculation_context_keeps_figures():
    result = runner.invoke(app, ["scan", "--context", "calculation", "Server 10.0.0.1"])

    assert result.exit_code == 0
    assert "Server 10.0.0.1" in result.output


def test_scan_exclude_label():
    result = runner.invoke(app, ["scan", "-e", "[EMAIL]", "mail a@b.com"])

    assert result.exit_code == 0
    assert "mail a@b.com" in result.output


def test_scan_reads_stdin():
    result = runner.invoke(app, ["scan", "-"], input="SSN 123-45-6789\n")

    assert result.exit_code == 0
    assert "SSN [SSN]" in result.output


def test_policy_show_missing(tmp_config_path):
    result = runner.invoke(app, ["policy", "show", "acme", "--config", str(tmp_config_path)])

    assert result.exit_code == 1
    assert "No policy stored for tenant acme" in result.output


def test_policy_set_mode_and_show(tmp_config_path):
    result = runner.invoke(
        app,
        ["policy", "set-mode", "acme", "report-only", "--config", str(tmp_config_path)],
    )
    assert result.exit_code == 0
    assert "set to report-only" in result.output

    result = runner.invoke(app, ["policy", "show", "acme", "--config", str(tmp_config_path)])
    assert result.exit_code == 0
    policy = json.loads(result.output)
    assert policy["tenantId"] == "acme"
    assert policy["egressMode"] == "report-only"
    assert policy["defaultProvider"] == "groq"


def test_policy_set_user_mode(tmp_config_path):
    result = runner.invoke(
        app,
        [
            "policy",
            "set-mode",
            "acme",
            "off",
            "--user",
            "u1",
            "--allow-off",
            "--config",
            str(tmp_config_path),
        ],
    )
    assert result.exit_code == 0
    assert "user u1 of tenant acme" in result.output

    result = runner.invoke(app, ["policy", "show", "acme", "--config", str(tmp_config_path)])
    policy = json.loads(result.output)
    assert policy["userPolicies"]["u1"] == {"egressMode": "off", "allowOffMode": True}
    assert policy["egressMode"] is None


def test_resolve_mode(tmp_config_path):
    runner.invoke(
        app, ["policy", "set-mode", "acme", "report-only", "--config", str(tmp_config_path)]
    )

    result = runner.invoke(
        app,
        ["resolve-mode", "acme", "--override", "off", "--config", str(tmp_config_path)],
    )

    assert result.exit_code == 0
    assert "Requested mode" in result.output
    assert "off" in result.output
    assert "report-only" in result.output


def test_invalid_config(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("egress: {mode: sometimes}\n")

    result = runner.invoke(app, ["policy", "show", "acme", "--config", str(bad)])

    assert result.exit_code == 1
    assert "Configuration validation failed" in result.output
