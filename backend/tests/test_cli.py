from __future__ import annotations

from typer.testing import CliRunner

from darood.cli import app

runner = CliRunner()


def test_cli_provisions_users_and_applies_referral(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'cli.db'}"

    assert runner.invoke(app, ["init", "--database-url", url]).exit_code == 0
    assert runner.invoke(app, ["user-create", "ref", "--database-url", url]).exit_code == 0
    assert runner.invoke(app, ["user-create", "new", "--database-url", url]).exit_code == 0

    code_result = runner.invoke(app, ["code", "ref", "--database-url", url])
    assert code_result.exit_code == 0
    code = code_result.output.strip().rsplit(" ", 1)[-1]
    assert len(code) == 8

    applied = runner.invoke(app, ["apply", "new", code.lower(), "--points", "40", "--database-url", url])
    assert applied.exit_code == 0
    assert "Referral applied" in applied.output

    again = runner.invoke(app, ["apply", "new", code, "--database-url", url])
    assert again.exit_code == 0
    assert "already_referred" in again.output

    stats = runner.invoke(app, ["stats", "ref", "--database-url", url])
    assert stats.exit_code == 0
    assert "Referrals: 1" in stats.output
    assert "Total points: 40" in stats.output


def test_cli_reports_service_errors(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    runner.invoke(app, ["init", "--database-url", url])
    runner.invoke(app, ["user-create", "new", "--database-url", url])

    result = runner.invoke(app, ["apply", "new", "doesnotexist", "--database-url", url])

    assert result.exit_code == 1
    assert "not-found" in result.output


def test_cli_token_round_trips() -> None:
    from darood.auth.local import LocalAuthService

    result = runner.invoke(app, ["token", "u1"])

    assert result.exit_code == 0
    assert LocalAuthService().get_user_id_from_token(result.output.strip()) == "u1"
