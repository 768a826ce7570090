import pytest

from laterpay_core.devtools import parse_params, run, verify_signed_url

URL = "https://api.example.test/access"


def test_parse_params_groups_repeats():
    assert parse_params(["cp=42", "article_id=7", "article_id=9", "empty="]) == {
        "cp": ["42"],
        "article_id": ["7", "9"],
        "empty": [""],
    }


def test_parse_params_requires_equals_sign():
    with pytest.raises(ValueError):
        parse_params(["broken"])


def test_run_message(capsys):
    exit_code = run(["message", URL, "-p", "cp=42", "-p", "article_id=7", "-p", "article_id=9"])
    assert exit_code == 0
    assert capsys.readouterr().out.strip() == (
        "GET&https%3A%2F%2Fapi.example.test%2Faccess&article_id%3D7%26article_id%3D9%26cp%3D42"
    )


def test_run_sign(capsys):
    exit_code = run(["sign", URL, "-p", "cp=42", "-p", "article_id=7", "-p", "article_id=9", "--secret", "s3cr3t"])
    assert exit_code == 0
    assert capsys.readouterr().out.strip() == "a8145802ba8b147ff555a4fd9b035b1915e3c22cdb0ab1feb081102d"


def test_run_encode_then_verify(capsys, monkeypatch):
    monkeypatch.setenv("LATERPAY_API_KEY", "s3cr3t")
    assert run(["encode", URL, "-X", "post", "-p", "a=1"]) == 0
    signed_url = capsys.readouterr().out.strip()
    assert signed_url.startswith(URL + "?a=1&ts=")

    assert verify_signed_url(signed_url, "s3cr3t", "POST") is True
    assert run(["verify", signed_url, "-X", "POST"]) == 0
    assert capsys.readouterr().out.strip() == "valid"


def test_run_verify_rejects_tampered_url(capsys):
    run(["encode", URL, "-p", "a=1", "--secret", "s3cr3t"])
    signed_url = capsys.readouterr().out.strip().replace("a=1", "a=2")

    assert run(["verify", signed_url, "--secret", "s3cr3t"]) == 1
    assert capsys.readouterr().out.strip() == "invalid"


def test_run_without_secret_fails(monkeypatch):
    monkeypatch.delenv("LATERPAY_API_KEY", raising=False)
    with pytest.raises(SystemExit):
        run(["sign", URL, "-p", "a=1"])


def test_run_without_command_shows_help(capsys):
    exit_code = run([])
    assert exit_code == 1
    assert "LaterPay signing utilities" in capsys.readouterr().out
