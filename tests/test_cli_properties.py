"""
Tests for the command-line interface.

Network access is avoided with ``--dry-run`` (simulation mode).
"""

import json

import pytest

from doh_checker.cli import create_parser, main
from doh_checker.tld_registry import POPULAR_TLDS


class TestCheckCommand:
    def test_dry_run_json(self, capsys) -> None:
        exit_code = main(["check", "example", "--tld", ".com", "-t", "io", "--dry-run", "--json"])

        assert exit_code == 0
        data = json.loads(capsys.readouterr().out)
        assert [r["domain"] for r in data["available"]] == ["example.com", "example.io"]
        assert data["registered"] == data["premium"] == data["other"] == []
        assert data["available"][0]["link"].startswith("https://www.namecheap.com/")

    def test_dry_run_text(self, capsys) -> None:
        exit_code = main(["check", "Example", "--dry-run"])

        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Simulation mode" in out
        assert "example.com" in out
        assert "Summary: 1/1 domain(s) available" in out

    def test_verbose_reports_progress(self, capsys) -> None:
        main(["check", "example", "--dry-run", "--verbose"])

        err = capsys.readouterr().err
        assert "100.0%" in err
        assert "complete" in err

    def test_popular_catalog(self, capsys) -> None:
        exit_code = main(["check", "example", "--popular", "-t", ".com", "--dry-run", "--json"])

        assert exit_code == 0
        domains = [r["domain"] for r in json.loads(capsys.readouterr().out)["available"]]
        assert len(domains) == len(POPULAR_TLDS)
        assert "example.xyz" in domains

    def test_invalid_name_exit_code(self, capsys) -> None:
        exit_code = main(["check", "exa mple", "--dry-run"])

        assert exit_code == 2
        assert "Error:" in capsys.readouterr().err

    def test_missing_config_file(self, tmp_path, capsys) -> None:
        exit_code = main(["check", "example", "--config", str(tmp_path / "missing.json")])

        assert exit_code == 1
        assert "Could not load config" in capsys.readouterr().err


class TestConfigCommand:
    def test_init_show_validate(self, tmp_path, capsys) -> None:
        path = tmp_path / "config.json"

        assert main(["config", "init", "--path", str(path)]) == 0
        assert path.exists()
        assert main(["config", "init", "--path", str(path)]) == 1
        assert main(["config", "init", "--path", str(path), "--force"]) == 0

        assert main(["config", "show", "--path", str(path)]) == 0
        assert "Providers: cloudflare, quad9, google" in capsys.readouterr().out

        assert main(["config", "validate", "--path", str(path)]) == 0

    def test_validate_reports_errors(self, tmp_path, capsys) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "providers": [{"name": "plain", "base_url": "http://dns.example/dns-query"}],
        }), encoding="utf-8")

        assert main(["config", "validate", "--path", str(path)]) == 1
        assert "HTTPS" in capsys.readouterr().err

    def test_show_missing(self, tmp_path) -> None:
        assert main(["config", "show", "--path", str(tmp_path / "none.json")]) == 1

    def test_dry_run_with_config_file(self, tmp_path, capsys) -> None:
        path = tmp_path / "config.json"
        main(["config", "init", "--path", str(path)])
        capsys.readouterr()

        assert main(["check", "example", "--config", str(path), "--dry-run", "--json"]) == 0
        assert json.loads(capsys.readouterr().out)["available"]


class TestParser:
    def test_no_command_prints_help(self, capsys) -> None:
        assert main([]) == 0
        assert "doh-checker" in capsys.readouterr().out

    def test_tld_is_repeatable(self) -> None:
        args = create_parser().parse_args(["check", "example", "-t", ".com", "-t", ".io"])
        assert args.tld == [".com", ".io"]

    def test_version(self, capsys) -> None:
        with pytest.raises(SystemExit):
            main(["--version"])
        assert "doh-checker" in capsys.readouterr().out
