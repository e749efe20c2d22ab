"""
Tests for the command-line interface.

Only commands that need no network are exercised end to end: routing, config
management, and batches of skip-listed or unsupported TLDs.
"""

import json
from pathlib import Path

import pytest

from domain_availability.cli import (
    chunked,
    create_parser,
    describe_route,
    format_result_line,
    main,
    read_domain_file,
)


class TestHelpers:
    def test_read_domain_file_skips_comments_and_blanks(self, tmp_path: Path) -> None:
        path = tmp_path / "domains.txt"
        path.write_text("# wishlist\nexample.com\n\n  example.de  \n#example.org\n", encoding="utf-8")

        assert read_domain_file(path) == ["example.com", "example.de"]

    def test_chunked(self) -> None:
        assert chunked(list("abcde"), 2) == [["a", "b"], ["c", "d"], ["e"]]

    def test_format_result_line(self) -> None:
        assert format_result_line("example.com", "taken") == "  example.com: taken"
        assert format_result_line("x.y", "unknown", "tld_not_supported") == "  x.y: unknown (tld_not_supported)"

    def test_describe_route(self) -> None:
        assert describe_route("com") == ".com: rdap https://rdap.verisign.com/com/v1/domain/example.com"
        assert describe_route(".de") == ".de: whois whois.denic.de"
        assert describe_route("es") == ".es: skip"
        assert describe_route("nonexistenttld") == ".nonexistenttld: unsupported"


class TestParser:
    def test_no_command_prints_help(self, capsys) -> None:
        assert main([]) == 0
        assert "domain-availability" in capsys.readouterr().out

    def test_premium_client_defaults_to_cli(self) -> None:
        args = create_parser().parse_args(["premium", "example.com"])

        assert args.client == "cli"
        assert args.config is None

    def test_version(self, capsys) -> None:
        with pytest.raises(SystemExit):
            main(["--version"])

        assert "0.1.0" in capsys.readouterr().out


class TestCommands:
    def test_routes(self, capsys) -> None:
        assert main(["routes", "io", "it"]) == 0

        out = capsys.readouterr().out.splitlines()
        assert out[0].startswith(".io: rdap ")
        assert out[1] == ".it: whois whois.nic.it"

    def test_check_rejects_invalid_domain(self, capsys) -> None:
        assert main(["check", "example.com", "not_valid.com"]) == 1

        assert "Invalid domain format: not_valid.com" in capsys.readouterr().err

    def test_check_offline_batch(self, capsys) -> None:
        assert main(["check", "example.es", "example.nonexistenttld"]) == 0

        body = json.loads(capsys.readouterr().out)
        assert body["results"]["example.es"] == {"status": "skip"}
        assert body["results"]["example.nonexistenttld"]["reason"] == "tld_not_supported"
        assert body["meta"]["checked"] == 2

    def test_check_list_writes_output(self, tmp_path: Path, capsys) -> None:
        domains = tmp_path / "domains.txt"
        domains.write_text("example.es\nexample.nonexistenttld\n", encoding="utf-8")
        output = tmp_path / "out" / "results.json"

        code = main(["check-list", str(domains), "--output", str(output)])

        assert code == 1  # nothing available
        assert json.loads(output.read_text(encoding="utf-8")) == {
            "example.es": {"status": "skip"},
            "example.nonexistenttld": {"status": "unknown", "reason": "tld_not_supported"},
        }
        assert "Summary: 0/2" in capsys.readouterr().out

    def test_check_list_missing_file(self, tmp_path: Path, capsys) -> None:
        assert main(["check-list", str(tmp_path / "absent.txt")]) == 1

        assert "File not found" in capsys.readouterr().err

    def test_whois_rejects_rdap_tld(self, capsys) -> None:
        assert main(["whois", "example.com"]) == 1

        assert "not supported by WHOIS check" in capsys.readouterr().err

    def test_bad_config_path(self, tmp_path: Path, capsys) -> None:
        assert main(["check", "example.es", "--config", str(tmp_path / "none.json")]) == 1

        assert "Could not load config" in capsys.readouterr().err


class TestConfigCommand:
    def test_init_then_show(self, tmp_path: Path, capsys) -> None:
        path = tmp_path / "config.json"

        assert main(["config", "init", "--path", str(path)]) == 0
        assert path.exists()

        assert main(["config", "show", "--path", str(path)]) == 0
        out = capsys.readouterr().out
        assert "Monthly quota limit:" in out
        assert "Burst limit per minute:" in out

    def test_init_refuses_to_overwrite(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{}", encoding="utf-8")

        assert main(["config", "init", "--path", str(path)]) == 1
        assert main(["config", "init", "--path", str(path), "--force"]) == 0
        assert "guards" in json.loads(path.read_text(encoding="utf-8"))

    def test_show_without_file(self, tmp_path: Path, capsys) -> None:
        assert main(["config", "show", "--path", str(tmp_path / "none.json")]) == 1

        assert "config init" in capsys.readouterr().out
