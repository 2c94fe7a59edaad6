"""
Tests for the CLI — subcommands and the top-level error boundary

Tests verify:
- symbols prints the project's symbol locations
- organize-imports prints organized text, or fails with exit 1
- startup failures exit 2 with a diagnostic on stderr
- serve runs a full session against the scripted server
"""

import io
import json
import sys

import orjson
import pytest

from tsunami.cli import EXIT_ERROR, EXIT_OK, EXIT_STARTUP, build_parser, main
from tsunami.protocol import read_messages


@pytest.fixture(autouse=True)
def log_to_stderr(monkeypatch):
    """Keep CLI logs out of the project directories under test."""
    monkeypatch.setenv("TSUNAMI_LOG_FILE", "")


class TestParser:
    """Argument parsing."""

    def test_serve_is_default(self):
        """No subcommand means serve."""
        assert build_parser().parse_args([]).command is None

    def test_log_level_uppercased(self):
        """--log-level accepts lowercase."""
        assert build_parser().parse_args(["--log-level", "debug", "serve"]).log_level == "DEBUG"


class TestSymbols:
    """tsunami symbols."""

    def test_prints_locations(self, ts_env, capsys):
        """The symbolLocations body is printed as JSON."""
        code = main(["--project", str(ts_env.root), "symbols", "--prefix", "C"])

        body = json.loads(capsys.readouterr().out)
        assert code == EXIT_OK
        assert sorted(l["name"] for l in body["symbolLocations"]) == ["Circle", "PI", "Shape", "add"]

    def test_missing_tsconfig_exits_2(self, tmp_path, capsys):
        """No tsconfig.json is a startup failure."""
        code = main(["--project", str(tmp_path), "symbols"])

        assert code == EXIT_STARTUP
        assert "tsconfig.json" in capsys.readouterr().err


class TestOrganizeImports:
    """tsunami organize-imports FILE."""

    def test_prints_sorted(self, ts_factory, capsys):
        """The organized text goes to stdout; the file is unchanged."""
        path = ts_factory.write("a.ts", 'import b from "./b";\nimport a from "./a";\n')

        code = main(["--project", str(ts_factory.root), "organize-imports", path])

        assert code == EXIT_OK
        assert capsys.readouterr().out == 'import a from "./a";\nimport b from "./b";\n'

    def test_syntax_error_exits_1(self, ts_factory, capsys):
        """Sorting failures print the error and exit 1."""
        path = ts_factory.write("a.ts", 'import { from "x";\n')

        code = main(["--project", str(ts_factory.root), "organize-imports", path])

        assert code == EXIT_ERROR
        assert "syntax errors" in capsys.readouterr().err

    def test_missing_file_exits_1(self, ts_factory, capsys):
        """Unreadable files hit the top-level boundary."""
        code = main(["--project", str(ts_factory.root), "organize-imports", str(ts_factory.path("nope.ts"))])

        assert code == EXIT_ERROR
        assert "nope.ts" in capsys.readouterr().err


class TestConfigErrors:
    """Configuration failures."""

    def test_malformed_config_exits_2(self, ts_env, capsys):
        """Broken .tsunami/config.yaml is fatal at startup."""
        config = ts_env.path(".tsunami/config.yaml")
        config.parent.mkdir()
        config.write_text("server: [unclosed\n")

        assert main(["--project", str(ts_env.root), "symbols"]) == EXIT_STARTUP
        assert "YAML" in capsys.readouterr().err

    def test_unstartable_server_exits_2(self, ts_env, capsys):
        """A server command that cannot run is fatal at startup."""
        code = main(["--project", str(ts_env.root), "--tsserver", str(ts_env.path("no-such-binary")), "serve"])

        assert code == EXIT_STARTUP
        assert "no-such-binary" in capsys.readouterr().err

    def test_malformed_pool_env_exits_2(self, ts_env, monkeypatch, tmp_path, capsys):
        """An unparseable TSUNAMI_IO_WORKERS is a configuration error."""
        monkeypatch.setenv("TSUNAMI_IO_WORKERS", "abc")
        command = " ".join(f'"{part}"' for part in ts_env.fake_server_command(str(tmp_path / "received.log")))

        code = main(["--project", str(ts_env.root), "--tsserver", command, "serve"])

        assert code == EXIT_STARTUP
        assert "TSUNAMI_IO_WORKERS" in capsys.readouterr().err


class TestServe:
    """tsunami serve over real pipes."""

    def test_session(self, ts_env, monkeypatch, tmp_path):
        """Local and forwarded commands in one session, then clean exit."""
        log = tmp_path / "received.log"
        command = " ".join(f'"{part}"' for part in ts_env.fake_server_command(str(log)))
        editor = (
            orjson.dumps({"command": "SYMBOL_LOCATIONS", "seq": 1, "arguments": {}}) + b"\n"
            + orjson.dumps({"command": "open", "seq": 2, "arguments": {"file": "x.ts"}}) + b"\n"
        )
        stdout = io.BytesIO()
        monkeypatch.setattr(sys, "stdin", io.TextIOWrapper(io.BytesIO(editor)))
        monkeypatch.setattr(sys, "stdout", io.TextIOWrapper(stdout))

        code = main(["--project", str(ts_env.root), "--tsserver", command])

        sys.stdout.flush()
        messages = list(read_messages(io.BytesIO(stdout.getvalue())))
        assert code == EXIT_OK
        assert sorted(m["request_seq"] for m in messages) == [1, 2]
        assert [orjson.loads(l)["seq"] for l in log.read_bytes().splitlines()] == [2]
