"""
Tests for CommandProcessor — local answers and wiretap side effects

Tests verify:
- SYMBOL_LOCATIONS returns the union of every file's definitions
- ORGANIZE_IMPORTS answers with the organized text, or a failure
- reload re-reads, re-indexes and replaces the file's index
- respond() and observe() never raise
- Response sequence numbers are the interposer's own
"""

import threading

import pytest

from tsunami.protocol import CommandProcessor, parse_command


def command(name, seq=1, **arguments):
    return parse_command({"command": name, "seq": seq, "arguments": arguments})


@pytest.fixture
def processor(ts_env):
    return CommandProcessor(ts_env.create_context())


# =============================================================================
# SYMBOL_LOCATIONS
# =============================================================================

class TestSymbolLocations:
    """Project-wide export listing."""

    def test_union_of_files(self, ts_env, processor):
        """Every primed file's exports are listed."""
        response = processor.respond(command("SYMBOL_LOCATIONS", prefix="a"))
        locations = response.body["symbolLocations"]

        assert response.success is True
        assert sorted(l["name"] for l in locations) == ["Circle", "PI", "Shape", "add"]

    def test_entry_shape(self, ts_env, processor):
        """Entries carry filename, character position and default flag."""
        locations = processor.respond(command("SYMBOL_LOCATIONS")).body["symbolLocations"]
        circle = next(l for l in locations if l["name"] == "Circle")
        shapes = ts_env.path("src/shapes.ts").resolve()

        assert circle["default"] is True
        assert circle["location"]["filename"] == str(shapes)
        assert circle["location"]["pos"] == shapes.read_text().index("Circle")

    def test_prefix_not_applied(self, processor):
        """Filtering is left to the caller."""
        with_prefix = processor.respond(command("SYMBOL_LOCATIONS", prefix="zzz")).body
        without = processor.respond(command("SYMBOL_LOCATIONS")).body
        assert with_prefix == without

    def test_response_envelope(self, processor):
        """request_seq echoes the command; type is response."""
        data = processor.respond(command("SYMBOL_LOCATIONS", seq=41)).to_dict()

        assert data["type"] == "response"
        assert data["command"] == "SYMBOL_LOCATIONS"
        assert data["request_seq"] == 41


# =============================================================================
# ORGANIZE_IMPORTS
# =============================================================================

class TestOrganizeImports:
    """Organized text in the response body."""

    def test_sorted_text_returned(self, ts_factory):
        """The body is the organized file; the file on disk is untouched."""
        original = 'import b from "./b";\nimport a from "./a";\n'
        path = ts_factory.write("src/c.ts", original)
        processor = CommandProcessor(ts_factory.create_context())

        response = processor.respond(command("ORGANIZE_IMPORTS", filename=path))

        assert response.success is True
        assert response.body == 'import a from "./a";\nimport b from "./b";\n'
        assert ts_factory.path("src/c.ts").read_text() == original

    def test_reads_current_disk_text(self, ts_factory):
        """The snapshot is refreshed before sorting."""
        path = ts_factory.write("src/c.ts", "export const x = 1;\n")
        processor = CommandProcessor(ts_factory.create_context())
        ts_factory.write("src/c.ts", 'import z from "z";\nimport y from "y";\n')

        response = processor.respond(command("ORGANIZE_IMPORTS", filename=path))

        assert response.body == 'import y from "y";\nimport z from "z";\n'
        assert processor.context.documents.get(path).version == 1

    def test_syntax_error_is_failure(self, ts_factory):
        """Sorter failures come back with success false and the error."""
        path = ts_factory.write("src/bad.ts", 'import { from "x";\n')
        processor = CommandProcessor(ts_factory.create_context(prime=False))

        response = processor.respond(command("ORGANIZE_IMPORTS", filename=path))

        assert response.success is False
        assert "syntax errors" in response.message
        assert response.body == response.message

    def test_missing_file_is_failure(self, ts_factory, tmp_path):
        """Unreadable files become failure responses."""
        processor = CommandProcessor(ts_factory.create_context(prime=False))
        response = processor.respond(command("ORGANIZE_IMPORTS", filename=str(tmp_path / "nope.ts")))

        assert response.success is False
        assert "nope.ts" in response.message

    def test_missing_argument_is_failure(self, ts_factory):
        """A missing filename is caught at the processor boundary."""
        processor = CommandProcessor(ts_factory.create_context(prime=False))
        response = processor.respond(command("ORGANIZE_IMPORTS"))

        assert response.success is False
        assert "filename" in response.message


# =============================================================================
# reload
# =============================================================================

class TestReload:
    """Wiretapped reloads."""

    def test_reload_replaces_definitions(self, ts_factory):
        """After two reloads only the second version's exports remain."""
        path = ts_factory.write("src/a.ts", "export const first = 1;\n")
        processor = CommandProcessor(ts_factory.create_context())

        ts_factory.write("src/a.ts", "export const second = 2;\n")
        processor.observe(command("reload", file=path))

        names = [d.name for d in processor.context.index.definitions()]
        assert names == ["second"]

    def test_reload_from_tmpfile(self, ts_factory, tmp_path):
        """tmpfile supplies the text; the index is keyed by file."""
        path = ts_factory.write("src/a.ts", "export const saved = 1;\n")
        buffer = tmp_path / "buffer.tmp"
        buffer.write_text("export default function foo() {}\n")
        processor = CommandProcessor(ts_factory.create_context())

        processor.observe(command("reload", file=path, tmpfile=str(buffer)))

        [foo] = processor.context.index.definitions()
        assert (foo.name, foo.file_path, foo.is_default_export) == ("foo", path, True)
        assert foo.position == buffer.read_text().index("foo")

    def test_reload_extends_file_set(self, ts_factory, tmp_path):
        """A reload of an unseen path adds it to the project."""
        processor = CommandProcessor(ts_factory.create_context())
        outside = tmp_path / "elsewhere" / "b.ts"
        outside.parent.mkdir()
        outside.write_text("export const b = 1;\n")

        processor.observe(command("reload", file=str(outside)))

        assert str(outside) in processor.context.file_set()
        assert [d.name for d in processor.context.index.definitions()] == ["b"]

    def test_reload_failure_swallowed(self, ts_factory, tmp_path):
        """observe() logs and returns when the file cannot be read."""
        path = ts_factory.write("src/a.ts", "export const kept = 1;\n")
        processor = CommandProcessor(ts_factory.create_context())

        processor.observe(command("reload", file=path, tmpfile=str(tmp_path / "gone.tmp")))

        assert [d.name for d in processor.context.index.definitions()] == ["kept"]

    def test_reload_missing_argument_swallowed(self, processor):
        """A reload without file does not raise."""
        processor.observe(command("reload"))

    def test_observe_ignores_other_commands(self, processor):
        """Commands without an observer are a no-op."""
        processor.observe(command("open", file="x.ts"))


# =============================================================================
# Boundary and sequencing
# =============================================================================

class TestBoundary:
    """respond() never raises; seq is local."""

    def test_respond_to_unhandled_command(self, processor):
        """A non-local command through respond() is a failure response."""
        response = processor.respond(command("open"))
        assert response.success is False

    def test_seq_strictly_increasing(self, processor):
        """Response seq starts at 1 and grows by one."""
        seqs = [processor.respond(command("SYMBOL_LOCATIONS", seq=100 + i)).seq for i in range(3)]
        assert seqs == [1, 2, 3]

    def test_seq_unique_across_threads(self, processor):
        """Concurrent callers never share a seq."""
        seqs = []
        lock = threading.Lock()

        def take():
            for _ in range(100):
                value = processor.next_seq()
                with lock:
                    seqs.append(value)

        threads = [threading.Thread(target=take) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(seqs) == list(range(1, 401))
