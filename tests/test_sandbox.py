import json
import os
import subprocess
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from sandbox import (
    COMP_SUMMARY_SCRIPT,
    HostEnvironment,
    HostProcessBridge,
    ScriptSanitizer,
    parse_host_output,
    render_host_script,
)


class TestScriptSanitizer:
    def test_strips_undo_group_calls(self):
        code = "app.beginUndoGroup('x');\nvar a = 1;\napp.endUndoGroup();"
        ok, cleaned, err = ScriptSanitizer.sanitize(code)
        assert ok is True
        assert cleaned == "var a = 1;"
        assert err == ""

    @pytest.mark.parametrize("code,fragment", [
        ("var a = 1;\nlet b = 2;", "Line 2: let/const"),
        ("const c = 3;", "let/const"),
        ("var f = (x) => x * 2;", "Arrow function"),
        ("var s = `hi ${name}`;", "Template literal"),
        ("for (var l of layers) {}", "for...of"),
    ])
    def test_rejects_modern_syntax(self, code, fragment):
        ok, cleaned, err = ScriptSanitizer.sanitize(code)
        assert ok is False
        assert fragment in err
        assert cleaned == code

    @pytest.mark.parametrize("code", [
        "var comp = app.project.activeItem;\nif (comp.numLayers >= 1) { comp.layer(1).enabled = false; }",
        'var msg = "x => y";',
        'var tick = "`";',
        "var s = 'let me';\nvar t = 'for (a of b) ';",
        "// const x => `y`\nvar a = 1;",
        "/* let a = 1;\n   (b) => c */\nvar a = 1;",
        'var q = "say \\"=> hi\\"";',
    ])
    def test_accepts_es3(self, code):
        assert ScriptSanitizer.sanitize(code) == (True, code, "")

    def test_line_numbers_survive_block_comments(self):
        code = "/* header\n   comment */\nvar a = 1;\nlet b = 2;"
        ok, _, err = ScriptSanitizer.sanitize(code)
        assert ok is False
        assert err.startswith("Line 4:")

    def test_arrow_after_string_is_still_rejected(self):
        ok, _, err = ScriptSanitizer.sanitize('var f = ("a") => 1;')
        assert ok is False
        assert "Arrow function" in err


class TestHostOutput:
    def test_parses_error_with_line(self):
        result = parse_host_output('{"success": false, "error": "null is not an object", "line": 4}\n')
        assert result.success is False
        assert result.error == "null is not an object"
        assert result.line == 4
        assert result.transport_error is False

    def test_plain_text_counts_as_success(self):
        result = parse_host_output("Layer renamed\n")
        assert result.success is True
        assert result.result == "Layer renamed"

    def test_render_escapes_code_as_string_literal(self):
        script = render_host_script("var s = 'it\\'s';\nalert(\"x\");", label="Copilot")
        assert json.dumps("var s = 'it\\'s';\nalert(\"x\");") in script
        assert '"Copilot"' in script


class TestHostProcessBridge:
    def _bridge(self, command=("afterfx", "-r")):
        return HostProcessBridge(timeout=5, environment=HostEnvironment(command))

    def test_execute_runs_command_with_script_file(self):
        completed = SimpleNamespace(returncode=0, stdout='{"success": true, "result": "done"}', stderr="")
        with patch("sandbox.subprocess.run", return_value=completed) as run:
            result = self._bridge().execute("var a = 1;")

        assert result.success is True
        assert result.result == "done"
        argv = run.call_args.args[0]
        assert argv[:2] == ["afterfx", "-r"]
        assert argv[2].endswith(".jsx")

    def test_temp_script_is_removed(self):
        seen = {}

        def fake_run(argv, **kwargs):
            seen["path"] = argv[-1]
            with open(argv[-1], encoding="utf-8") as f:
                seen["script"] = f.read()
            return SimpleNamespace(returncode=0, stdout='{"success": true}', stderr="")

        with patch("sandbox.subprocess.run", side_effect=fake_run):
            self._bridge().execute("var a = 1;")

        assert '"var a = 1;"' in seen["script"]
        assert "beginUndoGroup" in seen["script"]
        assert not os.path.exists(seen["path"])

    def test_sanitizer_rejection_skips_host(self):
        with patch("sandbox.subprocess.run") as run:
            result = self._bridge().execute("let a = 1;")
        assert result.success is False
        assert result.error.startswith("[Pre-execution Filter]")
        assert result.transport_error is False
        run.assert_not_called()

    def test_timeout_is_transport_error(self):
        with patch("sandbox.subprocess.run", side_effect=subprocess.TimeoutExpired("afterfx", 5)):
            result = self._bridge().execute("var a = 1;")
        assert result.success is False
        assert result.transport_error is True
        assert "timed out" in result.error

    def test_missing_executable_is_transport_error(self):
        with patch("sandbox.subprocess.run", side_effect=FileNotFoundError("afterfx")):
            result = self._bridge().execute("var a = 1;")
        assert result.transport_error is True

    def test_nonzero_exit_is_transport_error(self):
        completed = SimpleNamespace(returncode=2, stdout="", stderr="cannot connect to host")
        with patch("sandbox.subprocess.run", return_value=completed):
            result = self._bridge().execute("var a = 1;")
        assert result.transport_error is True
        assert "cannot connect to host" in result.error

    def test_no_command_configured(self):
        result = self._bridge(command=()).execute("var a = 1;")
        assert result.success is False
        assert result.transport_error is True

    def test_summarize_returns_result_text(self):
        completed = SimpleNamespace(returncode=0, stdout='{"success": true, "result": "Comp: \\"Main\\""}',
                                    stderr="")
        with patch("sandbox.subprocess.run", return_value=completed) as run:
            summary = self._bridge().summarize()
        assert summary == 'Comp: "Main"'
        assert run.call_count == 1

    def test_summarize_is_empty_when_host_unavailable(self):
        assert self._bridge(command=()).summarize() == ""

    def test_summary_script_is_plain_es3(self):
        assert ScriptSanitizer.check_forbidden_patterns(COMP_SUMMARY_SCRIPT) == (True, "")


class TestHostEnvironment:
    def test_ready_when_runner_is_on_path(self):
        with patch("sandbox.shutil.which", return_value="/usr/local/bin/afterfx") as which:
            assert HostProcessBridge(environment=HostEnvironment(["afterfx", "-r"])).is_ready is True
        which.assert_called_once_with("afterfx")

    def test_not_ready_when_runner_missing(self):
        with patch("sandbox.shutil.which", return_value=None):
            assert HostEnvironment(["afterfx"]).is_ready is False

    def test_not_ready_without_command(self):
        assert HostEnvironment(()).is_ready is False

    def test_command_is_split_from_config(self):
        with patch("sandbox.HOST_COMMAND", '"/Applications/Adobe After Effects/aerender" -r'):
            env = HostEnvironment()
        assert env.command == ["/Applications/Adobe After Effects/aerender", "-r"]
