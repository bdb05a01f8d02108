import os
import re
import json
import shlex
import shutil
import logging
import subprocess
import tempfile
from typing import List, Optional, Sequence, Tuple

from config import HOST_COMMAND, HOST_TIMEOUT
from data_types import ExecutionResult

logger = logging.getLogger(__name__)

# ==========================================
# Host Environment
# ==========================================


class HostEnvironment:
    """Resolves the command that runs a script file inside After Effects."""

    def __init__(self, command: Optional[Sequence[str]] = None):
        if command is None:
            command = shlex.split(HOST_COMMAND)
        self.command: List[str] = list(command)

    @property
    def is_ready(self) -> bool:
        return bool(self.command) and shutil.which(self.command[0]) is not None


# ==========================================
# Pre-execution Checks
# ==========================================


class ScriptSanitizer:
    """Static checks that reject scripts the ES3 engine would choke on, before a host round-trip."""

    # The host opens and closes the undo group around every script.
    UNDO_LINE = re.compile(r"^\s*app\.(beginUndoGroup|endUndoGroup)\s*\(.*\)\s*;?\s*$")

    FORBIDDEN_PATTERNS = [
        (r"^\s*(let|const)\s+[A-Za-z_$]", "let/const declaration detected; ExtendScript needs var"),
        (r"(\)|\b[A-Za-z_$][\w$]*)\s*=>", "Arrow function detected; use a function expression"),
        (r"`", "Template literal detected; use string concatenation"),
        (r"\bfor\s*\(\s*(var\s+)?[A-Za-z_$][\w$]*\s+of\s", "for...of loop detected; use an index loop"),
    ]

    # String literals and comments, blanked before matching. Newlines survive so line numbers hold.
    LITERAL_OR_COMMENT = re.compile(
        r'"(?:\\.|[^"\\\n])*"'
        r"|'(?:\\.|[^'\\\n])*'"
        r"|//[^\n]*"
        r"|/\*[\s\S]*?\*/"
    )

    @classmethod
    def strip_literals(cls, code: str) -> str:
        return cls.LITERAL_OR_COMMENT.sub(lambda m: re.sub(r"[^\n]", " ", m.group(0)), code)

    @classmethod
    def check_forbidden_patterns(cls, code: str) -> Tuple[bool, str]:
        for line_num, line in enumerate(cls.strip_literals(code).splitlines(), 1):
            for pattern, msg in cls.FORBIDDEN_PATTERNS:
                if re.search(pattern, line):
                    return False, f"Line {line_num}: {msg}"
        return True, ""

    @classmethod
    def sanitize(cls, code: str) -> Tuple[bool, str, str]:
        """
        Returns (is_valid, cleaned_code, error_message).
        Drops manual undo group calls; rejects modern syntax.
        """
        cleaned = "\n".join(line for line in code.splitlines() if not cls.UNDO_LINE.match(line))
        valid, err = cls.check_forbidden_patterns(cleaned)
        if not valid:
            return False, code, err
        return True, cleaned, ""


# ==========================================
# Host Bridge
# ==========================================

# Runs the payload inside an undo group and evaluates to a JSON result string.
HOST_WRAPPER = """(function (code, label) {
    var out = {success: false};
    try {
        app.beginUndoGroup(label);
        var value = eval(code);
        if (value === undefined) {
            value = "Script executed successfully (no return value).";
        } else if (typeof value === "object") {
            try { value = JSON.stringify(value); } catch (jsonErr) { value = value.toString(); }
        }
        out = {success: true, result: String(value)};
    } catch (e) {
        out = {success: false, error: e.message ? e.message : e.toString()};
        if (e.line !== undefined) { out.line = e.line; }
    } finally {
        try { app.endUndoGroup(); } catch (undoErr) {}
    }
    return JSON.stringify(out);
})(%s, %s);
"""

COMP_SUMMARY_SCRIPT = """(function () {
    var comp = app.project.activeItem;
    if (!comp || !(comp instanceof CompItem)) { return "No active composition."; }
    var s = "Comp: \\"" + comp.name + "\\" (" + comp.width + "x" + comp.height + ", " +
        comp.frameRate + "fps, " + comp.duration.toFixed(2) + "s)\\n";
    s += "Layers (" + comp.numLayers + "):\\n";
    for (var i = 1; i <= comp.numLayers; i++) {
        var layer = comp.layer(i);
        var type = layer instanceof TextLayer ? "text" : layer instanceof ShapeLayer ? "shape" :
            layer instanceof CameraLayer ? "camera" : layer instanceof LightLayer ? "light" :
            layer.nullLayer ? "null" : layer.adjustmentLayer ? "adjustment" : "av";
        s += "  " + i + ". " + type + ": \\"" + layer.name + "\\"" + (layer.selected ? " [SELECTED]" : "") + "\\n";
    }
    if (comp.selectedLayers.length > 0) { s += "\\nSelected: " + comp.selectedLayers.length + " layer(s)"; }
    return s;
})()"""


def render_host_script(code: str, label: str = "AE Conjure") -> str:
    # json.dumps yields a valid ES3 string literal, so no hand escaping is needed.
    return HOST_WRAPPER % (json.dumps(code), json.dumps(label[:60]))


def parse_host_output(stdout: str) -> ExecutionResult:
    text = stdout.strip()
    try:
        data = json.loads(text)
    except ValueError:
        # Hosts that print plain text have still run the script.
        return ExecutionResult(success=True, result=text)
    if not isinstance(data, dict) or "success" not in data:
        return ExecutionResult(success=True, result=text)
    line = data.get("line")
    return ExecutionResult(
        success=bool(data["success"]),
        result=data.get("result"),
        error=data.get("error"),
        line=line if isinstance(line, int) and line >= 0 else None,
    )


class HostProcessBridge:
    """Executes scripts in the host via a command-line runner.

    The runner receives the path of a .jsx file as its last argument and must
    print the value the script evaluates to.
    """

    def __init__(self, timeout: int = HOST_TIMEOUT, environment: Optional[HostEnvironment] = None,
                 sanitizer: Optional[ScriptSanitizer] = None):
        self.timeout = timeout
        self.env = environment or HostEnvironment()
        self.sanitizer = sanitizer or ScriptSanitizer()

    @property
    def is_ready(self) -> bool:
        return self.env.is_ready

    def execute(self, code: str, label: str = "AE Conjure") -> ExecutionResult:
        is_valid, cleaned_code, sanitize_err = self.sanitizer.sanitize(code)
        if not is_valid:
            return ExecutionResult(success=False, error=f"[Pre-execution Filter] {sanitize_err}")
        return self._run(render_host_script(cleaned_code, label))

    def summarize(self) -> str:
        """Compact description of the active composition, or '' if the host is unreachable."""
        result = self._run(COMP_SUMMARY_SCRIPT)
        if not result.success or result.transport_error:
            logger.info("Composition summary unavailable: %s", result.error)
            return ""
        return result.result or ""

    def _run(self, script: str) -> ExecutionResult:
        if not self.env.command:
            return ExecutionResult(success=False, error="No host command configured.", transport_error=True)

        with tempfile.NamedTemporaryFile(mode="w", suffix=".jsx", delete=False, encoding="utf-8") as f:
            f.write(script)
            temp_path = f.name

        try:
            proc = subprocess.run(
                self.env.command + [temp_path],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return ExecutionResult(success=False, error=f"Host timed out after {self.timeout}s.",
                                   transport_error=True)
        except OSError as e:
            return ExecutionResult(success=False, error=f"Host bridge error: {e}", transport_error=True)
        finally:
            if os.path.exists(temp_path):
                os.remove(temp_path)

        if proc.returncode != 0:
            detail = (proc.stderr or proc.stdout).strip()[:500]
            return ExecutionResult(success=False, error=f"Host exited with status {proc.returncode}: {detail}",
                                   transport_error=True)
        return parse_host_output(proc.stdout)
