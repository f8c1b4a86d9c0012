# services/business-rules-service/app/core/script_runner.py
from __future__ import annotations

import json
import logging
from typing import Dict, Mapping, Optional, Protocol

from py_mini_racer import MiniRacer

from app.errors import ScriptExecutionError

logger = logging.getLogger("app.core.script")


class ScriptRunner(Protocol):
    """
    Narrow capability around the embedded script runtime so it can be
    swapped or faked in tests.
    """

    def evaluate(self, script: str, bindings: Mapping[str, str]) -> Dict[str, str]:
        """
        Run `script` with `bindings` visible as globals and return every
        top-level variable afterwards as strings.
        """


# Snapshot of enumerable globals before anything is seeded
_GLOBAL_NAMES = "JSON.stringify(Object.keys(globalThis))"

_COLLECT_GLOBALS = """
(function (ignored) {
  var out = {};
  Object.keys(globalThis).forEach(function (k) {
    if (ignored.indexOf(k) !== -1) { return; }
    var v = globalThis[k];
    if (typeof v === "function") { return; }
    out[k] = (typeof v === "object" && v !== null) ? JSON.stringify(v) : String(v);
  });
  return JSON.stringify(out);
})(%s)
"""


class MiniRacerScriptRunner:
    """
    JavaScript rule-template scripts, each run in a fresh V8 context so that
    no state leaks between derivations.
    """

    def __init__(self, timeout_ms: int = 5000) -> None:
        self.timeout_ms = timeout_ms

    def evaluate(self, script: str, bindings: Mapping[str, str]) -> Dict[str, str]:
        ctx = MiniRacer()
        baseline = json.loads(ctx.eval(_GLOBAL_NAMES))
        for name, value in bindings.items():
            ctx.eval(f"globalThis[{json.dumps(name)}] = {json.dumps(value)};")
        ctx.eval(script, timeout=self.timeout_ms)
        collected = json.loads(ctx.eval(_COLLECT_GLOBALS % json.dumps(baseline)))
        return {k: collected[k] for k in sorted(collected)}


def generate_variables(
    script: Optional[str],
    bound_values: Mapping[str, str],
    runner: ScriptRunner,
) -> Dict[str, str]:
    """
    Execute a rule-template script against already-substituted values.

    Returns every variable the script leaves at top level (seeded values
    included, possibly reassigned by the script). A blank script yields {}.
    """
    if not script or not script.strip():
        return {}
    try:
        variables = runner.evaluate(script, dict(bound_values))
    except Exception as e:
        logger.debug("Script failed with bindings=%s", sorted(bound_values))
        raise ScriptExecutionError(f"Rule template script failed: {e}") from e
    logger.debug("Script generated %d variable(s): %s", len(variables), sorted(variables))
    return variables
