"""Drawing script interpreter."""

from .interpreter import ScriptError, ScriptInterpreter, ScriptParseError, run_script

__all__ = ['ScriptInterpreter', 'ScriptError', 'ScriptParseError', 'run_script']
