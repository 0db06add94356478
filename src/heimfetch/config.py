from __future__ import annotations
import os
from dataclasses import dataclass, replace
from typing import Mapping

DEFAULT_HEIMDALL_URL = "https://heimdall-api.polygon.technology"

def _env_bool(v: str) -> bool:
    return v.strip().lower() in ("1", "true", "yes", "on")

@dataclass(slots=True, frozen=True)
class Settings:
    heimdall_url: str = DEFAULT_HEIMDALL_URL
    timeout_s: float = 20
    max_conn: int = 64
    verbose: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Read HEIMFETCH_* variables; unset ones keep the defaults."""
        env = os.environ if environ is None else environ
        s = cls()
        if "HEIMFETCH_HEIMDALL_URL" in env:
            s = replace(s, heimdall_url=env["HEIMFETCH_HEIMDALL_URL"])
        if "HEIMFETCH_TIMEOUT_S" in env:
            s = replace(s, timeout_s=float(env["HEIMFETCH_TIMEOUT_S"]))
        if "HEIMFETCH_MAX_CONN" in env:
            s = replace(s, max_conn=int(env["HEIMFETCH_MAX_CONN"]))
        if "HEIMFETCH_VERBOSE" in env:
            s = replace(s, verbose=_env_bool(env["HEIMFETCH_VERBOSE"]))
        return s

    def override(self, **kw: object) -> Settings:
        """Apply CLI overrides, ignoring options the user left unset (None)."""
        return replace(self, **{k: v for k, v in kw.items() if v is not None})
