"""Check external tools and credentials before any state is touched."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .models import Config
from .output import CLIPBOARD_TOOLS
from .transcriber import NoBackendError, select_backend_name


class PreflightError(RuntimeError):
    """Raised when a required tool or credential is missing."""

    def __init__(self, problems: List[str]) -> None:
        super().__init__("\n".join(problems))
        self.problems = problems


@dataclass(frozen=True)
class ToolCheck:
    role: str
    candidates: Tuple[str, ...]
    found: Optional[str]

    @property
    def ok(self) -> bool:
        return self.found is not None


@dataclass
class PreflightReport:
    tools: List[ToolCheck] = field(default_factory=list)
    backend: Optional[str] = None
    credential_problem: Optional[str] = None

    @property
    def problems(self) -> List[str]:
        problems = [
            f"Error: command {' or '.join(check.candidates)} not found ({check.role})."
            for check in self.tools
            if not check.ok
        ]
        if self.credential_problem:
            problems.append(self.credential_problem)
        return problems

    @property
    def ok(self) -> bool:
        return not self.problems


def required_tools(config: Config) -> List[Tuple[str, Tuple[str, ...]]]:
    tools = [
        ("audio recorder", ("parecord",)),
        ("duration limiter", ("timeout",)),
    ]
    if config.output_mode in ("paste", "type"):
        tools.append(("keystroke simulator", ("xdotool",)))
    if config.output_mode != "none":
        tools.append(("clipboard", tuple(tool for tool, _backend in CLIPBOARD_TOOLS)))
    return tools


def _locate(candidates: Tuple[str, ...]) -> Optional[str]:
    for name in candidates:
        path = shutil.which(name)
        if path:
            return path
    return None


def check_environment(config: Config) -> PreflightReport:
    report = PreflightReport()
    for role, candidates in required_tools(config):
        report.tools.append(ToolCheck(role=role, candidates=candidates, found=_locate(candidates)))
    try:
        report.backend = select_backend_name(config)
    except NoBackendError as exc:
        report.credential_problem = str(exc)
    return report


def ensure_ready(config: Config) -> PreflightReport:
    report = check_environment(config)
    if not report.ok:
        raise PreflightError(report.problems)
    return report
