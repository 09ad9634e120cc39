"""Nox sessions orchestrating masking_lib unit suites."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import nox


PYTHON_VERSIONS = ["3.11", "3.12"]
PROJECT_ROOT = Path(__file__).parent

nox.options.sessions = [
    "tests(unit_masking)",
]


def _install_test_requirements(session: nox.Session) -> None:
    """Install the package and the testing toolchain inside the session environment."""

    session.install("-e", ".[test]")


def _normalize_pythonpath(existing: str | None) -> str:
    parts = [str(PROJECT_ROOT)]
    if existing:
        parts.append(existing)
    return ":".join(part for part in parts if part)


def _run_suite(session: nox.Session, suite: str, targets: Iterable[str]) -> None:
    _install_test_requirements(session)

    env = {"PYTHONPATH": _normalize_pythonpath(session.env.get("PYTHONPATH"))}

    session.log("Running %s suite: %s", suite, " ".join(targets))
    session.run(
        "coverage",
        "run",
        "--source=masking_lib",
        "-m",
        "pytest",
        *targets,
        *session.posargs,
        env=env,
    )
    session.run("coverage", "report", "-m")


@nox.session(python=PYTHON_VERSIONS, reuse_venv=True, name="tests(unit_masking)")
def tests_unit_masking(session: nox.Session) -> None:
    """Execute masking library unit suites under coverage."""

    targets = ["tests/unit/masking"]
    _run_suite(session, "masking", targets)
