"""Nox configuration for sqlalchemy-partitioned."""

from __future__ import annotations

import os
from typing import List

import nox

PYTHON_VERSIONS = ["3.9", "3.10", "3.11", "3.12", "3.13"]

pyproject = nox.project.load_toml("pyproject.toml")

nox.options.sessions = ["tests"]


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """run the main test suite"""

    _tests(session)


@nox.session(name="coverage")
def coverage(session: nox.Session) -> None:
    """Run tests with coverage."""

    _tests(session, coverage=True)


def _tests(session: nox.Session, coverage: bool = False) -> None:
    # PYTHONNOUSERSITE - this *MUST* be set so that the ./lib/ import
    # set up explicitly in test/conftest.py is *disabled*, so that
    # the package built into the .nox area is the one tested
    session.env["PYTHONNOUSERSITE"] = "1"

    cmd: List[str] = ["python", "-m", "pytest"]

    if coverage:
        cmd.extend(
            [
                "--cov=sqlalchemy_partitioned",
                "--cov-append",
                "--cov-report",
                "term",
                "--cov-report",
                "xml",
            ],
        )
        session.install("-e", ".")
        session.install("pytest-cov")
    else:
        session.install(".")

    session.install(*nox.project.dependency_groups(pyproject, "tests"))

    cmd.extend(os.environ.get("TOX_WORKERS", "-n4").split())
    cmd.extend(session.posargs)

    session.run(*cmd)


@nox.session(name="pep484")
def test_pep484(session: nox.Session) -> None:
    """Run mypy type checking."""

    session.install(*nox.project.dependency_groups(pyproject, "mypy"))

    session.install("-e", ".")

    session.run(
        "mypy",
        "noxfile.py",
        "./lib/sqlalchemy_partitioned",
    )


@nox.session(name="pep8")
def test_pep8(session: nox.Session) -> None:
    """Run linting and formatting checks."""

    session.install("-e", ".")

    session.install(*nox.project.dependency_groups(pyproject, "lint"))

    for cmd in [
        "flake8 ./lib/ ./test/ ./examples/ noxfile.py",
        "black --check ./lib/ ./test/ ./examples/ noxfile.py",
    ]:
        session.run(*cmd.split())
