from __future__ import annotations

import os
import pathlib
import secrets

import nox

ROOT = pathlib.Path(__file__).parent

nox.options.sessions = ["lint", "tests", "property"]
nox.options.reuse_existing_virtualenvs = False


@nox.session(python=["3.10", "3.11", "3.12"])
def tests(session: nox.Session) -> None:
    session.install("coverage[toml]", "-e", ".[test]")
    session.env["PYTHONHASHSEED"] = os.environ.get(
        "PYTHONHASHSEED", str(secrets.randbits(32))
    )
    session.run(
        "coverage", "run", "--source=damlmodel", "-m", "pytest", "-vv", "--strict-markers", "-m", "not property",
        *session.posargs,
    )
    session.run("coverage", "report", "--fail-under=80")


@nox.session(python=["3.10", "3.11", "3.12"])
def property(session: nox.Session) -> None:
    session.install("-e", ".[test]")
    session.env["PYTHONHASHSEED"] = os.environ.get(
        "PYTHONHASHSEED", str(secrets.randbits(32))
    )
    session.run("pytest", "-vv", "-m", "property", "--strict-markers", *session.posargs)


@nox.session(python="3.10")
def lint(session: nox.Session) -> None:
    session.install("ruff")
    session.run("ruff", "check", "damlmodel", "tests")


@nox.session(python="3.10")
def build(session: nox.Session) -> None:
    session.install("build", "twine")
    session.run("python", "-m", "build", "--wheel", "--sdist")
    session.run("twine", "check", "dist/*")
