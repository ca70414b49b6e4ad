"""
Nox configuration for the agency_site project.

Sessions for the test suite, static checks and a dependency audit.
"""

import nox

PACKAGE = "agency_site"

# Define supported Python versions
PYTHON_VERSIONS = ["3.9", "3.10", "3.11", "3.12"]


@nox.session(python=PYTHON_VERSIONS)
def tests(session):
    """Run the test suite with pytest and coverage."""
    session.install("-e", ".[test]")

    session.run(
        "pytest",
        f"{PACKAGE}/tests/",
        f"--cov={PACKAGE}",
        "--cov-report=term-missing",
        "-v",
        *session.posargs,
    )


@nox.session(python="3.12")
def lint(session):
    """Check formatting, import order and style."""
    session.install("flake8", "black", "isort")

    session.run("black", "--check", "--diff", PACKAGE, "noxfile.py", "setup.py")
    session.run("isort", "--check-only", "--diff", PACKAGE)
    session.run("flake8", "--max-line-length=110", PACKAGE)


@nox.session(python="3.12")
def format(session):
    """Rewrite sources with black and isort."""
    session.install("black", "isort")

    session.run("black", PACKAGE, "noxfile.py", "setup.py")
    session.run("isort", PACKAGE)


@nox.session(python="3.12")
def type_check(session):
    """Run mypy over the package."""
    session.install("mypy", "types-requests", "types-redis")
    session.install("-e", ".")

    session.run("mypy", "--ignore-missing-imports", PACKAGE)


@nox.session(python="3.12")
def safety(session):
    """Audit installed dependencies for known vulnerabilities."""
    session.install("safety")
    session.install("-e", ".")

    session.run("safety", "check")


# Default session when running `nox` without arguments
nox.options.sessions = ["tests"]
