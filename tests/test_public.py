"""Tests for the public API."""

from __future__ import annotations

from typer.testing import CliRunner

import wakeitup
from wakeitup import __version__
from wakeitup.cli.app import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"wakeitup version {__version__}" in result.stdout


def test_public_exports():
    for name in wakeitup.__all__:
        assert hasattr(wakeitup, name)
