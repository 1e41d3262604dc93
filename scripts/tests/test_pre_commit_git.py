#!/usr/bin/env python3
"""
Integration tests running pre-commit.py inside a real git repository.

stylua, luacheck and scripts/test.sh are small shell scripts placed on PATH,
so these tests need git and a POSIX shell.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path

import pytest

HOOK = Path(__file__).parent.parent / "pre-commit.py"

pytestmark = [
    pytest.mark.skipif(shutil.which("git") is None, reason="git not installed"),
    pytest.mark.skipif(sys.platform == "win32", reason="fake tools are shell scripts"),
]

FAKE_STYLUA = "#!/bin/sh\nexit 0\n"
# Fails any file that still mentions BAD
FAKE_LUACHECK = '#!/bin/sh\nif grep -q BAD "$1"; then echo "$1: BAD found"; exit 1; fi\nexit 0\n'


def write_script(path: Path, body: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")
    path.chmod(0o755)


def git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return result.stdout


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    write_script(repo / "scripts" / "test.sh", "#!/bin/sh\nexit 0\n")
    return repo


@pytest.fixture
def bin_dir(tmp_path: Path) -> Path:
    bin_dir = tmp_path / "bin"
    write_script(bin_dir / "stylua", FAKE_STYLUA)
    write_script(bin_dir / "luacheck", FAKE_LUACHECK)
    return bin_dir


def run_hook(repo: Path, bin_dir: Path, *args: str) -> subprocess.CompletedProcess[str]:
    env = dict(os.environ)
    env["PATH"] = f"{bin_dir}{os.pathsep}{env.get('PATH', '')}"
    env["NO_COLOR"] = "1"
    env["PYTHONIOENCODING"] = "utf-8"
    return subprocess.run(
        [sys.executable, str(HOOK), *args],
        cwd=repo,
        env=env,
        capture_output=True,
        encoding="utf-8",
    )


class TestHookInRepository:
    """Tests for the hook against a real index."""

    def test_nothing_staged(self, repo: Path, bin_dir: Path) -> None:
        result = run_hook(repo, bin_dir)
        assert result.returncode == 0, result.stdout

    def test_fixes_are_staged(self, repo: Path, bin_dir: Path) -> None:
        (repo / "init.lua").write_bytes(b"local x = 1   \r\nreturn x\r\n")
        git(repo, "add", "init.lua")

        result = run_hook(repo, bin_dir)

        assert result.returncode == 0, result.stdout
        assert (repo / "init.lua").read_bytes() == b"local x = 1\nreturn x\n"
        staged = subprocess.run(
            ["git", "show", ":init.lua"], cwd=repo, capture_output=True, check=True
        ).stdout
        assert staged == b"local x = 1\nreturn x\n"

    def test_lint_failure_blocks(self, repo: Path, bin_dir: Path) -> None:
        (repo / "init.lua").write_text("-- BAD\nreturn 1\n", encoding="utf-8")
        git(repo, "add", "init.lua")

        result = run_hook(repo, bin_dir)

        assert result.returncode == 1
        assert "Pre-commit checks FAILED" in result.stdout

    def test_lint_failure_on_non_ascii_name_blocks(self, repo: Path, bin_dir: Path) -> None:
        """Names git would quote under core.quotePath are still checked."""
        write_script(bin_dir / "luacheck", "#!/bin/sh\necho \"$1: failed\"\nexit 1\n")
        (repo / "café.lua").write_text("return 1\n", encoding="utf-8")
        git(repo, "add", "café.lua")

        result = run_hook(repo, bin_dir)

        assert result.returncode == 1, result.stdout
        assert "café.lua" in result.stdout

    def test_non_ascii_name_fixed_and_staged(self, repo: Path, bin_dir: Path) -> None:
        (repo / "café.lua").write_bytes(b"return 1  \r\n")
        git(repo, "add", "café.lua")

        result = run_hook(repo, bin_dir)

        assert result.returncode == 0, result.stdout
        staged = subprocess.run(
            ["git", "show", ":café.lua"], cwd=repo, capture_output=True, check=True
        ).stdout
        assert staged == b"return 1\n"

    def test_failing_tests_block(self, repo: Path, bin_dir: Path) -> None:
        write_script(repo / "scripts" / "test.sh", "#!/bin/sh\nexit 3\n")
        (repo / "init.lua").write_text("return 1\n", encoding="utf-8")
        git(repo, "add", "init.lua")

        result = run_hook(repo, bin_dir)

        assert result.returncode == 1

    def test_runs_from_subdirectory(self, repo: Path, bin_dir: Path) -> None:
        (repo / "src").mkdir()
        (repo / "src" / "mod.lua").write_bytes(b"return {}  \n")
        git(repo, "add", "src/mod.lua")

        result = subprocess.run(
            [sys.executable, str(HOOK)],
            cwd=repo / "src",
            env={
                **os.environ,
                "PATH": f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}",
                "NO_COLOR": "1",
            },
            capture_output=True,
            text=True,
        )

        assert result.returncode == 0, result.stdout
        assert (repo / "src" / "mod.lua").read_bytes() == b"return {}\n"
