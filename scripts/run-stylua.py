#!/usr/bin/env python3
"""
Cross-platform stylua wrapper for the pre-commit framework.

Formats the Lua files passed on the command line (or, when none are given,
every staged Lua file), then stages ONLY the files stylua actually rewrote.
Other unstaged changes the developer may have are left alone.

File arguments are taken relative to the current directory (pre-commit runs
hooks from the repository root). Staged files are relative to the repository
root, so without arguments every command runs from there.

Works on Windows (PowerShell/cmd), macOS, and Linux.
"""

from __future__ import annotations

import hashlib
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence


def get_project_root() -> Optional[Path]:
    """Get the git project root directory."""
    result = subprocess.run(
        ["git", "rev-parse", "--show-toplevel"],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        return None
    return Path(result.stdout.strip())


def get_staged_lua_files(root: Path) -> list[str]:
    """Get staged Lua file paths, relative to ``root``."""
    result = subprocess.run(
        ["git", "diff", "--cached", "--name-only", "-z", "--diff-filter=ACMR"],
        cwd=root,
        capture_output=True,
        encoding="utf-8",
        errors="surrogateescape",
    )
    if result.returncode != 0:
        return []
    # -z output is NUL-separated and never quoted
    return [f for f in result.stdout.split("\0") if f.endswith(".lua")]


def compute_file_hash(filepath: Path) -> Optional[str]:
    """Compute SHA-256 hash of a file's contents. Returns None if unreadable."""
    try:
        return hashlib.sha256(filepath.read_bytes()).hexdigest()
    except OSError:
        return None


def get_file_hashes(files: Sequence[str], root: Path) -> dict[str, Optional[str]]:
    return {f: compute_file_hash(root / f) for f in files}


def run_stylua(stylua: str, files: Sequence[str], root: Path) -> bool:
    """Format files in place. Returns True on success."""
    print(f"Running stylua on {len(files)} file(s)...")
    result = subprocess.run([stylua, "--", *files], cwd=root, capture_output=False)
    return result.returncode == 0


def stage_modified_files(files_to_stage: Sequence[str], root: Path) -> bool:
    """Stage the specified files.

    Args:
        files_to_stage: List of file paths to stage, relative to ``root``.
        root: Directory the paths are relative to.

    Returns:
        True on success, False on failure.
    """
    if not files_to_stage:
        return True

    print(f"Staging {len(files_to_stage)} formatted file(s)...")
    result = subprocess.run(
        ["git", "add", "--", *files_to_stage], cwd=root, capture_output=False
    )
    if result.returncode != 0:
        print("WARNING: Could not stage formatted files")
        return False

    for f in files_to_stage:
        print(f"  staged: {f}")
    return True


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Format Lua files and stage the ones stylua changed. Returns exit code."""
    if argv is None:
        argv = sys.argv[1:]

    stylua = shutil.which("stylua")
    if stylua is None:
        print("ERROR: stylua not found.")
        print("  Install from: https://github.com/JohnnyMorganz/StyLua")
        return 1

    try:
        if argv:
            root = Path.cwd()
            files = [f for f in argv if f.endswith(".lua")]
        else:
            project_root = get_project_root()
            if project_root is None:
                print("ERROR: not inside a git repository.")
                return 1
            root = project_root
            files = get_staged_lua_files(root)

        if not files:
            return 0

        hashes_before = get_file_hashes(files, root)

        if not run_stylua(stylua, files, root):
            print("\nERROR: stylua failed.")
            return 1

        hashes_after = get_file_hashes(files, root)
        modified = [f for f in files if hashes_before[f] != hashes_after[f]]

        if not stage_modified_files(modified, root):
            print("\nERROR: Failed to stage formatted files.")
            return 1

        return 0

    except FileNotFoundError:
        print("ERROR: git not found. Is Git installed?")
        return 1


if __name__ == "__main__":
    sys.exit(main())
