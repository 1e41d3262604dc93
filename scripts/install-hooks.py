#!/usr/bin/env python3
"""
Install scripts/pre-commit.py as this clone's git pre-commit hook.

Usage:
    python3 scripts/install-hooks.py
    python3 scripts/install-hooks.py --force      # replace an existing hook
    python3 scripts/install-hooks.py --uninstall

An existing hook that was not written by this script is left alone unless
--force is given, in which case it is moved to pre-commit.bak first.
"""

from __future__ import annotations

import argparse
import stat
import subprocess
import sys
from pathlib import Path
from typing import Optional, Sequence

HOOK_NAME = "pre-commit"
HOOK_MARKER = "# Installed by scripts/install-hooks.py"
HOOK_TEMPLATE = f"""#!/bin/sh
{HOOK_MARKER}
cd "$(git rev-parse --show-toplevel)" || exit 1
exec python3 scripts/pre-commit.py "$@"
"""


def _run(cmd: list[str], cwd: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        cmd,
        cwd=cwd,
        check=False,
        text=True,
        capture_output=True,
    )


def get_hooks_dir(cwd: Path) -> Optional[Path]:
    """Resolve the hooks directory, honoring core.hooksPath."""
    result = _run(["git", "rev-parse", "--git-path", "hooks"], cwd)
    if result.returncode != 0:
        if result.stderr:
            print(result.stderr.strip())
        return None
    hooks_dir = Path(result.stdout.strip())
    if not hooks_dir.is_absolute():
        hooks_dir = cwd / hooks_dir
    return hooks_dir


def is_managed_hook(hook: Path) -> bool:
    try:
        return HOOK_MARKER in hook.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return False


def install(hooks_dir: Path, force: bool = False) -> bool:
    hook = hooks_dir / HOOK_NAME

    if hook.exists() and not is_managed_hook(hook):
        if not force:
            print(f"FAIL: {hook} already exists. Use --force to replace it.")
            return False
        backup = hook.with_name(HOOK_NAME + ".bak")
        hook.replace(backup)
        print(f"Moved existing hook to {backup}")

    hooks_dir.mkdir(parents=True, exist_ok=True)
    hook.write_text(HOOK_TEMPLATE, encoding="utf-8", newline="\n")
    hook.chmod(hook.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    print(f"PASS: installed {hook}")
    return True


def uninstall(hooks_dir: Path) -> bool:
    hook = hooks_dir / HOOK_NAME

    if not hook.exists():
        print("Nothing to uninstall.")
        return True
    if not is_managed_hook(hook):
        print(f"FAIL: {hook} was not installed by this script, leaving it alone.")
        return False

    hook.unlink()
    print(f"Removed {hook}")
    return True


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Install the Lua pre-commit hook.")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Replace an existing hook (it is backed up to pre-commit.bak)",
    )
    parser.add_argument(
        "--uninstall",
        action="store_true",
        help="Remove the hook installed by this script",
    )
    args = parser.parse_args(argv)

    hooks_dir = get_hooks_dir(Path.cwd())
    if hooks_dir is None:
        print("FAIL: not inside a git repository.")
        return 1

    if args.uninstall:
        return 0 if uninstall(hooks_dir) else 1
    return 0 if install(hooks_dir, force=args.force) else 1


if __name__ == "__main__":
    sys.exit(main())
