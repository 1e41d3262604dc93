#!/usr/bin/env python3
"""
Cross-platform pre-commit hook for Lua projects.

This hook runs before each commit and blocks it when staged Lua code is
not clean. For every staged (added, copied or modified) ``.lua`` file it:
  1. Formats the file in place with stylua and re-stages it
  2. Strips trailing whitespace and converts CRLF line endings to LF,
     re-staging any file that changed (only when luacheck is available)
  3. Lints the file with luacheck (only when luacheck is available)

Then it runs the project test suite (scripts/test.sh from the repository
root). A lint failure or a failing test suite aborts the commit.

stylua is required. luacheck is optional: without it, auto-fix and lint are
skipped with a warning.

Installation:
  python3 scripts/install-hooks.py

Works on Windows, macOS, and Linux.
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import NamedTuple, Optional, Sequence

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s: %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".lua"
DEFAULT_FORMATTER = "stylua"
DEFAULT_LINTER = "luacheck"
DEFAULT_TEST_SCRIPT = "scripts/test.sh"

INSTALL_HINTS = {
    "stylua": "Install from: https://github.com/JohnnyMorganz/StyLua (or: cargo install stylua)",
    "luacheck": "Install with: luarocks install luacheck",
}

# Whitespace removed before each "\n" (or "\r\n"); a lone "\r" is not a line end
TRAILING_WHITESPACE = b" \t\f\v"


# ANSI color codes (work on most modern terminals including Windows 10+)
class Colors:
    RED = "\033[0;31m"
    GREEN = "\033[0;32m"
    YELLOW = "\033[1;33m"
    BLUE = "\033[0;34m"
    NC = "\033[0m"  # No Color


class HookOptions(NamedTuple):
    """Settings for a single hook run."""

    suffix: str = DEFAULT_SUFFIX
    formatter: str = DEFAULT_FORMATTER
    linter: str = DEFAULT_LINTER
    test_script: str = DEFAULT_TEST_SCRIPT
    run_tests: bool = True
    strict_format: bool = False


class Toolchain(NamedTuple):
    """Resolved executables. ``linter`` is None when lint is disabled."""

    formatter: str
    linter: Optional[str]


def supports_color() -> bool:
    """Check if the terminal supports color output."""
    if os.environ.get("NO_COLOR"):
        return False
    if not hasattr(sys.stdout, "isatty") or not sys.stdout.isatty():
        return False
    if sys.platform == "win32":
        try:
            import ctypes

            kernel32 = ctypes.windll.kernel32
            kernel32.SetConsoleMode(kernel32.GetStdHandle(-11), 7)
            return True
        except (AttributeError, OSError):
            return False
    return True


def colored(text: str, color: str) -> str:
    """Return colored text if terminal supports it."""
    if supports_color():
        return f"{color}{text}{Colors.NC}"
    return text


def run_command(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    capture: bool = False,
) -> subprocess.CompletedProcess[str]:
    """Run an external command to completion without raising on exit status.

    Output goes straight to the terminal unless ``capture`` is set.
    """
    logger.debug(f"Running: {' '.join(cmd)}" + (f" (in {cwd})" if cwd else ""))
    result = subprocess.run(
        list(cmd),
        cwd=cwd,
        capture_output=capture,
        encoding="utf-8",
        errors="surrogateescape",
        check=False,
    )
    logger.debug(f"  exit status {result.returncode}")
    return result


def install_hint(tool: str) -> str:
    return INSTALL_HINTS.get(Path(tool).name, f"Make sure '{tool}' is on your PATH.")


def resolve_tools(options: HookOptions) -> Optional[Toolchain]:
    """Locate the formatter and linter on PATH.

    Returns None when the formatter is missing. A missing linter only
    disables lint and auto-fix.
    """
    formatter = shutil.which(options.formatter)
    if formatter is None:
        print(colored(f"[FAIL] {options.formatter} not found", Colors.RED))
        print(colored(f"  {install_hint(options.formatter)}", Colors.YELLOW))
        return None

    linter = shutil.which(options.linter)
    if linter is None:
        print(
            colored(
                f"[WARN] {options.linter} not found, skipping lint and auto-fix",
                Colors.YELLOW,
            )
        )
        print(colored(f"  {install_hint(options.linter)}", Colors.YELLOW))

    return Toolchain(formatter=formatter, linter=linter)


def get_staged_files(suffix: str = DEFAULT_SUFFIX) -> list[str]:
    """Get staged added/copied/modified files ending with ``suffix``.

    Paths are relative to the repository root, in the order git lists them.
    """
    try:
        result = run_command(
            ["git", "diff", "--cached", "--name-only", "-z", "--diff-filter=ACM"],
            capture=True,
        )
    except FileNotFoundError:
        print(colored("[WARN] git not found", Colors.YELLOW))
        return []
    if result.returncode != 0:
        logger.debug(result.stderr.strip())
        return []

    # -z output is NUL-separated and never quoted, whatever core.quotePath says
    return [f for f in result.stdout.split("\0") if f and f.endswith(suffix)]


def get_project_root() -> Optional[Path]:
    """Get the git project root directory."""
    result = run_command(["git", "rev-parse", "--show-toplevel"], capture=True)
    if result.returncode != 0:
        logger.debug(result.stderr.strip())
        return None
    return Path(result.stdout.strip())


def stage_files(files: Sequence[str], root: Path) -> bool:
    """Add files to the index. Returns True on success."""
    if not files:
        return True

    result = run_command(["git", "add", "--", *files], cwd=root)
    if result.returncode != 0:
        print(colored(f"[WARN] Could not stage: {' '.join(files)}", Colors.YELLOW))
        return False
    return True


def format_files(formatter: str, files: Sequence[str], root: Path) -> bool:
    """Format each file in place and re-stage it.

    Returns False if the formatter failed on any file. Files are re-staged
    either way.
    """
    print(colored("Formatting staged files...", Colors.BLUE))
    all_ok = True

    for filepath in files:
        try:
            result = run_command([formatter, filepath], cwd=root)
        except OSError as e:
            print(colored(f"[WARN] Could not run {formatter}: {e}", Colors.YELLOW))
            all_ok = False
            continue

        if result.returncode != 0:
            print(
                colored(
                    f"[WARN] {Path(formatter).name} exited with status "
                    f"{result.returncode} on {filepath}",
                    Colors.YELLOW,
                )
            )
            all_ok = False

        stage_files([filepath], root)

    return all_ok


def strip_line(line: bytes) -> bytes:
    """Strip trailing whitespace from one LF-split line, keeping a CRLF carriage return."""
    if line.endswith(b"\r"):
        return line[:-1].rstrip(TRAILING_WHITESPACE) + b"\r"
    return line.rstrip(TRAILING_WHITESPACE)


def strip_trailing_whitespace(path: Path) -> bool:
    """Remove trailing whitespace from every line. Returns True if modified."""
    content = path.read_bytes()

    fixed = b"\n".join(strip_line(line) for line in content.split(b"\n"))

    if fixed == content:
        return False
    path.write_bytes(fixed)
    return True


def normalize_line_endings(path: Path) -> bool:
    """Convert CRLF line endings to LF. Returns True if modified."""
    content = path.read_bytes()
    if b"\r\n" not in content:
        return False
    path.write_bytes(content.replace(b"\r\n", b"\n"))
    return True


def autofix_files(files: Sequence[str], root: Path) -> list[str]:
    """Apply whitespace and line-ending fixes.

    Returns the files that were changed, in input order.
    """
    print(colored("Auto-fixing trivial style issues...", Colors.BLUE))
    fixed: list[str] = []

    for filepath in files:
        path = root / filepath
        changed = False
        try:
            if strip_trailing_whitespace(path):
                print(colored("[FIX]", Colors.GREEN) + f" Trailing whitespace: {filepath}")
                changed = True
            if normalize_line_endings(path):
                print(colored("[FIX]", Colors.GREEN) + f" CRLF line endings: {filepath}")
                changed = True
        except OSError as e:
            print(colored(f"[WARN] Could not auto-fix {filepath}: {e}", Colors.YELLOW))

        if changed:
            fixed.append(filepath)

    return fixed


def lint_files(linter: str, files: Sequence[str], root: Path) -> bool:
    """Lint every file. Returns True if all of them pass."""
    print(colored("Linting staged files...", Colors.BLUE))
    passed = True

    for filepath in files:
        try:
            result = run_command([linter, filepath], cwd=root)
        except OSError as e:
            print(colored(f"[FAIL] Could not run {linter}: {e}", Colors.RED))
            passed = False
            continue

        if result.returncode != 0:
            print(colored("[FAIL]", Colors.RED) + f" {filepath}")
            passed = False
        else:
            print(colored("[OK]", Colors.GREEN) + f" {filepath}")

    return passed


def build_test_command(script: Path) -> list[str]:
    # Windows cannot execute shell scripts directly
    if sys.platform == "win32" and script.suffix == ".sh":
        bash = shutil.which("bash")
        if bash:
            return [bash, str(script)]
    return [str(script)]


def run_tests(root: Path, test_script: str = DEFAULT_TEST_SCRIPT) -> bool:
    """Run the project test script from the repository root."""
    script = root / test_script
    print(colored(f"Running {test_script}...", Colors.BLUE))

    if not script.is_file():
        print(colored(f"[FAIL] Test script not found: {script}", Colors.RED))
        return False

    try:
        result = run_command(build_test_command(script), cwd=root)
    except OSError as e:
        print(colored(f"[FAIL] Could not run {script}: {e}", Colors.RED))
        return False

    if result.returncode != 0:
        print(colored(f"[FAIL] Tests failed (exit status {result.returncode})", Colors.RED))
        return False

    print(colored("[OK]", Colors.GREEN) + " Tests passed")
    return True


def report_failure(*hints: str) -> int:
    print()
    print(colored("=" * 60, Colors.RED))
    print(colored("          Pre-commit checks FAILED", Colors.RED))
    print(colored("=" * 60, Colors.RED))
    print()
    for hint in hints:
        print(colored(hint, Colors.YELLOW))
    print(colored("To bypass (not recommended): git commit --no-verify", Colors.YELLOW))
    return 1


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Format, lint and test staged Lua files before a commit.",
    )
    parser.add_argument(
        "--suffix",
        default=DEFAULT_SUFFIX,
        help=f"Only check staged files with this suffix (default: {DEFAULT_SUFFIX})",
    )
    parser.add_argument(
        "--formatter",
        default=DEFAULT_FORMATTER,
        help=f"Formatter executable, required (default: {DEFAULT_FORMATTER})",
    )
    parser.add_argument(
        "--linter",
        default=DEFAULT_LINTER,
        help=f"Linter executable, optional (default: {DEFAULT_LINTER})",
    )
    parser.add_argument(
        "--test-script",
        default=DEFAULT_TEST_SCRIPT,
        help=f"Test script relative to the repository root (default: {DEFAULT_TEST_SCRIPT})",
    )
    parser.add_argument(
        "--no-tests",
        action="store_false",
        dest="run_tests",
        help="Don't run the test script",
    )
    parser.add_argument(
        "--strict-format",
        action="store_true",
        help="Fail when the formatter exits with a non-zero status",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser.parse_args(argv)


def run_hook(options: HookOptions) -> int:
    """Run every pre-commit step in order. Returns the exit code."""
    tools = resolve_tools(options)
    if tools is None:
        return 1

    staged = get_staged_files(options.suffix)
    if not staged:
        print(colored("[OK]", Colors.GREEN) + f" No staged {options.suffix} files to check")
        return 0

    root = get_project_root()
    if root is None:
        print(colored("[FAIL] Could not determine the repository root", Colors.RED))
        return 1

    print(colored(f"Checking {len(staged)} staged file(s)...", Colors.BLUE))
    print()

    if not format_files(tools.formatter, staged, root) and options.strict_format:
        return report_failure(
            f"{options.formatter} could not format all files.",
            "Fix the errors above and try again.",
        )
    print()

    if tools.linter is not None:
        fixed = autofix_files(staged, root)
        if fixed:
            print(f"Staging {len(fixed)} auto-fixed file(s)...")
            stage_files(fixed, root)
        print()

        if not lint_files(tools.linter, staged, root):
            return report_failure(
                "Lint errors remain after auto-fix.",
                f"Run '{options.linter} <file>' to see them, fix them and try again.",
            )
        print()

    if options.run_tests and not run_tests(root, options.test_script):
        return report_failure("The test suite failed. Fix it and try again.")

    print()
    print(colored("=" * 60, Colors.GREEN))
    print(colored("          All pre-commit checks PASSED", Colors.GREEN))
    print(colored("=" * 60, Colors.GREEN))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run pre-commit checks."""
    args = parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    options = HookOptions(
        suffix=args.suffix,
        formatter=args.formatter,
        linter=args.linter,
        test_script=args.test_script,
        run_tests=args.run_tests,
        strict_format=args.strict_format,
    )
    return run_hook(options)


if __name__ == "__main__":
    sys.exit(main())
