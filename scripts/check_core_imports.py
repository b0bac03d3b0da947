#!/usr/bin/env python3
"""
Fail if the sync core imports transport or service modules.
Checks all Python files under src/polarion_client/core/.
"""

from __future__ import annotations

import ast
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
CORE_DIR = REPO_ROOT / "src" / "polarion_client" / "core"
CORE_PACKAGE = "polarion_client.core"

FORBIDDEN_PREFIXES = (
    "httpx",
    "respx",
    "polarion_client.client",
    "polarion_client.services",
)


def is_forbidden(module: str) -> bool:
    return any(
        module == prefix or module.startswith(prefix + ".")
        for prefix in FORBIDDEN_PREFIXES
    )


def resolve(node: ast.ImportFrom, package: str) -> str:
    """Absolute module name for a (possibly relative) ``from`` import."""
    if not node.level:
        return node.module or ""
    parts = package.split(".")
    base = parts[: len(parts) - (node.level - 1)]
    if node.module:
        base.append(node.module)
    return ".".join(base)


def package_of(path: Path) -> str:
    rel = path.relative_to(CORE_DIR).parent.parts
    return ".".join((CORE_PACKAGE, *rel))


def scan_file(path: Path, package: str = CORE_PACKAGE) -> list[str]:
    errors: list[str] = []
    tree = ast.parse(path.read_text())
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                if is_forbidden(alias.name):
                    errors.append(f"{path}: forbidden import '{alias.name}'")
        elif isinstance(node, ast.ImportFrom):
            mod = resolve(node, package)
            candidates = [mod] + [f"{mod}.{alias.name}" for alias in node.names]
            for candidate in candidates:
                if candidate and is_forbidden(candidate):
                    errors.append(f"{path}: forbidden import '{candidate}'")
                    break
    return errors


def main() -> int:
    violations: list[str] = []
    for py_file in CORE_DIR.rglob("*.py"):
        violations.extend(scan_file(py_file, package_of(py_file)))

    if violations:
        for v in violations:
            print(v, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
