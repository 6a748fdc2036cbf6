from __future__ import annotations

import argparse
import ast
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Sequence

PACKAGE_ROOT = Path(__file__).resolve().parents[1] / "src" / "barback"

_FRAMEWORKS = frozenset(
    {
        "fastapi",
        "starlette",
        "pydantic",
        "sqlalchemy",
        "alembic",
        "redis",
        "httpx",
        "requests",
        "opentelemetry",
        "prometheus_client",
    }
)

# layer directory -> modules it may not import
LAYER_POLICIES: dict[str, frozenset[str]] = {
    "domain": _FRAMEWORKS
    | {"barback.application", "barback.api", "barback.infrastructure", "barback.tools"},
    "application": frozenset(
        {"fastapi", "starlette", "sqlalchemy", "alembic", "redis", "barback.api", "barback.infrastructure"}
    ),
}

DEFAULT_LAYER = "domain"


@dataclass(frozen=True)
class Violation:
    file_path: Path
    line: int
    module: str


def _python_files(root: Path) -> Iterable[Path]:
    if root.is_file() and root.suffix == ".py":
        yield root
        return
    if root.is_dir():
        yield from sorted(root.rglob("*.py"))


def _matches(module: str, forbidden: frozenset[str]) -> bool:
    return any(module == name or module.startswith(f"{name}.") for name in forbidden)


def _imported_modules(tree: ast.AST) -> Iterable[tuple[int, str]]:
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                yield node.lineno, alias.name
        elif isinstance(node, ast.ImportFrom) and node.module and node.level == 0:
            yield node.lineno, node.module


def _scan_file(file_path: Path, forbidden: frozenset[str]) -> list[Violation]:
    tree = ast.parse(file_path.read_text(encoding="utf-8"), filename=str(file_path))
    return [
        Violation(file_path=file_path, line=line, module=module)
        for line, module in _imported_modules(tree)
        if _matches(module, forbidden)
    ]


def find_violations(paths: Sequence[Path], forbidden: frozenset[str]) -> list[Violation]:
    violations: list[Violation] = []
    for path in paths:
        for file_path in _python_files(path):
            violations.extend(_scan_file(file_path, forbidden))
    return violations


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import policy check for the barback domain and application layers."
    )
    parser.add_argument(
        "--path",
        action="append",
        default=[],
        help="Path to scan (repeatable). Defaults to src/barback/<layer>.",
    )
    parser.add_argument(
        "--layer",
        choices=sorted(LAYER_POLICIES),
        action="append",
        default=[],
        help="Policy to enforce (repeatable). Defaults to domain.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    layers = args.layer or [DEFAULT_LAYER]

    violations: list[Violation] = []
    for layer in layers:
        scan_paths = [Path(item) for item in args.path] if args.path else [PACKAGE_ROOT / layer]
        violations.extend(find_violations(scan_paths, LAYER_POLICIES[layer]))

    if not violations:
        print(f"depcheck passed ({', '.join(layers)})")
        return 0

    print("depcheck failed: forbidden imports detected")
    for violation in violations:
        print(f"{violation.file_path}:{violation.line} -> {violation.module}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
