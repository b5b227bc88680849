"""
Kernel boundary contract.

1. erp_kernel/** may NOT import erp_config.  Settings reach the kernel only
   as a PostingPolicy built by erp_config.bridges.

2. erp_kernel/models/** may not import services, selectors or domain.

3. erp_kernel/domain/** holds no ORM or driver imports; dtos.py may name
   models under TYPE_CHECKING only.

4. Only the UnitOfWork commits.

These tests read source code via AST.
"""

import ast
from pathlib import Path

from erp_kernel.invariants import ALL_KERNEL_INVARIANTS, FORBIDDEN_KERNEL_IMPORTS, KernelInvariant

ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _extract_imports(path: Path, skip_type_checking: bool = False) -> list[tuple[int, str]]:
    """(line_number, module) for every import in a file."""
    tree = ast.parse(path.read_text(), filename=str(path))
    skipped: set[int] = set()
    if skip_type_checking:
        for node in ast.walk(tree):
            if isinstance(node, ast.If) and getattr(node.test, "id", None) == "TYPE_CHECKING":
                for child in ast.walk(node):
                    skipped.add(id(child))

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if id(node) in skipped:
            continue
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _violations(package: str, prefixes: tuple[str, ...], skip_type_checking: bool = False) -> list[str]:
    found = []
    for path in _python_files(package):
        for lineno, module in _extract_imports(path, skip_type_checking):
            if any(module == p or module.startswith(f"{p}.") for p in prefixes):
                found.append(f"  {path.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestKernelNoUpwardDependencies:

    def test_kernel_does_not_import_config(self):
        violations = _violations("erp_kernel", FORBIDDEN_KERNEL_IMPORTS)
        assert not violations, (
            "Kernel boundary violation, erp_kernel/** must not import "
            "erp_config:\n" + "\n".join(violations)
        )


class TestModelLayer:

    def test_models_import_only_db(self):
        violations = _violations(
            "erp_kernel/models",
            ("erp_kernel.services", "erp_kernel.selectors", "erp_kernel.domain"),
        )
        assert not violations, "\n".join(violations)


class TestKernelDomainPurity:

    FORBIDDEN_MODULES = (
        "sqlalchemy",
        "psycopg2",
        "sqlite3",
        "erp_kernel.models",
        "erp_kernel.services",
        "erp_kernel.selectors",
    )

    def test_domain_no_orm_imports(self):
        violations = _violations(
            "erp_kernel/domain", self.FORBIDDEN_MODULES, skip_type_checking=True
        )
        assert not violations, (
            "Domain purity violation, erp_kernel/domain/** must not import "
            "ORM packages at runtime:\n" + "\n".join(violations)
        )


def _is_session(node: ast.expr) -> bool:
    """`session` or `self.session` / `self._session`; savepoints do not count."""
    if isinstance(node, ast.Name):
        return node.id == "session"
    return isinstance(node, ast.Attribute) and node.attr in ("session", "_session")


class TestSingleCommitter:

    def test_only_unit_of_work_commits(self):
        offenders = []
        for path in _python_files("erp_kernel/services") + _python_files("erp_kernel/selectors"):
            if path.name == "unit_of_work.py":
                continue
            tree = ast.parse(path.read_text())
            for node in ast.walk(tree):
                if (
                    isinstance(node, ast.Call)
                    and isinstance(node.func, ast.Attribute)
                    and node.func.attr == "commit"
                    and _is_session(node.func.value)
                ):
                    offenders.append(f"{path.relative_to(ROOT)}:{node.lineno}")
        assert offenders == []


class TestInvariantDeclaration:

    def test_invariants_declared(self):
        assert ALL_KERNEL_INVARIANTS == frozenset(KernelInvariant)
        assert KernelInvariant.NON_NEGATIVE_STOCK in ALL_KERNEL_INVARIANTS
