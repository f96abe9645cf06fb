"""
Import-boundary enforcement.

1. Engine purity      -- compliance_engines/** may import only the standard
                         library, compliance_kernel.domain and sibling engines.
2. Engine no-impure   -- compliance_engines/** may not read the wall clock.
3. Domain purity      -- compliance_kernel/domain/** may not import the ORM,
                         database, selectors or services.
4. Dependency direction -- compliance_kernel never imports compliance_config.

All scanning is done via AST -- these tests are read-only.
"""

import ast
import glob
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(package: str) -> list[str]:
    """Return all .py files under *package*, sorted for deterministic order."""
    return sorted(glob.glob(str(ROOT / package / "**" / "*.py"), recursive=True))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every absolute import in *filepath*."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module and node.level == 0:
                results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    """True if *module* equals or is a child of any prefix."""
    for prefix in prefixes:
        if module == prefix or module.startswith(f"{prefix}."):
            return True
    return False


def _extract_attribute_calls(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for two-level attribute references."""
    tree = ast.parse(Path(filepath).read_text(), filename=filepath)

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
            results.append((node.lineno, f"{node.value.id}.{node.attr}"))
    return results


# ---------------------------------------------------------------------------
# 1. Engine purity
# ---------------------------------------------------------------------------

class TestEnginePurity:
    ALLOWED_PREFIXES = (
        "compliance_engines",
        "compliance_kernel.domain",
        "compliance_kernel.exceptions",
        "__future__",
    )

    def test_engines_import_only_domain_and_stdlib(self):
        violations: list[str] = []

        for filepath in _python_files("compliance_engines"):
            for lineno, module in _extract_imports(filepath):
                top = module.split(".")[0]
                if top in sys.stdlib_module_names:
                    continue
                if _matches_any(module, self.ALLOWED_PREFIXES):
                    continue
                violations.append(f"  {filepath}:{lineno} imports '{module}'")

        assert not violations, (
            "Engine purity violation -- compliance_engines/** may only import "
            "the standard library and compliance_kernel.domain:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 2. Engine no-impure functions
# ---------------------------------------------------------------------------

class TestEngineNoImpureFunctions:
    FORBIDDEN_ATTRIBUTES = (
        "datetime.now",
        "datetime.utcnow",
        "datetime.today",
        "date.today",
        "os.environ",
        "os.getenv",
    )

    def test_engines_do_not_read_clock_or_environment(self):
        violations: list[str] = []

        for filepath in _python_files("compliance_engines"):
            for lineno, attribute in _extract_attribute_calls(filepath):
                if attribute in self.FORBIDDEN_ATTRIBUTES:
                    violations.append(f"  {filepath}:{lineno} uses '{attribute}'")

        assert not violations, (
            "Engines must take dates from their inputs:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 3. Domain purity
# ---------------------------------------------------------------------------

class TestDomainPurity:
    FORBIDDEN_PREFIXES = (
        "sqlalchemy",
        "psycopg",
        "sqlite3",
        "yaml",
        "compliance_kernel.db",
        "compliance_kernel.models",
        "compliance_kernel.selectors",
        "compliance_kernel.services",
        "compliance_engines",
        "compliance_config",
    )

    def test_domain_has_no_infrastructure_imports(self):
        violations: list[str] = []

        for filepath in _python_files("compliance_kernel/domain"):
            for lineno, module in _extract_imports(filepath):
                if _matches_any(module, self.FORBIDDEN_PREFIXES):
                    violations.append(f"  {filepath}:{lineno} imports '{module}'")

        assert not violations, (
            "Domain purity violation:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 4. Dependency direction
# ---------------------------------------------------------------------------

class TestDependencyDirection:
    def test_kernel_does_not_import_config(self):
        violations: list[str] = []

        for filepath in _python_files("compliance_kernel"):
            for lineno, module in _extract_imports(filepath):
                if _matches_any(module, ("compliance_config",)):
                    violations.append(f"  {filepath}:{lineno} imports '{module}'")

        assert not violations, (
            "compliance_kernel must not depend on compliance_config:\n"
            + "\n".join(violations)
        )

    def test_models_do_not_import_services(self):
        violations: list[str] = []

        for filepath in _python_files("compliance_kernel/models"):
            for lineno, module in _extract_imports(filepath):
                if _matches_any(module, (
                    "compliance_kernel.services", "compliance_kernel.selectors",
                )):
                    violations.append(f"  {filepath}:{lineno} imports '{module}'")

        assert not violations, "\n".join(violations)

    def test_packages_are_scanned(self):
        assert _python_files("compliance_engines")
        assert _python_files("compliance_kernel/domain")
