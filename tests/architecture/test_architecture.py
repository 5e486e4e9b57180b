# tests/architecture/test_architecture.py
# Architecture tests enforcing layering rules.
# - the table engine is pure: no web framework, database or cache imports
# - routers talk to services/repositories, never to the database directly
# - the engine never imports from the outer layers

import ast
import pathlib
import re
import pytest  # type: ignore[import-not-found]

REPO_ROOT = pathlib.Path(__file__).resolve().parents[2]
PACKAGE = REPO_ROOT / "tablekit"


def _iter_py_files(root: pathlib.Path):
    for path in root.rglob("*.py"):
        if "__pycache__" in path.parts:
            continue
        yield path


def _collect_imports(py_path: pathlib.Path) -> set[str]:
    """Return set of imported module names (full dotted path) from file."""
    tree = ast.parse(py_path.read_text(encoding="utf-8"), filename=str(py_path))
    imports: set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            imports.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            imports.add(node.module)
    return imports


def _top_levels(imports: set[str]) -> set[str]:
    return {name.split(".")[0] for name in imports}


def _file_contains_sql(py_path: pathlib.Path) -> bool:
    text = py_path.read_text(encoding="utf-8")
    sql_patterns = [r"\bSELECT\b", r"\bINSERT INTO\b", r"\bDELETE FROM\b", r"\bJOIN\b"]
    if any(re.search(p, text) for p in sql_patterns):
        return True
    bad_imports = {"sqlalchemy", "asyncpg"}
    return bool(bad_imports & _top_levels(_collect_imports(py_path)))


# ---------- Tests ----------

@pytest.mark.architecture
def test_engine_has_no_infrastructure_imports():
    forbidden = {"fastapi", "starlette", "sqlalchemy", "asyncpg", "redis", "prometheus_client"}
    for f in _iter_py_files(PACKAGE / "engine"):
        found = forbidden & _top_levels(_collect_imports(f))
        assert not found, f"engine must stay framework-free, {f} imports {sorted(found)}"


@pytest.mark.architecture
def test_engine_does_not_depend_on_outer_layers():
    outer = ("tablekit.services", "tablekit.routers", "tablekit.repositories", "tablekit.db", "tablekit.main")
    for f in _iter_py_files(PACKAGE / "engine"):
        bad = [name for name in _collect_imports(f) if name.startswith(outer)]
        assert not bad, f"engine must not import {bad}: {f}"


@pytest.mark.architecture
def test_routers_do_not_contain_sql():
    # health.py runs a SELECT 1 probe on purpose
    offenders = [
        f for f in _iter_py_files(PACKAGE / "routers")
        if f.name != "health.py" and _file_contains_sql(f)
    ]
    assert not offenders, "Routers must not contain SQL; offending files:\n" + "\n".join(map(str, offenders))
