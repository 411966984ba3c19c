import pytest

archrule = pytest.importorskip("pytest_archon").archrule


def test_core_independence() -> None:
    """
    Core must not import any engine binding or driver.
    Bindings are loaded by name from the adapter factory.
    """
    (
        archrule("core_is_independent")
        .match("polyquery_core*")
        .should_not_import("polyquery_sql*")
        .should_not_import("polyquery_mongo*")
        .should_not_import("polyquery_redis*")
        .should_not_import("sqlalchemy*")
        .should_not_import("motor*")
        .should_not_import("pymongo*")
        .should_not_import("redis*")
        .check("polyquery_core")
    )


def test_emitters_are_pure() -> None:
    """
    Emitters translate descriptors only.
    They must not reach into adapters, ports or the facade.
    """
    (
        archrule("emitters_are_pure")
        .match("polyquery_core.emitters*")
        .should_not_import("polyquery_core.adapters*")
        .should_not_import("polyquery_core.ports*")
        .should_not_import("polyquery_core.database")
        .should_not_import("polyquery_core.pagination")
        .check("polyquery_core")
    )


def test_query_model_isolation() -> None:
    """
    Descriptor, operators and exceptions are the lowest level.
    """
    (
        archrule("query_model_isolation")
        .match(
            "polyquery_core.descriptor",
            "polyquery_core.operators",
            "polyquery_core.exceptions",
        )
        .should_not_import("polyquery_core.emitters*")
        .should_not_import("polyquery_core.builder")
        .should_not_import("polyquery_core.adapters*")
        .should_not_import("polyquery_core.ports*")
        .check("polyquery_core")
    )


def test_ports_layering() -> None:
    """
    Ports (interfaces) should not depend on Adapters (implementations).
    """
    (
        archrule("ports_layering")
        .match("polyquery_core.ports*")
        .should_not_import("polyquery_core.adapters*")
        .should_not_import("polyquery_core.database")
        .check("polyquery_core")
    )


@pytest.mark.parametrize(
    ("binding", "others"),
    [
        ("polyquery_sql", ("polyquery_mongo*", "polyquery_redis*", "motor*")),
        ("polyquery_mongo", ("polyquery_sql*", "polyquery_redis*", "sqlalchemy*")),
        ("polyquery_redis", ("polyquery_sql*", "polyquery_mongo*", "sqlalchemy*")),
    ],
)
def test_bindings_do_not_depend_on_each_other(binding: str, others: tuple[str, ...]) -> None:
    """
    Each binding depends on the core only, never on a sibling binding.
    """
    rule = archrule(f"{binding}_independence").match(f"{binding}*")
    for other in others:
        rule = rule.should_not_import(other)
    rule.check(binding)
