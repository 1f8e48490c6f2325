import pytest

from builders import FHIR
from fhir_mapper.errors import InvalidTypeHierarchy
from fhir_mapper.model.fhir_types import StructuredResource
from fhir_mapper.type_tree import TypeTree


def _resource(name, base=None, abstract=False):
    return StructuredResource(
        url=FHIR + name,
        name=name,
        kind="resource",
        abstract=abstract,
        baseDefinition=FHIR + base if base else None,
    )


@pytest.fixture
def tree():
    resources = [
        _resource("Resource", abstract=True),
        _resource("DomainResource", "Resource", abstract=True),
        _resource("Patient", "DomainResource"),
        _resource("Observation", "DomainResource"),
        _resource("Bundle", "Resource"),
    ]
    return TypeTree({r.url: r for r in resources})


def test_root(tree):
    assert tree.root.name == "Resource"
    assert tree.get_father(tree.root) is None
    assert len(tree) == 5


def test_get_node(tree):
    assert tree.get_node(FHIR + "Patient").name == "Patient"
    assert tree.get_node("Patient").url == FHIR + "Patient"
    assert tree.get_node("Unknown") is None
    assert tree.contains_node("Bundle")
    assert not tree.contains_node("Unknown")


def test_children(tree):
    assert [n.name for n in tree.get_children("Resource")] == ["DomainResource", "Bundle"]
    assert tree.get_children("Patient") == []


def test_ancestors_end_with_base_definition(tree):
    for node in tree.get_all_nodes():
        ancestors = tree.get_ancestors(node)
        if node.value.baseDefinition is None:
            assert ancestors == []
        else:
            assert ancestors[-1].url == node.value.baseDefinition

    assert [n.name for n in tree.get_ancestors("Patient")] == ["Resource", "DomainResource"]


def test_descendants_pre_order(tree):
    assert [n.name for n in tree.get_descendants("Resource")] == [
        "DomainResource",
        "Patient",
        "Observation",
        "Bundle",
    ]


def test_descendants_irreflexive_and_transitive(tree):
    for node in tree.get_all_nodes():
        descendants = {n.url for n in tree.get_descendants(node)}
        assert node.url not in descendants

        for descendant in tree.get_descendants(node):
            assert {n.url for n in tree.get_descendants(descendant)} <= descendants


def test_get_all_nodes(tree):
    assert len(tree.get_all_nodes()) == len(tree)


def test_several_roots():
    resources = [_resource("Resource"), _resource("Other")]

    with pytest.raises(InvalidTypeHierarchy) as e:
        TypeTree({r.url: r for r in resources})

    assert set(e.value.roots) == {FHIR + "Resource", FHIR + "Other"}


def test_no_types():
    with pytest.raises(InvalidTypeHierarchy):
        TypeTree({})
