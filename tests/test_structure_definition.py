import pytest

from builders import (
    FHIR,
    GENDER_VS,
    OBSERVATION_STATUS_VS,
    element,
    patient,
    structure_definition,
    terminologies,
)
from fhir_mapper.errors import (
    InvalidStructureDefinition,
    InvalidValueSet,
    MissingSnapshot,
    SchemaError,
    StructuralViolation,
)
from fhir_mapper.model.fhir_types import (
    AlternativesField,
    BackboneElementField,
    BindingStrength,
    ComplexField,
    PrimitiveField,
    PrimitiveResource,
    ReferenceField,
    StructuredResource,
    iter_field_paths,
)
from fhir_mapper.structure_definition import (
    get_code_systems,
    get_valuesets_url,
    is_base_definition,
    parse_structure_definition,
    parse_valueset,
    parse_valueset_map,
)


def test_parse_resource():
    resource = parse_structure_definition(patient())

    assert isinstance(resource, StructuredResource)
    assert resource.kind == "resource"
    assert resource.url == FHIR + "Patient"
    assert resource.baseDefinition == FHIR + "DomainResource"
    assert list(resource.fields) == [
        "id",
        "name",
        "gender",
        "contact",
        "managingOrganization",
        "deceased[x]",
    ]


def test_field_kinds():
    fields = parse_structure_definition(patient()).fields

    assert isinstance(fields["name"], ComplexField)
    assert fields["name"].value == "HumanName"

    assert isinstance(fields["contact"], BackboneElementField)
    assert list(fields["contact"].fields) == ["name", "gender"]

    assert isinstance(fields["managingOrganization"], ReferenceField)
    assert fields["managingOrganization"].value == [FHIR + "Organization"]
    assert fields["managingOrganization"].max == 1

    deceased = fields["deceased[x]"]
    assert isinstance(deceased, AlternativesField)
    assert [f.value for f in deceased.value] == ["boolean", "dateTime"]


def test_fhirpath_system_type_is_normalized():
    field = parse_structure_definition(patient()).fields["id"]

    assert isinstance(field, PrimitiveField)
    assert field.value == "string"


def test_nested_field_identity():
    contact_name = parse_structure_definition(patient()).fields["contact"].fields["name"]

    assert contact_name.path == "Patient.contact.name"
    assert contact_name.url == FHIR + "Patient#Patient.contact.name"
    assert contact_name.name == "name"


def test_field_paths_round_trip():
    raw = patient()
    declared = [e["path"] for e in raw["snapshot"]["element"][1:]]

    paths = list(iter_field_paths(parse_structure_definition(raw)))

    assert sorted(paths) == sorted(declared)
    assert len(paths) == len(set(paths))


def test_code_binding_drops_version():
    gender = parse_structure_definition(patient()).fields["gender"]

    assert gender.valueSet.url == GENDER_VS
    assert gender.valueSet.strength == BindingStrength.REQUIRED


def test_example_binding_is_ignored():
    raw = structure_definition(
        "Patient",
        "resource",
        [element("Patient.gender", "code", binding={"strength": "example", "valueSet": GENDER_VS})],
    )

    assert parse_structure_definition(raw).fields["gender"].valueSet is None


def test_primitive_type():
    resource = parse_structure_definition(structure_definition("string", "primitive-type", view=None))

    assert isinstance(resource, PrimitiveResource)
    assert resource.value == "string"
    assert not resource.abstract


def test_abstract_primitive_type():
    raw = structure_definition("PrimitiveType", "primitive-type", base="DataType", abstract=True, view=None)

    assert parse_structure_definition(raw).abstract


@pytest.mark.parametrize(
    "name,type_,expected",
    [
        ("Patient", "Patient", True),
        ("SimpleQuantity", "Quantity", True),
        ("USCoreIndividual", "Patient", False),
    ],
)
def test_is_base_definition(name, type_, expected):
    assert is_base_definition(name, type_) is expected


def test_profile_is_skipped():
    raw = structure_definition("USCoreIndividual", "resource", type_="Patient")

    assert parse_structure_definition(raw) is None


def test_differential_is_used_without_snapshot():
    raw = structure_definition(
        "Basic", "resource", [element("Basic.code", "CodeableConcept")], view="differential"
    )

    assert list(parse_structure_definition(raw).fields) == ["code"]


def test_missing_snapshot():
    raw = structure_definition("Basic", "resource", view=None)

    with pytest.raises(MissingSnapshot):
        parse_structure_definition(raw)


def test_missing_parent_element():
    raw = structure_definition("Patient", "resource", [element("Patient.contact.name", "HumanName")])

    with pytest.raises(StructuralViolation) as e:
        parse_structure_definition(raw)

    assert e.value.segment == "contact"
    assert "Expected Element/BackboneElement at: contact" in str(e.value)


def test_nesting_below_primitive():
    raw = structure_definition(
        "Patient",
        "resource",
        [element("Patient.gender", "code"), element("Patient.gender.extra", "string")],
    )

    with pytest.raises(StructuralViolation):
        parse_structure_definition(raw)


def test_type_without_code():
    raw = structure_definition("Patient", "resource", [element("Patient.name")])
    raw["snapshot"]["element"][1]["type"] = [{"targetProfile": [FHIR + "Organization"]}]

    with pytest.raises(SchemaError):
        parse_structure_definition(raw)


def test_invalid_structure_definition():
    raw = patient()
    raw["abstract"] = "maybe"

    with pytest.raises(InvalidStructureDefinition):
        parse_structure_definition(raw)


def test_parse_valueset_map():
    valuesets = parse_valueset_map(terminologies())

    assert set(valuesets) == {GENDER_VS, OBSERVATION_STATUS_VS}
    assert [c.code for c in valuesets[GENDER_VS].concepts] == ["male", "female"]


def test_valueset_concepts_from_code_system():
    valueset = parse_valueset_map(terminologies())[OBSERVATION_STATUS_VS]

    assert [c.code for c in valueset.concepts] == ["registered", "final", "amended", "corrected"]


def test_valueset_without_url():
    with pytest.raises(InvalidValueSet):
        parse_valueset({"resourceType": "ValueSet", "status": "active"})


def test_get_code_systems():
    raw = {
        "compose": {
            "include": [{"system": "a"}, {"system": "b"}, {"system": "a"}],
            "exclude": [{"system": "b"}],
        }
    }

    assert get_code_systems(raw) == ["a"]


def test_get_valuesets_url():
    resource = parse_structure_definition(patient())

    assert get_valuesets_url(resource) == [GENDER_VS]
    assert get_valuesets_url(None) == []
