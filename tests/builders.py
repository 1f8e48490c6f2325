"""Small hand-written FHIR definitions used across the tests."""

FHIR = "http://hl7.org/fhir/StructureDefinition/"
FHIRPATH_STRING = "http://hl7.org/fhirpath/System.String"

GENDER_VS = "http://hl7.org/fhir/ValueSet/administrative-gender"
OBSERVATION_STATUS_VS = "http://hl7.org/fhir/ValueSet/observation-status"
OBSERVATION_STATUS_CS = "http://hl7.org/fhir/observation-status"


def element(path, *codes, min=0, max="*", binding=None, target_profile=None):
    elem = {"id": path, "path": path, "min": min, "max": max}
    if codes:
        elem["type"] = [{"code": code} for code in codes]
    if target_profile is not None:
        elem["type"][0]["targetProfile"] = target_profile
    if binding is not None:
        elem["binding"] = binding
    return elem


def required(url):
    return {"strength": "required", "valueSet": url}


def structure_definition(
    name,
    kind,
    elements=(),
    *,
    base=None,
    abstract=False,
    type_=None,
    view="snapshot",
):
    type_ = type_ or name
    sd = {
        "resourceType": "StructureDefinition",
        "id": name,
        "url": FHIR + name,
        "name": name,
        "status": "active",
        "kind": kind,
        "abstract": abstract,
        "type": type_,
    }
    if base is not None:
        sd["baseDefinition"] = FHIR + base
        sd["derivation"] = "specialization"
    if view is not None:
        sd[view] = {"element": [element(type_), *elements]}
    return sd


def patient():
    return structure_definition(
        "Patient",
        "resource",
        [
            element("Patient.id", FHIRPATH_STRING, max="1"),
            element("Patient.name", "HumanName"),
            element("Patient.gender", "code", max="1", binding=required(GENDER_VS + "|4.0.1")),
            element("Patient.contact", "BackboneElement"),
            element("Patient.contact.name", "HumanName", max="1"),
            element("Patient.contact.gender", "code", max="1", binding=required(GENDER_VS)),
            element(
                "Patient.managingOrganization",
                "Reference",
                max="1",
                target_profile=[FHIR + "Organization"],
            ),
            element("Patient.deceased[x]", "boolean", "dateTime", max="1"),
        ],
        base="DomainResource",
    )


def observation():
    return structure_definition(
        "Observation",
        "resource",
        [
            element("Observation.id", FHIRPATH_STRING, max="1"),
            element(
                "Observation.status", "code", min=1, max="1", binding=required(OBSERVATION_STATUS_VS)
            ),
            element("Observation.subject", "Reference", max="1", target_profile=[FHIR + "Patient"]),
            element("Observation.value[x]", "Quantity", "string", "CodeableConcept", max="1"),
            element("Observation.component", "BackboneElement"),
            element("Observation.component.code", "CodeableConcept", min=1, max="1"),
        ],
        base="DomainResource",
    )


def core_definitions():
    """A minimal but consistent slice of the FHIR type system."""
    return [
        structure_definition("Resource", "resource", [element("Resource.id", FHIRPATH_STRING)], abstract=True),
        structure_definition("DomainResource", "resource", base="Resource", abstract=True),
        patient(),
        observation(),
        structure_definition("Element", "complex-type", [element("Element.id", FHIRPATH_STRING)], abstract=True),
        structure_definition("BackboneElement", "complex-type", base="Element", abstract=True),
        structure_definition(
            "HumanName",
            "complex-type",
            [element("HumanName.family", "string", max="1"), element("HumanName.given", "string")],
            base="Element",
        ),
        structure_definition(
            "Reference",
            "complex-type",
            [element("Reference.reference", "string", max="1"), element("Reference.display", "string", max="1")],
            base="Element",
        ),
        structure_definition(
            "CodeableConcept",
            "complex-type",
            [element("CodeableConcept.text", "string", max="1")],
            base="Element",
        ),
        structure_definition(
            "Quantity",
            "complex-type",
            [element("Quantity.value", "decimal", max="1"), element("Quantity.unit", "string", max="1")],
            base="Element",
        ),
        structure_definition("string", "primitive-type", base="Element", view=None),
        structure_definition("code", "primitive-type", base="string", view=None),
        structure_definition("boolean", "primitive-type", base="Element", view=None),
        structure_definition("dateTime", "primitive-type", base="Element", view=None),
        structure_definition("decimal", "primitive-type", base="Element", view=None),
    ]


def gender_valueset():
    return {
        "resourceType": "ValueSet",
        "id": "administrative-gender",
        "url": GENDER_VS,
        "status": "active",
        "compose": {
            "include": [
                {
                    "system": "http://hl7.org/fhir/administrative-gender",
                    "concept": [
                        {"code": "male", "display": "Male"},
                        {"code": "female", "display": "Female"},
                    ],
                }
            ]
        },
    }


def observation_status_valueset():
    return {
        "resourceType": "ValueSet",
        "id": "observation-status",
        "url": OBSERVATION_STATUS_VS,
        "status": "active",
        "compose": {"include": [{"system": OBSERVATION_STATUS_CS}]},
    }


def observation_status_codesystem():
    return {
        "resourceType": "CodeSystem",
        "id": "observation-status",
        "url": OBSERVATION_STATUS_CS,
        "status": "active",
        "content": "complete",
        "concept": [
            {"code": "registered", "display": "Registered"},
            {"code": "final", "display": "Final"},
            {
                "code": "amended",
                "display": "Amended",
                "concept": [{"code": "corrected", "display": "Corrected"}],
            },
        ],
    }


def terminologies():
    return {
        raw["url"]: raw
        for raw in (
            gender_valueset(),
            observation_status_valueset(),
            observation_status_codesystem(),
        )
    }
