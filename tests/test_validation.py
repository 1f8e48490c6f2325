from fhir_mapper.language import check_property_chain, check_transform_call
from fhir_mapper.model.completion import Severity
from fhir_mapper.scope_environment import ScopeEnvironment


def test_allowed_transform():
    assert check_transform_call("copy", 1) == []
    assert check_transform_call("uuid", 0) == []


def test_unknown_transform():
    diagnostics = check_transform_call("frobnicate", 1)

    assert len(diagnostics) == 1
    assert diagnostics[0].severity == Severity.ERROR
    assert 'Transform "frobnicate" is not allowed' in diagnostics[0].message


def test_uuid_with_arguments():
    diagnostics = check_transform_call("uuid", 2)

    assert [d.message for d in diagnostics] == ['Transform "uuid" takes 0 parameters.']


def test_valid_property_chain(type_env):
    scope = ScopeEnvironment({"patient": "Patient"})

    assert check_property_chain(type_env, scope, "patient") == []
    assert check_property_chain(type_env, scope, "patient", ["contact", "name", "family"]) == []


def test_invalid_property_chain(type_env):
    scope = ScopeEnvironment({"patient": "Patient"})

    diagnostics = check_property_chain(type_env, scope, "patient", ["contact", "unknown"])

    assert len(diagnostics) == 1
    assert diagnostics[0].severity == Severity.ERROR
    assert "contact.unknown" in diagnostics[0].message


def test_unknown_variable(type_env):
    diagnostics = check_property_chain(type_env, ScopeEnvironment(), "nobody", ["id"])

    assert [d.severity for d in diagnostics] == [Severity.ERROR]


def test_variable_of_unloaded_type(type_env):
    scope = ScopeEnvironment({"org": "Organization"})

    diagnostics = check_property_chain(type_env, scope, "org", ["name"])

    assert [d.severity for d in diagnostics] == [Severity.WARNING]
