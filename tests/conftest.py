import pytest

from builders import core_definitions, terminologies
from fhir_mapper.structure_definition import parse_structure_definition, parse_valueset_map
from fhir_mapper.type_environment import TypeEnvironment


@pytest.fixture
def type_map():
    resources = (parse_structure_definition(raw) for raw in core_definitions())
    return {resource.url: resource for resource in resources if resource is not None}


@pytest.fixture
def valueset_map():
    return parse_valueset_map(terminologies())


@pytest.fixture
def type_env(type_map, valueset_map):
    return TypeEnvironment(type_map, valueset_map)
