import pytest
from fastapi.testclient import TestClient

from builders import GENDER_VS, patient, structure_definition
from fhir_mapper import serve
from fhir_mapper.config import MapperConfig


@pytest.fixture
def client(monkeypatch, type_env):
    monkeypatch.setattr(serve, "type_environment", type_env, raising=False)
    monkeypatch.setattr(serve, "config", MapperConfig(), raising=False)
    return TestClient(serve.app)


def _graph(type_env, target="1"):
    return {
        "name": "PatientToObservation",
        "groups": [
            {
                "name": "Main",
                "nodes": [
                    {
                        "id": "0",
                        "type": "sourceNode",
                        "data": {
                            "type": type_env.get_type("Patient").model_dump(mode="json"),
                            "alias": "patient_0",
                        },
                    },
                    {
                        "id": "1",
                        "type": "targetNode",
                        "data": {
                            "type": type_env.get_type("Observation").model_dump(mode="json"),
                            "alias": "observation_1",
                        },
                    },
                ],
                "edges": [
                    {
                        "id": "e1",
                        "source": "0",
                        "target": target,
                        "sourceHandle": "id",
                        "targetHandle": "subject",
                    }
                ],
            }
        ],
    }


def test_ping(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == "pong"


def test_get_type(client):
    response = client.get("/types/Patient")

    assert response.status_code == 200
    assert response.json()["name"] == "Patient"
    assert response.json()["kind"] == "resource"


def test_get_unknown_type(client):
    response = client.get("/types/Unknown")

    assert response.status_code == 404
    assert "error" in response.json()


def test_get_type_fields(client):
    response = client.get("/types/Patient/fields")

    assert response.status_code == 200
    assert [f["name"] for f in response.json()["fields"]][:3] == ["id", "name", "gender"]


def test_get_implementations(client):
    response = client.get("/types/DomainResource/implementations")

    assert response.status_code == 200
    assert [r["name"] for r in response.json()["resources"]] == ["Patient", "Observation"]


def test_resolve_path(client):
    response = client.post("/types/Patient/resolve", json={"path": ["contact", "name", "family"]})

    assert response.status_code == 200
    assert response.json()["type"] == "string"
    assert response.json()["field"]["kind"] == "primitive"


def test_resolve_invalid_path(client):
    response = client.post("/types/Patient/resolve", json={"path": ["gender", "text"]})

    assert response.status_code == 404


def test_valueset_options(client):
    response = client.get("/valuesets/options", params={"url": GENDER_VS})

    assert response.status_code == 200
    assert [o["code"] for o in response.json()["options"]] == ["male", "female"]


def test_unknown_valueset(client):
    response = client.get("/valuesets/options", params={"url": "http://example.org/vs"})

    assert response.status_code == 404


def test_post_structure_definition(client):
    response = client.post("/structure-definition", json=patient())

    assert response.status_code == 200
    assert response.json()["url"] == "http://hl7.org/fhir/StructureDefinition/Patient"


def test_post_profile(client):
    profile = structure_definition("USCoreIndividual", "resource", type_="Patient")

    response = client.post("/structure-definition", json=profile)

    assert response.status_code == 422


def test_post_structure_definition_without_snapshot(client):
    response = client.post("/structure-definition", json=structure_definition("Basic", "resource", view=None))

    assert response.status_code == 422
    assert "snapshot" in response.json()["error"]


def test_completions(client):
    response = client.post(
        "/completions",
        json={"scope": {"patient": "Patient"}, "variable": "patient", "path": ["contact"]},
    )

    assert response.status_code == 200
    assert [o["label"] for o in response.json()["options"]] == ["name", "gender"]


def test_code_completions(client):
    response = client.post(
        "/completions",
        json={"scope": {"patient": "Patient"}, "variable": "patient", "path": ["gender"], "codes": True},
    )

    assert [o["label"] for o in response.json()["options"]] == ["male", "female"]


def test_validation(client):
    response = client.post(
        "/validation",
        json={"scope": {}, "transform": "frobnicate", "arg_count": 1, "variable": "nobody"},
    )

    assert response.status_code == 200
    assert len(response.json()["diagnostics"]) == 2


def test_template(client, type_env):
    response = client.post("/template", json=_graph(type_env))

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert '  patient_0.id -> observation_1.subject = patient_0.id "copy";' in response.text.splitlines()


def test_template_with_stale_node(client, type_env):
    response = client.post("/template", json=_graph(type_env, target="42"))

    assert response.status_code == 422
    assert response.json() == {"error": "Node with id '42' not found"}
