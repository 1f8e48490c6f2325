import logging
import os
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .code_generation import generate_template
from .config import MapperConfig
from .errors import CompilationError, SchemaError
from .language import (
    check_property_chain,
    check_transform_call,
    complete_codes,
    complete_properties,
    complete_variables,
)
from .metadata import load_type_environment
from .model.completion import CompletionList, DiagnosticList
from .model.error import Error as ErrorModel
from .model.fhir_types import PrimitiveResource, StructuredResource, describe_field_type
from .model.graph import MappingTemplate
from .model.service import (
    CompletionInput,
    FieldList,
    PathInput,
    ResolvedField,
    ResourceList,
    ValidationInput,
    ValueSetOptions,
)
from .scope_environment import ScopeEnvironment
from .structure_definition import parse_structure_definition
from .type_environment import TypeEnvironment

logger = logging.getLogger(__name__)

CONFIG_ENV = "FHIR_MAPPER_CONFIG"

origins = ["http://localhost:5173", "http://127.0.0.1:5173"]
config: MapperConfig
type_environment: TypeEnvironment


def load_config() -> MapperConfig:
    path = os.environ.get(CONFIG_ENV)
    return MapperConfig.from_json(path) if path else MapperConfig()


@asynccontextmanager
async def lifespan(app: FastAPI):
    global config
    global type_environment

    # Set up
    config = load_config()
    type_environment = load_type_environment(config)

    # Let the app do its job
    yield


app = FastAPI(title="FHIR Mapping Composer", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def ping():
    return "pong"


@app.get(
    "/types/{identifier:path}/fields",
    tags=["Types"],
    responses={404: {}},
    response_model_exclude_none=True,
)
async def get_type_fields(identifier: str, response: Response) -> FieldList | ErrorModel:
    global type_environment

    fields = type_environment.get_type_fields(identifier)
    if fields is None:
        response.status_code = 404
        return ErrorModel(error=f"Type '{identifier}' not found or has no fields")

    return FieldList(fields=list(fields.values()))


@app.get(
    "/types/{identifier:path}/implementations",
    tags=["Types"],
    responses={404: {}},
    response_model_exclude_none=True,
)
async def get_implementations(identifier: str, response: Response) -> ResourceList | ErrorModel:
    global type_environment

    if not type_environment.has_type(identifier):
        response.status_code = 404
        return ErrorModel(error=f"Type '{identifier}' not found")

    return ResourceList(resources=type_environment.get_implementations(identifier))


@app.post(
    "/types/{identifier:path}/resolve",
    tags=["Types"],
    responses={404: {}},
    response_model_exclude_none=True,
)
async def post_resolve_path(
    identifier: str, data: PathInput, response: Response
) -> ResolvedField | ErrorModel:
    global type_environment

    field = type_environment.resolve_path_type(identifier, data.path)
    if field is None:
        response.status_code = 404
        return ErrorModel(error=f"Path '{'.'.join(data.path)}' not found on '{identifier}'")

    return ResolvedField(field=field, type=describe_field_type(field))


@app.get(
    "/types/{identifier:path}",
    tags=["Types"],
    responses={404: {}},
    response_model_exclude_none=True,
)
async def get_type(
    identifier: str, response: Response
) -> StructuredResource | PrimitiveResource | ErrorModel:
    global type_environment

    type_ = type_environment.get_type(identifier)
    if type_ is None:
        response.status_code = 404
        return ErrorModel(error=f"Type '{identifier}' not found")

    return type_


@app.get(
    "/valuesets/options",
    tags=["Value sets"],
    responses={404: {}},
)
async def get_valueset_options(url: str, response: Response) -> ValueSetOptions | ErrorModel:
    global type_environment

    if type_environment.get_valueset(url) is None:
        response.status_code = 404
        return ErrorModel(error=f"Value set '{url}' not found")

    return ValueSetOptions(url=url, options=type_environment.get_options(url))


@app.post(
    "/structure-definition",
    tags=["Types"],
    responses={422: {}},
    response_model_exclude_none=True,
)
async def post_structure_definition(
    data: dict[str, Any], response: Response
) -> StructuredResource | PrimitiveResource | ErrorModel:
    try:
        resource = parse_structure_definition(data)

    except SchemaError as e:
        response.status_code = 422
        return ErrorModel.from_except(e)

    if resource is None:
        response.status_code = 422
        return ErrorModel(error=f"StructureDefinition/{data.get('name')} is a constrained profile")

    return resource


@app.post("/completions", tags=["Language"])
async def post_completions(data: CompletionInput) -> CompletionList:
    global type_environment

    scope = ScopeEnvironment(data.scope)

    if data.variable is None:
        options = complete_variables(scope)

    elif data.codes:
        type_ = scope.get(data.variable)
        field = type_environment.resolve_path_type(type_, data.path) if type_ else None
        options = complete_codes(type_environment, field)

    else:
        options = complete_properties(type_environment, scope, data.variable, data.path)

    return CompletionList(options=options)


@app.post("/validation", tags=["Language"])
async def post_validation(data: ValidationInput) -> DiagnosticList:
    global type_environment

    scope = ScopeEnvironment(data.scope)
    diagnostics = []

    if data.transform is not None:
        diagnostics += check_transform_call(data.transform, data.arg_count)

    if data.variable is not None:
        diagnostics += check_property_chain(type_environment, scope, data.variable, data.path)

    return DiagnosticList(diagnostics=diagnostics)


@app.post(
    "/template",
    tags=["Code generation"],
    response_class=PlainTextResponse,
    responses={422: {"model": ErrorModel}},
)
async def post_template(data: MappingTemplate):
    global config
    global type_environment

    try:
        content = generate_template(data, type_env=type_environment, config=config)

    except CompilationError as e:
        return JSONResponse(ErrorModel.from_except(e).model_dump(), status_code=422)

    return PlainTextResponse(content)


def serve():
    settings = load_config()
    logging.basicConfig(
        level=settings.log_level,
        format='%(levelname)s:%(name)s: %(message)s'
    )
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level=settings.log_level.lower())


if __name__ == "__main__":
    serve()
