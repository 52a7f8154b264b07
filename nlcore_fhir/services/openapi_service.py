from typing import Any, Dict, List

from nlcore_fhir.models.fhir.types import FHIR_VERSION, NL_CORE_PROFILES, DutchCodeSystems
from nlcore_fhir.services.fhir.resources.base import ResourceMapper, SearchParameter

FHIR_JSON = "application/fhir+json"

DESCRIPTION = f"""
## Dutch ZIB FHIR R4 Server

FHIR R4 ({FHIR_VERSION}) access to healthcare data following the Dutch ZIB
(Zorginformatiebouwstenen) standards via the Nictiz nl-core profiles.

### Authentication
All endpoints except `/metadata` require authentication by the gateway with
a session cookie, an `X-Api-Key` header or a Bearer token. The `X-Tenant-ID`
header selects the tenant.

### Dutch code systems
- **BSN**: `{DutchCodeSystems.BSN.value}`
- **AGB**: `{DutchCodeSystems.AGB.value}`
- **BIG**: `{DutchCodeSystems.BIG.value}`
- **URA**: `{DutchCodeSystems.URA.value}`

### Search syntax
- Token parameters accept `system|value` or just `value`
- Date parameters accept the prefixes `eq`, `ne`, `lt`, `le`, `gt`, `ge`, `sa`, `eb`
- String parameters match case insensitive on a part of the value
""".strip()

PAGINATION_PARAMETERS: List[Dict[str, Any]] = [
    {
        "name": "_count",
        "in": "query",
        "description": "Number of results per page",
        "schema": {"type": "integer", "format": "int32"},
        "example": 20,
    },
    {
        "name": "_offset",
        "in": "query",
        "description": "Starting offset for pagination",
        "schema": {"type": "integer", "format": "int32"},
        "example": 0,
    },
    {
        "name": "_sort",
        "in": "query",
        "description": "Sort order, prefix with - for descending",
        "schema": {"type": "string"},
        "example": "-_lastUpdated",
    },
]


def _ref(kind: str, name: str) -> Dict[str, str]:
    return {"$ref": f"#/components/{kind}/{name}"}


def _fhir_content(schema: str, example: Any = None) -> Dict[str, Any]:
    media: Dict[str, Any] = {"schema": _ref("schemas", schema)}
    if example is not None:
        media["example"] = example
    return {FHIR_JSON: media}


def _search_parameter(parameter: SearchParameter) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "string"}
    if parameter.type == "number":
        schema = {"type": "integer"}
    return {
        "name": parameter.name,
        "in": "query",
        "description": f"{parameter.description} ({parameter.type})",
        "schema": schema,
    }


class OpenApiService:
    """
    Generates the OpenAPI document of the FHIR API from the registered
    resource mappers.
    """

    def __init__(self, mappers: Dict[str, ResourceMapper], server_name: str) -> None:
        self.__mappers = mappers
        self.__server_name = server_name

    def get_openapi(self, base_url: str) -> Dict[str, Any]:
        spec: Dict[str, Any] = {
            "openapi": "3.0.3",
            "info": {
                "title": f"{self.__server_name} API",
                "description": DESCRIPTION,
                "version": "1.0.0",
            },
            "servers": [
                {
                    "url": f"{base_url}/api/fhir/4_0_1",
                    "description": f"FHIR R4 Server (v{FHIR_VERSION})",
                }
            ],
            "tags": [
                {
                    "name": "Capability",
                    "description": "Server capability and metadata",
                    "externalDocs": {
                        "description": "FHIR CapabilityStatement",
                        "url": "https://hl7.org/fhir/R4/capabilitystatement.html",
                    },
                }
            ],
            "paths": {
                "/metadata": {
                    "get": {
                        "tags": ["Capability"],
                        "summary": "Get CapabilityStatement",
                        "description": "Returns the CapabilityStatement of the server. No authentication required.",
                        "operationId": "getCapabilityStatement",
                        "responses": {
                            "200": {
                                "description": "CapabilityStatement resource",
                                "content": _fhir_content("CapabilityStatement"),
                            }
                        },
                        "security": [],
                    }
                }
            },
            "components": self.__components(),
            "security": [{"ApiKeyAuth": []}, {"SessionCookie": []}, {"BearerAuth": []}],
            "externalDocs": {
                "description": "FHIR R4 Specification",
                "url": "https://hl7.org/fhir/R4/",
            },
        }

        for resource_type, mapper in self.__mappers.items():
            spec["tags"].append(
                {
                    "name": resource_type,
                    "description": mapper.description,
                    "externalDocs": {
                        "description": f"FHIR {resource_type} Resource",
                        "url": f"https://hl7.org/fhir/R4/{resource_type.lower()}.html",
                    },
                }
            )
            spec["components"]["schemas"][resource_type] = self.__resource_schema(mapper)
            spec["paths"][f"/{resource_type}"] = self.__type_paths(mapper)
            spec["paths"][f"/{resource_type}/{{id}}"] = self.__instance_paths(mapper)

        return spec

    @staticmethod
    def __components() -> Dict[str, Any]:
        def outcome_response(description: str) -> Dict[str, Any]:
            return {"description": description, "content": _fhir_content("OperationOutcome")}

        return {
            "securitySchemes": {
                "ApiKeyAuth": {
                    "type": "apiKey",
                    "in": "header",
                    "name": "X-Api-Key",
                    "description": "API key for server-to-server authentication",
                },
                "SessionCookie": {
                    "type": "apiKey",
                    "in": "cookie",
                    "name": "session",
                    "description": "Session cookie for web application authentication",
                },
                "BearerAuth": {
                    "type": "http",
                    "scheme": "bearer",
                    "description": "Bearer token issued by the gateway",
                },
            },
            "parameters": {
                "TenantId": {
                    "name": "X-Tenant-ID",
                    "in": "header",
                    "required": False,
                    "description": "Tenant identifier, super admins may use it to select any tenant",
                    "schema": {"type": "string"},
                    "example": "tenant-123",
                },
                "ResourceId": {
                    "name": "id",
                    "in": "path",
                    "required": True,
                    "description": "Logical id of the resource",
                    "schema": {"type": "string"},
                },
            },
            "schemas": {
                "CapabilityStatement": {
                    "type": "object",
                    "description": "FHIR CapabilityStatement resource",
                    "properties": {
                        "resourceType": {"type": "string", "enum": ["CapabilityStatement"]},
                        "status": {"type": "string"},
                        "fhirVersion": {"type": "string", "example": FHIR_VERSION},
                    },
                },
                "Bundle": {
                    "type": "object",
                    "description": "FHIR Bundle containing search results",
                    "properties": {
                        "resourceType": {"type": "string", "enum": ["Bundle"]},
                        "type": {"type": "string", "enum": ["searchset"]},
                        "total": {"type": "integer"},
                        "link": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "relation": {"type": "string"},
                                    "url": {"type": "string"},
                                },
                            },
                        },
                        "entry": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "fullUrl": {"type": "string"},
                                    "resource": {"type": "object"},
                                },
                            },
                        },
                    },
                },
                "OperationOutcome": {
                    "type": "object",
                    "description": "FHIR OperationOutcome for error responses",
                    "properties": {
                        "resourceType": {"type": "string", "enum": ["OperationOutcome"]},
                        "issue": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "properties": {
                                    "severity": {
                                        "type": "string",
                                        "enum": ["fatal", "error", "warning", "information"],
                                    },
                                    "code": {"type": "string"},
                                    "diagnostics": {"type": "string"},
                                },
                            },
                        },
                    },
                },
            },
            "responses": {
                "BadRequest": outcome_response("Invalid request"),
                "Unauthorized": outcome_response("Authentication required"),
                "Forbidden": outcome_response("Access denied, insufficient permissions"),
                "NotFound": outcome_response("Resource not found"),
                "Conflict": outcome_response("Resource already exists or version conflict"),
            },
        }

    @staticmethod
    def __resource_schema(mapper: ResourceMapper) -> Dict[str, Any]:
        return {
            "type": "object",
            "description": mapper.description,
            "properties": {
                "resourceType": {"type": "string", "enum": [mapper.resource_type]},
                "id": {"type": "string", "description": "Logical id of the resource"},
                "meta": {
                    "type": "object",
                    "properties": {
                        "versionId": {"type": "string"},
                        "lastUpdated": {"type": "string", "format": "date-time"},
                        "profile": {
                            "type": "array",
                            "items": {"type": "string"},
                            "example": [NL_CORE_PROFILES[mapper.resource_type]],
                        },
                    },
                },
            },
            "example": mapper.example,
        }

    @staticmethod
    def __type_paths(mapper: ResourceMapper) -> Dict[str, Any]:
        name = mapper.resource_type
        profile = NL_CORE_PROFILES[name]
        return {
            "get": {
                "tags": [name],
                "summary": f"Search {name} resources",
                "description": f"Search for {name} resources.\n\n**Profile**: `{profile}`",
                "operationId": f"search{name}",
                "parameters": [_ref("parameters", "TenantId")]
                + [_search_parameter(p) for p in mapper.all_search_parameters]
                + PAGINATION_PARAMETERS,
                "responses": {
                    "200": {
                        "description": f"Bundle of matching {name} resources",
                        "content": _fhir_content("Bundle"),
                    },
                    "401": _ref("responses", "Unauthorized"),
                    "403": _ref("responses", "Forbidden"),
                },
            },
            "post": {
                "tags": [name],
                "summary": f"Create {name}",
                "description": f"Create a new {name} resource.\n\n**Profile**: `{profile}`",
                "operationId": f"create{name}",
                "parameters": [_ref("parameters", "TenantId")],
                "requestBody": {
                    "required": True,
                    "description": f"{name} resource to create",
                    "content": _fhir_content(name, mapper.example),
                },
                "responses": {
                    "201": {
                        "description": f"{name} created",
                        "headers": {
                            "Location": {
                                "description": "URL of the created resource",
                                "schema": {"type": "string"},
                            },
                            "ETag": {
                                "description": "Version identifier",
                                "schema": {"type": "string"},
                            },
                        },
                        "content": _fhir_content(name),
                    },
                    "400": _ref("responses", "BadRequest"),
                    "401": _ref("responses", "Unauthorized"),
                    "403": _ref("responses", "Forbidden"),
                    "409": _ref("responses", "Conflict"),
                },
            },
        }

    @staticmethod
    def __instance_paths(mapper: ResourceMapper) -> Dict[str, Any]:
        name = mapper.resource_type
        parameters = [_ref("parameters", "TenantId"), _ref("parameters", "ResourceId")]
        version_headers = {
            "ETag": {"description": "Version identifier", "schema": {"type": "string"}},
            "Last-Modified": {
                "description": "Last modification timestamp",
                "schema": {"type": "string"},
            },
        }
        return {
            "get": {
                "tags": [name],
                "summary": f"Read {name}",
                "operationId": f"read{name}",
                "parameters": parameters,
                "responses": {
                    "200": {
                        "description": f"{name} resource",
                        "headers": version_headers,
                        "content": _fhir_content(name),
                    },
                    "401": _ref("responses", "Unauthorized"),
                    "403": _ref("responses", "Forbidden"),
                    "404": _ref("responses", "NotFound"),
                },
            },
            "put": {
                "tags": [name],
                "summary": f"Update {name}",
                "operationId": f"update{name}",
                "parameters": parameters
                + [
                    {
                        "name": "If-Match",
                        "in": "header",
                        "required": False,
                        "description": 'Expected current version, e.g. W/"1"',
                        "schema": {"type": "string"},
                    }
                ],
                "requestBody": {
                    "required": True,
                    "description": f"Updated {name} resource",
                    "content": _fhir_content(name, mapper.example),
                },
                "responses": {
                    "200": {
                        "description": f"{name} updated",
                        "headers": version_headers,
                        "content": _fhir_content(name),
                    },
                    "400": _ref("responses", "BadRequest"),
                    "401": _ref("responses", "Unauthorized"),
                    "403": _ref("responses", "Forbidden"),
                    "404": _ref("responses", "NotFound"),
                    "409": _ref("responses", "Conflict"),
                },
            },
            "delete": {
                "tags": [name],
                "summary": f"Delete {name}",
                "description": "Deactivates the resource, it is no longer returned by read or search.",
                "operationId": f"delete{name}",
                "parameters": parameters,
                "responses": {
                    "204": {"description": f"{name} deleted"},
                    "401": _ref("responses", "Unauthorized"),
                    "403": _ref("responses", "Forbidden"),
                    "404": _ref("responses", "NotFound"),
                },
            },
        }
