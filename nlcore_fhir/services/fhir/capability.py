from datetime import datetime, timezone
from typing import Any, Dict, List

from fhir.resources.R4B.capabilitystatement import CapabilityStatement

from nlcore_fhir.models.fhir.types import FHIR_VERSION, NL_CORE_PROFILES
from nlcore_fhir.services.fhir.resources.base import ResourceMapper
from nlcore_fhir.services.fhir.response import format_instant


SERVER_VERSION = "1.0.0"

INTERACTIONS = ["read", "search-type", "create", "update", "delete"]

RESULT_SEARCH_PARAMETERS = [
    {"name": "_count", "type": "number", "documentation": "Number of results per page"},
    {"name": "_offset", "type": "number", "documentation": "Starting offset of the page"},
    {"name": "_sort", "type": "string", "documentation": "Sort order, e.g. -_lastUpdated"},
]

OBSERVATION_PROFILES = ["BloodPressure", "BodyWeight", "BodyHeight", "Observation"]


class CapabilityService:
    def __init__(
        self,
        mappers: Dict[str, ResourceMapper],
        server_name: str,
        publisher: str,
        publisher_url: str,
    ) -> None:
        self.__mappers = mappers
        self.__server_name = server_name
        self.__publisher = publisher
        self.__publisher_url = publisher_url

    def get_capability_statement(self, base_url: str) -> Dict[str, Any]:
        """
        Returns the CapabilityStatement of this server. The statement is
        validated against the FHIR model before it is handed out.
        """
        now = datetime.now(timezone.utc)
        statement: Dict[str, Any] = {
            "resourceType": "CapabilityStatement",
            "id": "nlcore-fhir-server",
            "meta": {"lastUpdated": format_instant(now)},
            "url": f"{base_url}/metadata",
            "version": SERVER_VERSION,
            "name": "NlCoreFhirServer",
            "title": self.__server_name,
            "status": "active",
            "experimental": False,
            "date": now.date().isoformat(),
            "publisher": self.__publisher,
            "contact": [
                {
                    "name": f"{self.__publisher} Support",
                    "telecom": [{"system": "url", "value": self.__publisher_url}],
                }
            ],
            "description": (
                "FHIR R4 server implementing the Dutch ZIB "
                "(Zorginformatiebouwstenen) profiles via nl-core."
            ),
            "jurisdiction": [
                {
                    "coding": [
                        {
                            "system": "urn:iso:std:iso:3166",
                            "code": "NL",
                            "display": "Netherlands",
                        }
                    ]
                }
            ],
            "kind": "instance",
            "software": {"name": self.__server_name, "version": SERVER_VERSION},
            "implementation": {
                "description": f"{self.__server_name} - Dutch ZIB FHIR R4 implementation",
                "url": base_url,
            },
            "fhirVersion": FHIR_VERSION,
            "format": ["application/fhir+json", "application/json"],
            "implementationGuide": [
                "http://nictiz.nl/fhir/ImplementationGuide/nictiz.fhir.nl.r4.nl-core"
            ],
            "rest": [
                {
                    "mode": "server",
                    "documentation": "RESTful FHIR server supporting Dutch ZIB profiles",
                    "security": {
                        "cors": True,
                        "service": [
                            {
                                "coding": [
                                    {
                                        "system": "http://terminology.hl7.org/CodeSystem/restful-security-service",
                                        "code": "SMART-on-FHIR",
                                        "display": "SMART-on-FHIR",
                                    }
                                ],
                                "text": "SMART on FHIR authorization via the authentication gateway",
                            }
                        ],
                        "description": (
                            "Authentication is handled by the gateway. Session "
                            "cookies, API keys and Bearer tokens are supported."
                        ),
                    },
                    "resource": [
                        self.__resource_definition(mapper)
                        for mapper in self.__mappers.values()
                    ],
                    "searchParam": [
                        {
                            "name": "_id",
                            "type": "token",
                            "documentation": "Logical id of the resource",
                        },
                        {
                            "name": "_lastUpdated",
                            "type": "date",
                            "documentation": "When the resource last changed",
                        },
                    ]
                    + RESULT_SEARCH_PARAMETERS,
                }
            ],
        }

        CapabilityStatement.model_validate(statement)
        return statement

    @staticmethod
    def __resource_definition(mapper: ResourceMapper) -> Dict[str, Any]:
        profile = NL_CORE_PROFILES[mapper.resource_type]
        supported: List[str] = [profile]
        if mapper.resource_type == "Observation":
            supported = [NL_CORE_PROFILES[name] for name in OBSERVATION_PROFILES]

        return {
            "type": mapper.resource_type,
            "profile": profile,
            "supportedProfile": supported,
            "documentation": mapper.description,
            "interaction": [{"code": code} for code in INTERACTIONS],
            "versioning": "versioned",
            "readHistory": False,
            "updateCreate": False,
            "conditionalCreate": False,
            "conditionalUpdate": False,
            "conditionalDelete": "not-supported",
            "searchParam": [
                {"name": p.name, "type": p.type, "documentation": p.description}
                for p in mapper.all_search_parameters
            ],
        }
