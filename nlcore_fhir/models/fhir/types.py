from enum import Enum

FHIR_VERSION = "4.0.1"

SUPPORTED_VERSIONS = ["4_0_1", "R4"]

FHIR_CONTENT_TYPE = "application/fhir+json; charset=utf-8"


class FhirResources(Enum):
    PATIENT = "Patient"
    PRACTITIONER = "Practitioner"
    ORGANIZATION = "Organization"
    OBSERVATION = "Observation"
    CONDITION = "Condition"
    ALLERGY_INTOLERANCE = "AllergyIntolerance"
    MEDICATION_REQUEST = "MedicationRequest"
    ENCOUNTER = "Encounter"


class PatientLinkedResources(Enum):
    OBSERVATION = "Observation"
    CONDITION = "Condition"
    ALLERGY_INTOLERANCE = "AllergyIntolerance"
    MEDICATION_REQUEST = "MedicationRequest"
    ENCOUNTER = "Encounter"


class DutchCodeSystems(str, Enum):
    BSN = "http://fhir.nl/fhir/NamingSystem/bsn"
    AGB = "http://fhir.nl/fhir/NamingSystem/agb-z"
    BIG = "http://fhir.nl/fhir/NamingSystem/big"
    UZI = "http://fhir.nl/fhir/NamingSystem/uzi"
    URA = "http://fhir.nl/fhir/NamingSystem/ura"
    SNOMED_CT = "http://snomed.info/sct"
    LOINC = "http://loinc.org"
    UCUM = "http://unitsofmeasure.org"


OBSERVATION_CATEGORY_SYSTEM = "http://terminology.hl7.org/CodeSystem/observation-category"

_NICTIZ = "http://nictiz.nl/fhir/StructureDefinition"

NL_CORE_PROFILES = {
    "Patient": f"{_NICTIZ}/nl-core-Patient",
    "Practitioner": f"{_NICTIZ}/nl-core-HealthProfessional-Practitioner",
    "Organization": f"{_NICTIZ}/nl-core-HealthcareProvider-Organization",
    "Observation": f"{_NICTIZ}/nl-core-LaboratoryTestResult",
    "BloodPressure": f"{_NICTIZ}/nl-core-BloodPressure",
    "BodyWeight": f"{_NICTIZ}/nl-core-BodyWeight",
    "BodyHeight": f"{_NICTIZ}/nl-core-BodyHeight",
    "Condition": f"{_NICTIZ}/nl-core-Problem",
    "AllergyIntolerance": f"{_NICTIZ}/nl-core-AllergyIntolerance",
    "MedicationRequest": f"{_NICTIZ}/nl-core-MedicationAgreement",
    "Encounter": f"{_NICTIZ}/nl-core-Encounter",
}


class VitalSignsCodes(str, Enum):
    BLOOD_PRESSURE = "85354-9"
    SYSTOLIC = "8480-6"
    DIASTOLIC = "8462-4"
    BODY_WEIGHT = "29463-7"
    BODY_HEIGHT = "8302-2"
    HEART_RATE = "8867-4"
    BODY_TEMPERATURE = "8310-5"
    RESPIRATORY_RATE = "9279-1"
    OXYGEN_SATURATION = "2708-6"


def is_supported_resource(resource_type: str) -> bool:
    return any(resource_type == r.value for r in FhirResources)
