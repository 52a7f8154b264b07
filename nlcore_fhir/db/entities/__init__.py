from nlcore_fhir.db.entities import (  # noqa: F401
    allergy_intolerance,
    audit_log,
    care_relationship,
    condition,
    encounter,
    medication_request,
    observation,
    organization,
    patient,
    practitioner,
    tenant,
    user_mapping,
)
