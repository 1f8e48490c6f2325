"""Names of the types defined by the FHIR R4 core specification.

Derived from ``CodeSystem/resource-types`` and ``CodeSystem/data-types``.
"""

FHIR_BASE_URL = "http://hl7.org/fhir/StructureDefinition/"

FHIR_RESOURCE_TYPES: frozenset[str] = frozenset(
    [
        "Account", "ActivityDefinition", "AdverseEvent", "AllergyIntolerance",
        "Appointment", "AppointmentResponse", "AuditEvent", "Basic", "Binary",
        "BiologicallyDerivedProduct", "BodyStructure", "Bundle",
        "CapabilityStatement", "CarePlan", "CareTeam", "CatalogEntry",
        "ChargeItem", "ChargeItemDefinition", "Claim", "ClaimResponse",
        "ClinicalImpression", "CodeSystem", "Communication",
        "CommunicationRequest", "CompartmentDefinition", "Composition",
        "ConceptMap", "Condition", "Consent", "Contract", "Coverage",
        "CoverageEligibilityRequest", "CoverageEligibilityResponse",
        "DetectedIssue", "Device", "DeviceDefinition", "DeviceMetric",
        "DeviceRequest", "DeviceUseStatement", "DiagnosticReport",
        "DocumentManifest", "DocumentReference", "DomainResource",
        "EffectEvidenceSynthesis", "Encounter", "Endpoint",
        "EnrollmentRequest", "EnrollmentResponse", "EpisodeOfCare",
        "EventDefinition", "Evidence", "EvidenceVariable", "ExampleScenario",
        "ExplanationOfBenefit", "FamilyMemberHistory", "Flag", "Goal",
        "GraphDefinition", "Group", "GuidanceResponse", "HealthcareService",
        "ImagingStudy", "Immunization", "ImmunizationEvaluation",
        "ImmunizationRecommendation", "ImplementationGuide", "InsurancePlan",
        "Invoice", "Library", "Linkage", "List", "Location", "Measure",
        "MeasureReport", "Media", "Medication", "MedicationAdministration",
        "MedicationDispense", "MedicationKnowledge", "MedicationRequest",
        "MedicationStatement", "MedicinalProduct",
        "MedicinalProductAuthorization", "MedicinalProductContraindication",
        "MedicinalProductIndication", "MedicinalProductIngredient",
        "MedicinalProductInteraction", "MedicinalProductManufactured",
        "MedicinalProductPackaged", "MedicinalProductPharmaceutical",
        "MedicinalProductUndesirableEffect", "MessageDefinition",
        "MessageHeader", "MolecularSequence", "NamingSystem",
        "NutritionOrder", "Observation", "ObservationDefinition",
        "OperationDefinition", "OperationOutcome", "Organization",
        "OrganizationAffiliation", "Parameters", "Patient", "PaymentNotice",
        "PaymentReconciliation", "Person", "PlanDefinition", "Practitioner",
        "PractitionerRole", "Procedure", "Provenance", "Questionnaire",
        "QuestionnaireResponse", "RelatedPerson", "RequestGroup",
        "ResearchDefinition", "ResearchElementDefinition", "ResearchStudy",
        "ResearchSubject", "Resource", "RiskAssessment", "RiskEvidenceSynthesis",
        "Schedule", "SearchParameter", "ServiceRequest", "Slot", "Specimen",
        "SpecimenDefinition", "StructureDefinition", "StructureMap",
        "Subscription", "Substance", "SubstanceNucleicAcid",
        "SubstancePolymer", "SubstanceProtein",
        "SubstanceReferenceInformation", "SubstanceSourceMaterial",
        "SubstanceSpecification", "SupplyDelivery", "SupplyRequest", "Task",
        "TerminologyCapabilities", "TestReport", "TestScript", "ValueSet",
        "VerificationResult", "VisionPrescription",
    ]
)

FHIR_DATA_TYPES: frozenset[str] = frozenset(
    [
        "Address", "Age", "Annotation", "Attachment", "BackboneElement",
        "CodeableConcept", "Coding", "ContactDetail", "ContactPoint",
        "Contributor", "Count", "DataRequirement", "Distance", "Dosage",
        "Duration", "Element", "ElementDefinition", "Expression", "Extension",
        "HumanName", "Identifier", "MarketingStatus", "Meta", "Money",
        "MoneyQuantity", "Narrative", "ParameterDefinition", "Period",
        "Population", "ProdCharacteristic", "ProductShelfLife", "Quantity",
        "Range", "Ratio", "Reference", "RelatedArtifact", "SampledData",
        "Signature", "SimpleQuantity", "SubstanceAmount", "Timing",
        "TriggerDefinition", "UsageContext", "base64Binary", "boolean",
        "canonical", "code", "date", "dateTime", "decimal", "id", "instant",
        "integer", "markdown", "oid", "positiveInt", "string", "time",
        "unsignedInt", "uri", "url", "uuid", "xhtml",
    ]
)

FHIRPATH_SYSTEM_PREFIX = "http://hl7.org/fhirpath/System."

FHIRPATH_SYSTEM_TYPES: dict[str, str] = {
    "Boolean": "boolean",
    "String": "string",
    "Integer": "integer",
    "Decimal": "decimal",
    "Date": "date",
    "DateTime": "dateTime",
    "Time": "time",
}


def is_defined_type(name: str) -> bool:
    return name in FHIR_RESOURCE_TYPES or name in FHIR_DATA_TYPES


def canonical_url(name: str) -> str:
    return f"{FHIR_BASE_URL}{name}"


def normalize_type_code(code: str) -> str:
    """Maps FHIRPath system types (``System.String``) onto FHIR primitives."""
    if code.startswith(FHIRPATH_SYSTEM_PREFIX):
        return FHIRPATH_SYSTEM_TYPES.get(code[len(FHIRPATH_SYSTEM_PREFIX):], code)
    return code
