class InternalURIs:
    API = "/api"
    V1 = API + "/v1"
    AUDIT_SINGLE = V1 + "/audits/single"
    AUDIT_MULTI = V1 + "/audits/multi"
    TRUTH_AUDIT = V1 + "/entities/{entity_id}/truth-audit"
    ENTITY_HALLUCINATIONS = V1 + "/entities/{entity_id}/hallucinations"
    VERIFY_CORRECTION = V1 + "/hallucinations/{hallucination_id}/verify"
    CORRECTION_STATUS = V1 + "/hallucinations/{hallucination_id}/status"
    CLASSIFY_EXTRACTION = V1 + "/extractions/classify"


class Headers:
    TENANT_ID = "X-Tenant-Id"
    RETRY_AFTER = "Retry-After"
