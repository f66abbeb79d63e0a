from enum import Enum


class DocumentStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class StageStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class RequirementType(str, Enum):
    FUNCTIONAL = "functional"
    NON_FUNCTIONAL = "non-functional"


class TestType(str, Enum):
    UNIT = "unit"
    INTEGRATION = "integration"
    SYSTEM = "system"
    ACCEPTANCE = "acceptance"
    PERFORMANCE = "performance"
    SECURITY = "security"
    USABILITY = "usability"
    COMPATIBILITY = "compatibility"
    REGRESSION = "regression"
    SMOKE = "smoke"
    SANITY = "sanity"


class ChatRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class StageName(str, Enum):
    """Stable keys for the six pipeline stages (graph node names)."""

    REQUIREMENT_EXTRACTION = "s1_requirement_extraction"
    TEST_CASE_GENERATION = "s2_test_case_generation"
    NEGATIVE_LABELING = "s3_negative_labeling"
    TEST_TYPE_CLASSIFICATION = "s4_test_type_classification"
    FINAL_REVIEW = "s5_final_review"
    FINALIZATION = "s6_finalization"
