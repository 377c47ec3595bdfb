from enum import Enum


class _CaseInsensitiveEnum(str, Enum):
    """String enum that also accepts the value in a different letter case."""

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.lower():
                    return member
        return None


class ObservationStatus(_CaseInsensitiveEnum):
    DRAFT = "draft"            # Editable by observer / admin
    SUBMITTED = "submitted"    # Awaiting review
    REVIEWED = "reviewed"      # Reviewer has commented
    FINALIZED = "finalized"    # Terminal, immutable


class TransitionAction(_CaseInsensitiveEnum):
    SUBMIT = "SUBMIT"
    REVIEW = "REVIEW"
    FINALIZE = "FINALIZE"
    RETURN_TO_DRAFT = "RETURN_TO_DRAFT"


class UserRole(_CaseInsensitiveEnum):
    ADMIN = "admin"
    OBSERVER = "observer"
    REVIEWER = "reviewer"
    TEACHER = "teacher"
    GUEST = "guest"
