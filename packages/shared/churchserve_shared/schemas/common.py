from enum import Enum

class MemberRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

# Roles allowed to manage an organization's opportunities and members
MANAGER_ROLES: frozenset["MemberRole"] = frozenset({MemberRole.OWNER, MemberRole.ADMIN})

class SignupStatus(str, Enum):
    SIGNED_UP = "signed_up"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class RecurringPattern(str, Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"

OPPORTUNITY_CATEGORIES: list[str] = [
    "Community Service",
    "Youth Ministry",
    "Senior Care",
    "Event Support",
    "Administrative",
    "Food Service",
    "Education",
    "Construction",
    "Technology",
]
