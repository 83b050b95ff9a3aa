"""Card data structures."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import ValidationError

PERSONAL_INFO_FIELDS = ('Full Name', 'Phone', 'Email', 'Organization', 'Job Title', 'Address')

EMERGENCY_CONTACT_FIELDS = ('Name', 'Mobile', 'Blood Group', 'Location', 'Relationship')

POLICY_FIELDS = (
    'Policyholder',
    'Age',
    'Insurer',
    'Policy Type',
    'Premium',
    'Sum Assured',
    'Policy Start',
    'Policy End',
    'Status',
    'Contact',
    'Mobile',
    'Policy Number',
)

POLICY_NUMBER = 'Policy Number'


def policy_key(policy: Dict[str, str]) -> str:
    """Identity of a policy: its Policy Number, trimmed and case-folded."""
    return (policy.get(POLICY_NUMBER) or '').strip().casefold()


@dataclass
class CardData:
    """Everything stored on a personalized card.

    Built fresh for every read or write; policies keep the order of their
    records on the tag.
    """
    personal_info: Dict[str, str] = field(default_factory=dict)
    emergency_contact: Dict[str, str] = field(default_factory=dict)
    insurance_policies: List[Dict[str, str]] = field(default_factory=list)
    vcard_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CardData':
        """Build from the JSON shape used by data files and the card app."""
        if not isinstance(data, dict):
            raise ValidationError("Card data must be an object")

        policies = data.get('insurancePolicies') or []
        if not isinstance(policies, list):
            raise ValidationError("insurancePolicies must be a list")

        return cls(
            personal_info=dict(data.get('personalInfo') or {}),
            emergency_contact=dict(data.get('emergencyContact') or {}),
            insurance_policies=[dict(policy) for policy in policies],
            vcard_url=data.get('vCardUrl') or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'personalInfo': dict(self.personal_info),
            'emergencyContact': dict(self.emergency_contact),
            'insurancePolicies': [dict(policy) for policy in self.insurance_policies],
            'vCardUrl': self.vcard_url,
        }


class WriteStatus(Enum):
    SUCCESS = 'success'
    ACCESS_DENIED = 'access_denied'
    NO_DATA = 'no_data'
    ERROR = 'error'


@dataclass
class WriteResult:
    """Outcome of a write or sync, handed back to the application layer."""
    status: WriteStatus
    message: str
    records_written: int = 0
    bytes_written: int = 0
    synced_count: int = 0

    @property
    def success(self) -> bool:
        return self.status is WriteStatus.SUCCESS


@dataclass
class FieldDifference:
    policy_number: str
    field: str
    tag_value: Optional[str]
    remote_value: Optional[str]


@dataclass
class SyncReport:
    """Difference between the policies on a tag and a remote policy set."""
    tag_only: List[Dict[str, str]] = field(default_factory=list)
    remote_only: List[Dict[str, str]] = field(default_factory=list)
    differences: List[FieldDifference] = field(default_factory=list)

    @property
    def needs_sync(self) -> bool:
        return bool(self.tag_only or self.remote_only or self.differences)

    def summary(self) -> Dict[str, int]:
        return {
            'tag_only': len(self.tag_only),
            'remote_only': len(self.remote_only),
            'differences': len(self.differences),
        }
