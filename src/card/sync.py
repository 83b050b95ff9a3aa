"""Reconcile card policies with a remote policy set."""

import logging
import time
from typing import Callable, Dict, List, Optional

from ..nfc.constants import VCARD_PROFILE_BASE_URL
from .data import (
    CardData,
    FieldDifference,
    POLICY_NUMBER,
    SyncReport,
    WriteResult,
    WriteStatus,
    policy_key,
)
from .reading import read_structured_data
from .writing import perform_write

COMPARED_FIELDS = ('Status', 'Insurer', 'Premium')


def _index(policies: List[Dict[str, str]]) -> Dict[str, Dict[str, str]]:
    index = {}
    for policy in policies:
        key = policy_key(policy)
        if key:
            index.setdefault(key, policy)
    return index


def _field_value(policy: Dict[str, str], field: str) -> str:
    # Cards store every field, empty ones as ''; CSV rows omit empty cells
    return (policy.get(field) or '').strip()


def compare_policies(tag_policies: List[Dict[str, str]],
                     remote_policies: List[Dict[str, str]]) -> SyncReport:
    """Split policies by which side has them and diff the ones on both.

    Policies without a Policy Number cannot be matched and always count as
    present on one side only.
    """
    tag_index = _index(tag_policies)
    remote_index = _index(remote_policies)
    report = SyncReport()

    report.remote_only = [p for p in remote_policies if policy_key(p) not in tag_index]
    report.tag_only = [p for p in tag_policies if policy_key(p) not in remote_index]

    for tag_policy in tag_policies:
        remote_policy = remote_index.get(policy_key(tag_policy))
        if remote_policy is None:
            continue
        for field in COMPARED_FIELDS:
            tag_value = _field_value(tag_policy, field)
            remote_value = _field_value(remote_policy, field)
            if tag_value != remote_value:
                report.differences.append(FieldDifference(
                    policy_number=tag_policy.get(POLICY_NUMBER, ''),
                    field=field,
                    tag_value=tag_value,
                    remote_value=remote_value,
                ))

    logging.debug(f"Comparison summary: {report.summary()}")
    return report


def profile_url(personal_info: Dict[str, str],
                base_url: str = VCARD_PROFILE_BASE_URL) -> Optional[str]:
    """Public profile URL derived from the email local-part."""
    email = personal_info.get('Email') or ''
    if not email:
        return None
    return f"{base_url}{email.split('@')[0].lower()}"


def prepare_merged_data(incoming: CardData,
                        base_url: str = VCARD_PROFILE_BASE_URL) -> CardData:
    """Card contents to write: incoming values win outright."""
    merged = CardData(
        personal_info=dict(incoming.personal_info),
        emergency_contact=dict(incoming.emergency_contact),
        insurance_policies=[dict(policy) for policy in incoming.insurance_policies],
        vcard_url=incoming.vcard_url or profile_url(incoming.personal_info, base_url),
    )
    logging.debug(f"Merged data finalized: {merged}")
    return merged


def merge_and_write(transport, incoming: CardData,
                    base_url: str = VCARD_PROFILE_BASE_URL,
                    sleep: Callable[[float], None] = time.sleep) -> WriteResult:
    """Write incoming data through the ownership-checked write pipeline."""
    merged = prepare_merged_data(incoming, base_url)
    return perform_write(transport, merged, sleep=sleep)


def sync_policies_to_card(transport, remote_policies: List[Dict[str, str]],
                          base_url: str = VCARD_PROFILE_BASE_URL,
                          sleep: Callable[[float], None] = time.sleep) -> WriteResult:
    """Add remote policies missing from the card, keeping everything else.

    Field differences on policies both sides know about are not written back.
    The card is read once; its own identity is written back without a second
    ownership check. Raises ReadExhaustedError when the card cannot be read.
    """
    card = read_structured_data(transport, sleep=sleep)
    missing = compare_policies(card.insurance_policies, remote_policies).remote_only

    if not missing:
        logging.info("No new policies to sync")
        return WriteResult(WriteStatus.SUCCESS, 'No new policies to sync')

    card.insurance_policies.extend(dict(policy) for policy in missing)
    merged = prepare_merged_data(card, base_url)
    result = perform_write(transport, merged, sleep=sleep, validate=False)
    if result.success:
        result.synced_count = len(missing)
        result.message = f"Synced {len(missing)} policies to card"
    return result
