import pytest

from src.card.codec import decode
from src.card.data import CardData, FieldDifference, WriteStatus
from src.card.reading import read_structured_data
from src.card.sync import (
    compare_policies,
    merge_and_write,
    prepare_merged_data,
    profile_url,
    sync_policies_to_card,
)
from src.nfc.exceptions import ReadExhaustedError
from src.utils.policy_csv import PolicyCSVHandler
from tests.fake_tag import FakeTag


def test_compare_reports_remote_only_and_field_differences():
    tag_policies = [{"Policy Number": "P1", "Status": "Active"}]
    remote = [{"Policy Number": "P1", "Status": "Lapsed"}, {"Policy Number": "P2"}]

    report = compare_policies(tag_policies, remote)

    assert report.remote_only == [{"Policy Number": "P2"}]
    assert report.tag_only == []
    assert report.differences == [FieldDifference("P1", "Status", "Active", "Lapsed")]
    assert report.needs_sync
    assert report.summary() == {"tag_only": 0, "remote_only": 1, "differences": 1}


def test_compare_matches_policy_numbers_loosely():
    tag_policies = [{"Policy Number": " p-100 ", "Status": "Active", "Insurer": "Acme", "Premium": "10"}]
    remote = [{"Policy Number": "P-100", "Status": "Active", "Insurer": "Acme", "Premium": "10"}]

    report = compare_policies(tag_policies, remote)

    assert not report.needs_sync


def test_compare_only_checks_status_insurer_premium():
    tag_policies = [{"Policy Number": "P1", "Insurer": "Acme", "Premium": "10", "Age": "40"}]
    remote = [{"Policy Number": "P1", "Insurer": "Other", "Premium": "12", "Age": "41"}]

    report = compare_policies(tag_policies, remote)

    assert [d.field for d in report.differences] == ["Insurer", "Premium"]


def test_compare_tag_only():
    report = compare_policies([{"Policy Number": "P9"}], [])

    assert report.tag_only == [{"Policy Number": "P9"}]
    assert report.remote_only == []
    assert report.needs_sync


def test_policies_without_number_never_match():
    report = compare_policies([{"Status": "Active"}], [{"Status": "Active"}])

    assert len(report.tag_only) == 1
    assert len(report.remote_only) == 1


def test_identical_sets_need_no_sync(policy):
    assert not compare_policies([policy], [dict(policy)]).needs_sync


def test_profile_url_from_email_local_part():
    assert profile_url({"Email": "Jane.Doe@X.com"}, "https://cards.example/") == \
        "https://cards.example/jane.doe"
    assert profile_url({}, "https://cards.example/") is None


def test_merged_data_takes_incoming_values(jane):
    incoming = CardData(personal_info=jane.personal_info, emergency_contact={"Name": "Bob"})

    merged = prepare_merged_data(incoming, "https://cards.example/")

    assert merged.personal_info == jane.personal_info
    assert merged.emergency_contact == {"Name": "Bob"}
    assert merged.vcard_url == "https://cards.example/jane"
    assert incoming.vcard_url is None


def test_explicit_url_is_kept(jane):
    incoming = CardData(personal_info=jane.personal_info, vcard_url="https://elsewhere.example/j")

    assert prepare_merged_data(incoming).vcard_url == "https://elsewhere.example/j"


def test_merge_and_write_stores_derived_url(sleep, jane):
    tag = FakeTag()

    result = merge_and_write(tag, jane, base_url="https://c.example/", sleep=sleep)

    assert result.success
    assert result.records_written == 2
    stored = decode(bytes(tag.file[2:]))
    assert stored.vcard_url == "https://c.example/jane"
    assert stored.personal_info == jane.personal_info


def test_merge_and_write_goes_through_ownership_check(sleep, jane):
    tag = FakeTag.with_card(CardData(personal_info=dict(jane.personal_info, Email="x@y.com")))

    result = merge_and_write(tag, jane, sleep=sleep)

    assert result.status is WriteStatus.ACCESS_DENIED
    assert tag.writes == []


def test_sync_adds_missing_remote_policies(sleep):
    tag = FakeTag.with_card(CardData(vcard_url="https://x.io/j"))
    remote = [{"Policy Number": "P1", "Status": "Active"}]

    result = sync_policies_to_card(tag, remote, sleep=sleep)

    assert result.success
    assert result.synced_count == 1
    assert result.message == "Synced 1 policies to card"
    stored = decode(bytes(tag.file[2:]))
    assert stored.vcard_url == "https://x.io/j"
    assert [p["Policy Number"] for p in stored.insurance_policies] == ["P1"]


def test_sync_does_not_write_when_nothing_is_missing(sleep, policy):
    tag = FakeTag.with_card(CardData(insurance_policies=[policy]))
    remote = [dict(policy, Status="Lapsed")]

    result = sync_policies_to_card(tag, remote, sleep=sleep)

    assert result.status is WriteStatus.SUCCESS
    assert result.synced_count == 0
    assert result.message == "No new policies to sync"
    assert tag.writes == []


def test_sync_needs_a_readable_card(sleep):
    with pytest.raises(ReadExhaustedError):
        sync_policies_to_card(FakeTag(), [{"Policy Number": "P1"}], sleep=sleep)


def test_synced_card_matches_its_csv_source(tmp_path, sleep):
    csv_path = tmp_path / "remote.csv"
    csv_path.write_text("Policy Number,Insurer,Status,Premium\nP1,Acme,Active,1200\n", encoding="utf-8")
    remote = PolicyCSVHandler(csv_path).read_policies()
    tag = FakeTag.with_card(CardData(vcard_url="https://x.io/j"))

    assert sync_policies_to_card(tag, remote, sleep=sleep).synced_count == 1

    stored = read_structured_data(tag, sleep=sleep)
    assert len(stored.insurance_policies[0]) == 12
    report = compare_policies(stored.insurance_policies, remote)
    assert report.differences == []
    assert not report.needs_sync


def test_blank_fields_equal_missing_fields():
    tag_policies = [{"Policy Number": "P1", "Status": "Active", "Insurer": "", "Premium": " "}]
    remote = [{"Policy Number": "P1", "Status": "Active "}]

    assert compare_policies(tag_policies, remote).differences == []


def test_sync_keeps_a_formatted_phone_owner(sleep):
    card = CardData(personal_info={"Phone": "+1 234-567"})
    tag = FakeTag.with_card(card)

    result = sync_policies_to_card(tag, [{"Policy Number": "P2"}], sleep=sleep)

    assert result.status is WriteStatus.SUCCESS
    assert result.synced_count == 1
    stored = decode(bytes(tag.file[2:]))
    assert stored.personal_info == {"Phone": "+1 234-567"}
    assert [p["Policy Number"] for p in stored.insurance_policies] == ["P2"]
    # one read of the card, no second read for validation
    assert sleep.calls == [1.0]
    assert tag.commands.count(bytes.fromhex("00A4000C02E103")) == 1
