from src.utils.policy_csv import PolicyCSVHandler


def test_policies_survive_a_csv_round_trip(tmp_path, policy):
    handler = PolicyCSVHandler(tmp_path / "policies.csv")
    second = {"Policy Number": "P2", "Insurer": "Globex", "Sum Assured": "50000"}

    assert handler.write_policies([policy, second])

    assert handler.read_policies() == [policy, second]


def test_unknown_columns_and_empty_cells_are_dropped(tmp_path):
    path = tmp_path / "policies.csv"
    path.write_text(
        "Policy Number,Insurer,Status,Notes\n"
        "P1,Acme,,call back\n"
        ",,,\n",
        encoding="utf-8",
    )

    assert PolicyCSVHandler(path).read_policies() == [{"Policy Number": "P1", "Insurer": "Acme"}]


def test_missing_file_reads_as_no_policies(tmp_path):
    assert PolicyCSVHandler(tmp_path / "absent.csv").read_policies() == []


def test_unwritable_path_reports_failure(tmp_path):
    handler = PolicyCSVHandler(tmp_path / "missing-dir" / "policies.csv")

    assert not handler.write_policies([{"Policy Number": "P1"}])
