"""CSV import/export of insurance policy sets."""

import csv
import logging
from pathlib import Path
from typing import Dict, List

from ..card.data import POLICY_FIELDS


class PolicyCSVHandler:
    """Read and write policy sets as CSV, one policy per row.

    Column names are the policy field labels (``Policy Number``, ``Status``...).
    Unknown columns are dropped and empty cells are left out of the policy.
    """

    def __init__(self, csv_path: str):
        self.csv_path = Path(csv_path)

    def read_policies(self) -> List[Dict[str, str]]:
        """Read policies from the CSV file."""
        try:
            with open(self.csv_path, 'r', newline='', encoding='utf-8') as f:
                reader = csv.DictReader(f)
                policies = []
                for row in reader:
                    policy = {key: (row.get(key) or '').strip()
                              for key in POLICY_FIELDS if (row.get(key) or '').strip()}
                    if policy:
                        policies.append(policy)
                if not policies:
                    logging.error("No policies found in CSV file")
                return policies

        except FileNotFoundError:
            logging.error(f"CSV file not found: {self.csv_path}")
            return []

    def write_policies(self, policies: List[Dict[str, str]]) -> bool:
        """Write policies to the CSV file, replacing its contents.

        Returns:
            bool: True if the file was written
        """
        try:
            with open(self.csv_path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=list(POLICY_FIELDS), extrasaction='ignore')
                writer.writeheader()
                writer.writerows(policies)
            return True

        except OSError as e:
            logging.error(f"Failed to write policies: {e}")
            return False
