import pytest

from src.card.data import CardData
from tests.fake_tag import RecordingSleep


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def jane():
    return CardData(personal_info={
        "Full Name": "Jane Doe",
        "Email": "jane@x.com",
        "Phone": "+1234567890",
    })


@pytest.fixture
def policy():
    return {
        "Policy Number": "P1",
        "Insurer": "Acme",
        "Status": "Active",
        "Premium": "1200",
    }
