from datetime import datetime

import pytest
import pytz

from quizhub.admin.permissions import is_super_admin
from quizhub.core.config import settings
from quizhub.utils.id_generator import email_key, generate_document_id, generate_numeric_code
from quizhub.utils.timestamps import parse_timestamp, to_iso


def test_document_ids_are_unique_hex():
    ids = {generate_document_id() for _ in range(1000)}
    assert len(ids) == 1000
    assert all(len(i) == 32 and int(i, 16) >= 0 for i in ids)


def test_numeric_code_has_requested_length():
    code = generate_numeric_code(6)
    assert len(code) == 6 and code.isdigit()


def test_email_key_is_case_and_space_insensitive():
    assert email_key(" Ann@Example.com ") == email_key("ann@example.com")
    assert "." not in email_key("ann@example.com")


@pytest.mark.parametrize("value, expected", [
    ("2024-05-01T09:58:00Z", datetime(2024, 5, 1, 9, 58, tzinfo=pytz.UTC)),
    ("2024-05-01T09:58:00.123Z", datetime(2024, 5, 1, 9, 58, 0, 123000, tzinfo=pytz.UTC)),
    ("2024-05-01T11:58:00+02:00", datetime(2024, 5, 1, 9, 58, tzinfo=pytz.UTC)),
    ("2024-05-01T09:58:00", datetime(2024, 5, 1, 9, 58, tzinfo=pytz.UTC)),
])
def test_parse_timestamp(value, expected):
    assert parse_timestamp(value) == expected


@pytest.mark.parametrize("value", ["yesterday", "", None, 1714557480])
def test_parse_timestamp_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_timestamp(value)


def test_to_iso_treats_naive_time_as_utc():
    assert to_iso(datetime(2024, 5, 1, 10, 0)) == "2024-05-01T10:00:00+00:00"


def test_super_admin_ids_are_parsed(monkeypatch):
    monkeypatch.setattr(settings, "SUPER_ADMIN_IDS", " root-admin, ops ,,")

    assert settings.super_admin_ids == ["root-admin", "ops"]
    assert is_super_admin("ops")
    assert not is_super_admin("")
    assert not is_super_admin("someone")
