"""Unit tests for ContactService. No HTTP; in-memory repo only."""

from datetime import datetime, timedelta, timezone

from contactly.application import (
    ContactRemoved,
    ContactSaved,
    ContactService,
    Invalid,
    NotFound,
)
from contactly.domain import Contact, Identity
from contactly.infrastructure import InMemoryContactRepository

ANN = Identity(user_id="user-ann", email="a@x.com")
BEN = Identity(user_id="user-ben", email="b@x.com")


def _service() -> ContactService:
    return ContactService(repository=InMemoryContactRepository())


def _create(service: ContactService, identity: Identity, **fields) -> Contact:
    result = service.create_contact(identity, fields)
    assert isinstance(result, ContactSaved)
    return result.contact


def test_create_then_get_returns_same_fields() -> None:
    service = _service()
    created = _create(
        service,
        ANN,
        name="Bob",
        email="bob@example.com",
        phone="555-0100",
        address="1 Main St",
        notes="Met at the conference",
    )
    assert created.owner_id == ANN.user_id

    found = service.get_contact(ANN, created.id)
    assert isinstance(found, Contact)
    assert found.name == "Bob"
    assert found.email == "bob@example.com"
    assert found.phone == "555-0100"
    assert found.address == "1 Main St"
    assert found.notes == "Met at the conference"


def test_create_marks_result_as_created() -> None:
    result = _service().create_contact(ANN, {"name": "Bob"})
    assert isinstance(result, ContactSaved)
    assert result.created is True


def test_create_requires_name() -> None:
    service = _service()
    r = service.create_contact(ANN, {"email": "nobody@example.com"})
    assert isinstance(r, Invalid)
    assert "name" in r.reason.lower()

    r2 = service.create_contact(ANN, {"name": "   "})
    assert isinstance(r2, Invalid)

    r3 = service.create_contact(ANN, {"name": None})
    assert isinstance(r3, Invalid)
    assert service.list_contacts(ANN) == []


def test_create_strips_and_blanks_optional_fields() -> None:
    created = _create(_service(), ANN, name="  Bob  ", email="  ", phone=" 555 ")
    assert created.name == "Bob"
    assert created.email is None
    assert created.phone == "555"


def test_list_is_owner_scoped_and_sorted_case_insensitive() -> None:
    service = _service()
    _create(service, ANN, name="charlie")
    _create(service, ANN, name="Bob")
    _create(service, ANN, name="alice")
    _create(service, BEN, name="Aaron")

    names = [c.name for c in service.list_contacts(ANN)]
    assert names == ["alice", "Bob", "charlie"]
    assert [c.name for c in service.list_contacts(BEN)] == ["Aaron"]


def test_partial_update_changes_only_given_fields() -> None:
    service = _service()
    created = _create(service, ANN, name="Bob", email="bob@example.com")

    result = service.update_contact(ANN, created.id, {"phone": "555"})
    assert isinstance(result, ContactSaved)
    assert result.created is False

    found = service.get_contact(ANN, created.id)
    assert isinstance(found, Contact)
    assert found.phone == "555"
    assert found.name == "Bob"
    assert found.email == "bob@example.com"


def test_update_can_clear_optional_field() -> None:
    service = _service()
    created = _create(service, ANN, name="Bob", email="bob@example.com")
    result = service.update_contact(ANN, created.id, {"email": None})
    assert isinstance(result, ContactSaved)
    assert result.contact.email is None


def test_update_bumps_updated_at_only() -> None:
    times = iter(
        [
            datetime(2024, 1, 1, tzinfo=timezone.utc),
            datetime(2024, 1, 2, tzinfo=timezone.utc),
        ]
    )
    service = ContactService(InMemoryContactRepository(), now=lambda: next(times))
    created = _create(service, ANN, name="Bob")
    result = service.update_contact(ANN, created.id, {"notes": "likes tea"})
    assert isinstance(result, ContactSaved)
    assert result.contact.created_at == created.created_at
    assert result.contact.updated_at - created.updated_at == timedelta(days=1)


def test_update_with_no_recognized_fields_is_invalid() -> None:
    service = _service()
    created = _create(service, ANN, name="Bob")
    assert isinstance(service.update_contact(ANN, created.id, {}), Invalid)
    assert isinstance(service.update_contact(ANN, created.id, {"nickname": "B"}), Invalid)


def test_update_cannot_blank_name() -> None:
    service = _service()
    created = _create(service, ANN, name="Bob")
    r = service.update_contact(ANN, created.id, {"name": " "})
    assert isinstance(r, Invalid)
    found = service.get_contact(ANN, created.id)
    assert isinstance(found, Contact)
    assert found.name == "Bob"


def test_update_missing_contact_is_not_found() -> None:
    r = _service().update_contact(ANN, "missing-id", {"name": "X"})
    assert isinstance(r, NotFound)
    assert r.contact_id == "missing-id"


def test_other_owner_sees_not_found_everywhere() -> None:
    service = _service()
    created = _create(service, BEN, name="Ben's friend")

    assert isinstance(service.get_contact(ANN, created.id), NotFound)
    assert isinstance(service.update_contact(ANN, created.id, {"name": "Mine"}), NotFound)
    assert isinstance(service.delete_contact(ANN, created.id), NotFound)

    still_there = service.get_contact(BEN, created.id)
    assert isinstance(still_there, Contact)
    assert still_there.name == "Ben's friend"


def test_delete_twice_second_is_not_found() -> None:
    service = _service()
    created = _create(service, ANN, name="Bob")

    first = service.delete_contact(ANN, created.id)
    assert isinstance(first, ContactRemoved)
    assert first.contact.id == created.id

    second = service.delete_contact(ANN, created.id)
    assert isinstance(second, NotFound)
    assert service.list_contacts(ANN) == []
