from __future__ import annotations

import pytest

from anongram.core.errors import InsufficientLevelError, NotFoundError, ProfessionNotFoundError
from anongram.realtime.events import ProfessionChanged


def test_list_professions(services):
    professions = services.professions.list_professions()
    assert len(professions) == 6
    assert professions[4] == {
        "id": 5,
        "name": "Librarian",
        "level": 5,
        "description": "File moderation",
    }


def test_assign_open_profession(services, publisher):
    user = services.store.get_user_by_email("user1@test.com")
    assert services.professions.assign(user.id, 2) == "Photographer"
    assert services.store.get_user(user.id).profession == "Photographer"
    events = publisher.of_type(ProfessionChanged)
    assert [e.to_wire() for e in events] == [
        {"type": "profession_changed", "userId": user.id, "profession": "Photographer"}
    ]


def test_assign_above_level_is_rejected(services, publisher):
    user = services.store.get_user_by_email("user1@test.com")
    services.professions.assign(user.id, 2)
    with pytest.raises(InsufficientLevelError):
        services.professions.assign(user.id, 5)
    assert services.store.get_user(user.id).profession == "Photographer"
    assert len(publisher.of_type(ProfessionChanged)) == 1


def test_reassigning_current_profession_is_silent(services, publisher):
    user = services.store.get_user_by_email("user2@test.com")
    services.professions.assign(user.id, 3)
    assert services.professions.assign(user.id, 3) == "Writer"
    assert len(publisher.of_type(ProfessionChanged)) == 1


def test_unknown_profession_or_user(services):
    user = services.store.get_user_by_email("user2@test.com")
    with pytest.raises(ProfessionNotFoundError):
        services.professions.assign(user.id, 99)
    with pytest.raises(NotFoundError) as exc_info:
        services.professions.assign(424242, 1)
    assert type(exc_info.value) is NotFoundError
    assert exc_info.value.code == "NotFound"


def test_level_gate_opens_after_progress(services):
    user = services.store.get_user_by_email("user3@test.com")
    with pytest.raises(InsufficientLevelError):
        services.professions.assign(user.id, 6)
    services.users.award_experience(user.id, 200)
    assert services.professions.assign(user.id, 6) == "Tester"
