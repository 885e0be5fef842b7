from __future__ import annotations

import itertools
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest

from anongram.core.errors import (
    CodeExpiredError,
    CodeMismatchError,
    CodeNotFoundError,
    DeliveryFailedError,
    DuplicateIdentityError,
    UserNotFoundError,
    ValidationError,
)
from anongram.core.security import verify_code_hash
from anongram.realtime.events import UserJoined, UserOnline


def _register(services, mailer, email, name=None, **verify_kwargs):
    services.verification.request_code(email, name)
    return services.verification.verify_code(email, mailer.last_code(email), **verify_kwargs)


def test_register_flow_creates_user_and_session(services, mailer, publisher):
    request = services.verification.request_code("New.Person@Example.com", "NewPerson")
    assert request.email == "new.person@example.com"
    assert request.debug_code is None
    code = mailer.last_code("new.person@example.com")
    assert len(code) == 6 and code.isdigit()

    result = services.verification.verify_code("new.person@example.com", code)
    assert result.created is True
    assert result.user.username == "NewPerson"
    assert result.user.is_online is True
    assert result.user.coins == 100
    assert services.sessions.current_user(result.session_token).id == result.user.id
    # the code is single use
    assert services.store.get_code("new.person@example.com") is None

    joined = publisher.of_type(UserJoined)
    assert len(joined) == 1
    assert "email" not in joined[0].user


def test_second_request_invalidates_first_code(services, mailer):
    services.verification.request_code("dana@example.com")
    first = mailer.last_code("dana@example.com")
    services.verification.request_code("dana@example.com")
    second = mailer.last_code("dana@example.com")
    if first == second:
        pytest.skip("random codes collided")

    with pytest.raises(CodeMismatchError):
        services.verification.verify_code("dana@example.com", first)
    result = services.verification.verify_code("dana@example.com", second)
    assert result.created is True


def test_code_valid_until_ttl_boundary(services, mailer, clock):
    services.verification.request_code("edge@example.com")
    clock.advance(600)
    result = services.verification.verify_code("edge@example.com", mailer.last_code("edge@example.com"))
    assert result.created is True


def test_code_expires_after_ttl(services, mailer, clock):
    services.verification.request_code("late@example.com")
    clock.advance(601)
    with pytest.raises(CodeExpiredError):
        services.verification.verify_code("late@example.com", mailer.last_code("late@example.com"))
    # an expired code is dropped
    with pytest.raises(CodeNotFoundError):
        services.verification.verify_code("late@example.com", mailer.last_code("late@example.com"))


def test_code_expired_respects_timezone_offset(services):
    svc = services.verification
    now = svc._now()
    created = datetime.fromtimestamp(now, tz=timezone(timedelta(hours=-3)))

    assert svc._code_expired(created, now) is False

    old = created - timedelta(hours=1)
    assert svc._code_expired(old, now) is True


def test_wrong_or_missing_code(services, mailer):
    with pytest.raises(CodeNotFoundError):
        services.verification.verify_code("nobody@example.com", "123456")
    services.verification.request_code("fay@example.com")
    wrong = "100000" if mailer.last_code("fay@example.com") != "100000" else "100001"
    with pytest.raises(CodeMismatchError):
        services.verification.verify_code("fay@example.com", wrong)
    # a mismatch keeps the pending code
    assert services.store.get_code("fay@example.com") is not None


def test_seeded_legacy_code_logs_in(services, publisher):
    result = services.verification.verify_code("user1@test.com", "111222")
    assert result.created is False
    assert result.user.username == "UserOne"
    assert result.user.is_online is True
    online = publisher.of_type(UserOnline)
    assert [e.user_id for e in online] == [result.user.id]


def test_login_intent(services, mailer):
    with pytest.raises(UserNotFoundError):
        services.verification.request_code("ghost@example.com", intent="login")
    services.verification.request_code("user2@test.com", intent="login")
    result = services.verification.verify_code("user2@test.com", mailer.last_code("user2@test.com"))
    assert result.created is False
    assert result.user.username == "UserTwo"


def test_duplicate_identity(services):
    with pytest.raises(DuplicateIdentityError):
        services.verification.request_code("user1@test.com")
    with pytest.raises(DuplicateIdentityError):
        services.verification.request_code("someone@example.com", "userone")


def test_invalid_input(services):
    with pytest.raises(ValidationError):
        services.verification.request_code("not-an-email")
    with pytest.raises(ValidationError):
        services.verification.request_code("ok@example.com", "x")
    with pytest.raises(ValidationError):
        services.verification.request_code("ok@example.com", intent="reset")
    with pytest.raises(ValidationError):
        services.verification.verify_code("ok@example.com", "  ")


def test_delivery_failure_keeps_code(services, mailer):
    mailer.ok = False
    with pytest.raises(DeliveryFailedError):
        services.verification.request_code("offline-mail@example.com")
    assert services.store.get_code("offline-mail@example.com") is not None
    result = services.verification.verify_code(
        "offline-mail@example.com", mailer.last_code("offline-mail@example.com")
    )
    assert result.created is True


def test_admin_code_grants_admin(services, mailer):
    boss = _register(services, mailer, "boss@example.com", admin_code="ROOT-KEY-2")
    assert boss.user.is_admin is True
    # matching is exact
    other = _register(services, mailer, "other@example.com", admin_code="root-key-2")
    assert other.user.is_admin is False


def test_generated_username_when_none_given(services, mailer):
    result = _register(services, mailer, "anon@example.com")
    assert result.user.username == "User5"


def test_concurrent_requests_leave_one_code(services):
    counter = itertools.count(200001)
    guard = threading.Lock()

    def next_code():
        with guard:
            return str(next(counter))

    services.verification.code_factory = next_code
    barrier = threading.Barrier(2)

    def request():
        barrier.wait()
        services.verification.request_code("race@example.com")

    with ThreadPoolExecutor(max_workers=2) as pool:
        for future in [pool.submit(request) for _ in range(2)]:
            future.result()

    assert services.store.count_codes() == 1
    pending = services.store.get_code("race@example.com")
    matches = [verify_code_hash(code, pending.code_hash) for code in ("200001", "200002")]
    assert sorted(matches) == [False, True]
    # per-email locks are released once nobody waits on them
    assert len(services.locks) == 0


def test_purge_expired_drops_stale_codes(services, clock):
    services.verification.request_code("stale@example.com")
    clock.advance(1201)
    assert services.verification.purge_expired() == 1
    assert services.store.get_code("stale@example.com") is None
