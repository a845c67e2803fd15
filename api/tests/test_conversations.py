import pytest

from app import repo
from app.errors import InvalidOperation, NotAuthenticated, NotFound, StoreUnavailable
from app.services import conversations
from app.services.interest import record_like
from conftest import minutes


@pytest.fixture
def matched_pair(make_user, base_time):
    u = make_user("Ana")
    t = make_user("Ben")
    record_like(u, t, now=base_time)
    outcome = record_like(t, u, now=base_time)
    return u, t, outcome.match_id


def test_unread_follows_read_watermark(matched_pair, base_time):
    u, t, match_id = matched_pair
    conversations.mark_conversation_read(u, match_id, now=base_time + minutes(1))
    conversations.post_message(t, match_id, "Still have Hades?", now=base_time + minutes(2))

    [summary] = conversations.list_conversations(u)
    assert summary.has_unread is True
    assert summary.last_message == "Still have Hades?"

    conversations.mark_conversation_read(u, match_id, now=base_time + minutes(3))
    [summary] = conversations.list_conversations(u)
    assert summary.has_unread is False


def test_message_without_receipt_is_unread(matched_pair, base_time):
    u, t, match_id = matched_pair
    conversations.post_message(t, match_id, "hi", now=base_time + minutes(1))
    assert conversations.list_conversations(u)[0].has_unread is True
    assert conversations.count_unread_conversations(u) == 1


def test_own_last_message_is_never_unread(matched_pair, base_time):
    u, t, match_id = matched_pair
    conversations.post_message(u, match_id, "want to swap?", now=base_time + minutes(1))
    assert conversations.list_conversations(u)[0].has_unread is False
    assert conversations.list_conversations(t)[0].has_unread is True


def test_empty_match_uses_match_time_and_sorts(make_user, base_time):
    me = make_user("Ana")
    quiet = make_user("Ben")
    chatty = make_user("Cy")
    for other, at in ((quiet, base_time + minutes(10)), (chatty, base_time)):
        record_like(me, other, now=at)
        record_like(other, me, now=at)
    chatty_match = repo.get_match_by_pair(me, chatty)["id"]
    conversations.post_message(chatty, chatty_match, "hello", now=base_time + minutes(20))

    result = conversations.list_conversations(me)

    assert [c.other_user["id"] for c in result] == [chatty, quiet]
    assert result[1].last_message is None
    assert result[1].has_unread is False
    assert result[1].last_message_time == repo.get_match_by_pair(me, quiet)["created_at"]


def test_failed_message_fetch_degrades_single_entry(monkeypatch, make_user, base_time):
    me = make_user("Ana")
    ok_user = make_user("Ben")
    broken_user = make_user("Cy")
    for other in (ok_user, broken_user):
        record_like(me, other, now=base_time)
        record_like(other, me, now=base_time)
    ok_match = repo.get_match_by_pair(me, ok_user)["id"]
    broken_match = repo.get_match_by_pair(me, broken_user)["id"]
    conversations.post_message(ok_user, ok_match, "ping", now=base_time + minutes(1))
    conversations.post_message(broken_user, broken_match, "pong", now=base_time + minutes(2))

    real_latest = repo.get_latest_message

    def flaky_latest(match_id):
        if match_id == broken_match:
            raise StoreUnavailable("timeout")
        return real_latest(match_id)

    monkeypatch.setattr(repo, "get_latest_message", flaky_latest)
    result = {c.match_id: c for c in conversations.list_conversations(me)}

    assert result[ok_match].last_message == "ping"
    assert result[ok_match].has_unread is True
    assert result[broken_match].last_message is None
    assert result[broken_match].has_unread is False


def test_failed_receipt_fetch_hides_unread_flag(monkeypatch, matched_pair, base_time):
    u, t, match_id = matched_pair
    conversations.post_message(t, match_id, "hi", now=base_time + minutes(1))

    def broken_receipt(*args, **kwargs):
        raise StoreUnavailable("timeout")

    monkeypatch.setattr(repo, "get_read_receipt", broken_receipt)
    [summary] = conversations.list_conversations(u)
    assert summary.last_message == "hi"
    assert summary.has_unread is False


def test_inactive_matches_are_hidden(matched_pair):
    u, t, match_id = matched_pair
    conversations.deactivate_match(u, match_id)
    assert conversations.list_conversations(u) == []
    assert conversations.list_conversations(t) == []
    assert conversations.list_matches(u) == []


def test_guest_gets_no_conversations(matched_pair):
    assert conversations.list_conversations(None) == []
    assert conversations.count_unread_conversations(None) == 0
    assert conversations.list_matches(None) == []


def test_list_matches_reports_other_user(matched_pair):
    u, t, match_id = matched_pair
    [row] = conversations.list_matches(u)
    assert row["match_id"] == match_id
    assert row["other_user"]["id"] == t


def test_read_watermark_never_moves_back(matched_pair, base_time):
    u, _, match_id = matched_pair
    conversations.mark_conversation_read(u, match_id, now=base_time + minutes(10))
    conversations.mark_conversation_read(u, match_id, now=base_time + minutes(5))
    receipt = repo.get_read_receipt(match_id, u)
    assert receipt["last_read_at"].replace(tzinfo=None) == (base_time + minutes(10)).replace(tzinfo=None)


def test_outsider_cannot_touch_conversation(matched_pair, make_user):
    _, _, match_id = matched_pair
    outsider = make_user("Eve")
    with pytest.raises(NotFound):
        conversations.mark_conversation_read(outsider, match_id)
    with pytest.raises(NotFound):
        conversations.post_message(outsider, match_id, "hi")
    with pytest.raises(NotAuthenticated):
        conversations.post_message(None, match_id, "hi")


def test_message_body_is_validated(matched_pair):
    u, _, match_id = matched_pair
    with pytest.raises(InvalidOperation):
        conversations.post_message(u, match_id, "   ")
    with pytest.raises(InvalidOperation):
        conversations.post_message(u, match_id, "x" * 2001)


def test_cannot_post_to_deactivated_match(matched_pair):
    u, _, match_id = matched_pair
    conversations.deactivate_match(u, match_id)
    with pytest.raises(NotFound):
        conversations.post_message(u, match_id, "hello?")


def test_unread_flag_is_binary(matched_pair, base_time):
    u, t, match_id = matched_pair
    for n in range(3):
        conversations.post_message(t, match_id, f"msg {n}", now=base_time + minutes(n + 1))
    assert conversations.count_unread_conversations(u) == 1
    assert conversations.list_conversations(u)[0].last_message == "msg 2"


def test_unreachable_profile_skips_only_that_entry(monkeypatch, make_user, base_time):
    me = make_user("Ana")
    reachable = make_user("Ben")
    unreachable = make_user("Cy")
    for other in (reachable, unreachable):
        record_like(me, other, now=base_time)
        record_like(other, me, now=base_time)

    real_get_user = repo.get_user_by_id

    def flaky_get_user(user_id):
        if user_id == unreachable:
            raise StoreUnavailable("timeout")
        return real_get_user(user_id)

    monkeypatch.setattr(repo, "get_user_by_id", flaky_get_user)

    assert [c.other_user["id"] for c in conversations.list_conversations(me)] == [reachable]
    assert [m["other_user"]["id"] for m in conversations.list_matches(me)] == [reachable]


def test_unreachable_match_list_reads_as_empty(monkeypatch, matched_pair, base_time):
    u, t, match_id = matched_pair
    conversations.post_message(t, match_id, "hi", now=base_time + minutes(1))

    def down(*args, **kwargs):
        raise StoreUnavailable("timeout")

    monkeypatch.setattr(repo, "list_active_matches_for_user", down)
    assert conversations.list_conversations(u) == []
    assert conversations.count_unread_conversations(u) == 0
    assert conversations.list_matches(u) == []
