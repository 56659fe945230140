import json
from datetime import date, datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database import Base
from errors import LookupFailed, MatchWriteFailed
from models import User
from services.partner_matcher import PartnerMatcher, is_last_day_of_month, month_string
from store import SqlStore, SupabaseStore
from supabase_rest import SupabaseRest


def test_no_candidate_leaves_user_unmatched(store, add_user):
    add_user("a", primary_focus="Fitness")
    add_user("b", primary_focus="Business")

    assert PartnerMatcher.match(store, "a", "Fitness") is None
    assert store.get_user("a")["partner_id"] is None


def test_match_links_both_users(store, add_user):
    add_user("a", primary_focus="Fitness")
    add_user("b", primary_focus="Fitness")

    partner = PartnerMatcher.match(store, "a", "Fitness")

    assert partner["id"] == "b"
    assert store.get_user("a")["partner_id"] == "b"
    assert store.get_user("b")["partner_id"] == "a"


def test_already_matched_user_is_a_no_op(store, add_user):
    add_user("a", primary_focus="Fitness")
    add_user("b", primary_focus="Fitness")
    add_user("c", primary_focus="Fitness")

    assert PartnerMatcher.match(store, "a", "Fitness")["id"] == "b"
    assert PartnerMatcher.match(store, "a", "Fitness") is None
    assert PartnerMatcher.match(store, "a", "Fitness") is None
    assert store.get_user("c")["partner_id"] is None


def test_matched_users_are_not_candidates(store, add_user):
    add_user("y", primary_focus="Fitness", partner_id="x")
    add_user("x", primary_focus="Fitness")
    add_user("a", primary_focus="Fitness")

    assert PartnerMatcher.match(store, "a", "Fitness")["id"] == "x"


def test_earliest_joined_candidate_wins(store, add_user):
    add_user("first-joined", primary_focus="Mindset")
    add_user("a", primary_focus="Mindset")
    add_user("0-newest", primary_focus="Mindset")

    assert PartnerMatcher.match(store, "a", "Mindset")["id"] == "first-joined"


def test_unknown_user_raises_lookup_failed(store):
    with pytest.raises(LookupFailed):
        PartnerMatcher.match(store, "ghost", "Fitness")


def test_sql_store_rolls_back_when_partner_write_fails(store, add_user, monkeypatch):
    add_user("a", primary_focus="Fitness")
    add_user("b", primary_focus="Fitness")
    real_set_partner = store.set_partner

    def set_partner(user_id, partner_id, **guards):
        if user_id == "b":
            return False
        return real_set_partner(user_id, partner_id, **guards)

    monkeypatch.setattr(store, "set_partner", set_partner)

    with pytest.raises(MatchWriteFailed):
        PartnerMatcher.match(store, "a", "Fitness")
    assert store.get_user("a")["partner_id"] is None
    assert store.get_user("b")["partner_id"] is None


def test_overlapping_matches_for_same_user_keep_links_mutual(tmp_path, monkeypatch):
    engine = create_engine(f"sqlite:///{tmp_path / 'pact.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = factory()
    for n, user_id in enumerate(("b", "c", "a")):
        db.add(User(id=user_id, email=f"{user_id}@example.com", primary_focus="Fitness",
                    created_at=datetime(2025, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=n)))
    db.commit()
    db.close()

    # A double submit: the second request completes while the first is between its lookups.
    first, second = SqlStore(factory), SqlStore(factory)
    real_find = first.find_unmatched_partner

    def find_after_other_request(focus, exclude_user_id):
        assert PartnerMatcher.match(second, "a", "Fitness")["id"] == "b"
        return real_find(focus, exclude_user_id)

    monkeypatch.setattr(first, "find_unmatched_partner", find_after_other_request)

    assert PartnerMatcher.match(first, "a", "Fitness") is None

    links = {u: second.get_user(u)["partner_id"] for u in ("a", "b", "c")}
    assert links == {"a": "b", "b": "a", "c": None}
    engine.dispose()


class ScriptedPostgrest:
    """Replays canned PostgREST responses and records the requests made."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.responses.pop(0)
        return httpx.Response(status, json=body)


def supabase_store(script):
    rest = SupabaseRest("https://db.example.test", "service-key", transport=httpx.MockTransport(script))
    return SupabaseStore(rest)


def test_supabase_compensates_when_second_write_fails():
    script = ScriptedPostgrest([
        (200, [{"id": "a", "partner_id": None}]),
        (200, [{"id": "b", "primary_focus": "Fitness", "joined_month": "2025-01"}]),
        (200, [{"id": "a", "partner_id": "b"}]),
        (500, {"message": "connection reset"}),
        (200, [{"id": "a", "partner_id": None}]),
    ])

    with pytest.raises(MatchWriteFailed):
        PartnerMatcher.match(supabase_store(script), "a", "Fitness")

    first_write, second_write, rollback = script.requests[2], script.requests[3], script.requests[4]
    assert first_write.url.params.get_list("id") == ["eq.a"]
    assert first_write.url.params.get_list("partner_id") == ["is.null"]
    assert second_write.method == "PATCH"
    assert second_write.url.params.get_list("id") == ["eq.b"]
    assert second_write.url.params.get_list("partner_id") == ["is.null"]
    assert rollback.method == "PATCH"
    assert rollback.url.params.get_list("id") == ["eq.a"]
    assert rollback.url.params.get_list("partner_id") == ["eq.b"]
    assert json.loads(rollback.content) == {"partner_id": None}


def test_supabase_compensates_when_candidate_was_taken():
    script = ScriptedPostgrest([
        (200, [{"id": "a", "partner_id": None}]),
        (200, [{"id": "b", "primary_focus": "Fitness"}]),
        (200, [{"id": "a", "partner_id": "b"}]),
        (200, []),
        (200, [{"id": "a", "partner_id": None}]),
    ])

    with pytest.raises(MatchWriteFailed):
        PartnerMatcher.match(supabase_store(script), "a", "Fitness")
    assert len(script.requests) == 5


def test_supabase_stops_when_user_was_matched_concurrently():
    script = ScriptedPostgrest([
        (200, [{"id": "a", "partner_id": None}]),
        (200, [{"id": "c", "primary_focus": "Fitness"}]),
        (200, []),
    ])

    assert PartnerMatcher.match(supabase_store(script), "a", "Fitness") is None
    assert len(script.requests) == 3


def test_supabase_candidate_query_filters():
    script = ScriptedPostgrest([
        (200, [{"id": "a", "partner_id": None}]),
        (200, []),
    ])

    assert PartnerMatcher.match(supabase_store(script), "a", "Fitness") is None

    search = script.requests[1].url.params
    assert search.get_list("primary_focus") == ["eq.Fitness"]
    assert search.get_list("partner_id") == ["is.null"]
    assert search.get_list("id") == ["neq.a"]
    assert search["limit"] == "1"
    assert search["order"] == "created_at.asc,id.asc"


def test_supabase_lookup_error_raises_lookup_failed():
    script = ScriptedPostgrest([(503, {"message": "unavailable"})])
    with pytest.raises(LookupFailed):
        PartnerMatcher.match(supabase_store(script), "a", "Fitness")


def test_month_helpers():
    assert month_string(date(2026, 3, 5)) == "2026-03"
    assert is_last_day_of_month(date(2026, 2, 28))
    assert is_last_day_of_month(date(2024, 12, 31))
    assert not is_last_day_of_month(date(2024, 2, 28))
