from camphub.cache import CacheTTL, cache
from camphub.cache_utils import (
    get_cached_camp,
    get_cached_camp_registrations,
    get_cached_camps,
    get_cached_org_camps,
    get_cached_organization,
    invalidate_camp_caches,
    invalidate_organization_caches,
)
from camphub.models import Camp
from tests.testkit import create_camp, create_organization


def test_camp_is_served_from_cache_after_first_read(db, fake_redis):
    org_id = create_organization()
    camp_id = create_camp(org_id, name="Original")

    first = get_cached_camp(db, camp_id)
    assert first["name"] == "Original"
    assert first["schedules"][0]["start_time"] == "09:00"
    assert fake_redis.ttl_of(f"camp:{camp_id}") == CacheTTL.MEDIUM

    # A write that skips invalidation stays invisible until the key is dropped
    db.query(Camp).filter(Camp.id == camp_id).update({"name": "Renamed"})
    db.commit()
    assert get_cached_camp(db, camp_id)["name"] == "Original"

    invalidate_camp_caches(camp_id)
    assert get_cached_camp(db, camp_id)["name"] == "Renamed"


def test_missing_camp_is_not_cached(db, fake_redis):
    assert get_cached_camp(db, 999) is None
    assert fake_redis.get("camp:999") is None


def test_camp_list_ttl_depends_on_filters(db, fake_redis):
    org_id = create_organization()
    create_camp(org_id)

    get_cached_camps(db, {"organization_id": org_id})
    plain_key = f"camps:list:include_deleted=false&organization_id={org_id}:page=1&page_size=20"
    assert fake_redis.ttl_of(plain_key) == CacheTTL.MEDIUM

    get_cached_camps(db, {"organization_id": org_id, "status": "upcoming"})
    status_key = (
        f"camps:list:include_deleted=false&organization_id={org_id}&status=upcoming:page=1&page_size=20"
    )
    assert fake_redis.ttl_of(status_key) == CacheTTL.SHORT

    results = get_cached_camps(db, {"search": "soccer"})
    assert [camp["name"] for camp in results] == ["Spring Soccer"]
    assert fake_redis.ttl_of("camps:list:include_deleted=false&search=soccer:page=1&page_size=20") == 60


def test_camp_list_filters(db):
    org_id = create_organization()
    create_camp(org_id, name="Public Camp")
    create_camp(org_id, name="Private Camp", visibility="private")
    create_camp(org_id, name="Deleted Camp", is_deleted=True)
    create_camp(org_id, name="Cancelled Camp", is_cancelled=True)

    public = get_cached_camps(db, {"visibility": "public"})
    assert {camp["name"] for camp in public} == {"Public Camp", "Cancelled Camp"}

    cancelled = get_cached_camps(db, {"status": "cancelled"})
    assert [camp["name"] for camp in cancelled] == ["Cancelled Camp"]

    upcoming = get_cached_camps(db, {"organization_id": org_id, "status": "upcoming"})
    assert {camp["name"] for camp in upcoming} == {"Public Camp", "Private Camp"}

    everything = get_cached_org_camps(db, org_id, include_deleted=True)
    assert len(everything) == 4


def test_organization_cache_and_invalidation_is_scoped(db, fake_redis):
    org_id = create_organization("Org Five")
    other_id = create_organization("Org Fifty Five")

    assert get_cached_organization(db, org_id)["name"] == "Org Five"
    assert fake_redis.ttl_of(f"organization:{org_id}") == CacheTTL.LONG

    cache.set(f"camps:list:include_deleted=false&organization_id={org_id}:page=1&page_size=20", [])
    cache.set(f"camps:list:include_deleted=false&organization_id={org_id}:page=3&page_size=50", [])
    cache.set(f"camps:list:organization_id={org_id}&status=active:page=1&page_size=20", [])
    cache.set(f"organization:camps:list:include_deleted=true&organization_id={org_id}:page=1&page_size=100", [])
    other_key = f"camps:list:include_deleted=false&organization_id={other_id}{org_id}:page=1&page_size=20"
    cache.set(other_key, [])
    cache.set(f"camps:list:include_deleted=false&organization_id={other_id}:page=1&page_size=20", [])

    invalidate_organization_caches(org_id)

    remaining = set(fake_redis.keys("*"))
    assert f"organization:{org_id}" not in remaining
    assert not any(f"organization_id={org_id}:" in key or f"organization_id={org_id}&" in key for key in remaining)
    assert other_key in remaining
    assert f"camps:list:include_deleted=false&organization_id={other_id}:page=1&page_size=20" in remaining


def test_registrations_cache_holds_empty_list(db, fake_redis):
    org_id = create_organization()
    camp_id = create_camp(org_id)

    assert get_cached_camp_registrations(db, camp_id) == []
    assert fake_redis.get(f"camp:{camp_id}:registrations") == "[]"
    assert fake_redis.ttl_of(f"camp:{camp_id}:registrations") == CacheTTL.SHORT


def test_invalidate_camp_caches_clears_every_list(fake_redis):
    cache.set("camp:4", {"id": 4})
    cache.set("camp:4:registrations", [])
    cache.set("camps:list:page=1&page_size=20", [])
    cache.set("organization:camps:list:include_deleted=false&organization_id=1:page=1&page_size=100", [])
    cache.set("camp:5", {"id": 5})

    invalidate_camp_caches(4)

    assert set(fake_redis.keys("*")) == {"camp:5"}
