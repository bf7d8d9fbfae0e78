from __future__ import annotations

import copy
import json
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import pytest

from pinkdiary.core.codec import compress
from pinkdiary.core.container import FullScope, MonthlyScope, build_container, dump_container
from pinkdiary.domain.enums import Collection, RestoreState, RestoreStatus, ScopeKind
from pinkdiary.domain.errors import CodecError, InvalidFormat, StoreMutationError
from pinkdiary.services.guard import OperationGuard
from pinkdiary.services.profile import ProfileState
from pinkdiary.services.restores import RestoreService, RestoreSummary, confirm_with
from pinkdiary.services.store import DiaryStore, SqlAlchemyDiaryStore


class InMemoryStore(DiaryStore):
    """List-backed store; unlike SQL it can hold diaries without an id."""

    def __init__(self, diaries: Optional[List[dict]] = None, settings: Optional[Dict[str, Any]] = None) -> None:
        self.diaries: List[dict] = copy.deepcopy(diaries or [])
        self.settings: Dict[str, Any] = dict(settings or {})
        self.on_upsert: Optional[Callable[[], Awaitable[None]]] = None
        self.fail_upsert = False
        self.calls: List[str] = []

    def snapshot(self) -> tuple:
        return copy.deepcopy(self.diaries), dict(self.settings)

    def _next_id(self) -> int:
        return max((d["id"] for d in self.diaries if d.get("id") is not None), default=0) + 1

    async def get_all(self, collection: Collection) -> List[dict]:
        if collection == Collection.DIARIES:
            return copy.deepcopy(self.diaries)
        return [{"key": k, "value": v} for k, v in sorted(self.settings.items())]

    async def get_range(self, collection, field, lower, upper, include_lower=True, include_upper=True):
        self.calls.append(f"get_range:{lower}:{upper}")
        out = []
        for record in self.diaries:
            value = record[field][:10] if field == "date" else record[field]
            if include_lower and value < lower or not include_lower and value <= lower:
                continue
            if include_upper and value > upper or not include_upper and value >= upper:
                continue
            out.append(copy.deepcopy(record))
        return out

    async def bulk_upsert(self, collection: Collection, records: Iterable[dict]) -> int:
        self.calls.append(f"bulk_upsert:{collection.value}")
        if self.on_upsert is not None:
            hook, self.on_upsert = self.on_upsert, None
            await hook()
        if self.fail_upsert:
            raise RuntimeError("disk full")
        count = 0
        for record in records:
            count += 1
            if collection == Collection.SETTINGS:
                self.settings[record["key"]] = record.get("value")
                continue
            record = copy.deepcopy(record)
            if record.get("id") is None:
                record["id"] = self._next_id()
            self.diaries = [d for d in self.diaries if d.get("id") != record["id"]]
            self.diaries.append(record)
        return count

    async def bulk_delete(self, collection: Collection, ids: Iterable[Any]) -> int:
        wanted = set(ids)
        self.calls.append(f"bulk_delete:{sorted(wanted)}")
        before = len(self.diaries)
        self.diaries = [d for d in self.diaries if d.get("id") is None or d["id"] not in wanted]
        return before - len(self.diaries)

    async def clear(self, collection: Collection) -> int:
        self.calls.append(f"clear:{collection.value}")
        if collection == Collection.DIARIES:
            count, self.diaries = len(self.diaries), []
        else:
            count, self.settings = len(self.settings), {}
        return count

    async def get_setting(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)

    async def set_setting(self, key: str, value: Any) -> None:
        self.settings[key] = value


def _diary(diary_id: Optional[int], date: str, content: str = "") -> dict:
    return {
        "id": diary_id,
        "date": date,
        "year": int(date[:4]),
        "content": content or f"entry {date}",
        "mood": "😊",
        "images": [],
        "tags": [],
    }


def _artifact(scope, diaries, settings=None) -> str:
    return compress(dump_container(build_container(scope, diaries, settings)))


MARCH = [_diary(1, "2024-03-02T10:00:00.000Z"), _diary(2, "2024-03-31T22:00:00.000Z")]
APRIL = [_diary(3, "2024-04-01T00:00:00.000Z"), _diary(4, "2024-04-20")]
SETTINGS = {"user_name": "Hana", "user_avatar": "🐰"}


@pytest.fixture
def mem_store() -> InMemoryStore:
    return InMemoryStore(MARCH + APRIL, SETTINGS)


@pytest.mark.asyncio
async def test_monthly_restore_replaces_only_that_month(mem_store: InMemoryStore) -> None:
    artifact = _artifact(
        MonthlyScope(2024, 3),
        [_diary(1, "2024-03-02T10:00:00.000Z", "rewritten"), _diary(10, "2024-03-15")],
    )
    svc = RestoreService(mem_store, confirm_with(True))

    result = await svc.restore(artifact)

    assert result is not None
    assert result.status == RestoreStatus.RESTORED
    assert result.restored_count == 2
    assert result.deleted_count == 2
    assert svc.state == RestoreState.DONE

    by_id = {d["id"]: d for d in mem_store.diaries}
    assert sorted(by_id) == [1, 3, 4, 10]
    assert by_id[1]["content"] == "rewritten"
    assert [by_id[3], by_id[4]] == APRIL
    assert mem_store.settings == SETTINGS


@pytest.mark.asyncio
async def test_monthly_range_comes_from_header_not_payload(mem_store: InMemoryStore) -> None:
    # Payload record dated April inside a March container
    artifact = _artifact(MonthlyScope(2024, 3), [_diary(30, "2024-04-20", "stray")])
    svc = RestoreService(mem_store, confirm_with(True))

    await svc.restore(artifact)

    assert "get_range:2024-03-01:2024-03-31" in mem_store.calls
    ids = sorted(d["id"] for d in mem_store.diaries)
    assert ids == [3, 4, 30]


@pytest.mark.asyncio
async def test_monthly_restore_skips_records_without_id() -> None:
    orphan = _diary(None, "2024-03-05", "no id yet")
    store = InMemoryStore([orphan] + MARCH)
    svc = RestoreService(store, confirm_with(True))

    await svc.restore(_artifact(MonthlyScope(2024, 3), [_diary(7, "2024-03-09")]))

    assert "bulk_delete:[1, 2]" in store.calls
    contents = sorted(d["content"] for d in store.diaries)
    assert contents == ["entry 2024-03-09", "no id yet"]


@pytest.mark.asyncio
async def test_full_restore_replaces_everything_and_reloads_profile(mem_store: InMemoryStore) -> None:
    profile = ProfileState()
    await profile.reload(mem_store)
    assert profile.user_name == "Hana"

    restored = [_diary(100, "2022-01-01"), _diary(101, "2022-07-07")]
    settings = [{"key": "user_name", "value": "Mika"}, {"key": "bg_is_image", "value": True}]
    svc = RestoreService(mem_store, confirm_with(True), profile=profile)

    result = await svc.restore(_artifact(FullScope(), restored, settings))

    assert result.status == RestoreStatus.RESTORED
    assert result.summary.kind == ScopeKind.FULL
    assert mem_store.diaries == restored
    assert mem_store.settings == {"user_name": "Mika", "bg_is_image": True}
    assert profile.user_name == "Mika"
    assert profile.bg_is_image is True
    # Removed settings fall back to defaults
    assert profile.user_avatar == "🌸"


@pytest.mark.asyncio
async def test_legacy_version_one_is_full_restore(mem_store: InMemoryStore) -> None:
    legacy = json.dumps(
        {
            "version": 1,
            "timestamp": "2023-05-01T00:00:00.000Z",
            "diaries": [_diary(50, "2024-03-10")],
            "settings": [{"key": "user_name", "value": "Old"}],
        }
    )
    seen: List[RestoreSummary] = []

    async def confirm(summary: RestoreSummary) -> bool:
        seen.append(summary)
        return True

    svc = RestoreService(mem_store, confirm)
    await svc.restore(compress(legacy))

    assert seen[0].kind == ScopeKind.FULL
    assert seen[0].created_at == "2023-05-01T00:00:00.000Z"
    assert [d["id"] for d in mem_store.diaries] == [50]
    assert mem_store.settings == {"user_name": "Old"}


@pytest.mark.asyncio
async def test_cancelled_restore_changes_nothing(mem_store: InMemoryStore) -> None:
    before = mem_store.snapshot()
    seen: List[RestoreSummary] = []

    async def decline(summary: RestoreSummary) -> bool:
        seen.append(summary)
        return False

    svc = RestoreService(mem_store, decline)
    result = await svc.restore(_artifact(MonthlyScope(2024, 3), [_diary(9, "2024-03-09")]))

    assert result.status == RestoreStatus.CANCELLED
    assert svc.state == RestoreState.CANCELLED
    assert (seen[0].year, seen[0].month, seen[0].diary_count) == (2024, 3, 1)
    assert mem_store.snapshot() == before


@pytest.mark.asyncio
@pytest.mark.parametrize("artifact", [b"definitely not gzip", "", "H4sIAAAAAAAA"])
async def test_malformed_artifact_never_touches_store(mem_store: InMemoryStore, artifact) -> None:
    before = mem_store.snapshot()
    asked = []

    async def confirm(summary: RestoreSummary) -> bool:
        asked.append(summary)
        return True

    svc = RestoreService(mem_store, confirm)
    with pytest.raises(CodecError):
        await svc.restore(artifact)

    assert svc.state == RestoreState.FAILED
    assert asked == []
    assert mem_store.snapshot() == before
    assert mem_store.calls == []


@pytest.mark.asyncio
async def test_invalid_container_never_touches_store(mem_store: InMemoryStore) -> None:
    before = mem_store.snapshot()
    svc = RestoreService(mem_store, confirm_with(True))

    with pytest.raises(InvalidFormat):
        await svc.restore(compress(json.dumps({"version": 2, "type": "monthly"})))

    assert svc.state == RestoreState.FAILED
    assert mem_store.snapshot() == before


@pytest.mark.asyncio
async def test_second_restore_while_applying_is_ignored(mem_store: InMemoryStore) -> None:
    first = _artifact(MonthlyScope(2024, 3), [_diary(20, "2024-03-20", "first")])
    second = _artifact(FullScope(), [_diary(99, "2020-01-01", "second")], [])
    svc = RestoreService(mem_store, confirm_with(True))
    nested_results = []

    async def reenter() -> None:
        assert svc.state == RestoreState.APPLYING
        nested_results.append(await svc.restore(second))

    mem_store.on_upsert = reenter
    result = await svc.restore(first)

    assert nested_results == [None]
    assert result.status == RestoreStatus.RESTORED
    assert sorted(d["id"] for d in mem_store.diaries) == [3, 4, 20]
    assert svc.guard.busy is False


@pytest.mark.asyncio
async def test_busy_guard_shared_between_services(mem_store: InMemoryStore) -> None:
    guard = OperationGuard("restore")
    guard.try_acquire()
    before = mem_store.snapshot()

    svc = RestoreService(mem_store, confirm_with(True), guard=guard)
    assert await svc.restore(_artifact(FullScope(), [], [])) is None
    assert mem_store.snapshot() == before
    assert svc.state == RestoreState.IDLE


@pytest.mark.asyncio
async def test_mutation_failure_is_reported_not_rolled_back(mem_store: InMemoryStore) -> None:
    mem_store.fail_upsert = True
    svc = RestoreService(mem_store, confirm_with(True))

    with pytest.raises(StoreMutationError) as excinfo:
        await svc.restore(_artifact(MonthlyScope(2024, 3), [_diary(9, "2024-03-09")]))

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert svc.state == RestoreState.FAILED
    assert svc.guard.busy is False
    # The month was already cleared before the upsert failed
    assert sorted(d["id"] for d in mem_store.diaries) == [3, 4]


@pytest.mark.asyncio
async def test_inspect_does_not_ask_or_mutate(mem_store: InMemoryStore) -> None:
    before = mem_store.snapshot()

    async def never(summary: RestoreSummary) -> bool:
        raise AssertionError("confirmation must not be requested")

    svc = RestoreService(mem_store, never)
    summary = await svc.inspect(_artifact(MonthlyScope(2024, 4), APRIL))

    assert (summary.kind, summary.year, summary.month, summary.diary_count) == (
        ScopeKind.MONTHLY,
        2024,
        4,
        2,
    )
    assert mem_store.snapshot() == before


@pytest.mark.asyncio
async def test_monthly_restore_against_sql_store(
    store: SqlAlchemyDiaryStore, make_diary, make_setting
) -> None:
    march_id = make_diary("2024-03-03T08:00:00.000Z", "old march").id
    april_id = make_diary("2024-04-03T08:00:00.000Z", "april").id
    make_setting("user_name", "Hana")

    artifact = _artifact(
        MonthlyScope(2024, 3),
        [_diary(march_id, "2024-03-03T08:00:00.000Z", "new march"), _diary(None, "2024-03-04")],
    )
    svc = RestoreService(store, confirm_with(True))
    result = await svc.restore(artifact)

    assert result.restored_count == 2
    rows = await store.get_all(Collection.DIARIES)
    contents = {r["content"] for r in rows}
    assert contents == {"new march", "entry 2024-03-04", "april"}
    assert any(r["id"] == april_id for r in rows)
    assert await store.get_setting("user_name") == "Hana"


@pytest.mark.asyncio
async def test_full_restore_against_sql_store(store: SqlAlchemyDiaryStore, make_diary, make_setting) -> None:
    make_diary("2021-01-01", "gone")
    make_setting("sqlite_path", "Documents/PinkDiary/Data/")

    artifact = _artifact(FullScope(), [_diary(5, "2024-02-02", "kept")], [{"key": "user_name", "value": "Mika"}])
    await RestoreService(store, confirm_with(True)).restore(artifact)

    rows = await store.get_all(Collection.DIARIES)
    assert [(r["id"], r["content"]) for r in rows] == [(5, "kept")]
    assert await store.get_all(Collection.SETTINGS) == [{"key": "user_name", "value": "Mika"}]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "doc",
    [
        {"version": 1, "diaries": [{"id": 1, "content": "no date"}], "settings": []},
        {"version": 2, "diaries": [_diary(9, "2024-01-01"), {"id": 10, "date": "someday"}], "settings": []},
        {"version": 2, "diaries": [], "settings": [{"key": 3, "value": "x"}]},
        {"version": 2, "type": "monthly", "year": 2024, "month": 3, "diaries": [{"id": 5, "date": None}]},
        {
            "version": 2,
            "type": "monthly",
            "year": 2024,
            "month": 3,
            "diaries": [_diary(5, "2024-03-05"), {"id": 6, "date": "2024-03-06", "images": "not-a-list"}],
        },
    ],
)
async def test_bad_record_is_rejected_before_any_write(
    store: SqlAlchemyDiaryStore, make_diary, make_setting, doc: dict
) -> None:
    make_diary("2024-03-03T08:00:00.000Z", "keep me")
    make_setting("user_name", "Hana")
    asked = []

    async def confirm(summary: RestoreSummary) -> bool:
        asked.append(summary)
        return True

    svc = RestoreService(store, confirm)
    with pytest.raises(InvalidFormat):
        await svc.restore(compress(json.dumps(doc)))

    assert svc.state == RestoreState.FAILED
    assert asked == []
    assert [r["content"] for r in await store.get_all(Collection.DIARIES)] == ["keep me"]
    assert await store.get_all(Collection.SETTINGS) == [{"key": "user_name", "value": "Hana"}]


@pytest.mark.asyncio
async def test_inspect_rejects_bad_artifact_without_changing_state(
    mem_store: InMemoryStore, caplog: pytest.LogCaptureFixture
) -> None:
    svc = RestoreService(mem_store, confirm_with(True))

    with caplog.at_level("WARNING", logger="pinkdiary.services.restores"):
        with pytest.raises(CodecError):
            await svc.inspect(b"not a backup")
        with pytest.raises(InvalidFormat):
            await svc.inspect(compress(json.dumps({"diaries": [{"id": 1}]})))

    assert svc.state == RestoreState.IDLE
    assert sum("restore_rejected" in r.getMessage() for r in caplog.records) == 2
    assert mem_store.calls == []
