"""
Patient repository tests - dual-store behavior, id assignment and fallback
"""
import asyncio
import json
import pytest

from patient_registration.core.errors import FallbackWriteFailed, ValidationError
from patient_registration.database.schemas import Patient, PatientInput, StoreMode
from patient_registration.database.store import PatientStore
from patient_registration.database.storage import LocalFallbackStore
from patient_registration.services.repository import PatientRepository, next_patient_id


def run(coro):
    return asyncio.run(coro)


def form(name="Maria Garcia", age=38, gender="Female", phone="555-222-3333"):
    return PatientInput(name=name, age=age, gender=gender, phoneNumber=phone)


def mirror_ids(tmp_path):
    with open(tmp_path / "patients.json", 'r') as f:
        return [entry["id"] for entry in json.load(f)]


def test_next_patient_id():
    def patient(patient_id):
        return Patient(id=patient_id, name="P", age=1, gender="Other", phone_number="1")

    assert next_patient_id([]) == 1
    assert next_patient_id([patient(3), patient(7), patient(2)]) == 8


def test_db_backed_load_reads_database_and_writes_mirror(tmp_path):
    async def scenario():
        store = await PatientStore.open(":memory:")
        repository = PatientRepository(store, LocalFallbackStore(str(tmp_path)))
        try:
            patients = await repository.load()
            return repository.mode, patients
        finally:
            store.close()

    mode, patients = run(scenario())
    assert mode is StoreMode.DB_BACKED
    assert [p.id for p in patients] == [1, 2, 3]
    assert mirror_ids(tmp_path) == [1, 2, 3]


def test_fallback_only_without_store(tmp_path):
    async def scenario():
        repository = PatientRepository(None, LocalFallbackStore(str(tmp_path)))
        await repository.load()
        first = await repository.add(form())
        return repository, first

    repository, first = run(scenario())
    assert repository.mode is StoreMode.FALLBACK_ONLY
    assert repository.using_fallback
    assert first.id == 1
    assert mirror_ids(tmp_path) == [1]


def test_add_in_db_mode_assigns_next_id_and_round_trips(tmp_path):
    async def scenario():
        store = await PatientStore.open(":memory:")
        repository = PatientRepository(store, LocalFallbackStore(str(tmp_path)))
        try:
            await repository.load()
            added = await repository.add(form(name="  Maria Garcia  ", phone=" 555-222-3333 "))
            rows = await store.execute('SELECT * FROM "patient" WHERE id = ?', (added.id,))
            return added, rows, repository.patients
        finally:
            store.close()

    added, rows, snapshot = run(scenario())
    assert added.id == 4
    assert added.name == "Maria Garcia"
    assert rows == [{
        "id": 4,
        "name": "Maria Garcia",
        "age": 38,
        "gender": "Female",
        "phone_number": "555-222-3333",
    }]
    assert [p.id for p in snapshot] == [1, 2, 3, 4]
    assert mirror_ids(tmp_path) == [1, 2, 3, 4]


def test_add_rejects_blank_fields(tmp_path):
    async def scenario():
        repository = PatientRepository(None, LocalFallbackStore(str(tmp_path)))
        await repository.add(PatientInput(name="   ", age=None, gender="Male", phone_number="555"))

    with pytest.raises(ValidationError) as excinfo:
        run(scenario())
    assert excinfo.value.fields == ["name", "age"]
    assert "Please fill in all fields" in str(excinfo.value)


def test_add_accepts_age_zero(tmp_path):
    async def scenario():
        repository = PatientRepository(None, LocalFallbackStore(str(tmp_path)))
        return await repository.add(form(age=0))

    assert run(scenario()).age == 0


def test_remove_in_db_mode(tmp_path):
    async def scenario():
        store = await PatientStore.open(":memory:")
        repository = PatientRepository(store, LocalFallbackStore(str(tmp_path)))
        try:
            await repository.load()
            await repository.remove(2)
            await repository.remove(42)
            return await repository.list_patients()
        finally:
            store.close()

    patients = run(scenario())
    assert [p.id for p in patients] == [1, 3]
    assert mirror_ids(tmp_path) == [1, 3]


@pytest.mark.parametrize("use_database", [True, False])
def test_add_remove_sequence_lists_survivors_in_id_order(tmp_path, use_database):
    """list() returns exactly what was added minus what was removed"""
    async def scenario():
        store = await PatientStore.open(":memory:") if use_database else None
        repository = PatientRepository(store, LocalFallbackStore(str(tmp_path)))
        try:
            await repository.load()
            expected = {p.id for p in repository.patients}
            for name in ("A", "B", "C", "D"):
                expected.add((await repository.add(form(name=name))).id)
            for patient_id in (min(expected), max(expected) - 1):
                await repository.remove(patient_id)
                expected.discard(patient_id)
            expected.add((await repository.add(form(name="E"))).id)
            return expected, await repository.list_patients()
        finally:
            if store is not None:
                store.close()

    expected, patients = run(scenario())
    ids = [p.id for p in patients]
    assert ids == sorted(expected)
    assert mirror_ids(tmp_path) == ids


def test_read_failure_falls_back_to_last_written_mirror(tmp_path):
    """Writes made while DB-backed survive a switch to the local mirror"""
    async def scenario():
        store = await PatientStore.open(":memory:")
        repository = PatientRepository(store, LocalFallbackStore(str(tmp_path)))
        await repository.load()
        added = await repository.add(form())
        store.close()

        patients = await repository.list_patients()
        return repository.mode, added, patients

    mode, added, patients = run(scenario())
    assert mode is StoreMode.FALLBACK_ONLY
    assert [p.id for p in patients] == [1, 2, 3, added.id]
    assert patients[-1] == added


def test_write_failure_completes_on_fallback_and_never_switches_back(tmp_path):
    async def scenario():
        store = await PatientStore.open(":memory:")
        repository = PatientRepository(store, LocalFallbackStore(str(tmp_path)))
        await repository.load()
        store.close()

        added = await repository.add(form())
        await repository.remove(1)
        refreshed = await repository.refresh()
        return repository, added, refreshed

    repository, added, refreshed = run(scenario())
    assert repository.mode is StoreMode.FALLBACK_ONLY
    assert added.id == 4
    assert refreshed is False
    assert mirror_ids(tmp_path) == [2, 3, 4]


def test_load_falls_back_to_mirror_when_database_read_fails(tmp_path):
    mirror = LocalFallbackStore(str(tmp_path))
    mirror.save([Patient(id=5, name="Cached", age=50, gender="Male", phone_number="555")])

    async def scenario():
        store = await PatientStore.open(":memory:")
        store.close()
        repository = PatientRepository(store, mirror)
        return repository, await repository.load()

    repository, patients = run(scenario())
    assert repository.using_fallback
    assert [p.name for p in patients] == ["Cached"]


def test_refresh_picks_up_external_writes(tmp_path):
    async def scenario():
        store = await PatientStore.open(":memory:")
        repository = PatientRepository(store, LocalFallbackStore(str(tmp_path)))
        try:
            await repository.load()
            await store.execute(
                'INSERT INTO "patient" (id, name, age, gender, phone_number) VALUES (?, ?, ?, ?, ?)',
                (9, "Walk In", 70, "Male", "555-9"),
            )
            refreshed = await repository.refresh()
            return refreshed, repository.patients
        finally:
            store.close()

    refreshed, patients = run(scenario())
    assert refreshed is True
    assert [p.id for p in patients] == [1, 2, 3, 9]
    assert mirror_ids(tmp_path) == [1, 2, 3, 9]


def test_refresh_skips_while_operation_in_flight(tmp_path):
    async def scenario():
        store = await PatientStore.open(":memory:")
        repository = PatientRepository(store, LocalFallbackStore(str(tmp_path)))
        try:
            await repository.load()
            async with repository._lock:
                return await repository.refresh()
        finally:
            store.close()

    assert run(scenario()) is False


def test_refresh_does_not_clobber_concurrent_add(tmp_path):
    """A refresh racing an add never leaves the snapshot without the new row"""
    async def scenario():
        store = await PatientStore.open(":memory:")
        repository = PatientRepository(store, LocalFallbackStore(str(tmp_path)))
        try:
            await repository.load()
            added, _ = await asyncio.gather(repository.add(form()), repository.refresh())
            return added, repository.patients
        finally:
            store.close()

    added, patients = run(scenario())
    assert added.id in [p.id for p in patients]


def test_mirror_write_failure_is_tolerated_while_db_backed(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file in the way")

    async def scenario():
        store = await PatientStore.open(":memory:")
        repository = PatientRepository(store, LocalFallbackStore(str(blocker)))
        try:
            await repository.load()
            added = await repository.add(form())
            return repository.mode, added
        finally:
            store.close()

    mode, added = run(scenario())
    assert mode is StoreMode.DB_BACKED
    assert added.id == 4


def test_mirror_write_failure_is_surfaced_in_fallback_mode(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("file in the way")

    async def scenario():
        repository = PatientRepository(None, LocalFallbackStore(str(blocker)))
        with pytest.raises(FallbackWriteFailed):
            await repository.add(form())
        return repository.patients

    # Snapshot is left untouched when the only store rejects the write
    assert run(scenario()) == []


def test_invalid_database_row_falls_back_on_list(tmp_path):
    async def scenario():
        store = await PatientStore.open(":memory:")
        repository = PatientRepository(store, LocalFallbackStore(str(tmp_path)))
        try:
            await repository.load()
            await store.execute(
                'INSERT INTO "patient" (id, name, age, gender, phone_number) VALUES (?, ?, ?, ?, ?)',
                (0, "Bad", 1, "M", "1"),
            )
            patients = await repository.list_patients()
            return repository.mode, patients
        finally:
            store.close()

    mode, patients = run(scenario())
    assert mode is StoreMode.FALLBACK_ONLY
    assert [p.id for p in patients] == [1, 2, 3]


def test_remove_reports_whether_patient_existed(tmp_path):
    async def scenario(store):
        repository = PatientRepository(store, LocalFallbackStore(str(tmp_path)))
        await repository.load()
        return await repository.remove(3), await repository.remove(3), repository.patients

    async def with_database():
        store = await PatientStore.open(":memory:")
        try:
            return await scenario(store)
        finally:
            store.close()

    removed, removed_again, patients = run(with_database())
    assert (removed, removed_again) == (True, False)
    assert [p.id for p in patients] == [1, 2]

    removed, removed_again, patients = run(scenario(None))
    assert (removed, removed_again) == (True, False)
    assert [p.id for p in patients] == [1, 2]
