from __future__ import annotations

from pathlib import Path

import pytest
from kungfu import Ok, Error

from orderflow.districts import (
    DatasetEntry,
    DistrictErrorKind,
    DistrictResolver,
    PincodeDataset,
    PostalRecord,
    apply_override,
    build_index,
    is_postal_code,
)
from orderflow.store import MemoryStore


@pytest.mark.parametrize("value", ["500001", "521235"])
def test_postal_code_accepts_six_digits(value: str) -> None:
    assert is_postal_code(value)


@pytest.mark.parametrize("value", ["50001", "5000011", "50000a", " 500001", "５２１２３５", "", None, 500001])
def test_postal_code_rejects_everything_else(value: object) -> None:
    assert not is_postal_code(value)


def test_override_maps_postal_district_to_admin_district() -> None:
    assert apply_override("Andhra Pradesh", "Krishna") == "NTR"
    assert apply_override("Andhra Pradesh", "Guntur") == "Guntur"
    assert apply_override("Kerala", "Krishna") == "Krishna"


def test_build_index_merges_cities_and_skips_bad_rows() -> None:
    index = build_index([
        {"pincode": "521235", "state": "Andhra Pradesh", "district": "Krishna", "city": "Tiruvuru"},
        {"pincode": "521235", "state": "Telangana", "district": "Khammam", "city": "Gampalagudem"},
        {"pincode": "521235", "state": "Andhra Pradesh", "district": "Krishna", "city": "Tiruvuru"},
        {"pincode": "52123", "state": "Andhra Pradesh", "district": "Krishna", "city": "x"},
        {"pincode": "500001", "state": "", "district": "Hyderabad", "city": "Abids"},
    ])

    assert set(index) == {"521235"}
    entry = index["521235"]
    assert (entry.state, entry.postal_district) == ("Andhra Pradesh", "Krishna")
    assert entry.cities == ["Tiruvuru", "Gampalagudem"]


async def test_dataset_wins_over_store() -> None:
    dataset = PincodeDataset.from_entries({
        "521235": DatasetEntry("Andhra Pradesh", "Krishna", ["Tiruvuru"]),
    })
    store = MemoryStore(postal_codes=[PostalRecord("521235", "Telangana", "Khammam", "Sathupally")])
    resolver = DistrictResolver(dataset, fallback=store)

    match await resolver.resolve("521235"):
        case Ok(details):
            assert details.source == "dataset"
            assert details.state == "Andhra Pradesh"
            assert details.postal_district == "Krishna"
            assert details.admin_district == "NTR"
            assert details.single_city == "Tiruvuru"
            assert details.deliverable
        case Error(e):
            raise AssertionError(e)


async def test_store_is_consulted_when_dataset_misses() -> None:
    store = MemoryStore(postal_codes=[PostalRecord("502001", "Telangana", "Medak", "Sangareddy")])
    resolver = DistrictResolver(PincodeDataset(None), fallback=store)

    match await resolver.resolve(" 502001 "):
        case Ok(details):
            assert details.source == "store"
            assert details.admin_district == "Sangareddy"
            assert details.cities == ("Sangareddy",)
        case Error(e):
            raise AssertionError(e)


async def test_resolved_but_not_serviceable() -> None:
    store = MemoryStore(postal_codes=[PostalRecord("110001", "Delhi", "New Delhi")])
    resolver = DistrictResolver(PincodeDataset(None), fallback=store)

    match await resolver.resolve("110001"):
        case Ok(details):
            assert not details.deliverable
            assert details.cities == ()
        case Error(e):
            raise AssertionError(e)


async def test_invalid_format_and_not_found_are_distinct() -> None:
    resolver = DistrictResolver(PincodeDataset(None), fallback=MemoryStore())

    match await resolver.resolve("12ab56"):
        case Error(e):
            assert e.kind is DistrictErrorKind.INVALID_FORMAT
            assert e.message == "Pincode must be exactly 6 digits"
        case Ok(_):
            raise AssertionError("expected invalid format")

    match await resolver.resolve("999999"):
        case Error(e):
            assert e.kind is DistrictErrorKind.NOT_FOUND
        case Ok(_):
            raise AssertionError("expected not found")


async def test_dataset_loads_csv_once(tmp_path: Path) -> None:
    path = tmp_path / "pincodes.csv"
    path.write_text(
        "pincode,state,district,city\n"
        "500001,Telangana,Hyderabad,Abids\n",
        encoding="utf-8",
    )
    dataset = PincodeDataset(path)
    assert not dataset.loaded

    entry = await dataset.lookup("500001")
    assert entry is not None and entry.cities == ["Abids"]
    assert dataset.loaded

    path.unlink()
    assert await dataset.lookup("500001") is not None


async def test_missing_dataset_file_is_an_empty_index(tmp_path: Path) -> None:
    dataset = PincodeDataset(tmp_path / "absent.csv")
    assert await dataset.lookup("500001") is None
