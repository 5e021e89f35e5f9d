from __future__ import annotations

from pathlib import Path

import pytest

from copy_studio.exceptions import CorruptLaunch, DocumentNotFound, InvalidRequest, LaunchNotFound, ProductNotFound
from copy_studio.schemas import LaunchCreateRequest, PersonaId, Product
from copy_studio.storage import LaunchStore, ProductCatalog, TrainingLibrary, slugify


def test_slugify() -> None:
    assert slugify("  Miracle Balm: Spring '26 ") == "miracle-balm-spring-26"


def test_launch_store_round_trip(tmp_path: Path) -> None:
    store = LaunchStore(tmp_path / "launches")

    first = store.create(LaunchCreateRequest(id="first", name="First", tier="tier-3"))
    second = store.create(LaunchCreateRequest(name="Second Launch", tier="tier-1"))

    assert store.get("first") == first
    assert [launch.id for launch in store.list()] == ["first", second.id]
    assert (tmp_path / "launches" / "first.json").is_file()


@pytest.mark.parametrize("launch_id", ["missing", "../escape", ""])
def test_launch_store_unknown_ids(tmp_path: Path, launch_id: str) -> None:
    with pytest.raises(LaunchNotFound):
        LaunchStore(tmp_path).get(launch_id)


def test_empty_launch_store_lists_nothing(tmp_path: Path) -> None:
    assert LaunchStore(tmp_path / "nowhere").list() == []


def test_product_upsert_and_delete(tmp_path: Path) -> None:
    catalog = ProductCatalog(tmp_path / "products" / "products.json")

    created = catalog.upsert(Product(name="Miracle Balm", price="$38"))
    catalog.upsert(Product(name="Face Pencil"))
    updated = catalog.upsert(Product(id="miracle-balm", name="Miracle Balm", price="$40", launchTier="tier-1"))

    assert created.id == "miracle-balm"
    assert [product.id for product in catalog.list()] == ["miracle-balm", "face-pencil"]
    assert catalog.list()[0].price == "$40"
    assert catalog.list()[0].model_extra == {"launchTier": "tier-1"}
    assert updated.price == "$40"

    catalog.delete("face-pencil")
    assert [product.id for product in catalog.list()] == ["miracle-balm"]


def test_product_delete_errors(tmp_path: Path) -> None:
    catalog = ProductCatalog(tmp_path / "products.json")

    with pytest.raises(InvalidRequest):
        catalog.delete("")
    with pytest.raises(ProductNotFound):
        catalog.delete("ghost")


def test_training_library_write_read_list(tmp_path: Path) -> None:
    library = TrainingLibrary(tmp_path)

    library.write("brand/voice.md", "# Voice\nWarm and direct.")
    library.write("personas/the-dedicated-educator.md", "# Educator")

    assert library.read("brand/voice.md").content == "# Voice\nWarm and direct."
    assert [item.path for item in library.list_files()] == [
        "brand/voice.md",
        "personas/the-dedicated-educator.md",
    ]
    assert [item.name for item in library.list_files("personas")] == ["the-dedicated-educator.md"]
    assert library.load_persona(PersonaId.DEDICATED_EDUCATOR) == "# Educator"


@pytest.mark.parametrize("path", ["secrets/notes.md", "personas/../../outside.md", "../outside.md"])
def test_training_library_rejects_paths_outside_categories(tmp_path: Path, path: str) -> None:
    with pytest.raises(InvalidRequest):
        TrainingLibrary(tmp_path / "data").write(path, "nope")


def test_training_library_missing_documents(tmp_path: Path) -> None:
    library = TrainingLibrary(tmp_path)

    with pytest.raises(DocumentNotFound):
        library.read("brand/missing.md")
    with pytest.raises(InvalidRequest):
        library.list_files("../")
    assert library.load_persona(PersonaId.AGELESS_MATRIARCH) == ""


def test_corrupt_launch_document(tmp_path: Path) -> None:
    store = LaunchStore(tmp_path)
    (tmp_path / "broken.json").write_text('{"id": "broken", "tier": "tier-9"', encoding="utf-8")

    with pytest.raises(CorruptLaunch):
        store.get("broken")
    with pytest.raises(CorruptLaunch):
        store.list()


def test_undecodable_persona_document_reads_as_empty(tmp_path: Path) -> None:
    library = TrainingLibrary(tmp_path)
    path = tmp_path / "personas" / "the-ageless-matriarch.md"
    path.parent.mkdir()
    path.write_bytes(b"# Matriarch \xff\xfe\xfa")

    assert library.load_persona(PersonaId.AGELESS_MATRIARCH) == ""
