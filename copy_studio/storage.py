"""File-backed stores for launches, products and training documents."""

from __future__ import annotations

import json
import os
import re
import uuid
from pathlib import Path
from typing import List, Optional

import structlog
from pydantic import ValidationError

from .exceptions import CorruptLaunch, DocumentNotFound, InvalidRequest, LaunchNotFound, ProductNotFound
from .profiles import persona_profile
from .schemas import GTMLaunch, LaunchCreateRequest, PersonaId, Product, TrainingFile, TrainingFileContent

logger = structlog.get_logger(__name__)

SAFE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
TRAINING_CATEGORIES = (
    "brand",
    "brand-voice",
    "personas",
    "frameworks",
    "channels",
    "products",
    "reviews",
    "performance",
    "compliance",
)
TRAINING_SUFFIXES = {".md", ".txt", ".json"}


def slugify(name: str) -> str:
    """Derive an identifier from a display name."""

    slug = re.sub(r"\s+", "-", name.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


def _write_atomically(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    tmp_path.write_text(content, encoding="utf-8")
    os.replace(tmp_path, path)


class LaunchStore:
    """One JSON document per launch; every write replaces the whole document."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _path(self, launch_id: str) -> Path:
        if not SAFE_ID_RE.match(launch_id):
            raise LaunchNotFound(launch_id)
        return self.root / f"{launch_id}.json"

    def _load(self, path: Path) -> GTMLaunch:
        try:
            return GTMLaunch.model_validate_json(path.read_text(encoding="utf-8"))
        except (ValidationError, UnicodeDecodeError) as exc:
            logger.error("launch_document_corrupt", path=str(path), error=str(exc))
            raise CorruptLaunch(path.stem, "stored document is not a valid launch") from exc

    def list(self) -> List[GTMLaunch]:
        if not self.root.is_dir():
            return []
        launches = [self._load(path) for path in self.root.glob("*.json")]
        return sorted(launches, key=lambda launch: (launch.created_at, launch.id))

    def get(self, launch_id: str) -> GTMLaunch:
        path = self._path(launch_id)
        if not path.is_file():
            raise LaunchNotFound(launch_id)
        return self._load(path)

    def put(self, launch: GTMLaunch) -> GTMLaunch:
        _write_atomically(self._path(launch.id), launch.model_dump_json(by_alias=True, indent=2))
        return launch

    def create(self, request: LaunchCreateRequest) -> GTMLaunch:
        if request.id and not SAFE_ID_RE.match(request.id):
            raise InvalidRequest(f"Invalid launch id '{request.id}'")
        launch_id = request.id or f"{slugify(request.name) or 'launch'}-{uuid.uuid4().hex[:8]}"
        launch = GTMLaunch.model_validate(
            {**request.model_dump(exclude={"id"}), "id": launch_id}
        )
        logger.info("launch_created", launch_id=launch.id, tier=launch.tier.value)
        return self.put(launch)


class ProductCatalog:
    """Product records persisted as a JSON list."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def list(self) -> List[Product]:
        if not self.path.is_file():
            return []
        return [Product.model_validate(item) for item in json.loads(self.path.read_text(encoding="utf-8"))]

    def _save(self, products: List[Product]) -> None:
        payload = [product.model_dump(mode="json", by_alias=True) for product in products]
        _write_atomically(self.path, json.dumps(payload, indent=2))

    def upsert(self, product: Product) -> Product:
        """Insert *product*, or replace the entry with the same id."""

        if not product.id:
            product = product.model_copy(update={"id": slugify(product.name)})
        products = self.list()
        for index, existing in enumerate(products):
            if existing.id == product.id:
                products[index] = product
                break
        else:
            products.append(product)
        self._save(products)
        return product

    def delete(self, product_id: str) -> None:
        if not product_id:
            raise InvalidRequest("Product ID required")
        products = self.list()
        remaining = [product for product in products if product.id != product_id]
        if len(remaining) == len(products):
            raise ProductNotFound(product_id)
        self._save(remaining)


class TrainingLibrary:
    """Markdown training documents grouped by category directory."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _resolve(self, relative_path: str) -> Path:
        candidate = (self.root / relative_path).resolve()
        root = self.root.resolve()
        if root not in candidate.parents:
            raise InvalidRequest(f"Path '{relative_path}' is outside the training library")
        return candidate

    def list_files(self, category: Optional[str] = None) -> List[TrainingFile]:
        if category and category not in TRAINING_CATEGORIES:
            raise InvalidRequest(f"Unknown training category '{category}'")
        categories = [category] if category else list(TRAINING_CATEGORIES)
        files: List[TrainingFile] = []
        for name in categories:
            directory = self.root / name
            if not directory.is_dir():
                continue
            for path in sorted(directory.iterdir()):
                if path.is_file() and path.suffix in TRAINING_SUFFIXES:
                    files.append(
                        TrainingFile(
                            name=path.name,
                            path=path.relative_to(self.root).as_posix(),
                            category=name,
                        )
                    )
        return files

    def read(self, relative_path: str) -> TrainingFileContent:
        path = self._resolve(relative_path)
        if not path.is_file():
            raise DocumentNotFound(relative_path)
        return TrainingFileContent(path=relative_path, content=path.read_text(encoding="utf-8"))

    def write(self, relative_path: str, content: str) -> TrainingFileContent:
        category = Path(relative_path).parts[0] if Path(relative_path).parts else ""
        if category not in TRAINING_CATEGORIES:
            raise InvalidRequest(f"Unknown training category '{category}'")
        _write_atomically(self._resolve(relative_path), content)
        logger.info("training_document_saved", path=relative_path)
        return TrainingFileContent(path=relative_path, content=content)

    def load_persona(self, persona_id: PersonaId) -> str:
        """Return the persona document text, or ``""`` when it cannot be read."""

        path = self.root / "personas" / persona_profile(persona_id).document
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("persona_document_unreadable", persona_id=persona_id.value, path=str(path), error=str(exc))
            return ""
