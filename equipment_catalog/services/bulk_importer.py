from __future__ import annotations

import csv
import io
import logging
import unicodedata
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Mapping, Optional, Union

from sqlalchemy.orm import Session

from equipment_catalog.db.models import MAX_LEVEL
from equipment_catalog.services.errors import CatalogError, DuplicateName, LevelMismatch, ValidationFailed
from equipment_catalog.services.hierarchy_resolver import HierarchyResolver
from equipment_catalog.services.integrity_guard import IntegrityGuard, normalize_name
from equipment_catalog.services.type_node_store import TypeNodeStore, translate_store_errors

logger = logging.getLogger(__name__)

LEVEL_FIELDS = ("domain", "type", "category", "subcategory")

# Header names seen in exported spreadsheets, compared after accent/case folding.
_CSV_HEADERS = {
    "domain": 1,
    "domaine": 1,
    "type": 2,
    "category": 3,
    "categorie": 3,
    "subcategory": 4,
    "sub-category": 4,
    "sub category": 4,
    "sub_category": 4,
    "sous-categorie": 4,
    "sous categorie": 4,
    "sous_categorie": 4,
}


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).strip().lower()


@dataclass
class ImportRecord:
    domain: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ImportRecord":
        values = {}
        for name in LEVEL_FIELDS:
            raw = data.get(name)
            values[name] = None if raw is None else str(raw)
        return cls(**values)

    def level_names(self) -> list[str]:
        """Trimmed names from level 1 down, stopping at the first blank."""
        names: list[str] = []
        for name in LEVEL_FIELDS:
            value = (getattr(self, name) or "").strip()
            if not value:
                break
            names.append(value)
        return names


class ImportCache:
    """Composite key -> type node id, alive for one import call only."""

    def __init__(self) -> None:
        self._ids: dict[str, int] = {}

    @staticmethod
    def key(level: int, name: str, parent_id: Optional[int]) -> str:
        return f"{level}:{name}:{parent_id if parent_id is not None else ''}"

    def get(self, key: str) -> Optional[int]:
        return self._ids.get(key)

    def merge(self, staged: Mapping[str, int]) -> None:
        self._ids.update(staged)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, key: object) -> bool:
        return key in self._ids


@dataclass
class RecordOutcome:
    index: int
    status: str
    node_ids: list[int] = field(default_factory=list)
    error: Optional[dict[str, Any]] = None


@dataclass
class ImportResult:
    total: int = 0
    imported: int = 0
    skipped: int = 0
    failed: int = 0
    created: int = 0
    reused: int = 0
    records: list[RecordOutcome] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _unreadable(exc: csv.Error) -> ValidationFailed:
    return ValidationFailed(f"CSV could not be parsed: {exc}", field="csv", constraint="format")


def parse_csv(text: str) -> list[ImportRecord]:
    """Read a header row plus one row per leaf into import records."""
    text = text.lstrip("\ufeff")
    if not text.strip():
        return []

    # Spreadsheet exports in French locales use ';'.
    lines = text.splitlines()
    first_line = lines[0] if lines else ""
    delimiter = max(",;\t", key=first_line.count) if any(d in first_line for d in ",;\t") else ","

    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    try:
        header = next(reader, [])
    except csv.Error as exc:
        raise _unreadable(exc) from exc
    columns: dict[int, int] = {}
    for idx, raw in enumerate(header):
        level = _CSV_HEADERS.get(_fold(raw))
        if level is not None and level not in columns.values():
            columns[idx] = level
    if 1 not in columns.values():
        raise ValidationFailed(
            "CSV header must include a domain column (domain/Domaine)",
            field="csv",
            constraint="header",
        )

    records: list[ImportRecord] = []
    try:
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            values: dict[str, Any] = {}
            for idx, level in columns.items():
                values[LEVEL_FIELDS[level - 1]] = row[idx] if idx < len(row) else None
            records.append(ImportRecord.from_mapping(values))
    except csv.Error as exc:
        raise _unreadable(exc) from exc
    return records


def _importer_guard() -> IntegrityGuard:
    return IntegrityGuard(resolver=HierarchyResolver(store=TypeNodeStore(autocommit=False)))


@dataclass
class BulkImporter:
    """Builds or reuses the domain → subcategory chain of each flat record.

    Every record is its own transaction; a failing record is rolled back and
    reported without touching the others or the shared cache.
    """

    guard: IntegrityGuard = field(default_factory=_importer_guard)
    max_records: int = 10000

    @property
    def store(self) -> TypeNodeStore:
        return self.guard.store

    def import_csv(self, db: Session, text: str) -> ImportResult:
        return self.import_records(db, parse_csv(text))

    def import_records(
        self,
        db: Session,
        records: Iterable[Union[ImportRecord, Mapping[str, Any]]],
    ) -> ImportResult:
        items = [r if isinstance(r, ImportRecord) else ImportRecord.from_mapping(r) for r in records]
        if len(items) > self.max_records:
            raise ValidationFailed(
                f"import is limited to {self.max_records} records, got {len(items)}",
                field="records",
                constraint="max_records",
            )

        cache = ImportCache()
        result = ImportResult(total=len(items))
        for index, record in enumerate(items):
            names = record.level_names()
            if not names:
                result.skipped += 1
                result.records.append(RecordOutcome(index=index, status="skipped"))
                continue

            staged: dict[str, int] = {}
            counts = {"created": 0, "reused": 0}
            try:
                node_ids = self._import_chain(db, names, cache, staged, counts)
                with translate_store_errors(db):
                    db.commit()
            except CatalogError as exc:
                db.rollback()
                logger.warning("Import record %s failed: %s", index, exc)
                result.failed += 1
                result.records.append(RecordOutcome(index=index, status="error", error=exc.to_dict()))
                continue

            cache.merge(staged)
            result.imported += 1
            result.created += counts["created"]
            result.reused += counts["reused"]
            result.records.append(RecordOutcome(index=index, status="ok", node_ids=node_ids))

        logger.info(
            "Imported %s/%s records (%s nodes created, %s reused, %s skipped, %s failed)",
            result.imported,
            result.total,
            result.created,
            result.reused,
            result.skipped,
            result.failed,
        )
        return result

    def _import_chain(
        self,
        db: Session,
        names: list[str],
        cache: ImportCache,
        staged: dict[str, int],
        counts: dict[str, int],
    ) -> list[int]:
        node_ids: list[int] = []
        parent_id: Optional[int] = None
        for level, raw_name in enumerate(names[:MAX_LEVEL], start=1):
            name = normalize_name(raw_name, field=LEVEL_FIELDS[level - 1])
            key = ImportCache.key(level, name, parent_id)
            node_id = staged.get(key)
            if node_id is None:
                node_id = cache.get(key)
            if node_id is not None:
                counts["reused"] += 1
            else:
                node_id, created = self._resolve_or_create(db, name=name, parent_id=parent_id, level=level)
                staged[key] = node_id
                counts["created" if created else "reused"] += 1
            node_ids.append(node_id)
            parent_id = node_id
        return node_ids

    def _resolve_or_create(self, db: Session, *, name: str, parent_id: Optional[int], level: int) -> tuple[int, bool]:
        existing = self.store.find_one(db, name=name, parent_id=parent_id)
        if existing is None:
            try:
                cleaned = self.guard.validate_create(db, name=name, parent_id=parent_id, level=level)
            except DuplicateName:
                existing = self.store.find_one(db, name=name, parent_id=parent_id)
                if existing is None:
                    raise
            else:
                node = self.store.create(db, **cleaned)
                return int(node.id), True

        if int(existing.level) != level:
            raise LevelMismatch(
                f"existing node {existing.id} '{name}' is level {existing.level}, expected {level}",
                field=LEVEL_FIELDS[level - 1],
                constraint="parent_level_plus_one",
            )
        return int(existing.id), False
