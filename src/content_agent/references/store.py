"""Lookup backends used to resolve mentions against workspace entities."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Any, Protocol

from content_agent.types import ContentRecord, FileRecord, SectionRecord, SourceRecord


class ReferenceStore(Protocol):
    """Organization-scoped entity lookups.

    `search_*` methods perform a case-insensitive substring match of `needle`
    and return at most `limit` records, most recently updated first.
    """

    async def search_files(self, organization_id: str, needle: str, limit: int) -> list[FileRecord]:
        """Match active files by file name or original name."""

    async def search_contents(self, organization_id: str, needle: str, limit: int) -> list[ContentRecord]:
        """Match content items by slug."""

    async def search_sources(self, organization_id: str, needle: str, limit: int) -> list[SourceRecord]:
        """Match source items by external ID or title."""

    async def get_file(self, organization_id: str, file_id: str) -> FileRecord | None:
        """Fetch one active file by ID."""

    async def get_content(self, organization_id: str, content_id: str) -> ContentRecord | None:
        """Fetch one content item, with its current sections, by ID."""

    async def get_source(self, organization_id: str, source_id: str) -> SourceRecord | None:
        """Fetch one source item by ID."""

    async def read_file_text(self, file: FileRecord) -> str | None:
        """Return the text body of a file, or None when unavailable."""


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE metacharacters for use with `ESCAPE '\\'`."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class InMemoryReferenceStore:
    """Deterministic store used for tests and local prototyping."""

    def __init__(self) -> None:
        self._files: list[FileRecord] = []
        self._contents: list[ContentRecord] = []
        self._sources: list[SourceRecord] = []
        self._file_texts: dict[str, str] = {}

    def add_file(self, record: FileRecord, *, text: str | None = None) -> None:
        self._files.append(record)
        if text is not None:
            self._file_texts[record.id] = text

    def add_content(self, record: ContentRecord) -> None:
        self._contents.append(record)

    def add_source(self, record: SourceRecord) -> None:
        self._sources.append(record)

    async def search_files(self, organization_id: str, needle: str, limit: int) -> list[FileRecord]:
        matches = [
            rec
            for rec in reversed(self._files)
            if rec.organization_id == organization_id
            and rec.is_active
            and _contains(needle, rec.file_name, rec.original_name)
        ]
        return matches[:limit]

    async def search_contents(self, organization_id: str, needle: str, limit: int) -> list[ContentRecord]:
        matches = [
            rec
            for rec in reversed(self._contents)
            if rec.organization_id == organization_id and _contains(needle, rec.slug)
        ]
        return matches[:limit]

    async def search_sources(self, organization_id: str, needle: str, limit: int) -> list[SourceRecord]:
        matches = [
            rec
            for rec in reversed(self._sources)
            if rec.organization_id == organization_id
            and _contains(needle, rec.external_id, rec.title)
        ]
        return matches[:limit]

    async def get_file(self, organization_id: str, file_id: str) -> FileRecord | None:
        for rec in self._files:
            if rec.id == file_id and rec.organization_id == organization_id and rec.is_active:
                return rec
        return None

    async def get_content(self, organization_id: str, content_id: str) -> ContentRecord | None:
        for rec in self._contents:
            if rec.id == content_id and rec.organization_id == organization_id:
                return rec
        return None

    async def get_source(self, organization_id: str, source_id: str) -> SourceRecord | None:
        for rec in self._sources:
            if rec.id == source_id and rec.organization_id == organization_id:
                return rec
        return None

    async def read_file_text(self, file: FileRecord) -> str | None:
        return self._file_texts.get(file.id)


class SqliteReferenceStore:
    """SQLite-backed store; blocking queries run in a worker thread."""

    def __init__(self, sqlite_path: str | Path = "content_agent.db") -> None:
        self.db_file = Path(sqlite_path)
        _ensure_tables(self.db_file)

    def upsert_file(self, record: FileRecord, *, text: str | None = None) -> None:
        with closing(sqlite3.connect(self.db_file)) as conn:
            conn.execute(
                "INSERT INTO files(id, organization_id, file_name, original_name, file_type, mime_type,"
                " size, url, is_active, text_content, updated_at)"
                " VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, strftime('%Y-%m-%d %H:%M:%f', 'now'))"
                " ON CONFLICT(id) DO UPDATE SET organization_id=excluded.organization_id,"
                " file_name=excluded.file_name, original_name=excluded.original_name,"
                " file_type=excluded.file_type, mime_type=excluded.mime_type, size=excluded.size,"
                " url=excluded.url, is_active=excluded.is_active, text_content=excluded.text_content,"
                " updated_at=excluded.updated_at",
                (
                    record.id,
                    record.organization_id,
                    record.file_name,
                    record.original_name,
                    record.file_type,
                    record.mime_type,
                    record.size,
                    record.url,
                    int(record.is_active),
                    text,
                ),
            )
            conn.commit()

    def upsert_content(self, record: ContentRecord) -> None:
        sections = [
            {"id": s.id, "title": s.title, "type": s.type, "index": s.index, "body": s.body}
            for s in record.sections
        ]
        with closing(sqlite3.connect(self.db_file)) as conn:
            conn.execute(
                "INSERT INTO contents(id, organization_id, slug, title, status, sections, frontmatter, updated_at)"
                " VALUES(?, ?, ?, ?, ?, ?, ?, strftime('%Y-%m-%d %H:%M:%f', 'now'))"
                " ON CONFLICT(id) DO UPDATE SET organization_id=excluded.organization_id,"
                " slug=excluded.slug, title=excluded.title, status=excluded.status,"
                " sections=excluded.sections, frontmatter=excluded.frontmatter,"
                " updated_at=excluded.updated_at",
                (
                    record.id,
                    record.organization_id,
                    record.slug,
                    record.title,
                    record.status,
                    json.dumps(sections),
                    json.dumps(record.frontmatter) if record.frontmatter is not None else None,
                ),
            )
            conn.commit()

    def upsert_source(self, record: SourceRecord) -> None:
        with closing(sqlite3.connect(self.db_file)) as conn:
            conn.execute(
                "INSERT INTO sources(id, organization_id, title, source_type, external_id, source_text, updated_at)"
                " VALUES(?, ?, ?, ?, ?, ?, strftime('%Y-%m-%d %H:%M:%f', 'now'))"
                " ON CONFLICT(id) DO UPDATE SET organization_id=excluded.organization_id,"
                " title=excluded.title, source_type=excluded.source_type,"
                " external_id=excluded.external_id, source_text=excluded.source_text,"
                " updated_at=excluded.updated_at",
                (
                    record.id,
                    record.organization_id,
                    record.title,
                    record.source_type,
                    record.external_id,
                    record.source_text,
                ),
            )
            conn.commit()

    async def search_files(self, organization_id: str, needle: str, limit: int) -> list[FileRecord]:
        pattern = f"%{escape_like_pattern(needle.strip().lower())}%"
        rows = await self._fetch(
            "SELECT * FROM files WHERE organization_id = ? AND is_active = 1"
            " AND (lower(file_name) LIKE ? ESCAPE '\\' OR lower(original_name) LIKE ? ESCAPE '\\')"
            " ORDER BY updated_at DESC, rowid DESC LIMIT ?",
            (organization_id, pattern, pattern, limit),
        )
        return [_file_from_row(row) for row in rows]

    async def search_contents(self, organization_id: str, needle: str, limit: int) -> list[ContentRecord]:
        pattern = f"%{escape_like_pattern(needle.strip().lower())}%"
        rows = await self._fetch(
            "SELECT * FROM contents WHERE organization_id = ? AND lower(slug) LIKE ? ESCAPE '\\'"
            " ORDER BY updated_at DESC, rowid DESC LIMIT ?",
            (organization_id, pattern, limit),
        )
        return [_content_from_row(row) for row in rows]

    async def search_sources(self, organization_id: str, needle: str, limit: int) -> list[SourceRecord]:
        pattern = f"%{escape_like_pattern(needle.strip().lower())}%"
        rows = await self._fetch(
            "SELECT * FROM sources WHERE organization_id = ?"
            " AND (lower(external_id) LIKE ? ESCAPE '\\' OR lower(title) LIKE ? ESCAPE '\\')"
            " ORDER BY updated_at DESC, rowid DESC LIMIT ?",
            (organization_id, pattern, pattern, limit),
        )
        return [_source_from_row(row) for row in rows]

    async def get_file(self, organization_id: str, file_id: str) -> FileRecord | None:
        rows = await self._fetch(
            "SELECT * FROM files WHERE id = ? AND organization_id = ? AND is_active = 1 LIMIT 1",
            (file_id, organization_id),
        )
        return _file_from_row(rows[0]) if rows else None

    async def get_content(self, organization_id: str, content_id: str) -> ContentRecord | None:
        rows = await self._fetch(
            "SELECT * FROM contents WHERE id = ? AND organization_id = ? LIMIT 1",
            (content_id, organization_id),
        )
        return _content_from_row(rows[0]) if rows else None

    async def get_source(self, organization_id: str, source_id: str) -> SourceRecord | None:
        rows = await self._fetch(
            "SELECT * FROM sources WHERE id = ? AND organization_id = ? LIMIT 1",
            (source_id, organization_id),
        )
        return _source_from_row(rows[0]) if rows else None

    async def read_file_text(self, file: FileRecord) -> str | None:
        rows = await self._fetch("SELECT text_content FROM files WHERE id = ?", (file.id,))
        return rows[0]["text_content"] if rows else None

    async def _fetch(self, query: str, params: tuple[Any, ...]) -> list[sqlite3.Row]:
        return await asyncio.to_thread(self._fetch_sync, query, params)

    def _fetch_sync(self, query: str, params: tuple[Any, ...]) -> list[sqlite3.Row]:
        with closing(sqlite3.connect(self.db_file)) as conn:
            conn.row_factory = sqlite3.Row
            return conn.execute(query, params).fetchall()


def _contains(needle: str, *values: str | None) -> bool:
    normalized = needle.strip().lower()
    return any(normalized in (value or "").lower() for value in values)


def _file_from_row(row: sqlite3.Row) -> FileRecord:
    return FileRecord(
        id=row["id"],
        organization_id=row["organization_id"],
        file_name=row["file_name"] or "",
        original_name=row["original_name"] or "",
        file_type=row["file_type"] or "",
        mime_type=row["mime_type"] or "",
        size=row["size"] or 0,
        url=row["url"] or "",
        is_active=bool(row["is_active"]),
    )


def _content_from_row(row: sqlite3.Row) -> ContentRecord:
    raw_sections = json.loads(row["sections"]) if row["sections"] else []
    sections = [
        SectionRecord(
            id=item.get("id") or item.get("section_id") or "",
            title=item.get("title"),
            type=item.get("type"),
            index=item.get("index"),
            body=item.get("body") or "",
        )
        for item in raw_sections
        if isinstance(item, dict)
    ]
    return ContentRecord(
        id=row["id"],
        organization_id=row["organization_id"],
        slug=row["slug"] or "",
        title=row["title"] or "",
        status=row["status"] or "",
        sections=sections,
        frontmatter=json.loads(row["frontmatter"]) if row["frontmatter"] else None,
    )


def _source_from_row(row: sqlite3.Row) -> SourceRecord:
    return SourceRecord(
        id=row["id"],
        organization_id=row["organization_id"],
        title=row["title"],
        source_type=row["source_type"],
        external_id=row["external_id"],
        source_text=row["source_text"],
    )


def _ensure_tables(db_path: Path) -> None:
    with closing(sqlite3.connect(db_path)) as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS files (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                file_name TEXT,
                original_name TEXT,
                file_type TEXT,
                mime_type TEXT,
                size INTEGER,
                url TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                text_content TEXT,
                updated_at TEXT
            );
            CREATE TABLE IF NOT EXISTS contents (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                slug TEXT NOT NULL,
                title TEXT,
                status TEXT,
                sections TEXT,
                frontmatter TEXT,
                updated_at TEXT
            );
            CREATE TABLE IF NOT EXISTS sources (
                id TEXT PRIMARY KEY,
                organization_id TEXT NOT NULL,
                title TEXT,
                source_type TEXT,
                external_id TEXT,
                source_text TEXT,
                updated_at TEXT
            );
            """
        )
        conn.commit()
