import os
import sqlite3

from coursebot.core.models import CourseUnits, DocumentRecord, UnitInfo
from coursebot.adapters.metadata.base import MetadataStore


class SQLiteMetadataStore(MetadataStore):
    """Course and document records in SQLite.

    Shared with the document-management side of the application, which owns
    the writes; the retrieval core only calls the two read methods of
    MetadataStore.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def init_db(self):
        parent = os.path.dirname(self.db_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("""
        CREATE TABLE IF NOT EXISTS courses(
            course_id TEXT PRIMARY KEY,
            additive_retrieval INTEGER NOT NULL DEFAULT 0
        );
        """)
        cur.execute("""
        CREATE TABLE IF NOT EXISTS course_units(
            course_id TEXT,
            position INTEGER,
            name TEXT,
            is_published INTEGER NOT NULL DEFAULT 0,
            PRIMARY KEY(course_id, name),
            FOREIGN KEY(course_id) REFERENCES courses(course_id)
        );
        """)
        cur.execute("""
        CREATE TABLE IF NOT EXISTS documents(
            document_id TEXT PRIMARY KEY,
            course_id TEXT,
            unit_name TEXT,
            file_name TEXT,
            mime_type TEXT,
            document_type TEXT
        );
        """)
        cur.execute("CREATE INDEX IF NOT EXISTS idx_documents_course ON documents(course_id);")
        conn.commit()
        conn.close()

    def save_course(self, course: CourseUnits):
        """Replace a course's unit list, keeping the given order."""
        conn = self._connect()
        cur = conn.cursor()
        cur.execute(
            "INSERT OR REPLACE INTO courses(course_id, additive_retrieval) VALUES(?,?)",
            (course.course_id, int(course.additive_retrieval)),
        )
        cur.execute("DELETE FROM course_units WHERE course_id=?", (course.course_id,))
        cur.executemany(
            "INSERT INTO course_units(course_id, position, name, is_published) VALUES(?,?,?,?)",
            [(course.course_id, i, u.name, int(u.is_published)) for i, u in enumerate(course.units)],
        )
        conn.commit()
        conn.close()

    def get_course_units(self, course_id: str) -> CourseUnits | None:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("SELECT additive_retrieval FROM courses WHERE course_id=?", (course_id,))
        row = cur.fetchone()
        if not row:
            conn.close()
            return None
        cur.execute(
            "SELECT name, is_published FROM course_units WHERE course_id=? ORDER BY position",
            (course_id,),
        )
        units = [UnitInfo(name=r[0], is_published=bool(r[1])) for r in cur.fetchall()]
        conn.close()
        return CourseUnits(course_id=course_id, units=units, additive_retrieval=bool(row[0]))

    def save_document(self, doc: DocumentRecord):
        conn = self._connect()
        cur = conn.cursor()
        cur.execute(
            "INSERT OR REPLACE INTO documents(document_id, course_id, unit_name, file_name, mime_type, document_type) "
            "VALUES(?,?,?,?,?,?)",
            (doc.document_id, doc.course_id, doc.unit_name, doc.file_name, doc.mime_type, doc.document_type),
        )
        conn.commit()
        conn.close()

    def get_document(self, document_id: str) -> DocumentRecord | None:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute(
            "SELECT document_id, course_id, unit_name, file_name, mime_type, document_type FROM documents WHERE document_id=?",
            (document_id,),
        )
        row = cur.fetchone()
        conn.close()
        if not row:
            return None
        return DocumentRecord(
            document_id=row[0], course_id=row[1], unit_name=row[2],
            file_name=row[3], mime_type=row[4], document_type=row[5],
        )

    def list_documents(self, course_id: str) -> list[DocumentRecord]:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute(
            "SELECT document_id, course_id, unit_name, file_name, mime_type, document_type FROM documents "
            "WHERE course_id=? ORDER BY rowid",
            (course_id,),
        )
        rows = cur.fetchall()
        conn.close()
        return [
            DocumentRecord(
                document_id=r[0], course_id=r[1], unit_name=r[2],
                file_name=r[3], mime_type=r[4], document_type=r[5],
            )
            for r in rows
        ]

    def get_document_ids_for_course(self, course_id: str) -> list[str]:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("SELECT document_id FROM documents WHERE course_id=?", (course_id,))
        ids = [r[0] for r in cur.fetchall()]
        conn.close()
        return ids

    def delete_document(self, document_id: str) -> bool:
        conn = self._connect()
        cur = conn.cursor()
        cur.execute("DELETE FROM documents WHERE document_id=?", (document_id,))
        deleted = cur.rowcount > 0
        conn.commit()
        conn.close()
        return deleted
