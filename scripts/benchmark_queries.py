from __future__ import annotations

import time

from recordbook.db import SessionLocal
from recordbook.domain.services.listing_service import list_records
from recordbook.models import Record, RecordSeen, Student, ViewerType


def time_query(label: str, fn, runs: int = 3) -> None:
    timings = []
    for _ in range(runs):
        started = time.perf_counter()
        fn()
        timings.append((time.perf_counter() - started) * 1000.0)
    avg_ms = sum(timings) / len(timings) if timings else 0.0
    print(f"{label}: avg_ms={avg_ms:.2f} runs={runs} samples={[round(x, 2) for x in timings]}")


def main() -> None:
    db = SessionLocal()
    try:
        sample_student = db.query(Student).order_by(Student.id.asc()).first()
        sample_record_id = db.query(Record.id).order_by(Record.updated_at.desc()).limit(1).scalar()

        if sample_student is not None:
            code = sample_student.collection_code
            card = sample_student.student_card_code
            time_query(
                "list_records_student_scope",
                lambda: list_records(db, code=code, viewer_type=ViewerType.STUDENT.value, viewer_key=card),
            )
            time_query(
                "list_records_teacher_scope",
                lambda: list_records(db, code=code, viewer_type=ViewerType.TEACHER.value, viewer_key='benchmark'),
            )
            time_query(
                "students_by_collection_ordered",
                lambda: db.query(Student)
                .filter(Student.collection_code == code)
                .order_by(Student.grade.asc(), Student.klass.asc(), Student.number.asc())
                .all(),
            )

        if sample_record_id is not None:
            time_query(
                "record_seen_by_record",
                lambda: db.query(RecordSeen).filter(RecordSeen.record_id == sample_record_id).all(),
            )
    finally:
        db.close()


if __name__ == "__main__":
    main()
