from __future__ import annotations

import argparse
import random
import sys
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from recordbook import models  # noqa: E402,F401
from recordbook.db import Base, SessionLocal, engine  # noqa: E402
from recordbook.domain.services.collection_service import create_collection  # noqa: E402
from recordbook.domain.services.listing_service import open_record  # noqa: E402
from recordbook.domain.services.party_service import add_teacher  # noqa: E402
from recordbook.domain.services.record_service import append_revision  # noqa: E402
from recordbook.domain.services.roster_service import RosterRow, bulk_upsert_students  # noqa: E402
from recordbook.models import Collection, Record  # noqa: E402


RNG = random.Random(20261016)

SUBJECTS = ['국어', '수학', '영어', '과학']
FAMILY_NAMES = ['김', '이', '박', '최', '정', '강', '조', '윤', '장', '임']
GIVEN_NAMES = ['민준', '서연', '도윤', '하은', '시우', '지우', '예준', '서윤', '주원', '하린', '지호', '수아']
TEACHER_IDS = ['TCH001', 'TCH002', 'TCH003']
SENTENCES = [
    '수업 시간에 적극적으로 발표함.',
    '모둠 활동에서 협력적인 태도를 보임.',
    '과제 완성도가 높고 기한을 잘 지킴.',
    '탐구 보고서에서 자료 해석 능력이 돋보임.',
    '질문을 통해 개념을 스스로 확장하려는 노력이 보임.',
    '독서 활동을 꾸준히 이어감.',
]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Populate a collection with students, edits and views.')
    parser.add_argument('--code', default='sim', help='Collection code to create or reuse.')
    parser.add_argument('--admin-key', default='sim-admin')
    parser.add_argument('--students', type=int, default=30)
    parser.add_argument('--edits', type=int, default=120)
    parser.add_argument('--reset-db', action='store_true', help='Wipe and recreate all tables before simulation.')
    return parser.parse_args()


def ensure_schema(reset_db: bool) -> None:
    if reset_db:
        print('Resetting database tables...')
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


def build_roster(count: int) -> list[RosterRow]:
    rows = []
    for index in range(count):
        klass, number = divmod(index, 25)
        rows.append(
            RosterRow(
                name=RNG.choice(FAMILY_NAMES) + RNG.choice(GIVEN_NAMES),
                student_card_code=f's{2000 + index}',
                grade=1,
                klass=klass + 1,
                number=number + 1,
                line=index + 2,
            )
        )
    return rows


def main() -> None:
    args = parse_args()
    ensure_schema(args.reset_db)
    db = SessionLocal()
    try:
        if not db.query(Collection.id).filter(Collection.code == args.code).first():
            create_collection(db, code=args.code, name='시뮬레이션 생활기록부', admin_key=args.admin_key, subjects=SUBJECTS)
            for teacher_id in TEACHER_IDS:
                add_teacher(db, code=args.code, admin_key=args.admin_key, teacher_id=teacher_id)

        result = bulk_upsert_students(db, code=args.code, admin_key=args.admin_key, rows=build_roster(args.students))
        print(f'roster: {result.as_dict()}')

        record_ids = [row_id for (row_id,) in db.query(Record.id).filter(Record.collection_code == args.code)]
        if not record_ids:
            print('No records to edit.')
            return

        for _ in range(args.edits):
            record_id = RNG.choice(record_ids)
            record = open_record(db, record_id=record_id, viewer_type='teacher', viewer_key=RNG.choice(TEACHER_IDS))
            content = (record.content + '\n' if record.content else '') + RNG.choice(SENTENCES)
            append_revision(
                db,
                record_id=record_id,
                new_content=content,
                note=RNG.choice(['', '문장 추가', '표현 다듬기']),
                editor=RNG.choice(TEACHER_IDS),
                expected_version=len(record.revisions),
            )
        print(f'edits: {args.edits} across {len(record_ids)} records')
    finally:
        db.close()


if __name__ == '__main__':
    main()
