import logging

from sqlalchemy.orm import Session

from recordbook.config import settings
from recordbook.domain.services.collection_service import add_subject, create_collection
from recordbook.domain.services.party_service import add_student, add_teacher
from recordbook.domain.services.record_service import create_record
from recordbook.models import Collection


logger = logging.getLogger(__name__)

DEMO_ADMIN_KEY = 'admin'
DEMO_SUBJECTS = ('국어', '수학')
DEMO_STUDENTS = (
    {'grade': 1, 'klass': 2, 'number': 3, 'name': '김영찬', 'student_card_code': 'test'},
    {'grade': 1, 'klass': 2, 'number': 4, 'name': '이하늘', 'student_card_code': 's1002'},
    {'grade': 1, 'klass': 3, 'number': 1, 'name': '박새로이', 'student_card_code': 's1003'},
)
DEMO_TEACHER = {'teacher_id': 'TCH001', 'name': '담임선생님'}


def seed_demo_collection(db: Session, code: str | None = None) -> dict:
    demo_code = (code or settings.demo_collection_code or 'test').strip()
    if db.query(Collection.id).filter(Collection.code == demo_code).first():
        return {'seeded': False, 'reason': 'collection_exists', 'code': demo_code}

    # Subjects are registered last so the seeded records start with a seed revision
    # instead of the empty placeholders add_student would create.
    create_collection(db, code=demo_code, name='샘플 생활기록부', admin_key=DEMO_ADMIN_KEY)
    for payload in DEMO_STUDENTS:
        student = add_student(db, code=demo_code, admin_key=DEMO_ADMIN_KEY, **payload)
        for subject in DEMO_SUBJECTS:
            create_record(
                db,
                collection_code=demo_code,
                student_id=student.id,
                subject=subject,
                initial_content=f'{student.name}의 {subject} 생활기록부 초안입니다.',
                editor=DEMO_TEACHER['teacher_id'],
            )
    for subject in DEMO_SUBJECTS:
        add_subject(db, code=demo_code, admin_key=DEMO_ADMIN_KEY, subject=subject)
    add_teacher(db, code=demo_code, admin_key=DEMO_ADMIN_KEY, **DEMO_TEACHER)
    logger.info('demo_collection_seeded code=%s students=%s', demo_code, len(DEMO_STUDENTS))
    return {'seeded': True, 'code': demo_code, 'student_card_code': 'test', 'teacher_id': DEMO_TEACHER['teacher_id']}


def run_bootstrap(db: Session) -> dict:
    if not settings.seed_demo_data:
        return {'ran': False, 'reason': 'seed_demo_data_disabled'}
    result = seed_demo_collection(db)
    return {'ran': True, **result}
