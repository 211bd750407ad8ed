import secrets
import sys

from alembic.config import Config
from alembic.script import ScriptDirectory
from alembic.runtime.migration import MigrationContext
from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from recordbook.config import settings
from recordbook.core.diff import build_patch, summarize_patch
from recordbook.db import SessionLocal, engine
from recordbook.domain.services.collection_service import create_collection
from recordbook.domain.services.party_service import add_student
from recordbook.domain.services.record_service import append_revision
from recordbook.domain.services.visibility_service import has_unseen_for, mark_seen
from recordbook.models import Collection


EXPECTED_TABLES = {
    'collections',
    'collection_subjects',
    'students',
    'teachers',
    'records',
    'record_revisions',
    'record_seen',
}

GREEN = '\033[32m'
RED = '\033[31m'
RESET = '\033[0m'


def run_check(name, fn):
    try:
        message = fn() or ''
        suffix = f' - {message}' if message else ''
        print(f'{GREEN}PASS{RESET} {name}{suffix}')
        return True
    except Exception as exc:
        print(f'{RED}FAIL{RESET} {name} - {exc}')
        return False


def check_db_connectivity_and_write():
    with engine.begin() as conn:
        conn.execute(text('SELECT 1'))
        conn.execute(text('CREATE TABLE IF NOT EXISTS _healthcheck_probe (id INTEGER PRIMARY KEY, note TEXT)'))
        conn.execute(text("INSERT INTO _healthcheck_probe (note) VALUES ('probe')"))
        conn.execute(text("DELETE FROM _healthcheck_probe WHERE note='probe'"))
        conn.execute(text('DROP TABLE IF EXISTS _healthcheck_probe'))
    return 'connect + write ok'


def check_alembic_head():
    cfg = Config('alembic.ini')
    script = ScriptDirectory.from_config(cfg)
    heads = set(script.get_heads())
    if not heads:
        raise RuntimeError('No alembic heads found in repository')

    with engine.connect() as conn:
        current = MigrationContext.configure(conn).get_current_revision()

    if current is None:
        raise RuntimeError('No migration version in DB (run alembic upgrade head)')
    if current not in heads:
        raise RuntimeError(f'DB revision {current} is not at head {sorted(heads)}')
    return f'current={current}'


def check_required_env():
    required = {
        'DATABASE_URL': settings.database_url,
        'APP_TIMEZONE': settings.app_timezone,
    }
    missing = [key for key, value in required.items() if not str(value).strip()]
    if missing:
        raise RuntimeError(f'Missing env vars: {", ".join(missing)}')
    return 'all required vars present'


def check_tables_present():
    existing = set(inspect(engine).get_table_names())
    missing = sorted(EXPECTED_TABLES - existing)
    if missing:
        raise RuntimeError(f'Missing tables: {missing}')
    return f'tables={len(EXPECTED_TABLES)}'


def check_collections_queryable():
    db = SessionLocal()
    try:
        count = db.query(Collection.id).count()
        return f'collections={count}'
    finally:
        db.close()


def check_patch_rendering():
    patch = build_patch('line one\n', 'line one\nline two')
    changes = summarize_patch(patch)
    if changes != {'added': 1, 'removed': 0}:
        raise RuntimeError(f'Unexpected patch summary: {changes}')
    if build_patch('same', 'same') != '':
        raise RuntimeError('Equal snapshots produced a non-empty patch')
    return 'unified patch ok'


def check_core_cycle_rolled_back():
    probe_code = f'_healthcheck_{secrets.token_hex(4)}'
    with engine.connect() as conn:
        outer = conn.begin()
        db = Session(bind=conn, join_transaction_mode='create_savepoint')
        try:
            create_collection(db, code=probe_code, name='healthcheck', admin_key='probe', subjects=['probe'])
            student = add_student(db, code=probe_code, admin_key='probe', name='probe', student_card_code='probe')
            record = student.records[0]
            edited = append_revision(db, record_id=record.id, new_content='probe', note='', editor='healthcheck')
            mark_seen(db, record_id=edited.id, viewer_type='teacher', viewer_key='healthcheck')
            if has_unseen_for(db, edited, viewer_type='teacher', viewer_key='healthcheck'):
                raise RuntimeError('Record still unseen after mark_seen')
            if len(edited.revisions) != 1:
                raise RuntimeError(f'Expected 1 revision, got {len(edited.revisions)}')
        finally:
            db.close()
            outer.rollback()
    return 'create/edit/mark cycle ok (rolled back)'


def main():
    checks = [
        ('Database connectivity and write access', check_db_connectivity_and_write),
        ('Alembic migration status at head', check_alembic_head),
        ('Required environment variables present', check_required_env),
        ('Record tables present', check_tables_present),
        ('Collections table queryable', check_collections_queryable),
        ('Revision patch rendering', check_patch_rendering),
        ('Core record cycle in a rolled-back transaction', check_core_cycle_rolled_back),
    ]

    all_ok = True
    for name, fn in checks:
        all_ok = run_check(name, fn) and all_ok

    if not all_ok:
        sys.exit(1)
    sys.exit(0)


if __name__ == '__main__':
    main()
