import tempfile
import unittest
from pathlib import Path
from unittest import mock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from recordbook.core.admin_key import hash_admin_key, verify_admin_key
from recordbook.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from recordbook.db import Base
from recordbook.domain.services import collection_service
from recordbook.domain.services.collection_service import (
    add_subject,
    create_collection,
    get_collection,
    join_as_student,
    join_as_teacher,
    remove_subject,
    require_admin,
)
from recordbook.domain.services.party_service import add_student, add_teacher
from recordbook.models import Collection, Record


class AdminKeyTests(unittest.TestCase):
    def test_hash_round_trip(self):
        stored = hash_admin_key('k1', iterations=1000)
        self.assertTrue(stored.startswith('pbkdf2_sha256$1000$'))
        self.assertNotIn('k1', stored.split('$', 2)[2])
        self.assertTrue(verify_admin_key('k1', stored))
        self.assertFalse(verify_admin_key('k2', stored))
        self.assertFalse(verify_admin_key(None, stored))

    def test_surrounding_whitespace_is_not_part_of_the_key(self):
        stored = hash_admin_key('k1 ', iterations=1000)
        self.assertTrue(verify_admin_key('k1', stored))
        self.assertTrue(verify_admin_key(' k1\t', stored))
        self.assertFalse(verify_admin_key('k 1', stored))

    def test_malformed_hash_never_verifies(self):
        self.assertFalse(verify_admin_key('k1', ''))
        self.assertFalse(verify_admin_key('k1', 'plain-text'))
        self.assertFalse(verify_admin_key('k1', 'md5$1$salt$abc'))


class CollectionServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_collection_service.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            for table in reversed(Base.metadata.sorted_tables):
                db.execute(table.delete())
            db.commit()
        finally:
            db.close()

    def test_create_collection_stores_hashed_key_and_subjects(self):
        db = self._session_factory()
        try:
            row = create_collection(db, code=' c1 ', name='Class 1', admin_key='k1', subjects=['Korean', 'Math', 'Korean', ' '])
            self.assertEqual(row.code, 'c1')
            self.assertEqual(row.subject_names, ['Korean', 'Math'])
            self.assertNotEqual(row.admin_key_hash, 'k1')
            self.assertTrue(verify_admin_key('k1', row.admin_key_hash))
        finally:
            db.close()

    def test_duplicate_code_conflicts_and_keeps_original(self):
        db = self._session_factory()
        try:
            create_collection(db, code='c1', name='Original', admin_key='k1')
            with self.assertRaises(ConflictError):
                create_collection(db, code='c1', name='Impostor', admin_key='other')

            row = get_collection(db, 'c1')
            self.assertEqual(row.name, 'Original')
            self.assertTrue(verify_admin_key('k1', row.admin_key_hash))
            self.assertFalse(verify_admin_key('other', row.admin_key_hash))
            self.assertEqual(db.query(Collection).count(), 1)
        finally:
            db.close()

    def test_create_collection_requires_fields(self):
        db = self._session_factory()
        try:
            with self.assertRaises(ValidationError):
                create_collection(db, code='', name='x', admin_key='k')
            with self.assertRaises(ValidationError):
                create_collection(db, code='c1', name='x', admin_key=' ')
        finally:
            db.close()

    def test_require_admin(self):
        db = self._session_factory()
        try:
            create_collection(db, code='c1', name='Class 1', admin_key='k1')
            self.assertEqual(require_admin(db, code='c1', admin_key='k1').code, 'c1')
            with self.assertRaises(ForbiddenError):
                require_admin(db, code='c1', admin_key='wrong')
            with self.assertRaises(ForbiddenError):
                require_admin(db, code='c1', admin_key=None)
            with self.assertRaises(NotFoundError):
                require_admin(db, code='nope', admin_key='k1')
        finally:
            db.close()

    def test_join_as_student(self):
        db = self._session_factory()
        try:
            create_collection(db, code='c1', name='Class 1', admin_key='k1')
            add_student(db, code='c1', admin_key='k1', name='Kim', student_card_code='card1')

            identity = join_as_student(db, code='c1', student_card_code=' card1 ')
            self.assertEqual(identity.viewer_type, 'student')
            self.assertEqual(identity.viewer_key, 'card1')
            self.assertEqual(identity.display_name, 'Kim')

            with self.assertRaises(NotFoundError):
                join_as_student(db, code='c1', student_card_code='card2')
            with self.assertRaises(ValidationError):
                join_as_student(db, code='c1', student_card_code='')
            with self.assertRaises(NotFoundError):
                join_as_student(db, code='c9', student_card_code='card1')
        finally:
            db.close()

    def test_join_as_teacher(self):
        db = self._session_factory()
        try:
            create_collection(db, code='c1', name='Class 1', admin_key='k1')
            add_teacher(db, code='c1', admin_key='k1', teacher_id='T1', name='Park')

            identity = join_as_teacher(db, code='c1', teacher_id='T1')
            self.assertEqual(identity.viewer_type, 'teacher')
            self.assertEqual(identity.display_name, 'Park')

            walk_in = join_as_teacher(db, code='c1', teacher_id='T2')
            self.assertEqual(walk_in.viewer_key, 'T2')
            self.assertEqual(walk_in.display_name, '')

            with self.assertRaises(ValidationError):
                join_as_teacher(db, code='c1', teacher_id='  ')

            with mock.patch.object(collection_service.settings, 'require_registered_teachers', True):
                with self.assertRaises(NotFoundError):
                    join_as_teacher(db, code='c1', teacher_id='T2')
                self.assertEqual(join_as_teacher(db, code='c1', teacher_id='T1').viewer_key, 'T1')
        finally:
            db.close()

    def test_subjects_are_gated_and_idempotent(self):
        db = self._session_factory()
        try:
            create_collection(db, code='c1', name='Class 1', admin_key='k1', subjects=['Korean'])
            student = add_student(db, code='c1', admin_key='k1', name='Kim', student_card_code='card1')

            with self.assertRaises(ForbiddenError):
                add_subject(db, code='c1', admin_key='bad', subject='Math')

            add_subject(db, code='c1', admin_key='k1', subject='Math')
            add_subject(db, code='c1', admin_key='k1', subject='Math')
            add_subject(db, code='c1', admin_key='k1', subject='')
            self.assertEqual(get_collection(db, 'c1').subject_names, ['Korean', 'Math'])

            remove_subject(db, code='c1', admin_key='k1', subject='Korean')
            remove_subject(db, code='c1', admin_key='k1', subject='History')
            self.assertEqual(get_collection(db, 'c1').subject_names, ['Math'])

            subjects = {row.subject for row in db.query(Record).filter(Record.student_id == student.id)}
            self.assertEqual(subjects, {'Korean'})
        finally:
            db.close()


if __name__ == '__main__':
    unittest.main()
