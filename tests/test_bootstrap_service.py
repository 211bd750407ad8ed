import tempfile
import unittest
from pathlib import Path
from unittest import mock

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from recordbook.db import Base
from recordbook.models import Collection, Record, RecordRevision, Student, Teacher
from recordbook.services import bootstrap_service
from recordbook.services.bootstrap_service import run_bootstrap, seed_demo_collection


class BootstrapServiceTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_bootstrap_service.db'
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

    def test_seed_creates_demo_collection_once(self):
        db = self._session_factory()
        try:
            result = seed_demo_collection(db, code='demo')
            self.assertTrue(result['seeded'])

            collection = db.query(Collection).filter(Collection.code == 'demo').one()
            self.assertEqual(collection.subject_names, ['국어', '수학'])
            self.assertEqual(db.query(Student).count(), 3)
            self.assertEqual(db.query(Teacher).count(), 1)
            self.assertEqual(db.query(Record).count(), 6)
            self.assertEqual(db.query(RecordRevision).count(), 6)

            again = seed_demo_collection(db, code='demo')
            self.assertFalse(again['seeded'])
            self.assertEqual(db.query(Student).count(), 3)
        finally:
            db.close()

    def test_run_bootstrap_respects_setting(self):
        db = self._session_factory()
        try:
            with mock.patch.object(bootstrap_service.settings, 'seed_demo_data', False):
                self.assertFalse(run_bootstrap(db)['ran'])
            self.assertEqual(db.query(Collection).count(), 0)

            with mock.patch.object(bootstrap_service.settings, 'seed_demo_data', True):
                result = run_bootstrap(db)
            self.assertTrue(result['ran'])
            self.assertEqual(db.query(Collection).count(), 1)
        finally:
            db.close()


if __name__ == '__main__':
    unittest.main()
