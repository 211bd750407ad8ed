import tempfile
import unittest
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from recordbook.db import Base, get_db
from recordbook.routers import admin, collections, records


class RecordsApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_records_api.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        app.include_router(collections.router)
        app.include_router(records.router)
        app.include_router(admin.router)

        def override_get_db():
            db = cls._session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls):
        cls.client.close()
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
        response = self.client.post(
            '/api/collections',
            json={'code': 'c1', 'name': 'Class 1', 'admin_key': 'k1', 'subjects': ['Korean']},
        )
        self.assertEqual(response.status_code, 201)

    def _add_student(self, card='card1', name='Kim'):
        response = self.client.post(
            '/api/admin/c1/students',
            json={'name': name, 'student_card_code': card, 'grade': 1, 'klass': 2, 'number': 3},
            headers={'X-Admin-Key': 'k1'},
        )
        self.assertEqual(response.status_code, 201)
        return response.json()

    def test_duplicate_collection_is_conflict(self):
        response = self.client.post('/api/collections', json={'code': 'c1', 'name': 'Other', 'admin_key': 'x'})
        self.assertEqual(response.status_code, 409)

    def test_admin_key_is_required(self):
        response = self.client.get('/api/admin/c1')
        self.assertEqual(response.status_code, 403)
        response = self.client.get('/api/admin/c1', headers={'X-Admin-Key': 'wrong'})
        self.assertEqual(response.status_code, 403)
        response = self.client.get('/api/admin/c1', params={'admin_key': 'k1'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['subjects'], ['Korean'])
        response = self.client.get('/api/admin/missing', headers={'X-Admin-Key': 'k1'})
        self.assertEqual(response.status_code, 404)

    def test_admin_key_with_surrounding_spaces_still_works(self):
        response = self.client.post('/api/collections', json={'code': 'ws', 'name': 'Spaced', 'admin_key': 'k1 '})
        self.assertEqual(response.status_code, 201)
        response = self.client.get('/api/admin/ws', headers={'X-Admin-Key': 'k1 '})
        self.assertEqual(response.status_code, 200)
        response = self.client.get('/api/admin/ws', params={'admin_key': 'k1 '})
        self.assertEqual(response.status_code, 200)
        response = self.client.get('/api/admin/ws', params={'admin_key': 'k1x'})
        self.assertEqual(response.status_code, 403)

    def test_join_endpoints(self):
        self._add_student()
        response = self.client.post('/api/collections/c1/join/student', json={'student_card_code': 'card1'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['display_name'], 'Kim')

        response = self.client.post('/api/collections/c1/join/student', json={'student_card_code': 'nope'})
        self.assertEqual(response.status_code, 404)
        response = self.client.post('/api/collections/c1/join/teacher', json={'teacher_id': ''})
        self.assertEqual(response.status_code, 400)
        response = self.client.post('/api/collections/c1/join/teacher', json={'teacher_id': 'T1'})
        self.assertEqual(response.json()['viewer_type'], 'teacher')

    def test_edit_flow_and_unseen_flags(self):
        student = self._add_student()
        listing = self.client.get('/api/collections/c1/records', params={'viewer_type': 'teacher', 'viewer_key': 'T1'})
        self.assertEqual(listing.status_code, 200)
        items = listing.json()['items']
        self.assertEqual(len(items), 1)
        record_id = items[0]['id']

        response = self.client.post(
            f'/api/records/{record_id}/edit',
            json={'content': 'first draft', 'note': 'start', 'modified_by': 'T1', 'expected_version': 0},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['version'], 1)
        self.assertEqual(body['student']['id'], student['id'])

        stale = self.client.post(
            f'/api/records/{record_id}/edit',
            json={'content': 'late', 'modified_by': 'T2', 'expected_version': 0},
        )
        self.assertEqual(stale.status_code, 409)

        detail = self.client.get(f'/api/records/{record_id}', params={'viewer_type': 'student', 'viewer_key': 'card1'})
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()['content'], 'first draft')
        self.assertEqual(detail.json()['revisions'][0]['note'], 'start')

        mine = self.client.get('/api/collections/c1/records', params={'viewer_type': 'student', 'viewer_key': 'card1'})
        self.assertFalse(mine.json()['items'][0]['unseen'])
        theirs = self.client.get('/api/collections/c1/records', params={'viewer_type': 'teacher', 'viewer_key': 'T1'})
        self.assertTrue(theirs.json()['items'][0]['unseen'])

    def test_create_record_endpoint(self):
        student = self._add_student()
        payload = {'student_id': student['id'], 'subject': 'Math', 'content': 'A', 'editor': 'T1'}
        response = self.client.post('/api/collections/c1/records', json=payload)
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['revisions'][0]['note'], 'initial creation')

        again = self.client.post('/api/collections/c1/records', json=payload)
        self.assertEqual(again.status_code, 409)

    def test_missing_record_is_404(self):
        response = self.client.get('/api/records/424242')
        self.assertEqual(response.status_code, 404)
        response = self.client.post('/api/records/424242/edit', json={'content': 'x'})
        self.assertEqual(response.status_code, 404)

    def test_roster_upload(self):
        csv_bytes = '이름,학생증코드,학년,반,번호\nKim,card1,1,2,3\n,card2,1,2,4\nLee,card3,x,2,5\n'.encode('utf-8')
        response = self.client.post(
            '/api/admin/c1/students/upload',
            files={'csv': ('roster.csv', csv_bytes, 'text/csv')},
            headers={'X-Admin-Key': 'k1'},
        )
        self.assertEqual(response.status_code, 200)
        result = response.json()
        self.assertEqual(result['created'], 2)
        self.assertEqual(result['records_created'], 2)
        self.assertEqual([item['line'] for item in result['skipped']], [3])

    def test_teacher_and_subject_admin(self):
        response = self.client.post(
            '/api/admin/c1/teachers',
            json={'teacher_id': 'T1', 'name': 'Park'},
            headers={'X-Admin-Key': 'k1'},
        )
        self.assertEqual(response.status_code, 201)
        teacher_pk = response.json()['id']

        response = self.client.post('/api/admin/c1/subjects', json={'subject': 'Math'}, headers={'X-Admin-Key': 'k1'})
        self.assertEqual(response.json()['subjects'], ['Korean', 'Math'])
        response = self.client.request(
            'DELETE',
            '/api/admin/c1/subjects',
            json={'subject': 'Korean'},
            headers={'X-Admin-Key': 'k1'},
        )
        self.assertEqual(response.json()['subjects'], ['Math'])

        response = self.client.delete(f'/api/admin/c1/teachers/{teacher_pk}', headers={'X-Admin-Key': 'k1'})
        self.assertEqual(response.status_code, 200)
        response = self.client.delete(f'/api/admin/c1/teachers/{teacher_pk}', headers={'X-Admin-Key': 'k1'})
        self.assertEqual(response.status_code, 404)

    def test_delete_student(self):
        student = self._add_student()
        response = self.client.delete(f"/api/admin/c1/students/{student['id']}", headers={'X-Admin-Key': 'k1'})
        self.assertEqual(response.status_code, 200)
        listing = self.client.get('/api/collections/c1/records', params={'viewer_type': 'teacher', 'viewer_key': 'T1'})
        self.assertEqual(listing.json()['items'], [])


if __name__ == '__main__':
    unittest.main()
