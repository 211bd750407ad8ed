import unittest

from fastapi import APIRouter, FastAPI
from fastapi.testclient import TestClient

from recordbook.route_logging import EndpointNameRoute, current_endpoint


class EndpointNameRouteTests(unittest.TestCase):
    def test_request_is_tagged_with_route_template(self):
        router = APIRouter(route_class=EndpointNameRoute)

        @router.get('/api/records/{record_id}')
        def read(record_id: int):
            return {'endpoint': current_endpoint.get(), 'record_id': record_id}

        app = FastAPI()
        app.include_router(router)
        with TestClient(app) as client:
            response = client.get('/api/records/7')

        self.assertEqual(response.json(), {'endpoint': 'GET /api/records/{record_id}', 'record_id': 7})
        self.assertEqual(current_endpoint.get(), 'cli')


if __name__ == '__main__':
    unittest.main()
