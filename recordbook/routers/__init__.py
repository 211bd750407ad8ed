from recordbook.routers import admin, collections, records

__all__ = [
    'admin',
    'collections',
    'records',
]
