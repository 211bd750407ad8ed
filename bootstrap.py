import logging

from recordbook import models  # noqa: F401
from recordbook.db import Base, SessionLocal, engine
from recordbook.services.bootstrap_service import run_bootstrap, seed_demo_collection


logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s %(message)s')
logger = logging.getLogger('bootstrap')


def main(force_demo: bool = False):
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        result = seed_demo_collection(db) if force_demo else run_bootstrap(db)
        if result.get('ran') or result.get('seeded'):
            logger.info('Bootstrap executed: %s', result)
        else:
            logger.info('Bootstrap skipped: %s', result)
    finally:
        db.close()


if __name__ == '__main__':
    import sys

    main(force_demo='--demo' in sys.argv[1:])
